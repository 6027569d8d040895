"""Stash CLI command modules.

Contains the handlers the single `stash` command dispatches to.

Execution Context:
    Imported by main.py

Dependencies:
    - click: CLI framework

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations
