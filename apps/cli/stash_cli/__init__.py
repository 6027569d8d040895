"""Stash CLI Application.

Command-line interface for moving files and directories in and out of
a persistent, stack-ordered stash.

Execution Context:
    CLI application - invoked from terminal

Dependencies:
    - click: CLI framework
    - rich: Terminal formatting
    - stash_core: Core library

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

__version__ = "0.1.0"
