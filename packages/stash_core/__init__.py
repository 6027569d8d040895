"""Stash Core Library.

Provides the building blocks of the stash tool: token classification,
intent resolution, the persistent entry store, and the executor that
moves content in and out of it.

Execution Context:
    Library package - imported by the CLI and tests

Dependencies:
    - stdlib only (fcntl, sqlite3, tarfile)

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

from stash_core.errors import ErrorKind
from stash_core.errors import StashError
from stash_core.executor import Executor
from stash_core.models import StashConfig
from stash_core.models import StashEntry
from stash_core.models import StashItem
from stash_core.models import TransferMode
from stash_core.store import EntryStore
from stash_core.store import open_store

__version__ = "0.1.0"

__all__ = [
    "EntryStore",
    "ErrorKind",
    "Executor",
    "StashConfig",
    "StashEntry",
    "StashError",
    "StashItem",
    "TransferMode",
    "__version__",
    "open_store",
]
