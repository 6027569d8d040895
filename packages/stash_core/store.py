"""Persistent entry store for Stash.

Owns the stash directory: the index of entries, the per-entry storage
directories, the configuration file, and the exclusive lock that guards
them. All reads and writes of index.json go through EntryStore.

Execution Context:
    Library module - imported by the executor and the CLI

Dependencies:
    - fcntl: Exclusive advisory lock on the index
    - stash_core.models: Data models

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

import fcntl
import json
import logging
import os
import time
from datetime import datetime
from pathlib import Path
from typing import IO
from typing import TYPE_CHECKING
from typing import Any

from stash_core.errors import ErrorKind
from stash_core.errors import StashError
from stash_core.models import StashConfig
from stash_core.models import StashEntry
from stash_core.models import StashItem

if TYPE_CHECKING:
    from stash_core.journal import JournalStore

logger = logging.getLogger(__name__)


# ---- Constants ----------------------------------------------------------------------------------------------


STASH_DIR = ".stash"
CONFIG_FILE = "config.json"
INDEX_FILE = "index.json"
LOCK_FILE = "index.lock"
ENTRIES_DIR = "entries"
JOURNAL_DB = "journal.db"
INDEX_VERSION = 1
LOCK_TIMEOUT = 10.0
STASH_HOME_ENV = "STASH_HOME"


# ---- Entry Store Class --------------------------------------------------------------------------------------


class EntryStore:
    """Handle on a stash directory.

    The handle must be opened (directly or as a context manager) before
    use; opening acquires the exclusive lock and loads the index, closing
    releases the lock. Mutations change the in-memory index only and are
    made durable by save(), which atomically replaces index.json.

    Entries are kept in one map keyed by id, with a secondary map from
    name to id enforcing name uniqueness. Both are updated together.

    Attributes:
        root: Stash directory.
        lock_timeout: Seconds to wait for the lock before giving up.
        config: Loaded store configuration.
    """

    def __init__(
            self,
            root: Path | str,
            lock_timeout: float = LOCK_TIMEOUT,
    ) -> None:
        """Initialize store handle for a stash directory.

        Args:
            root: Stash directory (created on open if missing).
            lock_timeout: Seconds to wait for the index lock.
        """
        self.root = Path(root).expanduser().resolve()
        self.lock_timeout = lock_timeout
        self.config = StashConfig()
        self._entries: dict[str, StashEntry] = {}
        self._names: dict[str, str] = {}
        self._next_sequence = 1
        self._lock_handle: IO[str] | None = None

    # ---- Path Properties ------------------------------------------------------------------------------------

    @property
    def config_path(
            self,
    ) -> Path:
        """Path to config.json."""
        return self.root / CONFIG_FILE

    @property
    def index_path(
            self,
    ) -> Path:
        """Path to index.json."""
        return self.root / INDEX_FILE

    @property
    def lock_path(
            self,
    ) -> Path:
        """Path to the lock file guarding the index."""
        return self.root / LOCK_FILE

    @property
    def entries_dir(
            self,
    ) -> Path:
        """Directory holding one storage directory per entry."""
        return self.root / ENTRIES_DIR

    @property
    def journal_path(
            self,
    ) -> Path:
        """Path to journal.db."""
        return self.root / JOURNAL_DB

    def entry_dir(
            self,
            entry_id: str,
    ) -> Path:
        """Storage directory for one entry."""
        return self.entries_dir / entry_id

    def stored_path(
            self,
            entry: StashEntry,
            item: StashItem,
    ) -> Path:
        """Absolute on-disk location of a stored item."""
        return self.entry_dir(entry.id) / item.stored_path

    def get_journal(
            self,
    ) -> JournalStore:
        """Get the operation journal for this store.

        Returns:
            JournalStore instance.

        Note:
            Caller is responsible for closing the journal when done,
            or use it as a context manager.
        """
        from stash_core.journal import JournalStore
        return JournalStore(self.journal_path)

    # ---- Lifecycle ------------------------------------------------------------------------------------------

    @property
    def is_open(
            self,
    ) -> bool:
        """True while the lock is held."""
        return self._lock_handle is not None

    def open(
            self,
    ) -> EntryStore:
        """Create the directory layout, take the lock, and load state.

        Returns:
            This store.

        Raises:
            StashError: IndexCorrupt if the lock cannot be taken or the
                index/config cannot be parsed.
        """
        if self.is_open:
            return self

        self.entries_dir.mkdir(parents=True, exist_ok=True)
        self._acquire_lock()
        try:
            if self.config_path.exists():
                self.config = StashConfig.load(self.config_path)
            else:
                self.config = StashConfig()
                self.config.save(self.config_path)
            self._load_index()
        except BaseException:
            self._release_lock()
            raise

        logger.debug(f"Opened store at {self.root} with {len(self._entries)} entries")
        return self

    def close(
            self,
    ) -> None:
        """Release the lock. Unsaved mutations are discarded."""
        self._release_lock()

    def __enter__(
            self,
    ) -> EntryStore:
        """Context manager entry."""
        return self.open()

    def __exit__(
            self,
            exc_type: Any,
            exc_val: Any,
            exc_tb: Any,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _acquire_lock(
            self,
    ) -> None:
        """Take an exclusive flock on the lock file, polling until timeout."""
        handle = open(self.lock_path, "a+")
        deadline = time.monotonic() + self.lock_timeout

        while True:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except OSError:
                if time.monotonic() >= deadline:
                    handle.close()
                    msg = f"Stash store at {self.root} is locked by another process"
                    raise StashError(ErrorKind.INDEX_CORRUPT, msg, str(self.lock_path))
                time.sleep(0.05)

        handle.seek(0)
        handle.truncate()
        handle.write(str(os.getpid()))
        handle.flush()
        self._lock_handle = handle

    def _release_lock(
            self,
    ) -> None:
        """Drop the flock and close the lock file."""
        handle = self._lock_handle
        if handle is None:
            return

        self._lock_handle = None
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            handle.close()

    def _require_open(
            self,
    ) -> None:
        if not self.is_open:
            msg = f"Stash store at {self.root} is not open"
            raise RuntimeError(msg)

    # ---- Index Persistence ----------------------------------------------------------------------------------

    def _load_index(
            self,
    ) -> None:
        """Read index.json into the id and name maps.

        Raises:
            StashError: IndexCorrupt if the file cannot be parsed or
                violates the name/id uniqueness invariants.
        """
        self._entries = {}
        self._names = {}
        self._next_sequence = 1

        if not self.index_path.exists():
            return

        try:
            data = json.loads(self.index_path.read_text())
            entries = [StashEntry.from_dict(item) for item in data["entries"]]
            next_sequence = int(data.get("next_sequence", 1))
        except (OSError, ValueError, KeyError, TypeError) as index_error:
            msg = f"Failed to load index from {self.index_path}: {index_error}"
            raise StashError(ErrorKind.INDEX_CORRUPT, msg, str(self.index_path)) from index_error

        for entry in entries:
            if entry.id in self._entries or entry.name in self._names:
                msg = f"Index {self.index_path} contains duplicate entry '{entry.name}' ({entry.id})"
                raise StashError(ErrorKind.INDEX_CORRUPT, msg, str(self.index_path))
            self._entries[entry.id] = entry
            self._names[entry.name] = entry.id

        highest = max((entry.sequence for entry in entries), default=0)
        self._next_sequence = max(next_sequence, highest + 1)

    def save(
            self,
    ) -> None:
        """Atomically write the in-memory index to index.json.

        The index is written to a temporary file, fsynced, and renamed
        over the previous index so readers only ever see a complete file.
        """
        self._require_open()

        data = {
            "version": INDEX_VERSION,
            "next_sequence": self._next_sequence,
            "entries": [entry.to_dict() for entry in self.list_entries()],
        }
        tmp_path = self.index_path.with_name(INDEX_FILE + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as tmp_file:
            tmp_file.write(json.dumps(data, indent=2))
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.replace(tmp_path, self.index_path)

        logger.debug(f"Committed index with {len(self._entries)} entries")

    # ---- Queries --------------------------------------------------------------------------------------------

    def __len__(
            self,
    ) -> int:
        return len(self._entries)

    def list_entries(
            self,
    ) -> list[StashEntry]:
        """All active entries in stack order (oldest first).

        Returns:
            Entries sorted by creation time, then insertion sequence.
        """
        return sorted(self._entries.values(), key=lambda entry: entry.stack_key)

    def get(
            self,
            entry_id: str,
    ) -> StashEntry:
        """Look up an entry by id.

        Raises:
            StashError: NotFound if no entry has this id.
        """
        entry = self._entries.get(entry_id)
        if entry is None:
            raise StashError(ErrorKind.NOT_FOUND, f"No stash entry with id {entry_id}", entry_id)
        return entry

    def find(
            self,
            identifier: str,
    ) -> StashEntry | None:
        """Find an entry by exact id, exact name, or unique id prefix.

        An id prefix must be at least as long as the short id shown in
        listings and match exactly one entry.

        Args:
            identifier: Entry id, name, or id prefix.

        Returns:
            Matching entry or None.
        """
        entry = self._entries.get(identifier)
        if entry is not None:
            return entry

        entry_id = self._names.get(identifier)
        if entry_id:
            return self._entries[entry_id]

        prefixed = [entry for entry in self._entries.values() if entry.has_id_prefix(identifier)]
        return prefixed[0] if len(prefixed) == 1 else None

    def resolve(
            self,
            identifier: str,
    ) -> StashEntry:
        """Find an entry by id or name, failing if absent.

        Raises:
            StashError: NotFound if nothing matches.
        """
        entry = self.find(identifier)
        if entry is None:
            raise StashError(ErrorKind.NOT_FOUND, f"No stash entry named '{identifier}'", identifier)
        return entry

    def has_name(
            self,
            name: str,
    ) -> bool:
        """True if an active entry already uses this name."""
        return name in self._names

    def most_recent(
            self,
    ) -> StashEntry:
        """Entry with the greatest creation time and sequence.

        Raises:
            StashError: NotFound if the store is empty.
        """
        if not self._entries:
            raise StashError(ErrorKind.NOT_FOUND, "No stashed entries found")
        return max(self._entries.values(), key=lambda entry: entry.stack_key)

    def search(
            self,
            pattern: str,
    ) -> list[StashEntry]:
        """Entries whose name, id prefix, or item paths match a pattern.

        Name and path matching is a case-insensitive substring test.

        Args:
            pattern: Search text.

        Returns:
            Matching entries in stack order.
        """
        needle = pattern.lower()
        matches = []
        for entry in self.list_entries():
            if (
                needle in entry.name.lower()
                or entry.id.startswith(needle)
                or any(needle in item.original_path.lower() for item in entry.items)
            ):
                matches.append(entry)
        return matches

    def entries_older_than(
            self,
            cutoff: datetime,
    ) -> list[StashEntry]:
        """Entries created strictly before cutoff, in stack order."""
        return [entry for entry in self.list_entries() if entry.created < cutoff]

    def orphaned_dirs(
            self,
    ) -> list[Path]:
        """Entry directories that no indexed entry refers to.

        These are left behind when a push is interrupted before commit.
        """
        if not self.entries_dir.exists():
            return []
        return sorted(
            path for path in self.entries_dir.iterdir()
            if path.name not in self._entries
        )

    # ---- Mutations ------------------------------------------------------------------------------------------

    def add_entry(
            self,
            entry: StashEntry,
    ) -> StashEntry:
        """Insert a new entry and assign its sequence number.

        Raises:
            StashError: NameConflict if the name is taken.
        """
        self._require_open()
        self.validate_name(entry.name)

        if entry.id in self._entries:
            msg = f"Stash entry id {entry.id} already exists"
            raise StashError(ErrorKind.NAME_CONFLICT, msg, entry.id)
        if entry.name in self._names:
            msg = f"A stash entry named '{entry.name}' already exists"
            raise StashError(ErrorKind.NAME_CONFLICT, msg, entry.name)

        entry.sequence = self._next_sequence
        self._next_sequence += 1
        self._entries[entry.id] = entry
        self._names[entry.name] = entry.id
        return entry

    def remove_entry(
            self,
            entry_id: str,
    ) -> StashEntry:
        """Drop an entry from the index.

        Raises:
            StashError: NotFound if no entry has this id.
        """
        self._require_open()
        entry = self.get(entry_id)
        del self._entries[entry_id]
        del self._names[entry.name]
        return entry

    def rename_entry(
            self,
            entry_id: str,
            new_name: str,
    ) -> StashEntry:
        """Change an entry's name.

        Raises:
            StashError: NameConflict if another entry uses new_name,
                NotFound if no entry has this id.
        """
        self._require_open()
        self.validate_name(new_name)
        entry = self.get(entry_id)

        if new_name == entry.name:
            return entry

        if new_name in self._names:
            msg = f"A stash entry named '{new_name}' already exists"
            raise StashError(ErrorKind.NAME_CONFLICT, msg, new_name)

        del self._names[entry.name]
        entry.name = new_name
        self._names[new_name] = entry_id
        return entry

    def replace_items(
            self,
            entry_id: str,
            items: list[StashItem],
    ) -> StashEntry:
        """Replace an entry's manifest (used when a pop restores only part of it)."""
        self._require_open()
        entry = self.get(entry_id)
        entry.items = list(items)
        return entry

    def validate_name(
            self,
            name: str,
    ) -> None:
        """Reject names that are blank or could act as a path.

        Raises:
            StashError: InvalidTarget for an unusable name.
        """
        if not name or not name.strip():
            raise StashError(ErrorKind.INVALID_TARGET, "Stash entry name cannot be empty")
        if name in (".", "..") or "/" in name or "\0" in name:
            msg = f"Stash entry name {name!r} must not be a path"
            raise StashError(ErrorKind.INVALID_TARGET, msg, name)


# ---- Module Functions ---------------------------------------------------------------------------------------


def default_store_root() -> Path:
    """Stash directory from $STASH_HOME, else ~/.stash."""
    env_root = os.environ.get(STASH_HOME_ENV)
    if env_root:
        return Path(env_root).expanduser()
    return Path.home() / STASH_DIR


def open_store(
        root: Path | str | None = None,
        lock_timeout: float = LOCK_TIMEOUT,
) -> EntryStore:
    """Open (and lock) a stash store.

    Args:
        root: Stash directory (defaults to default_store_root()).
        lock_timeout: Seconds to wait for the index lock.

    Returns:
        Opened EntryStore; close it or use it as a context manager.
    """
    store = EntryStore(root or default_store_root(), lock_timeout=lock_timeout)
    return store.open()
