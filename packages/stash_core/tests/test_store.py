"""Tests for the persistent entry store.

Tests directory layout, index persistence, name/id uniqueness, stack
ordering, lookups, and the exclusive index lock.

Execution Context:
    Test module - run via pytest

Dependencies:
    - pytest: Test framework
    - stash_core.store: Module under test
"""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from stash_core.errors import ErrorKind, StashError
from stash_core.models import ItemKind, StashEntry, StashItem, TransferMode
from stash_core.store import (
    EntryStore,
    STASH_HOME_ENV,
    default_store_root,
    open_store,
)

# ---- Helpers ------------------------------------------------------------------------------------------------


def _entry(name: str, *paths: str, created_at: str | None = None) -> StashEntry:
    """Build an unsaved entry holding file items."""
    items = [
        StashItem(original_path=path, stored_path=Path(path).name, kind=ItemKind.FILE, size=10)
        for path in paths
    ]
    entry = StashEntry.create(name, TransferMode.MOVE, "/work", items)
    if created_at:
        entry.created_at = created_at
    return entry


# ---- Lifecycle Tests ----------------------------------------------------------------------------------------


class TestStoreLifecycle:
    """Tests for opening, layout, and locking."""

    def test_open_creates_layout(self, store: EntryStore, store_root: Path) -> None:
        """Test open() creates the entries dir, config, and lock file."""
        assert store.is_open
        assert (store_root / "entries").is_dir()
        assert (store_root / "config.json").exists()
        assert (store_root / "index.lock").exists()
        assert len(store) == 0

    def test_context_manager_releases_lock(self, store_root: Path) -> None:
        """Test leaving the with-block releases the lock for the next handle."""
        with EntryStore(store_root) as first:
            assert first.is_open
        assert not first.is_open

        with EntryStore(store_root, lock_timeout=0.2) as second:
            assert second.is_open

    def test_second_handle_times_out_while_locked(self, store: EntryStore, store_root: Path) -> None:
        """Test a concurrent handle fails with IndexCorrupt after the timeout."""
        contender = EntryStore(store_root, lock_timeout=0.2)

        with pytest.raises(StashError) as exc_info:
            contender.open()

        assert exc_info.value.kind is ErrorKind.INDEX_CORRUPT
        assert "locked" in str(exc_info.value)
        assert not contender.is_open

    def test_mutation_requires_open_store(self, store_root: Path) -> None:
        """Test mutating an unopened handle is a programming error."""
        closed = EntryStore(store_root)

        with pytest.raises(RuntimeError):
            closed.add_entry(_entry("x", "/work/x"))

    def test_open_store_uses_env_root(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test open_store() defaults to $STASH_HOME."""
        monkeypatch.setenv(STASH_HOME_ENV, str(tmp_path / "env-home"))

        assert default_store_root() == tmp_path / "env-home"
        with open_store() as opened:
            assert opened.root == (tmp_path / "env-home").resolve()


# ---- Persistence Tests --------------------------------------------------------------------------------------


class TestIndexPersistence:
    """Tests for index.json reads and writes."""

    def test_save_and_reopen(self, store: EntryStore, store_root: Path) -> None:
        """Test committed entries survive a reopen with their sequence."""
        entry = store.add_entry(_entry("notes", "/work/notes.txt"))
        store.save()
        store.close()

        with EntryStore(store_root) as reopened:
            loaded = reopened.get(entry.id)

            assert loaded.name == "notes"
            assert loaded.sequence == entry.sequence
            assert loaded.items[0].original_path == "/work/notes.txt"

    def test_save_leaves_no_temp_file(self, store: EntryStore, store_root: Path) -> None:
        """Test save() replaces index.json atomically."""
        store.add_entry(_entry("notes", "/work/notes.txt"))
        store.save()

        data = json.loads((store_root / "index.json").read_text())
        assert data["version"] == 1
        assert data["next_sequence"] == 2
        assert not (store_root / "index.json.tmp").exists()

    def test_unsaved_changes_are_discarded(self, store: EntryStore, store_root: Path) -> None:
        """Test mutations without save() do not reach disk."""
        store.add_entry(_entry("notes", "/work/notes.txt"))
        store.close()

        with EntryStore(store_root) as reopened:
            assert len(reopened) == 0

    def test_corrupt_index_raises(self, store_root: Path) -> None:
        """Test an unparseable index reports IndexCorrupt and releases the lock."""
        store_root.mkdir(parents=True)
        (store_root / "index.json").write_text("[1, 2")
        broken = EntryStore(store_root)

        with pytest.raises(StashError) as exc_info:
            broken.open()

        assert exc_info.value.kind is ErrorKind.INDEX_CORRUPT
        assert not broken.is_open

    def test_duplicate_names_in_index_raise(self, store_root: Path) -> None:
        """Test an index violating name uniqueness is rejected."""
        store_root.mkdir(parents=True)
        first = _entry("dup", "/work/a")
        second = _entry("dup", "/work/b")
        (store_root / "index.json").write_text(json.dumps({
            "version": 1,
            "next_sequence": 1,
            "entries": [first.to_dict(), second.to_dict()],
        }))

        with pytest.raises(StashError) as exc_info:
            EntryStore(store_root).open()

        assert exc_info.value.kind is ErrorKind.INDEX_CORRUPT

    def test_next_sequence_never_reuses(self, store_root: Path) -> None:
        """Test a stale next_sequence is raised above stored sequences."""
        store_root.mkdir(parents=True)
        entry = _entry("a", "/work/a")
        entry.sequence = 9
        (store_root / "index.json").write_text(json.dumps({
            "version": 1,
            "next_sequence": 3,
            "entries": [entry.to_dict()],
        }))

        with EntryStore(store_root) as opened:
            added = opened.add_entry(_entry("b", "/work/b"))

        assert added.sequence == 10


# ---- Uniqueness and Ordering Tests --------------------------------------------------------------------------


class TestEntryMutations:
    """Tests for add, rename, and remove."""

    def test_add_assigns_increasing_sequence(self, store: EntryStore) -> None:
        """Test each insert takes the next sequence number."""
        first = store.add_entry(_entry("a", "/work/a"))
        second = store.add_entry(_entry("b", "/work/b"))

        assert second.sequence == first.sequence + 1

    def test_add_duplicate_name_conflicts(self, store: EntryStore) -> None:
        """Test a second entry with the same name raises NameConflict."""
        store.add_entry(_entry("same", "/work/a"))

        with pytest.raises(StashError) as exc_info:
            store.add_entry(_entry("same", "/work/b"))

        assert exc_info.value.kind is ErrorKind.NAME_CONFLICT
        assert len(store) == 1

    def test_add_empty_name_rejected(self, store: EntryStore) -> None:
        """Test blank names are invalid targets."""
        with pytest.raises(StashError) as exc_info:
            store.add_entry(_entry("  ", "/work/a"))

        assert exc_info.value.kind is ErrorKind.INVALID_TARGET

    @pytest.mark.parametrize("name", ["../escape", "a/b", ".", "..", "bad\0name"])
    def test_path_like_names_rejected(self, store: EntryStore, name: str) -> None:
        """Test names that could act as paths are invalid for add and rename."""
        with pytest.raises(StashError) as exc_info:
            store.add_entry(_entry(name, "/work/a"))
        assert exc_info.value.kind is ErrorKind.INVALID_TARGET

        entry = store.add_entry(_entry("fine", "/work/a"))
        with pytest.raises(StashError):
            store.rename_entry(entry.id, name)
        assert entry.name == "fine"

    def test_rename_updates_lookup(self, store: EntryStore) -> None:
        """Test rename frees the old name and claims the new one."""
        entry = store.add_entry(_entry("old", "/work/a"))

        store.rename_entry(entry.id, "new")

        assert store.find("new") is entry
        assert store.find("old") is None
        assert not store.has_name("old")

    def test_rename_to_existing_name_conflicts(self, store: EntryStore) -> None:
        """Test renaming onto another entry's name raises NameConflict."""
        first = store.add_entry(_entry("first", "/work/a"))
        store.add_entry(_entry("second", "/work/b"))

        with pytest.raises(StashError) as exc_info:
            store.rename_entry(first.id, "second")

        assert exc_info.value.kind is ErrorKind.NAME_CONFLICT
        assert first.name == "first"

    def test_rename_to_same_name_is_noop(self, store: EntryStore) -> None:
        """Test renaming an entry to its own name succeeds."""
        entry = store.add_entry(_entry("same", "/work/a"))

        assert store.rename_entry(entry.id, "same").name == "same"

    def test_remove_unknown_id_not_found(self, store: EntryStore) -> None:
        """Test removing a missing id raises NotFound."""
        with pytest.raises(StashError) as exc_info:
            store.remove_entry("missing")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND


class TestEntryQueries:
    """Tests for ordering, lookup, and search."""

    def test_list_entries_in_creation_order(self, store: EntryStore) -> None:
        """Test stack order follows created_at, oldest first."""
        newer = store.add_entry(_entry("newer", "/work/a", created_at="2024-03-01T00:00:00+00:00"))
        older = store.add_entry(_entry("older", "/work/b", created_at="2024-01-01T00:00:00+00:00"))

        assert store.list_entries() == [older, newer]
        assert store.most_recent() is newer

    def test_most_recent_tie_uses_sequence(self, store: EntryStore) -> None:
        """Test identical timestamps pick the later insertion."""
        stamp = "2024-01-01T00:00:00+00:00"
        store.add_entry(_entry("first", "/work/a", created_at=stamp))
        second = store.add_entry(_entry("second", "/work/b", created_at=stamp))

        assert store.most_recent() is second

    def test_most_recent_on_empty_store(self, store: EntryStore) -> None:
        """Test an empty store reports NotFound."""
        with pytest.raises(StashError) as exc_info:
            store.most_recent()

        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_find_by_id_or_name(self, store: EntryStore) -> None:
        """Test find() accepts either identifier."""
        entry = store.add_entry(_entry("notes", "/work/notes.txt"))

        assert store.find(entry.id) is entry
        assert store.find("notes") is entry
        assert store.find("nothing") is None

    def test_find_by_unique_id_prefix(self, store: EntryStore) -> None:
        """Test find() accepts a unique id prefix but not an ambiguous one."""
        first = _entry("first", "/work/a.txt")
        first.id = "abcdef01-1000-4000-8000-000000000000"
        second = _entry("second", "/work/b.txt")
        second.id = "abcdef01-2000-4000-8000-000000000000"
        store.add_entry(first)
        store.add_entry(second)

        assert store.find("abcdef01-1") is first
        assert store.find("abcdef01-2") is second
        assert store.find("abcdef01") is None

    def test_resolve_by_short_id(self, store: EntryStore) -> None:
        """Test resolve() accepts the short id shown in listings."""
        entry = store.add_entry(_entry("notes", "/work/notes.txt"))

        assert store.resolve(entry.short_id) is entry

    def test_resolve_missing_not_found(self, store: EntryStore) -> None:
        """Test resolve() raises NotFound naming the identifier."""
        with pytest.raises(StashError) as exc_info:
            store.resolve("ghost")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.target == "ghost"

    def test_search_matches_name_id_and_path(self, store: EntryStore) -> None:
        """Test search() covers names, id prefixes, and item paths."""
        report = store.add_entry(_entry("Quarterly-Report", "/work/report.pdf"))
        photos = store.add_entry(_entry("photos", "/home/me/Pictures/cat.jpg"))

        assert store.search("quarterly") == [report]
        assert store.search(photos.id[:6]) == [photos]
        assert store.search("pictures") == [photos]
        assert store.search("zzz") == []

    def test_entries_older_than(self, store: EntryStore) -> None:
        """Test the cutoff is exclusive of newer entries."""
        old = store.add_entry(_entry("old", "/work/a", created_at="2024-01-01T00:00:00+00:00"))
        store.add_entry(_entry("new", "/work/b", created_at="2024-06-01T00:00:00+00:00"))

        cutoff = StashEntry(id="x", name="x", created_at="2024-03-01T00:00:00+00:00").created

        assert store.entries_older_than(cutoff) == [old]

    def test_orphaned_dirs(self, store: EntryStore) -> None:
        """Test directories without an index entry are reported."""
        entry = store.add_entry(_entry("kept", "/work/a"))
        store.entry_dir(entry.id).mkdir()
        (store.entries_dir / "leftover").mkdir()

        assert [path.name for path in store.orphaned_dirs()] == ["leftover"]
