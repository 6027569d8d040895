"""Shared test configuration and fixtures for stash_core tests.

Provides:
- Isolated store roots and working directories under ``tmp_path``.
- An opened EntryStore and an Executor bound to the working directory.
- Helpers to create files and to age entries for clean tests.
"""
from __future__ import annotations

from datetime import datetime
from datetime import timedelta
from datetime import timezone
from pathlib import Path
from typing import Callable

import pytest

from stash_core.executor import Executor
from stash_core.models import StashEntry
from stash_core.store import EntryStore


# ---- Directories --------------------------------------------------------------------------------------------


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    """Stash directory, created lazily by EntryStore.open()."""
    return tmp_path / "stash-home"


@pytest.fixture
def work_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Working directory the tests run in."""
    path = tmp_path / "work"
    path.mkdir()
    monkeypatch.chdir(path)
    return path


# ---- Store Fixtures -----------------------------------------------------------------------------------------


@pytest.fixture
def store(store_root: Path) -> EntryStore:
    """Opened entry store, closed after the test."""
    entry_store = EntryStore(store_root, lock_timeout=0.5)
    entry_store.open()
    yield entry_store
    entry_store.close()


@pytest.fixture
def executor(store: EntryStore, work_dir: Path) -> Executor:
    """Executor bound to the test store and working directory."""
    return Executor(store, cwd=work_dir)


# ---- Helpers ------------------------------------------------------------------------------------------------


@pytest.fixture
def make_file(work_dir: Path) -> Callable[..., Path]:
    """Create a file (and parent dirs) relative to the working directory."""

    def _make(relative: str, content: str = "content") -> Path:
        path = work_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    return _make


@pytest.fixture
def backdate(store: EntryStore) -> Callable[[StashEntry, float], StashEntry]:
    """Move an entry's creation time into the past and commit."""

    def _backdate(entry: StashEntry, days: float) -> StashEntry:
        created = datetime.now(timezone.utc) - timedelta(days=days)
        entry.created_at = created.isoformat()
        store.save()
        return entry

    return _backdate
