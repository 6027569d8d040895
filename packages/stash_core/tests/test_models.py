"""Tests for stash data models.

Tests StashItem, StashEntry, and StashConfig serialization and the
derived properties used for stack ordering and display.

Execution Context:
    Test module - run via pytest

Dependencies:
    - pytest: Test framework
    - stash_core.models: Module under test
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from stash_core.errors import ErrorKind, StashError
from stash_core.models import (
    ItemKind,
    StashConfig,
    StashEntry,
    StashItem,
    TransferMode,
)

# ---- Fixtures -----------------------------------------------------------------------------------------------


@pytest.fixture
def sample_item() -> StashItem:
    """Item stashed from /home/user/project/notes.txt."""
    return StashItem(
        original_path="/home/user/project/notes.txt",
        stored_path="notes.txt",
        kind=ItemKind.FILE,
        size=120,
    )


@pytest.fixture
def sample_entry(sample_item: StashItem) -> StashEntry:
    """Entry holding the sample item and a directory."""
    build = StashItem(
        original_path="/home/user/project/build",
        stored_path="build",
        kind=ItemKind.DIR,
        size=2048,
    )
    return StashEntry.create("notes.txt", TransferMode.MOVE, "/home/user/project", [sample_item, build])


# ---- StashItem Tests ----------------------------------------------------------------------------------------


class TestStashItem:
    """Tests for StashItem dataclass."""

    def test_original_name(self, sample_item: StashItem) -> None:
        """Test original_name is the basename of the original path."""
        assert sample_item.original_name == "notes.txt"

    def test_to_dict_stores_kind_value(self, sample_item: StashItem) -> None:
        """Test to_dict() serializes the kind as its string value."""
        data = sample_item.to_dict()

        assert data["kind"] == "file"
        assert data["size"] == 120
        json.dumps(data)

    def test_from_dict_defaults_size(self) -> None:
        """Test from_dict() tolerates a missing size."""
        item = StashItem.from_dict({
            "original_path": "/tmp/link",
            "stored_path": "link",
            "kind": "symlink",
        })

        assert item.kind is ItemKind.SYMLINK
        assert item.size == 0


# ---- StashEntry Tests ---------------------------------------------------------------------------------------


class TestStashEntry:
    """Tests for StashEntry dataclass."""

    def test_create_assigns_uuid_and_utc_timestamp(self, sample_entry: StashEntry) -> None:
        """Test create() fills in id and an aware creation time."""
        assert len(sample_entry.id) == 36
        assert sample_entry.created.tzinfo is not None
        assert sample_entry.sequence == 0

    def test_derived_properties(self, sample_entry: StashEntry) -> None:
        """Test total_size, item_count, and short_id."""
        assert sample_entry.total_size == 2168
        assert sample_entry.item_count == 2
        assert sample_entry.short_id == sample_entry.id[:8]

    def test_has_id_prefix(self, sample_entry: StashEntry) -> None:
        """Test id prefixes shorter than the short id never match."""
        assert sample_entry.has_id_prefix(sample_entry.short_id)
        assert sample_entry.has_id_prefix(sample_entry.id)
        assert not sample_entry.has_id_prefix(sample_entry.id[:7])
        assert not sample_entry.has_id_prefix("zzzzzzzz")

    def test_stack_key_breaks_timestamp_ties_by_sequence(self) -> None:
        """Test entries with equal timestamps order by sequence."""
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc).isoformat()
        first = StashEntry(id="a", name="first", created_at=stamp, sequence=1)
        second = StashEntry(id="b", name="second", created_at=stamp, sequence=2)

        assert sorted([second, first], key=lambda e: e.stack_key) == [first, second]

    def test_naive_timestamp_treated_as_utc(self) -> None:
        """Test created treats a timestamp without offset as UTC."""
        entry = StashEntry(id="a", name="a", created_at="2024-01-01T12:00:00")

        assert entry.created == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_dict_round_trip(self, sample_entry: StashEntry) -> None:
        """Test from_dict(to_dict()) reproduces the entry."""
        sample_entry.sequence = 7
        restored = StashEntry.from_dict(json.loads(json.dumps(sample_entry.to_dict())))

        assert restored == sample_entry
        assert restored.transfer_mode is TransferMode.MOVE
        assert restored.items[1].kind is ItemKind.DIR


# ---- StashConfig Tests --------------------------------------------------------------------------------------


class TestStashConfig:
    """Tests for StashConfig dataclass."""

    def test_defaults(self) -> None:
        """Test default configuration values."""
        config = StashConfig()

        assert config.version == "1.0"
        assert config.clean_days == 30
        assert config.warn_size_mb == 100

    def test_save_and_load(self, tmp_path: Path) -> None:
        """Test saving then loading preserves values."""
        config_path = tmp_path / "config.json"
        StashConfig(clean_days=7, date_format="%d/%m/%Y").save(config_path)

        loaded = StashConfig.load(config_path)

        assert loaded.clean_days == 7
        assert loaded.date_format == "%d/%m/%Y"
        assert loaded.warn_size_mb == 100

    def test_load_invalid_json_raises_index_corrupt(self, tmp_path: Path) -> None:
        """Test an unparseable config reports IndexCorrupt."""
        config_path = tmp_path / "config.json"
        config_path.write_text("{not json")

        with pytest.raises(StashError) as exc_info:
            StashConfig.load(config_path)

        assert exc_info.value.kind is ErrorKind.INDEX_CORRUPT
        assert exc_info.value.target == str(config_path)
