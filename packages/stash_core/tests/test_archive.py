"""Tests for tar export.

Execution Context:
    Test module - run via pytest

Dependencies:
    - pytest: Test framework
    - stash_core.archive: Module under test
"""
from __future__ import annotations

import json
import tarfile
from pathlib import Path

import pytest

from stash_core.archive import MANIFEST_NAME, _compression_mode, write_archive
from stash_core.models import ItemKind, StashEntry, StashItem, TransferMode

# ---- Fixtures -----------------------------------------------------------------------------------------------


@pytest.fixture
def stored_entry(tmp_path: Path) -> tuple[StashEntry, Path]:
    """Entry with one file and one directory already in storage."""
    entry_dir = tmp_path / "entries" / "e1"
    (entry_dir / "site").mkdir(parents=True)
    (entry_dir / "notes.txt").write_text("hello")
    (entry_dir / "site" / "index.html").write_text("<html></html>")

    entry = StashEntry.create("work", TransferMode.MOVE, "/project", [
        StashItem("/project/notes.txt", "notes.txt", ItemKind.FILE, 5),
        StashItem("/project/site", "site", ItemKind.DIR, 13),
    ])
    return entry, entry_dir


# ---- Archive Tests ------------------------------------------------------------------------------------------


class TestWriteArchive:
    """Tests for write_archive()."""

    def test_members_and_manifest(self, tmp_path: Path, stored_entry: tuple[StashEntry, Path]) -> None:
        """Test items are stored under the entry name with a manifest."""
        entry, entry_dir = stored_entry
        output = tmp_path / "out" / "export.tar"

        count = write_archive([entry], [entry_dir], output)

        assert count == 2
        with tarfile.open(output) as archive:
            names = set(archive.getnames())
            manifest = json.load(archive.extractfile(f"work/{MANIFEST_NAME}"))
        assert {"work/notes.txt", "work/site", "work/site/index.html", "work/manifest.json"} <= names
        assert manifest["id"] == entry.id
        assert manifest["items"][1]["stored_path"] == "site"

    @pytest.mark.parametrize(
        ("filename", "mode"),
        [
            ("export.tar", "w"),
            ("export.tar.gz", "w:gz"),
            ("export.tgz", "w:gz"),
            ("export.tar.bz2", "w:bz2"),
            ("export.tar.xz", "w:xz"),
        ],
    )
    def test_compression_from_suffix(self, filename: str, mode: str) -> None:
        """Test the output suffix selects the compression."""
        assert _compression_mode(Path(filename)) == mode
