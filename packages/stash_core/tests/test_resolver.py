"""Tests for command-line token classification.

Execution Context:
    Test module - run via pytest

Dependencies:
    - pytest: Test framework
    - stash_core.resolver: Module under test
"""
from __future__ import annotations

from pathlib import Path

import pytest

from stash_core.models import ItemKind, StashEntry, StashItem, TransferMode
from stash_core.resolver import TokenKind, classify_token, classify_tokens

# ---- Fixtures -----------------------------------------------------------------------------------------------


@pytest.fixture
def entries(tmp_path: Path) -> list[StashEntry]:
    """Two entries: 'report' holding draft.md, 'logs' holding app.log."""
    project = tmp_path / "project"
    report = StashEntry.create("report", TransferMode.MOVE, project, [
        StashItem(str(project / "draft.md"), "draft.md", ItemKind.FILE, 5),
    ])
    logs = StashEntry.create("logs", TransferMode.MOVE, project, [
        StashItem(str(project / "app.log"), "app.log", ItemKind.FILE, 5),
        StashItem(str(project / "old" / "app.log"), "app.log~1", ItemKind.FILE, 5),
    ])
    return [report, logs]


# ---- Classification Tests -----------------------------------------------------------------------------------


class TestClassifyToken:
    """Tests for classify_token()."""

    def test_existing_file_is_local_path(self, work_dir: Path, entries: list[StashEntry]) -> None:
        """Test a token naming an existing file is LocalPath."""
        (work_dir / "todo.txt").write_text("x")

        result = classify_token("todo.txt", work_dir, entries)

        assert result.kind is TokenKind.LOCAL_PATH
        assert result.local_path == work_dir / "todo.txt"
        assert not result.is_entry

    def test_broken_symlink_is_local_path(self, work_dir: Path) -> None:
        """Test a dangling symlink still counts as present."""
        (work_dir / "dangling").symlink_to(work_dir / "nowhere")

        assert classify_token("dangling", work_dir, []).kind is TokenKind.LOCAL_PATH

    def test_entry_name(self, work_dir: Path, entries: list[StashEntry]) -> None:
        """Test a token equal to an entry name is EntryName."""
        result = classify_token("report", work_dir, entries)

        assert result.kind is TokenKind.ENTRY_NAME
        assert result.entry_id == entries[0].id

    def test_entry_id(self, work_dir: Path, entries: list[StashEntry]) -> None:
        """Test a full entry id is accepted as an entry name."""
        result = classify_token(entries[1].id, work_dir, entries)

        assert result.kind is TokenKind.ENTRY_NAME
        assert result.entry_id == entries[1].id

    def test_short_id_prefix(self, work_dir: Path, entries: list[StashEntry]) -> None:
        """Test the short id shown in listings identifies its entry."""
        result = classify_token(entries[1].short_id, work_dir, entries)

        assert result.kind is TokenKind.ENTRY_NAME
        assert result.entry_id == entries[1].id

    def test_id_prefix_shorter_than_short_id_ignored(self, work_dir: Path, entries: list[StashEntry]) -> None:
        """Test a too-short id prefix does not match."""
        assert classify_token(entries[1].id[:4], work_dir, entries).kind is TokenKind.UNKNOWN

    def test_member_by_filename(self, work_dir: Path, entries: list[StashEntry]) -> None:
        """Test a stashed file's basename is EntryMember of its entry."""
        result = classify_token("draft.md", work_dir, entries)

        assert result.kind is TokenKind.ENTRY_MEMBER
        assert result.entry_id == entries[0].id

    def test_member_by_absolute_path(self, work_dir: Path, entries: list[StashEntry], tmp_path: Path) -> None:
        """Test an item's full original path matches its entry."""
        token = str(tmp_path / "project" / "old" / "app.log")

        result = classify_token(token, work_dir, entries)

        assert result.kind is TokenKind.ENTRY_MEMBER
        assert result.entry_id == entries[1].id

    def test_stored_name_is_not_matched(self, work_dir: Path, entries: list[StashEntry]) -> None:
        """Test collision-suffixed stored names do not identify members."""
        assert classify_token("app.log~1", work_dir, entries).kind is TokenKind.UNKNOWN

    def test_unknown(self, work_dir: Path, entries: list[StashEntry]) -> None:
        """Test a token matching nothing is Unknown."""
        result = classify_token("nothing-here", work_dir, entries)

        assert result.kind is TokenKind.UNKNOWN
        assert result.entry_id is None
        assert result.local_path is None

    def test_local_and_entry_is_ambiguous(self, work_dir: Path, entries: list[StashEntry]) -> None:
        """Test a local file sharing an entry's name keeps both readings."""
        (work_dir / "report").write_text("local")

        result = classify_token("report", work_dir, entries)

        assert result.kind is TokenKind.LOCAL_PATH
        assert result.entry_kind is TokenKind.ENTRY_NAME
        assert result.is_ambiguous

    def test_member_in_several_entries(self, work_dir: Path, tmp_path: Path) -> None:
        """Test a filename stashed in two entries names neither."""
        first = StashEntry.create("one", TransferMode.MOVE, tmp_path, [
            StashItem(str(tmp_path / "a" / "cfg.ini"), "cfg.ini", ItemKind.FILE),
        ])
        second = StashEntry.create("two", TransferMode.MOVE, tmp_path, [
            StashItem(str(tmp_path / "b" / "cfg.ini"), "cfg.ini", ItemKind.FILE),
        ])

        result = classify_token("cfg.ini", work_dir, [first, second])

        assert result.kind is TokenKind.UNKNOWN
        assert result.entry_id is None
        assert set(result.member_candidates) == {first.id, second.id}


class TestClassifyTokens:
    """Tests for classify_tokens()."""

    def test_preserves_order(self, work_dir: Path, entries: list[StashEntry]) -> None:
        """Test one classification per token in input order."""
        (work_dir / "local.txt").write_text("x")

        results = classify_tokens(["logs", "local.txt", "ghost"], work_dir, entries)

        assert [r.token for r in results] == ["logs", "local.txt", "ghost"]
        assert [r.kind for r in results] == [TokenKind.ENTRY_NAME, TokenKind.LOCAL_PATH, TokenKind.UNKNOWN]

    def test_classification_does_not_touch_filesystem(self, work_dir: Path, entries: list[StashEntry]) -> None:
        """Test classifying leaves the working directory unchanged."""
        (work_dir / "keep.txt").write_text("x")
        before = sorted(work_dir.iterdir())

        classify_tokens(["keep.txt", "report", "ghost"], work_dir, entries)

        assert sorted(work_dir.iterdir()) == before
