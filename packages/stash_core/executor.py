"""Operation executor for Stash.

Carries out resolved operations: moves, copies, or links content between
the working tree and the entry store, and commits the matching index
change. Push and pop roll back partially applied transfers before
surfacing a failure; dump and clean keep going past individual failures
and report per-entry outcomes.

Execution Context:
    Library module - imported by the CLI

Dependencies:
    - stash_core.store: Entry store handle
    - stash_core.transfer: Filesystem primitives
    - stash_core.archive: Tar export

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

import logging
import os
import sqlite3
import tarfile
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from enum import Enum
from pathlib import Path
from typing import Any
from typing import Callable
from typing import Sequence

from stash_core.archive import write_archive
from stash_core.errors import ErrorKind
from stash_core.errors import StashError
from stash_core.models import StashEntry
from stash_core.models import StashItem
from stash_core.models import TransferMode
from stash_core.store import EntryStore
from stash_core.transfer import copy_path
from stash_core.transfer import is_link_to
from stash_core.transfer import item_kind
from stash_core.transfer import link_path
from stash_core.transfer import move_path
from stash_core.transfer import path_exists
from stash_core.transfer import path_size
from stash_core.transfer import remove_path

logger = logging.getLogger(__name__)


# ---- Result Types -------------------------------------------------------------------------------------------


class BatchStatus(str, Enum):
    """Overall outcome of a batch operation."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


@dataclass
class ItemOutcome:
    """Result of restoring one item."""

    item: StashItem
    destination: Path
    error: StashError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RestoreResult:
    """Result of a pop or peek.

    Attributes:
        entry: Entry as it was before the operation.
        outcomes: One outcome per manifest item.
        copied: True if stored items were left in place.
        deleted: True if the entry was removed from the store.
    """

    entry: StashEntry
    outcomes: list[ItemOutcome]
    copied: bool
    deleted: bool = False

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def restored(self) -> list[ItemOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> list[ItemOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]


@dataclass
class EntryOutcome:
    """Result of one entry within a batch."""

    name: str
    entry_id: str
    error: StashError | None = None
    detail: RestoreResult | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and (self.detail is None or self.detail.ok)


@dataclass
class BatchResult:
    """Per-entry outcomes of clean or dump."""

    operation: str
    outcomes: list[EntryOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[EntryOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> list[EntryOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def status(self) -> BatchStatus:
        """SUCCESS if nothing failed, FAILURE if nothing succeeded, else PARTIAL."""
        if not self.failed:
            return BatchStatus.SUCCESS
        if not self.succeeded:
            return BatchStatus.FAILURE
        return BatchStatus.PARTIAL


@dataclass
class ExportResult:
    """Result of a tar export."""

    output_path: Path
    entries: list[StashEntry]
    item_count: int


# ---- Executor Class -----------------------------------------------------------------------------------------


class Executor:
    """Performs stash operations against an open store.

    Attributes:
        store: Opened EntryStore.
        cwd: Working directory for relative paths and default restore target.
    """

    def __init__(
            self,
            store: EntryStore,
            cwd: Path | str | None = None,
            now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            store: Opened EntryStore.
            cwd: Working directory (defaults to the process cwd).
            now: Clock returning an aware datetime, for age calculations.
        """
        self.store = store
        self.cwd = Path(os.path.abspath(cwd or Path.cwd()))
        self._now = now or (lambda: datetime.now(timezone.utc))

    # ---- Push -----------------------------------------------------------------------------------------------

    def push(
            self,
            paths: Sequence[Path | str],
            name: str | None = None,
            mode: TransferMode = TransferMode.MOVE,
    ) -> StashEntry:
        """Store local paths as one new entry.

        Args:
            paths: Paths to stash, relative to cwd or absolute.
            name: Entry name (defaults to the first path's filename).
            mode: Move (default), copy, or link.

        Returns:
            The committed entry.

        Raises:
            StashError: InvalidTarget for missing paths, paths inside the
                store or an unusable name, NameConflict if the name is
                taken, TransferFailed if a transfer fails (after rolling
                back the ones already done).
        """
        sources = self._push_sources(paths)
        entry_name = name if name is not None else sources[0].name
        self.store.validate_name(entry_name)

        if self.store.has_name(entry_name):
            msg = f"A stash entry named '{entry_name}' already exists"
            raise StashError(ErrorKind.NAME_CONFLICT, msg, entry_name)

        entry = StashEntry.create(entry_name, mode, self.cwd)
        entry_dir = self.store.entry_dir(entry.id)
        entry_dir.mkdir(parents=True)

        done: list[tuple[Path, StashItem]] = []
        used_names: set[str] = set()
        current = sources[0]
        try:
            for source in sources:
                current = source
                item = StashItem(
                    original_path=str(source),
                    stored_path=self._stored_name(source.name, used_names),
                    kind=item_kind(source),
                    size=path_size(source),
                )
                self._store_item(source, entry_dir / item.stored_path, mode)
                done.append((source, item))

            entry.items = [item for _source, item in done]
            current = self.store.index_path
            self.store.add_entry(entry)
            try:
                self.store.save()
            except OSError:
                self.store.remove_entry(entry.id)
                raise
        except StashError:
            self._rollback_push(entry_dir, done, mode)
            raise
        except OSError as push_error:
            self._rollback_push(entry_dir, done, mode)
            msg = f"Failed to stash {current}: {push_error}"
            raise StashError(ErrorKind.TRANSFER_FAILED, msg, str(current)) from push_error

        logger.debug(f"Pushed {entry.item_count} item(s) as '{entry.name}' ({entry.id})")
        limit = self.store.config.warn_size_mb * 1024 * 1024
        if limit and entry.total_size > limit:
            logger.warning(
                f"Entry '{entry.name}' is {entry.total_size // (1024 * 1024)} MB, "
                f"above the {self.store.config.warn_size_mb} MB warning size"
            )

        self._journal(
            "push",
            f"Pushed {entry.item_count} item(s) ({mode.value})",
            entry,
            {"mode": mode.value, "items": [item.original_path for item in entry.items]},
        )
        return entry

    def _push_sources(
            self,
            paths: Sequence[Path | str],
    ) -> list[Path]:
        if not paths:
            raise StashError(ErrorKind.INVALID_TARGET, "Nothing to push")

        sources: list[Path] = []
        for raw in paths:
            source = Path(os.path.abspath(self.cwd / Path(raw).expanduser()))
            if not path_exists(source):
                raise StashError(ErrorKind.INVALID_TARGET, f"Path does not exist: {raw}", str(raw))
            root = self.store.root
            real = Path(os.path.realpath(source))
            if real == root or root in real.parents or real in root.parents:
                msg = f"Cannot stash {source}: it overlaps the stash directory {root}"
                raise StashError(ErrorKind.INVALID_TARGET, msg, str(source))
            if source not in sources:
                sources.append(source)
        return sources

    @staticmethod
    def _stored_name(
            name: str,
            used: set[str],
    ) -> str:
        """Basename, suffixed ~1, ~2, ... if already used within the entry."""
        candidate = name
        counter = 1
        while candidate in used:
            candidate = f"{name}~{counter}"
            counter += 1
        used.add(candidate)
        return candidate

    @staticmethod
    def _store_item(
            source: Path,
            dest: Path,
            mode: TransferMode,
    ) -> None:
        if mode is TransferMode.COPY:
            copy_path(source, dest)
            return

        move_path(source, dest)
        if mode is TransferMode.LINK:
            try:
                link_path(dest, source)
            except OSError:
                move_path(dest, source)
                raise

    def _rollback_push(
            self,
            entry_dir: Path,
            done: list[tuple[Path, StashItem]],
            mode: TransferMode,
    ) -> None:
        """Put already-stashed items back; keep the entry dir if any could not be."""
        clean = True
        for source, item in reversed(done):
            stored = entry_dir / item.stored_path
            if mode is TransferMode.COPY:
                continue
            try:
                if mode is TransferMode.LINK and is_link_to(source, stored):
                    remove_path(source)
                move_path(stored, source)
                logger.debug(f"Rolled back {source}")
            except OSError as rollback_error:
                clean = False
                logger.warning(f"Rollback could not restore {source} from {stored}: {rollback_error}")

        if clean:
            if entry_dir.exists():
                remove_path(entry_dir)
        else:
            logger.warning(f"Unrestored items were left in {entry_dir}")

    # ---- Pop and Peek ---------------------------------------------------------------------------------------

    def pop(
            self,
            entry_id: str | None = None,
            copy: bool = False,
            force: bool = False,
            restore: bool = False,
    ) -> RestoreResult:
        """Restore an entry's items.

        Items go to the current directory under their stored names, or to
        their original paths with restore. An occupied destination fails
        that item with DestinationExists (unless force) while the other
        items continue. Without copy, restored items leave the store and
        the entry is deleted once every item has been restored. An entry
        pushed in copy mode is always restored by copying and never deleted.

        Args:
            entry_id: Entry to restore (defaults to the most recent).
            copy: Leave the stored copies in place (implied for copy-mode entries).
            force: Overwrite occupied destinations.
            restore: Restore to original paths instead of cwd.

        Returns:
            RestoreResult with one outcome per item.

        Raises:
            StashError: NotFound if there is no such entry, TransferFailed
                if a transfer or the index commit fails (after rolling back
                restored items).
        """
        entry = self._target(entry_id)
        keep = copy or entry.transfer_mode is TransferMode.COPY
        outcomes = self._restore(entry, copy=keep, force=force, restore=restore)
        result = RestoreResult(entry=entry, outcomes=outcomes, copied=keep)

        if not keep and result.restored:
            items = list(entry.items)
            remaining = [outcome.item for outcome in result.failed]
            try:
                if remaining:
                    self.store.replace_items(entry.id, remaining)
                    self._save(entry)
                else:
                    self._discard(entry)
                    result.deleted = True
            except StashError:
                if self.store.find(entry.id) is not None:
                    self.store.replace_items(entry.id, items)
                    self._rollback_restore(entry, result.restored, keep)
                raise

        self._journal(
            "pop",
            f"Restored {len(result.restored)}/{len(outcomes)} item(s)"
            + (" (copy)" if keep else "")
            + (" and deleted entry" if result.deleted else ""),
            entry,
            {"copy": copy, "force": force, "restore": restore, "failed": [str(o.destination) for o in result.failed]},
        )
        return result

    def peek(
            self,
            entry_id: str | None = None,
            force: bool = False,
    ) -> RestoreResult:
        """Copy an entry's items to the current directory, leaving the entry intact."""
        entry = self._target(entry_id)
        outcomes = self._restore(entry, copy=True, force=force, restore=False)
        result = RestoreResult(entry=entry, outcomes=outcomes, copied=True)

        self._journal(
            "peek",
            f"Copied out {len(result.restored)}/{len(outcomes)} item(s)",
            entry,
            {"force": force, "failed": [str(o.destination) for o in result.failed]},
        )
        return result

    def _target(
            self,
            entry_id: str | None,
    ) -> StashEntry:
        if entry_id is None:
            return self.store.most_recent()
        return self.store.get(entry_id)

    def _destination(
            self,
            item: StashItem,
            restore: bool,
    ) -> Path:
        if restore:
            return Path(item.original_path)
        return self.cwd / item.stored_path

    def _restore(
            self,
            entry: StashEntry,
            copy: bool,
            force: bool,
            restore: bool,
    ) -> list[ItemOutcome]:
        outcomes: list[ItemOutcome] = []
        restored: list[ItemOutcome] = []

        for item in entry.items:
            stored = self.store.stored_path(entry, item)
            dest = self._destination(item, restore)

            try:
                if path_exists(dest):
                    if is_link_to(dest, stored):
                        remove_path(dest)
                    elif force:
                        logger.debug(f"Overwriting {dest}")
                        remove_path(dest)
                    else:
                        msg = f"Destination {dest} already exists; use --force to overwrite"
                        error = StashError(ErrorKind.DESTINATION_EXISTS, msg, str(dest))
                        outcomes.append(ItemOutcome(item, dest, error))
                        continue

                if copy:
                    copy_path(stored, dest)
                else:
                    move_path(stored, dest)
            except OSError as restore_error:
                self._rollback_restore(entry, restored, copy)
                msg = f"Failed to restore {item.stored_path} from '{entry.name}' to {dest}: {restore_error}"
                raise StashError(ErrorKind.TRANSFER_FAILED, msg, str(dest)) from restore_error

            outcome = ItemOutcome(item, dest)
            outcomes.append(outcome)
            restored.append(outcome)

        return outcomes

    def _rollback_restore(
            self,
            entry: StashEntry,
            restored: list[ItemOutcome],
            copy: bool,
    ) -> None:
        for outcome in reversed(restored):
            stored = self.store.stored_path(entry, outcome.item)
            try:
                if copy:
                    remove_path(outcome.destination)
                else:
                    move_path(outcome.destination, stored)
                logger.debug(f"Rolled back {outcome.destination}")
            except OSError as rollback_error:
                logger.warning(f"Rollback could not return {outcome.destination} to the stash: {rollback_error}")

    # ---- Delete, Rename, Clean ------------------------------------------------------------------------------

    def delete(
            self,
            entry_id: str,
    ) -> StashEntry:
        """Permanently remove an entry and its stored items.

        Raises:
            StashError: NotFound if there is no such entry.
        """
        entry = self.store.get(entry_id)
        if entry.transfer_mode is TransferMode.LINK:
            logger.warning(f"Deleting linked entry '{entry.name}'; symlinks to its items will dangle")
        self._discard(entry)
        self._journal("delete", f"Deleted entry with {entry.item_count} item(s)", entry)
        return entry

    def _discard(
            self,
            entry: StashEntry,
    ) -> None:
        """Drop an entry from the index, commit, then remove its directory.

        Raises:
            StashError: TransferFailed if the index cannot be written (the
                entry stays indexed) or the directory cannot be removed.
        """
        sequence = entry.sequence
        self.store.remove_entry(entry.id)
        try:
            self.store.save()
        except OSError as save_error:
            self.store.add_entry(entry)
            entry.sequence = sequence
            msg = f"Failed to remove '{entry.name}' from the index: {save_error}"
            raise StashError(ErrorKind.TRANSFER_FAILED, msg, entry.name) from save_error

        entry_dir = self.store.entry_dir(entry.id)
        try:
            if path_exists(entry_dir):
                remove_path(entry_dir)
        except OSError as remove_error:
            msg = f"Removed '{entry.name}' from the index but could not delete {entry_dir}: {remove_error}"
            raise StashError(ErrorKind.TRANSFER_FAILED, msg, entry.name) from remove_error

    def _save(
            self,
            entry: StashEntry,
    ) -> None:
        """Commit the index after changing entry."""
        try:
            self.store.save()
        except OSError as save_error:
            msg = f"Failed to write the index after updating '{entry.name}': {save_error}"
            raise StashError(ErrorKind.TRANSFER_FAILED, msg, entry.name) from save_error

    def rename(
            self,
            old: str,
            new: str,
    ) -> StashEntry:
        """Rename an entry identified by name or id.

        Raises:
            StashError: NotFound if old matches nothing, NameConflict if
                new is already used by another entry.
        """
        entry = self.store.resolve(old)
        old_name = entry.name
        self.store.rename_entry(entry.id, new)
        try:
            self._save(entry)
        except StashError:
            self.store.rename_entry(entry.id, old_name)
            raise
        self._journal("rename", f"Renamed '{old_name}' to '{new}'", entry, {"old": old_name, "new": new})
        return entry

    def clean(
            self,
            max_age_days: int,
    ) -> BatchResult:
        """Delete every entry created more than max_age_days ago.

        Args:
            max_age_days: Age cutoff in days.

        Returns:
            BatchResult naming each entry deleted or failed.
        """
        if max_age_days < 0:
            raise StashError(ErrorKind.INVALID_TARGET, f"Invalid age for clean: {max_age_days} days")

        cutoff = self._now() - timedelta(days=max_age_days)
        result = BatchResult("clean")

        for entry in self.store.entries_older_than(cutoff):
            try:
                self._discard(entry)
                result.outcomes.append(EntryOutcome(entry.name, entry.id))
            except StashError as clean_error:
                logger.debug(f"Clean of '{entry.name}' failed: {clean_error}")
                result.outcomes.append(EntryOutcome(entry.name, entry.id, error=clean_error))

        self._journal(
            "clean",
            f"Removed {len(result.succeeded)} entries older than {max_age_days} days",
            payload={"days": max_age_days, "removed": [o.name for o in result.succeeded]},
        )
        return result

    # ---- Dump and Export ------------------------------------------------------------------------------------

    def dump(
            self,
            delete: bool = False,
    ) -> BatchResult:
        """Restore every entry to the current directory in stack order.

        With delete each entry is popped (and removed once fully restored);
        otherwise each is peeked. Existing destinations are never
        overwritten. A failing entry does not stop the others.

        Returns:
            BatchResult with one outcome per entry, oldest first.
        """
        result = BatchResult("dump")

        for entry in self.store.list_entries():
            try:
                if delete:
                    detail = self.pop(entry.id, force=False)
                else:
                    detail = self.peek(entry.id, force=False)
                result.outcomes.append(EntryOutcome(entry.name, entry.id, detail=detail))
            except StashError as dump_error:
                logger.debug(f"Dump of '{entry.name}' failed: {dump_error}")
                result.outcomes.append(EntryOutcome(entry.name, entry.id, error=dump_error))

        self._journal(
            "dump",
            f"Dumped {len(result.succeeded)}/{len(result.outcomes)} entries"
            + (" and deleted them" if delete else ""),
            payload={"delete": delete, "failed": [o.name for o in result.failed]},
        )
        return result

    def tar_export(
            self,
            output_path: Path | str,
            identifiers: Sequence[str] = (),
    ) -> ExportResult:
        """Write entries into one tar archive without changing the store.

        Args:
            output_path: Archive file, relative to cwd or absolute.
            identifiers: Entry names/ids to export (default: all entries).

        Returns:
            ExportResult describing the archive.

        Raises:
            StashError: NotFound if there is nothing to export,
                TransferFailed if the archive cannot be written.
        """
        if identifiers:
            entries = [self.store.resolve(identifier) for identifier in identifiers]
        else:
            entries = self.store.list_entries()

        if not entries:
            raise StashError(ErrorKind.NOT_FOUND, "No entries to export")

        output = Path(os.path.abspath(self.cwd / Path(output_path).expanduser()))
        try:
            count = write_archive(entries, [self.store.entry_dir(entry.id) for entry in entries], output)
        except (OSError, tarfile.TarError) as tar_error:
            msg = f"Failed to write archive {output}: {tar_error}"
            raise StashError(ErrorKind.TRANSFER_FAILED, msg, str(output)) from tar_error

        self._journal(
            "tar",
            f"Exported {len(entries)} entries to {output}",
            payload={"path": str(output), "entries": [entry.name for entry in entries]},
        )
        return ExportResult(output_path=output, entries=entries, item_count=count)

    # ---- Journal --------------------------------------------------------------------------------------------

    def _journal(
            self,
            operation: str,
            summary: str,
            entry: StashEntry | None = None,
            payload: dict[str, Any] | None = None,
    ) -> None:
        """Record an operation; journal failures never fail the operation."""
        try:
            with self.store.get_journal() as journal:
                journal.record(
                    operation=operation,
                    summary=summary,
                    entry_id=entry.id if entry else None,
                    entry_name=entry.name if entry else None,
                    payload=payload,
                )
        except (sqlite3.Error, OSError) as journal_error:
            logger.warning(f"Could not record {operation} in journal: {journal_error}")
