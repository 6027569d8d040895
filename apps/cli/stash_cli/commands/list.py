"""List, search, info, and history views.

Read-only views of the entry store and the operation journal.

Execution Context:
    CLI command - invoked via `stash --list`, `stash --search`,
    `stash --info`, `stash --history`

Dependencies:
    - rich: Terminal output
    - stash_core: Entry store and journal

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

from datetime import datetime

from rich.table import Table

from stash_core.store import EntryStore

from .utils import EXIT_SUCCESS
from .utils import console
from .utils import entry_table
from .utils import err_console
from .utils import format_age
from .utils import format_size
from .utils import format_timestamp

HISTORY_LIMIT = 20


# ---- List and Search ----------------------------------------------------------------------------------------


def show_list(
        store: EntryStore,
) -> int:
    """Print every entry in stack order."""
    entries = store.list_entries()

    if not entries:
        console.print("[dim]No stashed entries.[/dim]")
    else:
        console.print(entry_table(entries, store.config, "Stash Entries"))
        total = sum(entry.total_size for entry in entries)
        console.print(f"[dim]{len(entries)} entries, {format_size(total)} total[/dim]")

    orphans = store.orphaned_dirs()
    if orphans:
        err_console.print(
            f"[yellow]{len(orphans)} unindexed entry director{'y' if len(orphans) == 1 else 'ies'} "
            f"in {store.entries_dir} (left by an interrupted push):[/yellow]"
        )
        for orphan in orphans:
            err_console.print(f"  {orphan.name}")

    return EXIT_SUCCESS


def show_search(
        store: EntryStore,
        pattern: str,
) -> int:
    """Print entries matching a pattern."""
    matches = store.search(pattern)

    if not matches:
        console.print(f"[dim]No entries match '{pattern}'.[/dim]")
        return EXIT_SUCCESS

    console.print(entry_table(matches, store.config, f"Entries matching '{pattern}'"))
    return EXIT_SUCCESS


# ---- Info ---------------------------------------------------------------------------------------------------


def show_info(
        store: EntryStore,
        identifier: str | None = None,
) -> int:
    """Print details and journal history of one entry (the most recent if no identifier)."""
    entry = store.resolve(identifier) if identifier else store.most_recent()

    console.print(f"[bold]Name:[/bold]      {entry.name}")
    console.print(f"[bold]ID:[/bold]        {entry.id}")
    console.print(f"[bold]Created:[/bold]   {format_timestamp(entry, store.config)} ({format_age(entry)} ago)")
    console.print(f"[bold]Mode:[/bold]      {entry.transfer_mode.value}")
    console.print(f"[bold]Directory:[/bold] {entry.working_directory}")
    console.print(f"[bold]Size:[/bold]      {format_size(entry.total_size)}")
    console.print(f"[bold]Items:[/bold]     {entry.item_count}")

    table = Table(show_header=True, box=None, padding=(0, 2))
    table.add_column("Kind", style="blue")
    table.add_column("Size", justify="right")
    table.add_column("Stored as", style="green")
    table.add_column("Original path", style="dim")
    for item in entry.items:
        table.add_row(item.kind.value, format_size(item.size), item.stored_path, item.original_path)
    console.print(table)

    with store.get_journal() as journal:
        records = journal.for_entry(entry.id)
    if records:
        console.print("[bold]History:[/bold]")
        for record in records:
            when = datetime.fromisoformat(record.timestamp).astimezone()
            console.print(f"  {when.strftime(store.config.date_format)}  {record.operation:<8} {record.summary}")

    return EXIT_SUCCESS


# ---- History ------------------------------------------------------------------------------------------------


def show_history(
        store: EntryStore,
        limit: int = HISTORY_LIMIT,
) -> int:
    """Print the most recent journal records, oldest first."""
    with store.get_journal() as journal:
        records = journal.recent(limit)

    if not records:
        console.print("[dim]No recorded operations.[/dim]")
        return EXIT_SUCCESS

    table = Table(title="Stash History")
    table.add_column("When", style="yellow")
    table.add_column("Operation", style="cyan")
    table.add_column("Entry", style="green")
    table.add_column("Summary")

    for record in records:
        when = datetime.fromisoformat(record.timestamp).astimezone()
        table.add_row(
            when.strftime(store.config.date_format),
            record.operation,
            record.entry_name or "",
            record.summary,
        )

    console.print(table)
    return EXIT_SUCCESS
