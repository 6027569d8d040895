"""Utility functions for Stash CLI commands.

Execution Context:
    CLI command utilities - imported by command modules

Dependencies:
    - rich: Terminal output and log rendering

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

import logging
from datetime import datetime
from datetime import timezone
from typing import Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from stash_core.executor import BatchStatus
from stash_core.models import StashConfig
from stash_core.models import StashEntry

console = Console()
err_console = Console(stderr=True)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_PARTIAL = 3


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger for one CLI invocation.

    Args:
        verbose: Log at DEBUG instead of WARNING.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )


def format_size(size: int) -> str:
    """Human-readable byte count (e.g. 512 B, 1.5 KB, 3.2 MB)."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if value < 1024 or unit == "TB":
            if unit == "B":
                return f"{int(value)} {unit}"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def format_age(
        entry: StashEntry,
        now: datetime | None = None,
) -> str:
    """Compact entry age (e.g. 5m, 3h, 12d)."""
    now = now or datetime.now(timezone.utc)
    seconds = max((now - entry.created).total_seconds(), 0)
    if seconds >= 86400:
        return f"{int(seconds // 86400)}d"
    if seconds >= 3600:
        return f"{int(seconds // 3600)}h"
    return f"{int(seconds // 60)}m"


def format_timestamp(
        entry: StashEntry,
        config: StashConfig,
) -> str:
    """Entry creation time in local time, using the configured format."""
    return entry.created.astimezone().strftime(config.date_format)


def entry_table(
        entries: Sequence[StashEntry],
        config: StashConfig,
        title: str,
) -> Table:
    """Build the table used by list and search.

    Args:
        entries: Entries in stack order.
        config: Store configuration (date format).
        title: Table title.

    Returns:
        Rich table, one row per entry.
    """
    now = datetime.now(timezone.utc)

    table = Table(title=title)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Name", style="green")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Created", style="yellow")
    table.add_column("Age", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("Mode", style="blue")

    for position, entry in enumerate(entries, start=1):
        table.add_row(
            str(position),
            entry.name,
            entry.short_id,
            format_timestamp(entry, config),
            format_age(entry, now),
            format_size(entry.total_size),
            str(entry.item_count),
            entry.transfer_mode.value,
        )

    return table


def exit_code_for(status: BatchStatus) -> int:
    """Map a batch status to the process exit code."""
    if status is BatchStatus.SUCCESS:
        return EXIT_SUCCESS
    if status is BatchStatus.PARTIAL:
        return EXIT_PARTIAL
    return EXIT_FAILURE
