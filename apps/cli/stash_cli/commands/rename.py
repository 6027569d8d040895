"""Entry rename.

Execution Context:
    CLI command - invoked via `stash --rename OLD:NEW`

Dependencies:
    - click: Usage errors
    - rich: Terminal output
    - stash_core: Executor

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

import click

from stash_core.executor import Executor

from .utils import EXIT_SUCCESS
from .utils import console


# ---- Rename Command -----------------------------------------------------------------------------------------


def parse_rename(value: str) -> tuple[str, str]:
    """Split OLD:NEW on the first colon.

    Raises:
        click.UsageError: If either side is missing.
    """
    old, sep, new = value.partition(":")
    if not sep or not old or not new:
        msg = f"--rename expects OLD:NEW, got '{value}'"
        raise click.UsageError(msg)
    return old, new


def run_rename(
        executor: Executor,
        value: str,
) -> int:
    """Rename the entry named (or with id) OLD to NEW."""
    old, new = parse_rename(value)
    entry = executor.rename(old, new)
    console.print(f"[green]Renamed[/green] {old} -> [bold]{entry.name}[/bold] [dim]({entry.short_id})[/dim]")
    return EXIT_SUCCESS
