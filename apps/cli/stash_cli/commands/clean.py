"""Age-based cleanup.

Execution Context:
    CLI command - invoked via `stash --clean [DAYS]`

Dependencies:
    - rich: Terminal output
    - stash_core: Executor

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

from stash_core.executor import Executor

from .utils import console
from .utils import err_console
from .utils import exit_code_for


# ---- Clean Command ------------------------------------------------------------------------------------------


def run_clean(
        executor: Executor,
        days: int,
) -> int:
    """Delete entries older than days (negative means the configured default).

    Args:
        executor: Executor bound to the open store.
        days: Age cutoff in days.

    Returns:
        Process exit code.
    """
    if days < 0:
        days = executor.store.config.clean_days

    result = executor.clean(days)

    if not result.outcomes:
        console.print(f"[dim]No entries older than {days} days.[/dim]")
        return exit_code_for(result.status)

    for outcome in result.succeeded:
        console.print(f"  [green]removed[/green] {outcome.name}")
    for outcome in result.failed:
        err_console.print(f"  [red]failed[/red] {outcome.error}")

    console.print(f"Removed {len(result.succeeded)} entries older than {days} days")
    return exit_code_for(result.status)
