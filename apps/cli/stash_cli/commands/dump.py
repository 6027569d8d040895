"""Restore every entry at once.

Execution Context:
    CLI command - invoked via `stash --dump [--delete]`

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


# ---- Dump Command -------------------------------------------------------------------------------------------


def run_dump(
        executor: Executor,
        delete: bool = False,
) -> int:
    """Restore all entries into the working directory, oldest first.

    Args:
        executor: Executor bound to the open store.
        delete: Pop (and remove) each entry instead of peeking.

    Returns:
        Process exit code (partial when some entries failed).
    """
    result = executor.dump(delete=delete)

    if not result.outcomes:
        console.print("[dim]No stashed entries.[/dim]")
        return exit_code_for(result.status)

    for outcome in result.outcomes:
        if outcome.error is not None:
            err_console.print(f"  [red]failed[/red]  {outcome.name}: {outcome.error}")
            continue

        detail = outcome.detail
        restored = len(detail.restored)
        if outcome.ok:
            suffix = " (removed)" if detail.deleted else ""
            console.print(f"  [green]ok[/green]      {outcome.name}: {restored} item(s){suffix}")
        else:
            err_console.print(f"  [yellow]partial[/yellow] {outcome.name}: {restored}/{len(detail.outcomes)} item(s)")
            for item in detail.failed:
                err_console.print(f"          {item.error}")

    console.print(f"Dumped {len(result.succeeded)}/{len(result.outcomes)} entries")
    return exit_code_for(result.status)
