"""Tar export.

Execution Context:
    CLI command - invoked via `stash --tar PATH [ENTRY...]`

Dependencies:
    - rich: Terminal output
    - stash_core: Executor

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

from typing import Sequence

from stash_core.executor import Executor

from .utils import EXIT_SUCCESS
from .utils import console


# ---- Tar Command --------------------------------------------------------------------------------------------


def run_tar(
        executor: Executor,
        output: str,
        identifiers: Sequence[str] = (),
) -> int:
    """Export entries (all, or those named) into one archive."""
    result = executor.tar_export(output, identifiers)
    console.print(
        f"[green]Exported {len(result.entries)} entries ({result.item_count} items) to[/green] "
        f"{result.output_path}"
    )
    return EXIT_SUCCESS
