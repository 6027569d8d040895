"""Push, pop, peek, and delete handlers.

Classifies the positional tokens, resolves them (with any explicit flag)
to one operation, asks the user when both push and pop are valid, and
runs the operation through the executor.

Execution Context:
    CLI command - invoked via `stash [TOKENS...]`, `stash --push`,
    `stash --pop`, `stash --peek`, `stash --delete`

Dependencies:
    - click: Prompting and usage errors
    - rich: Terminal output
    - stash_core: Resolver, intent resolution, executor

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

from typing import Sequence

import click

from stash_core.errors import ErrorKind
from stash_core.errors import StashError
from stash_core.executor import Executor
from stash_core.executor import RestoreResult
from stash_core.intent import DeleteIntent
from stash_core.intent import Intent
from stash_core.intent import IntentError
from stash_core.intent import IntentFlag
from stash_core.intent import NeedsDisambiguation
from stash_core.intent import PeekIntent
from stash_core.intent import PopIntent
from stash_core.intent import PushIntent
from stash_core.intent import resolve_intent
from stash_core.models import TransferMode
from stash_core.resolver import TokenClassification
from stash_core.resolver import classify_tokens

from .utils import EXIT_FAILURE
from .utils import EXIT_PARTIAL
from .utils import EXIT_SUCCESS
from .utils import console
from .utils import err_console
from .utils import format_size


# ---- Intent Handling ----------------------------------------------------------------------------------------


def _disambiguate(
        classifications: Sequence[TokenClassification],
        pending: NeedsDisambiguation,
) -> Intent:
    """Ask whether to push or pop, then resolve again with that flag."""
    tokens = ", ".join(pending.tokens)
    console.print(f"[yellow]'{tokens}' is both a local path and a stash entry.[/yellow]")
    try:
        choice = click.prompt(
            "Choose an operation",
            type=click.Choice([flag.value for flag in pending.flags]),
        )
    except click.Abort as abort_error:
        msg = f"'{tokens}' matches both a local path and a stash entry; use --push or --pop"
        raise StashError(ErrorKind.AMBIGUOUS_INTENT, msg, tokens) from abort_error

    return resolve_intent(classifications, IntentFlag(choice))


def run_transfer(
        executor: Executor,
        tokens: Sequence[str],
        flag: IntentFlag | None,
        name: str | None,
        mode: TransferMode,
        copy: bool,
        force: bool,
        restore: bool,
) -> int:
    """Resolve tokens to push/pop/peek/delete and execute it.

    Args:
        executor: Executor bound to the open store.
        tokens: Positional tokens.
        flag: Explicit operation flag, if any.
        name: Entry name for push.
        mode: Transfer mode for push.
        copy: Keep the stored copy on pop.
        force: Overwrite occupied destinations.
        restore: Restore to original paths on pop.

    Returns:
        Process exit code.
    """
    classifications = classify_tokens(tokens, executor.cwd, executor.store.list_entries())
    intent = resolve_intent(classifications, flag)

    if isinstance(intent, NeedsDisambiguation):
        intent = _disambiguate(classifications, intent)

    if isinstance(intent, IntentError):
        raise intent.to_exception()

    if isinstance(intent, PushIntent):
        if restore:
            raise click.UsageError("--restore applies only when popping")
        entry = executor.push(list(intent.paths), name=name, mode=mode)
        console.print(
            f"[green]Stashed {entry.item_count} item(s) as[/green] [bold]{entry.name}[/bold] "
            f"[dim]({entry.short_id}, {format_size(entry.total_size)}, {mode.value})[/dim]"
        )
        return EXIT_SUCCESS

    if name is not None or mode is TransferMode.LINK:
        raise click.UsageError("--name and --link apply only when pushing")

    if isinstance(intent, DeleteIntent):
        entry = executor.delete(intent.entry_id)
        console.print(f"[green]Deleted[/green] [bold]{entry.name}[/bold] [dim]({entry.short_id})[/dim]")
        return EXIT_SUCCESS

    if isinstance(intent, PeekIntent):
        if restore:
            raise click.UsageError("--restore applies only when popping")
        return report_restore(executor.peek(intent.entry_id, force=force))

    if isinstance(intent, PopIntent):
        result = executor.pop(intent.entry_id, copy=copy, force=force, restore=restore)
        return report_restore(result)

    msg = f"Unhandled intent: {intent!r}"
    raise RuntimeError(msg)


# ---- Output -------------------------------------------------------------------------------------------------


def report_restore(
        result: RestoreResult,
) -> int:
    """Print per-item results of a pop or peek and pick the exit code."""
    entry = result.entry
    for outcome in result.outcomes:
        if outcome.ok:
            console.print(f"  [green]restored[/green] {outcome.destination}")
        else:
            err_console.print(f"  [red]skipped[/red] {outcome.error}")

    restored = len(result.restored)
    verb = "Copied" if result.copied else "Restored"
    console.print(f"{verb} {restored}/{len(result.outcomes)} item(s) from [bold]{entry.name}[/bold]")
    if result.deleted:
        console.print(f"[dim]Removed entry {entry.name} ({entry.short_id})[/dim]")
    elif not result.copied and restored:
        console.print(f"[yellow]Entry {entry.name} kept with {len(result.failed)} remaining item(s)[/yellow]")

    if result.ok:
        return EXIT_SUCCESS
    return EXIT_PARTIAL if restored else EXIT_FAILURE
