"""Stash CLI entry point.

Single `stash` command. Parses flags, opens (and locks) the store for the
duration of the invocation, and dispatches to the handler for the
selected operation. Without an operation flag the positional tokens
decide between push and pop.

Execution Context:
    CLI application - run via `python main.py` or `stash` command

Dependencies:
    - click: CLI framework
    - stash_core: Core library

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

import sys
from pathlib import Path

import click

from stash_cli import __version__
from stash_cli.commands.clean import run_clean
from stash_cli.commands.dump import run_dump
from stash_cli.commands.list import show_history
from stash_cli.commands.list import show_info
from stash_cli.commands.list import show_list
from stash_cli.commands.list import show_search
from stash_cli.commands.rename import run_rename
from stash_cli.commands.tar import run_tar
from stash_cli.commands.transfer import run_transfer
from stash_cli.commands.utils import setup_logging
from stash_core.errors import StashError
from stash_core.executor import Executor
from stash_core.intent import IntentFlag
from stash_core.models import TransferMode
from stash_core.store import STASH_HOME_ENV
from stash_core.store import open_store


# ---- Option Handling ----------------------------------------------------------------------------------------


def _selected_operation(
        operations: dict[str, bool],
) -> str | None:
    selected = [name for name, chosen in operations.items() if chosen]
    if len(selected) > 1:
        flags = ", ".join(f"--{name}" for name in selected)
        msg = f"Options {flags} cannot be combined"
        raise click.UsageError(msg)
    return selected[0] if selected else None


def _transfer_mode(
        copy: bool,
        link: bool,
) -> TransferMode:
    if copy and link:
        raise click.UsageError("--copy and --link cannot be combined")
    if link:
        return TransferMode.LINK
    if copy:
        return TransferMode.COPY
    return TransferMode.MOVE


# ---- CLI Command --------------------------------------------------------------------------------------------


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("tokens", nargs=-1)
@click.option("--name", "-n", default=None, help="Name for the new entry (push).")
@click.option("--copy", "-c", is_flag=True, help="Copy instead of move; on pop, keep the entry.")
@click.option("--link", "-l", is_flag=True, help="Move into the stash and leave a symlink behind (push).")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing destinations on pop/peek.")
@click.option("--restore", "-r", is_flag=True, help="Restore items to their original paths (pop).")
@click.option("--push", "push_flag", is_flag=True, help="Force push of the given paths.")
@click.option("--pop", "pop_flag", is_flag=True, help="Force pop of the given entry.")
@click.option("--peek", "peek_flag", is_flag=True, help="Copy an entry out without removing it.")
@click.option("--delete", "-d", "delete_flag", is_flag=True, help="Delete an entry without restoring (with --dump: delete after restoring).")
@click.option("--list", "list_flag", is_flag=True, help="List entries in stack order.")
@click.option("--search", default=None, metavar="PATTERN", help="Find entries by name, id prefix, or item path.")
@click.option("--info", is_flag=False, flag_value="", default=None, metavar="[ENTRY]", help="Show details of an entry (default: most recent).")
@click.option("--history", "history_flag", is_flag=True, help="Show recent stash operations.")
@click.option("--clean", is_flag=False, flag_value=-1, default=None, type=int, metavar="[DAYS]", help="Delete entries older than DAYS (default from config).")
@click.option("--rename", default=None, metavar="OLD:NEW", help="Rename an entry.")
@click.option("--tar", default=None, metavar="PATH", help="Export entries (all, or those given) to a tar archive.")
@click.option("--dump", "dump_flag", is_flag=True, help="Restore every entry into the current directory.")
@click.option(
    "--store-dir",
    envvar=STASH_HOME_ENV,
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help=f"Stash directory (default: ~/.stash, or ${STASH_HOME_ENV}).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="stash")
@click.pass_context
def cli(
        ctx: click.Context,
        tokens: tuple[str, ...],
        name: str | None,
        copy: bool,
        link: bool,
        force: bool,
        restore: bool,
        push_flag: bool,
        pop_flag: bool,
        peek_flag: bool,
        delete_flag: bool,
        list_flag: bool,
        search: str | None,
        info: str | None,
        history_flag: bool,
        clean: int | None,
        rename: str | None,
        tar: str | None,
        dump_flag: bool,
        store_dir: Path | None,
        verbose: bool,
) -> None:
    """Stash - move files out of the way and bring them back later.

    With paths that exist, stores them as a new entry. With an entry name,
    id, or a stashed file's name, restores that entry. With nothing,
    restores the most recent entry.

    Examples:
        stash notes.txt build/        # Push both as one entry
        stash                         # Pop the most recent entry
        stash notes.txt               # Pop the entry holding notes.txt
        stash --peek wip              # Copy out entry 'wip', keep it
        stash --list
        stash --clean 7               # Delete entries older than a week
        stash --dump --delete         # Restore and remove everything
    """
    setup_logging(verbose)

    operation = _selected_operation({
        "push": push_flag,
        "pop": pop_flag,
        "peek": peek_flag,
        "delete": delete_flag and not dump_flag,
        "list": list_flag,
        "search": search is not None,
        "info": info is not None,
        "history": history_flag,
        "clean": clean is not None,
        "rename": rename is not None,
        "tar": tar is not None,
        "dump": dump_flag,
    })
    mode = _transfer_mode(copy, link)

    if tokens and operation in ("list", "search", "info", "history", "clean", "rename", "dump"):
        msg = f"--{operation} does not take positional arguments"
        raise click.UsageError(msg)

    try:
        with open_store(store_dir) as store:
            executor = Executor(store)

            if operation == "list":
                code = show_list(store)
            elif operation == "search":
                code = show_search(store, search)
            elif operation == "info":
                code = show_info(store, info or None)
            elif operation == "history":
                code = show_history(store)
            elif operation == "clean":
                code = run_clean(executor, clean)
            elif operation == "rename":
                code = run_rename(executor, rename)
            elif operation == "tar":
                code = run_tar(executor, tar, tokens)
            elif operation == "dump":
                code = run_dump(executor, delete=delete_flag)
            else:
                flag = IntentFlag(operation) if operation else None
                code = run_transfer(
                    executor,
                    tokens,
                    flag,
                    name=name,
                    mode=mode,
                    copy=copy,
                    force=force,
                    restore=restore,
                )
    except StashError as stash_error:
        raise click.ClickException(str(stash_error)) from stash_error

    if code:
        ctx.exit(code)


# ---- Main Function ------------------------------------------------------------------------------------------


def main() -> int:
    """Main entry point for Stash CLI.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        cli()
        return 0
    except Exception as cli_error:
        click.echo(f"Error: {cli_error}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
