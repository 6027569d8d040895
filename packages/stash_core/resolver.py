"""Command-line token classification.

Decides, for each positional token, whether it names something in the
working directory, a stash entry, or a file stored inside a stash entry.
Classification is pure: it reads the filesystem and the given entries
but changes nothing.

Execution Context:
    Library module - imported by the CLI before intent resolution

Dependencies:
    - stash_core.models: Entry and item models

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable
from typing import Sequence

from stash_core.models import StashEntry
from stash_core.transfer import path_exists

logger = logging.getLogger(__name__)


# ---- Classification Types -----------------------------------------------------------------------------------


class TokenKind(str, Enum):
    """Primary interpretation of a token."""

    LOCAL_PATH = "LocalPath"
    ENTRY_NAME = "EntryName"
    ENTRY_MEMBER = "EntryMember"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class TokenClassification:
    """How one token was classified.

    A token that exists locally is a LOCAL_PATH, but it may also match a
    stash entry; in that case entry_id and entry_kind record the second
    interpretation so the intent resolver can detect the ambiguity.

    Attributes:
        token: Token as typed.
        kind: Primary classification.
        local_path: Absolute path when the token exists in the working directory.
        entry_id: Entry the token names or belongs to, if exactly one.
        entry_kind: ENTRY_NAME or ENTRY_MEMBER when entry_id is set.
        member_candidates: Entry ids when a member match spans several entries.
    """

    token: str
    kind: TokenKind
    local_path: Path | None = None
    entry_id: str | None = None
    entry_kind: TokenKind | None = None
    member_candidates: tuple[str, ...] = ()

    @property
    def is_local(self) -> bool:
        return self.local_path is not None

    @property
    def is_entry(self) -> bool:
        return self.entry_id is not None

    @property
    def is_ambiguous(self) -> bool:
        """True when the token is both a local path and a stash entry reference."""
        return self.is_local and self.is_entry


# ---- Classification Functions -------------------------------------------------------------------------------


def _local_path(
        token: str,
        cwd: Path,
) -> Path:
    path = Path(token).expanduser()
    if not path.is_absolute():
        path = cwd / path
    return Path(os.path.abspath(path))


def _match_entry_name(
        token: str,
        entries: Iterable[StashEntry],
) -> StashEntry | None:
    """Entry whose id or name equals token, else the one entry whose id it prefixes."""
    by_name = None
    by_prefix = []
    for entry in entries:
        if entry.id == token:
            return entry
        if entry.name == token:
            by_name = entry
        elif entry.has_id_prefix(token):
            by_prefix.append(entry)
    if by_name is not None:
        return by_name
    return by_prefix[0] if len(by_prefix) == 1 else None


def _match_members(
        token: str,
        absolute: Path,
        entries: Iterable[StashEntry],
) -> list[str]:
    """Ids of entries holding an item whose original path or filename matches."""
    absolute_str = str(absolute)
    matches = []
    for entry in entries:
        for item in entry.items:
            if item.original_path in (token, absolute_str) or item.original_name == token:
                matches.append(entry.id)
                break
    return matches


def classify_token(
        token: str,
        cwd: Path,
        entries: Sequence[StashEntry],
) -> TokenClassification:
    """Classify one token.

    Args:
        token: Positional argument as typed.
        cwd: Working directory relative paths are resolved against.
        entries: Active stash entries.

    Returns:
        TokenClassification for the token.
    """
    absolute = _local_path(token, cwd)
    local_path = absolute if path_exists(absolute) else None

    entry_id = None
    entry_kind = None
    candidates: tuple[str, ...] = ()

    named = _match_entry_name(token, entries)
    if named is not None:
        entry_id = named.id
        entry_kind = TokenKind.ENTRY_NAME
    else:
        members = _match_members(token, absolute, entries)
        if len(members) == 1:
            entry_id = members[0]
            entry_kind = TokenKind.ENTRY_MEMBER
        elif members:
            candidates = tuple(members)

    if local_path is not None:
        kind = TokenKind.LOCAL_PATH
    elif entry_kind is not None:
        kind = entry_kind
    else:
        kind = TokenKind.UNKNOWN

    classification = TokenClassification(
        token=token,
        kind=kind,
        local_path=local_path,
        entry_id=entry_id,
        entry_kind=entry_kind,
        member_candidates=candidates,
    )
    logger.debug(f"Classified {token!r} as {kind.value} (entry={entry_id}, ambiguous={classification.is_ambiguous})")
    return classification


def classify_tokens(
        tokens: Sequence[str],
        cwd: Path,
        entries: Sequence[StashEntry],
) -> list[TokenClassification]:
    """Classify every token independently.

    Args:
        tokens: Positional arguments in command-line order.
        cwd: Working directory.
        entries: Active stash entries.

    Returns:
        One classification per token, in the same order.
    """
    entries = list(entries)
    return [classify_token(token, cwd, entries) for token in tokens]
