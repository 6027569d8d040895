"""Intent resolution.

Turns token classifications plus an optional explicit operation flag into
exactly one operation to perform. The function is pure and deterministic:
the same classifications and flag always produce the same result, and
when two interpretations are equally valid it returns NeedsDisambiguation
instead of guessing. Prompting the user is left to the caller, who
re-invokes resolve_intent with the chosen flag.

Precedence:
    1. explicit flag, validated against the tokens
    2. no tokens -> pop the most recent entry
    3. every token a local path -> push them as one entry
    4/5. every token names the same entry, or every token belongs to it -> pop it
    6. pop reading valid but some token also exists locally -> NeedsDisambiguation
    7. anything else -> MixedIntent (NotFound when nothing matched at all)

Execution Context:
    Library module - imported by the CLI

Dependencies:
    - stash_core.resolver: Token classifications

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Sequence
from typing import Union

from stash_core.errors import ErrorKind
from stash_core.errors import StashError
from stash_core.resolver import TokenClassification
from stash_core.resolver import TokenKind

logger = logging.getLogger(__name__)


# ---- Intent Types -------------------------------------------------------------------------------------------


class IntentFlag(str, Enum):
    """Explicit operation flags that bypass inference."""

    PUSH = "push"
    POP = "pop"
    PEEK = "peek"
    DELETE = "delete"


@dataclass(frozen=True)
class PushIntent:
    """Store the given local paths as one new entry."""

    paths: tuple[Path, ...]


@dataclass(frozen=True)
class PopIntent:
    """Restore an entry; entry_id None means the most recent one."""

    entry_id: str | None = None


@dataclass(frozen=True)
class PeekIntent:
    """Copy an entry out without removing it; None means the most recent one."""

    entry_id: str | None = None


@dataclass(frozen=True)
class DeleteIntent:
    """Discard an entry without restoring it."""

    entry_id: str


@dataclass(frozen=True)
class NeedsDisambiguation:
    """Tokens support more than one operation; the user must choose.

    Attributes:
        tokens: Tokens that matched both a local path and an entry.
        candidates: The possible intents, push first when every token is local.
    """

    tokens: tuple[str, ...]
    candidates: tuple[PushIntent | PopIntent, ...]

    @property
    def flags(self) -> tuple[IntentFlag, ...]:
        """Flags that select each candidate, in candidate order."""
        return tuple(
            IntentFlag.PUSH if isinstance(candidate, PushIntent) else IntentFlag.POP
            for candidate in self.candidates
        )


@dataclass(frozen=True)
class IntentError:
    """No operation fits the tokens."""

    kind: ErrorKind
    message: str
    tokens: tuple[str, ...] = ()

    def to_exception(self) -> StashError:
        """Build the StashError that reports this failure."""
        target = ", ".join(self.tokens) if self.tokens else None
        return StashError(self.kind, self.message, target)


Intent = Union[PushIntent, PopIntent, PeekIntent, DeleteIntent, NeedsDisambiguation, IntentError]


# ---- Helpers ------------------------------------------------------------------------------------------------


def _quoted(
        tokens: Sequence[str],
) -> str:
    return ", ".join(f"'{token}'" for token in tokens)


def _push_candidate(
        classifications: Sequence[TokenClassification],
) -> PushIntent | None:
    if classifications and all(c.is_local for c in classifications):
        return PushIntent(tuple(c.local_path for c in classifications))
    return None


def _common_entry(
        classifications: Sequence[TokenClassification],
) -> str | None:
    """Entry id every token resolves to, or None if they don't agree."""
    entry_ids = {c.entry_id for c in classifications}
    if len(entry_ids) == 1 and None not in entry_ids:
        return entry_ids.pop()
    return None


def _pop_candidate(
        classifications: Sequence[TokenClassification],
) -> PopIntent | None:
    """Pop when every token is an entry name, or every token a member, of one entry."""
    kinds = {c.entry_kind for c in classifications}
    if kinds not in ({TokenKind.ENTRY_NAME}, {TokenKind.ENTRY_MEMBER}):
        return None
    entry_id = _common_entry(classifications)
    return PopIntent(entry_id) if entry_id is not None else None


def _resolve_explicit(
        classifications: Sequence[TokenClassification],
        flag: IntentFlag,
) -> Intent:
    tokens = tuple(c.token for c in classifications)

    if flag is IntentFlag.PUSH:
        push = _push_candidate(classifications)
        if push is not None:
            return push
        if not classifications:
            return IntentError(ErrorKind.INVALID_TARGET, "--push requires at least one path")
        missing = [c.token for c in classifications if not c.is_local]
        msg = f"--push requires existing local paths; not found: {_quoted(missing)}"
        return IntentError(ErrorKind.INVALID_TARGET, msg, tuple(missing))

    if not classifications:
        if flag is IntentFlag.DELETE:
            return IntentError(ErrorKind.INVALID_TARGET, "--delete requires an entry name or id")
        return PeekIntent() if flag is IntentFlag.PEEK else PopIntent()

    entry_id = _common_entry(classifications)
    if entry_id is None:
        msg = f"--{flag.value} requires tokens that all identify the same stash entry: {_quoted(tokens)}"
        return IntentError(ErrorKind.INVALID_TARGET, msg, tokens)

    if flag is IntentFlag.PEEK:
        return PeekIntent(entry_id)
    if flag is IntentFlag.DELETE:
        return DeleteIntent(entry_id)
    return PopIntent(entry_id)


# ---- Resolution ---------------------------------------------------------------------------------------------


def resolve_intent(
        classifications: Sequence[TokenClassification],
        flag: IntentFlag | str | None = None,
) -> Intent:
    """Resolve classifications and an optional flag to one operation.

    Args:
        classifications: Per-token classifications, in command-line order.
        flag: Explicit operation flag, if the user gave one.

    Returns:
        The resolved intent; never raises for user input.
    """
    if flag is not None:
        intent = _resolve_explicit(classifications, IntentFlag(flag))
        logger.debug(f"Resolved explicit --{IntentFlag(flag).value} to {intent}")
        return intent

    intent = _infer(classifications)
    logger.debug(f"Inferred {intent}")
    return intent


def _infer(
        classifications: Sequence[TokenClassification],
) -> Intent:
    tokens = tuple(c.token for c in classifications)

    if not classifications:
        return PopIntent()

    push = _push_candidate(classifications)
    pop = _pop_candidate(classifications)
    ambiguous = tuple(c.token for c in classifications if c.is_ambiguous)

    if pop is not None and ambiguous:
        candidates = (push, pop) if push is not None else (pop,)
        return NeedsDisambiguation(ambiguous, candidates)

    if push is not None:
        return push

    if pop is not None:
        return pop

    if all(c.kind is TokenKind.UNKNOWN for c in classifications):
        spread = [c.token for c in classifications if c.member_candidates]
        msg = f"No local path or stash entry matches {_quoted(tokens)}"
        if spread:
            msg += f" ({_quoted(spread)} found in more than one entry)"
        return IntentError(ErrorKind.NOT_FOUND, msg, tokens)

    if _common_entry(classifications) is not None:
        msg = f"Mix of entry names and stashed item paths: {_quoted(tokens)}; name the entry or its items, not both"
        return IntentError(ErrorKind.MIXED_INTENT, msg, tokens)

    if all(c.is_entry for c in classifications):
        msg = f"Cannot restore multiple entries at once: {_quoted(tokens)}"
        return IntentError(ErrorKind.MIXED_INTENT, msg, tokens)

    local = [c.token for c in classifications if c.is_local]
    other = [c.token for c in classifications if not c.is_local]
    msg = (
        f"Ambiguous operation: {_quoted(local)} exist locally but {_quoted(other)} do not. "
        "Separate the operations or pass --push/--pop explicitly."
    )
    return IntentError(ErrorKind.MIXED_INTENT, msg, tokens)
