"""Error kinds raised by the stash core library.

Every failure the library surfaces to its caller is a StashError carrying
one ErrorKind and, where one applies, the entry name/id or path affected.

Execution Context:
    Library module - imported by every stash_core module and the CLI

Dependencies:
    - enum: Error kind enumeration

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

from enum import Enum


# ---- Error Kinds --------------------------------------------------------------------------------------------


class ErrorKind(str, Enum):
    """Classes of failure a stash operation can report."""

    INVALID_TARGET = "InvalidTarget"
    MIXED_INTENT = "MixedIntent"
    AMBIGUOUS_INTENT = "AmbiguousIntent"
    NAME_CONFLICT = "NameConflict"
    DESTINATION_EXISTS = "DestinationExists"
    TRANSFER_FAILED = "TransferFailed"
    NOT_FOUND = "NotFound"
    INDEX_CORRUPT = "IndexCorrupt"


# ---- Exception Class ----------------------------------------------------------------------------------------


class StashError(RuntimeError):
    """Failure of a stash operation.

    Attributes:
        kind: Classification of the failure.
        target: Entry name/id or path the failure concerns, if any.
    """

    def __init__(
            self,
            kind: ErrorKind,
            message: str,
            target: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.target = target

    def __str__(
            self,
    ) -> str:
        return f"{self.kind.value}: {super().__str__()}"
