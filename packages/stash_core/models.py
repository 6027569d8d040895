"""Data models for Stash.

Defines the stashed item manifest, the stash entry record, and the
store configuration persisted inside the stash directory.

Execution Context:
    Library module - imported by other stash_core modules

Dependencies:
    - dataclasses: Data class decorators
    - typing: Type annotations

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

import json
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import uuid4

from stash_core.errors import ErrorKind
from stash_core.errors import StashError

SHORT_ID_LENGTH = 8


# ---- Enumerations -------------------------------------------------------------------------------------------


class ItemKind(str, Enum):
    """Kind of filesystem object recorded in a manifest."""

    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"


class TransferMode(str, Enum):
    """How the source paths were handled when the entry was pushed."""

    MOVE = "move"
    COPY = "copy"
    LINK = "link"


# ---- Data Model Classes -------------------------------------------------------------------------------------


@dataclass
class StashItem:
    """One path stored inside an entry.

    Attributes:
        original_path: Absolute path the item was pushed from.
        stored_path: Path relative to the entry directory.
        kind: File, directory, or symlink.
        size: Size in bytes (recursive for directories).
    """

    original_path: str
    stored_path: str
    kind: ItemKind
    size: int = 0

    @property
    def original_name(
            self,
    ) -> str:
        """Filename component of the original path."""
        return Path(self.original_path).name

    def to_dict(
            self,
    ) -> dict[str, Any]:
        """Convert item to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the item.
        """
        data = asdict(self)
        data["kind"] = self.kind.value
        return data

    @classmethod
    def from_dict(
            cls,
            data: dict[str, Any],
    ) -> StashItem:
        """Create item from dictionary.

        Args:
            data: Dictionary with item fields.

        Returns:
            StashItem instance.
        """
        return cls(
            original_path=data["original_path"],
            stored_path=data["stored_path"],
            kind=ItemKind(data["kind"]),
            size=int(data.get("size", 0)),
        )


@dataclass
class StashEntry:
    """One element of the stash stack.

    Attributes:
        id: UUID assigned at creation, never reused.
        name: Human-assigned name, unique among active entries.
        created_at: ISO 8601 UTC creation timestamp.
        sequence: Insertion counter that makes stack order total.
        transfer_mode: Move, copy, or link mode used at push time.
        working_directory: Directory the push was run from.
        items: Ordered manifest of stored paths.
    """

    id: str
    name: str
    created_at: str
    sequence: int = 0
    transfer_mode: TransferMode = TransferMode.MOVE
    working_directory: str = ""
    items: list[StashItem] = field(default_factory=list)

    @classmethod
    def create(
            cls,
            name: str,
            transfer_mode: TransferMode,
            working_directory: Path | str,
            items: list[StashItem] | None = None,
    ) -> StashEntry:
        """Create a new entry with a fresh id and the current timestamp.

        The sequence number is assigned by the store on insertion.

        Args:
            name: Entry name.
            transfer_mode: Transfer mode used for the push.
            working_directory: Directory the push was run from.
            items: Manifest items.

        Returns:
            New StashEntry instance.
        """
        return cls(
            id=str(uuid4()),
            name=name,
            created_at=datetime.now(timezone.utc).isoformat(),
            transfer_mode=transfer_mode,
            working_directory=str(working_directory),
            items=list(items or []),
        )

    @property
    def created(
            self,
    ) -> datetime:
        """Creation time as an aware datetime."""
        created = datetime.fromisoformat(self.created_at)
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return created

    @property
    def total_size(
            self,
    ) -> int:
        """Sum of item sizes in bytes."""
        return sum(item.size for item in self.items)

    @property
    def item_count(
            self,
    ) -> int:
        """Number of items in the manifest."""
        return len(self.items)

    @property
    def short_id(
            self,
    ) -> str:
        """Leading characters of the id, as shown in listings."""
        return self.id[:SHORT_ID_LENGTH]

    def has_id_prefix(
            self,
            token: str,
    ) -> bool:
        """True if token is at least a short id long and starts this entry's id."""
        return len(token) >= SHORT_ID_LENGTH and self.id.startswith(token)

    @property
    def stack_key(
            self,
    ) -> tuple[datetime, int]:
        """Sort key for stack order (oldest first)."""
        return (self.created, self.sequence)

    def to_dict(
            self,
    ) -> dict[str, Any]:
        """Convert entry to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the entry.
        """
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at,
            "sequence": self.sequence,
            "transfer_mode": self.transfer_mode.value,
            "working_directory": self.working_directory,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(
            cls,
            data: dict[str, Any],
    ) -> StashEntry:
        """Create entry from dictionary.

        Args:
            data: Dictionary with entry fields.

        Returns:
            StashEntry instance.
        """
        return cls(
            id=data["id"],
            name=data["name"],
            created_at=data["created_at"],
            sequence=int(data.get("sequence", 0)),
            transfer_mode=TransferMode(data.get("transfer_mode", TransferMode.MOVE.value)),
            working_directory=data.get("working_directory", ""),
            items=[StashItem.from_dict(item) for item in data.get("items", [])],
        )


@dataclass
class StashConfig:
    """Store configuration stored in <stash root>/config.json.

    Attributes:
        version: Stash format version.
        clean_days: Default age cutoff for --clean without a value.
        warn_size_mb: Push warns when an entry exceeds this size.
        date_format: strftime format for displayed timestamps.
    """

    version: str = "1.0"
    clean_days: int = 30
    warn_size_mb: int = 100
    date_format: str = "%Y-%m-%d %H:%M"

    def to_dict(
            self,
    ) -> dict[str, Any]:
        """Convert config to dictionary for JSON serialization.

        Returns:
            Dictionary representation.
        """
        return asdict(self)

    @classmethod
    def from_dict(
            cls,
            data: dict[str, Any],
    ) -> StashConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary with config fields.

        Returns:
            StashConfig instance.
        """
        return cls(
            version=data.get("version", "1.0"),
            clean_days=int(data.get("clean_days", 30)),
            warn_size_mb=int(data.get("warn_size_mb", 100)),
            date_format=data.get("date_format", "%Y-%m-%d %H:%M"),
        )

    def save(
            self,
            config_path: Path,
    ) -> None:
        """Save config to file.

        Args:
            config_path: Path to config.json file.
        """
        config_path.write_text(json.dumps(self.to_dict(), indent=2))

    @classmethod
    def load(
            cls,
            config_path: Path,
    ) -> StashConfig:
        """Load config from file.

        Args:
            config_path: Path to config.json file.

        Returns:
            StashConfig instance.

        Raises:
            StashError: If config file cannot be parsed.
        """
        try:
            data = json.loads(config_path.read_text())
            return cls.from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as file_error:
            msg = f"Failed to load config from {config_path}: {file_error}"
            raise StashError(ErrorKind.INDEX_CORRUPT, msg, str(config_path)) from file_error
