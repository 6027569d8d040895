"""Operation journal for Stash.

Provides a SQLite-backed record of every mutating stash operation so
the history of pushes, pops, renames, and cleanups can be reviewed.

Execution Context:
    Library module - imported by stash_core.executor and the CLI

Dependencies:
    - sqlite3: Database operations (stdlib)
    - uuid: ID generation (stdlib)

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone
from pathlib import Path
from typing import Any
from uuid import uuid4


# ---- Data Model Classes -------------------------------------------------------------------------------------


@dataclass
class JournalRecord:
    """One journaled operation.

    Attributes:
        id: Unique record identifier.
        timestamp: ISO 8601 UTC timestamp.
        operation: Operation name (push, pop, peek, delete, rename, clean, dump, tar).
        entry_id: Entry the operation concerned, if a single one.
        entry_name: Entry name at the time of the operation.
        summary: Human-readable description.
        payload: Operation-specific data.
    """

    id: str
    timestamp: str
    operation: str
    entry_id: str | None
    entry_name: str | None
    summary: str
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Convert record to dictionary.

        Returns:
            Dictionary representation.
        """
        return asdict(self)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> JournalRecord:
        """Create record from database row.

        Args:
            row: SQLite row with record data.

        Returns:
            JournalRecord instance.
        """
        return cls(
            id=row["id"],
            timestamp=row["timestamp"],
            operation=row["operation"],
            entry_id=row["entry_id"],
            entry_name=row["entry_name"],
            summary=row["summary"],
            payload=json.loads(row["payload"]),
        )


# ---- Journal Store Class ------------------------------------------------------------------------------------


class JournalStore:
    """SQLite-backed operation journal.

    Attributes:
        db_path: Path to SQLite database file.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize journal with SQLite database.

        Args:
            db_path: Path to journal.db file.
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._ensure_schema()

    @property
    def _connection(self) -> sqlite3.Connection:
        """Get or create database connection.

        Returns:
            SQLite connection with row factory.
        """
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _ensure_schema(self) -> None:
        """Create table and indexes if they don't exist."""
        conn = self._connection
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS operations (
                id TEXT PRIMARY KEY,
                seq INTEGER NOT NULL,
                timestamp TEXT NOT NULL,
                operation TEXT NOT NULL,
                entry_id TEXT,
                entry_name TEXT,
                summary TEXT NOT NULL,
                payload JSON NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_operations_seq ON operations(seq);
            CREATE INDEX IF NOT EXISTS idx_operations_entry ON operations(entry_id);
        """)
        conn.commit()

    # ---- Record Operations ----------------------------------------------------------------------------------

    def record(
        self,
        operation: str,
        summary: str,
        entry_id: str | None = None,
        entry_name: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> JournalRecord:
        """Append an operation to the journal.

        Args:
            operation: Operation name.
            summary: Human-readable description.
            entry_id: Entry concerned, if any.
            entry_name: Entry name at the time, if any.
            payload: Operation-specific data.

        Returns:
            Created JournalRecord instance.
        """
        record = JournalRecord(
            id=str(uuid4()),
            timestamp=datetime.now(timezone.utc).isoformat(),
            operation=operation,
            entry_id=entry_id,
            entry_name=entry_name,
            summary=summary,
            payload=payload or {},
        )

        conn = self._connection
        conn.execute(
            """
            INSERT INTO operations (id, seq, timestamp, operation, entry_id, entry_name, summary, payload)
            VALUES (?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM operations), ?, ?, ?, ?, ?, ?)
            """,
            [
                record.id,
                record.timestamp,
                record.operation,
                record.entry_id,
                record.entry_name,
                record.summary,
                json.dumps(record.payload),
            ],
        )
        conn.commit()
        return record

    def recent(self, limit: int = 20) -> list[JournalRecord]:
        """Most recent records, oldest first.

        Args:
            limit: Maximum records to return.

        Returns:
            List of records in chronological order.
        """
        cursor = self._connection.execute(
            "SELECT * FROM operations ORDER BY seq DESC LIMIT ?",
            [limit],
        )
        return [JournalRecord.from_row(row) for row in reversed(cursor.fetchall())]

    def for_entry(self, entry_id: str) -> list[JournalRecord]:
        """All records concerning one entry, oldest first.

        Args:
            entry_id: Entry identifier.

        Returns:
            List of matching records.
        """
        cursor = self._connection.execute(
            "SELECT * FROM operations WHERE entry_id = ? ORDER BY seq ASC",
            [entry_id],
        )
        return [JournalRecord.from_row(row) for row in cursor.fetchall()]

    # ---- Utility Methods ------------------------------------------------------------------------------------

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> JournalStore:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()
