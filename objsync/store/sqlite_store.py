"""
SQLite-backed primary store for pinned objects.

Each store instance owns one pin (e.g. ``currentUser``) in a shared SQLite
file. Pins are rows of the ``pinned_objects`` table, so the same file can
serve several stores and be queried locally.

Invariants:
    - A pin holds at most one row; set replaces it in one transaction
    - A pin found with several rows is corrupt: it is cleared and reported
      as empty
    - All writes use explicit transactions (BEGIN IMMEDIATE)

How to change safely:
    - Schema changes must be backward compatible (bump SCHEMA_VERSION)
    - Keep the pin_name index; every operation filters on it

Table schema:
    pinned_objects:
        - pin_name TEXT
        - class_name TEXT
        - object_id TEXT (NULL for unsaved objects)
        - json TEXT (CurrentObjectCoder snapshot)
        - is_current INTEGER
        - updated_at INTEGER (Unix ms)
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from .base import SnapshotCodec, StoredObjectSnapshot

logger = logging.getLogger(__name__)


class SqliteObjectStore:
    """ObjectStore persisting a pinned object in SQLite.

    Args:
        db_path: SQLite database file
        pin_name: Pin owned by this store
        class_name: Class name of the pinned object
        registry: Type registry used to instantiate the object
        busy_timeout_ms: SQLite busy timeout

    Example:
        >>> store = SqliteObjectStore("/tmp/objsync.db", "currentUser", "_User", registry)
        >>> await store.set(user)
        >>> await store.count()
        1
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        db_path: str | Path,
        pin_name: str,
        class_name: str,
        registry: Any,
        busy_timeout_ms: int = 5000,
    ) -> None:
        self.db_path = Path(db_path)
        self.pin_name = pin_name
        self.busy_timeout_ms = busy_timeout_ms
        self._codec = SnapshotCodec(class_name, registry)
        self._schema_ready = False

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, creating the schema on first use."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            if not self._schema_ready:
                self._create_schema(conn)
                self._schema_ready = True
            yield conn
        finally:
            conn.close()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS pinned_objects (
                pin_name TEXT NOT NULL,
                class_name TEXT NOT NULL,
                object_id TEXT,
                json TEXT NOT NULL,
                is_current INTEGER NOT NULL DEFAULT 1,
                updated_at INTEGER NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_pinned_pin ON pinned_objects(pin_name);
            CREATE INDEX IF NOT EXISTS idx_pinned_class
                ON pinned_objects(class_name, object_id);

            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES (1, strftime('%s', 'now') * 1000);
        """)

    # -- ObjectStore ----------------------------------------------------

    async def get(self) -> Any | None:
        snapshot = await asyncio.to_thread(self._get_snapshot)
        if snapshot is None:
            return None
        return self._codec.from_snapshot(snapshot)

    async def set(self, obj: Any) -> None:
        snapshot = self._codec.to_snapshot(obj)
        await asyncio.to_thread(self._replace_snapshot, snapshot)
        logger.debug(
            "Pinned object",
            extra={"pin": self.pin_name, "class_name": snapshot.class_name, "object_id": snapshot.object_id},
        )

    async def exists(self) -> bool:
        return await asyncio.to_thread(self._count_pin) > 0

    async def delete(self) -> None:
        await asyncio.to_thread(self._delete_pin)

    # -- local querying -------------------------------------------------

    async def count(self, class_name: str | None = None) -> int:
        """Number of pinned rows in the database, optionally per class."""
        return await asyncio.to_thread(self._count_all, class_name)

    async def find(
        self,
        class_name: str | None = None,
        object_id: str | None = None,
    ) -> list[StoredObjectSnapshot]:
        """Pinned snapshots across all pins, filtered by class and/or id."""
        return await asyncio.to_thread(self._find, class_name, object_id)

    # -- sync helpers (run on a worker thread) --------------------------

    def _get_snapshot(self) -> StoredObjectSnapshot | None:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT class_name, json, is_current FROM pinned_objects WHERE pin_name = ?",
                (self.pin_name,),
            ).fetchall()

            if not rows:
                return None
            if len(rows) > 1:
                logger.warning(
                    "Multiple objects found for pin, clearing it",
                    extra={"pin": self.pin_name, "rows": len(rows)},
                )
                conn.execute("DELETE FROM pinned_objects WHERE pin_name = ?", (self.pin_name,))
                return None

            row = rows[0]
            return StoredObjectSnapshot.from_json(
                row["class_name"], row["json"], is_current=bool(row["is_current"])
            )

    def _replace_snapshot(self, snapshot: StoredObjectSnapshot) -> None:
        now = int(time.time() * 1000)
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.execute("DELETE FROM pinned_objects WHERE pin_name = ?", (self.pin_name,))
                conn.execute(
                    """
                    INSERT INTO pinned_objects (pin_name, class_name, object_id, json,
                                                is_current, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        self.pin_name,
                        snapshot.class_name,
                        snapshot.object_id,
                        snapshot.to_json(),
                        1 if snapshot.is_current else 0,
                        now,
                    ),
                )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise

    def _count_pin(self) -> int:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM pinned_objects WHERE pin_name = ?",
                (self.pin_name,),
            ).fetchone()
            return int(row["n"])

    def _delete_pin(self) -> None:
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.execute("DELETE FROM pinned_objects WHERE pin_name = ?", (self.pin_name,))
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise

    def _count_all(self, class_name: str | None) -> int:
        with self._get_connection() as conn:
            if class_name is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM pinned_objects").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM pinned_objects WHERE class_name = ?",
                    (class_name,),
                ).fetchone()
            return int(row["n"])

    def _find(self, class_name: str | None, object_id: str | None) -> list[StoredObjectSnapshot]:
        clauses = []
        params: list[Any] = []
        if class_name is not None:
            clauses.append("class_name = ?")
            params.append(class_name)
        if object_id is not None:
            clauses.append("object_id = ?")
            params.append(object_id)
        sql = "SELECT class_name, json, is_current FROM pinned_objects"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY updated_at DESC"

        with self._get_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [
            StoredObjectSnapshot.from_json(
                row["class_name"], row["json"], is_current=bool(row["is_current"])
            )
            for row in rows
        ]

