"""State Store - Opaque single-key persistence.

The ledger core only ever needs three primitives from its backing store:
``get``, ``put`` and ``delete`` on byte values. There is no multi-key
atomicity and no iteration; anything resembling an index is built on top.

Two adapters are provided:
- ``MemoryStateStore``: a locked dict, used by tests and the default service
- ``SqliteStateStore``: a single key/value table in a SQLite file
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..errors import StoreUnavailable

logger = logging.getLogger(__name__)


@runtime_checkable
class StateStore(Protocol):
    """Minimal key-value contract the ledger is written against."""

    def get(self, key: str) -> bytes | None: ...

    def put(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStateStore:
    """In-memory state store.

    Example:
        store = MemoryStateStore()
        store.put("p1", b'{"id": "p1", "owner": "alice"}')
        store.get("p1")   # -> bytes
        store.delete("p1")
        store.get("p1")   # -> None
    """

    def __init__(self, initial: dict[str, bytes] | None = None):
        self._data: dict[str, bytes] = dict(initial or {})
        self._lock = threading.RLock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"State values must be bytes, got {type(value).__name__}")
        with self._lock:
            self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        """Snapshot of stored keys (diagnostics only, the core never iterates)."""
        with self._lock:
            return list(self._data)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def close(self) -> None:
        """No-op, present so both adapters share a lifecycle."""


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_state (
    key TEXT PRIMARY KEY,
    value BLOB NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


class SqliteStateStore:
    """Key-value state store backed by a single SQLite table.

    Each ``put`` and ``delete`` commits on its own, which keeps the
    store's semantics identical to the opaque external store: no two
    writes are ever atomic together.

    Example:
        with SqliteStateStore("data/pointledger.db") as store:
            store.put("_pointindex", b"[]")
            store.get("_pointindex")
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Open (and create if needed) the store.

        Args:
            db_path: Path to SQLite database file. Defaults to data/pointledger.db
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "pointledger.db"
        else:
            db_path = Path(db_path)

        db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._ensure_connection()
        self._ensure_schema()

    def _ensure_connection(self) -> None:
        if self._conn is None:
            try:
                self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
                self._conn.execute("PRAGMA journal_mode = WAL")
                self._conn.execute("PRAGMA synchronous = NORMAL")
                self._conn.execute("PRAGMA busy_timeout = 5000")
            except sqlite3.Error as e:
                self._conn = None
                raise StoreUnavailable(f"Failed to open state store {self.db_path}: {e}") from e

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to initialize state store schema: {e}") from e

    def _get_conn(self) -> sqlite3.Connection:
        self._ensure_connection()
        assert self._conn is not None
        return self._conn

    def get(self, key: str) -> bytes | None:
        with self._lock:
            try:
                cursor = self._get_conn().execute(
                    "SELECT value FROM kv_state WHERE key = ?", (key,)
                )
                row = cursor.fetchone()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Failed to get state for {key}: {e}") from e
        if row is None:
            return None
        return bytes(row[0])

    def put(self, key: str, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"State values must be bytes, got {type(value).__name__}")
        with self._lock:
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT INTO kv_state (key, value)
                    VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = datetime('now')
                    """,
                    (key, sqlite3.Binary(bytes(value))),
                )
                conn.commit()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Failed to put state for {key}: {e}") from e

    def delete(self, key: str) -> None:
        with self._lock:
            conn = self._get_conn()
            try:
                conn.execute("DELETE FROM kv_state WHERE key = ?", (key,))
                conn.commit()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Failed to delete state for {key}: {e}") from e

    def ping(self) -> None:
        """Raise ``StoreUnavailable`` if the database cannot be queried."""
        with self._lock:
            try:
                self._get_conn().execute("SELECT 1")
            except sqlite3.Error as e:
                raise StoreUnavailable(f"State store is not reachable: {e}") from e

    def count(self) -> int:
        with self._lock:
            cursor = self._get_conn().execute("SELECT COUNT(*) FROM kv_state")
            row = cursor.fetchone()
        return row[0] if row else 0

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                logger.debug("Closed state store %s", self.db_path)

    def __enter__(self) -> SqliteStateStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = ["StateStore", "MemoryStateStore", "SqliteStateStore"]
