"""
SQLite ordered state store for the NGO ledger.

This module manages a single SQLite database that stores:
- Current state (one row per live key)
- An append-only history log of every write and delete

Invariants:
    - A write updates state and appends history in one transaction
    - Keys compare with SQLite's BINARY collation (byte order)
    - Each open cursor owns its own connection and closes it on release

How to change safely:
    - Schema migrations must be backward compatible
    - Use transactions for all write operations
    - Never share a cursor's connection with writes

Table schema:
    state:
        - key TEXT PRIMARY KEY
        - value BLOB
        - updated_at INTEGER (Unix ms)

    history:
        - seq INTEGER PRIMARY KEY AUTOINCREMENT
        - key TEXT
        - tx_id TEXT
        - timestamp_ms INTEGER (Unix ms)
        - is_delete INTEGER (0/1)
        - value BLOB
        - INDEX on (key, seq)
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..errors import HistoryUnavailableError
from .base import (
    KV,
    HistoryQueryIterator,
    KeyModification,
    StateQueryIterator,
    StoreConnectionError,
)

logger = logging.getLogger(__name__)


class _SqliteRangeIterator(StateQueryIterator):
    """Range cursor streaming rows from its own connection."""

    def __init__(self, conn: sqlite3.Connection, cursor: sqlite3.Cursor) -> None:
        super().__init__()
        self._conn = conn
        self._cursor = cursor

    async def _fetch(self) -> KV | None:
        row = self._cursor.fetchone()
        if row is None:
            return None
        return KV(key=row["key"], value=bytes(row["value"]))

    async def _release(self) -> None:
        self._cursor.close()
        self._conn.close()


class _SqliteHistoryIterator(HistoryQueryIterator):
    """History cursor streaming one key's log from its own connection."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        cursor: sqlite3.Cursor,
        first: sqlite3.Row,
    ) -> None:
        super().__init__()
        self._conn = conn
        self._cursor = cursor
        self._pending: sqlite3.Row | None = first

    async def _fetch(self) -> KeyModification | None:
        if self._pending is not None:
            row, self._pending = self._pending, None
        else:
            row = self._cursor.fetchone()
        if row is None:
            return None
        return KeyModification(
            tx_id=row["tx_id"],
            timestamp_ms=row["timestamp_ms"],
            is_delete=bool(row["is_delete"]),
            value=bytes(row["value"] or b""),
        )

    async def _release(self) -> None:
        self._cursor.close()
        self._conn.close()


class SqliteStateStore:
    """SQLite-backed implementation of StateStore.

    Thread safety:
        Each operation opens its own connection. SQLite handles
        concurrent readers via WAL mode; writes are serialized with an
        asyncio lock.

    Example:
        >>> store = SqliteStateStore("/var/lib/ngo-ledger")
        >>> await store.connect()
        >>> await store.put_state("entity6322", b'{"docType": "entity"}', tx_id="tx1")
        >>> await store.get_state("entity6322")
        b'{"docType": "entity"}'
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        data_dir: str,
        db_name: str = "state.db",
        history_enabled: bool = True,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        """Initialize the SQLite store.

        Args:
            data_dir: Directory for the database file
            db_name: Database file name
            history_enabled: Whether to append to the history log
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
        """
        self.data_dir = Path(data_dir)
        self.db_name = db_name
        self.history_enabled = history_enabled
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self._connected = False
        self._lock = asyncio.Lock()

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
        if self.wal_mode:
            conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        return conn

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a short-lived connection.

        Raises:
            StoreConnectionError: If the store is not connected
        """
        if not self._connected:
            raise StoreConnectionError("Not connected")
        conn = self._open()
        try:
            yield conn
        finally:
            conn.close()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS state (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL,
                updated_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS history (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                key TEXT NOT NULL,
                tx_id TEXT NOT NULL,
                timestamp_ms INTEGER NOT NULL,
                is_delete INTEGER NOT NULL DEFAULT 0,
                value BLOB
            );

            CREATE INDEX IF NOT EXISTS idx_history_key ON history(key, seq);
        """)
        conn.execute(
            """
            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES (?, ?)
            """,
            (self.SCHEMA_VERSION, int(time.time() * 1000)),
        )

    async def connect(self) -> None:
        """Create the database file and schema if they don't exist."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            conn = self._open()
        except (OSError, sqlite3.Error) as e:
            raise StoreConnectionError(f"Cannot open state database {self.db_path}: {e}") from e
        try:
            self._create_schema(conn)
        finally:
            conn.close()
        self._connected = True
        logger.info(f"Opened state database: {self.db_path}")

    async def close(self) -> None:
        self._connected = False
        logger.debug("SqliteStateStore closed")

    async def get_state(self, key: str) -> bytes:
        with self._get_connection() as conn:
            row = conn.execute("SELECT value FROM state WHERE key = ?", (key,)).fetchone()
            return bytes(row["value"]) if row else b""

    async def put_state(self, key: str, value: bytes, tx_id: str) -> None:
        now = int(time.time() * 1000)

        async with self._lock:
            with self._get_connection() as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    conn.execute(
                        """
                        INSERT INTO state (key, value, updated_at) VALUES (?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET
                            value = excluded.value,
                            updated_at = excluded.updated_at
                        """,
                        (key, value, now),
                    )
                    if self.history_enabled:
                        self._append_history(conn, key, tx_id, now, False, value)
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise

        logger.debug("State written", extra={"key": key, "tx_id": tx_id})

    async def delete_state(self, key: str, tx_id: str) -> None:
        now = int(time.time() * 1000)

        async with self._lock:
            with self._get_connection() as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    conn.execute("DELETE FROM state WHERE key = ?", (key,))
                    if self.history_enabled:
                        self._append_history(conn, key, tx_id, now, True, None)
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise

        logger.debug("State deleted", extra={"key": key, "tx_id": tx_id})

    def _append_history(
        self,
        conn: sqlite3.Connection,
        key: str,
        tx_id: str,
        timestamp_ms: int,
        is_delete: bool,
        value: bytes | None,
    ) -> None:
        conn.execute(
            """
            INSERT INTO history (key, tx_id, timestamp_ms, is_delete, value)
            VALUES (?, ?, ?, ?, ?)
            """,
            (key, tx_id, timestamp_ms, 1 if is_delete else 0, value),
        )

    async def get_state_by_range(self, start_key: str, end_key: str) -> StateQueryIterator:
        if not self._connected:
            raise StoreConnectionError("Not connected")

        conn = self._open()
        try:
            if end_key:
                cursor = conn.execute(
                    "SELECT key, value FROM state WHERE key >= ? AND key < ? ORDER BY key",
                    (start_key, end_key),
                )
            else:
                cursor = conn.execute(
                    "SELECT key, value FROM state WHERE key >= ? ORDER BY key",
                    (start_key,),
                )
        except Exception:
            conn.close()
            raise
        return _SqliteRangeIterator(conn, cursor)

    async def get_history_for_key(self, key: str) -> HistoryQueryIterator:
        if not self._connected:
            raise StoreConnectionError("Not connected")
        if not self.history_enabled:
            raise HistoryUnavailableError("History is disabled for this store", key=key)

        conn = self._open()
        try:
            cursor = conn.execute(
                """
                SELECT tx_id, timestamp_ms, is_delete, value
                FROM history WHERE key = ? ORDER BY seq
                """,
                (key,),
            )
            first = cursor.fetchone()
        except Exception:
            conn.close()
            raise

        if first is None:
            cursor.close()
            conn.close()
            raise HistoryUnavailableError(f"No history recorded for key: {key}", key=key)

        return _SqliteHistoryIterator(conn, cursor, first)
