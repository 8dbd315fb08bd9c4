"""
Contract tests for state store backends.

Every test runs against both InMemoryStateStore and SqliteStateStore.

Tests cover:
- Point reads and writes
- Half-open ascending range scans
- Per-key history including deletions
- Cursor lifecycle
- Connection handling
"""

import sqlite3

import pytest

from chaincode.ngo_ledger.config import StoreBackend, StoreConfig
from chaincode.ngo_ledger.errors import HistoryUnavailableError
from chaincode.ngo_ledger.store import (
    InMemoryStateStore,
    SqliteStateStore,
    StateStore,
    StoreConnectionError,
    create_store,
)


async def _keys(cursor):
    return [kv.key async for kv in cursor]


class TestStoreContract:
    """Behavior shared by all backends."""

    @pytest.mark.asyncio
    async def test_implements_protocol(self, store):
        assert isinstance(store, StateStore)
        assert store.is_connected

    @pytest.mark.asyncio
    async def test_get_absent_is_empty(self, store):
        assert await store.get_state("entity999") == b""

    @pytest.mark.asyncio
    async def test_put_then_get(self, store):
        await store.put_state("entity001", b'{"a": 1}', tx_id="tx1")
        assert await store.get_state("entity001") == b'{"a": 1}'

    @pytest.mark.asyncio
    async def test_put_overwrites(self, store):
        await store.put_state("entity001", b"v1", tx_id="tx1")
        await store.put_state("entity001", b"v2", tx_id="tx2")
        assert await store.get_state("entity001") == b"v2"

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.put_state("entity001", b"v1", tx_id="tx1")
        await store.delete_state("entity001", tx_id="tx2")
        assert await store.get_state("entity001") == b""

    @pytest.mark.asyncio
    async def test_range_is_half_open_and_ordered(self, store):
        for key in ("entity002", "entry001", "entity001", "entityz", "entity0", "entit"):
            await store.put_state(key, b"x", tx_id="tx")

        cursor = await store.get_state_by_range("entity0", "entityz")
        assert await _keys(cursor) == ["entity0", "entity001", "entity002"]

    @pytest.mark.asyncio
    async def test_range_unbounded_end(self, store):
        for key in ("a1", "b1", "c1"):
            await store.put_state(key, b"x", tx_id="tx")

        cursor = await store.get_state_by_range("b", "")
        assert await _keys(cursor) == ["b1", "c1"]

    @pytest.mark.asyncio
    async def test_range_excludes_deleted(self, store):
        await store.put_state("entity001", b"x", tx_id="tx1")
        await store.put_state("entity002", b"x", tx_id="tx1")
        await store.delete_state("entity001", tx_id="tx2")

        cursor = await store.get_state_by_range("entity0", "entityz")
        assert await _keys(cursor) == ["entity002"]

    @pytest.mark.asyncio
    async def test_empty_range(self, store):
        cursor = await store.get_state_by_range("entity0", "entityz")
        assert await cursor.next() is None
        assert cursor.closed

    @pytest.mark.asyncio
    async def test_cursor_close_is_idempotent(self, store):
        await store.put_state("entity001", b"x", tx_id="tx1")
        cursor = await store.get_state_by_range("entity0", "entityz")

        await cursor.close()
        await cursor.close()

        assert cursor.closed
        assert await cursor.next() is None

    @pytest.mark.asyncio
    async def test_history_records_every_write(self, store):
        await store.put_state("entity001", b"v1", tx_id="tx1")
        await store.put_state("entity001", b"v2", tx_id="tx2")
        await store.delete_state("entity001", tx_id="tx3")

        cursor = await store.get_history_for_key("entity001")
        mods = [m async for m in cursor]

        assert [m.tx_id for m in mods] == ["tx1", "tx2", "tx3"]
        assert [m.is_delete for m in mods] == [False, False, True]
        assert [m.value for m in mods] == [b"v1", b"v2", b""]
        assert mods[0].timestamp_ms <= mods[1].timestamp_ms <= mods[2].timestamp_ms
        assert cursor.closed

    @pytest.mark.asyncio
    async def test_history_is_per_key(self, store):
        await store.put_state("entity001", b"v1", tx_id="tx1")
        await store.put_state("entity002", b"w1", tx_id="tx2")

        cursor = await store.get_history_for_key("entity002")
        assert [m.tx_id async for m in cursor] == ["tx2"]

    @pytest.mark.asyncio
    async def test_history_unavailable_for_unwritten_key(self, store):
        with pytest.raises(HistoryUnavailableError):
            await store.get_history_for_key("entity999")


class TestInMemoryStateStore:
    """Backend-specific behavior of the in-memory store."""

    @pytest.mark.asyncio
    async def test_requires_connection(self):
        store = InMemoryStateStore()
        with pytest.raises(StoreConnectionError):
            await store.get_state("entity001")

    @pytest.mark.asyncio
    async def test_counts_cursors(self):
        store = InMemoryStateStore()
        await store.connect()
        store.put_raw("entity001", b"x")

        cursor = await store.get_state_by_range("entity0", "entityz")
        assert store.open_cursor_count == 1
        [kv async for kv in cursor]
        assert store.open_cursor_count == 0
        assert store.cursors_released == 1

    @pytest.mark.asyncio
    async def test_range_is_snapshot(self):
        store = InMemoryStateStore()
        await store.connect()
        store.put_raw("entity001", b"x")

        cursor = await store.get_state_by_range("entity0", "entityz")
        await store.put_state("entity002", b"y", tx_id="tx")

        assert [kv.key async for kv in cursor] == ["entity001"]

    @pytest.mark.asyncio
    async def test_history_disabled(self):
        store = InMemoryStateStore(history_enabled=False)
        await store.connect()
        await store.put_state("entity001", b"x", tx_id="tx1")

        with pytest.raises(HistoryUnavailableError):
            await store.get_history_for_key("entity001")


class TestSqliteStateStore:
    """Backend-specific behavior of the SQLite store."""

    @pytest.mark.asyncio
    async def test_requires_connection(self, data_dir):
        store = SqliteStateStore(data_dir)
        with pytest.raises(StoreConnectionError):
            await store.get_state("entity001")

    @pytest.mark.asyncio
    async def test_data_survives_reconnect(self, data_dir):
        store = SqliteStateStore(data_dir, wal_mode=False)
        await store.connect()
        await store.put_state("entity001", b"v1", tx_id="tx1")
        await store.close()

        reopened = SqliteStateStore(data_dir, wal_mode=False)
        await reopened.connect()
        assert await reopened.get_state("entity001") == b"v1"
        cursor = await reopened.get_history_for_key("entity001")
        assert [m.tx_id async for m in cursor] == ["tx1"]

    @pytest.mark.asyncio
    async def test_history_disabled(self, data_dir):
        store = SqliteStateStore(data_dir, history_enabled=False, wal_mode=False)
        await store.connect()
        await store.put_state("entity001", b"x", tx_id="tx1")

        with pytest.raises(HistoryUnavailableError):
            await store.get_history_for_key("entity001")

    @pytest.mark.asyncio
    async def test_records_schema_version(self, data_dir):
        store = SqliteStateStore(data_dir, wal_mode=False)
        await store.connect()

        conn = sqlite3.connect(str(store.db_path))
        try:
            versions = [row[0] for row in conn.execute("SELECT version FROM schema_version")]
        finally:
            conn.close()

        assert versions == [SqliteStateStore.SCHEMA_VERSION]


class TestCreateStore:
    """Tests for the store factory."""

    def test_memory_backend(self):
        store = create_store(StoreConfig(backend=StoreBackend.MEMORY, history_enabled=False))
        assert isinstance(store, InMemoryStateStore)
        assert store.history_enabled is False

    def test_sqlite_backend(self, data_dir):
        store = create_store(StoreConfig(backend=StoreBackend.SQLITE, data_dir=data_dir))
        assert isinstance(store, SqliteStateStore)
        assert store.db_path.parent.as_posix() == data_dir
