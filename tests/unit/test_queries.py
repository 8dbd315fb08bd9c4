"""
Unit tests for point lookup, history reconstruction and the query facade.

Tests cover:
- lookup/exists semantics
- History ordering, deletion flags and raw-value fallback
- Cursor release for history replays
- JSON payload shapes
"""

import json

import pytest

from chaincode.ngo_ledger.errors import HistoryUnavailableError, MissingDocTypeError, NotFoundError
from chaincode.ngo_ledger.query import LedgerQueries, collect, exists, lookup, reconstruct
from chaincode.ngo_ledger.query.serializer import (
    HistoryEntry,
    QueryResultEntry,
    decode_record,
    serialize_history,
    serialize_results,
)
from chaincode.ngo_ledger.store.memory import InMemoryStateStore
from tests.helpers import doc


class TestLookup:
    """Tests for lookup and exists."""

    @pytest.mark.asyncio
    async def test_lookup_returns_bytes(self, store):
        await store.put_state("entity001", doc(docType="entity"), tx_id="tx1")
        assert json.loads(await lookup(store, "entity001")) == {"docType": "entity"}

    @pytest.mark.asyncio
    async def test_lookup_missing(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            await lookup(store, "entity999")
        assert exc_info.value.key == "entity999"

    @pytest.mark.asyncio
    async def test_exists(self, store):
        await store.put_state("entity001", b"x", tx_id="tx1")
        assert await exists(store, "entity001")
        assert not await exists(store, "entity999")


class TestReconstruct:
    """Tests for history reconstruction."""

    @pytest.mark.asyncio
    async def test_insert_update_delete(self, store):
        await store.put_state("entity001", doc(entityName="Alpha"), tx_id="tx1")
        await store.put_state("entity001", doc(entityName="Alpha Co"), tx_id="tx2")
        await store.delete_state("entity001", tx_id="tx3")

        entries = await collect(reconstruct(store, "entity001"))

        assert len(entries) == 3
        assert [e.is_delete for e in entries] == [False, False, True]
        assert [e.tx_id for e in entries] == ["tx1", "tx2", "tx3"]
        assert entries[0].record == {"entityName": "Alpha"}
        assert entries[1].record == {"entityName": "Alpha Co"}
        assert entries[2].record is None

    @pytest.mark.asyncio
    async def test_malformed_value_kept_raw(self, store):
        await store.put_state("entity001", b"<xml/>", tx_id="tx1")
        await store.put_state("entity001", doc(entityName="Alpha"), tx_id="tx2")

        entries = await collect(reconstruct(store, "entity001"))

        assert entries[0].record == "<xml/>"
        assert entries[0].decoded is False
        assert entries[1].record == {"entityName": "Alpha"}

    @pytest.mark.asyncio
    async def test_unavailable(self, store):
        with pytest.raises(HistoryUnavailableError):
            await collect(reconstruct(store, "entity999"))

    @pytest.mark.asyncio
    async def test_cursor_released_once(self):
        store = InMemoryStateStore()
        await store.connect()
        await store.put_state("entity001", b"v1", tx_id="tx1")
        await store.put_state("entity001", b"v2", tx_id="tx2")

        await collect(reconstruct(store, "entity001"))

        assert store.cursors_opened == 1
        assert store.cursors_released == 1

    @pytest.mark.asyncio
    async def test_cursor_released_on_early_exit(self):
        store = InMemoryStateStore()
        await store.connect()
        await store.put_state("entity001", b"v1", tx_id="tx1")
        await store.put_state("entity001", b"v2", tx_id="tx2")

        gen = reconstruct(store, "entity001")
        await gen.__anext__()
        await gen.aclose()

        assert store.open_cursor_count == 0


class TestSerializer:
    """Tests for decoding and payload shapes."""

    def test_decode_record(self):
        assert decode_record(b'{"a": 1}') == ({"a": 1}, True)
        assert decode_record(b"plain") == ("plain", False)

    def test_results_shape(self):
        payload = serialize_results([QueryResultEntry(key="entity001", record={"a": 1})])
        assert json.loads(payload) == [{"Key": "entity001", "Record": {"a": 1}}]

    def test_history_shape(self):
        payload = serialize_history(
            [HistoryEntry(tx_id="tx1", timestamp_ms=1700000000000, is_delete=True, record=None)]
        )
        assert json.loads(payload) == [
            {"TxId": "tx1", "Timestamp": 1700000000000, "IsDelete": True, "Record": None}
        ]


class TestLedgerQueries:
    """Tests for the query facade."""

    @pytest.fixture
    def entities(self):
        return {
            "entity001": doc(docType="entity", entityRegistrationNumber="001", entityName="Alpha"),
            "entity002": doc(docType="entity", entityRegistrationNumber="002", entityName="Beta"),
            "entry001": doc(docType="entry", entryId="001", entityRegistrationNumber="001"),
        }

    @pytest.mark.asyncio
    async def test_select_all_of_type(self, store, entities):
        for key, value in entities.items():
            await store.put_state(key, value, tx_id="tx")

        queries = LedgerQueries(store)
        payload = json.loads(await queries.query_by_string('{"selector": {"docType": "entity"}}'))

        assert [item["Key"] for item in payload] == ["entity001", "entity002"]
        assert payload[1]["Record"]["entityName"] == "Beta"

    @pytest.mark.asyncio
    async def test_select_with_filter(self, store, entities):
        for key, value in entities.items():
            await store.put_state(key, value, tx_id="tx")

        queries = LedgerQueries(store)
        entries = await queries.select({"docType": "entity", "entityName": "Beta"})

        assert [e.key for e in entries] == ["entity002"]

    @pytest.mark.asyncio
    async def test_select_requires_doc_type(self, store):
        with pytest.raises(MissingDocTypeError):
            await LedgerQueries(store).select({"entityName": "Beta"})

    @pytest.mark.asyncio
    async def test_query_history_payload(self, store):
        await store.put_state("entity001", doc(entityName="Alpha"), tx_id="tx1")

        payload = json.loads(await LedgerQueries(store).query_history("entity001"))

        assert payload[0]["TxId"] == "tx1"
        assert payload[0]["IsDelete"] is False
        assert payload[0]["Record"] == {"entityName": "Alpha"}
