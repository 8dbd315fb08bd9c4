"""
Integration tests for the SDK client against an in-process server.

Tests cover:
- Entity and entry helpers
- Filtered list queries
- History decoding
- Error mapping from server error codes
"""

import httpx
import pytest
import pytest_asyncio

from chaincode.ngo_ledger.api import create_app
from chaincode.ngo_ledger.config import LedgerConfig, StoreBackend, StoreConfig
from chaincode.ngo_ledger.dispatch import Chaincode
from chaincode.ngo_ledger.handlers import build_registry
from chaincode.ngo_ledger.store.memory import InMemoryStateStore
from sdk.ngo_sdk import (
    AlreadyExistsError,
    ConnectionError,
    HistoryUnavailableError,
    InvocationError,
    LedgerClient,
    NotFoundError,
)


@pytest_asyncio.fixture
async def ledger():
    store = InMemoryStateStore()
    await store.connect()
    app = create_app(
        chaincode=Chaincode(store, build_registry()),
        config=LedgerConfig(store=StoreConfig(backend=StoreBackend.MEMORY)),
    )
    async with LedgerClient(base_url="http://test", transport=httpx.ASGITransport(app=app)) as client:
        yield client
    await store.close()


@pytest_asyncio.fixture
async def farm(ledger):
    await ledger.create_entity(
        {"entityRegistrationNumber": "6322", "entityName": "ABC Farm", "entityType": "Farm"}
    )
    await ledger.create_entity(
        {"entityRegistrationNumber": "7410", "entityName": "XYZ Mill", "entityType": "Mill"}
    )
    await ledger.create_entry(
        {
            "entryId": "12341234",
            "orderId": "902-12344321-56788765",
            "entityRegistrationNumber": "6322",
            "entryName": "Cotton Growing",
            "date": {"Harvest Date": "12344321000"},
        }
    )
    return ledger


class TestEntities:
    """Entity helpers."""

    @pytest.mark.asyncio
    async def test_get_entity(self, farm):
        entity = await farm.get_entity("6322")
        assert entity["entityName"] == "ABC Farm"
        assert entity["docType"] == "entity"

    @pytest.mark.asyncio
    async def test_query_all_entities(self, farm):
        results = await farm.query_all_entities()
        assert [r.key for r in results] == ["entity6322", "entity7410"]

    @pytest.mark.asyncio
    async def test_query_all_entities_filtered(self, farm):
        results = await farm.query_all_entities(entityType="Mill")
        assert [r.record["entityName"] for r in results] == ["XYZ Mill"]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, farm):
        await farm.update_entity({"entityRegistrationNumber": "7410", "address": "Mill road"})
        assert (await farm.get_entity("7410"))["address"] == "Mill road"

        await farm.delete_entity("7410")
        with pytest.raises(NotFoundError):
            await farm.get_entity("7410")

    @pytest.mark.asyncio
    async def test_duplicate(self, farm):
        with pytest.raises(AlreadyExistsError) as exc_info:
            await farm.create_entity({"entityRegistrationNumber": "6322"})
        assert exc_info.value.code == "ALREADY_EXISTS"
        assert exc_info.value.fcn == "createEntity"


class TestEntries:
    """Entry helpers."""

    @pytest.mark.asyncio
    async def test_get_entry(self, farm):
        entry = await farm.get_entry("12341234")
        assert entry["date"] == {"Harvest Date": "12344321000"}

    @pytest.mark.asyncio
    async def test_by_order_and_entity(self, farm):
        by_order = await farm.query_entries_by_order_id("902-12344321-56788765")
        by_entity = await farm.query_entries_by_entity("6322")

        assert [r.key for r in by_order] == ["entry12341234"]
        assert [r.key for r in by_entity] == ["entry12341234"]
        assert await farm.query_entries_by_entity("7410") == []

    @pytest.mark.asyncio
    async def test_missing_parent(self, ledger):
        with pytest.raises(NotFoundError) as exc_info:
            await ledger.create_entry({"entryId": "1", "entityRegistrationNumber": "404"})
        assert exc_info.value.code == "PARENT_NOT_FOUND"
        assert await ledger.query_all_entries() == []


class TestHistory:
    """History helper."""

    @pytest.mark.asyncio
    async def test_history(self, farm):
        await farm.update_entity({"entityRegistrationNumber": "6322", "entityName": "ABC Farms"})
        await farm.delete_entity("6322")

        history = await farm.query_history("6322", doc_type="entity")

        assert [h.is_delete for h in history] == [False, False, True]
        assert history[1].record["entityName"] == "ABC Farms"
        assert history[2].record is None
        assert all(h.timestamp_ms > 0 for h in history)

    @pytest.mark.asyncio
    async def test_no_history(self, ledger):
        with pytest.raises(HistoryUnavailableError):
            await ledger.query_history("entity999")


class TestErrors:
    """Transport and protocol failures."""

    @pytest.mark.asyncio
    async def test_unknown_operation(self, ledger):
        with pytest.raises(InvocationError) as exc_info:
            await ledger.invoke("dropLedger")
        assert exc_info.value.status_code == 404
        assert exc_info.value.code == "UNKNOWN_OPERATION"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with LedgerClient(
            base_url="http://ledger.invalid", transport=httpx.MockTransport(refuse)
        ) as client:
            with pytest.raises(ConnectionError) as exc_info:
                await client.get_entity("6322")

        assert exc_info.value.base_url == "http://ledger.invalid"
