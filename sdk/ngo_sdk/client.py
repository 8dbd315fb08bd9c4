"""
NGO ledger client for the Python SDK.

This module provides the main client interface:
- LedgerClient: connection to the ledger's HTTP invocation endpoint
- QueryResult / HistoryRecord: decoded payloads

Example:
    >>> async with LedgerClient("http://localhost:8081") as ledger:
    ...     await ledger.create_entity({"entityRegistrationNumber": "6322", "entityName": "ABC Farm"})
    ...     farms = await ledger.query_all_entities(entityType="Farm")
    ...     history = await ledger.query_history("6322", doc_type="entity")

Invariants:
    - Every call is one invocation; the client keeps no state between calls
    - Failed invocations raise an SDK error, never return partial data
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .errors import ConnectionError, error_from_response

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """A record returned by a list query.

    Attributes:
        key: Storage key
        record: Decoded record, or raw text if the stored value was not JSON
    """

    key: str
    record: Any


@dataclass
class HistoryRecord:
    """One past state of a key.

    Attributes:
        tx_id: Transaction id
        timestamp_ms: Write time (Unix ms)
        is_delete: Whether the state is a deletion
        record: Record at that point (None for deletions)
    """

    tx_id: str
    timestamp_ms: int
    is_delete: bool
    record: Any


class LedgerClient:
    """Async client for the ledger HTTP API.

    Args:
        base_url: Server URL, e.g. http://localhost:8081
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests use httpx.ASGITransport)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8081",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> LedgerClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def invoke(self, fcn: str, args: dict[str, Any] | None = None) -> bytes:
        """Run a named operation and return its raw payload.

        Raises:
            ConnectionError: If the server cannot be reached
            InvocationError: If the invocation failed
        """
        body = {"fcn": fcn, "args": [json.dumps(args or {})]}
        try:
            response = await self._client.post("/v1/invoke", json=body)
        except httpx.TransportError as e:
            raise ConnectionError(f"Cannot reach ledger server: {e}", self.base_url) from e

        if response.status_code != 200:
            try:
                error_body = response.json()
            except ValueError:
                error_body = {"error": response.text}
            raise error_from_response(fcn, response.status_code, error_body)

        logger.debug("Invoke succeeded", extra={"fcn": fcn, "size": len(response.content)})
        return response.content

    async def _results(self, fcn: str, args: dict[str, Any] | None = None) -> list[QueryResult]:
        payload = json.loads(await self.invoke(fcn, args))
        return [QueryResult(key=item["Key"], record=item["Record"]) for item in payload]

    # Entities

    async def create_entity(self, entity: dict[str, Any]) -> None:
        await self.invoke("createEntity", entity)

    async def update_entity(self, entity: dict[str, Any]) -> None:
        await self.invoke("updateEntity", entity)

    async def delete_entity(self, registration_number: str) -> None:
        await self.invoke("deleteEntity", {"entityRegistrationNumber": registration_number})

    async def get_entity(self, registration_number: str) -> dict[str, Any]:
        payload = await self.invoke(
            "queryEntity", {"entityRegistrationNumber": registration_number}
        )
        return json.loads(payload)

    async def query_all_entities(self, **filters: Any) -> list[QueryResult]:
        return await self._results("queryAllEntities", filters)

    # Entries

    async def create_entry(self, entry: dict[str, Any]) -> None:
        await self.invoke("createEntry", entry)

    async def get_entry(self, entry_id: str) -> dict[str, Any]:
        return json.loads(await self.invoke("queryEntry", {"entryId": entry_id}))

    async def query_all_entries(self, **filters: Any) -> list[QueryResult]:
        return await self._results("queryAllEntries", filters)

    async def query_entries_by_order_id(self, order_id: str) -> list[QueryResult]:
        return await self._results("queryEntriesByOrderId", {"orderId": order_id})

    async def query_entries_by_entity(self, registration_number: str) -> list[QueryResult]:
        return await self._results(
            "queryEntriesByEntity", {"entityRegistrationNumber": registration_number}
        )

    # Audit

    async def query_history(self, key: str, doc_type: str | None = None) -> list[HistoryRecord]:
        """Return every recorded state of a key, oldest first.

        Args:
            key: Full storage key, or the bare identifier when doc_type is given
            doc_type: Optional docType prefix
        """
        args: dict[str, Any] = {"key": key}
        if doc_type:
            args["docType"] = doc_type
        payload = json.loads(await self.invoke("queryHistoryForKey", args))
        return [
            HistoryRecord(
                tx_id=item["TxId"],
                timestamp_ms=item["Timestamp"],
                is_delete=item["IsDelete"],
                record=item["Record"],
            )
            for item in payload
        ]
