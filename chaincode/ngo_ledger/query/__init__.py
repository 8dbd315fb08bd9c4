"""
Document queries over the ordered state store.

This module emulates selector-based document queries using only point
lookups and range scans:
- planner: selector -> [docType+"0", docType+"z") scan bounds
- evaluator: streaming equality filter over the scan
- history: per-key change log -> audit entries
- serializer: JSON payloads for results and history

Invariants:
    - Results keep the store's key order; nothing is re-sorted
    - A malformed stored value never aborts a scan
    - Every cursor opened here is closed exactly once
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..store.base import StateStore
from .evaluator import collect, evaluate, matches, predicates
from .history import reconstruct
from .lookup import exists, lookup
from .planner import KeyRange, parse_query, plan_range
from .serializer import (
    HistoryEntry,
    QueryResultEntry,
    decode_record,
    serialize_history,
    serialize_results,
)

logger = logging.getLogger(__name__)


class LedgerQueries:
    """Query operations bound to one state store.

    Example:
        >>> queries = LedgerQueries(store)
        >>> entries = await queries.select({"docType": "entity"})
        >>> payload = await queries.query_by_string('{"selector": {"docType": "entity"}}')
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store

    async def query_by_key(self, key: str) -> bytes:
        """Return the stored bytes for a key.

        Raises:
            NotFoundError: If the key is absent or empty
        """
        return await lookup(self.store, key)

    async def select(self, selector: Mapping[str, Any]) -> list[QueryResultEntry]:
        """Run a selector and return the matching entries in key order.

        Raises:
            MissingDocTypeError: If the selector has no docType
        """
        key_range = plan_range(selector)
        cursor = await self.store.get_state_by_range(key_range.start, key_range.end)
        return await collect(evaluate(cursor, selector))

    async def query_by_string(self, query: str | bytes | Mapping[str, Any]) -> bytes:
        """Run a {"selector": {...}} query and return the JSON result payload."""
        selector = parse_query(query)
        entries = await self.select(selector)
        logger.info(
            "Selector query",
            extra={"selector": selector, "results": len(entries)},
        )
        return serialize_results(entries)

    async def history(self, key: str) -> list[HistoryEntry]:
        """Return the history of a key, oldest first.

        Raises:
            HistoryUnavailableError: If the store has no history for the key
        """
        return await collect(reconstruct(self.store, key))

    async def query_history(self, key: str) -> bytes:
        """Return the JSON history payload for a key."""
        entries = await self.history(key)
        logger.info("History query", extra={"key": key, "entries": len(entries)})
        return serialize_history(entries)


__all__ = [
    "LedgerQueries",
    "KeyRange",
    "QueryResultEntry",
    "HistoryEntry",
    "parse_query",
    "plan_range",
    "evaluate",
    "matches",
    "predicates",
    "collect",
    "reconstruct",
    "lookup",
    "exists",
    "decode_record",
    "serialize_results",
    "serialize_history",
]
