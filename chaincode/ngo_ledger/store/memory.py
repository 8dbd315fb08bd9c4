"""
In-memory ordered state store.

This module provides a simple in-memory StateStore for:
- Unit tests
- Integration tests
- Local development without a database file

Invariants:
    - All data is lost on process exit
    - Range scans observe a snapshot taken when the cursor is opened
    - History is kept per key in write order, deletions included

How to change safely:
    - Keep interface compatible with the StateStore protocol
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import asyncio
import bisect
import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from ..errors import HistoryUnavailableError
from .base import (
    KV,
    HistoryQueryIterator,
    KeyModification,
    StateQueryIterator,
    StoreConnectionError,
)

logger = logging.getLogger(__name__)


class _SnapshotRangeIterator(StateQueryIterator):
    """Range cursor over a list of KV taken at open time."""

    def __init__(self, store: InMemoryStateStore, items: List[KV]) -> None:
        super().__init__()
        self._store = store
        self._items = items
        self._pos = 0

    async def _fetch(self) -> Optional[KV]:
        if self._pos >= len(self._items):
            return None
        item = self._items[self._pos]
        self._pos += 1
        return item

    async def _release(self) -> None:
        self._items = []
        self._store._cursor_released()


class _SnapshotHistoryIterator(HistoryQueryIterator):
    """History cursor over a copy of one key's log."""

    def __init__(self, store: InMemoryStateStore, entries: List[KeyModification]) -> None:
        super().__init__()
        self._store = store
        self._entries = entries
        self._pos = 0

    async def _fetch(self) -> Optional[KeyModification]:
        if self._pos >= len(self._entries):
            return None
        entry = self._entries[self._pos]
        self._pos += 1
        return entry

    async def _release(self) -> None:
        self._entries = []
        self._store._cursor_released()


class InMemoryStateStore:
    """In-memory implementation of StateStore.

    Keys are kept in a sorted list next to a value dict so range scans are
    a bisect plus a slice.

    Thread safety:
        Writes are serialized with an asyncio lock. Safe to use from
        multiple coroutines.

    Example:
        >>> store = InMemoryStateStore()
        >>> await store.connect()
        >>> await store.put_state("entity001", b'{"docType": "entity"}', tx_id="tx1")
        >>> it = await store.get_state_by_range("entity0", "entityz")
    """

    def __init__(self, history_enabled: bool = True) -> None:
        """Initialize in-memory store.

        Args:
            history_enabled: Whether to keep per-key history logs
        """
        self.history_enabled = history_enabled
        self._keys: List[str] = []
        self._values: Dict[str, bytes] = {}
        self._history: Dict[str, List[KeyModification]] = defaultdict(list)
        self._connected = False
        self._lock = asyncio.Lock()
        self.cursors_opened = 0
        self.cursors_released = 0

    @property
    def is_connected(self) -> bool:
        """Whether connected (always true after connect())."""
        return self._connected

    async def connect(self) -> None:
        """Connect (no-op for in-memory)."""
        self._connected = True
        logger.debug("InMemoryStateStore connected")

    async def close(self) -> None:
        """Close and clear all data."""
        self._connected = False
        self._keys.clear()
        self._values.clear()
        self._history.clear()
        logger.debug("InMemoryStateStore closed")

    def _check_connected(self) -> None:
        if not self._connected:
            raise StoreConnectionError("Not connected")

    async def get_state(self, key: str) -> bytes:
        self._check_connected()
        return self._values.get(key, b"")

    async def put_state(self, key: str, value: bytes, tx_id: str) -> None:
        self._check_connected()

        async with self._lock:
            if key not in self._values:
                bisect.insort(self._keys, key)
            self._values[key] = value
            self._record(key, tx_id, is_delete=False, value=value)

        logger.debug("State written", extra={"key": key, "tx_id": tx_id})

    async def delete_state(self, key: str, tx_id: str) -> None:
        self._check_connected()

        async with self._lock:
            if key in self._values:
                del self._values[key]
                idx = bisect.bisect_left(self._keys, key)
                del self._keys[idx]
            self._record(key, tx_id, is_delete=True, value=b"")

        logger.debug("State deleted", extra={"key": key, "tx_id": tx_id})

    def _record(self, key: str, tx_id: str, is_delete: bool, value: bytes) -> None:
        if not self.history_enabled:
            return
        self._history[key].append(
            KeyModification(
                tx_id=tx_id,
                timestamp_ms=int(time.time() * 1000),
                is_delete=is_delete,
                value=value,
            )
        )

    async def get_state_by_range(self, start_key: str, end_key: str) -> StateQueryIterator:
        self._check_connected()

        lo = bisect.bisect_left(self._keys, start_key)
        hi = bisect.bisect_left(self._keys, end_key) if end_key else len(self._keys)
        items = [KV(key=k, value=self._values[k]) for k in self._keys[lo:hi]]

        self.cursors_opened += 1
        return _SnapshotRangeIterator(self, items)

    async def get_history_for_key(self, key: str) -> HistoryQueryIterator:
        self._check_connected()

        if not self.history_enabled:
            raise HistoryUnavailableError("History is disabled for this store", key=key)
        entries = self._history.get(key)
        if not entries:
            raise HistoryUnavailableError(f"No history recorded for key: {key}", key=key)

        self.cursors_opened += 1
        return _SnapshotHistoryIterator(self, list(entries))

    def _cursor_released(self) -> None:
        self.cursors_released += 1

    # Testing helpers

    @property
    def open_cursor_count(self) -> int:
        """Cursors opened but not yet released (testing helper)."""
        return self.cursors_opened - self.cursors_released


    def put_raw(self, key: str, value: bytes, tx_id: str = "seed") -> None:
        """Write without awaiting, for seeding test fixtures (testing helper)."""
        if key not in self._values:
            bisect.insort(self._keys, key)
        self._values[key] = value
        self._record(key, tx_id, is_delete=False, value=value)
