"""
Base protocol and types for the ordered state store.

This module defines the StateStore protocol that all backends implement,
the cursor types returned by range and history scans, and store errors.

Invariants:
    - Keys compare by plain string (byte) order
    - Range scans are half-open: start <= key < end
    - Every put/delete appends exactly one entry to the key's history log
    - A cursor releases its underlying resource exactly once, whether it is
      drained, closed early, or abandoned after an error

How to change safely:
    - Protocol changes require updating all implementations
    - Keep both backends passing the shared store contract tests
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    AsyncIterator,
    Generic,
    Optional,
    Protocol,
    TypeVar,
    runtime_checkable,
)

if TYPE_CHECKING:
    from ..config import StoreConfig

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base exception for store operations."""
    pass


class StoreConnectionError(StoreError):
    """Store is not connected or the connection failed."""
    pass


@dataclass(frozen=True)
class KV:
    """A key/value pair yielded by a range scan."""
    key: str
    value: bytes


@dataclass(frozen=True)
class KeyModification:
    """One entry of a key's history log.

    Attributes:
        tx_id: Transaction that performed the write
        timestamp_ms: Write time (Unix ms)
        is_delete: Whether the write was a deletion
        value: Value written (empty for deletions)
    """
    tx_id: str
    timestamp_ms: int
    is_delete: bool
    value: bytes


T = TypeVar("T")


class QueryIterator(ABC, Generic[T]):
    """Single-pass async cursor over store results.

    Subclasses implement _fetch() and _release(). close() is idempotent and
    calls _release() once; reaching the end of the cursor closes it.

    Example:
        >>> it = await store.get_state_by_range("entity0", "entityz")
        >>> try:
        ...     async for kv in it:
        ...         print(kv.key)
        ... finally:
        ...     await it.close()
    """

    def __init__(self) -> None:
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    async def _fetch(self) -> Optional[T]:
        """Return the next item, or None when exhausted."""

    @abstractmethod
    async def _release(self) -> None:
        """Release the underlying resource."""

    async def next(self) -> Optional[T]:
        """Return the next item, or None once the cursor is exhausted."""
        if self._closed:
            return None
        item = await self._fetch()
        if item is None:
            await self.close()
        return item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._release()

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        item = await self.next()
        if item is None:
            raise StopAsyncIteration
        return item


class StateQueryIterator(QueryIterator[KV]):
    """Cursor over a key range."""


class HistoryQueryIterator(QueryIterator[KeyModification]):
    """Cursor over one key's history log."""


@runtime_checkable
class StateStore(Protocol):
    """Protocol for ordered key-value state stores.

    Implementations:
        - InMemoryStateStore: tests and local development
        - SqliteStateStore: single-file persistent store
    """

    @property
    def is_connected(self) -> bool:
        ...

    async def connect(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def get_state(self, key: str) -> bytes:
        """Point read; returns b"" when the key is absent."""
        ...

    async def put_state(self, key: str, value: bytes, tx_id: str) -> None:
        ...

    async def delete_state(self, key: str, tx_id: str) -> None:
        ...

    async def get_state_by_range(self, start_key: str, end_key: str) -> StateQueryIterator:
        """Open a cursor over start_key <= key < end_key (end_key "" is unbounded)."""
        ...

    async def get_history_for_key(self, key: str) -> HistoryQueryIterator:
        """Open a cursor over the key's history, oldest first.

        Raises:
            HistoryUnavailableError: If no history can be produced for the key
        """
        ...


def create_store(config: "StoreConfig") -> StateStore:
    """Factory function to create a state store from configuration.

    Args:
        config: Store configuration

    Returns:
        Appropriate StateStore implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StoreBackend
    from .memory import InMemoryStateStore
    from .sqlite import SqliteStateStore

    if config.backend == StoreBackend.MEMORY:
        return InMemoryStateStore(history_enabled=config.history_enabled)
    elif config.backend == StoreBackend.SQLITE:
        return SqliteStateStore(
            data_dir=config.data_dir,
            db_name=config.db_name,
            history_enabled=config.history_enabled,
            wal_mode=config.wal_mode,
            busy_timeout_ms=config.busy_timeout_ms,
        )
    else:
        raise ValueError(f"Unsupported store backend: {config.backend}")
