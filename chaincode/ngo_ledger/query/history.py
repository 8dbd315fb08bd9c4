"""
History reconstruction for a single key.

Replays the store's per-key change log into HistoryEntry records, oldest
first. Transaction id, timestamp and deletion flag are copied verbatim;
values are decoded with the same raw-text fallback as range scans, and
deletions carry no record.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from ..store.base import StateStore
from .serializer import HistoryEntry, decode_record

logger = logging.getLogger(__name__)


async def reconstruct(store: StateStore, key: str) -> AsyncIterator[HistoryEntry]:
    """Yield the history of a key in the store's chronological order.

    Args:
        store: State store
        key: Fully qualified storage key

    Yields:
        HistoryEntry per recorded mutation

    Raises:
        HistoryUnavailableError: If the store has no history cursor for the key
    """
    cursor = await store.get_history_for_key(key)
    count = 0

    try:
        while True:
            mod = await cursor.next()
            if mod is None:
                break
            count += 1

            if mod.is_delete or not mod.value:
                record, decoded = None, True
            else:
                record, decoded = decode_record(mod.value, key=key)

            yield HistoryEntry(
                tx_id=mod.tx_id,
                timestamp_ms=mod.timestamp_ms,
                is_delete=mod.is_delete,
                record=record,
                decoded=decoded,
            )
    finally:
        await cursor.close()
        logger.debug("History replay finished", extra={"key": key, "entries": count})
