"""Test helpers shared across the suite."""

from __future__ import annotations

import json
from typing import Optional

from chaincode.ngo_ledger.store.base import KV, StateQueryIterator


class ListCursor(StateQueryIterator):
    """Range cursor over a fixed list that counts releases.

    Args:
        items: (key, value) pairs to yield
        fail_at: Index at which _fetch raises RuntimeError
    """

    def __init__(self, items: list[tuple[str, bytes]], fail_at: Optional[int] = None) -> None:
        super().__init__()
        self._items = [KV(key=k, value=v) for k, v in items]
        self._pos = 0
        self._fail_at = fail_at
        self.releases = 0

    async def _fetch(self) -> Optional[KV]:
        if self._fail_at is not None and self._pos == self._fail_at:
            raise RuntimeError("cursor failure")
        if self._pos >= len(self._items):
            return None
        item = self._items[self._pos]
        self._pos += 1
        return item

    async def _release(self) -> None:
        self.releases += 1


def doc(**fields) -> bytes:
    """Encode a record the way handlers store it."""
    return json.dumps(fields).encode("utf-8")
