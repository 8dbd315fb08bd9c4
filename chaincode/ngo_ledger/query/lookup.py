"""Point lookups by exact key."""

from __future__ import annotations

import logging

from ..errors import NotFoundError
from ..store.base import StateStore

logger = logging.getLogger(__name__)


async def lookup(store: StateStore, key: str) -> bytes:
    """Read the stored bytes for a key.

    Raises:
        NotFoundError: If the value is absent or empty
    """
    value = await store.get_state(key)
    if not value:
        raise NotFoundError(f"Key does not exist: {key}", key=key)
    logger.debug("Point lookup", extra={"key": key, "size": len(value)})
    return value


async def exists(store: StateStore, key: str) -> bool:
    return bool(await store.get_state(key))
