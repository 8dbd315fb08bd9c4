"""Ledger-wide operations: initialization and per-key audit history."""

from __future__ import annotations

import logging

from ..dispatch import InvocationContext
from ..errors import InvalidArgumentError
from ..keys import split_key
from .models import HistoryRequest, parse_args

logger = logging.getLogger(__name__)


async def init_ledger(ctx: InvocationContext, args: str) -> None:
    logger.info("Ledger initialized", extra={"tx_id": ctx.tx_id})


async def query_history_for_key(ctx: InvocationContext, args: str) -> bytes:
    """Return every recorded state of a key, oldest first.

    Arguments are {"key": "6322", "docType": "entity"} or, without docType,
    the full storage key {"key": "entity6322"}. Only entity and entry keys
    have history here.
    """
    request = parse_args(HistoryRequest, args)
    key = request.storage_key
    try:
        doc_type, _ = split_key(key)
    except ValueError as e:
        raise InvalidArgumentError(str(e), errors=[f"key: {e}"]) from e

    logger.debug("History requested", extra={"key": key, "doc_type": doc_type})
    return await ctx.queries.query_history(key)
