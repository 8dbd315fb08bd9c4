"""
Entry operations.

An entry is an action recorded by an entity, for example fabric creation
at a mill. Entries are stored under "entry" + entryId and always reference
an existing entity.

Example createEntry arguments:
    {
        "entryId": "12341234",
        "orderId": "902-12344321-56788765",
        "entityRegistrationNumber": "6322",
        "entryName": "Cotton Growing",
        "date": {"Harvest Date": "12344321000", "Ship Date": "56788765000"},
        "sustainabilityCert": ["BCI_Certificate_Id"],
        "carrier": "",
        "relatedDocuments": ["Link_to_farm_profile_image"],
        "imageLinks": [],
        "additionalMetadata": {}
    }
"""

from __future__ import annotations

import json
import logging

from ..dispatch import InvocationContext
from ..errors import AlreadyExistsError, ParentNotFoundError
from ..keys import ENTRY, entity_key, entry_key
from ..query import exists
from .models import (
    EntityRef,
    EntryPayload,
    EntryRef,
    OrderRef,
    equality_filters,
    load_args,
    parse_args,
)

logger = logging.getLogger(__name__)


async def create_entry(ctx: InvocationContext, args: str) -> None:
    payload = parse_args(EntryPayload, args)
    key = entry_key(payload.entryId)

    # The parent check runs before anything is written
    parent = entity_key(payload.entityRegistrationNumber)
    if not await exists(ctx.store, parent):
        raise ParentNotFoundError(
            "Cannot create entry as the Entity does not exist: "
            f"{payload.entityRegistrationNumber}",
            key=parent,
        )

    if await exists(ctx.store, key):
        raise AlreadyExistsError(f"This Entry already exists: {payload.entryId}", key=key)

    record = payload.to_record(ENTRY)
    await ctx.put_state(key, json.dumps(record).encode("utf-8"))
    logger.info("Entry created", extra={"key": key, "parent": parent, "tx_id": ctx.tx_id})


async def query_entry(ctx: InvocationContext, args: str) -> bytes:
    ref = parse_args(EntryRef, args)
    return await ctx.queries.query_by_key(entry_key(ref.entryId))


async def query_all_entries(ctx: InvocationContext, args: str) -> bytes:
    selector = {"docType": ENTRY, **equality_filters(load_args(args))}
    return await ctx.queries.query_by_string({"selector": selector})


async def query_entries_by_order_id(ctx: InvocationContext, args: str) -> bytes:
    ref = parse_args(OrderRef, args)
    return await ctx.queries.query_by_string(
        {"selector": {"docType": ENTRY, "orderId": ref.orderId}}
    )


async def query_entries_by_entity(ctx: InvocationContext, args: str) -> bytes:
    ref = parse_args(EntityRef, args)
    return await ctx.queries.query_by_string(
        {"selector": {"docType": ENTRY, "entityRegistrationNumber": ref.entityRegistrationNumber}}
    )
