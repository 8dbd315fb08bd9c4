"""
Entity operations.

An entity is the unit where actions take place (a farm, a mill). Entities
are stored under "entity" + entityRegistrationNumber.

Example createEntity arguments:
    {
        "entityRegistrationNumber": "6322",
        "entityName": "ABC Farm",
        "entityType": "Farm",
        "entityDescription": "Organic cotton grower",
        "address": "1 Field street",
        "contactNumber": "82372837",
        "contactEmail": "farm@abc.com"
    }
"""

from __future__ import annotations

import json
import logging

from ..dispatch import InvocationContext
from ..errors import AlreadyExistsError, InvalidArgumentError, NotFoundError
from ..keys import ENTITY, entity_key
from ..query import decode_record, exists
from .models import EntityPayload, EntityRef, equality_filters, load_args, parse_args

logger = logging.getLogger(__name__)

# Fields an update may not change
IMMUTABLE_FIELDS = ("docType", "entityRegistrationNumber")


async def create_entity(ctx: InvocationContext, args: str) -> None:
    payload = parse_args(EntityPayload, args)
    key = entity_key(payload.entityRegistrationNumber)

    if await exists(ctx.store, key):
        raise AlreadyExistsError(
            f"This Entity already exists: {payload.entityRegistrationNumber}", key=key
        )

    record = payload.to_record(ENTITY)
    await ctx.put_state(key, json.dumps(record).encode("utf-8"))
    logger.info("Entity created", extra={"key": key, "tx_id": ctx.tx_id})


async def update_entity(ctx: InvocationContext, args: str) -> None:
    """Merge the given fields into an existing entity."""
    payload = parse_args(EntityPayload, args)
    key = entity_key(payload.entityRegistrationNumber)

    current = await ctx.get_state(key)
    if not current:
        raise NotFoundError(
            f"Cannot update as the Entity does not exist: {payload.entityRegistrationNumber}",
            key=key,
        )

    record, decoded = decode_record(current, key=key)
    if not decoded or not isinstance(record, dict):
        raise InvalidArgumentError(
            "Cannot update as the stored Entity is not a JSON object: "
            f"{payload.entityRegistrationNumber}",
            errors=[f"{key}: stored value is not a JSON object"],
        )

    for name, value in payload.to_record(ENTITY).items():
        if name not in IMMUTABLE_FIELDS:
            record[name] = value

    await ctx.put_state(key, json.dumps(record).encode("utf-8"))
    logger.info("Entity updated", extra={"key": key, "tx_id": ctx.tx_id})


async def delete_entity(ctx: InvocationContext, args: str) -> None:
    ref = parse_args(EntityRef, args)
    key = entity_key(ref.entityRegistrationNumber)

    if not await exists(ctx.store, key):
        raise NotFoundError(
            f"Cannot delete as the Entity does not exist: {ref.entityRegistrationNumber}",
            key=key,
        )

    await ctx.delete_state(key)
    logger.info("Entity deleted", extra={"key": key, "tx_id": ctx.tx_id})


async def query_entity(ctx: InvocationContext, args: str) -> bytes:
    ref = parse_args(EntityRef, args)
    return await ctx.queries.query_by_key(entity_key(ref.entityRegistrationNumber))


async def query_all_entities(ctx: InvocationContext, args: str) -> bytes:
    """List entities, optionally narrowed by equality filters in args."""
    selector = {"docType": ENTITY, **equality_filters(load_args(args))}
    return await ctx.queries.query_by_string({"selector": selector})
