"""
Streaming selector evaluation over range scans.

The evaluator pulls entries from a range cursor one at a time, decodes each
value and yields the ones that satisfy the selector.

Invariants:
    - Entries are yielded in cursor order (ascending key), never reordered
    - An entry is yielded at most once
    - A value that is not JSON is yielded with its raw text when the selector
      has only a docType, and never matches a field predicate
    - The cursor is closed exactly once, including when the consumer stops
      early or an error is raised mid-scan
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from ..store.base import StateQueryIterator
from .planner import DOC_TYPE_FIELD
from .serializer import QueryResultEntry, decode_record

logger = logging.getLogger(__name__)

_MISSING = object()


def predicates(selector: Mapping[str, Any]) -> dict[str, Any]:
    """Equality constraints of a selector, docType excluded."""
    return {k: v for k, v in selector.items() if k != DOC_TYPE_FIELD}


def _equal(actual: Any, expected: Any) -> bool:
    # JSON true/false never equal 1/0
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    return actual == expected


def matches(record: Any, constraints: Mapping[str, Any]) -> bool:
    """Whether a decoded record satisfies every equality constraint.

    Values compare by JSON equality: 1 equals 1.0, but booleans only equal
    booleans.

    Args:
        record: Decoded record
        constraints: Field -> expected value, docType excluded

    Returns:
        True if all constraints hold (vacuously true when there are none)
    """
    if not constraints:
        return True
    if not isinstance(record, Mapping):
        return False
    for name, expected in constraints.items():
        actual = record.get(name, _MISSING)
        if actual is _MISSING or not _equal(actual, expected):
            return False
    return True


async def evaluate(
    cursor: StateQueryIterator,
    selector: Mapping[str, Any],
) -> AsyncIterator[QueryResultEntry]:
    """Yield the scanned entries that satisfy the selector.

    Args:
        cursor: Open range cursor; owned and closed by this generator
        selector: Selector whose docType produced the cursor's range

    Yields:
        QueryResultEntry for each retained entry, in key order
    """
    constraints = predicates(selector)
    scanned = 0
    retained = 0

    try:
        while True:
            kv = await cursor.next()
            if kv is None:
                break
            scanned += 1
            if not kv.value:
                continue

            record, decoded = decode_record(kv.value, key=kv.key)
            if not matches(record, constraints):
                continue

            retained += 1
            yield QueryResultEntry(key=kv.key, record=record, decoded=decoded)
    finally:
        await cursor.close()
        logger.debug(
            "Selector scan finished",
            extra={"selector": dict(selector), "scanned": scanned, "retained": retained},
        )


async def collect(entries: AsyncIterator[Any]) -> list[Any]:
    """Drain an async sequence into a list, closing it if draining fails."""
    results = []
    try:
        async for entry in entries:
            results.append(entry)
    finally:
        aclose = getattr(entries, "aclose", None)
        if aclose is not None:
            await aclose()
    return results
