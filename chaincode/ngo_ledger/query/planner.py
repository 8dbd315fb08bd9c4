"""
Range planning for selector queries.

The store has no secondary index, so "all records of a docType" is served by
scanning the band of keys that begin with the docType:

    start = docType + "0"   (inclusive)
    end   = docType + "z"   (exclusive)

This only covers identifiers whose first character sorts in ["0", "z").
Keys are built through keys.make_key, which logs identifiers outside the band.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..errors import InvalidArgumentError, MissingDocTypeError
from ..keys import SCAN_HIGH, SCAN_LOW

logger = logging.getLogger(__name__)

DOC_TYPE_FIELD = "docType"


@dataclass(frozen=True)
class KeyRange:
    """Half-open key range [start, end)."""

    start: str
    end: str


def parse_query(query: str | bytes | Mapping[str, Any]) -> dict[str, Any]:
    """Extract the selector from a query of the form {"selector": {...}}.

    Args:
        query: JSON text, bytes or an already-decoded mapping

    Returns:
        The selector mapping

    Raises:
        InvalidArgumentError: If the query is not a JSON object
        MissingDocTypeError: If there is no selector or no selector.docType
    """
    if isinstance(query, (str, bytes)):
        try:
            query = json.loads(query)
        except json.JSONDecodeError as e:
            raise InvalidArgumentError(f"Query is not valid JSON: {e}") from e

    if not isinstance(query, Mapping):
        raise InvalidArgumentError("Query must be a JSON object")

    selector = query.get("selector")
    if not isinstance(selector, Mapping):
        raise MissingDocTypeError(f"Cannot run a query without a selector: {query}")

    selector = dict(selector)
    _require_doc_type(selector)
    return selector


def _require_doc_type(selector: Mapping[str, Any]) -> str:
    doc_type = selector.get(DOC_TYPE_FIELD)
    if not isinstance(doc_type, str) or not doc_type:
        raise MissingDocTypeError(
            f"Cannot run a query without a docType element: {dict(selector)}"
        )
    return doc_type


def plan_range(selector: Mapping[str, Any]) -> KeyRange:
    """Compute the scan bounds bracketing every key of the selector's docType.

    Raises:
        MissingDocTypeError: If the selector has no docType
    """
    doc_type = _require_doc_type(selector)
    key_range = KeyRange(start=doc_type + SCAN_LOW, end=doc_type + SCAN_HIGH)
    logger.debug(
        "Planned range scan",
        extra={"doc_type": doc_type, "start": key_range.start, "end": key_range.end},
    )
    return key_range
