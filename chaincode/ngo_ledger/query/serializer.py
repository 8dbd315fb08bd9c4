"""
Record decoding and result packaging.

Stored values are JSON documents. A value that does not decode is kept as
its raw text so one malformed record never aborts a scan.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryResultEntry:
    """A scanned record and its storage key.

    Attributes:
        key: Storage key
        record: Decoded JSON value, or the raw text if decoding failed
        decoded: Whether record holds decoded JSON
    """

    key: str
    record: Any
    decoded: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"Key": self.key, "Record": self.record}


@dataclass(frozen=True)
class HistoryEntry:
    """One past state of a key.

    Attributes:
        tx_id: Transaction that wrote this state
        timestamp_ms: Write time (Unix ms)
        is_delete: Whether this state is a deletion
        record: Decoded JSON value, raw text if decoding failed, None for deletions
        decoded: Whether record holds decoded JSON
    """

    tx_id: str
    timestamp_ms: int
    is_delete: bool
    record: Any
    decoded: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "TxId": self.tx_id,
            "Timestamp": self.timestamp_ms,
            "IsDelete": self.is_delete,
            "Record": self.record,
        }


def decode_record(raw: bytes, key: str | None = None) -> tuple[Any, bool]:
    """Decode a stored value as JSON, falling back to its raw text.

    Args:
        raw: Stored bytes
        key: Storage key, for logging only

    Returns:
        Tuple of (record, decoded)
    """
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text), True
    except json.JSONDecodeError as e:
        logger.warning(
            "Stored value is not valid JSON, keeping raw value",
            extra={"key": key, "error": str(e)},
        )
        return text, False


def serialize_results(entries: Iterable[QueryResultEntry]) -> bytes:
    """Package scan results as a JSON array of {Key, Record}."""
    return json.dumps([e.to_dict() for e in entries]).encode("utf-8")


def serialize_history(entries: Iterable[HistoryEntry]) -> bytes:
    """Package history entries as a JSON array of {TxId, Timestamp, IsDelete, Record}."""
    return json.dumps([e.to_dict() for e in entries]).encode("utf-8")
