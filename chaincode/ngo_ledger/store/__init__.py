"""
Ordered state store abstraction for the NGO ledger.

This module provides a pluggable key-value backend supporting:
- SQLite (single-file persistent store)
- In-memory (for testing and local development)

Every backend offers point get/put/delete, half-open range scans in key
order, and a per-key history log of all writes and deletions.

Invariants:
    - Range scans are ascending and half-open
    - History is chronological per key, deletions included
    - Cursors release their resources exactly once

How to change safely:
    - New backends must implement the StateStore protocol
    - Run the store contract tests against every backend
"""

from .base import (
    KV,
    HistoryQueryIterator,
    KeyModification,
    QueryIterator,
    StateQueryIterator,
    StateStore,
    StoreConnectionError,
    StoreError,
    create_store,
)
from .memory import InMemoryStateStore
from .sqlite import SqliteStateStore

__all__ = [
    # Protocol and types
    "StateStore",
    "QueryIterator",
    "StateQueryIterator",
    "HistoryQueryIterator",
    "KV",
    "KeyModification",
    "StoreError",
    "StoreConnectionError",
    # Factory
    "create_store",
    # Implementations
    "InMemoryStateStore",
    "SqliteStateStore",
]
