"""
NGO Ledger - document queries and audit history over an ordered key-value store.

This package records supply-chain entities and the entries they log, on top
of a store that only offers:
- point lookup by exact key
- lexicographic range scan between a start and an end key
- a per-key history of every write and deletion

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌─────────────────┐
    │   Client    │────▶│    HTTP     │────▶│    Chaincode    │
    │   (SDK)     │     │   Server    │     │   dispatcher    │
    └─────────────┘     └─────────────┘     └────────┬────────┘
                                                     │
                                                     ▼
                        ┌─────────────────────────────────────────┐
                        │   Handlers (entity / entry / ledger)    │
                        └─────────────────────────────────────────┘
                                             │
                        ┌────────────────────┼────────────────────┐
                        ▼                    ▼                    ▼
                   ┌─────────┐         ┌──────────┐         ┌─────────┐
                   │ Lookup  │         │ Planner +│         │ History │
                   │         │         │ Evaluator│         │         │
                   └────┬────┘         └────┬─────┘         └────┬────┘
                        └───────────────────┼────────────────────┘
                                            ▼
                                 ┌─────────────────────┐
                                 │ State store (SQLite │
                                 │   or in-memory)     │
                                 └─────────────────────┘

Invariants:
    - Keys are docType + identifier; every stored record carries its docType
    - Selector queries scan [docType+"0", docType+"z") and filter by equality
    - Results keep the store's key order
    - Every write is stamped with its invocation's transaction id

How to change safely:
    - New document types need a key prefix that is not a prefix of another
    - New operations are added to handlers.build_registry()
"""

from ._version import __version__

__all__ = ["__version__"]
