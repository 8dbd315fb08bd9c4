"""
NGO Ledger Test Suite.

This package contains:
- unit/: Unit tests (no external dependencies)
- integration/: Integration tests (chaincode, HTTP API and SDK over both stores)
"""
