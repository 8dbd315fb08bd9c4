"""
NGO Ledger Python SDK - client library for the ledger HTTP API.

Example:
    >>> from sdk.ngo_sdk import LedgerClient
    >>>
    >>> async with LedgerClient("http://localhost:8081") as ledger:
    ...     await ledger.create_entity({"entityRegistrationNumber": "6322"})
    ...     entities = await ledger.query_all_entities()

Version: 1.0.0
"""

__version__ = "1.0.0"

from .client import HistoryRecord, LedgerClient, QueryResult
from .errors import (
    AlreadyExistsError,
    ConnectionError,
    HistoryUnavailableError,
    InvocationError,
    LedgerClientError,
    NotFoundError,
)

__all__ = [
    # Version
    "__version__",
    # Client
    "LedgerClient",
    "QueryResult",
    "HistoryRecord",
    # Errors
    "LedgerClientError",
    "ConnectionError",
    "InvocationError",
    "NotFoundError",
    "AlreadyExistsError",
    "HistoryUnavailableError",
]
