"""
Error types for the NGO ledger.

Every failure that aborts an invocation is a LedgerError. The dispatcher
reports these verbatim as the invocation's error response; anything else is
treated as an internal failure.

Invariants:
    - All invocation-level errors inherit from LedgerError
    - Each error kind carries a stable code for programmatic handling
    - Decode failures on individual records are not errors (they are logged
      and the raw value is kept)
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base exception for all ledger errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    code = "LEDGER_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or type(self).code
        self.details = details or {}


class MissingDocTypeError(LedgerError):
    """Selector has no docType discriminator."""

    code = "MISSING_DOC_TYPE"


class NotFoundError(LedgerError):
    """Point lookup target is absent or empty."""

    code = "NOT_FOUND"

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message, details={"key": key})
        self.key = key


class ParentNotFoundError(NotFoundError):
    """A record references a parent record that does not exist."""

    code = "PARENT_NOT_FOUND"


class AlreadyExistsError(LedgerError):
    """Create attempted on a key that already holds a value."""

    code = "ALREADY_EXISTS"

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message, details={"key": key})
        self.key = key


class HistoryUnavailableError(LedgerError):
    """The store cannot produce a history cursor for the key."""

    code = "HISTORY_UNAVAILABLE"

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message, details={"key": key})
        self.key = key


class InvalidArgumentError(LedgerError):
    """Invocation arguments are malformed or fail validation.

    Attributes:
        errors: Individual validation messages
    """

    code = "INVALID_ARGUMENT"

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message, details={"errors": errors or []})
        self.errors = errors or []


class UnknownOperationError(LedgerError):
    """No handler is registered under the requested operation name."""

    code = "UNKNOWN_OPERATION"

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"No chaincode function with name: {operation} found",
            details={"operation": operation},
        )
        self.operation = operation
