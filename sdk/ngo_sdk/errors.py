"""
Error types for the NGO ledger SDK.

This module defines all exception types raised by the SDK:
- LedgerClientError: Base exception
- ConnectionError: Server connection issues
- InvocationError: The server rejected or failed an invocation
- NotFoundError / AlreadyExistsError / HistoryUnavailableError: specific
  invocation failures, chosen from the server's error_code

Invariants:
    - All errors inherit from LedgerClientError
    - Errors include the server error code when there is one
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LedgerClientError(Exception):
    """Base exception for all SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "LEDGER_CLIENT_ERROR"
        self.details = details or {}


class ConnectionError(LedgerClientError):
    """Failed to reach the ledger server.

    Raised when:
    - Server is unreachable
    - Connection times out
    """

    def __init__(self, message: str, base_url: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="CONNECTION_ERROR",
            details={"base_url": base_url},
        )
        self.base_url = base_url


class InvocationError(LedgerClientError):
    """The server reported a failed invocation.

    Attributes:
        fcn: Operation name
        status_code: HTTP status code
    """

    def __init__(
        self,
        message: str,
        fcn: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code=code or "INVOCATION_ERROR",
            details={"fcn": fcn, "status_code": status_code},
        )
        self.fcn = fcn
        self.status_code = status_code


class NotFoundError(InvocationError):
    """Record (or a parent record) does not exist."""


class AlreadyExistsError(InvocationError):
    """Record already exists."""


class HistoryUnavailableError(InvocationError):
    """Server has no history for the key."""


ERRORS_BY_CODE = {
    "NOT_FOUND": NotFoundError,
    "PARENT_NOT_FOUND": NotFoundError,
    "ALREADY_EXISTS": AlreadyExistsError,
    "HISTORY_UNAVAILABLE": HistoryUnavailableError,
}


def error_from_response(
    fcn: str,
    status_code: int,
    body: Dict[str, Any],
) -> InvocationError:
    """Build the SDK error for a failed invoke response body."""
    code = body.get("error_code")
    message = body.get("error") or f"Invocation {fcn} failed with HTTP {status_code}"
    cls = ERRORS_BY_CODE.get(code or "", InvocationError)
    return cls(message, fcn=fcn, code=code, status_code=status_code)
