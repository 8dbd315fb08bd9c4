"""
API module for the NGO ledger.

Provides the HTTP (FastAPI) surface that forwards named invocations to the
chaincode dispatcher.
"""

from .http_server import InvokeRequest, create_app

__all__ = ["create_app", "InvokeRequest"]
