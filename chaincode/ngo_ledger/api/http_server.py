"""
HTTP invocation surface for the NGO ledger.

Exposes the chaincode's named operations over REST:
- POST /v1/invoke   {"fcn": "<operation>", "args": ["<json blob>"]}
- GET  /v1/operations
- GET  /v1/health

Invariants:
    - A successful invocation returns the handler payload bytes verbatim
    - Failures return {"error": ..., "error_code": ...}
    - The HTTP layer adds no semantics of its own; it only maps Response
      status and error codes onto HTTP status codes

How to change safely:
    - Keep the invoke body compatible with sdk.ngo_sdk.LedgerClient
    - Add new operations in handlers.build_registry(), not here
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from ..config import HttpConfig, LedgerConfig
from ..dispatch import Chaincode
from ..handlers import build_registry
from ..store import create_store

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "UNKNOWN_OPERATION": 404,
    "INTERNAL": 500,
}


class InvokeRequest(BaseModel):
    """Request to run a named operation."""

    fcn: str = Field(..., min_length=1, description="Operation name")
    args: list[str] = Field(default_factory=list, description="Invocation parameters")


def get_chaincode(request: Request) -> Chaincode:
    """Get chaincode from app state."""
    return request.app.state.chaincode


def create_app(
    chaincode: Chaincode | None = None,
    config: LedgerConfig | None = None,
) -> FastAPI:
    """Create the HTTP application.

    Args:
        chaincode: Ready chaincode to serve. When omitted, the app builds a
            store and chaincode from config on startup and closes the store
            on shutdown.
        config: Server configuration (loaded from env if not provided)

    Returns:
        FastAPI application
    """
    config = config or LedgerConfig.from_env()
    http: HttpConfig = config.http

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if chaincode is not None:
            yield
            return

        store = create_store(config.store)
        await store.connect()
        app.state.chaincode = Chaincode(store, build_registry())
        await app.state.chaincode.init()

        yield

        await store.close()

    app = FastAPI(
        title="NGO Ledger",
        description="Document queries and audit history over an ordered key-value store.",
        version="1.0.0",
        lifespan=lifespan,
    )
    if chaincode is not None:
        app.state.chaincode = chaincode

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(http.cors_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.post("/v1/invoke")
    async def invoke(body: InvokeRequest, request: Request) -> Response:
        result = await get_chaincode(request).invoke(body.fcn, body.args)
        if result.ok:
            return Response(content=result.payload, media_type="application/json")

        status = STATUS_BY_CODE.get(result.error_code or "", 400)
        return JSONResponse(
            {"error": result.message, "error_code": result.error_code},
            status_code=status,
        )

    @app.get("/v1/operations")
    async def operations(request: Request) -> dict:
        return {"operations": list(get_chaincode(request).registry)}

    @app.get("/v1/health")
    async def health(request: Request) -> dict:
        store = get_chaincode(request).store
        return {
            "status": "healthy" if store.is_connected else "unavailable",
            "service": "ngo-ledger",
        }

    return app
