"""
Invocation dispatch for the NGO ledger.

An invocation names an operation and carries a list of string parameters.
The dispatcher looks the name up in an explicit HandlerRegistry, runs the
handler inside an InvocationContext and wraps the outcome in a Response.

Invariants:
    - Operation names resolve only through the registry
    - Each invocation gets its own transaction id; every write it makes is
      stamped with that id in the store's history log
    - Handler failures become error responses; nothing is retried

How to change safely:
    - Register new operations in handlers.build_registry()
    - Keep operation names stable; clients call them by name
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from typing import Protocol

from .errors import LedgerError, UnknownOperationError
from .query import LedgerQueries
from .store.base import StateStore

logger = logging.getLogger(__name__)

OK = 200
ERROR = 500


@dataclass
class Response:
    """Outcome of an invocation.

    Attributes:
        status: OK (200) or ERROR (500)
        payload: Result bytes on success
        message: Error message on failure
        error_code: LedgerError code on failure
    """

    status: int
    payload: bytes = b""
    message: str = ""
    error_code: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == OK

    @classmethod
    def success(cls, payload: bytes | None = None) -> Response:
        return cls(status=OK, payload=payload or b"")

    @classmethod
    def error(cls, message: str, error_code: str | None = None) -> Response:
        return cls(status=ERROR, message=message, error_code=error_code)


@dataclass
class InvocationContext:
    """Per-invocation view of the store.

    Attributes:
        store: State store
        fcn: Operation name
        params: Invocation parameters
        tx_id: Transaction id for this invocation
        queries: Query operations bound to the store
    """

    store: StateStore
    fcn: str
    params: list[str] = field(default_factory=list)
    tx_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        self.queries = LedgerQueries(self.store)

    @property
    def args(self) -> str:
        """The JSON argument blob (first parameter), "{}" when absent."""
        return self.params[0] if self.params else "{}"

    async def get_state(self, key: str) -> bytes:
        return await self.store.get_state(key)

    async def put_state(self, key: str, value: bytes) -> None:
        await self.store.put_state(key, value, tx_id=self.tx_id)

    async def delete_state(self, key: str) -> None:
        await self.store.delete_state(key, tx_id=self.tx_id)


class Handler(Protocol):
    """A registered operation."""

    async def invoke(self, ctx: InvocationContext, args: str) -> bytes | None:
        ...


HandlerFn = Callable[[InvocationContext, str], Awaitable["bytes | None"]]


@dataclass(frozen=True)
class FunctionHandler:
    """Adapts a coroutine function to the Handler protocol."""

    fn: HandlerFn

    async def invoke(self, ctx: InvocationContext, args: str) -> bytes | None:
        return await self.fn(ctx, args)


class HandlerRegistry:
    """Explicit mapping from operation name to handler.

    Example:
        >>> registry = HandlerRegistry()
        >>> registry.register("queryEntity", query_entity)
        >>> registry.get("queryEntity")
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler | HandlerFn) -> None:
        """Register a handler or coroutine function under a name.

        Raises:
            ValueError: If the name is already registered
        """
        if name in self._handlers:
            raise ValueError(f"Operation already registered: {name}")
        if not hasattr(handler, "invoke"):
            handler = FunctionHandler(handler)
        self._handlers[name] = handler

    def get(self, name: str) -> Handler:
        """Resolve an operation name.

        Raises:
            UnknownOperationError: If nothing is registered under the name
        """
        try:
            return self._handlers[name]
        except KeyError:
            raise UnknownOperationError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._handlers))

    def __len__(self) -> int:
        return len(self._handlers)


class Chaincode:
    """Routes named invocations to registered handlers.

    Example:
        >>> chaincode = Chaincode(store, build_registry())
        >>> response = await chaincode.invoke("queryAllEntities", ["{}"])
        >>> response.ok
        True
    """

    def __init__(self, store: StateStore, registry: HandlerRegistry) -> None:
        self.store = store
        self.registry = registry

    async def init(self) -> Response:
        """Called when the ledger is instantiated or upgraded."""
        logger.info("Ledger chaincode instantiated", extra={"operations": len(self.registry)})
        return Response.success()

    async def invoke(self, fcn: str, params: list[str] | None = None) -> Response:
        """Run the operation registered under fcn.

        Args:
            fcn: Operation name
            params: Invocation parameters (first one is the JSON argument blob)

        Returns:
            Response wrapping the handler's payload or the failure
        """
        try:
            handler = self.registry.get(fcn)
        except UnknownOperationError as e:
            logger.error(f"Invoke failed: {e.message}")
            return Response.error(e.message, e.code)

        ctx = InvocationContext(store=self.store, fcn=fcn, params=list(params or []))
        start = time.time()

        try:
            payload = await handler.invoke(ctx, ctx.args)
        except LedgerError as e:
            logger.warning(
                f"Invoke {fcn} failed: {e.message}",
                extra={"fcn": fcn, "tx_id": ctx.tx_id, "error_code": e.code},
            )
            return Response.error(e.message, e.code)
        except Exception as e:
            logger.error(
                f"Invoke {fcn} failed with unexpected error: {e}",
                extra={"fcn": fcn, "tx_id": ctx.tx_id},
                exc_info=True,
            )
            return Response.error(str(e), "INTERNAL")

        logger.info(
            f"Invoke {fcn} succeeded",
            extra={
                "fcn": fcn,
                "tx_id": ctx.tx_id,
                "duration_ms": int((time.time() - start) * 1000),
            },
        )
        return Response.success(payload)
