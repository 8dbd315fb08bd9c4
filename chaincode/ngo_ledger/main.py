"""
NGO ledger server - Main entry point.

This module starts the ledger with all components:
- State store (SQLite or in-memory)
- Chaincode dispatcher with the operation registry
- HTTP invocation server (uvicorn)

Usage:
    python -m chaincode.ngo_ledger.main

Configuration is entirely via environment variables.
See config.py for all available settings.

Invariants:
    - The store is connected before the HTTP server accepts requests
    - Graceful shutdown stops the HTTP server before closing the store
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import json_log_formatter
import uvicorn

from .api import create_app
from .config import LedgerConfig
from .dispatch import Chaincode
from .handlers import build_registry
from .store import StateStore, create_store

logger = logging.getLogger(__name__)


def setup_logging(config: LedgerConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Server configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.VerboseJSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class Server:
    """Ledger server orchestrator.

    Attributes:
        config: Server configuration
        store: State store instance
        chaincode: Dispatcher serving invocations

    Example:
        >>> server = Server()
        >>> await server.start()
        >>> # Server is running
        >>> await server.stop()
    """

    def __init__(self, config: LedgerConfig | None = None) -> None:
        self.config = config or LedgerConfig.from_env()
        self._running = False

        # Components (initialized in start())
        self.store: StateStore | None = None
        self.chaincode: Chaincode | None = None
        self._http: uvicorn.Server | None = None

    async def start(self) -> None:
        """Start the server and serve until shutdown is requested."""
        if self._running:
            logger.warning("Server already running")
            return

        logger.info("Starting NGO ledger server")
        self.config.log_config()

        try:
            self.store = create_store(self.config.store)
            await self.store.connect()
            logger.info("State store connected")

            self.chaincode = Chaincode(self.store, build_registry())
            await self.chaincode.init()

            app = create_app(chaincode=self.chaincode, config=self.config)
            self._http = uvicorn.Server(
                uvicorn.Config(
                    app,
                    host=self.config.http.host,
                    port=self.config.http.port,
                    log_config=None,
                )
            )
            # Signals are handled by main()
            self._http.install_signal_handlers = lambda: None

            self._running = True
            logger.info("NGO ledger server started successfully")

            await self._http.serve()

        except Exception as e:
            logger.error(f"Server startup failed: {e}", exc_info=True)
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the server gracefully."""
        if self.store is None:
            return

        logger.info("Stopping NGO ledger server")

        if self._http:
            self._http.should_exit = True

        await self.store.close()
        self.store = None

        self._running = False
        logger.info("NGO ledger server stopped")

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        if self._http:
            self._http.should_exit = True


def main() -> None:
    """Main entry point."""
    # Load configuration
    try:
        config = LedgerConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)

    server = Server(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def handle_signal(sig: int) -> None:
        logger.info(f"Received signal {sig}, initiating shutdown")
        server.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        pass
    finally:
        loop.run_until_complete(server.stop())
        loop.close()


if __name__ == "__main__":
    main()
