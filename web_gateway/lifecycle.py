"""
Lifecycle Manager.

Startup: the store is connected from the FastAPI lifespan. A connection
failure is logged by the store adapter and does not stop the listener.

Termination: SIGINT and SIGTERM reach handle_signal() through
GatewayServer.handle_exit. The first signal schedules terminate() on the
server's event loop; later signals are logged and ignored. terminate()
closes the store once, flushes stdout and ends the process with status 0.
In-flight requests are not drained; any that touch the store afterwards
fail with StoreClosedError and are normalized like other errors.
"""

import asyncio
import os
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable, Optional

from fastapi import FastAPI

from web_gateway.observability.logging import get_logger
from web_gateway.store.connection import StoreConnection

logger = get_logger(__name__)

EXIT_CODE = 0


class LifecycleManager:
    """
    Owns the store connection's lifetime.

    Args:
        store: The connection to open at startup and close at termination.
        exit_process: Called with the exit code after cleanup. Defaults to
            os._exit; tests inject a recorder.
    """

    def __init__(
        self,
        store: StoreConnection,
        exit_process: Callable[[int], None] = os._exit,
    ) -> None:
        self._store = store
        self._exit_process = exit_process
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._terminating = False
        self._exited = False
        self._terminated = asyncio.Event()

    @property
    def is_terminating(self) -> bool:
        return self._terminating

    # =========================================================================
    # Startup / orderly shutdown
    # =========================================================================

    async def startup(self) -> None:
        self._loop = asyncio.get_running_loop()
        await self._store.connect()

    async def shutdown(self) -> None:
        """Orderly shutdown (lifespan exit): close the store only."""
        await self._store.close()

    @asynccontextmanager
    async def lifespan(self, app: FastAPI) -> AsyncGenerator[None, None]:
        """FastAPI lifespan hook."""
        await self.startup()
        yield
        await self.shutdown()

    # =========================================================================
    # Signal-driven termination
    # =========================================================================

    def handle_signal(self, signum: int) -> None:
        """
        Begin termination; idempotent.

        Safe to call from a signal handler: the work is handed to the event
        loop with call_soon_threadsafe.
        """
        if self._terminating:
            logger.info("Termination already in progress, signal ignored", signal=signum)
            return
        self._terminating = True
        logger.info("Termination signal received", signal=signum)

        loop = self._running_loop()
        if loop is not None:
            loop.call_soon_threadsafe(self._schedule_terminate)
        else:
            asyncio.run(self.terminate())

    def _running_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None and self._loop.is_running():
            return self._loop
        # uvicorn installs its signal handlers before the lifespan starts
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _schedule_terminate(self) -> None:
        asyncio.ensure_future(self.terminate())

    async def terminate(self) -> None:
        """Close the store, flush output and exit the process, once."""
        try:
            await self._store.close()
        except Exception as e:
            logger.error("Error closing store during termination", error=str(e), exc_info=e)
        finally:
            sys.stdout.flush()
            self._terminated.set()
            if not self._exited:
                self._exited = True
                self._exit_process(EXIT_CODE)

    async def wait_terminated(self) -> None:
        await self._terminated.wait()
