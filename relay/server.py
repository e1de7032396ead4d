"""
Uvicorn server with a session drain on termination signals.

On SIGTERM or SIGINT every active session is cleaned up first; only then is
uvicorn told to stop, which closes the listening socket. A second signal during
the drain forces an immediate exit.
"""

import asyncio
import logging
import signal
from typing import Optional

import uvicorn

from relay.config.constants import LOGGER_NAME
from relay.models.session import SessionManager

logger = logging.getLogger(LOGGER_NAME)


class RelayServer(uvicorn.Server):
    def __init__(self, config: uvicorn.Config, session_manager: SessionManager):
        super().__init__(config)
        self.session_manager = session_manager
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown_requested = False
        self._drain_task: Optional[asyncio.Task] = None

    async def serve(self, sockets=None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets=sockets)

    def handle_exit(self, sig: int, frame) -> None:
        """Signal handler installed by uvicorn; runs outside the event loop."""
        if self._shutdown_requested:
            logger.warning("Second shutdown signal received, forcing exit")
            self.force_exit = True
            return
        self._shutdown_requested = True

        if self._loop is None:
            self.should_exit = True
            return
        self._loop.call_soon_threadsafe(self._start_drain, sig)

    def _start_drain(self, sig: Optional[int] = None) -> None:
        if self._drain_task is None:
            self._drain_task = asyncio.ensure_future(self.drain(sig))

    async def drain(self, sig: Optional[int] = None) -> int:
        """
        Clean up every active session, then let uvicorn close the listener.

        Returns:
            Number of sessions cleaned up
        """
        name = signal.Signals(sig).name if sig is not None else "Shutdown"
        logger.info(f"{name} received, shutting down gracefully")
        try:
            closed = await self.session_manager.close_all()
            logger.info(f"Closed {closed} session(s) before stopping the listener")
            return closed
        finally:
            self.should_exit = True
