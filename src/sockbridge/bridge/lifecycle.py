"""BridgeLifecycle - Manages bridge startup and shutdown.

Handles:
- Listener startup (bind failures are fatal)
- SIGINT/SIGTERM handling
- Graceful shutdown: close every session, wait for its legs, then stop the
  listener
"""

import asyncio
import signal
from typing import Optional

from ..shared.logging import get_logger
from .dispatcher import BridgeDispatcher
from .registry import SessionRegistry

logger = get_logger(__name__)

# Default configuration
DEFAULT_DRAIN_TIMEOUT = 5.0
SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class BridgeLifecycle:
    """Manages bridge lifecycle: startup, signal handling, shutdown."""

    def __init__(
        self,
        dispatcher: BridgeDispatcher,
        registry: SessionRegistry,
        drain_timeout: float = DEFAULT_DRAIN_TIMEOUT,
    ):
        """Initialize BridgeLifecycle.

        Args:
            dispatcher: Listener accepting TCP clients
            registry: Registry of live sessions
            drain_timeout: Max time to wait for legs to close (seconds)
        """
        self.dispatcher = dispatcher
        self.registry = registry
        self.drain_timeout = drain_timeout

        self._is_running = False
        self._shutdown_started = False
        self._shutdown_done = asyncio.Event()
        self._shutdown_requested = asyncio.Event()
        self._signal: Optional[signal.Signals] = None

    @property
    def is_running(self) -> bool:
        """Whether the bridge is accepting connections."""
        return self._is_running

    async def startup(self) -> None:
        """Start the listener.

        Raises:
            BindFailure: If the TCP port cannot be claimed
        """
        logger.info("Starting bridge...")
        await self.dispatcher.start()
        self._is_running = True
        logger.info("Bridge started, press Ctrl+C to stop")

    def install_signal_handlers(self) -> None:
        """Route SIGINT/SIGTERM to request_shutdown()."""
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self.request_shutdown, sig)

    def remove_signal_handlers(self) -> None:
        """Undo install_signal_handlers()."""
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)

    def request_shutdown(self, sig: Optional[signal.Signals] = None) -> None:
        """Ask run_until_shutdown() to shut the bridge down."""
        if sig and self._signal is None:
            self._signal = sig
        self._shutdown_requested.set()

    async def run_until_shutdown(self) -> None:
        """Wait for a shutdown request, then shut down."""
        await self._shutdown_requested.wait()
        await self.shutdown(self._signal)

    async def shutdown(self, sig: Optional[signal.Signals] = None) -> None:
        """Perform graceful shutdown. Later calls wait for the first one."""
        if self._shutdown_started:
            await self._shutdown_done.wait()
            return
        self._shutdown_started = True

        if sig:
            logger.info(f"Received signal {sig.name}, shutting down...")
        else:
            logger.info("Shutting down...")

        self._is_running = False
        self.dispatcher.drain()

        sessions = self.registry.snapshot()
        for session in sessions:
            if not session.is_closed:
                logger.info(f"Closing session {session.session_id}")
            session.close()

        await self._drain_sessions(sessions)

        await self.dispatcher.stop()
        self._shutdown_done.set()
        logger.info("Bridge shutdown complete")

    async def _drain_sessions(self, sessions: list) -> None:
        """Wait for the legs of the given sessions to finish closing."""
        if not sessions:
            return

        logger.info(f"Waiting for {len(sessions)} sessions to close...")
        try:
            await asyncio.wait_for(
                asyncio.gather(*(session.wait_closed() for session in sessions)),
                timeout=self.drain_timeout,
            )
        except asyncio.TimeoutError:
            still_open = [
                session
                for session in sessions
                if not (session.stream_leg.is_closed and session.message_leg.is_closed)
            ]
            logger.warning(f"Drain timeout, aborting {len(still_open)} sessions still closing")
            for session in still_open:
                if not session.stream_leg.is_closed:
                    session.stream_leg.abort()
            return

        logger.info("Session drain complete")
