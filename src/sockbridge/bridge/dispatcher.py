"""BridgeDispatcher - accepts TCP clients and creates sessions.

Each accepted connection gets the next session id, a StreamLeg, a MessageLeg
dialling the configured WebSocket URL, and a Session registered in the
shared SessionRegistry.
"""

import asyncio
import itertools

import aiohttp

from ..shared.logging import get_logger
from .errors import LegConnectFailure, map_bind_error
from .legs import DEFAULT_CHUNK_SIZE, DEFAULT_CONNECT_TIMEOUT, MessageLeg, StreamLeg
from .registry import SessionRegistry
from .session import Session

logger = get_logger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 25565


class BridgeDispatcher:
    """TCP listener that turns each connection into a Session."""

    def __init__(
        self,
        registry: SessionRegistry,
        ws_url: str,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """Initialize BridgeDispatcher.

        Args:
            registry: Registry new sessions are added to
            ws_url: WebSocket URL dialled for every session
            host: TCP host to listen on
            port: TCP port to listen on (0 picks a free port)
            connect_timeout: Seconds allowed for each WebSocket handshake
            chunk_size: Maximum bytes per TCP read
        """
        self.registry = registry
        self.ws_url = ws_url
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.chunk_size = chunk_size

        self._ids = itertools.count(1)
        self._server: asyncio.Server | None = None
        self._client: aiohttp.ClientSession | None = None
        self._draining = False

    @property
    def is_serving(self) -> bool:
        """Whether the listener is accepting connections."""
        return self._server is not None and self._server.is_serving()

    @property
    def bound_port(self) -> int | None:
        """Port actually bound, or None before start()."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        """Bind the listener.

        Raises:
            BindFailure: If the port cannot be claimed
        """
        try:
            self._server = await asyncio.start_server(self._on_connection, self.host, self.port)
        except OSError as e:
            raise map_bind_error(e, self.host, self.port) from e
        self._client = aiohttp.ClientSession()
        logger.info(f"Listening on {self.host}:{self.bound_port}, forwarding to {self.ws_url}")

    def drain(self) -> None:
        """Refuse connections accepted from now on."""
        self._draining = True

    async def stop(self) -> None:
        """Stop listening and release the shared WebSocket client."""
        self._draining = True
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        if self._client:
            await self._client.close()
            self._client = None
        logger.info("Listener stopped")

    def _on_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        stream_leg = StreamLeg(reader, writer, chunk_size=self.chunk_size)
        if self._draining or self._client is None:
            logger.info(f"Refusing {stream_leg.peer}: shutting down")
            stream_leg.close()
            return

        session_id = next(self._ids)
        try:
            message_leg = MessageLeg(
                self.ws_url, self._client, connect_timeout=self.connect_timeout
            )
        except LegConnectFailure as e:
            logger.warning(f"[{session_id}] {e.message}, closing client {stream_leg.peer}")
            stream_leg.close()
            return

        session = Session(session_id, stream_leg, message_leg, self.registry)
        self.registry.put(session_id, session)
        session.start()
