"""Transport legs - one side of a bridged session.

A leg wraps one network connection behind a callback contract shared by both
transports:

- on_ready(): the leg can accept send() calls
- on_data(payload): bytes received from the remote end
- on_error(exc): an error occurred; does not close the leg
- on_close(): the connection is finalized; delivered exactly once

StreamLeg wraps an accepted TCP connection (no message boundaries).
MessageLeg wraps an outbound WebSocket connection (one payload per frame).
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable
from urllib.parse import urlparse

import aiohttp

from ..shared.logging import get_logger
from .errors import LegConnectFailure, map_connect_error, map_transport_error

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 65536
DEFAULT_CONNECT_TIMEOUT = 10.0

WS_SCHEMES = ("ws", "wss")


class Leg(ABC):
    """Base class for both transport legs.

    Subclasses start their I/O in start(), report events through the
    _emit_* helpers and call _finish() once the connection is gone.
    """

    kind = "leg"

    def __init__(self) -> None:
        self.on_ready: Callable[[], None] | None = None
        self.on_data: Callable[[bytes], None] | None = None
        self.on_error: Callable[[BaseException], None] | None = None
        self.on_close: Callable[[], None] | None = None

        self._ready = False
        self._closing = False
        self._closed = False
        self._closed_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def is_ready(self) -> bool:
        """Whether send() will reach the transport."""
        return self._ready and not self._closing

    @property
    def is_closed(self) -> bool:
        """Whether on_close() has been delivered."""
        return self._closed

    @abstractmethod
    def start(self) -> None:
        """Start the leg's I/O task."""

    @abstractmethod
    def _write(self, payload: bytes) -> None:
        """Hand payload to the transport."""

    @abstractmethod
    def _shutdown(self) -> None:
        """Begin closing the transport without blocking."""

    def send(self, payload: bytes) -> None:
        """Send payload on this leg; dropped if not ready or closing."""
        if not self.is_ready:
            logger.debug(f"{self.kind} leg not ready, dropping {len(payload)} bytes")
            return
        self._write(payload)

    def close(self) -> None:
        """Close the leg. Safe to call any number of times."""
        if self._closing:
            return
        self._closing = True
        self._shutdown()
        if self._task is None:
            # Never started: no task will run _finish
            asyncio.get_running_loop().call_soon(self._finish)

    async def wait_closed(self) -> None:
        """Wait until on_close() has been delivered."""
        await self._closed_event.wait()

    def _mark_ready(self) -> None:
        if self._closing:
            return
        self._ready = True
        if self.on_ready:
            self.on_ready()

    def _emit_data(self, payload: bytes) -> None:
        if self._closed:
            return
        if self.on_data:
            self.on_data(payload)

    def _emit_error(self, error: BaseException) -> None:
        if self._closed:
            return
        if self.on_error:
            self.on_error(error)

    def _finish(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._closing = True
        self._ready = False
        self._closed_event.set()
        if self.on_close:
            self.on_close()


class StreamLeg(Leg):
    """TCP side of a session, built from an accepted connection."""

    kind = "stream"

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """Initialize StreamLeg.

        Args:
            reader: Reader from asyncio.start_server
            writer: Writer from asyncio.start_server
            chunk_size: Maximum bytes per read (one on_data call per read)
        """
        super().__init__()
        self._reader = reader
        self._writer = writer
        self.chunk_size = chunk_size
        self.peer = writer.get_extra_info("peername")

    def start(self) -> None:
        """Mark ready and start reading."""
        if self._task is not None or self._closing:
            return
        self._task = asyncio.create_task(self._read_loop())
        self._mark_ready()

    async def _read_loop(self) -> None:
        try:
            while True:
                chunk = await self._reader.read(self.chunk_size)
                if not chunk:
                    break
                self._emit_data(chunk)
        except (ConnectionError, OSError) as e:
            self._emit_error(map_transport_error(self.kind, e))
        finally:
            self._writer.close()
            self._finish()

    def _write(self, payload: bytes) -> None:
        self._writer.write(payload)

    def abort(self) -> None:
        """Drop the TCP connection without flushing buffered writes."""
        self._writer.transport.abort()

    def _shutdown(self) -> None:
        # Closing the transport feeds EOF to the reader, which ends _read_loop
        self._writer.close()


class MessageLeg(Leg):
    """WebSocket side of a session, dialled per session."""

    kind = "message"

    def __init__(
        self,
        url: str,
        client: aiohttp.ClientSession,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ):
        """Initialize MessageLeg.

        Args:
            url: WebSocket URL (ws:// or wss://)
            client: Shared aiohttp client session used to dial
            connect_timeout: Seconds allowed for the handshake

        Raises:
            LegConnectFailure: If url is not a usable WebSocket URL
        """
        super().__init__()
        parsed = urlparse(url)
        try:
            # Raises ValueError for ports outside 0-65535
            parsed.port
        except ValueError as e:
            raise LegConnectFailure(
                message=f"Invalid WebSocket URL: {url} ({e})",
                data={"url": url},
            ) from e
        if parsed.scheme not in WS_SCHEMES or not parsed.hostname:
            raise LegConnectFailure(
                message=f"Invalid WebSocket URL: {url}",
                data={"url": url},
            )
        self.url = url
        self.connect_timeout = connect_timeout
        self._client = client
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._outbox: asyncio.Queue[bytes | None] = asyncio.Queue()
        self._writer_task: asyncio.Task | None = None

    def start(self) -> None:
        """Start connecting; on_ready() fires once the handshake completes."""
        if self._task is not None or self._closing:
            return
        self._task = asyncio.create_task(self._run())
        # A task cancelled before its first step never runs _run's finally
        self._task.add_done_callback(lambda _: self._finish())

    async def _run(self) -> None:
        try:
            if not await self._connect():
                return
            self._writer_task = asyncio.create_task(self._write_loop())
            self._mark_ready()
            await self._read_loop()
        finally:
            await self._release()
            self._finish()

    async def _connect(self) -> bool:
        try:
            self._ws = await asyncio.wait_for(
                self._client.ws_connect(self.url, max_msg_size=0),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            self._emit_error(map_connect_error(self.url, e, is_timeout=True))
            return False
        except (aiohttp.ClientError, OSError, ValueError) as e:
            self._emit_error(map_connect_error(self.url, e))
            return False
        return True

    async def _read_loop(self) -> None:
        assert self._ws is not None
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.BINARY:
                    self._emit_data(msg.data)
                elif msg.type == aiohttp.WSMsgType.TEXT:
                    self._emit_data(msg.data.encode("utf-8"))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    self._emit_error(map_transport_error(self.kind, self._ws.exception()))
        except (aiohttp.ClientError, OSError) as e:
            self._emit_error(map_transport_error(self.kind, e))

    async def _write_loop(self) -> None:
        assert self._ws is not None
        try:
            while True:
                payload = await self._outbox.get()
                if payload is None:
                    break
                await self._ws.send_bytes(payload)
        except (aiohttp.ClientError, OSError) as e:
            self._emit_error(map_transport_error(self.kind, e))
        await self._ws.close()

    async def _release(self) -> None:
        if self._writer_task is not None:
            if not self._closing:
                # Remote side ended the connection, nothing left to flush
                self._writer_task.cancel()
            await asyncio.gather(self._writer_task, return_exceptions=True)
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()

    def _write(self, payload: bytes) -> None:
        self._outbox.put_nowait(payload)

    def _shutdown(self) -> None:
        if self._ws is None:
            # Still connecting, or never started
            if self._task is not None:
                self._task.cancel()
        else:
            self._outbox.put_nowait(None)
