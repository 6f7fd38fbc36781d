"""Session - pairs one stream leg with one message leg.

State machine:

    CONNECTING --message leg ready--> RELAYING
    CONNECTING/RELAYING --close or error on either leg--> CLOSING --> CLOSED

Data is relayed only while RELAYING. Stream data that arrives while the
message leg is still connecting is dropped, never queued.
"""

import asyncio
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..shared.logging import get_logger
from .legs import Leg, MessageLeg, StreamLeg

if TYPE_CHECKING:
    from .registry import SessionRegistry

logger = get_logger(__name__)


class SessionState(str, Enum):
    """Lifecycle states of a session."""

    CONNECTING = "connecting"
    RELAYING = "relaying"
    CLOSING = "closing"
    CLOSED = "closed"


class Session:
    """One bridged TCP connection and its WebSocket counterpart."""

    def __init__(
        self,
        session_id: int,
        stream_leg: StreamLeg,
        message_leg: MessageLeg,
        registry: "SessionRegistry",
    ):
        """Initialize Session and wire leg callbacks.

        Args:
            session_id: Unique id allocated by the dispatcher
            stream_leg: Accepted TCP connection
            message_leg: Outbound WebSocket connection (not yet started)
            registry: Registry this session removes itself from on teardown
        """
        self.session_id = session_id
        self.stream_leg = stream_leg
        self.message_leg = message_leg
        self.state = SessionState.CONNECTING
        self.close_reason: str | None = None

        self.bytes_to_message = 0
        self.bytes_to_stream = 0
        self.dropped_chunks = 0

        self._registry = registry
        self._log = logger.bind(session_id=session_id, peer=self.peer)

        stream_leg.on_data = self._on_stream_data
        stream_leg.on_error = lambda exc: self._on_leg_error(stream_leg, exc)
        stream_leg.on_close = lambda: self._on_leg_closed(stream_leg)

        message_leg.on_ready = self._on_message_ready
        message_leg.on_data = self._on_message_data
        message_leg.on_error = lambda exc: self._on_leg_error(message_leg, exc)
        message_leg.on_close = lambda: self._on_leg_closed(message_leg)

    @property
    def peer(self) -> Any:
        """Remote address of the TCP client."""
        return self.stream_leg.peer

    @property
    def is_closed(self) -> bool:
        """Whether the session reached CLOSED."""
        return self.state is SessionState.CLOSED

    def start(self) -> None:
        """Start both legs."""
        self._log.info(f"Client connected from {self.peer}, dialling {self.message_leg.url}")
        self.stream_leg.start()
        self.message_leg.start()

    def close(self, reason: str = "shutdown") -> None:
        """Close both legs and remove the session. No-op once CLOSED."""
        if self.state is SessionState.CLOSED:
            return
        if self.state is not SessionState.CLOSING:
            self.state = SessionState.CLOSING
            self.close_reason = reason
        self.stream_leg.close()
        self.message_leg.close()
        self._mark_closed()

    async def wait_closed(self) -> None:
        """Wait until both legs have delivered on_close()."""
        await asyncio.gather(self.stream_leg.wait_closed(), self.message_leg.wait_closed())

    # Leg events

    def _on_message_ready(self) -> None:
        if self.state is not SessionState.CONNECTING:
            return
        self.state = SessionState.RELAYING
        self._log.info("WebSocket connected, relaying")

    def _on_stream_data(self, payload: bytes) -> None:
        if self.state is SessionState.RELAYING:
            self.bytes_to_message += len(payload)
            self.message_leg.send(payload)
        elif self.state is SessionState.CONNECTING:
            self.dropped_chunks += 1
            self._log.debug(f"WebSocket not ready, dropped {len(payload)} bytes")

    def _on_message_data(self, payload: bytes) -> None:
        if self.state is SessionState.RELAYING:
            self.bytes_to_stream += len(payload)
            self.stream_leg.send(payload)

    def _on_leg_error(self, leg: Leg, error: BaseException) -> None:
        if self.state in (SessionState.CLOSING, SessionState.CLOSED):
            self._log.debug(f"{leg.kind} leg error after teardown: {error}")
            return
        self._log.warning(f"{leg.kind} leg error: {error}")
        self._teardown(origin=leg, reason=f"{leg.kind} error")

    def _on_leg_closed(self, leg: Leg) -> None:
        if self.state in (SessionState.CLOSING, SessionState.CLOSED):
            return
        self._teardown(origin=leg, reason=f"{leg.kind} closed")

    def _teardown(self, origin: Leg, reason: str) -> None:
        self.state = SessionState.CLOSING
        self.close_reason = reason
        # The originating leg reaches its terminal state on its own
        for leg in (self.stream_leg, self.message_leg):
            if leg is not origin:
                leg.close()
        self._mark_closed()

    def _mark_closed(self) -> None:
        self.state = SessionState.CLOSED
        self._registry.remove(self.session_id)
        self._log.info(
            f"Session closed ({self.close_reason})",
            bytes_to_message=self.bytes_to_message,
            bytes_to_stream=self.bytes_to_stream,
            dropped_chunks=self.dropped_chunks,
        )
