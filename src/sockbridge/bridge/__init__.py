"""Bridge module - TCP-to-WebSocket transport.

Relays each accepted TCP connection to its own WebSocket connection and back,
without inspecting the payload.
"""

from .dispatcher import BridgeDispatcher
from .errors import (
    BindFailure,
    BridgeError,
    DuplicateSessionError,
    LegConnectFailure,
    LegTransportError,
)
from .legs import Leg, MessageLeg, StreamLeg
from .lifecycle import BridgeLifecycle
from .registry import SessionRegistry
from .session import Session, SessionState

__all__ = [
    "BindFailure",
    "BridgeDispatcher",
    "BridgeError",
    "BridgeLifecycle",
    "DuplicateSessionError",
    "Leg",
    "LegConnectFailure",
    "LegTransportError",
    "MessageLeg",
    "Session",
    "SessionRegistry",
    "SessionState",
    "StreamLeg",
]
