"""Error types for the bridge.

Only BindFailure and startup configuration errors are process-fatal. Every
other error stays inside the session that produced it.
"""

import errno
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

# Process exit codes
EXIT_OK = 0
EXIT_STARTUP_ERROR = 1
EXIT_USAGE_ERROR = 2  # click's own exit code for usage errors

# Error codes carried on BridgeError.code
BRIDGE_BIND_ERROR = -32010
BRIDGE_CONNECT_ERROR = -32011
BRIDGE_TRANSPORT_ERROR = -32012
BRIDGE_REGISTRY_ERROR = -32013


@dataclass
class BridgeError(Exception):
    """Base error class for bridge errors."""

    code: int
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


@dataclass
class BindFailure(BridgeError):
    """Listener could not claim its TCP port."""

    code: int = BRIDGE_BIND_ERROR
    message: str = "Failed to bind listener"


@dataclass
class LegConnectFailure(BridgeError):
    """Message leg could not be established for a session."""

    code: int = BRIDGE_CONNECT_ERROR
    message: str = "WebSocket connect failed"


@dataclass
class LegTransportError(BridgeError):
    """I/O error on an established leg."""

    code: int = BRIDGE_TRANSPORT_ERROR
    message: str = "Transport error"


@dataclass
class DuplicateSessionError(BridgeError):
    """A session id was registered twice."""

    code: int = BRIDGE_REGISTRY_ERROR
    message: str = "Session id already registered"


def map_bind_error(error: OSError, host: str, port: int) -> BindFailure:
    """Map an OSError raised while binding to BindFailure.

    Args:
        error: Error raised by asyncio.start_server
        host: Host the listener tried to bind
        port: Port the listener tried to bind

    Returns:
        BindFailure with an operator-facing message
    """
    if error.errno == errno.EADDRINUSE:
        message = f"Port {port} is already in use. Try a different port with --tcp-port"
    else:
        message = f"Cannot listen on {host}:{port}: {error.strerror or error}"
    return BindFailure(
        message=message,
        data={"host": host, "port": port, "errno": error.errno},
    )


def map_connect_error(url: str, error: BaseException, is_timeout: bool = False) -> LegConnectFailure:
    """Map an error raised while opening the WebSocket to LegConnectFailure.

    Args:
        url: WebSocket URL that was being connected
        error: Underlying exception
        is_timeout: Whether the connect timed out

    Returns:
        LegConnectFailure naming the target host
    """
    parsed = urlparse(url)
    host_port = f"{parsed.hostname}:{parsed.port}" if parsed.port else parsed.hostname
    if is_timeout:
        message = f"Timed out connecting to {host_port}"
    else:
        message = f"Cannot reach WebSocket server at {host_port}: {error}"
    return LegConnectFailure(
        message=message,
        data={"url": url, "original_error": repr(error)},
    )


def map_transport_error(leg: str, error: BaseException) -> LegTransportError:
    """Wrap a mid-session I/O error from the named leg."""
    return LegTransportError(
        message=f"{leg} leg error: {error}",
        data={"leg": leg, "original_error": repr(error)},
    )
