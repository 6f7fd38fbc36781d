"""Bridge configuration.

Values come from CLI flags, then environment variables, then defaults.
click resolves the first two (via ``envvar=``); this module owns the
defaults, the variable names and validation.
"""

from dataclasses import dataclass
from urllib.parse import urlparse

from .bridge.dispatcher import DEFAULT_HOST, DEFAULT_PORT
from .bridge.legs import DEFAULT_CHUNK_SIZE, DEFAULT_CONNECT_TIMEOUT, WS_SCHEMES
from .bridge.lifecycle import DEFAULT_DRAIN_TIMEOUT

# Default values
DEFAULT_WS_URL = "ws://localhost:8080"
DEFAULT_LOG_LEVEL = "info"

# Environment variable mappings
ENV_VARS = {
    "tcp_host": "SOCKBRIDGE_TCP_HOST",
    "tcp_port": "SOCKBRIDGE_TCP_PORT",
    "ws_url": "SOCKBRIDGE_WS_URL",
    "connect_timeout": "SOCKBRIDGE_CONNECT_TIMEOUT",
    "drain_timeout": "SOCKBRIDGE_DRAIN_TIMEOUT",
    "log_level": "SOCKBRIDGE_LOG_LEVEL",
    "log_file": "SOCKBRIDGE_LOG_FILE",
    "json_logs": "SOCKBRIDGE_JSON_LOGS",
}


@dataclass
class BridgeConfig:
    """Runtime configuration for one bridge process."""

    tcp_host: str = DEFAULT_HOST
    tcp_port: int = DEFAULT_PORT
    ws_url: str = DEFAULT_WS_URL
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    drain_timeout: float = DEFAULT_DRAIN_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: str | None = None
    json_logs: bool = False

    def __post_init__(self) -> None:
        validate_ws_url(self.ws_url)
        if not 0 <= self.tcp_port <= 65535:
            raise ValueError(f"Invalid TCP port: {self.tcp_port}")
        if self.connect_timeout <= 0:
            raise ValueError(f"Connect timeout must be positive: {self.connect_timeout}")


def validate_ws_url(url: str) -> str:
    """Check that url is a ws:// or wss:// URL with a host.

    Returns:
        The URL unchanged

    Raises:
        ValueError: If the URL is unusable
    """
    if not url:
        raise ValueError("WebSocket URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in WS_SCHEMES or not parsed.hostname:
        raise ValueError(f"Invalid WebSocket URL (expected ws:// or wss://): {url}")
    try:
        parsed.port
    except ValueError as e:
        raise ValueError(f"Invalid WebSocket URL ({e}): {url}") from e
    return url
