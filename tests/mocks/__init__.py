"""Test mocks for sockbridge.

Provides mock implementations for testing:
- MockWSServer: WebSocket server standing in for the bridged backend
- FakeLeg: in-memory leg for driving a Session without sockets
"""

from .fake_leg import FakeLeg
from .mock_ws_server import MockWSServer, wait_until

__all__ = ["FakeLeg", "MockWSServer", "wait_until"]
