"""Shared test fixtures for sockbridge tests.

- ws_server: MockWSServer echoing nothing, URL available as ws_server.url
- echo_ws_server: MockWSServer echoing every payload back
- registry: empty SessionRegistry
- free_port: a TCP port nothing is listening on
"""

import socket

import pytest

from sockbridge.bridge.registry import SessionRegistry
from tests.mocks import MockWSServer


@pytest.fixture
async def ws_server():
    """WebSocket backend that records frames without answering."""
    server = MockWSServer()
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
async def echo_ws_server():
    """WebSocket backend that sends every frame straight back."""
    server = MockWSServer(reply=lambda data: data)
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
def registry() -> SessionRegistry:
    """Fresh session registry."""
    return SessionRegistry()


@pytest.fixture
def free_port() -> int:
    """Port that was free a moment ago and has no listener."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
