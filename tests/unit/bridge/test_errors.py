"""Unit tests for bridge error mapping."""

import errno

import pytest

from sockbridge.bridge.errors import (
    BRIDGE_BIND_ERROR,
    BRIDGE_CONNECT_ERROR,
    BRIDGE_TRANSPORT_ERROR,
    BindFailure,
    BridgeError,
    LegConnectFailure,
    LegTransportError,
    map_bind_error,
    map_connect_error,
    map_transport_error,
)

pytestmark = [pytest.mark.bridge, pytest.mark.bridge_unit]


class TestBridgeError:
    def test_str_is_message(self):
        assert str(BridgeError(code=-1, message="boom")) == "boom"

    def test_subclass_defaults(self):
        assert BindFailure().code == BRIDGE_BIND_ERROR
        assert LegConnectFailure().code == BRIDGE_CONNECT_ERROR
        assert LegTransportError().code == BRIDGE_TRANSPORT_ERROR
        assert isinstance(LegConnectFailure(), BridgeError)


class TestBindErrorMapping:
    def test_address_in_use(self):
        error = OSError(errno.EADDRINUSE, "Address already in use")

        failure = map_bind_error(error, "0.0.0.0", 25565)

        assert isinstance(failure, BindFailure)
        assert "Port 25565 is already in use" in failure.message
        assert "--tcp-port" in failure.message
        assert failure.data["errno"] == errno.EADDRINUSE

    def test_other_errors(self):
        error = OSError(errno.EACCES, "Permission denied")

        failure = map_bind_error(error, "0.0.0.0", 80)

        assert failure.message == "Cannot listen on 0.0.0.0:80: Permission denied"


class TestConnectErrorMapping:
    def test_unreachable(self):
        failure = map_connect_error("ws://localhost:8080/game", ConnectionRefusedError("refused"))

        assert failure.message.startswith("Cannot reach WebSocket server at localhost:8080")
        assert failure.data["url"] == "ws://localhost:8080/game"

    def test_timeout(self):
        failure = map_connect_error("ws://example.com", TimeoutError(), is_timeout=True)

        assert failure.message == "Timed out connecting to example.com"


class TestTransportErrorMapping:
    def test_names_leg(self):
        error = map_transport_error("stream", ConnectionResetError("reset by peer"))

        assert isinstance(error, LegTransportError)
        assert error.message == "stream leg error: reset by peer"
        assert error.data["leg"] == "stream"
