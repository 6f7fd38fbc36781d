"""Unit tests for the sockbridge CLI: options, help, exit codes."""

from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from sockbridge.bridge.errors import BindFailure
from sockbridge.config import ENV_VARS
from sockbridge.main import cli


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_run_bridge():
    """Patch out the event loop and logging setup."""
    with patch("sockbridge.commands.bridge.run_bridge", new_callable=AsyncMock) as run, patch(
        "sockbridge.commands.bridge.configure_logging"
    ):
        yield run


class TestHelp:
    def test_group_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "serve" in result.output

    def test_serve_help_does_not_start(self, runner, mock_run_bridge):
        result = runner.invoke(cli, ["serve", "--help"])

        assert result.exit_code == 0
        assert "--tcp-port" in result.output
        assert "--ws-url" in result.output
        mock_run_bridge.assert_not_called()

    def test_serve_help_lists_every_environment_variable(self, runner):
        result = runner.invoke(cli, ["serve", "--help"])

        for name in ENV_VARS.values():
            assert name in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["version"])

        assert result.exit_code == 0
        assert "sockbridge version" in result.output


class TestOptions:
    def test_defaults(self, runner, mock_run_bridge):
        result = runner.invoke(cli, ["serve"], env={})

        assert result.exit_code == 0
        config = mock_run_bridge.call_args.args[0]
        assert config.tcp_port == 25565
        assert config.ws_url == "ws://localhost:8080"
        assert config.tcp_host == "0.0.0.0"

    def test_flags(self, runner, mock_run_bridge):
        result = runner.invoke(
            cli,
            ["serve", "--tcp-port", "25566", "--ws-url", "ws://127.0.0.1:9000/game"],
        )

        assert result.exit_code == 0
        config = mock_run_bridge.call_args.args[0]
        assert config.tcp_port == 25566
        assert config.ws_url == "ws://127.0.0.1:9000/game"

    def test_environment_variables(self, runner, mock_run_bridge):
        result = runner.invoke(
            cli,
            ["serve"],
            env={"SOCKBRIDGE_TCP_PORT": "4000", "SOCKBRIDGE_WS_URL": "wss://example.com/ws"},
        )

        assert result.exit_code == 0
        config = mock_run_bridge.call_args.args[0]
        assert config.tcp_port == 4000
        assert config.ws_url == "wss://example.com/ws"

    def test_flag_overrides_environment(self, runner, mock_run_bridge):
        result = runner.invoke(
            cli, ["serve", "--tcp-port", "5000"], env={"SOCKBRIDGE_TCP_PORT": "4000"}
        )

        assert result.exit_code == 0
        assert mock_run_bridge.call_args.args[0].tcp_port == 5000


class TestExitCodes:
    def test_unknown_option(self, runner, mock_run_bridge):
        result = runner.invoke(cli, ["serve", "--bogus"])

        assert result.exit_code == 2
        mock_run_bridge.assert_not_called()

    def test_invalid_ws_url(self, runner, mock_run_bridge):
        result = runner.invoke(cli, ["serve", "--ws-url", "http://localhost:8080"])

        assert result.exit_code == 2
        assert "Invalid WebSocket URL" in result.output
        mock_run_bridge.assert_not_called()

    def test_ws_url_port_out_of_range(self, runner, mock_run_bridge):
        result = runner.invoke(cli, ["serve", "--ws-url", "ws://localhost:99999"])

        assert result.exit_code == 2
        assert "Invalid WebSocket URL" in result.output
        mock_run_bridge.assert_not_called()

    def test_port_out_of_range(self, runner, mock_run_bridge):
        result = runner.invoke(cli, ["serve", "--tcp-port", "70000"])

        assert result.exit_code == 2
        mock_run_bridge.assert_not_called()

    def test_bind_failure_exits_non_zero(self, runner, mock_run_bridge):
        mock_run_bridge.side_effect = BindFailure(
            message="Port 25565 is already in use. Try a different port with --tcp-port"
        )

        result = runner.invoke(cli, ["serve"])

        assert result.exit_code == 1
        assert "already in use" in result.output
