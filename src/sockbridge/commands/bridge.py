"""Serve command - TCP-to-WebSocket bridge.

Accepts TCP clients and gives each one its own WebSocket connection to the
configured server, relaying bytes both ways until either side closes.
"""

import asyncio
import sys

import click

from ..bridge.dispatcher import DEFAULT_HOST, DEFAULT_PORT, BridgeDispatcher
from ..bridge.errors import EXIT_STARTUP_ERROR, BindFailure
from ..bridge.legs import DEFAULT_CONNECT_TIMEOUT
from ..bridge.lifecycle import DEFAULT_DRAIN_TIMEOUT, BridgeLifecycle
from ..bridge.registry import SessionRegistry
from ..config import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_WS_URL,
    ENV_VARS,
    BridgeConfig,
    validate_ws_url,
)
from ..shared.logging import configure_logging, get_logger

logger = get_logger(__name__)


def validate_url(ctx: click.Context, param: click.Parameter, value: str) -> str:
    """Validate WebSocket URL format."""
    try:
        return validate_ws_url(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


@click.command("serve")
@click.option(
    "--tcp-host",
    envvar=ENV_VARS["tcp_host"],
    default=DEFAULT_HOST,
    show_default=True,
    help="Address to accept TCP clients on",
)
@click.option(
    "--tcp-port",
    envvar=ENV_VARS["tcp_port"],
    type=click.IntRange(0, 65535),
    default=DEFAULT_PORT,
    show_default=True,
    help="Port for TCP clients",
)
@click.option(
    "--ws-url",
    envvar=ENV_VARS["ws_url"],
    callback=validate_url,
    default=DEFAULT_WS_URL,
    show_default=True,
    help="WebSocket server each client is bridged to",
)
@click.option(
    "--connect-timeout",
    envvar=ENV_VARS["connect_timeout"],
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_CONNECT_TIMEOUT,
    show_default=True,
    help="Seconds allowed for each WebSocket handshake",
)
@click.option(
    "--drain-timeout",
    envvar=ENV_VARS["drain_timeout"],
    type=click.FloatRange(min=0),
    default=DEFAULT_DRAIN_TIMEOUT,
    show_default=True,
    help="Seconds to wait for connections to close on shutdown",
)
@click.option(
    "--log-level",
    envvar=ENV_VARS["log_level"],
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=DEFAULT_LOG_LEVEL,
    show_default=True,
    help="Log level",
)
@click.option(
    "--log-file",
    envvar=ENV_VARS["log_file"],
    default=None,
    help="Log file path (default: stderr)",
)
@click.option(
    "--json-logs",
    envvar=ENV_VARS["json_logs"],
    is_flag=True,
    help="Emit logs as JSON lines",
)
def serve_command(
    tcp_host: str,
    tcp_port: int,
    ws_url: str,
    connect_timeout: float,
    drain_timeout: float,
    log_level: str,
    log_file: str | None,
    json_logs: bool,
) -> None:
    """Bridge TCP clients to a WebSocket server.

    Every TCP connection gets its own WebSocket connection. Bytes are relayed
    unchanged in both directions; closing either side closes the other.

    \b
    Example usage:
      sockbridge serve
      sockbridge serve --tcp-port 25566 --ws-url ws://127.0.0.1:9000

    \b
    Environment variables:
      SOCKBRIDGE_TCP_HOST        - TCP listen address
      SOCKBRIDGE_TCP_PORT        - TCP port
      SOCKBRIDGE_WS_URL          - WebSocket URL
      SOCKBRIDGE_CONNECT_TIMEOUT - WebSocket handshake timeout (seconds)
      SOCKBRIDGE_DRAIN_TIMEOUT   - Shutdown wait (seconds)
      SOCKBRIDGE_LOG_LEVEL       - Log level
      SOCKBRIDGE_LOG_FILE        - Log file path
      SOCKBRIDGE_JSON_LOGS       - Emit JSON logs
    """
    config = BridgeConfig(
        tcp_host=tcp_host,
        tcp_port=tcp_port,
        ws_url=ws_url,
        connect_timeout=connect_timeout,
        drain_timeout=drain_timeout,
        log_level=log_level,
        log_file=log_file,
        json_logs=json_logs,
    )
    configure_logging(config.log_level, log_file=config.log_file, json_output=config.json_logs)

    logger.info("TCP-to-WebSocket bridge", tcp_port=config.tcp_port, ws_url=config.ws_url)

    try:
        asyncio.run(run_bridge(config))
    except KeyboardInterrupt:
        logger.info("Bridge interrupted by user")
    except BindFailure as e:
        logger.error(f"Bridge error: {e.message}")
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(EXIT_STARTUP_ERROR)


async def run_bridge(config: BridgeConfig) -> None:
    """Run the bridge until SIGINT/SIGTERM, then shut down gracefully."""
    registry = SessionRegistry()
    dispatcher = BridgeDispatcher(
        registry,
        config.ws_url,
        host=config.tcp_host,
        port=config.tcp_port,
        connect_timeout=config.connect_timeout,
        chunk_size=config.chunk_size,
    )
    lifecycle = BridgeLifecycle(dispatcher, registry, drain_timeout=config.drain_timeout)

    await lifecycle.startup()
    lifecycle.install_signal_handlers()
    try:
        await lifecycle.run_until_shutdown()
    finally:
        lifecycle.remove_signal_handlers()
        await lifecycle.shutdown()
