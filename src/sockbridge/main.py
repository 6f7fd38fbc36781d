"""CLI main entry point."""

import click

from . import __version__
from .commands.bridge import serve_command


@click.group()
@click.version_option(__version__, prog_name="sockbridge")
def cli() -> None:
    """Bridge TCP clients to a WebSocket server."""


cli.add_command(serve_command)


@cli.command()
def version() -> None:
    """Show version information."""
    click.echo(f"sockbridge version {__version__}")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
