"""
Preflight CLI entry point.

Usage:
    preflight bootstrap [--json]
    preflight resolve-binary [--json]
    preflight serve [--host HOST] [--port PORT]
"""

import logging
import sys

import click

from cli import __version__
from cli.commands.bootstrap import bootstrap, resolve_binary, serve

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@click.group()
@click.version_option(version=__version__, prog_name="preflight")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.pass_context
def app(ctx: click.Context, verbose: bool) -> None:
    """Preflight - startup dependency bootstrap with degraded-mode fallback."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    ctx.obj = {"verbose": verbose}


app.add_command(bootstrap)
app.add_command(resolve_binary)
app.add_command(serve)


if __name__ == "__main__":
    app()
