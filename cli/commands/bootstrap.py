"""
Bootstrap Commands - Resolve startup dependencies and report the outcome.

Usage:
    preflight bootstrap
    preflight bootstrap --json
    preflight resolve-binary
    preflight serve --host 0.0.0.0 --port 8000
"""

import asyncio
import json
import logging
import sys
from typing import Optional

import click

from api.config import get_settings_uncached
from core.bootstrap import (
    BinaryResolver,
    BootstrapReport,
    BootstrapSequence,
    Environment,
    ResolutionOutcome,
)

logger = logging.getLogger("preflight.bootstrap")


def build_sequence(environment: Environment) -> BootstrapSequence:
    """Create the bootstrap sequence for an environment snapshot."""
    return BootstrapSequence(environment)


def build_binary_resolver(environment: Environment) -> BinaryResolver:
    """Create the browser resolver for an environment snapshot."""
    return BinaryResolver(environment)


def format_outcome(name: str, outcome: ResolutionOutcome) -> str:
    """Format one resolution outcome as a single line."""
    if outcome.is_acquired:
        detail = f"via {outcome.tier}"
        if isinstance(outcome.resource, str):
            detail += f" ({outcome.resource})"
        return f"  {name:<10} ACQUIRED  {detail}"
    return f"  {name:<10} {outcome.kind.value.upper():<9} {outcome.reason}"


async def _run_bootstrap(environment: Environment) -> BootstrapReport:
    report = await build_sequence(environment).run()
    # This command only checks; nothing keeps the handle afterwards
    await report.release()
    return report


@click.command("bootstrap")
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    default=False,
    help="Print the report as JSON.",
)
@click.pass_obj
def bootstrap(ctx, as_json: bool):
    """
    Resolve the database and browser once and exit with the outcome.

    Exits 1 only when the database is unavailable in development without
    DEGRADED_MODE=true. Every other outcome exits 0.
    """
    environment = get_settings_uncached().to_environment()
    report = asyncio.run(_run_bootstrap(environment))

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        click.echo(f"Bootstrap ({environment.deployment_mode.value} mode)")
        click.echo(format_outcome("database", report.database))
        click.echo(format_outcome("browser", report.browser))
        if report.degraded_mode:
            click.echo("  DEGRADED MODE is active")

    sys.exit(report.exit_code)


@click.command("resolve-binary")
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    default=False,
    help="Print the outcome as JSON.",
)
@click.pass_obj
def resolve_binary(ctx, as_json: bool):
    """
    Locate or download the browser executable.

    Never fails: when no browser can be found a warning is printed and the
    command still exits 0.
    """
    environment = get_settings_uncached().to_environment()
    outcome = asyncio.run(build_binary_resolver(environment).resolve())

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2))
    else:
        click.echo(format_outcome("browser", outcome))
        if environment.binary_executable_path_override:
            click.echo(
                f"  override: {environment.binary_executable_path_override} "
                f"(BINARY_EXECUTABLE_PATH_OVERRIDE)"
            )


@click.command("serve")
@click.option("--host", default=None, help="Bind address (default from HOST).")
@click.option("--port", type=int, default=None, help="Bind port (default from PORT).")
@click.pass_obj
def serve(ctx, host: Optional[str], port: Optional[int]):
    """
    Bootstrap, then serve the API in the same event loop.

    The bootstrap runs before the server binds; a fatal database outcome
    exits 1 without serving.
    """
    from api.main import serve_application

    settings = get_settings_uncached()
    exit_code = asyncio.run(
        serve_application(
            build_sequence(settings.to_environment()),
            host or settings.host,
            port or settings.port,
            settings.log_level.value.lower(),
        )
    )
    sys.exit(exit_code)
