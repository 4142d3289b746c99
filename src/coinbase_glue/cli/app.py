"""Unified CLI entry point for the Coinbase Wallet glue.

Config precedence: settings.default.toml -> settings.{env}.toml -> settings.local.toml -> env vars (CBGLUE_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

import logging
import sys

import typer

from coinbase_glue.cli.run_cmd import run_command
from coinbase_glue.cli.settings_cmd import settings_app

try:
    from importlib.metadata import version

    VERSION = version("coinbase-glue")
except Exception:
    VERSION = "unknown"

APP_HELP = (
    "coinbase-glue: drives the Coinbase Wallet extension for the wallet test harness. "
    "Config precedence: settings.default.toml -> settings.local.toml -> env vars (CBGLUE_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)

app.add_typer(settings_app, name="settings")
app.command("run")(run_command)


def configure_logging(debug: bool = False) -> None:
    """Send log records to stderr; stdout is reserved for events."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stderr,
    )
    # Quieten noisy libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    debug: bool = typer.Option(False, "--debug", help="Log at DEBUG level."),
) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"coinbase-glue {VERSION}")
        raise typer.Exit()

    from coinbase_glue.settings import get_settings

    try:
        debug = debug or get_settings().debug
    except Exception:
        # `settings validate` reports the problem itself.
        pass
    configure_logging(debug)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()
