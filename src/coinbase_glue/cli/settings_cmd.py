"""CLI commands for inspecting and validating glue settings."""

from __future__ import annotations

import json

import typer
from rich.console import Console

settings_app = typer.Typer(help="Inspect and validate glue configuration.")
console = Console()


@settings_app.command("show")
def show_settings() -> None:
    """Display the currently resolved settings."""
    from coinbase_glue.settings import get_settings

    settings = get_settings()
    console.print_json(json.dumps(settings.model_dump(mode="json"), indent=2, default=str))


@settings_app.command("validate")
def validate_settings() -> None:
    """Validate settings and report any issues."""
    from coinbase_glue.settings import get_settings

    try:
        settings = get_settings()
        console.print("[green]✓[/green] Settings are valid.")
        console.print(f"  Environment: {settings.env}")
        console.print(f"  Extension path: {settings.browser.extension_path or '(not set)'}")
        console.print(f"  Extension URL: {settings.wallet.extension_url}")
        console.print(f"  Poll interval: {settings.watcher.poll_interval_ms} ms")
    except Exception as e:
        console.print(f"[red]✗[/red] Settings validation failed: {e}")
        raise typer.Exit(code=1)

    if not settings.browser.extension_path:
        console.print("[yellow]![/yellow] browser.extension_path is empty; `run` needs an unpacked extension.")
