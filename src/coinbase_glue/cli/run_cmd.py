"""``run`` command: drive one wallet session from a JSONL command stream.

Events go to stdout as JSON lines. Commands arrive on stdin, one JSON object
per line with a ``type`` field naming the command, for example::

    {"type": "requestAccounts", "id": "3f2a9c0d1b7e", "action": "approve"}
    {"type": "report", "payload": {"passed": 12}}

The session stops on ``report`` or when stdin closes.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console

from coinbase_glue.events import EventBus, JsonlSink, LoggingSink
from coinbase_glue.exceptions import GlueError
from coinbase_glue.glue import WalletGlue
from coinbase_glue.settings.config import Settings

logger = logging.getLogger(__name__)

# stdout carries the event stream; human output goes to stderr.
console = Console(stderr=True)


def build_bus(settings: Settings, stream: Any = None) -> EventBus:
    """Event bus with the sinks enabled in ``settings.events``."""
    bus = EventBus()
    if settings.events.jsonl:
        bus.add_sink(JsonlSink(stream if stream is not None else sys.stdout))
    if settings.events.logging:
        bus.add_sink(LoggingSink())
    return bus


async def open_stdin() -> asyncio.StreamReader:
    """Wrap stdin in an asyncio stream reader."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def dispatch_line(glue: WalletGlue, line: str) -> bool:
    """Handle one command line. Returns True once the run has been reported.

    Malformed lines and failing commands are logged; they do not end the run.
    """
    line = line.strip()
    if not line:
        return False

    try:
        message = json.loads(line)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring malformed command line: %s", e)
        return False
    if not isinstance(message, dict):
        logger.warning("Ignoring command that is not an object: %r", message)
        return False

    kind = message.pop("type", None)
    if kind == "report":
        await glue.report(message.get("payload", message))
        return True

    try:
        await glue.handle_command(str(kind), message)
    except (GlueError, ValidationError) as e:
        logger.error("Command %s failed: %s", kind, e)
    except Exception:
        logger.exception("Unhandled error running command %s", kind)
    return False


async def pump_commands(glue: WalletGlue, reader: asyncio.StreamReader) -> None:
    """Feed stdin lines to the glue until a report arrives or input ends."""
    while not glue.completed:
        raw = await reader.readline()
        if not raw:
            logger.info("Command stream closed")
            break
        if await dispatch_line(glue, raw.decode("utf-8", errors="replace")):
            break


async def run_session(url: str, settings: Settings) -> Any:
    """Create the glue, open *url*, and serve commands until done."""
    bus = build_bus(settings)
    glue = await WalletGlue.create(settings, bus)
    try:
        await glue.launch(url)
        reader = await open_stdin()
        await pump_commands(glue, reader)
    finally:
        await glue.stop()
    return glue.result


def run_command(
    url: str = typer.Argument(..., help="URL of the dapp under test."),
    headless: bool = typer.Option(False, "--headless", help="Run the browser headless."),
    extension: str = typer.Option("", "--extension", "-e", help="Path to the unpacked wallet extension."),
) -> None:
    """Launch the wallet, open URL, and serve harness commands from stdin."""
    from coinbase_glue.settings import get_settings

    settings = get_settings()
    if headless:
        settings.browser.headless = True
    if extension:
        settings.browser.extension_path = extension

    if not settings.browser.extension_path:
        console.print("[red]✗[/red] No extension path configured (browser.extension_path or --extension).")
        raise typer.Exit(code=2)

    console.print(f"[bold]Testing:[/bold] {url}")
    try:
        result = asyncio.run(run_session(url, settings))
    except GlueError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    if result is None:
        console.print("[yellow]![/yellow] Session ended without a report.")
        raise typer.Exit(code=1)
    console.print("[green]✓[/green] Report received.")
