"""Shared CLI pieces: session flags, console output, and error-to-exit-code mapping."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Coroutine
from typing import Any, TypeVar

import typer
from rich.console import Console

from browsectl.exceptions import ConfigurationError

logger = logging.getLogger(__name__)
console = Console()

T = TypeVar("T")

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"

# ---------------------------------------------------------------------------
# Session flags shared by open, codegen, screenshot and pdf
# ---------------------------------------------------------------------------

BROWSER_OPTION = typer.Option(
    "chromium", "--browser", "-b", help="Browser to use, one of cr, chromium, ff, firefox, wk, webkit."
)
CHANNEL_OPTION = typer.Option(None, "--channel", help='Chromium distribution channel, "chrome", "chrome-beta", "msedge-dev", etc.')
COLOR_SCHEME_OPTION = typer.Option(None, "--color-scheme", help='Emulate preferred color scheme, "light" or "dark".')
DEVICE_OPTION = typer.Option(None, "--device", help='Emulate device, for example "iPhone 11".')
GEOLOCATION_OPTION = typer.Option(
    None, "--geolocation", help='Specify geolocation coordinates, for example "37.819722,-122.478611".'
)
IGNORE_HTTPS_ERRORS_OPTION = typer.Option(False, "--ignore-https-errors", help="Ignore HTTPS errors.")
LOAD_STORAGE_OPTION = typer.Option(
    None, "--load-storage", help="Load context storage state from the file, previously saved with --save-storage."
)
LANG_OPTION = typer.Option(None, "--lang", help='Specify language / locale, for example "en-GB".')
PROXY_SERVER_OPTION = typer.Option(
    None, "--proxy-server", help='Specify proxy server, for example "http://myproxy:3128" or "socks5://myproxy:8080".'
)
PROXY_BYPASS_OPTION = typer.Option(
    None, "--proxy-bypass", help='Comma-separated domains to bypass proxy, for example ".com,chromium.org,.domain.com".'
)
SAVE_STORAGE_OPTION = typer.Option(
    None, "--save-storage", help="Save context storage state at the end, for later use with --load-storage."
)
SAVE_TRACE_OPTION = typer.Option(None, "--save-trace", help="Record a trace for the session and save it to a file.")
TIMEZONE_OPTION = typer.Option(None, "--timezone", help='Time zone to emulate, for example "Europe/Rome".')
TIMEOUT_OPTION = typer.Option("10000", "--timeout", help="Timeout for Playwright actions in milliseconds.")
USER_AGENT_OPTION = typer.Option(None, "--user-agent", help="Specify user agent string.")
VIEWPORT_SIZE_OPTION = typer.Option(
    None, "--viewport-size", help='Specify browser viewport size in pixels, for example "1280,720".'
)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_logging(level: str) -> None:
    """Configure the root logger for one CLI invocation."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stderr,
    )
    # Quieten noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Running coroutines with exit-code mapping
# ---------------------------------------------------------------------------


def report_configuration_error(exc: ConfigurationError) -> None:
    """Print a configuration error (and its valid choices) for the operator."""
    stream = console if exc.exit_code == 0 else Console(stderr=True)
    stream.print(str(exc), markup=False, highlight=False)
    for choice in exc.choices:
        stream.print(f'  "{choice}"', markup=False, highlight=False)


def run_command(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro* and turn failures into ``typer.Exit`` codes.

    ``ConfigurationError`` exits with its own code (0 for operator guidance);
    anything else is logged and exits with 1.
    """
    try:
        return asyncio.run(coro)
    except ConfigurationError as exc:
        report_configuration_error(exc)
        raise typer.Exit(code=exc.exit_code) from None
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted.[/yellow]")
        raise typer.Exit(code=130) from None
    except Exception as exc:
        logger.debug("Command failed", exc_info=True)
        Console(stderr=True).print(f"[red]✗[/red] {type(exc).__name__}: {exc}", highlight=False)
        raise typer.Exit(code=1) from None
