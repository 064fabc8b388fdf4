"""Unified CLI entry point for browsectl.

Config precedence: settings.default.toml -> settings.<env>.toml -> settings.local.toml -> env vars (BROWSECTL_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

import typer

from browsectl.cli.common import configure_logging
from browsectl.cli.grid_cmd import grid_server_command
from browsectl.cli.session_cmd import codegen_command, open_command, pdf_command, screenshot_command
from browsectl.cli.settings_cmd import settings_app

try:
    from importlib.metadata import version

    VERSION = version("browsectl")
except Exception:
    VERSION = "unknown"

APP_HELP = (
    "browsectl — launch, record and capture Playwright browser sessions, "
    "and serve session factories over HTTP. "
    "Config precedence: settings.default.toml -> settings.<env>.toml -> settings.local.toml -> "
    "env vars (BROWSECTL_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)

app.command("open")(open_command)
app.command("codegen")(codegen_command)
app.command("screenshot")(screenshot_command)
app.command("pdf")(pdf_command)
app.command("grid-server")(grid_server_command)
app.add_typer(settings_app, name="settings")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"browsectl {VERSION}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    from browsectl.settings import get_settings

    configure_logging("DEBUG" if verbose else get_settings().logging.level)


if __name__ == "__main__":
    app()
