"""CLI commands for inspecting and validating browsectl settings."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from browsectl.exceptions import ConfigurationError

settings_app = typer.Typer(help="Inspect and validate browsectl configuration.")
console = Console()


@settings_app.command("show")
def show_settings(
    section: Optional[str] = typer.Argument(None, help="Only show one section (browser, recorder, grid, logging)."),
) -> None:
    """Print the resolved settings as JSON."""
    from browsectl.settings import get_settings

    data = get_settings().model_dump(mode="json")
    if section is not None:
        if section not in data or not isinstance(data[section], dict):
            console.print(f"[red]✗[/red] Unknown settings section: {section}")
            raise typer.Exit(code=1)
        data = data[section]
    console.print_json(json.dumps(data, default=str))


@settings_app.command("validate")
def validate_settings() -> None:
    """Load settings and check that the browser and grid factory they name exist."""
    from browsectl.grid.bootstrap import load_factory
    from browsectl.settings import get_settings

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"[red]✗[/red] Settings validation failed: {e}")
        raise typer.Exit(code=1)

    problems: list[str] = []
    exe = settings.browser.executable_path
    if exe and not Path(exe).is_file():
        problems.append(f"browser.executable_path does not exist: {exe}")
    try:
        factory = load_factory(settings.grid.factory or None)
    except ConfigurationError as e:
        problems.append(f"grid.factory: {e}")
        factory = None

    if problems:
        for problem in problems:
            console.print(f"[red]✗[/red] {problem}", highlight=False)
        raise typer.Exit(code=1)

    console.print("[green]✓[/green] Settings are valid.")
    console.print(f"  Environment: {settings.env}")
    console.print(f"  Headless: {settings.browser.headless}")
    console.print(f"  Grid: {settings.grid.host}:{settings.grid.port} (factory {factory.name})", highlight=False)
