"""CLI command for serving a session factory over HTTP."""

from __future__ import annotations

from typing import Optional

import typer

from browsectl.cli.common import console, run_command
from browsectl.grid.bootstrap import start_grid_server


async def _serve(identifier: Optional[str], port: int, auth_token: Optional[str], host: str) -> None:
    server = await start_grid_server(identifier, port, auth_token, host=host)
    console.print(f"Grid server is running at {server.url_prefix()}", highlight=False)
    await server.serve_forever()


def grid_server_command(
    factory: Optional[str] = typer.Argument(
        None, help="Path or package name of the factory module (default: built-in simple factory)."
    ),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on (default from settings)."),
    auth_token: Optional[str] = typer.Option(None, "--auth-token", help="Token required as the first URL path segment."),
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind (default from settings)."),
) -> None:
    """Start a grid server that launches sessions through a pluggable factory."""
    from browsectl.settings import get_settings

    grid = get_settings().grid
    run_command(
        _serve(
            factory or grid.factory or None,
            grid.port if port is None else port,
            auth_token or grid.auth_token or None,
            host or grid.host,
        )
    )
