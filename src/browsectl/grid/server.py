"""Grid server: an HTTP front door that hands session requests to a factory.

Endpoints (under ``/<auth_token>`` when a token is configured):

* ``GET /`` — status and the factory's display name.
* ``POST /session`` — launch a session through the factory and return
  its ``SessionTarget``.

The server holds no session state of its own; whatever the factory returns is
passed straight back to the client.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import socket
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import APIRouter, FastAPI, HTTPException

from browsectl.grid.factory import GridFactory, SessionRequest, SessionTarget, launch_target

try:
    from importlib.metadata import version

    VERSION = version("browsectl")
except Exception:
    VERSION = "0.0.0"

logger = logging.getLogger(__name__)

_WILDCARD_HOSTS = ("", "0.0.0.0", "::")


def create_grid_app(factory: GridFactory, auth_token: str | None = None) -> FastAPI:
    """Build the FastAPI application serving *factory*."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        shutdown = getattr(factory, "shutdown", None)
        if callable(shutdown):
            logger.info("Shutting down factory %s", factory.name)
            result = shutdown()
            if inspect.isawaitable(result):
                await result

    application = FastAPI(
        title="browsectl grid",
        description="Launches browser sessions through a pluggable factory.",
        version=VERSION,
        lifespan=lifespan,
    )
    router = APIRouter(prefix=f"/{auth_token}" if auth_token else "")

    @router.get("/")
    async def status() -> dict[str, str]:
        return {"status": "ok", "factory": factory.name}

    @router.post("/session", response_model=SessionTarget)
    async def create_session(request: SessionRequest) -> SessionTarget:
        logger.info("Session %s requested (%s) from factory %s", request.session_id, request.browser_name, factory.name)
        try:
            return await launch_target(factory, request)
        except Exception as exc:
            logger.exception("Factory %s failed to launch session %s", factory.name, request.session_id)
            raise HTTPException(status_code=502, detail=f"Factory failed to launch session: {exc}") from exc

    application.include_router(router)
    return application


class GridServer:
    """Runs ``create_grid_app`` under uvicorn on an explicitly bound socket.

    Args:
        factory: A validated grid factory.
        auth_token: Optional path token gating every endpoint.
        host: Interface to bind.
    """

    def __init__(self, factory: GridFactory, auth_token: str | None = None, *, host: str = "0.0.0.0") -> None:
        self._factory = factory
        self._auth_token = auth_token or None
        self._host = host
        self.app = create_grid_app(factory, self._auth_token)
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None
        self._port: int | None = None

    @property
    def factory(self) -> GridFactory:
        return self._factory

    @property
    def port(self) -> int | None:
        return self._port

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def url_prefix(self) -> str:
        """Return the URL clients should use, including the auth token segment."""
        if self._port is None:
            raise RuntimeError("Grid server is not started")
        host = "localhost" if self._host in _WILDCARD_HOSTS else self._host
        prefix = f"http://{host}:{self._port}/"
        if self._auth_token:
            prefix += f"{self._auth_token}/"
        return prefix

    async def start(self, port: int) -> None:
        """Bind *port* (0 picks a free one) and start serving in the background.

        Returns once the server accepts connections.

        Raises:
            OSError: If the port cannot be bound.
        """
        if self._task is not None:
            raise RuntimeError("Grid server already started")

        family = socket.AF_INET6 if ":" in self._host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self._host, port))
        except OSError:
            sock.close()
            raise
        self._port = sock.getsockname()[1]

        config = uvicorn.Config(self.app, log_level="warning")
        server = uvicorn.Server(config)
        self._server = server
        self._task = asyncio.create_task(server.serve(sockets=[sock]))
        while not server.started:
            if self._task.done():
                self._task.result()
                raise RuntimeError("Grid server exited during startup")
            await asyncio.sleep(0.05)
        logger.info("Grid server for factory %s listening on %s:%d", self._factory.name, self._host, self._port)

    async def serve_forever(self) -> None:
        """Wait until the server stops."""
        if self._task is None:
            raise RuntimeError("Grid server is not started")
        await self._task

    async def stop(self) -> None:
        """Ask uvicorn to exit and wait for it."""
        if self._server is None or self._task is None:
            return
        self._server.should_exit = True
        await self._task
        logger.info("Grid server stopped")
