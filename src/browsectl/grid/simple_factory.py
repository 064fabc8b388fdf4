"""Reference grid factory: one ``playwright run-server`` process per session.

This is the factory ``browsectl grid-server`` uses when none is given. Each
``launch`` spawns a Playwright browser server on a free local port and
returns its WebSocket endpoint; clients connect with
``await playwright.chromium.connect(target.ws_endpoint)``.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import sys

from browsectl.grid.factory import SessionRequest, SessionTarget

logger = logging.getLogger(__name__)

name = "simple"

HOST = "127.0.0.1"
LAUNCH_TIMEOUT_SEC = 30.0

_servers: dict[str, asyncio.subprocess.Process] = {}


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((HOST, 0))
        return sock.getsockname()[1]


async def _wait_for_port(port: int, process: asyncio.subprocess.Process, timeout: float) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        if process.returncode is not None:
            raise RuntimeError(f"playwright run-server exited with code {process.returncode}")
        try:
            _, writer = await asyncio.open_connection(HOST, port)
        except OSError:
            if loop.time() >= deadline:
                raise TimeoutError(f"playwright run-server did not listen on port {port} within {timeout}s") from None
            await asyncio.sleep(0.1)
            continue
        writer.close()
        await writer.wait_closed()
        return


def _forget_exited() -> None:
    for session_id, process in list(_servers.items()):
        if process.returncode is not None:
            logger.debug("Browser server for session %s exited with code %s", session_id, process.returncode)
            del _servers[session_id]


async def launch(request: SessionRequest) -> SessionTarget:
    """Start a browser server for *request* and return where to connect."""
    port = _free_port()
    process = await asyncio.create_subprocess_exec(
        sys.executable,
        "-m",
        "playwright",
        "run-server",
        "--port",
        str(port),
        "--host",
        HOST,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
    )
    try:
        await _wait_for_port(port, process, LAUNCH_TIMEOUT_SEC)
    except BaseException:
        if process.returncode is None:
            process.kill()
        await process.wait()
        raise

    _forget_exited()
    _servers[request.session_id] = process
    logger.info("Session %s served by pid %d on port %d", request.session_id, process.pid, port)
    return SessionTarget(
        session_id=request.session_id,
        ws_endpoint=f"ws://{HOST}:{port}/",
        metadata={"browser_name": request.browser_name, "pid": process.pid},
    )


async def shutdown() -> None:
    """Terminate every browser server this factory started."""
    processes = list(_servers.items())
    _servers.clear()
    for session_id, process in processes:
        if process.returncode is None:
            logger.debug("Terminating browser server for session %s", session_id)
            process.terminate()
    for _, process in processes:
        await process.wait()
