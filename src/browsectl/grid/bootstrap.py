"""Grid bootstrap: load a factory by identifier, validate it, start serving it."""

from __future__ import annotations

import logging

from browsectl.grid.factory import GridFactory
from browsectl.grid.loader import FactoryLoader, unwrap_default, validate_factory
from browsectl.grid.server import GridServer

logger = logging.getLogger(__name__)

DEFAULT_FACTORY = "browsectl.grid.simple_factory"


def load_factory(identifier: str | None = None, *, loader: FactoryLoader | None = None) -> GridFactory:
    """Resolve *identifier* (default: the built-in factory) to a validated factory.

    Raises:
        FactoryResolutionError: If the identifier cannot be loaded.
        CapabilityMismatchError: If the loaded object has no callable ``launch``.
    """
    identifier = identifier or DEFAULT_FACTORY
    module = (loader or FactoryLoader()).load(identifier)
    factory = validate_factory(unwrap_default(module), identifier)
    logger.info("Loaded grid factory %s from %s", factory.name, identifier)
    return factory


async def start_grid_server(
    identifier: str | None,
    port: int,
    auth_token: str | None = None,
    *,
    host: str = "0.0.0.0",
    loader: FactoryLoader | None = None,
) -> GridServer:
    """Load the factory and start a ``GridServer`` for it.

    The factory is loaded and validated before any port is bound.
    """
    factory = load_factory(identifier, loader=loader)
    server = GridServer(factory, auth_token, host=host)
    await server.start(port)
    logger.info("Grid server is running at %s", server.url_prefix())
    return server
