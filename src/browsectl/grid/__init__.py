"""Grid: dynamically loaded session factories served over HTTP."""

from browsectl.grid.bootstrap import DEFAULT_FACTORY, load_factory, start_grid_server
from browsectl.grid.factory import GridFactory, SessionRequest, SessionTarget
from browsectl.grid.server import GridServer, create_grid_app

__all__ = [
    "DEFAULT_FACTORY",
    "GridFactory",
    "GridServer",
    "SessionRequest",
    "SessionTarget",
    "create_grid_app",
    "load_factory",
    "start_grid_server",
]
