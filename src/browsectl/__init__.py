"""browsectl — launch, record and tear down Playwright browser sessions; serve session factories."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("browsectl")
except Exception:
    __version__ = "0.0.0"
