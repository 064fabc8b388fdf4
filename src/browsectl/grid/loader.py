"""Factory loading: resolve an identifier to a module, then to a factory object.

Two strategies are tried in a fixed order:

1. ``PathStrategy`` — the identifier is a file or package path relative to the
   working directory (``factories/mine``, ``./mine.py``).
2. ``PackageStrategy`` — the identifier is an importable module name
   (``acme_grid.factory``).

Each strategy returns a ``ResolutionResult`` instead of raising, so the
loader decides what failure means and each strategy can be tested alone.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import re
import sys
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType, SimpleNamespace
from typing import Any

from browsectl.exceptions import CapabilityMismatchError, FactoryResolutionError
from browsectl.grid.factory import GridFactory

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    """Outcome of one strategy's attempt to load an identifier."""

    identifier: str
    strategy: str
    module: ModuleType | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.module is not None


class ResolutionStrategy(ABC):
    """Base class for a way of turning an identifier into a module."""

    name: str = ""

    def resolve(self, identifier: str) -> ResolutionResult:
        try:
            module = self._load(identifier)
        except Exception as exc:
            logger.debug("%s strategy could not load %r: %s", self.name, identifier, exc)
            return ResolutionResult(identifier=identifier, strategy=self.name, error=exc)
        return ResolutionResult(identifier=identifier, strategy=self.name, module=module)

    @abstractmethod
    def _load(self, identifier: str) -> ModuleType:
        ...


class PathStrategy(ResolutionStrategy):
    """Load a module from a file path relative to *base_dir* (default: cwd)."""

    name = "path"

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir

    def candidates(self, identifier: str) -> list[Path]:
        path = (self._base_dir or Path.cwd()) / identifier
        return [path, path.with_name(path.name + ".py"), path / "__init__.py"]

    def _load(self, identifier: str) -> ModuleType:
        for candidate in self.candidates(identifier):
            if candidate.is_file():
                return _load_module_file(candidate.resolve())
        raise FileNotFoundError(f"No module file for {identifier!r} in {self._base_dir or Path.cwd()}")


class PackageStrategy(ResolutionStrategy):
    """Import an installed module by its dotted name."""

    name = "package"

    def _load(self, identifier: str) -> ModuleType:
        return importlib.import_module(identifier)


def _load_module_file(path: Path) -> ModuleType:
    is_package = path.name == "__init__.py"
    module_name = "browsectl_factory_" + re.sub(r"\W", "_", str(path.parent if is_package else path.with_suffix("")))
    spec = importlib.util.spec_from_file_location(
        module_name,
        path,
        submodule_search_locations=[str(path.parent)] if is_package else None,
    )
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot create an import spec for {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module


class FactoryLoader:
    """Try each resolution strategy in order until one loads the identifier."""

    def __init__(self, strategies: Iterable[ResolutionStrategy] | None = None) -> None:
        self._strategies = tuple(strategies) if strategies is not None else (PathStrategy(), PackageStrategy())
        if not self._strategies:
            raise ValueError("FactoryLoader needs at least one resolution strategy")

    @property
    def strategies(self) -> tuple[ResolutionStrategy, ...]:
        return self._strategies

    def resolve(self, identifier: str) -> ResolutionResult:
        """Return the first successful result, or the last failure."""
        result: ResolutionResult | None = None
        for strategy in self._strategies:
            result = strategy.resolve(identifier)
            if result.ok:
                logger.debug("Resolved %r with the %s strategy", identifier, result.strategy)
                return result
        assert result is not None
        return result

    def load(self, identifier: str) -> ModuleType:
        """Load *identifier* as a module.

        Raises:
            FactoryResolutionError: Chained to the last strategy's error.
        """
        result = self.resolve(identifier)
        if result.ok:
            return result.module  # type: ignore[return-value]
        error = result.error
        raise FactoryResolutionError(identifier, f"{type(error).__name__}: {error}") from error


def unwrap_default(obj: Any) -> Any:
    """Replace *obj* by its ``default`` member (key or attribute) when it has one."""
    if isinstance(obj, Mapping):
        return obj.get("default", obj)
    return getattr(obj, "default", obj)


def validate_factory(obj: Any, identifier: str) -> GridFactory:
    """Check that *obj* can launch sessions and give it a display name.

    Raises:
        CapabilityMismatchError: If *obj* has no callable ``launch``.
    """
    if isinstance(obj, Mapping):
        obj = SimpleNamespace(**obj)
    launch = getattr(obj, "launch", None)
    if obj is None or not callable(launch):
        raise CapabilityMismatchError(identifier)

    name = getattr(obj, "name", None)
    if isinstance(name, str) and name:
        return obj
    try:
        obj.name = identifier
    except (AttributeError, TypeError):
        obj = SimpleNamespace(name=identifier, launch=launch, shutdown=getattr(obj, "shutdown", None))
    return obj
