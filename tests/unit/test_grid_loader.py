"""Unit tests for grid factory resolution and validation."""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path
from types import SimpleNamespace

import pytest

from browsectl.exceptions import CapabilityMismatchError, ConfigurationError, FactoryResolutionError
from browsectl.grid.bootstrap import DEFAULT_FACTORY, load_factory
from browsectl.grid.loader import (
    FactoryLoader,
    PackageStrategy,
    PathStrategy,
    unwrap_default,
    validate_factory,
)

LAUNCHING_FACTORY = """
name = "{name}"

def launch(request):
    return {{"session_id": request.session_id, "ws_endpoint": "ws://127.0.0.1:9/"}}
"""


def _write(path: Path, source: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source))
    return path


# ===================================================================
# Strategies
# ===================================================================


class TestPathStrategy:
    def test_loads_file_with_extension(self, tmp_path: Path) -> None:
        _write(tmp_path / "mine.py", LAUNCHING_FACTORY.format(name="mine"))
        result = PathStrategy(tmp_path).resolve("mine.py")
        assert result.ok
        assert result.strategy == "path"
        assert result.module.name == "mine"

    def test_appends_py_extension(self, tmp_path: Path) -> None:
        _write(tmp_path / "factories" / "edge.py", LAUNCHING_FACTORY.format(name="edge"))
        result = PathStrategy(tmp_path).resolve("factories/edge")
        assert result.ok
        assert result.module.name == "edge"

    def test_loads_package_directory(self, tmp_path: Path) -> None:
        _write(tmp_path / "pkgfactory" / "__init__.py", LAUNCHING_FACTORY.format(name="pkg"))
        result = PathStrategy(tmp_path).resolve("pkgfactory")
        assert result.ok
        assert result.module.name == "pkg"

    def test_missing_path_is_a_failure_result(self, tmp_path: Path) -> None:
        result = PathStrategy(tmp_path).resolve("nothing/here")
        assert not result.ok
        assert isinstance(result.error, FileNotFoundError)

    def test_module_errors_are_captured(self, tmp_path: Path) -> None:
        _write(tmp_path / "broken.py", "raise RuntimeError('boom')\n")
        result = PathStrategy(tmp_path).resolve("broken.py")
        assert not result.ok
        assert "boom" in str(result.error)

    def test_defaults_to_working_directory(self, tmp_path: Path, monkeypatch) -> None:
        _write(tmp_path / "cwd_factory.py", LAUNCHING_FACTORY.format(name="cwd"))
        monkeypatch.chdir(tmp_path)
        assert PathStrategy().resolve("cwd_factory").ok


class TestPackageStrategy:
    def test_imports_installed_module(self) -> None:
        result = PackageStrategy().resolve(DEFAULT_FACTORY)
        assert result.ok
        assert result.module.name == "simple"

    def test_missing_package(self) -> None:
        result = PackageStrategy().resolve("no_such_factory_package_xyz")
        assert not result.ok
        assert isinstance(result.error, ModuleNotFoundError)


# ===================================================================
# Loader
# ===================================================================


class TestFactoryLoader:
    def test_path_wins_over_package(self, tmp_path: Path) -> None:
        _write(tmp_path / "json.py", LAUNCHING_FACTORY.format(name="shadow"))
        loader = FactoryLoader([PathStrategy(tmp_path), PackageStrategy()])
        assert loader.load("json").name == "shadow"

    def test_falls_back_to_package(self, tmp_path: Path) -> None:
        loader = FactoryLoader([PathStrategy(tmp_path), PackageStrategy()])
        result = loader.resolve(DEFAULT_FACTORY)
        assert result.strategy == "package"

    def test_package_found_on_sys_path(self, tmp_path: Path, monkeypatch) -> None:
        site = tmp_path / "site"
        _write(site / "acme_grid_factory.py", LAUNCHING_FACTORY.format(name="acme"))
        monkeypatch.syspath_prepend(str(site))
        monkeypatch.delitem(sys.modules, "acme_grid_factory", raising=False)

        loader = FactoryLoader([PathStrategy(tmp_path / "elsewhere"), PackageStrategy()])
        assert loader.load("acme_grid_factory").name == "acme"

    def test_both_strategies_fail(self, tmp_path: Path) -> None:
        loader = FactoryLoader([PathStrategy(tmp_path), PackageStrategy()])
        with pytest.raises(FactoryResolutionError) as exc_info:
            loader.load("no_such_factory_package_xyz")
        err = exc_info.value
        assert isinstance(err, ConfigurationError)
        assert err.exit_code == 1
        assert err.identifier == "no_such_factory_package_xyz"
        assert isinstance(err.__cause__, ModuleNotFoundError)

    def test_requires_a_strategy(self) -> None:
        with pytest.raises(ValueError):
            FactoryLoader([])


# ===================================================================
# Validation
# ===================================================================


class TestValidateFactory:
    def test_unwrap_default_member(self) -> None:
        inner = SimpleNamespace(launch=lambda request: None)
        assert unwrap_default({"default": inner}) is inner
        assert unwrap_default(SimpleNamespace(default=inner)) is inner
        plain = SimpleNamespace(launch=None)
        assert unwrap_default(plain) is plain

    def test_module_default_export(self, tmp_path: Path) -> None:
        _write(
            tmp_path / "wrapped.py",
            """
            class Factory:
                name = "wrapped"

                def launch(self, request):
                    return None

            default = Factory()
            """,
        )
        factory = load_factory("wrapped.py", loader=FactoryLoader([PathStrategy(tmp_path)]))
        assert factory.name == "wrapped"

    def test_missing_launch(self, tmp_path: Path) -> None:
        _write(tmp_path / "nolaunch.py", "name = 'nolaunch'\n")
        with pytest.raises(CapabilityMismatchError) as exc_info:
            load_factory("nolaunch", loader=FactoryLoader([PathStrategy(tmp_path)]))
        assert exc_info.value.exit_code == 1
        assert "`launch`" in str(exc_info.value)

    def test_launch_not_callable(self) -> None:
        with pytest.raises(CapabilityMismatchError):
            validate_factory(SimpleNamespace(launch="yes"), "strings")

    def test_none_rejected(self) -> None:
        with pytest.raises(CapabilityMismatchError):
            validate_factory(None, "empty")

    def test_name_defaults_to_identifier(self) -> None:
        factory = validate_factory(SimpleNamespace(launch=lambda request: None), "factories/anon")
        assert factory.name == "factories/anon"

    def test_existing_name_kept(self) -> None:
        factory = validate_factory(SimpleNamespace(name="custom", launch=lambda request: None), "ident")
        assert factory.name == "custom"

    def test_mapping_factory(self) -> None:
        factory = validate_factory({"launch": lambda request: None}, "mapped")
        assert factory.name == "mapped"
        assert callable(factory.launch)

    def test_read_only_object_wrapped(self) -> None:
        class Frozen:
            __slots__ = ()

            def launch(self, request):
                return None

        factory = validate_factory(Frozen(), "frozen")
        assert factory.name == "frozen"
        assert callable(factory.launch)

    def test_default_factory(self) -> None:
        factory = load_factory()
        assert factory.name == "simple"
        assert callable(factory.launch)
        assert callable(factory.shutdown)
