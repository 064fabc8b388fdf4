"""Configuration loader for browsectl using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags (where applicable)
  2. Environment variables (BROWSECTL_* with __ for nesting)
  3. settings.local.toml
  4. settings.<env>.toml
  5. settings.default.toml

Only the CLI layer reads these settings. Session and grid code receive the
values they need as explicit arguments.
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("BROWSECTL_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "BROWSECTL_ENV"
DEFAULT_ENV = "local"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _resolve_env() -> str:
    return (os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


def _config_layers(env_name: str) -> list[dict[str, Any]]:
    """Return the TOML layers for *env_name*, lowest precedence first."""
    names = ("settings.default.toml", f"settings.{env_name}.toml", "settings.local.toml")
    return [_load_toml(CONFIG_DIR / name) for name in names]


def _merge_layers(*layers: dict[str, Any]) -> dict[str, Any]:
    """Merge *layers* left to right; sections (tables) merge key by key."""
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            merged[key] = {**current, **value} if isinstance(value, dict) and isinstance(current, dict) else value
    return merged


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class BrowserSettings(BaseSettings):
    """Session host launch settings for interactive commands."""

    model_config = SettingsConfigDict(env_prefix="BROWSECTL_BROWSER__")

    headless: bool = False
    executable_path: str = ""
    exit_on_open: bool = False  # close every page once the first page is open


class RecorderSettings(BaseSettings):
    """Recorder / code generator hand-off."""

    model_config = SettingsConfigDict(env_prefix="BROWSECTL_RECORDER__")

    language: str = "python"


class GridSettings(BaseSettings):
    """Grid server configuration."""

    model_config = SettingsConfigDict(env_prefix="BROWSECTL_GRID__")

    host: str = "0.0.0.0"
    port: int = 3333
    auth_token: str = ""
    factory: str = ""  # empty -> built-in reference factory


class LoggingSettings(BaseSettings):
    """Root logger configuration."""

    model_config = SettingsConfigDict(env_prefix="BROWSECTL_LOGGING__")

    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(_LOG_LEVELS)}")
        return level


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root browsectl settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="BROWSECTL_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    debug: bool = False

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    recorder: RecorderSettings = Field(default_factory=RecorderSettings)
    grid: GridSettings = Field(default_factory=GridSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="before")
    @classmethod
    def _apply_config_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Put the TOML layers underneath init kwargs and env vars."""
        env_name = (values.get("env") or _resolve_env()).strip()
        return _merge_layers(*_config_layers(env_name), values)

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize a relative executable path against project_root."""
        exe = self.browser.executable_path
        if exe and not Path(exe).is_absolute():
            self.browser.executable_path = str(self.project_root / exe)
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
