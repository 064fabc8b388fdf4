"""Option normalization: operator flags -> launch and context configuration.

Turns the flat ``SessionOptions`` collected by the CLI into the two keyword
sets Playwright consumes:

- ``LaunchConfig`` for ``BrowserType.launch()``
- ``SessionConfig`` for ``Browser.new_context()``

Everything here is pure. All validation and numeric parsing happens before a
browser is launched, so a malformed flag never leaves a half-built session
behind.

Usage::

    from browsectl.session.options import LaunchSettings, SessionOptions, normalize_options

    normalized = normalize_options(SessionOptions(device="iPhone 13"), pw.devices, LaunchSettings())
    browser = await getattr(pw, normalized.browser_name).launch(**normalized.launch_config.to_kwargs())
    context = await browser.new_context(**normalized.session_config.to_kwargs())
"""

from __future__ import annotations

import logging
import math
import sys
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from browsectl.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_BROWSER_ALIASES: dict[str, str] = {
    "chromium": "chromium",
    "cr": "chromium",
    "firefox": "firefox",
    "ff": "firefox",
    "webkit": "webkit",
    "wk": "webkit",
}

COLOR_SCHEMES: tuple[str, ...] = ("light", "dark")

# Session fields cleared for a (browser, platform) pair. ``None`` matches any platform.
_HOST_OVERRIDES: tuple[tuple[str, str | None, tuple[str, ...]], ...] = (
    ("webkit", "linux", ("has_touch", "is_mobile")),  # WebKit GTK scrolling issue
    ("firefox", None, ("is_mobile",)),
)

# Fields added for presentation only; never echoed to the recorder.
_LAUNCH_PRESENTATION_FIELDS: tuple[str, ...] = ("headless", "executable_path")
_SESSION_PRESENTATION_FIELDS: tuple[str, ...] = ("device_scale_factor",)

_VIEWPORT_HINT = 'Invalid viewport size format: use "width,height", for example --viewport-size=1280,720'
_GEOLOCATION_HINT = 'Invalid geolocation format: use "lat,long", for example --geolocation="37.819722,-122.478611"'
_TIMEOUT_HINT = "Invalid timeout: use milliseconds, for example --timeout=10000"


# ---------------------------------------------------------------------------
# Raw operator options
# ---------------------------------------------------------------------------


class SessionOptions(BaseModel):
    """Session flags as the operator typed them."""

    model_config = ConfigDict(extra="ignore")

    browser: str = "chromium"
    channel: str | None = None
    color_scheme: str | None = None
    device: str | None = None
    geolocation: str | None = None
    ignore_https_errors: bool = False
    lang: str | None = None
    load_storage: str | None = None
    proxy_server: str | None = None
    proxy_bypass: str | None = None
    save_storage: str | None = None
    save_trace: str | None = None
    timeout: str | None = "10000"
    timezone: str | None = None
    user_agent: str | None = None
    viewport_size: str | None = None

    @field_validator("timeout", mode="before")
    @classmethod
    def _timeout_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


@dataclass(frozen=True)
class LaunchSettings:
    """Launch inputs chosen by the caller rather than the operator's flags."""

    headless: bool = True
    executable_path: str | None = None


# ---------------------------------------------------------------------------
# Structured configuration
# ---------------------------------------------------------------------------


def _drop_unset(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


@dataclass(frozen=True)
class LaunchConfig:
    """Keyword arguments for ``BrowserType.launch()``."""

    headless: bool = True
    executable_path: str | None = None
    channel: str | None = None
    proxy: dict[str, str] | None = None

    def to_kwargs(self) -> dict[str, Any]:
        return _drop_unset(asdict(self))

    def echo(self) -> dict[str, Any]:
        """Return the operator-intentional launch options (presentation fields removed)."""
        kwargs = self.to_kwargs()
        for key in _LAUNCH_PRESENTATION_FIELDS:
            kwargs.pop(key, None)
        return kwargs


@dataclass(frozen=True)
class SessionConfig:
    """Keyword arguments for ``Browser.new_context()``."""

    viewport: dict[str, int] | None = None
    screen: dict[str, int] | None = None
    device_scale_factor: float | None = None
    is_mobile: bool | None = None
    has_touch: bool | None = None
    user_agent: str | None = None
    locale: str | None = None
    timezone_id: str | None = None
    geolocation: dict[str, float] | None = None
    permissions: list[str] | None = None
    color_scheme: str | None = None
    storage_state: str | None = None
    ignore_https_errors: bool | None = None

    def to_kwargs(self) -> dict[str, Any]:
        return _drop_unset(asdict(self))

    def echo(self) -> dict[str, Any]:
        """Return the operator-intentional context options (computed fields removed)."""
        kwargs = self.to_kwargs()
        for key in _SESSION_PRESENTATION_FIELDS:
            kwargs.pop(key, None)
        return kwargs


_SESSION_FIELDS: frozenset[str] = frozenset(f.name for f in fields(SessionConfig))


@dataclass(frozen=True)
class NormalizedOptions:
    """Result of ``normalize_options()``."""

    browser_name: str
    launch_config: LaunchConfig
    session_config: SessionConfig
    timeout_ms: int | None = None
    device: str | None = None
    save_trace: str | None = None
    save_storage: str | None = None


# ---------------------------------------------------------------------------
# Validation and parsing
# ---------------------------------------------------------------------------


def validate_options(options: SessionOptions, devices: Mapping[str, Mapping[str, Any]]) -> None:
    """Check the enumerated flags (device name, color scheme).

    Raises:
        ConfigurationError: With ``exit_code=0``; an unknown device also lists
            every known device name in ``choices``.
    """
    if options.device and options.device not in devices:
        raise ConfigurationError(
            f"Device descriptor not found: '{options.device}', available devices are:",
            exit_code=0,
            choices=list(devices),
        )
    if options.color_scheme and options.color_scheme not in COLOR_SCHEMES:
        raise ConfigurationError(
            'Invalid color scheme, should be one of "light", "dark"',
            exit_code=0,
        )


def lookup_browser_name(browser: str, device_profile: Mapping[str, Any] | None = None) -> str:
    """Resolve a browser flag (or the device's default browser) to a Playwright browser type name."""
    name = browser
    if device_profile and device_profile.get("default_browser_type"):
        name = device_profile["default_browser_type"]
    resolved = _BROWSER_ALIASES.get((name or "").strip().lower())
    if resolved is None:
        raise ConfigurationError(
            f"Unknown browser {name!r}, should be one of {', '.join(_BROWSER_ALIASES)}",
            exit_code=0,
        )
    return resolved


def parse_viewport_size(value: str) -> dict[str, int]:
    """Parse ``"W,H"`` into a Playwright viewport dict."""
    parts = value.split(",")
    if len(parts) != 2:
        raise ConfigurationError(_VIEWPORT_HINT, exit_code=0)
    try:
        width, height = (int(part.strip()) for part in parts)
    except ValueError:
        raise ConfigurationError(_VIEWPORT_HINT, exit_code=0) from None
    if width <= 0 or height <= 0:
        raise ConfigurationError(_VIEWPORT_HINT, exit_code=0)
    return {"width": width, "height": height}


def parse_geolocation(value: str) -> dict[str, float]:
    """Parse ``"lat,long"`` into a Playwright geolocation dict."""
    parts = value.split(",")
    if len(parts) != 2:
        raise ConfigurationError(_GEOLOCATION_HINT, exit_code=0)
    try:
        latitude, longitude = (float(part.strip()) for part in parts)
    except ValueError:
        raise ConfigurationError(_GEOLOCATION_HINT, exit_code=0) from None
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise ConfigurationError(_GEOLOCATION_HINT, exit_code=0)
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        raise ConfigurationError(_GEOLOCATION_HINT, exit_code=0)
    return {"latitude": latitude, "longitude": longitude}


def parse_timeout(value: str) -> int:
    """Parse a millisecond timeout flag."""
    try:
        timeout_ms = int(value.strip())
    except ValueError:
        raise ConfigurationError(_TIMEOUT_HINT, exit_code=0) from None
    if timeout_ms < 0:
        raise ConfigurationError(_TIMEOUT_HINT, exit_code=0)
    return timeout_ms


def _profile_fields(profile: Mapping[str, Any] | None) -> dict[str, Any]:
    """Copy the context-relevant part of a device descriptor."""
    if not profile:
        return {}
    copied: dict[str, Any] = {}
    for key, value in profile.items():
        if key not in _SESSION_FIELDS:
            continue
        copied[key] = dict(value) if isinstance(value, Mapping) else value
    return copied


def _apply_host_overrides(context_fields: dict[str, Any], browser_name: str, platform: str) -> None:
    for browser, host_platform, cleared in _HOST_OVERRIDES:
        if browser != browser_name or (host_platform is not None and host_platform != platform):
            continue
        for key in cleared:
            if context_fields.pop(key, None) is not None:
                logger.debug("Dropped %s: not supported by %s on %s", key, browser_name, platform)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_options(
    options: SessionOptions,
    devices: Mapping[str, Mapping[str, Any]],
    launch: LaunchSettings,
    *,
    platform: str = sys.platform,
) -> NormalizedOptions:
    """Validate *options* and build the launch and context configuration.

    Args:
        options: Raw operator flags.
        devices: Device descriptor registry (``playwright.devices``).
        launch: Headless mode and executable path chosen by the caller.
        platform: Host platform (``sys.platform`` style) used for the
            device-scale default and the compatibility table.

    Returns:
        A ``NormalizedOptions`` ready for ``launch_session()``.

    Raises:
        ConfigurationError: If any flag is invalid or malformed.
    """
    validate_options(options, devices)
    profile = devices[options.device] if options.device else None
    browser_name = lookup_browser_name(options.browser, profile)

    viewport = parse_viewport_size(options.viewport_size) if options.viewport_size else None
    geolocation = parse_geolocation(options.geolocation) if options.geolocation else None
    timeout_ms = parse_timeout(options.timeout) if options.timeout else None

    # --- Launch config ---
    proxy: dict[str, str] | None = None
    if options.proxy_server:
        proxy = {"server": options.proxy_server}
        if options.proxy_bypass:
            proxy["bypass"] = options.proxy_bypass

    launch_config = LaunchConfig(
        headless=launch.headless,
        executable_path=launch.executable_path or None,
        channel=options.channel or None,
        proxy=proxy,
    )

    # --- Session config ---
    ctx = _profile_fields(profile)

    # Headful windows use the host's pixel density; headless keeps Playwright's default.
    if not launch.headless:
        ctx["device_scale_factor"] = 2 if platform == "darwin" else 1

    _apply_host_overrides(ctx, browser_name, platform)

    if viewport:
        ctx["viewport"] = viewport
    if geolocation:
        ctx["geolocation"] = geolocation
        ctx["permissions"] = ["geolocation"]
    if options.user_agent:
        ctx["user_agent"] = options.user_agent
    if options.lang:
        ctx["locale"] = options.lang
    if options.color_scheme:
        ctx["color_scheme"] = options.color_scheme
    if options.timezone:
        ctx["timezone_id"] = options.timezone
    if options.load_storage:
        ctx["storage_state"] = options.load_storage
    if options.ignore_https_errors:
        ctx["ignore_https_errors"] = True

    return NormalizedOptions(
        browser_name=browser_name,
        launch_config=launch_config,
        session_config=SessionConfig(**ctx),
        timeout_ms=timeout_ms,
        device=options.device,
        save_trace=options.save_trace,
        save_storage=options.save_storage,
    )
