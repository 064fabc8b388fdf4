"""Browser session lifecycle: option normalization, launch, page bootstrap, teardown."""

from browsectl.session.lifecycle import LaunchedSession, SessionLifecycleManager, SessionState, launch_session
from browsectl.session.navigation import open_page, resolve_address
from browsectl.session.options import (
    LaunchConfig,
    LaunchSettings,
    NormalizedOptions,
    SessionConfig,
    SessionOptions,
    normalize_options,
)

__all__ = [
    "LaunchConfig",
    "LaunchSettings",
    "LaunchedSession",
    "NormalizedOptions",
    "SessionConfig",
    "SessionLifecycleManager",
    "SessionOptions",
    "SessionState",
    "launch_session",
    "normalize_options",
    "open_page",
    "resolve_address",
]
