"""browsectl exception hierarchy."""

from __future__ import annotations


class BrowsectlError(Exception):
    """Base exception for all browsectl errors."""


class ConfigurationError(BrowsectlError):
    """Raised when operator-supplied options cannot be turned into a session or server.

    Attributes:
        exit_code: Process exit code the CLI should use. ``0`` when the operator
            only needs to pick a valid value, ``1`` for fatal misconfiguration.
        choices: Valid values to show the operator, if any.
    """

    def __init__(self, message: str, *, exit_code: int = 0, choices: list[str] | None = None) -> None:
        self.exit_code = exit_code
        self.choices = list(choices or [])
        super().__init__(message)


class CapabilityMismatchError(ConfigurationError):
    """Raised when a loaded grid factory does not expose a callable ``launch``."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(
            f"Factory {identifier!r} does not export a callable `launch` method",
            exit_code=1,
        )


class FactoryResolutionError(ConfigurationError):
    """Raised when a factory identifier resolves neither as a path nor as a package."""

    def __init__(self, identifier: str, reason: str) -> None:
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Cannot load factory {identifier!r}: {reason}", exit_code=1)


class ArtifactFlushError(BrowsectlError):
    """Raised when a session artifact (storage snapshot) cannot be written during teardown."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write session artifact {path}: {reason}")


class NavigationError(BrowsectlError):
    """Raised when navigation fails with a non-retryable network error.

    Attributes:
        url: The address that could not be reached.
        reason: Short human-readable failure reason (e.g. ``name not resolved``).
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}")
