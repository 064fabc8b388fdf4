"""Recorder hand-off for the ``open`` and ``codegen`` commands.

The recorder (inspector + code generator) lives in the Playwright driver.
This module only tells it what the session looks like, using the options
echoed by ``launch_session()``, then keeps the session alive until the
operator closes the last page.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from playwright.async_api import BrowserContext, Playwright

from browsectl.session.lifecycle import LaunchedSession, launch_session
from browsectl.session.navigation import open_page
from browsectl.session.options import LaunchSettings, SessionOptions

logger = logging.getLogger(__name__)

# Driver protocol method (BrowserContext channel) that attaches the recorder.
RECORDER_METHOD = "showRecorder"

# Python keyword names -> driver protocol names. Generic camel-casing gets
# ``ignoreHTTPSErrors`` wrong, so the table is explicit.
_PROTOCOL_NAMES: dict[str, str] = {
    "executable_path": "executablePath",
    "device_scale_factor": "deviceScaleFactor",
    "is_mobile": "isMobile",
    "has_touch": "hasTouch",
    "user_agent": "userAgent",
    "timezone_id": "timezoneId",
    "color_scheme": "colorScheme",
    "storage_state": "storageState",
    "ignore_https_errors": "ignoreHTTPSErrors",
}


def to_protocol_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Rename Playwright keyword arguments to their driver protocol names."""
    return {_PROTOCOL_NAMES.get(key, key): value for key, value in options.items()}


@dataclass
class RecorderRequest:
    """What the recorder needs to know to generate code for a session."""

    language: str
    launch_options: dict[str, Any] = field(default_factory=dict)
    context_options: dict[str, Any] = field(default_factory=dict)
    device: str | None = None
    save_storage: str | None = None
    start_recording: bool = False
    output_file: str | None = None

    @classmethod
    def for_session(cls, session: LaunchedSession, language: str, **kwargs: Any) -> "RecorderRequest":
        return cls(
            language=language,
            launch_options=session.launch_options,
            context_options=session.context_options,
            device=session.device,
            save_storage=session.save_storage,
            **kwargs,
        )

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "language": self.language,
            "mode": "recording" if self.start_recording else "inspecting",
            "launchOptions": to_protocol_options(self.launch_options),
            "contextOptions": to_protocol_options(self.context_options),
        }
        if self.device:
            params["device"] = self.device
        if self.save_storage:
            params["saveStorage"] = self.save_storage
        if self.output_file:
            params["outputFile"] = str(Path(self.output_file).resolve())
        return params


async def enable_recorder(context: BrowserContext, request: RecorderRequest) -> None:
    """Attach the driver-side recorder to *context*.

    Sends ``showRecorder`` on the context's driver channel, the same message
    Playwright's own ``codegen`` uses. The call has no timeout: the recorder
    window stays up until the operator closes the session.
    """
    impl = getattr(context, "_impl_obj", context)
    params = request.to_params()
    logger.debug("Enabling recorder (language=%s, mode=%s)", request.language, params["mode"])
    await impl._channel.send(RECORDER_METHOD, None, params)


async def run_interactive_session(
    playwright: Playwright,
    options: SessionOptions,
    address: str | None,
    *,
    launch: LaunchSettings,
    language: str,
    start_recording: bool = False,
    output_file: str | None = None,
    exit_on_open: bool = False,
) -> LaunchedSession:
    """Launch a session with the recorder attached and wait until it closes.

    Args:
        playwright: A started Playwright instance.
        options: Operator flags.
        address: Initial page address, or ``None`` for a blank page.
        launch: Headless mode and executable path.
        language: Recorder target language.
        start_recording: Start in recording mode (``codegen``) rather than inspecting.
        output_file: File the recorder writes generated code to.
        exit_on_open: Close every page as soon as the initial page is open.

    Returns:
        The closed session.
    """
    session = await launch_session(playwright, options, launch)
    request = RecorderRequest.for_session(
        session,
        language,
        start_recording=start_recording,
        output_file=output_file,
    )
    await enable_recorder(session.context, request)
    await open_page(session.context, address)

    if exit_on_open:
        await asyncio.gather(*(page.close() for page in session.context.pages))

    await session.manager.wait_closed()
    return session
