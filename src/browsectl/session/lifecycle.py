"""Session lifecycle: launch one browser context and tear it down exactly once.

``launch_session()`` turns ``SessionOptions`` into a running Playwright
browser + context and hands both to a ``SessionLifecycleManager``. The
manager watches page events and, when the last page of the browser closes,
runs the teardown sequence:

1. stop tracing and write the trace (``--save-trace``)
2. write the storage state snapshot (``--save-storage``); failures are logged
3. close the browser

Each step finishes before the next starts. The teardown runs in a single
task created by whichever caller gets there first; every later caller (page
close events, explicit ``close()``) awaits that same task.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from playwright.async_api import Browser, BrowserContext, Dialog, Page, Playwright

from browsectl.exceptions import ArtifactFlushError
from browsectl.session.options import LaunchSettings, SessionOptions, normalize_options

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle states of a managed session."""

    ACTIVE = "active"
    SHUTTING_DOWN = "shutting_down"
    CLOSED = "closed"


def _keep_dialog_open(dialog: Dialog) -> None:
    """Dialog listener that does nothing.

    Playwright auto-dismisses dialogs only when nobody listens for them, so
    registering this keeps dialogs on screen for the operator or recorder.
    """


class SessionLifecycleManager:
    """Owns a browser and its context and closes them exactly once.

    Args:
        browser: The session host.
        context: The browser context driven by the operator.
        save_trace: Trace output path; tracing must already be running.
        save_storage: Storage state output path.
    """

    def __init__(
        self,
        browser: Browser,
        context: BrowserContext,
        *,
        save_trace: str | None = None,
        save_storage: str | None = None,
    ) -> None:
        self._browser = browser
        self._context = context
        self._save_trace = save_trace
        self._save_storage = save_storage
        self._state = SessionState.ACTIVE
        self._teardown: asyncio.Task[None] | None = None
        self._closed = asyncio.Event()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is SessionState.CLOSED

    @property
    def browser(self) -> Browser:
        return self._browser

    @property
    def context(self) -> BrowserContext:
        return self._context

    # ------------------------------------------------------------------
    # Event wiring
    # ------------------------------------------------------------------

    def install(self) -> None:
        """Subscribe to page and browser events. Call before opening any page."""
        self._context.on("page", self._on_page)
        self._browser.on("disconnected", self._on_disconnected)

    def apply_timeouts(self, timeout_ms: int) -> None:
        """Set the default action and navigation timeouts together."""
        self._context.set_default_timeout(timeout_ms)
        self._context.set_default_navigation_timeout(timeout_ms)
        logger.debug("Default timeouts set to %dms", timeout_ms)

    def _on_page(self, page: Page) -> None:
        page.on("dialog", _keep_dialog_open)
        page.on("close", self._on_page_close)

    def _on_page_close(self, page: Page) -> None:
        if self._state is not SessionState.ACTIVE:
            # Pages closed by the teardown itself (browser close, storage snapshot).
            return
        if self._has_open_pages():
            return
        logger.info("Last page closed; shutting down the session")
        self._start_teardown()

    def _on_disconnected(self, browser: Browser) -> None:
        if self._teardown is not None:
            return
        logger.info("Browser disconnected")
        self._state = SessionState.CLOSED
        self._closed.set()

    def _has_open_pages(self) -> bool:
        return any(context.pages for context in self._browser.contexts)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _start_teardown(self) -> asyncio.Task[None]:
        if self._teardown is None:
            self._state = SessionState.SHUTTING_DOWN
            self._teardown = asyncio.ensure_future(self._run_teardown())
            self._teardown.add_done_callback(self._log_teardown_failure)
        return self._teardown

    @staticmethod
    def _log_teardown_failure(task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Session teardown failed: %s", exc)

    async def _run_teardown(self) -> None:
        try:
            if self._save_trace:
                logger.info("Saving trace to %s", self._save_trace)
                await self._context.tracing.stop(path=self._save_trace)
            if self._save_storage:
                try:
                    await self._flush_storage(self._save_storage)
                except ArtifactFlushError as exc:
                    logger.warning("%s", exc)
            await self._browser.close()
            logger.info("Session closed")
        finally:
            self._state = SessionState.CLOSED
            self._closed.set()

    async def _flush_storage(self, path: str) -> None:
        logger.info("Saving storage state to %s", path)
        try:
            await self._context.storage_state(path=path)
        except Exception as exc:
            raise ArtifactFlushError(path, str(exc)) from exc

    async def close(self) -> None:
        """Run the teardown sequence, or wait for the one already running.

        Safe to call any number of times, concurrently or not. A trace flush
        failure is re-raised to every caller; the browser is left open in
        that case so the session can still be inspected.
        """
        if self._teardown is None and self._state is SessionState.CLOSED:
            return
        await self._start_teardown()

    async def wait_closed(self) -> None:
        """Block until the session is closed by teardown or by the browser going away."""
        await self._closed.wait()
        if self._teardown is not None:
            await self._teardown


@dataclass
class LaunchedSession:
    """A running session and the configuration echoed to the recorder."""

    browser: Browser
    browser_name: str
    context: BrowserContext
    manager: SessionLifecycleManager
    launch_options: dict[str, Any] = field(default_factory=dict)
    context_options: dict[str, Any] = field(default_factory=dict)
    device: str | None = None
    save_storage: str | None = None


async def launch_session(
    playwright: Playwright,
    options: SessionOptions,
    launch: LaunchSettings,
    *,
    platform: str = sys.platform,
) -> LaunchedSession:
    """Launch a browser and context for *options* with managed teardown.

    Options are validated before anything is launched. Launch failures
    propagate unchanged.

    Args:
        playwright: A started Playwright instance.
        options: Operator flags.
        launch: Headless mode and executable path.
        platform: Host platform, see ``normalize_options()``.

    Returns:
        The ``LaunchedSession``; its ``launch_options`` / ``context_options``
        omit presentation-only fields.

    Raises:
        ConfigurationError: If the options are invalid.
    """
    normalized = normalize_options(options, playwright.devices, launch, platform=platform)
    browser_type = getattr(playwright, normalized.browser_name)

    logger.info("Launching %s (headless=%s)", normalized.browser_name, normalized.launch_config.headless)
    browser = await browser_type.launch(**normalized.launch_config.to_kwargs())
    try:
        context = await browser.new_context(**normalized.session_config.to_kwargs())
    except BaseException:
        await browser.close()
        raise

    manager = SessionLifecycleManager(
        browser,
        context,
        save_trace=normalized.save_trace,
        save_storage=normalized.save_storage,
    )
    manager.install()

    if normalized.timeout_ms is not None:
        manager.apply_timeouts(normalized.timeout_ms)

    if normalized.save_trace:
        await context.tracing.start(screenshots=True, snapshots=True)

    return LaunchedSession(
        browser=browser,
        browser_name=normalized.browser_name,
        context=context,
        manager=manager,
        launch_options=normalized.launch_config.echo(),
        context_options=normalized.session_config.echo(),
        device=normalized.device,
        save_storage=normalized.save_storage,
    )
