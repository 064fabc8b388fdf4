"""browsectl test configuration — shared fixtures and in-memory Playwright fakes."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any

import pytest
from playwright._impl._connection import Channel

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture()
def anyio_backend() -> str:
    """Session code schedules teardown with asyncio tasks."""
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from browsectl.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Playwright fakes
# ---------------------------------------------------------------------------


class _Emitter:
    def __init__(self) -> None:
        self.handlers: dict[str, list[Any]] = defaultdict(list)

    def on(self, event: str, handler: Any) -> None:
        self.handlers[event].append(handler)

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self.handlers[event]):
            handler(*args)


class FakeTracing:
    def __init__(self, calls: list[tuple]) -> None:
        self._calls = calls
        self.stop_error: Exception | None = None

    async def start(self, **kwargs: Any) -> None:
        self._calls.append(("tracing.start", kwargs))

    async def stop(self, path: str | None = None) -> None:
        self._calls.append(("tracing.stop", path))
        if self.stop_error is not None:
            raise self.stop_error


class FakePage(_Emitter):
    def __init__(self, context: "FakeContext") -> None:
        super().__init__()
        self.context = context
        self.url = "about:blank"
        self.goto_error: Exception | None = context.browser.goto_error
        self.is_closed = False

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.context.calls.append(("goto", url))
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url

    async def close(self) -> None:
        if self.is_closed:
            return
        self.is_closed = True
        self.context.remove_page(self)
        self.context.calls.append(("page.close", self.url))
        self.emit("close", self)

    async def wait_for_selector(self, selector: str) -> None:
        self.context.calls.append(("wait_for_selector", selector))

    async def wait_for_timeout(self, timeout: int) -> None:
        self.context.calls.append(("wait_for_timeout", timeout))

    async def screenshot(self, **kwargs: Any) -> bytes:
        self.context.calls.append(("screenshot", kwargs))
        return b""

    async def pdf(self, **kwargs: Any) -> bytes:
        self.context.calls.append(("pdf", kwargs))
        return b""


class StubConnection:
    """Driver connection stand-in: records each message and answers it with an empty result."""

    def __init__(self) -> None:
        self._error: Exception | None = None
        self.messages: list[tuple[str, dict[str, Any], float]] = []

    @property
    def _transport(self) -> SimpleNamespace:
        return SimpleNamespace(on_error_future=asyncio.get_running_loop().create_future())

    async def wrap_api_call(self, cb: Any, is_internal: bool = False, title: str | None = None) -> Any:
        return await cb()

    def _send_message_to_server(
        self, object: Any, method: str, params: dict[str, Any], timeout: float, no_reply: bool = False
    ) -> SimpleNamespace:
        self.messages.append((method, params, timeout))
        future = asyncio.get_running_loop().create_future()
        future.set_result({})
        return SimpleNamespace(future=future)

    def _on_event_listener_error(self, exc: Exception) -> None:
        raise exc


class FakeContext(_Emitter):
    def __init__(self, browser: "FakeBrowser", options: dict[str, Any]) -> None:
        super().__init__()
        self.browser = browser
        self.calls = browser.calls
        self.options = options
        self.tracing = FakeTracing(self.calls)
        self.timeouts: dict[str, int] = {}
        self.storage_error: Exception | None = None
        self._pages: list[FakePage] = []
        self.connection = StubConnection()
        self._channel = Channel(self.connection, SimpleNamespace(_guid="browser-context@fake"))

    @property
    def pages(self) -> list[FakePage]:
        return list(self._pages)

    def remove_page(self, page: FakePage) -> None:
        self._pages.remove(page)

    async def new_page(self) -> FakePage:
        page = FakePage(self)
        self._pages.append(page)
        self.calls.append(("new_page",))
        self.emit("page", page)
        return page

    async def storage_state(self, path: str | None = None) -> dict[str, Any]:
        self.calls.append(("storage_state", path))
        if self.storage_error is not None:
            raise self.storage_error
        return {"cookies": [], "origins": []}

    def set_default_timeout(self, timeout: int) -> None:
        self.timeouts["default"] = timeout

    def set_default_navigation_timeout(self, timeout: int) -> None:
        self.timeouts["navigation"] = timeout


class FakeBrowser(_Emitter):
    def __init__(self, calls: list[tuple]) -> None:
        super().__init__()
        self.calls = calls
        self._contexts: list[FakeContext] = []
        self.close_count = 0
        self.new_context_error: Exception | None = None
        self.goto_error: Exception | None = None

    @property
    def contexts(self) -> list[FakeContext]:
        return list(self._contexts)

    async def new_context(self, **kwargs: Any) -> FakeContext:
        self.calls.append(("new_context", kwargs))
        if self.new_context_error is not None:
            raise self.new_context_error
        context = FakeContext(self, kwargs)
        self._contexts.append(context)
        return context

    async def close(self) -> None:
        self.close_count += 1
        self.calls.append(("browser.close",))
        self.emit("disconnected", self)


class FakeBrowserType:
    def __init__(self, name: str, calls: list[tuple]) -> None:
        self.name = name
        self.calls = calls
        self.launch_error: Exception | None = None
        self.goto_error: Exception | None = None
        self.browsers: list[FakeBrowser] = []

    async def launch(self, **kwargs: Any) -> FakeBrowser:
        self.calls.append(("launch", self.name, kwargs))
        if self.launch_error is not None:
            raise self.launch_error
        browser = FakeBrowser(self.calls)
        browser.goto_error = self.goto_error
        self.browsers.append(browser)
        return browser


DEVICES: dict[str, dict[str, Any]] = {
    "iPhone 13": {
        "user_agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 15_0 like Mac OS X)",
        "viewport": {"width": 390, "height": 664},
        "screen": {"width": 390, "height": 844},
        "device_scale_factor": 3,
        "is_mobile": True,
        "has_touch": True,
        "default_browser_type": "webkit",
    },
    "Pixel 5": {
        "user_agent": "Mozilla/5.0 (Linux; Android 11; Pixel 5)",
        "viewport": {"width": 393, "height": 727},
        "device_scale_factor": 2.75,
        "is_mobile": True,
        "has_touch": True,
        "default_browser_type": "chromium",
    },
    "Firefox Phone": {
        "user_agent": "Mozilla/5.0 (Android 11; Mobile; rv:109.0) Gecko/109.0 Firefox/109.0",
        "viewport": {"width": 412, "height": 839},
        "device_scale_factor": 2,
        "is_mobile": True,
        "has_touch": True,
        "default_browser_type": "firefox",
    },
}


class FakePlaywright:
    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.devices = DEVICES
        self.chromium = FakeBrowserType("chromium", self.calls)
        self.firefox = FakeBrowserType("firefox", self.calls)
        self.webkit = FakeBrowserType("webkit", self.calls)

    def launched(self) -> list[tuple]:
        return [call for call in self.calls if call[0] == "launch"]


@pytest.fixture()
def devices() -> dict[str, dict[str, Any]]:
    """A small device descriptor registry shaped like ``playwright.devices``."""
    return DEVICES


@pytest.fixture()
def fake_playwright() -> FakePlaywright:
    """An in-memory Playwright whose objects record every lifecycle call."""
    return FakePlaywright()


@pytest.fixture()
def stub_connection() -> StubConnection:
    """A driver connection that records the messages sent over a real ``Channel``."""
    return StubConnection()


@pytest.fixture()
def fake_async_playwright(fake_playwright: FakePlaywright):
    """A drop-in for ``async_playwright`` yielding ``fake_playwright``."""

    @asynccontextmanager
    async def _factory():
        yield fake_playwright

    return _factory


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that bind local ports or spawn processes")
