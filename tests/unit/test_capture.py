"""Unit tests for headless screenshot and PDF capture."""

from __future__ import annotations

import pytest
from playwright.async_api import Error as PlaywrightError

from browsectl.exceptions import ConfigurationError
from browsectl.session.capture import CaptureOptions, save_pdf, take_screenshot
from browsectl.session.options import SessionOptions


class TestScreenshot:
    @pytest.mark.anyio
    async def test_captures_and_closes(self, fake_playwright) -> None:
        capture = CaptureOptions(wait_for_selector="main", full_page=True)
        session = await take_screenshot(fake_playwright, SessionOptions(), capture, "example.com", "shot.png")

        assert fake_playwright.launched()[0][2]["headless"] is True
        assert ("goto", "http://example.com") in fake_playwright.calls
        assert ("wait_for_selector", "main") in fake_playwright.calls
        assert ("screenshot", {"path": "shot.png", "full_page": True}) in fake_playwright.calls
        assert session.manager.closed
        assert session.browser.close_count == 1

    @pytest.mark.anyio
    async def test_session_closed_when_navigation_fails(self, fake_playwright) -> None:
        fake_playwright.chromium.goto_error = PlaywrightError("Timeout 10000ms exceeded.")

        with pytest.raises(PlaywrightError):
            await take_screenshot(fake_playwright, SessionOptions(), CaptureOptions(), "example.com", "shot.png")
        assert fake_playwright.chromium.browsers[0].close_count == 1
        assert "screenshot" not in [call[0] for call in fake_playwright.calls]


class TestPdf:
    @pytest.mark.anyio
    async def test_saves_pdf_with_chromium(self, fake_playwright) -> None:
        session = await save_pdf(fake_playwright, SessionOptions(browser="cr"), CaptureOptions(), "example.com", "page.pdf")
        assert fake_playwright.launched()[0][1] == "chromium"
        assert ("pdf", {"path": "page.pdf"}) in fake_playwright.calls
        assert session.browser.close_count == 1

    @pytest.mark.anyio
    @pytest.mark.parametrize("browser", ["firefox", "wk"])
    async def test_rejects_other_browsers(self, fake_playwright, browser: str) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            await save_pdf(fake_playwright, SessionOptions(browser=browser), CaptureOptions(), "example.com", "page.pdf")
        assert exc_info.value.exit_code == 1
        assert fake_playwright.calls == []

    @pytest.mark.anyio
    async def test_rejects_device_that_defaults_to_webkit(self, fake_playwright) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            await save_pdf(
                fake_playwright, SessionOptions(device="iPhone 13"), CaptureOptions(), "example.com", "page.pdf"
            )
        assert exc_info.value.exit_code == 1
        assert fake_playwright.calls == []

    @pytest.mark.anyio
    async def test_chromium_device_is_accepted(self, fake_playwright) -> None:
        session = await save_pdf(
            fake_playwright, SessionOptions(device="Pixel 5"), CaptureOptions(), "example.com", "page.pdf"
        )
        assert fake_playwright.launched()[0][1] == "chromium"
        assert session.browser.close_count == 1

    @pytest.mark.anyio
    async def test_unknown_device_lists_choices(self, fake_playwright) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            await save_pdf(fake_playwright, SessionOptions(device="Nokia"), CaptureOptions(), "example.com", "page.pdf")
        assert exc_info.value.exit_code == 0
        assert "iPhone 13" in exc_info.value.choices
        assert fake_playwright.calls == []
