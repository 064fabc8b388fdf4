"""Headless page capture: screenshots and PDFs."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from playwright.async_api import Playwright

from browsectl.exceptions import ConfigurationError
from browsectl.session.lifecycle import LaunchedSession, launch_session
from browsectl.session.navigation import open_page, wait_for_page
from browsectl.session.options import LaunchSettings, SessionOptions, lookup_browser_name, validate_options

logger = logging.getLogger(__name__)


@dataclass
class CaptureOptions:
    """When to capture, and how much of the page."""

    wait_for_selector: str | None = None
    wait_for_timeout: int | None = None
    full_page: bool = False


async def take_screenshot(
    playwright: Playwright,
    options: SessionOptions,
    capture: CaptureOptions,
    url: str,
    path: str,
) -> LaunchedSession:
    """Open *url* in a headless session and save a screenshot to *path*."""
    session = await launch_session(playwright, options, LaunchSettings(headless=True))
    try:
        logger.info("Navigating to %s", url)
        page = await open_page(session.context, url)
        await wait_for_page(
            page,
            wait_for_selector=capture.wait_for_selector,
            wait_for_timeout=capture.wait_for_timeout,
        )
        logger.info("Capturing screenshot into %s", path)
        await page.screenshot(path=path, full_page=capture.full_page)
    finally:
        await session.manager.close()
    return session


async def save_pdf(
    playwright: Playwright,
    options: SessionOptions,
    capture: CaptureOptions,
    url: str,
    path: str,
) -> LaunchedSession:
    """Open *url* in headless Chromium and print it to a PDF at *path*.

    Raises:
        ConfigurationError: With ``exit_code=1`` for any browser but Chromium,
            including one picked by the device profile.
    """
    validate_options(options, playwright.devices)
    profile = playwright.devices.get(options.device) if options.device else None
    if lookup_browser_name(options.browser, profile) != "chromium":
        raise ConfigurationError("PDF creation is only working with Chromium", exit_code=1)

    session = await launch_session(
        playwright,
        options.model_copy(update={"browser": "chromium"}),
        LaunchSettings(headless=True),
    )
    try:
        logger.info("Navigating to %s", url)
        page = await open_page(session.context, url)
        await wait_for_page(
            page,
            wait_for_selector=capture.wait_for_selector,
            wait_for_timeout=capture.wait_for_timeout,
        )
        logger.info("Saving as pdf into %s", path)
        await page.pdf(path=path)
    finally:
        await session.manager.close()
    return session
