"""CLI commands that drive a browser session: open, codegen, screenshot, pdf."""

from __future__ import annotations

from typing import Optional

import typer
from playwright.async_api import async_playwright

from browsectl.cli.common import (
    BROWSER_OPTION,
    CHANNEL_OPTION,
    COLOR_SCHEME_OPTION,
    DEVICE_OPTION,
    GEOLOCATION_OPTION,
    IGNORE_HTTPS_ERRORS_OPTION,
    LANG_OPTION,
    LOAD_STORAGE_OPTION,
    PROXY_BYPASS_OPTION,
    PROXY_SERVER_OPTION,
    SAVE_STORAGE_OPTION,
    SAVE_TRACE_OPTION,
    TIMEOUT_OPTION,
    TIMEZONE_OPTION,
    USER_AGENT_OPTION,
    VIEWPORT_SIZE_OPTION,
    console,
    run_command,
)
from browsectl.session.capture import CaptureOptions, save_pdf, take_screenshot
from browsectl.session.options import LaunchSettings, SessionOptions
from browsectl.session.recorder import run_interactive_session


def _launch_settings() -> LaunchSettings:
    from browsectl.settings import get_settings

    browser = get_settings().browser
    return LaunchSettings(headless=browser.headless, executable_path=browser.executable_path or None)


async def _interactive(
    options: SessionOptions,
    url: Optional[str],
    *,
    language: str,
    start_recording: bool,
    output_file: Optional[str],
) -> None:
    from browsectl.settings import get_settings

    settings = get_settings()
    async with async_playwright() as pw:
        await run_interactive_session(
            pw,
            options,
            url,
            launch=_launch_settings(),
            language=language,
            start_recording=start_recording,
            output_file=output_file,
            exit_on_open=settings.browser.exit_on_open,
        )


def open_command(
    ctx: typer.Context,
    url: Optional[str] = typer.Argument(None, help="Page to open."),
    browser: str = BROWSER_OPTION,
    channel: Optional[str] = CHANNEL_OPTION,
    color_scheme: Optional[str] = COLOR_SCHEME_OPTION,
    device: Optional[str] = DEVICE_OPTION,
    geolocation: Optional[str] = GEOLOCATION_OPTION,
    ignore_https_errors: bool = IGNORE_HTTPS_ERRORS_OPTION,
    load_storage: Optional[str] = LOAD_STORAGE_OPTION,
    lang: Optional[str] = LANG_OPTION,
    proxy_server: Optional[str] = PROXY_SERVER_OPTION,
    proxy_bypass: Optional[str] = PROXY_BYPASS_OPTION,
    save_storage: Optional[str] = SAVE_STORAGE_OPTION,
    save_trace: Optional[str] = SAVE_TRACE_OPTION,
    timezone: Optional[str] = TIMEZONE_OPTION,
    timeout: str = TIMEOUT_OPTION,
    user_agent: Optional[str] = USER_AGENT_OPTION,
    viewport_size: Optional[str] = VIEWPORT_SIZE_OPTION,
) -> None:
    """Open a page in a browser with the inspector attached."""
    from browsectl.settings import get_settings

    options = SessionOptions.model_validate(ctx.params)
    run_command(
        _interactive(
            options,
            url,
            language=get_settings().recorder.language,
            start_recording=False,
            output_file=None,
        )
    )


def codegen_command(
    ctx: typer.Context,
    url: Optional[str] = typer.Argument(None, help="Page to start recording on."),
    target: Optional[str] = typer.Option(None, "--target", "-t", help="Language to generate (default from settings)."),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Save the generated script to this file."),
    browser: str = BROWSER_OPTION,
    channel: Optional[str] = CHANNEL_OPTION,
    color_scheme: Optional[str] = COLOR_SCHEME_OPTION,
    device: Optional[str] = DEVICE_OPTION,
    geolocation: Optional[str] = GEOLOCATION_OPTION,
    ignore_https_errors: bool = IGNORE_HTTPS_ERRORS_OPTION,
    load_storage: Optional[str] = LOAD_STORAGE_OPTION,
    lang: Optional[str] = LANG_OPTION,
    proxy_server: Optional[str] = PROXY_SERVER_OPTION,
    proxy_bypass: Optional[str] = PROXY_BYPASS_OPTION,
    save_storage: Optional[str] = SAVE_STORAGE_OPTION,
    save_trace: Optional[str] = SAVE_TRACE_OPTION,
    timezone: Optional[str] = TIMEZONE_OPTION,
    timeout: str = TIMEOUT_OPTION,
    user_agent: Optional[str] = USER_AGENT_OPTION,
    viewport_size: Optional[str] = VIEWPORT_SIZE_OPTION,
) -> None:
    """Open a page and generate code for the user's interactions."""
    from browsectl.settings import get_settings

    options = SessionOptions.model_validate(ctx.params)
    run_command(
        _interactive(
            options,
            url,
            language=target or get_settings().recorder.language,
            start_recording=True,
            output_file=output,
        )
    )


async def _screenshot(options: SessionOptions, capture: CaptureOptions, url: str, filename: str) -> None:
    async with async_playwright() as pw:
        await take_screenshot(pw, options, capture, url, filename)


async def _pdf(options: SessionOptions, capture: CaptureOptions, url: str, filename: str) -> None:
    async with async_playwright() as pw:
        await save_pdf(pw, options, capture, url, filename)


def screenshot_command(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Page to capture."),
    filename: str = typer.Argument(..., help="Where to save the screenshot."),
    wait_for_selector: Optional[str] = typer.Option(None, "--wait-for-selector", help="Wait for selector before taking a screenshot."),
    wait_for_timeout: Optional[int] = typer.Option(None, "--wait-for-timeout", help="Wait for timeout in milliseconds before taking a screenshot."),
    full_page: bool = typer.Option(False, "--full-page", help="Whether to take a full page screenshot (entire scrollable area)."),
    browser: str = BROWSER_OPTION,
    channel: Optional[str] = CHANNEL_OPTION,
    color_scheme: Optional[str] = COLOR_SCHEME_OPTION,
    device: Optional[str] = DEVICE_OPTION,
    geolocation: Optional[str] = GEOLOCATION_OPTION,
    ignore_https_errors: bool = IGNORE_HTTPS_ERRORS_OPTION,
    load_storage: Optional[str] = LOAD_STORAGE_OPTION,
    lang: Optional[str] = LANG_OPTION,
    proxy_server: Optional[str] = PROXY_SERVER_OPTION,
    proxy_bypass: Optional[str] = PROXY_BYPASS_OPTION,
    save_storage: Optional[str] = SAVE_STORAGE_OPTION,
    save_trace: Optional[str] = SAVE_TRACE_OPTION,
    timezone: Optional[str] = TIMEZONE_OPTION,
    timeout: str = TIMEOUT_OPTION,
    user_agent: Optional[str] = USER_AGENT_OPTION,
    viewport_size: Optional[str] = VIEWPORT_SIZE_OPTION,
) -> None:
    """Capture a page screenshot."""
    options = SessionOptions.model_validate(ctx.params)
    capture = CaptureOptions(wait_for_selector=wait_for_selector, wait_for_timeout=wait_for_timeout, full_page=full_page)
    run_command(_screenshot(options, capture, url, filename))
    console.print(f"[green]✓[/green] Screenshot saved to {filename}", highlight=False)


def pdf_command(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Page to print."),
    filename: str = typer.Argument(..., help="Where to save the PDF."),
    wait_for_selector: Optional[str] = typer.Option(None, "--wait-for-selector", help="Wait for given selector before saving as pdf."),
    wait_for_timeout: Optional[int] = typer.Option(None, "--wait-for-timeout", help="Wait for given timeout in milliseconds before saving as pdf."),
    browser: str = BROWSER_OPTION,
    channel: Optional[str] = CHANNEL_OPTION,
    color_scheme: Optional[str] = COLOR_SCHEME_OPTION,
    device: Optional[str] = DEVICE_OPTION,
    geolocation: Optional[str] = GEOLOCATION_OPTION,
    ignore_https_errors: bool = IGNORE_HTTPS_ERRORS_OPTION,
    load_storage: Optional[str] = LOAD_STORAGE_OPTION,
    lang: Optional[str] = LANG_OPTION,
    proxy_server: Optional[str] = PROXY_SERVER_OPTION,
    proxy_bypass: Optional[str] = PROXY_BYPASS_OPTION,
    save_storage: Optional[str] = SAVE_STORAGE_OPTION,
    save_trace: Optional[str] = SAVE_TRACE_OPTION,
    timezone: Optional[str] = TIMEZONE_OPTION,
    timeout: str = TIMEOUT_OPTION,
    user_agent: Optional[str] = USER_AGENT_OPTION,
    viewport_size: Optional[str] = VIEWPORT_SIZE_OPTION,
) -> None:
    """Save a page as PDF (Chromium only)."""
    options = SessionOptions.model_validate(ctx.params)
    capture = CaptureOptions(wait_for_selector=wait_for_selector, wait_for_timeout=wait_for_timeout)
    run_command(_pdf(options, capture, url, filename))
    console.print(f"[green]✓[/green] PDF saved to {filename}", highlight=False)
