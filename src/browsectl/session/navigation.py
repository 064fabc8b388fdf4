"""Initial page bootstrap: address classification and navigation.

Operators pass whatever they would type in an address bar: a local file, a
full URL, or a bare host. ``resolve_address`` turns that into something
``page.goto`` accepts, checking in this order:

1. an existing local path -> ``file://`` URI of its absolute path
2. an address that already has a scheme (``http``, ``file://``, ``about:``, ``data:``)
3. anything else -> ``http://`` prefix

Navigation is not retried. Network-level failures surface as
``NavigationError``; timeouts and other Playwright errors propagate as-is.
"""

from __future__ import annotations

import logging
from pathlib import Path

from playwright.async_api import BrowserContext, Page, Response
from playwright.async_api import Error as PlaywrightError

from browsectl.exceptions import NavigationError

logger = logging.getLogger(__name__)

_SCHEME_PREFIXES: tuple[str, ...] = ("http", "file://", "about:", "data:")

# Playwright error substrings that indicate the address itself is unreachable.
_NETWORK_ERRORS: tuple[str, ...] = (
    "ERR_NAME_NOT_RESOLVED",
    "ERR_CONNECTION_REFUSED",
    "ERR_CONNECTION_RESET",
    "ERR_CONNECTION_CLOSED",
    "ERR_SSL_PROTOCOL_ERROR",
    "ERR_CERT_AUTHORITY_INVALID",
    "ERR_CERT_COMMON_NAME_INVALID",
    "ERR_ADDRESS_UNREACHABLE",
    "ERR_FILE_NOT_FOUND",
    "NS_ERROR_UNKNOWN_HOST",
    "NS_ERROR_CONNECTION_REFUSED",
)


def _is_local_path(address: str) -> bool:
    try:
        return Path(address).exists()
    except (OSError, ValueError):
        # Too long for a file name, or contains NUL bytes.
        return False


def resolve_address(address: str) -> str:
    """Classify *address* and return the URL to navigate to."""
    if _is_local_path(address):
        return Path(address).resolve().as_uri()
    if address.startswith(_SCHEME_PREFIXES):
        return address
    return "http://" + address


async def goto(page: Page, url: str) -> Response | None:
    """Navigate *page* to *url* without retries.

    Raises:
        NavigationError: If the address is unreachable at the network level.
        playwright.async_api.Error: Any other navigation failure (timeouts included).
    """
    try:
        return await page.goto(url)
    except PlaywrightError as exc:
        message = str(exc)
        for pattern in _NETWORK_ERRORS:
            if pattern in message:
                reason = pattern.split("_ERROR_")[-1].replace("ERR_", "").replace("_", " ").lower()
                logger.warning("Navigation to %s failed: %s", url, pattern)
                raise NavigationError(url, reason) from exc
        raise


async def open_page(context: BrowserContext, address: str | None = None) -> Page:
    """Open a new page in *context* and navigate it to *address* if one is given.

    The context's ``page`` listeners (close tracking, dialog handling) run
    before ``new_page`` returns, so they are in place before navigation.
    """
    page = await context.new_page()
    if address:
        url = resolve_address(address)
        logger.info("Navigating to %s", url)
        await goto(page, url)
    return page


async def wait_for_page(
    page: Page,
    *,
    wait_for_selector: str | None = None,
    wait_for_timeout: int | None = None,
) -> None:
    """Wait for a selector and/or a fixed delay before capturing *page*."""
    if wait_for_selector:
        logger.info("Waiting for selector %s...", wait_for_selector)
        await page.wait_for_selector(wait_for_selector)
    if wait_for_timeout:
        logger.info("Waiting for timeout %dms...", wait_for_timeout)
        await page.wait_for_timeout(wait_for_timeout)
