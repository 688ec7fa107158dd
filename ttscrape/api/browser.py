"""
Launches an automated browser on the TikTok website and harvests the
fingerprint values (user agent, language) needed to sign API requests.
"""

import logging
from dataclasses import dataclass

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    async_playwright,
)

from ttscrape.exceptions import SessionInitError
from ttscrape.models.config import SUPPORTED_BROWSERS

from .fingerprint import DEFAULT_USER_AGENT

log = logging.getLogger(__name__)

_USER_AGENT_JS = "() => navigator.userAgent"
_LANGUAGE_JS = "() => navigator.language || navigator.userLanguage"


@dataclass
class BrowserHandle:
    """The live execution context of a browser session."""

    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page

    async def harvest(self) -> tuple[str, str]:
        """Reads the real user agent and language from the running page."""
        user_agent = await self.page.evaluate(_USER_AGENT_JS)
        language = await self.page.evaluate(_LANGUAGE_JS)
        return str(user_agent), str(language)

    async def close(self) -> None:
        """Closes the browser and stops the Playwright driver."""
        await _shutdown(self.playwright, self.browser)


async def _shutdown(playwright: Playwright, browser: Browser | None = None) -> None:
    if browser is not None:
        try:
            await browser.close()
        except PlaywrightError as e:
            log.debug(f"Browser already gone while closing: {e}")
    try:
        await playwright.stop()
    except PlaywrightError as e:
        log.debug(f"Playwright driver already stopped: {e}")


async def launch_browser(
    start_url: str,
    *,
    browser: str = "chromium",
    headless: bool = True,
    proxy: str = "",
    timeout: float = 30.0,
) -> BrowserHandle:
    """
    Starts a browser and navigates it to ``start_url``.

    Whatever was started is shut down again if launching or navigating fails
    or the caller is cancelled midway.

    Args:
        start_url: Page opened once the browser is up.
        browser: Playwright engine name (chromium, firefox or webkit).
        headless: Run without a visible window.
        proxy: Optional proxy server URL.
        timeout: Navigation timeout in seconds.

    Raises:
        SessionInitError: If the browser cannot be launched or the page
        cannot be loaded.
    """
    if browser not in SUPPORTED_BROWSERS:
        raise SessionInitError(
            f"Unsupported browser '{browser}'. "
            f"Choose one of: {', '.join(SUPPORTED_BROWSERS)}."
        )

    playwright = await async_playwright().start()
    try:
        launcher = getattr(playwright, browser)
        browser_obj = await launcher.launch(
            headless=headless,
            proxy={"server": proxy} if proxy else None,
        )
    except PlaywrightError as e:
        await _shutdown(playwright)
        raise SessionInitError(f"Failed to launch {browser}: {e}") from e
    except BaseException:
        await _shutdown(playwright)
        raise

    try:
        context = await browser_obj.new_context(user_agent=DEFAULT_USER_AGENT)
        page = await context.new_page()
        log.debug(f"Navigating {browser} to {start_url}")
        await page.goto(start_url, timeout=timeout * 1000)
    except PlaywrightError as e:
        await _shutdown(playwright, browser_obj)
        raise SessionInitError(f"Failed to open {start_url}: {e}") from e
    except BaseException:
        await _shutdown(playwright, browser_obj)
        raise

    return BrowserHandle(playwright, browser_obj, context, page)
