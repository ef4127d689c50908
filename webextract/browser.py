"""
Page loading: Playwright for JavaScript-heavy sites, httpx for static ones.

Both loaders hand back a PageSnapshot, so nothing downstream holds a live page.
"""

import asyncio
from typing import Optional

import httpx
from loguru import logger
from playwright.async_api import Browser, Error as PlaywrightError, Page, Route, async_playwright

from .exceptions import PageLoadError
from .page import PageSnapshot

BLOCKED_RESOURCE_TYPES = {"font", "media"}

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Cache-Control": "max-age=0",
}


def normalize_url(url: str) -> str:
    """Add an ``https://`` scheme when the URL has none."""
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        return f"https://{url}"
    return url


class BrowserSession:
    """Handles browser automation for JS-heavy sites."""

    def __init__(self, headless: bool = True, timeout_ms: int = 30000, settle_ms: int = 1000):
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.settle_ms = settle_ms
        self.browser: Optional[Browser] = None
        self.playwright = None

    async def __aenter__(self):
        """Context manager entry."""
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(headless=self.headless)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()

    async def snapshot(
        self,
        url: str,
        wait_for: Optional[str] = None,
        scroll_for_lazy_load: bool = False,
    ) -> PageSnapshot:
        """
        Load a URL and capture its rendered document.

        Args:
            url: URL to load
            wait_for: CSS selector to wait for before capturing
            scroll_for_lazy_load: Scroll down to trigger lazy-loaded content

        Returns:
            PageSnapshot of the rendered HTML
        """
        if not self.browser:
            raise RuntimeError("Browser not initialized. Use async with context manager.")

        page = await self.browser.new_page()
        await page.route("**/*", _block_heavy_resources)

        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)

            if wait_for:
                try:
                    await page.wait_for_selector(wait_for, timeout=self.timeout_ms)
                except PlaywrightError as e:
                    logger.warning(f"Timeout waiting for selector '{wait_for}': {e}")

            await asyncio.sleep(self.settle_ms / 1000)

            if scroll_for_lazy_load:
                logger.debug("Scrolling to load lazy content...")
                await self._scroll_page(page)

            return await PageSnapshot.from_page(page, url=url)

        except PlaywrightError as e:
            raise PageLoadError(f"Failed to load {url}: {e}", url=url) from e

        finally:
            await page.close()

    async def _scroll_page(self, page: Page, scrolls: int = 3):
        """Scroll down a page multiple times to trigger lazy loading."""
        for _ in range(scrolls):
            await page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
            await asyncio.sleep(1)


async def _block_heavy_resources(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


async def fetch_snapshot(
    url: str,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PageSnapshot:
    """Fast fetch with httpx (for non-JS sites)."""
    async with httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers=DEFAULT_HEADERS,
        transport=transport,
    ) as client:
        logger.debug(f"Fetching {url}")
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PageLoadError(f"Failed to fetch {url}: {e}", url=url) from e

        return PageSnapshot(url=url, html=response.text, final_url=str(response.url))
