"""Headless browser pool for resolving news redirector links.

Feed links point at the news redirector, which only reveals the publisher
URL after client-side navigation. Each resolution opens a fresh browser
context with images, stylesheets, fonts and media blocked, waits for the
DOM plus a short settle delay, then reads the landing location or the
best outbound link from the rendered HTML.
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from playwright.async_api import Browser, Playwright, Route, async_playwright

from eventwire.config import DEFAULT_USER_AGENT
from eventwire.utils.urls import REDIRECTOR_HOST, is_redirector_url

logger = logging.getLogger(__name__)

BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font", "media"})
EXCLUDED_LINK_HOSTS = ("googleusercontent.com", "gstatic.com")
ANCHOR_HINTS = ("read", "full", "article")
MIN_ANCHOR_TEXT_LENGTH = 30


def _is_http(url: str | None) -> bool:
    return bool(url) and urlparse(url).scheme in ("http", "https")


def _off_redirector(url: str | None, redirector: str) -> bool:
    return _is_http(url) and not is_redirector_url(url, redirector)


def pick_article_url(
    location: str | None,
    html: str | None,
    redirector: str = REDIRECTOR_HOST,
) -> str | None:
    """Choose the publisher URL from a rendered redirector page.

    Priority: landing location, canonical link, og:url, then the first
    anchor whose text suggests the full article or is long enough to be a
    headline. Returns None when nothing leaves the redirector.
    """
    if _off_redirector(location, redirector):
        return location
    if not html:
        return None

    soup = BeautifulSoup(html, "html.parser")
    base = location or ""

    canonical = soup.find("link", rel="canonical")
    if canonical and canonical.get("href"):
        href = urljoin(base, canonical["href"])
        if _off_redirector(href, redirector):
            return href

    og_url = soup.find("meta", property="og:url")
    if og_url and og_url.get("content"):
        if _off_redirector(og_url["content"], redirector):
            return og_url["content"]

    for anchor in soup.find_all("a", href=True):
        href = urljoin(base, anchor["href"])
        if not _off_redirector(href, redirector):
            continue
        if any(host in href for host in EXCLUDED_LINK_HOSTS):
            continue
        text = anchor.get_text(" ", strip=True).lower()
        if any(hint in text for hint in ANCHOR_HINTS) or len(text) > MIN_ANCHOR_TEXT_LENGTH:
            return href

    return None


class BrowserPool:
    """Bounded set of concurrent browser contexts over one Chromium instance.

    Use as an async context manager. On exit the pool waits for in-flight
    resolutions to finish before closing the browser, also on error paths.
    """

    def __init__(
        self,
        max_concurrency: int = 5,
        navigation_timeout_seconds: float = 8.0,
        settle_delay_seconds: float = 0.8,
        user_agent: str = DEFAULT_USER_AGENT,
        redirector: str = REDIRECTOR_HOST,
    ):
        self.max_concurrency = max(1, max_concurrency)
        self.navigation_timeout_seconds = navigation_timeout_seconds
        self.settle_delay_seconds = settle_delay_seconds
        self.user_agent = user_agent
        self.redirector = redirector
        self._semaphore = asyncio.Semaphore(self.max_concurrency)
        self._idle = asyncio.Condition()
        self._active = 0
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    async def _start(self) -> None:
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=True, args=["--no-sandbox", "--disable-setuid-sandbox"]
            )
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise

    async def __aenter__(self) -> BrowserPool:
        await self._start()
        logger.info(f"Browser pool started (max_concurrency={self.max_concurrency})")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.idle()
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        logger.info("Browser pool closed")

    @property
    def browser(self) -> Browser:
        if self._browser is None:
            raise RuntimeError("BrowserPool must be used as async context manager")
        return self._browser

    async def idle(self) -> None:
        """Wait until no resolution is in flight."""
        async with self._idle:
            await self._idle.wait_for(lambda: self._active == 0)

    @staticmethod
    async def _block_heavy_resources(route: Route) -> None:
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    async def _render(self, url: str) -> tuple[str, str]:
        context = await self.browser.new_context(user_agent=self.user_agent)
        try:
            await context.route("**/*", self._block_heavy_resources)
            page = await context.new_page()
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout_seconds * 1000,
            )
            await asyncio.sleep(self.settle_delay_seconds)
            return page.url, await page.content()
        finally:
            await context.close()

    async def resolve(self, url: str) -> str:
        """Publisher URL behind ``url``, or ``url`` itself on any failure."""
        async with self._semaphore:
            async with self._idle:
                self._active += 1
            try:
                location, html = await self._render(url)
                resolved = pick_article_url(location, html, self.redirector)
            except Exception as e:
                logger.debug(f"Browser resolution failed for {url}: {e}")
                resolved = None
            finally:
                async with self._idle:
                    self._active -= 1
                    self._idle.notify_all()

        return resolved or url
