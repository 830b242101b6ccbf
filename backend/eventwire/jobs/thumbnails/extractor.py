"""Article thumbnail extraction from publisher HTML."""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from eventwire.config import DEFAULT_USER_AGENT
from eventwire.utils.urls import is_placeholder_image

logger = logging.getLogger(__name__)

MIN_INLINE_IMAGE_SIZE = 200
LAZY_SRC_ATTRIBUTES = ("src", "data-src", "data-lazy-src")
_LEADING_INT = re.compile(r"\s*(\d+)")


def _usable(url: str | None, base_url: str) -> str | None:
    if not url or not url.strip():
        return None
    absolute = urljoin(base_url, url.strip())
    if urlparse(absolute).scheme not in ("http", "https"):
        return None
    if is_placeholder_image(absolute):
        return None
    return absolute


def _dimension(value: str | None) -> int:
    match = _LEADING_INT.match(value or "")
    return int(match.group(1)) if match else 0


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find("meta", attrs=attrs)
    return tag.get("content") if tag else None


def extract_thumbnail(html: str, base_url: str) -> str | None:
    """Best article image in ``html``, or None.

    Checks og:image, twitter:image (name or property), the generic image
    meta tag, then the first inline image larger than 200x200 by its
    width/height attributes. Placeholder images are skipped at every step.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as e:
        logger.debug(f"Unparseable HTML from {base_url}: {e}")
        return None

    meta_candidates = (
        _meta_content(soup, property="og:image"),
        _meta_content(soup, name="twitter:image"),
        _meta_content(soup, property="twitter:image"),
        _meta_content(soup, name="image"),
    )
    for candidate in meta_candidates:
        image = _usable(candidate, base_url)
        if image:
            return image

    for img in soup.find_all("img"):
        src = next((img.get(attr) for attr in LAZY_SRC_ATTRIBUTES if img.get(attr)), None)
        image = _usable(src, base_url)
        if not image:
            continue
        if (
            _dimension(img.get("width")) > MIN_INLINE_IMAGE_SIZE
            and _dimension(img.get("height")) > MIN_INLINE_IMAGE_SIZE
        ):
            return image

    return None


class ThumbnailFetcher:
    """Fetch publisher pages and pull a thumbnail out of them."""

    def __init__(
        self,
        timeout_seconds: float = 5.0,
        max_redirects: int = 5,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.max_redirects = max_redirects
        self.user_agent = user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> ThumbnailFetcher:
        self._client = httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            max_redirects=self.max_redirects,
            headers={
                "User-Agent": self.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
            },
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("ThumbnailFetcher must be used as async context manager")
        return self._client

    async def fetch(self, url: str) -> str | None:
        """Thumbnail for the page at ``url``; None on any network failure."""
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug(f"Thumbnail fetch failed for {url}: {e}")
            return None
        return extract_thumbnail(response.text, str(response.url))
