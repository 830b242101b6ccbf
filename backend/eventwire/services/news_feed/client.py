"""Async client for the Google News RSS search feed."""

from __future__ import annotations

import calendar
import logging
from datetime import datetime, timezone
from typing import Any

import feedparser
import httpx
from bs4 import BeautifulSoup

from .config import NewsFeedConfig
from .exceptions import NewsFeedHTTPError, NewsFeedParseError
from .models import FeedItem

logger = logging.getLogger(__name__)


def _strip_markup(value: str | None) -> str | None:
    if not value:
        return None
    text = BeautifulSoup(value, "html.parser").get_text(" ", strip=True)
    return text or None


def _entry_published_at(entry: Any) -> datetime | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)


def _entry_source(entry: Any) -> str | None:
    source = entry.get("source")
    if source and source.get("title"):
        return source.get("title")
    return entry.get("author") or None


def parse_feed(body: str) -> list[FeedItem]:
    """Parse an RSS body into feed items, preserving feed order."""
    feed = feedparser.parse(body)
    if feed.bozo and not feed.entries:
        raise NewsFeedParseError(f"Unparseable feed: {feed.get('bozo_exception')}")

    items: list[FeedItem] = []
    for entry in feed.entries:
        link = entry.get("link")
        if not link:
            continue
        items.append(
            FeedItem(
                link=link,
                title=entry.get("title") or "",
                source=_entry_source(entry),
                snippet=_strip_markup(entry.get("summary")),
                published_at=_entry_published_at(entry),
            )
        )
    return items


class NewsFeedClient:
    """Keyword search against the Google News RSS endpoint."""

    def __init__(
        self,
        config: NewsFeedConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or NewsFeedConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        logger.info("Initialized NewsFeedClient")

    async def __aenter__(self) -> NewsFeedClient:
        self._client = httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            headers={"User-Agent": self.config.user_agent},
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed NewsFeedClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("NewsFeedClient must be used as async context manager")
        return self._client

    def build_params(self, query: str) -> dict[str, str]:
        return {
            "q": query,
            "hl": self.config.language,
            "gl": self.config.region,
            "ceid": self.config.ceid,
        }

    async def search(self, query: str) -> list[FeedItem]:
        """Return feed items for ``query`` in feed order.

        Raises:
            NewsFeedHTTPError: network failure, timeout or non-2xx status
            NewsFeedParseError: body is not a feed
        """
        logger.debug(f"Fetching news feed for query {query!r}")
        try:
            response = await self.client.get(
                self.config.search_url, params=self.build_params(query)
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NewsFeedHTTPError(
                f"Feed returned {e.response.status_code} for {query!r}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise NewsFeedHTTPError(f"Feed request failed for {query!r}: {e}") from e

        return parse_feed(response.text)

