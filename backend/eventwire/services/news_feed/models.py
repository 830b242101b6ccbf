"""Pydantic models for feed items."""

from datetime import datetime

from pydantic import BaseModel


class FeedItem(BaseModel):
    """One candidate article as returned by the feed, in feed order."""

    link: str
    title: str = ""
    source: str | None = None
    snippet: str | None = None
    published_at: datetime | None = None
