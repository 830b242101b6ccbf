"""Pydantic models for the events, markets and news collections.

Internal ids are MongoDB ObjectIds in the store and hex strings in Python;
the repository converts at the boundary.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from eventwire.services.kalshi.models import KalshiMarket


def _to_str_id(v: Any) -> Any:
    return None if v is None else str(v)


DocumentId = Annotated[str, BeforeValidator(_to_str_id)]


class StoredDocument(BaseModel):
    """Fields every stored document carries."""

    model_config = ConfigDict(populate_by_name=True)

    doc_id: DocumentId | None = Field(default=None, alias="_id")
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MarketDocument(StoredDocument):
    market_ticker: str
    event_ticker: str = ""
    name: str = ""
    yes_sub_title: str = ""
    no_sub_title: str = ""
    status: str = ""
    yes_price: int | None = None
    no_price: int | None = None
    volume: int = 0
    expires_at: datetime | None = None

    @classmethod
    def from_kalshi(cls, market: KalshiMarket) -> MarketDocument:
        return cls(
            market_ticker=market.ticker,
            event_ticker=market.event_ticker,
            name=market.title,
            yes_sub_title=market.yes_sub_title,
            no_sub_title=market.no_sub_title,
            status=market.status,
            yes_price=market.yes_bid,
            no_price=market.no_bid,
            volume=market.volume,
            expires_at=market.expiration_time,
        )

    def upsert_fields(self) -> dict[str, Any]:
        """Every upstream-sourced field; replaced wholesale on each sync."""
        return self.model_dump(
            exclude={"doc_id", "created_at", "updated_at"}, by_alias=False
        )


class EventDocument(StoredDocument):
    event_ticker: str
    title: str = ""
    category: str = ""
    sub_title: str = ""
    status: str | None = None
    expires_at: datetime | None = None
    key_words: list[str] = Field(default_factory=list)
    markets: list[DocumentId] = Field(default_factory=list)
    related_news: list[DocumentId] = Field(default_factory=list)


class NewsDocument(StoredDocument):
    id: str  # content hash of canonical_url
    title: str = ""
    canonical_url: str
    source: str | None = None
    snippet: str | None = None
    published_at: datetime | None = None
    thumbnail: str | None = None
    thumbnail_not_found: bool = False
    thumbnail_fetched_at: datetime | None = None
    event_ids: list[DocumentId] = Field(default_factory=list)

    def is_linked_to(self, event_id: str) -> bool:
        return event_id in self.event_ids
