"""Shared fixtures: an in-memory store with the MongoStore contract."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from bson import ObjectId

from eventwire.config import (
    NewsConfig,
    Settings,
    SyncConfig,
    ThumbnailConfig,
)
from eventwire.storage import EventDocument, MarketDocument, NewsDocument
from eventwire.storage.queries import is_thumbnail_candidate, newest_first_key

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _new_id() -> str:
    return str(ObjectId())


class FakeStore:
    """In-memory stand-in for MongoStore.

    Keeps the same uniqueness rules (market_ticker, event_ticker, news id)
    and set-union semantics for the linkage arrays.
    """

    def __init__(self, clock: datetime = NOW):
        self.clock = clock
        self.events: dict[str, EventDocument] = {}
        self.markets: dict[str, MarketDocument] = {}
        self.news: dict[str, NewsDocument] = {}
        self.thumbnail_writes: list[tuple[str, str | None]] = []
        self.related_news_writes = 0

    async def ensure_indexes(self) -> None:
        return None

    # Markets

    async def upsert_market(self, market: MarketDocument) -> str:
        existing = next(
            (m for m in self.markets.values() if m.market_ticker == market.market_ticker),
            None,
        )
        if existing is None:
            doc_id = _new_id()
            created_at = self.clock
        else:
            doc_id = existing.doc_id
            created_at = existing.created_at
        self.markets[doc_id] = market.model_copy(
            update={"doc_id": doc_id, "created_at": created_at, "updated_at": self.clock}
        )
        return doc_id

    # Events

    async def get_event(self, event_ticker: str) -> EventDocument | None:
        return next(
            (e for e in self.events.values() if e.event_ticker == event_ticker), None
        )

    async def insert_event(self, event: EventDocument) -> str:
        if await self.get_event(event.event_ticker) is not None:
            raise ValueError(f"duplicate event_ticker {event.event_ticker}")
        doc_id = _new_id()
        self.events[doc_id] = event.model_copy(
            update={"doc_id": doc_id, "created_at": self.clock, "updated_at": self.clock}
        )
        return doc_id

    async def refresh_event(
        self,
        event_ticker: str,
        expires_at: datetime | None,
        market_ids: list[str] | None = None,
    ) -> None:
        event = await self.get_event(event_ticker)
        if event is None:
            return
        update: dict = {"expires_at": expires_at, "updated_at": self.clock}
        if market_ids:
            update["markets"] = list(market_ids)
        self.events[event.doc_id] = event.model_copy(update=update)

    async def delete_expired(self, now: datetime) -> tuple[int, int]:
        expired_events = [
            k for k, e in self.events.items() if e.expires_at and e.expires_at < now
        ]
        expired_markets = [
            k for k, m in self.markets.items() if m.expires_at and m.expires_at < now
        ]
        for k in expired_events:
            del self.events[k]
        for k in expired_markets:
            del self.markets[k]
        return len(expired_events), len(expired_markets)

    async def events_with_keywords(self) -> list[EventDocument]:
        return [e for e in self.events.values() if e.key_words]

    async def add_related_news(self, event_id: str, news_ids: list[str]) -> None:
        self.related_news_writes += 1
        event = self.events[event_id]
        merged = list(dict.fromkeys([*event.related_news, *news_ids]))
        self.events[event_id] = event.model_copy(
            update={"related_news": merged, "updated_at": self.clock}
        )

    # News

    def _news_by_content_id(self, news_id: str) -> NewsDocument | None:
        return next((n for n in self.news.values() if n.id == news_id), None)

    async def find_news(self, news_id: str) -> NewsDocument | None:
        return self._news_by_content_id(news_id)

    async def insert_news_or_fetch(
        self, news: NewsDocument
    ) -> tuple[NewsDocument, bool]:
        existing = self._news_by_content_id(news.id)
        if existing is not None:
            return existing, False
        doc_id = _new_id()
        stored = news.model_copy(
            update={"doc_id": doc_id, "created_at": self.clock, "updated_at": self.clock}
        )
        self.news[doc_id] = stored
        return stored, True

    async def link_news_to_event(
        self,
        news_id: str,
        event_id: str,
        title: str,
        snippet: str | None,
        published_at: datetime | None,
    ) -> None:
        news = self._news_by_content_id(news_id)
        update = {
            "title": title,
            "snippet": snippet,
            "event_ids": list(dict.fromkeys([*news.event_ids, event_id])),
            "updated_at": self.clock,
        }
        if published_at is not None:
            update["published_at"] = published_at
        self.news[news.doc_id] = news.model_copy(update=update)

    async def thumbnail_candidates(
        self,
        now: datetime,
        recent_days: int,
        retry_after_days: int,
        limit: int = 0,
    ) -> list[NewsDocument]:
        selected = sorted(
            (
                n
                for n in self.news.values()
                if is_thumbnail_candidate(n, now, recent_days, retry_after_days)
            ),
            key=newest_first_key,
        )
        return selected[:limit] if limit else selected

    async def count_thumbnail_candidates(
        self, now: datetime, recent_days: int, retry_after_days: int
    ) -> int:
        return len(await self.thumbnail_candidates(now, recent_days, retry_after_days))

    async def record_thumbnail(
        self, doc_id: str, thumbnail: str | None, fetched_at: datetime
    ) -> None:
        self.thumbnail_writes.append((doc_id, thumbnail))
        news = self.news[doc_id]
        if thumbnail:
            update = {
                "thumbnail": thumbnail,
                "thumbnail_not_found": False,
                "thumbnail_fetched_at": fetched_at,
                "updated_at": fetched_at,
            }
        else:
            update = {
                "thumbnail": None,
                "thumbnail_not_found": True,
                "thumbnail_fetched_at": fetched_at,
            }
        self.news[doc_id] = news.model_copy(update=update)

    async def count_news(self) -> int:
        return len(self.news)

    async def count_events_with_news(self) -> int:
        return sum(1 for e in self.events.values() if e.related_news)

    # Read API

    async def list_events(
        self, category: str | None = None, limit: int = 100, skip: int = 0
    ) -> list[EventDocument]:
        far_future = datetime.max.replace(tzinfo=timezone.utc)
        events = [
            e for e in self.events.values() if category is None or e.category == category
        ]
        events.sort(key=lambda e: (e.expires_at or far_future, -len(e.related_news)))
        return events[skip : skip + limit]

    async def markets_by_ids(self, market_ids: list[str]) -> list[MarketDocument]:
        return [self.markets[i] for i in market_ids if i in self.markets]

    async def news_by_ids(self, news_ids: list[str], limit: int = 0) -> list[NewsDocument]:
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        found = [self.news[i] for i in news_ids if i in self.news]
        found.sort(key=lambda n: n.published_at or oldest, reverse=True)
        return found[:limit] if limit else found

    async def list_news(
        self, event_id: str | None = None, limit: int = 50, skip: int = 0
    ) -> list[NewsDocument]:
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        found = [
            n
            for n in self.news.values()
            if event_id is None or n.is_linked_to(event_id)
        ]
        found.sort(key=lambda n: n.published_at or oldest, reverse=True)
        return found[skip : skip + limit]

    async def ping(self) -> bool:
        return True


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def settings() -> Settings:
    """Defaults with every politeness delay switched off."""
    return Settings(
        sync=SyncConfig(max_events_per_run=400),
        news=NewsConfig(event_delay_seconds=0),
        thumbnails=ThumbnailConfig(batch_pause_seconds=0, batch_size=2),
    )
