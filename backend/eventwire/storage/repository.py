"""
MongoStore

Document store operations for the events, markets and news collections.

Write primitives used by the jobs:
- upsert_market(market): full-field replace-or-insert by market_ticker
- insert_event / refresh_event: event creation and in-place refresh
- delete_expired(now): blunt sweep of past expires_at
- insert_news_or_fetch(news): upsert-or-fetch on the news content id
- link_news_to_event / add_related_news: set-union linkage updates
- record_thumbnail(...): terminal write of a backfill attempt

Read helpers back the read API.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from eventwire.config import MongoConfig
from eventwire.storage.connection import connect
from eventwire.storage.documents import EventDocument, MarketDocument, NewsDocument
from eventwire.storage.queries import thumbnail_candidate_filter

logger = logging.getLogger(__name__)

EVENTS_COLLECTION = "events"
MARKETS_COLLECTION = "markets"
NEWS_COLLECTION = "news"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _oid(value: str) -> ObjectId:
    return ObjectId(value)


def _oids(values: list[str]) -> list[ObjectId]:
    return [ObjectId(v) for v in values]


class MongoStore:
    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.events = database[EVENTS_COLLECTION]
        self.markets = database[MARKETS_COLLECTION]
        self.news = database[NEWS_COLLECTION]

    async def ensure_indexes(self) -> None:
        """Create required indexes; safe to call on every start."""
        await self.events.create_index("event_ticker", unique=True)
        await self.events.create_index("expires_at")
        await self.events.create_index("category")
        await self.events.create_index("related_news")
        await self.markets.create_index("market_ticker", unique=True)
        await self.markets.create_index("event_ticker")
        await self.markets.create_index("expires_at")
        await self.news.create_index("id", unique=True)
        await self.news.create_index("canonical_url")
        await self.news.create_index("event_ids")
        await self.news.create_index([("created_at", DESCENDING)])
        logger.debug("Indexes ensured")

    # ------------------------------------------------------------------
    # Markets
    # ------------------------------------------------------------------

    async def upsert_market(self, market: MarketDocument) -> str:
        now = _utcnow()
        fields = market.upsert_fields()
        fields["updated_at"] = now
        result = await self.markets.find_one_and_update(
            {"market_ticker": market.market_ticker},
            {"$set": fields, "$setOnInsert": {"created_at": now}},
            upsert=True,
            projection={"_id": 1},
            return_document=ReturnDocument.AFTER,
        )
        return str(result["_id"])

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def get_event(self, event_ticker: str) -> EventDocument | None:
        raw = await self.events.find_one({"event_ticker": event_ticker})
        return EventDocument.model_validate(raw) if raw else None

    async def insert_event(self, event: EventDocument) -> str:
        now = _utcnow()
        doc = event.model_dump(exclude={"doc_id"})
        doc["markets"] = _oids(event.markets)
        doc["related_news"] = _oids(event.related_news)
        doc["created_at"] = now
        doc["updated_at"] = now
        result = await self.events.insert_one(doc)
        return str(result.inserted_id)

    async def refresh_event(
        self,
        event_ticker: str,
        expires_at: datetime | None,
        market_ids: list[str] | None = None,
    ) -> None:
        """Refresh expiration; replace the market set only when given one."""
        fields: dict[str, Any] = {"expires_at": expires_at, "updated_at": _utcnow()}
        if market_ids:
            fields["markets"] = _oids(market_ids)
        await self.events.update_one({"event_ticker": event_ticker}, {"$set": fields})

    async def delete_expired(self, now: datetime) -> tuple[int, int]:
        """Delete events and markets whose expires_at is strictly past."""
        events = await self.events.delete_many({"expires_at": {"$lt": now}})
        markets = await self.markets.delete_many({"expires_at": {"$lt": now}})
        return events.deleted_count, markets.deleted_count

    async def events_with_keywords(self) -> list[EventDocument]:
        cursor = self.events.find({"key_words": {"$exists": True, "$ne": []}})
        return [EventDocument.model_validate(raw) async for raw in cursor]

    async def add_related_news(self, event_id: str, news_ids: list[str]) -> None:
        await self.events.update_one(
            {"_id": _oid(event_id)},
            {
                "$addToSet": {"related_news": {"$each": _oids(news_ids)}},
                "$set": {"updated_at": _utcnow()},
            },
        )

    # ------------------------------------------------------------------
    # News
    # ------------------------------------------------------------------

    async def find_news(self, news_id: str) -> NewsDocument | None:
        raw = await self.news.find_one({"id": news_id})
        return NewsDocument.model_validate(raw) if raw else None

    async def insert_news_or_fetch(
        self, news: NewsDocument
    ) -> tuple[NewsDocument, bool]:
        """Insert ``news`` unless its id exists; return (document, created).

        The upsert is atomic on the unique ``id`` index. When two writers race
        and the server reports a duplicate key instead of retrying the upsert,
        the loser re-reads the winner's document.
        """
        now = _utcnow()
        # "id" comes from the upsert filter
        doc = news.model_dump(exclude={"doc_id", "id"})
        doc["event_ids"] = _oids(news.event_ids)
        doc["created_at"] = now
        doc["updated_at"] = now

        try:
            before = await self.news.find_one_and_update(
                {"id": news.id},
                {"$setOnInsert": doc},
                upsert=True,
                return_document=ReturnDocument.BEFORE,
            )
        except DuplicateKeyError:
            logger.debug(f"Lost insert race for news {news.id}, re-reading")
            before = await self.news.find_one({"id": news.id})
            if before is None:
                raise

        if before is not None:
            return NewsDocument.model_validate(before), False

        raw = await self.news.find_one({"id": news.id})
        return NewsDocument.model_validate(raw), True

    async def link_news_to_event(
        self,
        news_id: str,
        event_id: str,
        title: str,
        snippet: str | None,
        published_at: datetime | None,
    ) -> None:
        """Attach an event and refresh feed metadata; a missing date keeps the stored one."""
        fields: dict[str, Any] = {
            "title": title,
            "snippet": snippet,
            "updated_at": _utcnow(),
        }
        if published_at is not None:
            fields["published_at"] = published_at
        await self.news.update_one(
            {"id": news_id},
            {"$set": fields, "$addToSet": {"event_ids": _oid(event_id)}},
        )

    async def thumbnail_candidates(
        self,
        now: datetime,
        recent_days: int,
        retry_after_days: int,
        limit: int = 0,
    ) -> list[NewsDocument]:
        cursor = self.news.find(
            thumbnail_candidate_filter(now, recent_days, retry_after_days)
        ).sort([("created_at", DESCENDING), ("updated_at", DESCENDING)])
        if limit:
            cursor = cursor.limit(limit)
        return [NewsDocument.model_validate(raw) async for raw in cursor]

    async def count_thumbnail_candidates(
        self, now: datetime, recent_days: int, retry_after_days: int
    ) -> int:
        return await self.news.count_documents(
            thumbnail_candidate_filter(now, recent_days, retry_after_days)
        )

    async def record_thumbnail(
        self, doc_id: str, thumbnail: str | None, fetched_at: datetime
    ) -> None:
        """Terminal write for one backfill attempt.

        A found image clears the not-found flag and bumps updated_at; a miss
        nulls the thumbnail and flags the article. Both stamp the fetch time.
        """
        if thumbnail:
            fields: dict[str, Any] = {
                "thumbnail": thumbnail,
                "thumbnail_not_found": False,
                "thumbnail_fetched_at": fetched_at,
                "updated_at": fetched_at,
            }
        else:
            fields = {
                "thumbnail": None,
                "thumbnail_not_found": True,
                "thumbnail_fetched_at": fetched_at,
            }
        await self.news.update_one({"_id": _oid(doc_id)}, {"$set": fields})

    async def count_news(self) -> int:
        return await self.news.count_documents({})

    async def count_events_with_news(self) -> int:
        return await self.events.count_documents(
            {"related_news": {"$exists": True, "$ne": []}}
        )

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    async def list_events(
        self, category: str | None = None, limit: int = 100, skip: int = 0
    ) -> list[EventDocument]:
        if category is None:
            cursor = (
                self.events.find({})
                .sort("expires_at", ASCENDING)
                .skip(skip)
                .limit(limit)
            )
            return [EventDocument.model_validate(raw) async for raw in cursor]

        pipeline = [
            {"$match": {"category": category}},
            {"$addFields": {"news_count": {"$size": {"$ifNull": ["$related_news", []]}}}},
            {"$sort": {"expires_at": 1, "news_count": -1}},
            {"$skip": skip},
            {"$limit": limit},
            {"$project": {"news_count": 0}},
        ]
        cursor = self.events.aggregate(pipeline)
        return [EventDocument.model_validate(raw) async for raw in cursor]

    async def markets_by_ids(self, market_ids: list[str]) -> list[MarketDocument]:
        if not market_ids:
            return []
        cursor = self.markets.find({"_id": {"$in": _oids(market_ids)}})
        return [MarketDocument.model_validate(raw) async for raw in cursor]

    async def news_by_ids(self, news_ids: list[str], limit: int = 0) -> list[NewsDocument]:
        if not news_ids:
            return []
        cursor = self.news.find({"_id": {"$in": _oids(news_ids)}}).sort(
            "published_at", DESCENDING
        )
        if limit:
            cursor = cursor.limit(limit)
        return [NewsDocument.model_validate(raw) async for raw in cursor]

    async def list_news(
        self, event_id: str | None = None, limit: int = 50, skip: int = 0
    ) -> list[NewsDocument]:
        query: dict[str, Any] = {}
        if event_id is not None:
            try:
                query["event_ids"] = _oid(event_id)
            except InvalidId:
                return []
        cursor = (
            self.news.find(query)
            .sort("published_at", DESCENDING)
            .skip(skip)
            .limit(limit)
        )
        return [NewsDocument.model_validate(raw) async for raw in cursor]

    async def ping(self) -> bool:
        try:
            await self.database.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"Store ping failed: {e}")
            return False


@asynccontextmanager
async def open_store(config: MongoConfig) -> AsyncIterator[MongoStore]:
    """Connect to the configured database and yield an indexed MongoStore."""
    async with connect(config) as database:
        store = MongoStore(database)
        await store.ensure_indexes()
        yield store
