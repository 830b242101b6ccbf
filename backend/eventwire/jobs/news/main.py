"""News discovery: search the feed per event and link deduplicated articles.

Articles are identified by the SHA-1 of their canonical URL, so the same
story reached through different redirector links or tracking parameters
collapses to one document. Linkage is kept on both sides: ``event_ids`` on
the article (written per article) and ``related_news`` on the event
(written once per event as a set union).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from eventwire.config import NewsConfig, Settings, get_settings
from eventwire.services.news_feed import (
    FeedItem,
    NewsFeedClient,
    NewsFeedConfig,
    NewsFeedError,
)
from eventwire.storage import EventDocument, MongoStore, NewsDocument, open_store
from eventwire.utils.keywords import generate_search_queries
from eventwire.utils.urls import canonicalize, content_id

from .models import DiscoveryResult, EventDiscoveryResult

logger = logging.getLogger(__name__)

NEW = "new"
LINKED = "linked"
ALREADY_LINKED = "already_linked"


def build_queries(event: EventDocument, mode: str = "keywords") -> list[str]:
    """Search queries for an event, in the order they should be run."""
    if mode == "strategies":
        queries = generate_search_queries(event.title, event.category).search_queries
        if queries:
            return queries
    joined = " ".join(event.key_words).strip()
    return [joined] if joined else []


def select_articles(
    items: list[FeedItem],
    now: datetime,
    max_age_days: int,
    max_items: int,
    seen: set[str] | None = None,
) -> list[tuple[str, FeedItem]]:
    """Canonicalize, dedup, recency-filter and cap one query's feed items.

    Returns ``(canonical_url, item)`` pairs in feed order. Items without a
    publish date pass the recency filter. ``seen`` is updated in place so
    callers can dedup across several queries.
    """
    seen = set() if seen is None else seen
    cutoff = now - timedelta(days=max_age_days)
    accepted: list[tuple[str, FeedItem]] = []

    for item in items:
        if len(accepted) >= max_items:
            break
        canonical = canonicalize(item.link)
        if canonical in seen:
            continue
        if item.published_at is not None and item.published_at < cutoff:
            continue
        seen.add(canonical)
        accepted.append((canonical, item))

    return accepted


async def link_article(
    store: MongoStore, event_id: str, canonical_url: str, item: FeedItem
) -> tuple[str, str]:
    """Insert or link one article; returns ``(document id, outcome)``."""
    candidate = NewsDocument(
        id=content_id(canonical_url),
        title=item.title,
        canonical_url=canonical_url,
        source=item.source,
        snippet=item.snippet,
        published_at=item.published_at,
        event_ids=[event_id],
    )
    news, created = await store.insert_news_or_fetch(candidate)
    if created:
        return news.doc_id, NEW
    if news.is_linked_to(event_id):
        return news.doc_id, ALREADY_LINKED

    await store.link_news_to_event(
        news.id, event_id, item.title, item.snippet, item.published_at
    )
    return news.doc_id, LINKED


async def discover_for_event(
    store: MongoStore,
    feed: NewsFeedClient,
    event: EventDocument,
    config: NewsConfig,
    now: datetime | None = None,
) -> EventDiscoveryResult:
    """Fetch, dedup and link news for one event.

    A feed failure is recorded on the result; a failure on one article
    only counts against that article.
    """
    now = now or datetime.now(timezone.utc)
    result = EventDiscoveryResult(
        event_ticker=event.event_ticker,
        queries=build_queries(event, config.query_mode),
    )
    if not result.queries:
        logger.debug(f"No search query for {event.event_ticker}, skipping")
        return result

    seen: set[str] = set()
    accepted: list[tuple[str, FeedItem]] = []
    for query in result.queries:
        try:
            items = await feed.search(query)
        except NewsFeedError as e:
            logger.warning(f"Feed search failed for {event.event_ticker}: {e}")
            result.error = str(e)
            return result
        result.fetched += len(items)
        accepted.extend(
            select_articles(
                items, now, config.max_age_days, config.max_articles_per_query, seen
            )
        )

    result.accepted = len(accepted)
    if not accepted:
        logger.info(f"No news found for {event.event_ticker}")
        return result

    new_links: list[str] = []
    for canonical, item in accepted:
        try:
            news_id, outcome = await link_article(store, event.doc_id, canonical, item)
        except Exception as e:
            result.failed += 1
            logger.error(f"Failed to store article {canonical}: {e}")
            continue

        if outcome == ALREADY_LINKED:
            result.already_linked += 1
            continue
        if outcome == NEW:
            result.new_articles += 1
        new_links.append(news_id)

    if new_links:
        await store.add_related_news(event.doc_id, new_links)
        result.linked = len(new_links)

    logger.info(
        f"{event.event_ticker}: linked {result.linked} "
        f"({result.new_articles} new, {result.already_linked} already linked, "
        f"{result.failed} failed)"
    )
    return result


async def _discover_all(
    store: MongoStore,
    feed: NewsFeedClient,
    events: list[EventDocument],
    config: NewsConfig,
    now: datetime | None,
) -> DiscoveryResult:
    result = DiscoveryResult()
    semaphore = asyncio.Semaphore(max(1, config.max_concurrent_events))
    last = len(events) - 1

    async def process(index: int, event: EventDocument) -> None:
        async with semaphore:
            try:
                result.add(await discover_for_event(store, feed, event, config, now))
            except Exception as e:
                logger.error(
                    f"Discovery failed for {event.event_ticker}: {e}", exc_info=True
                )
                result.add(EventDiscoveryResult(event_ticker=event.event_ticker, error=str(e)))
            # Politeness delay toward the feed, held inside the slot
            if index < last and config.event_delay_seconds > 0:
                await asyncio.sleep(config.event_delay_seconds)

    await asyncio.gather(*(process(i, event) for i, event in enumerate(events)))
    return result


async def run_news_discovery(
    settings: Settings | None = None,
    store: MongoStore | None = None,
    feed: NewsFeedClient | None = None,
    now: datetime | None = None,
) -> DiscoveryResult:
    """Run discovery for every event with keywords and log store totals."""
    settings = settings or get_settings()

    if store is None:
        async with open_store(settings.mongo) as opened:
            return await run_news_discovery(settings, opened, feed, now)

    if feed is None:
        feed_config = NewsFeedConfig(
            language=settings.news.language,
            region=settings.news.region,
            ceid=settings.news.ceid,
            timeout_seconds=settings.news.timeout_seconds,
        )
        async with NewsFeedClient(config=feed_config) as opened_feed:
            return await run_news_discovery(settings, store, opened_feed, now)

    events = await store.events_with_keywords()
    logger.info(f"Discovering news for {len(events)} events")

    result = await _discover_all(store, feed, events, settings.news, now)
    result.total_news = await store.count_news()
    result.events_with_news = await store.count_events_with_news()

    logger.info(
        "News discovery complete: events=%d failed=%d linked=%d new=%d "
        "already_linked=%d article_failures=%d",
        result.events_processed,
        result.events_failed,
        result.linked,
        result.new_articles,
        result.already_linked,
        result.articles_failed,
    )
    logger.info(
        f"Store totals: {result.total_news} news articles, "
        f"{result.events_with_news} events with news"
    )
    return result


def news_job() -> None:
    """Scheduler job wrapper for news discovery."""
    try:
        result = asyncio.run(run_news_discovery())
        logger.info(
            "News: %d new articles, %d links across %d events",
            result.new_articles,
            result.linked,
            result.events_processed,
        )
    except Exception as exc:
        logger.error("News discovery failed: %s", exc, exc_info=True)
