"""Event/market sync: mirror upstream events and their nested markets.

Pages through the upstream events endpoint in cursor order, upserts every
nested market by ticker, creates or refreshes the owning event, and finally
sweeps everything whose expiration has passed.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from eventwire.config import Settings, get_settings
from eventwire.services.kalshi import KalshiAPIError, KalshiClient, KalshiConfig, KalshiEvent
from eventwire.storage import EventDocument, MarketDocument, MongoStore, open_store
from eventwire.utils.keywords import extract_keywords

from .models import SyncResult

logger = logging.getLogger(__name__)


def derive_event_expiration(event: KalshiEvent) -> datetime | None:
    """Strike date if given, else the latest market expiration, else None."""
    if event.strike_date is not None:
        return event.strike_date
    return event.latest_market_expiration


async def sync_event(
    store: MongoStore,
    event: KalshiEvent,
    result: SyncResult,
    max_keywords: int,
) -> None:
    """Upsert one event's markets, then create or refresh the event."""
    market_ids: list[str] = []
    for market in event.markets:
        market_ids.append(await store.upsert_market(MarketDocument.from_kalshi(market)))
        result.markets_upserted += 1

    expires_at = derive_event_expiration(event)
    existing = await store.get_event(event.event_ticker)

    if existing is None:
        await store.insert_event(
            EventDocument(
                event_ticker=event.event_ticker,
                title=event.title,
                category=event.category,
                sub_title=event.sub_title,
                status=event.status,
                expires_at=expires_at,
                key_words=extract_keywords(event.title, max_keywords=max_keywords),
                markets=market_ids,
            )
        )
        result.events_created += 1
        logger.debug(f"Created event {event.event_ticker} ({len(market_ids)} markets)")
        return

    # An empty nested-markets response must not wipe known links
    await store.refresh_event(
        event.event_ticker, expires_at, market_ids if market_ids else None
    )
    result.events_updated += 1


async def _sync_pages(
    store: MongoStore,
    client: KalshiClient,
    settings: Settings,
    result: SyncResult,
) -> None:
    cursor: str | None = None

    while True:
        try:
            page = await client.get_events_page(
                cursor=cursor,
                limit=settings.sync.page_size,
                status=settings.sync.status,
                with_nested_markets=True,
            )
        except KalshiAPIError as e:
            logger.error(
                f"Events page {result.pages_fetched + 1} failed, "
                f"abandoning remaining pages: {e}"
            )
            result.aborted = True
            result.error = str(e)
            return

        result.pages_fetched += 1

        for event in page.events:
            result.events_seen += 1
            try:
                await sync_event(store, event, result, settings.sync.max_keywords)
            except Exception as e:
                result.events_failed += 1
                logger.error(f"Failed to sync event {event.event_ticker}: {e}")

        cursor = page.cursor
        if not cursor or not page.events:
            return
        if result.events_seen >= settings.sync.max_events_per_run:
            result.capped = True
            logger.info(
                f"Reached per-run cap of {settings.sync.max_events_per_run} events"
            )
            return


async def run_sync(
    settings: Settings | None = None,
    store: MongoStore | None = None,
    client: KalshiClient | None = None,
    now: datetime | None = None,
) -> SyncResult:
    """Run one sync cycle.

    A failed page fetch stops pagination for this run but is not raised;
    the expiry sweep still runs afterwards. Store failures propagate.
    """
    settings = settings or get_settings()

    if store is None:
        async with open_store(settings.mongo) as opened:
            return await run_sync(settings, opened, client, now)

    if client is None:
        kalshi_config = KalshiConfig(
            base_url=settings.kalshi.base_url,
            timeout_seconds=settings.kalshi.timeout_seconds,
            max_retries=settings.kalshi.max_attempts,
            default_page_size=settings.sync.page_size,
        )
        async with KalshiClient(config=kalshi_config) as opened_client:
            return await run_sync(settings, store, opened_client, now)

    result = SyncResult()
    await _sync_pages(store, client, settings, result)

    sweep_time = now or datetime.now(timezone.utc)
    result.events_deleted, result.markets_deleted = await store.delete_expired(sweep_time)

    logger.info(
        "Sync complete: pages=%d seen=%d created=%d updated=%d failed=%d "
        "markets=%d deleted_events=%d deleted_markets=%d%s",
        result.pages_fetched,
        result.events_seen,
        result.events_created,
        result.events_updated,
        result.events_failed,
        result.markets_upserted,
        result.events_deleted,
        result.markets_deleted,
        " (aborted)" if result.aborted else "",
    )
    return result


def sync_job() -> None:
    """Scheduler job wrapper for the sync cycle."""
    try:
        result = asyncio.run(run_sync())
        logger.info(
            "Sync: %d created, %d updated, %d expired removed",
            result.events_created,
            result.events_updated,
            result.events_deleted,
        )
    except Exception as exc:
        logger.error("Sync run failed: %s", exc, exc_info=True)
