"""Thumbnail backfill: give recent articles a real preview image.

Candidates are selected once per run, newest first, and processed in fixed
size batches. Within a batch every redirector link is resolved through the
browser pool concurrently, then every image extraction and store write is
awaited before the next batch starts. Each processed article gets exactly
one terminal write: the found thumbnail, or a not-found marker.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Protocol

from eventwire.config import Settings, ThumbnailConfig, get_settings
from eventwire.storage import MongoStore, NewsDocument, open_store

from .browser import BrowserPool
from .extractor import ThumbnailFetcher
from .models import BackfillResult

logger = logging.getLogger(__name__)


class LinkResolver(Protocol):
    async def resolve(self, url: str) -> str: ...


class ImageFetcher(Protocol):
    async def fetch(self, url: str) -> str | None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _resolve(resolver: LinkResolver, news: NewsDocument) -> str | None:
    try:
        return await resolver.resolve(news.canonical_url)
    except Exception as e:
        logger.warning(f"Link resolution failed for {news.id}: {e}")
        return None


async def backfill_article(
    store: MongoStore,
    fetcher: ImageFetcher,
    news: NewsDocument,
    resolved_url: str | None,
    now: datetime | None = None,
) -> bool:
    """Extract and record a thumbnail for one article; True when found."""
    thumbnail: str | None = None
    if resolved_url:
        try:
            thumbnail = await fetcher.fetch(resolved_url)
        except Exception as e:
            logger.warning(f"Thumbnail extraction failed for {news.id}: {e}")

    await store.record_thumbnail(news.doc_id, thumbnail, now or _utcnow())

    if thumbnail:
        logger.debug(f"Thumbnail found for {news.id}: {thumbnail}")
    else:
        logger.debug(f"No thumbnail for {news.id} ({news.title[:50]})")
    return thumbnail is not None


def _log_progress(result: BackfillResult, total: int, started: float) -> None:
    elapsed = time.monotonic() - started
    rate = result.processed / elapsed if elapsed > 0 else 0.0
    remaining = (total - result.processed) / rate if rate > 0 else 0.0
    logger.info(
        "Thumbnail progress: %d/%d (%.1f%%) updated=%d failed=%d "
        "rate=%.2f/s elapsed=%.0fs eta=%.0fs",
        result.processed,
        total,
        100.0 * result.processed / total if total else 100.0,
        result.updated,
        result.failed,
        rate,
        elapsed,
        remaining,
    )


async def _process_batch(
    store: MongoStore,
    resolver: LinkResolver,
    fetcher: ImageFetcher,
    batch: list[NewsDocument],
    now: datetime | None,
) -> list[bool]:
    resolved = await asyncio.gather(*(_resolve(resolver, news) for news in batch))

    async def finish(news: NewsDocument, url: str | None) -> bool:
        try:
            return await backfill_article(store, fetcher, news, url, now)
        except Exception as e:
            logger.error(f"Failed to record thumbnail for {news.id}: {e}")
            return False

    return await asyncio.gather(
        *(finish(news, url) for news, url in zip(batch, resolved))
    )


async def _backfill(
    store: MongoStore,
    resolver: LinkResolver,
    fetcher: ImageFetcher,
    config: ThumbnailConfig,
    now: datetime | None,
) -> BackfillResult:
    selected_at = now or _utcnow()
    candidates = await store.thumbnail_candidates(
        selected_at, config.recent_days, config.retry_after_days, config.limit
    )
    result = BackfillResult(candidates=len(candidates))
    logger.info(f"Found {len(candidates)} articles needing thumbnails")

    started = time.monotonic()
    batch_size = max(1, config.batch_size)
    next_progress = config.progress_log_every

    for start in range(0, len(candidates), batch_size):
        if start > 0 and config.batch_pause_seconds > 0:
            await asyncio.sleep(config.batch_pause_seconds)

        batch = candidates[start : start + batch_size]
        result.batches += 1
        logger.info(
            f"Processing batch {result.batches} "
            f"({len(batch)} articles, {start + len(batch)}/{len(candidates)})"
        )

        for found in await _process_batch(store, resolver, fetcher, batch, now):
            result.processed += 1
            if found:
                result.updated += 1
            else:
                result.failed += 1

        if config.progress_log_every > 0 and result.processed >= next_progress:
            _log_progress(result, len(candidates), started)
            while next_progress <= result.processed:
                next_progress += config.progress_log_every

    result.elapsed_seconds = time.monotonic() - started
    return result


async def run_thumbnail_backfill(
    settings: Settings | None = None,
    store: MongoStore | None = None,
    resolver: LinkResolver | None = None,
    fetcher: ImageFetcher | None = None,
    now: datetime | None = None,
) -> BackfillResult:
    """Run one backfill pass over the current candidate set."""
    settings = settings or get_settings()
    config = settings.thumbnails

    if store is None:
        async with open_store(settings.mongo) as opened:
            return await run_thumbnail_backfill(settings, opened, resolver, fetcher, now)

    if fetcher is None:
        async with ThumbnailFetcher(
            timeout_seconds=config.request_timeout_seconds,
            max_redirects=config.max_redirects,
            user_agent=config.user_agent,
        ) as opened_fetcher:
            return await run_thumbnail_backfill(
                settings, store, resolver, opened_fetcher, now
            )

    if resolver is None:
        async with BrowserPool(
            max_concurrency=config.max_concurrency,
            navigation_timeout_seconds=config.navigation_timeout_seconds,
            settle_delay_seconds=config.settle_delay_seconds,
            user_agent=config.user_agent,
        ) as pool:
            return await run_thumbnail_backfill(settings, store, pool, fetcher, now)

    result = await _backfill(store, resolver, fetcher, config, now)
    result.remaining = await store.count_thumbnail_candidates(
        now or _utcnow(), config.recent_days, config.retry_after_days
    )

    logger.info(
        "Thumbnail backfill complete: processed=%d updated=%d failed=%d "
        "batches=%d remaining=%d elapsed=%.1fs",
        result.processed,
        result.updated,
        result.failed,
        result.batches,
        result.remaining,
        result.elapsed_seconds,
    )
    return result


def thumbnail_job() -> None:
    """Scheduler job wrapper for thumbnail backfill."""
    try:
        result = asyncio.run(run_thumbnail_backfill())
        logger.info(
            "Thumbnails: %d updated, %d failed", result.updated, result.failed
        )
    except Exception as exc:
        logger.error("Thumbnail backfill failed: %s", exc, exc_info=True)
