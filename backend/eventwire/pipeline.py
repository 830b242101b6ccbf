"""Pipeline orchestration: Sync -> News discovery -> Thumbnail backfill."""

import logging

from eventwire.config import Settings
from eventwire.jobs.news import run_news_discovery
from eventwire.jobs.sync import run_sync
from eventwire.jobs.thumbnails import run_thumbnail_backfill
from eventwire.storage import open_store

logger = logging.getLogger("eventwire.pipeline")


async def run_pipeline(settings: Settings) -> None:
    """Run each job once, in data-flow order, over one store connection.

    A failing job is logged and the next one still runs; an unreachable
    store aborts the whole cycle.
    """
    logger.info("Pipeline starting: Sync -> News -> Thumbnails")

    async with open_store(settings.mongo) as store:
        # Step 1: Sync
        try:
            sync_result = await run_sync(settings=settings, store=store)
            logger.info(
                "Sync complete: created=%d updated=%d deleted=%d",
                sync_result.events_created,
                sync_result.events_updated,
                sync_result.events_deleted,
            )
        except Exception as e:
            logger.error(f"Sync failed: {e}")

        # Step 2: News discovery
        try:
            news_result = await run_news_discovery(settings=settings, store=store)
            logger.info(
                "News complete: events=%d new=%d linked=%d",
                news_result.events_processed,
                news_result.new_articles,
                news_result.linked,
            )
        except Exception as e:
            logger.error(f"News discovery failed: {e}")

        # Step 3: Thumbnails
        try:
            thumb_result = await run_thumbnail_backfill(settings=settings, store=store)
            logger.info(
                "Thumbnails complete: updated=%d failed=%d",
                thumb_result.updated,
                thumb_result.failed,
            )
        except Exception as e:
            logger.error(f"Thumbnail backfill failed: {e}")

    logger.info("Pipeline complete.")
