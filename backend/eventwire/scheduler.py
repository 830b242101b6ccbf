"""Job scheduler using APScheduler."""

import logging
from typing import NoReturn

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from eventwire.config import Settings
from eventwire.jobs.news import news_job
from eventwire.jobs.sync import sync_job
from eventwire.jobs.thumbnails import thumbnail_job

logger = logging.getLogger(__name__)


def build_scheduler(settings: Settings) -> BlockingScheduler:
    """Register the three jobs; each is never overlapped by itself."""
    scheduler = BlockingScheduler()

    jobs = [
        (sync_job, settings.scheduler.sync_minutes, "sync", "Sync: Events & Markets"),
        (news_job, settings.scheduler.news_minutes, "news", "News: Discovery"),
        (
            thumbnail_job,
            settings.scheduler.thumbnail_minutes,
            "thumbnails",
            "Thumbnails: Backfill",
        ),
    ]
    for func, minutes, job_id, name in jobs:
        scheduler.add_job(
            func,
            IntervalTrigger(minutes=minutes),
            id=job_id,
            name=name,
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Registered job: {name} (every {minutes} min)")

    return scheduler


def start_scheduler(settings: Settings) -> NoReturn:
    """Start the APScheduler with configured jobs."""
    scheduler = build_scheduler(settings)

    try:
        logger.info("Scheduler starting...")
        logger.info(f"{len(scheduler.get_jobs())} jobs registered")
        logger.info("Press Ctrl+C to stop\n")

        scheduler.start()

    except (KeyboardInterrupt, SystemExit):
        logger.info("\nReceived interrupt signal")
        scheduler.shutdown()
        logger.info("Scheduler stopped cleanly")
