"""Thumbnail candidate selection rule.

The rule is kept in two equivalent forms: a MongoDB filter for the store
and a predicate over ``NewsDocument`` for callers without a server.

An article is a candidate when all of these hold:
- it has no usable thumbnail (missing, empty, or a placeholder image)
- it is recent (created or updated within ``recent_days``), or it has
  neither timestamp and has never been fetched
- it was never fetched, or its last fetch is older than the retry window,
  or its thumbnail is a placeholder
- it is not flagged not-found, unless its thumbnail is a placeholder or the
  retry window has elapsed
"""

from datetime import datetime, timedelta
from typing import Any

from eventwire.storage.documents import NewsDocument
from eventwire.utils.urls import PLACEHOLDER_IMAGE_PATTERN, is_placeholder_image


def _cutoffs(
    now: datetime, recent_days: int, retry_after_days: int
) -> tuple[datetime, datetime]:
    return now - timedelta(days=recent_days), now - timedelta(days=retry_after_days)


def thumbnail_candidate_filter(
    now: datetime, recent_days: int, retry_after_days: int
) -> dict[str, Any]:
    recent_cutoff, retry_cutoff = _cutoffs(now, recent_days, retry_after_days)

    placeholder = {"thumbnail": {"$regex": PLACEHOLDER_IMAGE_PATTERN.pattern, "$options": "i"}}
    retry_elapsed = {
        "$or": [
            {"thumbnail_fetched_at": None},
            {"thumbnail_fetched_at": {"$lt": retry_cutoff}},
        ]
    }

    return {
        "$and": [
            {"$or": [{"thumbnail": None}, {"thumbnail": ""}, placeholder]},
            {
                "$or": [
                    {"created_at": {"$gte": recent_cutoff}},
                    {"updated_at": {"$gte": recent_cutoff}},
                    {
                        "created_at": None,
                        "updated_at": None,
                        "thumbnail_fetched_at": None,
                    },
                ]
            },
            {"$or": [retry_elapsed, placeholder]},
            {"$or": [{"thumbnail_not_found": {"$ne": True}}, placeholder, retry_elapsed]},
        ]
    }


def is_thumbnail_candidate(
    news: NewsDocument, now: datetime, recent_days: int, retry_after_days: int
) -> bool:
    recent_cutoff, retry_cutoff = _cutoffs(now, recent_days, retry_after_days)

    placeholder = is_placeholder_image(news.thumbnail)
    if news.thumbnail and not placeholder:
        return False

    fetched_at = news.thumbnail_fetched_at
    if news.created_at is None and news.updated_at is None:
        recent = fetched_at is None
    else:
        recent = any(
            ts is not None and ts >= recent_cutoff
            for ts in (news.created_at, news.updated_at)
        )
    if not recent:
        return False

    retry_elapsed = fetched_at is None or fetched_at < retry_cutoff
    if not (retry_elapsed or placeholder):
        return False

    return not news.thumbnail_not_found or placeholder or retry_elapsed


def newest_first_key(news: NewsDocument) -> tuple[float, float]:
    """Sort key matching ``[("created_at", -1), ("updated_at", -1)]``."""
    created = news.created_at.timestamp() if news.created_at else float("-inf")
    updated = news.updated_at.timestamp() if news.updated_at else float("-inf")
    return (-created, -updated)
