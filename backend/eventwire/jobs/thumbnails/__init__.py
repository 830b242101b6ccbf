"""Thumbnail backfill job."""

from .browser import BrowserPool, pick_article_url
from .extractor import ThumbnailFetcher, extract_thumbnail
from .main import backfill_article, run_thumbnail_backfill, thumbnail_job
from .models import BackfillResult

__all__ = [
    "BrowserPool",
    "pick_article_url",
    "ThumbnailFetcher",
    "extract_thumbnail",
    "backfill_article",
    "run_thumbnail_backfill",
    "thumbnail_job",
    "BackfillResult",
]
