"""News discovery and dedup job."""

from .main import (
    build_queries,
    discover_for_event,
    link_article,
    news_job,
    run_news_discovery,
    select_articles,
)
from .models import DiscoveryResult, EventDiscoveryResult

__all__ = [
    "build_queries",
    "discover_for_event",
    "link_article",
    "news_job",
    "run_news_discovery",
    "select_articles",
    "DiscoveryResult",
    "EventDiscoveryResult",
]
