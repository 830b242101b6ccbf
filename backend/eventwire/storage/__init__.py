"""Storage layer for Eventwire - MongoDB persistence.

This package provides:
- Connection management (Motor client, startup ping)
- Document models for the events, markets and news collections
- MongoStore, the repository every job writes through
- The thumbnail candidate rule as a store filter and a pure predicate
"""

from .connection import (
    StoreUnavailableError,
    check_connection,
    connect,
    create_client,
    sanitize_mongodb_url,
)
from .documents import EventDocument, MarketDocument, NewsDocument
from .queries import is_thumbnail_candidate, newest_first_key, thumbnail_candidate_filter
from .repository import MongoStore, open_store

__all__ = [
    # Connection
    "StoreUnavailableError",
    "check_connection",
    "connect",
    "create_client",
    "sanitize_mongodb_url",
    # Documents
    "EventDocument",
    "MarketDocument",
    "NewsDocument",
    # Queries
    "is_thumbnail_candidate",
    "newest_first_key",
    "thumbnail_candidate_filter",
    # Repository
    "MongoStore",
    "open_store",
]
