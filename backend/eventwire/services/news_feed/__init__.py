"""Google News RSS feed integration."""

from .client import NewsFeedClient, parse_feed
from .config import NewsFeedConfig
from .exceptions import NewsFeedError, NewsFeedHTTPError, NewsFeedParseError
from .models import FeedItem

__all__ = [
    "NewsFeedClient",
    "parse_feed",
    "NewsFeedConfig",
    "NewsFeedError",
    "NewsFeedHTTPError",
    "NewsFeedParseError",
    "FeedItem",
]
