"""Configuration for the Google News RSS client."""

from pydantic import BaseModel


class NewsFeedConfig(BaseModel):
    """Configuration for the Google News RSS client."""

    search_url: str = "https://news.google.com/rss/search"
    language: str = "en-US"
    region: str = "US"
    ceid: str = "US:en"
    timeout_seconds: float = 10.0
    user_agent: str = "Mozilla/5.0 (compatible; eventwire/0.1)"
