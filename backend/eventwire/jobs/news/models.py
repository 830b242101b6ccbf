"""Data models for news discovery."""

from pydantic import BaseModel, Field


class EventDiscoveryResult(BaseModel):
    """Outcome of discovering news for a single event.

    ``linked`` counts new linkages (new articles plus existing articles
    linked to this event for the first time).
    """

    event_ticker: str
    queries: list[str] = Field(default_factory=list)
    fetched: int = 0
    accepted: int = 0
    linked: int = 0
    new_articles: int = 0
    already_linked: int = 0
    failed: int = 0
    error: str | None = None


class DiscoveryResult(BaseModel):
    """Counters for one discovery run across all keyword-bearing events."""

    events_processed: int = 0
    events_failed: int = 0
    events_without_news: int = 0
    linked: int = 0
    new_articles: int = 0
    already_linked: int = 0
    articles_failed: int = 0
    total_news: int = 0
    events_with_news: int = 0

    def add(self, event_result: EventDiscoveryResult) -> None:
        self.events_processed += 1
        if event_result.error:
            self.events_failed += 1
        elif event_result.accepted == 0:
            self.events_without_news += 1
        self.linked += event_result.linked
        self.new_articles += event_result.new_articles
        self.already_linked += event_result.already_linked
        self.articles_failed += event_result.failed
