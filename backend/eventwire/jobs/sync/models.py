"""Data models for the sync job."""

from pydantic import BaseModel


class SyncResult(BaseModel):
    """Counters for one sync run."""

    pages_fetched: int = 0
    events_seen: int = 0
    events_created: int = 0
    events_updated: int = 0
    events_failed: int = 0
    markets_upserted: int = 0
    events_deleted: int = 0
    markets_deleted: int = 0
    aborted: bool = False
    capped: bool = False
    error: str | None = None
