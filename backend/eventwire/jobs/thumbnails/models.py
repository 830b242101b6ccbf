"""Data models for thumbnail backfill."""

from pydantic import BaseModel


class BackfillResult(BaseModel):
    """Counters for one backfill run."""

    candidates: int = 0
    batches: int = 0
    processed: int = 0
    updated: int = 0
    failed: int = 0
    remaining: int = 0
    elapsed_seconds: float = 0.0
