"""Event/market sync job."""

from .main import derive_event_expiration, run_sync, sync_event, sync_job
from .models import SyncResult

__all__ = [
    "derive_event_expiration",
    "run_sync",
    "sync_event",
    "sync_job",
    "SyncResult",
]
