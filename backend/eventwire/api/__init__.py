"""Read-only HTTP API over the synced events, markets and news."""

from .server import app, create_app, get_store

__all__ = ["app", "create_app", "get_store"]
