"""Kalshi public events API integration."""

from .client import KalshiClient
from .config import KalshiConfig
from .exceptions import (
    KalshiAPIError,
    KalshiNotFoundError,
    KalshiRateLimitError,
    KalshiServerError,
)
from .models import EventsPage, KalshiEvent, KalshiMarket

__all__ = [
    "KalshiClient",
    "KalshiConfig",
    "KalshiAPIError",
    "KalshiNotFoundError",
    "KalshiRateLimitError",
    "KalshiServerError",
    "EventsPage",
    "KalshiEvent",
    "KalshiMarket",
]
