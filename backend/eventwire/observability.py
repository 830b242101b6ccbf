"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire

from eventwire import __version__
from eventwire.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire tracing.

    Must be called ONCE at application startup, before any job runs.

    Instruments:
    - HTTPX clients (Kalshi API, news feed, article fetches)
    - PyMongo (every store operation, including Motor's)
    - Python logging (bridged to Logfire)

    Args:
        settings: Application settings containing Logfire token
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="eventwire",
            service_version=__version__,
        )

        logfire.instrument_httpx()
        logfire.instrument_pymongo()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
