"""
MongoDB connection via Motor (async driver).

This module provides:
- Client construction from settings
- Startup ping (store unreachable is fatal for a run)
- Credential-safe URL rendering for logs
"""

import logging
from contextlib import asynccontextmanager
from datetime import timezone
from typing import AsyncIterator

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from eventwire.config import MongoConfig

logger = logging.getLogger(__name__)


class StoreUnavailableError(Exception):
    """The document store could not be reached."""

    pass


def create_client(config: MongoConfig) -> AsyncIOMotorClient:
    """Build a tz-aware Motor client; does not connect yet."""
    return AsyncIOMotorClient(
        config.url,
        tz_aware=True,
        tzinfo=timezone.utc,
        serverSelectionTimeoutMS=config.server_selection_timeout_ms,
    )


async def check_connection(client: AsyncIOMotorClient) -> bool:
    """
    Check if MongoDB connection is healthy.
    """
    try:
        await client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.debug(f"MongoDB ping failed: {e}")
        return False


@asynccontextmanager
async def connect(config: MongoConfig) -> AsyncIterator[AsyncIOMotorDatabase]:
    """Connect, verify with a ping, yield the database, close on exit."""
    client = create_client(config)
    try:
        if not await check_connection(client):
            raise StoreUnavailableError(
                f"MongoDB unreachable at {sanitize_mongodb_url(config.url)}"
            )
        logger.info(
            f"Connected to MongoDB {sanitize_mongodb_url(config.url)} "
            f"(database={config.database})"
        )
        yield client[config.database]
    finally:
        client.close()
        logger.debug("Closed MongoDB client")


def sanitize_mongodb_url(url: str) -> str:
    """
    Hide password in MongoDB URL for safe logging.
    """
    if "@" not in url:
        return url

    try:
        # Handle mongodb+srv:// or mongodb://
        if "://" in url:
            protocol, rest = url.split("://", 1)
            if "@" in rest:
                credentials, host = rest.rsplit("@", 1)
                if ":" in credentials:
                    username = credentials.split(":", 1)[0]
                    return f"{protocol}://{username}:***@{host}"
        return url
    except ValueError:
        return url
