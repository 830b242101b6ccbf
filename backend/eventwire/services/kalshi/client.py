from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from .config import KalshiConfig
from .exceptions import (
    KalshiAPIError,
    KalshiNotFoundError,
    KalshiRateLimitError,
    KalshiServerError,
)
from .models import EventsPage, KalshiEvent

logger = logging.getLogger(__name__)


class KalshiClient:
    def __init__(
        self,
        config: KalshiConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or KalshiConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        logger.info(f"Initialized KalshiClient (base_url={self.config.base_url})")

    async def __aenter__(self) -> KalshiClient:
        limits = httpx.Limits(
            max_connections=self.config.max_connections,
            max_keepalive_connections=self.config.max_keepalive_connections,
        )
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            limits=limits,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed KalshiClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "KalshiClient must be used as async context manager"
            )
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        attempts = max(1, self.config.max_retries)
        retry_count = 0
        last_error: Exception | None = None

        while retry_count < attempts:
            try:
                response = await self.client.request(
                    method=method,
                    url=endpoint,
                    params=params,
                )

                if response.status_code == 404:
                    raise KalshiNotFoundError(
                        f"Resource not found: {endpoint}", status_code=404
                    )
                elif response.status_code == 429:
                    last_error = KalshiRateLimitError(
                        "Rate limited", status_code=429
                    )
                elif response.status_code >= 500:
                    last_error = KalshiServerError(
                        f"Server error {response.status_code}",
                        status_code=response.status_code,
                    )
                else:
                    response.raise_for_status()
                    return response.json()

                retry_count += 1
                if retry_count < attempts:
                    wait_time = 2 ** retry_count
                    logger.warning(f"{last_error}, retrying in {wait_time}s...")
                    await asyncio.sleep(wait_time)

            except httpx.TimeoutException as e:
                last_error = e
                retry_count += 1
                if retry_count < attempts:
                    logger.warning(f"Timeout, retrying ({retry_count})...")
                    await asyncio.sleep(2)

            except httpx.HTTPStatusError as e:
                raise KalshiAPIError(
                    f"{method} {endpoint} failed: {e}",
                    status_code=e.response.status_code,
                ) from e

            except httpx.RequestError as e:
                logger.error(f"Network error: {e}")
                raise KalshiAPIError(f"Network error: {e}") from e

            except ValueError as e:
                raise KalshiAPIError(f"Invalid JSON from {endpoint}: {e}") from e

        if isinstance(last_error, KalshiAPIError):
            raise last_error
        raise KalshiAPIError(
            f"Request failed after {retry_count} attempts: {last_error}"
        )

    async def get_events_page(
        self,
        cursor: str | None = None,
        limit: int | None = None,
        status: str = "open",
        with_nested_markets: bool = True,
    ) -> EventsPage:
        """Fetch one page of events; ``cursor`` is the opaque upstream token."""
        params: dict[str, Any] = {
            "limit": min(limit or self.config.default_page_size, 200),
            "status": status,
            "with_nested_markets": str(with_nested_markets).lower(),
        }
        if cursor:
            params["cursor"] = cursor

        data = await self._request("GET", "events", params=params)
        if not isinstance(data, dict):
            raise KalshiAPIError(
                f"Malformed events page: expected an object, got {type(data).__name__}"
            )

        raw_events = data.get("events") or []
        if not isinstance(raw_events, list):
            raise KalshiAPIError("Malformed events page: 'events' is not a list")

        events: list[KalshiEvent] = []
        for raw in raw_events:
            try:
                events.append(KalshiEvent.from_api(raw))
            except (ValidationError, AttributeError, TypeError) as e:
                ticker = raw.get("event_ticker") if isinstance(raw, dict) else None
                logger.warning(f"Skipping malformed event {ticker or '?'}: {e}")

        cursor = data.get("cursor")
        return EventsPage(
            events=events,
            cursor=cursor if isinstance(cursor, str) and cursor else None,
        )
