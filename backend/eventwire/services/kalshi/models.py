from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _parse_time(v: Any) -> datetime | None:
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v
    try:
        return datetime.fromisoformat(v.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


class KalshiMarket(BaseModel):
    ticker: str
    event_ticker: str = ""
    title: str = ""
    yes_sub_title: str = ""
    no_sub_title: str = ""
    status: str = "unknown"
    yes_bid: int | None = None
    no_bid: int | None = None
    volume: int = 0
    expiration_time: datetime | None = None

    @field_validator("expiration_time", mode="before")
    @classmethod
    def parse_expiration_time(cls, v: Any) -> datetime | None:
        return _parse_time(v)

    @classmethod
    def from_api(cls, data: dict[str, Any], event_ticker: str = "") -> KalshiMarket:
        return cls(
            ticker=data.get("ticker", ""),
            event_ticker=data.get("event_ticker") or event_ticker,
            title=data.get("title") or data.get("name") or "",
            yes_sub_title=data.get("yes_sub_title") or "",
            no_sub_title=data.get("no_sub_title") or "",
            status=data.get("status", "unknown"),
            yes_bid=data.get("yes_bid"),
            no_bid=data.get("no_bid"),
            volume=data.get("volume") or 0,
            expiration_time=(
                data.get("latest_expiration_time") or data.get("expiration_time")
            ),
        )


class KalshiEvent(BaseModel):
    event_ticker: str
    title: str = ""
    category: str = ""
    sub_title: str = ""
    status: str | None = None
    strike_date: datetime | None = None
    markets: list[KalshiMarket] = Field(default_factory=list)

    @field_validator("strike_date", mode="before")
    @classmethod
    def parse_strike_date(cls, v: Any) -> datetime | None:
        return _parse_time(v)

    @property
    def latest_market_expiration(self) -> datetime | None:
        expirations = [m.expiration_time for m in self.markets if m.expiration_time]
        return max(expirations) if expirations else None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> KalshiEvent:
        ticker = data.get("event_ticker", "")
        return cls(
            event_ticker=ticker,
            title=data.get("title") or "",
            category=data.get("category") or "",
            sub_title=data.get("sub_title") or "",
            status=data.get("status"),
            strike_date=data.get("strike_date"),
            markets=[
                KalshiMarket.from_api(m, event_ticker=ticker)
                for m in data.get("markets") or []
            ],
        )


class EventsPage(BaseModel):
    events: list[KalshiEvent] = Field(default_factory=list)
    cursor: str | None = None
