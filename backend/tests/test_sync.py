"""Tests for the event/market sync job."""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx

from eventwire.jobs.sync import derive_event_expiration, run_sync
from eventwire.services.kalshi import (
    EventsPage,
    KalshiClient,
    KalshiConfig,
    KalshiEvent,
    KalshiMarket,
    KalshiServerError,
)
from eventwire.storage import EventDocument, MarketDocument

from conftest import NOW, FakeStore

FUTURE = NOW + timedelta(days=30)
PAST = NOW - timedelta(days=1)


def _market(ticker: str, event: str, expires: datetime | None = FUTURE, **fields) -> KalshiMarket:
    return KalshiMarket(
        ticker=ticker, event_ticker=event, title=ticker, expiration_time=expires, **fields
    )


def _event(ticker: str, markets: list[KalshiMarket], **fields) -> KalshiEvent:
    fields.setdefault("title", "Will the Kansas City Chiefs win Super Bowl 2025?")
    return KalshiEvent(event_ticker=ticker, markets=markets, **fields)


class FakeKalshi:
    """Serves pre-built pages keyed by cursor; a page may be an exception."""

    def __init__(self, pages: dict[str | None, EventsPage | Exception]):
        self.pages = pages
        self.cursors: list[str | None] = []

    async def get_events_page(self, cursor=None, limit=None, status="open", with_nested_markets=True):
        self.cursors.append(cursor)
        page = self.pages[cursor]
        if isinstance(page, Exception):
            raise page
        return page


def test_expiration_priority() -> None:
    strike = NOW + timedelta(days=3)
    later = NOW + timedelta(days=9)
    markets = [_market("A", "E", NOW + timedelta(days=5)), _market("B", "E", later)]

    assert derive_event_expiration(_event("E", markets, strike_date=strike)) == strike
    assert derive_event_expiration(_event("E", markets)) == later
    assert derive_event_expiration(_event("E", [_market("C", "E", None)])) is None
    assert derive_event_expiration(_event("E", [])) is None


def test_creates_events_and_markets_across_pages(settings) -> None:
    store = FakeStore()
    kalshi = FakeKalshi(
        {
            None: EventsPage(events=[_event("E1", [_market("M1", "E1"), _market("M2", "E1")])], cursor="c2"),
            "c2": EventsPage(events=[_event("E2", [], title="Will it rain in Paris?")], cursor=None),
        }
    )

    result = asyncio.run(run_sync(settings, store, kalshi, now=NOW))

    assert kalshi.cursors == [None, "c2"]
    assert result.pages_fetched == 2
    assert result.events_created == 2
    assert result.markets_upserted == 2
    e1 = asyncio.run(store.get_event("E1"))
    assert len(e1.markets) == 2
    assert "kansas" in e1.key_words and "will" not in e1.key_words
    assert e1.expires_at == FUTURE
    e2 = asyncio.run(store.get_event("E2"))
    assert e2.markets == []
    assert e2.expires_at is None


def test_existing_event_keeps_markets_on_empty_response(settings) -> None:
    store = FakeStore()
    first = FakeKalshi({None: EventsPage(events=[_event("E1", [_market("M1", "E1")])])})
    asyncio.run(run_sync(settings, store, first, now=NOW))
    original = asyncio.run(store.get_event("E1"))

    strike = NOW + timedelta(days=60)
    second = FakeKalshi({None: EventsPage(events=[_event("E1", [], strike_date=strike)])})
    result = asyncio.run(run_sync(settings, store, second, now=NOW))

    refreshed = asyncio.run(store.get_event("E1"))
    assert result.events_updated == 1
    assert result.events_created == 0
    assert refreshed.markets == original.markets
    assert refreshed.expires_at == strike
    assert refreshed.key_words == original.key_words


def test_market_resync_overwrites_prices(settings) -> None:
    store = FakeStore()
    before = FakeKalshi({None: EventsPage(events=[_event("E1", [_market("M1", "E1", yes_bid=40, no_bid=60)])])})
    after = FakeKalshi({None: EventsPage(events=[_event("E1", [_market("M1", "E1", yes_bid=55, no_bid=44)])])})

    asyncio.run(run_sync(settings, store, before, now=NOW))
    (first_id,) = store.markets.keys()
    asyncio.run(run_sync(settings, store, after, now=NOW))

    assert list(store.markets.keys()) == [first_id]
    market = store.markets[first_id]
    assert market.market_ticker == "M1"
    assert market.event_ticker == "E1"
    assert (market.yes_price, market.no_price) == (55, 44)


def test_page_failure_aborts_but_sweep_runs(settings) -> None:
    store = FakeStore()
    store.events["stale"] = EventDocument(doc_id="stale", event_ticker="OLD", expires_at=PAST)
    store.markets["stale-m"] = MarketDocument(doc_id="stale-m", market_ticker="OLD-M", expires_at=PAST)
    kalshi = FakeKalshi(
        {
            None: EventsPage(events=[_event("E1", [_market("M1", "E1")])], cursor="c2"),
            "c2": KalshiServerError("Server error 502", status_code=502),
        }
    )

    result = asyncio.run(run_sync(settings, store, kalshi, now=NOW))

    assert result.aborted
    assert result.events_created == 1
    assert result.events_deleted == 1
    assert result.markets_deleted == 1
    assert asyncio.run(store.get_event("OLD")) is None


def test_sweep_removes_only_past_expirations(settings) -> None:
    store = FakeStore()
    store.events["past"] = EventDocument(doc_id="past", event_ticker="PAST", expires_at=PAST)
    store.events["future"] = EventDocument(doc_id="future", event_ticker="FUTURE", expires_at=FUTURE)
    store.events["never"] = EventDocument(doc_id="never", event_ticker="NEVER", expires_at=None)
    kalshi = FakeKalshi({None: EventsPage(events=[])})

    result = asyncio.run(run_sync(settings, store, kalshi, now=NOW))

    assert result.events_deleted == 1
    assert set(store.events) == {"future", "never"}


def test_stops_at_record_cap(settings) -> None:
    settings.sync.max_events_per_run = 2
    store = FakeStore()
    kalshi = FakeKalshi(
        {
            None: EventsPage(events=[_event("E1", []), _event("E2", [])], cursor="c2"),
            "c2": EventsPage(events=[_event("E3", [])], cursor=None),
        }
    )

    result = asyncio.run(run_sync(settings, store, kalshi, now=NOW))

    assert result.capped
    assert kalshi.cursors == [None]
    assert result.events_created == 2


def test_malformed_upstream_event_does_not_stop_sync(settings) -> None:
    store = FakeStore()
    store.events["stale"] = EventDocument(doc_id="stale", event_ticker="OLD", expires_at=PAST)
    body = {
        "events": [
            {"event_ticker": "BAD", "markets": [{"ticker": None}]},
            {
                "event_ticker": "E1",
                "title": "Will it rain in Paris?",
                "markets": [{"ticker": "E1-Y", "expiration_time": FUTURE.isoformat()}],
            },
        ],
        "cursor": "",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    async def run():
        client = KalshiClient(
            KalshiConfig(base_url="https://kalshi.test/v2"),
            transport=httpx.MockTransport(handler),
        )
        async with client:
            return await run_sync(settings, store, client, now=NOW)

    result = asyncio.run(run())

    assert not result.aborted
    assert result.events_created == 1
    assert asyncio.run(store.get_event("BAD")) is None
    assert asyncio.run(store.get_event("E1")) is not None
    assert result.events_deleted == 1
    assert asyncio.run(store.get_event("OLD")) is None
