"""FastAPI read server for events, markets and linked news."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventwire import __version__
from eventwire.config import Settings, get_settings
from eventwire.storage import (
    EventDocument,
    MarketDocument,
    MongoStore,
    NewsDocument,
    open_store,
)

logger = logging.getLogger(__name__)


class EventDetail(EventDocument):
    """An event with its markets and newest related news embedded."""

    markets: list[MarketDocument] = []
    related_news: list[NewsDocument] = []


def get_store(request: Request) -> MongoStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Store not connected")
    return store


def _news_per_event(request: Request) -> int:
    return request.app.state.settings.api.news_per_event


async def _detail(store: MongoStore, event: EventDocument, news_limit: int) -> EventDetail:
    markets = await store.markets_by_ids(event.markets)
    news = await store.news_by_ids(event.related_news, limit=news_limit)
    fields = event.model_dump(exclude={"markets", "related_news"})
    return EventDetail(**fields, markets=markets, related_news=news)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with open_store(settings.mongo) as store:
            app.state.store = store
            logger.info("Read API connected to store")
            yield
            app.state.store = None

    app = FastAPI(title="Eventwire Read API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health(store: MongoStore = Depends(get_store)):
        if await store.ping():
            return {"status": "ok"}
        return JSONResponse(status_code=503, content={"status": "unavailable"})

    @app.get("/api/events", response_model=list[EventDetail])
    async def list_events(
        request: Request,
        limit: int = Query(100, ge=1, le=500),
        skip: int = Query(0, ge=0),
        store: MongoStore = Depends(get_store),
    ):
        """Events by soonest expiration, with markets and newest news."""
        news_limit = _news_per_event(request)
        events = await store.list_events(limit=limit, skip=skip)
        return [await _detail(store, event, news_limit) for event in events]

    @app.get("/api/events/category/{category}", response_model=list[EventDocument])
    async def events_by_category(
        category: str,
        limit: int = Query(100, ge=1, le=500),
        skip: int = Query(0, ge=0),
        store: MongoStore = Depends(get_store),
    ):
        """Events in a category, soonest first, then by most linked news."""
        return await store.list_events(category=category, limit=limit, skip=skip)

    @app.get("/api/events/{event_ticker}", response_model=EventDetail)
    async def get_event(
        event_ticker: str,
        request: Request,
        store: MongoStore = Depends(get_store),
    ):
        event = await store.get_event(event_ticker)
        if event is None:
            raise HTTPException(status_code=404, detail="Event not found")
        return await _detail(store, event, _news_per_event(request))

    @app.get("/api/news", response_model=list[NewsDocument])
    async def list_news(
        event_ticker: str | None = None,
        limit: int = Query(50, ge=1, le=500),
        skip: int = Query(0, ge=0),
        store: MongoStore = Depends(get_store),
    ):
        """Newest news first, optionally only articles linked to one event."""
        event_id = None
        if event_ticker is not None:
            event = await store.get_event(event_ticker)
            if event is None:
                raise HTTPException(status_code=404, detail="Event not found")
            event_id = event.doc_id
        return await store.list_news(event_id=event_id, limit=limit, skip=skip)

    @app.get("/api/news/{news_id}", response_model=NewsDocument)
    async def get_news(news_id: str, store: MongoStore = Depends(get_store)):
        news = await store.find_news(news_id)
        if news is None:
            raise HTTPException(status_code=404, detail="News not found")
        return news

    return app


app = create_app()
