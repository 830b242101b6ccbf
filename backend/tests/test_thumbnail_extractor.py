"""Tests for thumbnail extraction from article HTML."""

import asyncio

import httpx

from eventwire.jobs.thumbnails import ThumbnailFetcher, extract_thumbnail

BASE = "https://publisher.com/news/story"


def test_prefers_open_graph_image() -> None:
    html = """
    <head>
      <meta name="twitter:image" content="https://publisher.com/tw.jpg">
      <meta property="og:image" content="https://publisher.com/og.jpg">
    </head>
    """
    assert extract_thumbnail(html, BASE) == "https://publisher.com/og.jpg"


def test_twitter_image_by_property() -> None:
    html = '<meta property="twitter:image" content="https://publisher.com/tw.jpg">'
    assert extract_thumbnail(html, BASE) == "https://publisher.com/tw.jpg"


def test_placeholder_skipped_at_each_step() -> None:
    html = """
    <meta property="og:image" content="https://lh3.googleusercontent.com/x">
    <meta name="twitter:image" content="https://www.gstatic.com/y.png">
    <meta name="image" content="/img/lead.jpg">
    """
    assert extract_thumbnail(html, BASE) == "https://publisher.com/img/lead.jpg"


def test_first_large_inline_image() -> None:
    html = """
    <img src="https://publisher.com/icon.png" width="32" height="32">
    <img src="https://publisher.com/wide.png" width="800">
    <img data-src="https://publisher.com/lead.jpg" width="640" height="360px">
    <img src="https://publisher.com/later.jpg" width="900" height="600">
    """
    assert extract_thumbnail(html, BASE) == "https://publisher.com/lead.jpg"


def test_no_image_found() -> None:
    assert extract_thumbnail("<html><body><p>text only</p></body></html>", BASE) is None
    assert extract_thumbnail("", BASE) is None


def test_fetcher_returns_none_on_http_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/ok":
            return httpx.Response(
                200, html='<meta property="og:image" content="/og.jpg">'
            )
        return httpx.Response(500)

    async def run() -> None:
        async with ThumbnailFetcher(transport=httpx.MockTransport(handler)) as fetcher:
            assert await fetcher.fetch("https://publisher.com/ok") == "https://publisher.com/og.jpg"
            assert await fetcher.fetch("https://publisher.com/broken") is None

    asyncio.run(run())
