"""Tests for URL canonicalization and content ids."""

from urllib.parse import urlencode

from eventwire.utils.urls import (
    canonicalize,
    content_id,
    is_placeholder_image,
    is_redirector_url,
)


def test_strips_tracking_params_and_fragment() -> None:
    url = "https://Example.com/story?id=7&utm_source=rss&utm_medium=feed#comments"
    assert canonicalize(url) == "https://example.com/story?id=7"


def test_keeps_non_tracking_param_order() -> None:
    url = "https://example.com/a?b=2&a=1&utm_campaign=x&c=3"
    assert canonicalize(url) == "https://example.com/a?b=2&a=1&c=3"


def test_unwraps_redirector_url_param() -> None:
    inner = "https://publisher.com/news/1?utm_source=google"
    wrapped = f"https://news.google.com/articles/abc?url={inner}"
    assert canonicalize(wrapped) == "https://publisher.com/news/1"


def test_redirector_without_url_param_is_kept() -> None:
    url = "https://news.google.com/rss/articles/CBMiXmh0?oc=5"
    assert canonicalize(url) == url


def test_empty_path_becomes_slash() -> None:
    assert canonicalize("https://example.com") == "https://example.com/"


def test_keeps_port_and_lowercases_scheme() -> None:
    assert canonicalize("HTTPS://EXAMPLE.com:8443/x") == "https://example.com:8443/x"


def test_invalid_input_returned_unchanged() -> None:
    assert canonicalize("not a url") == "not a url"
    assert canonicalize("") == ""
    assert canonicalize("https://example.com:notaport/x") == "https://example.com:notaport/x"


def test_canonicalize_is_idempotent() -> None:
    urls = [
        "https://Example.com/a b?q=x y&utm_term=z#frag",
        "https://news.google.com/articles/abc?url=https://site.org/p%3Fa%3D1",
        "http://example.com:8080/path/?k=&v=1",
        "https://[2001:db8::1]:8443/x?fbclid=abc",
    ]
    for url in urls:
        once = canonicalize(url)
        assert canonicalize(once) == once


def test_same_article_same_content_id() -> None:
    a = "https://example.com/story?id=1&utm_source=x#top"
    b = "https://EXAMPLE.com/story?id=1&fbclid=abc"
    assert content_id(canonicalize(a)) == content_id(canonicalize(b))
    assert len(content_id(canonicalize(a))) == 40


def test_different_articles_different_content_id() -> None:
    assert content_id("https://example.com/a") != content_id("https://example.com/b")


def test_placeholder_and_redirector_detection() -> None:
    assert is_placeholder_image("https://lh3.googleusercontent.com/abc=s0-w300")
    assert is_placeholder_image("https://www.gstatic.com/images/logo.png")
    assert not is_placeholder_image("https://cdn.publisher.com/hero.jpg")
    assert not is_placeholder_image(None)
    assert is_redirector_url("https://news.google.com/rss/articles/x")
    assert not is_redirector_url("https://publisher.com/x")


def test_relative_redirector_target_still_strips_tracking() -> None:
    a = "https://news.google.com/x?url=/story/1&utm_source=a#f"
    b = "https://news.google.com/x?url=/story/1&utm_source=b"
    assert canonicalize(a) == "https://news.google.com/x?url=%2Fstory%2F1"
    assert content_id(canonicalize(a)) == content_id(canonicalize(b))
    assert canonicalize(canonicalize(a)) == canonicalize(a)


def test_deeply_nested_redirector_unwraps_fully() -> None:
    url = "https://publisher.com/story?id=9&utm_medium=rss"
    for _ in range(8):
        url = "https://news.google.com/articles?" + urlencode({"url": url})

    once = canonicalize(url)
    assert once == "https://publisher.com/story?id=9"
    assert canonicalize(once) == once
