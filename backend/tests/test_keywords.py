"""Tests for event title keyword extraction."""

from eventwire.utils.keywords import (
    STOP_WORDS,
    clean_event_title,
    extract_keywords,
    generate_search_queries,
)

CHIEFS = "Will the Kansas City Chiefs win Super Bowl 2025?"


def test_extracts_salient_terms() -> None:
    keywords = extract_keywords(CHIEFS)
    assert "kansas" in keywords
    assert "chiefs" in keywords
    assert "will" not in keywords
    assert "the" not in keywords
    assert "2025" not in keywords


def test_keywords_lowercase_and_unique() -> None:
    keywords = extract_keywords("Will Bitcoin reach Bitcoin highs, or will BITCOIN fall?")
    assert keywords == [k.lower() for k in keywords]
    assert len(keywords) == len(set(keywords))
    assert keywords[0] == "bitcoin"


def test_stop_classes_and_short_tokens_dropped() -> None:
    keywords = extract_keywords("Will this or that be an AI win for those at NYC")
    assert not set(keywords) & STOP_WORDS
    assert all(len(k) >= 3 for k in keywords)


def test_all_stop_words_yields_empty() -> None:
    assert extract_keywords("Will the or and?") == []
    assert extract_keywords("") == []


def test_max_keywords_caps_result() -> None:
    assert len(extract_keywords(CHIEFS, max_keywords=2)) == 2


def test_clean_title_removes_time_reference() -> None:
    assert clean_event_title("Will SpaceX land on Mars before 2030?") == "SpaceX land on Mars?"


def test_search_queries_strategies() -> None:
    queries = generate_search_queries(CHIEFS, "Sports")
    assert queries.keywords[:2] == ["kansas", "city"]
    assert queries.search_queries[0] == queries.cleaned
    assert "kansas city chiefs win" in queries.search_queries
    assert "kansas city sports" in queries.search_queries
    assert len(queries.search_queries) == len(set(queries.search_queries))


def test_search_queries_without_category() -> None:
    queries = generate_search_queries("Will Bitcoin hit 100k?")
    assert len(queries.search_queries) <= 2
