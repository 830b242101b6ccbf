"""Search keyword extraction from prediction-market event titles.

Works for any event type: titles are stripped of question scaffolding
("Will ...", "... before 2030", "in his lifetime") and the remaining
salient tokens become the event's ``key_words`` and its news query.
"""

import re

from pydantic import BaseModel, Field

# Applied in order. The temporal patterns go broad -> narrow so that
# "before California 2050" is removed whole instead of leaving "2050".
_CLEANING_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^(?:will|who|what|when|where|why|how)\s+", re.IGNORECASE), ""),
    (
        re.compile(
            r"\s+(?:be|become|happen|occur|start|begin|end|finish|complete|"
            r"reach|achieve|pass|exceed|surpass)(?=\s)",
            re.IGNORECASE,
        ),
        "",
    ),
    (re.compile(r"\s+(?i:before|after|by|until|during|in|on|at)\s+\d{4}\b"), ""),
    (re.compile(r"\s+(?i:before|after|by|until|during)\s+[A-Z][a-z]+\s+\d{4}\b"), ""),
    (re.compile(r"\s+(?i:before|after|by|until|during)\s+[A-Z][a-z]+\b"), ""),
    (
        re.compile(
            r"\s+(?:in his|in her|in their)\s+(?:lifetime|career|tenure)\b",
            re.IGNORECASE,
        ),
        "",
    ),
    (re.compile(r"\s+(?:a|an|the)(?=\s)", re.IGNORECASE), ""),
    (re.compile(r"\s+(?:will|would|should|could|might|may)(?=\s)", re.IGNORECASE), ""),
    (re.compile(r"\s+"), " "),
]

_PUNCTUATION = re.compile(r"[?!.,:;\"'()\[\]{}]")

CONJUNCTIONS = frozenset({"and", "or", "but", "for", "nor", "yet", "so"})
COPULAS = frozenset({"the", "a", "an", "is", "are", "was", "were", "be", "been", "being"})
MODALS = frozenset({"will", "would", "should", "could", "might", "may"})
DEMONSTRATIVES = frozenset({"this", "that", "these", "those", "here", "there"})

STOP_WORDS = CONJUNCTIONS | COPULAS | MODALS | DEMONSTRATIVES

MIN_KEYWORD_LENGTH = 3


class SearchQueries(BaseModel):
    """Search strategies generated for one event."""

    original: str
    cleaned: str
    keywords: list[str] = Field(default_factory=list)
    search_queries: list[str] = Field(default_factory=list)


def clean_event_title(title: str) -> str:
    """Remove question starters, filler verbs, time references and articles."""
    cleaned = title or ""
    for pattern, replacement in _CLEANING_PATTERNS:
        cleaned = pattern.sub(replacement, cleaned)
    return cleaned.strip()


def _is_keyword(word: str) -> bool:
    return (
        len(word) >= MIN_KEYWORD_LENGTH
        and word not in STOP_WORDS
        and not word.isdigit()
    )


def extract_keywords(title: str, max_keywords: int | None = None) -> list[str]:
    """Extract deduplicated, lower-case search terms from an event title.

    Order of first appearance is preserved. The result may be empty when the
    title is made entirely of stop words.
    """
    words = (
        _PUNCTUATION.sub("", word).lower()
        for word in clean_event_title(title).split(" ")
    )
    keywords = list(dict.fromkeys(word for word in words if _is_keyword(word)))
    if max_keywords is not None:
        return keywords[:max_keywords]
    return keywords


def generate_search_queries(title: str, category: str | None = None) -> SearchQueries:
    """Build up to three news search strategies for an event.

    1. The cleaned title.
    2. The top four keywords.
    3. The top two keywords plus the category, when both are available.
    """
    cleaned = clean_event_title(title)
    keywords = extract_keywords(title)

    queries: list[str] = []
    if cleaned:
        queries.append(cleaned)
    if keywords:
        queries.append(" ".join(keywords[:4]))
    if category and len(keywords) >= 2:
        queries.append(f"{' '.join(keywords[:2])} {category.lower()}")

    return SearchQueries(
        original=title,
        cleaned=cleaned,
        keywords=keywords,
        search_queries=list(dict.fromkeys(queries)),
    )
