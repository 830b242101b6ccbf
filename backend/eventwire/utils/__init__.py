"""Pure helpers shared by the enrichment jobs."""

from .keywords import (
    SearchQueries,
    clean_event_title,
    extract_keywords,
    generate_search_queries,
)
from .urls import (
    REDIRECTOR_HOST,
    canonicalize,
    content_id,
    is_placeholder_image,
    is_redirector_url,
)

__all__ = [
    "SearchQueries",
    "clean_event_title",
    "extract_keywords",
    "generate_search_queries",
    "REDIRECTOR_HOST",
    "canonicalize",
    "content_id",
    "is_placeholder_image",
    "is_redirector_url",
]
