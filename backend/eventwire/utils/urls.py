"""Article URL canonicalization and content identifiers.

News articles reach us wrapped in the feed's redirector and decorated with
tracking parameters. Canonicalizing strips both so that every copy of the
same article hashes to the same ``content_id``, which is the News identity.
"""

import hashlib
import logging
import re
from urllib.parse import SplitResult, parse_qsl, urlencode, urlsplit, urlunsplit

logger = logging.getLogger(__name__)

REDIRECTOR_HOST = "news.google.com"

TRACKING_PARAMS = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "gclid",
        "fbclid",
        "ref",
    }
)

# Generic redirector-hosted assets that are never real article art
PLACEHOLDER_IMAGE_HOSTS = (
    "news.google.com",
    "googleusercontent.com",
    "gstatic.com",
)

PLACEHOLDER_IMAGE_PATTERN = re.compile(
    "|".join(re.escape(host) for host in PLACEHOLDER_IMAGE_HOSTS),
    re.IGNORECASE,
)


def _is_tracking_param(name: str) -> bool:
    return name.lower().startswith("utm_") or name.lower() in TRACKING_PARAMS


def _host_matches(host: str, domain: str) -> bool:
    host = host.lower()
    return host == domain or host.endswith("." + domain)


def is_redirector_url(url: str, redirector: str = REDIRECTOR_HOST) -> bool:
    """Return True if ``url`` is hosted on ``redirector`` or a subdomain of it."""
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        return False
    return _host_matches(host, redirector)


def is_placeholder_image(url: str | None) -> bool:
    """Return True if ``url`` is a generic redirector-hosted image."""
    if not url:
        return False
    return PLACEHOLDER_IMAGE_PATTERN.search(url) is not None


def _absolute(raw_url: str) -> SplitResult:
    parts = urlsplit(raw_url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"not an absolute URL: {raw_url!r}")
    parts.port  # raises ValueError on a malformed port
    return parts


def _unwrap_redirector(parts: SplitResult) -> SplitResult:
    # Each inner value is shorter than its wrapper, so this terminates
    while (parts.hostname or "").lower() == REDIRECTOR_HOST:
        query = parse_qsl(parts.query, keep_blank_values=True)
        inner = next((value for key, value in query if key == "url" and value), None)
        if not inner:
            break
        try:
            parts = _absolute(inner)
        except ValueError:
            break
    return parts


def _canonicalize(raw_url: str) -> str:
    parts = _unwrap_redirector(_absolute(raw_url))

    query = parse_qsl(parts.query, keep_blank_values=True)
    kept = [(key, value) for key, value in query if not _is_tracking_param(key)]

    host = (parts.hostname or "").lower()
    netloc = f"[{host}]" if ":" in host else host
    if parts.port is not None:
        netloc = f"{netloc}:{parts.port}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parts.path or "/"
    return urlunsplit((parts.scheme.lower(), netloc, path, urlencode(kept), ""))


def canonicalize(raw_url: str) -> str:
    """Normalize an article URL into a stable, tracking-free form.

    Unwraps the redirector's ``url=`` parameter while it holds an absolute
    URL, removes tracking parameters, lower-cases the host and drops the
    fragment. Remaining query parameters keep their original order. Never
    raises: when the input itself is not an absolute URL it is returned
    unchanged.
    """
    try:
        return _canonicalize(raw_url)
    except (ValueError, TypeError, AttributeError) as e:
        logger.debug(f"Could not canonicalize {raw_url!r}: {e}")
        return raw_url


def content_id(canonical_url: str) -> str:
    """SHA-1 hex digest of a canonical URL; the News identity key."""
    return hashlib.sha1(canonical_url.encode("utf-8")).hexdigest()
