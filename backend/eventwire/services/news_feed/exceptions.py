"""Custom exceptions for the news feed service."""


class NewsFeedError(Exception):
    """Base exception for news feed errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NewsFeedHTTPError(NewsFeedError):
    """Feed request failed (network error, timeout or non-2xx)."""

    pass


class NewsFeedParseError(NewsFeedError):
    """Feed body could not be parsed as RSS/Atom."""

    pass
