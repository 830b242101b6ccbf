class KalshiAPIError(Exception):
    """Base exception for Kalshi API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class KalshiRateLimitError(KalshiAPIError):
    """Rate limit exceeded."""

    pass


class KalshiNotFoundError(KalshiAPIError):
    """Resource not found."""

    pass


class KalshiServerError(KalshiAPIError):
    """Upstream returned a 5xx."""

    pass
