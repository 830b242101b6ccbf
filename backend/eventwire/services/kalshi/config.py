from pydantic import BaseModel


class KalshiConfig(BaseModel):
    """Configuration for Kalshi API client."""

    base_url: str = "https://api.elections.kalshi.com/trade-api/v2"
    timeout_seconds: float = 10.0
    max_connections: int = 20
    max_keepalive_connections: int = 10
    default_page_size: int = 200
    # One attempt per run by default; the next scheduled run is the retry.
    max_retries: int = 1
