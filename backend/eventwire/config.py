"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class MongoConfig(BaseModel):
    """Document store connection."""

    url: str = "mongodb://localhost:27017"
    database: str = "kalshi"
    server_selection_timeout_ms: int = 5000


class KalshiSettings(BaseModel):
    """Upstream market API connection."""

    base_url: str = "https://api.elections.kalshi.com/trade-api/v2"
    timeout_seconds: float = 10.0
    max_attempts: int = 1


class SyncConfig(BaseModel):
    """Event/market sync parameters."""

    page_size: int = 200
    status: str = "open"
    max_events_per_run: int = 400  # Tuned guard against a runaway cursor
    max_keywords: int = 10

    @field_validator("page_size", mode="after")
    @classmethod
    def cap_page_size(cls, v: int) -> int:
        """Upstream rejects pages larger than 200."""
        return max(1, min(v, 200))


class NewsConfig(BaseModel):
    """News discovery parameters."""

    language: str = "en-US"
    region: str = "US"
    ceid: str = "US:en"
    max_articles_per_query: int = 20
    max_age_days: int = 30
    event_delay_seconds: float = 1.0
    max_concurrent_events: int = 1
    query_mode: Literal["keywords", "strategies"] = "keywords"
    timeout_seconds: float = 10.0


class ThumbnailConfig(BaseModel):
    """Thumbnail backfill parameters."""

    recent_days: int = 14
    retry_after_days: int = 7
    batch_size: int = 50
    max_concurrency: int = 5
    limit: int = 0  # 0 = every candidate
    batch_pause_seconds: float = 1.0
    request_timeout_seconds: float = 5.0
    max_redirects: int = 5
    navigation_timeout_seconds: float = 8.0
    settle_delay_seconds: float = 0.8
    progress_log_every: int = 100
    user_agent: str = DEFAULT_USER_AGENT


class SchedulerConfig(BaseModel):
    """Job scheduling intervals in minutes."""

    sync_minutes: int = 30
    news_minutes: int = 60
    thumbnail_minutes: int = 120


class ApiConfig(BaseModel):
    """Read API server."""

    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"]
    )
    news_per_event: int = 5


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # API Keys
    logfire_token: str = ""

    # Nested configuration sections
    mongo: MongoConfig = Field(default_factory=MongoConfig)
    kalshi: KalshiSettings = Field(default_factory=KalshiSettings)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    news: NewsConfig = Field(default_factory=NewsConfig)
    thumbnails: ThumbnailConfig = Field(default_factory=ThumbnailConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.debug(f"Config file not found: {config_path}. Using defaults.")
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in [
                "mongo",
                "kalshi",
                "sync",
                "news",
                "thumbnails",
                "scheduler",
                "api",
            ]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
