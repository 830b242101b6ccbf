"""Eventwire CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from eventwire import __version__
from eventwire.config import get_settings
from eventwire.jobs.news import run_news_discovery
from eventwire.jobs.sync import run_sync
from eventwire.jobs.thumbnails import run_thumbnail_backfill
from eventwire.pipeline import run_pipeline
from eventwire.scheduler import start_scheduler
from eventwire.storage import StoreUnavailableError, sanitize_mongodb_url

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Eventwire Configuration
# Connection strings and tokens belong in .env, not here.

sync:
  page_size: 200
  status: open
  max_events_per_run: 400
  max_keywords: 10

news:
  language: en-US
  region: US
  ceid: "US:en"
  max_articles_per_query: 20
  max_age_days: 30
  event_delay_seconds: 1.0
  max_concurrent_events: 1
  query_mode: keywords

thumbnails:
  recent_days: 14
  retry_after_days: 7
  batch_size: 50
  max_concurrency: 5
  limit: 0
  batch_pause_seconds: 1.0

scheduler:
  sync_minutes: 30
  news_minutes: 60
  thumbnail_minutes: 120

api:
  port: 8000
  news_per_event: 5
"""


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from eventwire.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory and configuration template."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Set MONGO__URL (and optionally LOGFIRE_TOKEN) in .env")
        print("2. Review and customize data/config.yaml if needed")
        print("3. Run 'python -m eventwire config' to verify configuration")
        print("4. Run 'python -m eventwire run' to start the scheduler\n")

        return 0

    except OSError as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Eventwire Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("MongoDB:")
        print(f"  URL: {sanitize_mongodb_url(settings.mongo.url)}")
        print(f"  Database: {settings.mongo.database}\n")

        print("Sync:")
        print(f"  Upstream: {settings.kalshi.base_url}")
        print(f"  Page Size: {settings.sync.page_size}")
        print(f"  Status Filter: {settings.sync.status}")
        print(f"  Max Events Per Run: {settings.sync.max_events_per_run}\n")

        print("News:")
        print(f"  Locale: {settings.news.language} / {settings.news.region} ({settings.news.ceid})")
        print(f"  Query Mode: {settings.news.query_mode}")
        print(f"  Max Articles Per Query: {settings.news.max_articles_per_query}")
        print(f"  Max Age: {settings.news.max_age_days} days")
        print(f"  Concurrent Events: {settings.news.max_concurrent_events}\n")

        print("Thumbnails:")
        print(f"  Recent Window: {settings.thumbnails.recent_days} days")
        print(f"  Retry After: {settings.thumbnails.retry_after_days} days")
        print(f"  Batch Size: {settings.thumbnails.batch_size}")
        print(f"  Browser Concurrency: {settings.thumbnails.max_concurrency}")
        print(f"  Limit: {settings.thumbnails.limit or 'none'}\n")

        print("Scheduler (minutes):")
        print(f"  Sync: {settings.scheduler.sync_minutes}")
        print(f"  News: {settings.scheduler.news_minutes}")
        print(f"  Thumbnails: {settings.scheduler.thumbnail_minutes}\n")

        print("Logfire:")
        print(f"  Token: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_sync(args: argparse.Namespace) -> int:
    """Run one event/market sync."""
    _init_logfire()

    try:
        print("\n=== Event & Market Sync ===\n")

        result = asyncio.run(run_sync(get_settings()))

        print("✓ Sync complete\n" if not result.aborted else "⚠ Sync aborted early\n")
        print(f"Pages fetched: {result.pages_fetched}")
        print(f"Events seen: {result.events_seen}")
        print(f"Events created: {result.events_created}")
        print(f"Events updated: {result.events_updated}")
        print(f"Events failed: {result.events_failed}")
        print(f"Markets upserted: {result.markets_upserted}")
        print(f"Expired removed: {result.events_deleted} events, {result.markets_deleted} markets\n")
        if result.error:
            print(f"Error: {result.error}\n")

        return 0

    except StoreUnavailableError as e:
        print(f"\n❌ {e}\n")
        return 1
    except Exception as e:
        logger.error(f"Sync failed: {e}", exc_info=True)
        print(f"\n❌ Sync failed: {e}\n")
        return 1


def cmd_news(args: argparse.Namespace) -> int:
    """Run one news discovery pass."""
    _init_logfire()

    try:
        print("\n=== News Discovery ===\n")

        result = asyncio.run(run_news_discovery(get_settings()))

        print("✓ News discovery complete\n")
        print(f"Events processed: {result.events_processed}")
        print(f"Events failed: {result.events_failed}")
        print(f"New articles: {result.new_articles}")
        print(f"Links created: {result.linked}")
        print(f"Already linked: {result.already_linked}")
        print(f"Article failures: {result.articles_failed}")
        print(f"\nStore: {result.total_news} articles, {result.events_with_news} events with news\n")

        return 0

    except StoreUnavailableError as e:
        print(f"\n❌ {e}\n")
        return 1
    except Exception as e:
        logger.error(f"News discovery failed: {e}", exc_info=True)
        print(f"\n❌ News discovery failed: {e}\n")
        return 1


def cmd_thumbnails(args: argparse.Namespace) -> int:
    """Run one thumbnail backfill pass."""
    _init_logfire()

    try:
        settings = get_settings()
        if args.limit is not None:
            settings.thumbnails = settings.thumbnails.model_copy(update={"limit": args.limit})

        print("\n=== Thumbnail Backfill ===\n")

        result = asyncio.run(run_thumbnail_backfill(settings))

        print("✓ Thumbnail backfill complete\n")
        print(f"Candidates: {result.candidates}")
        print(f"Processed: {result.processed} in {result.batches} batches")
        print(f"Updated: {result.updated}")
        print(f"Not found: {result.failed}")
        print(f"Remaining candidates: {result.remaining}")
        print(f"Elapsed: {result.elapsed_seconds:.1f}s\n")

        return 0

    except StoreUnavailableError as e:
        print(f"\n❌ {e}\n")
        return 1
    except Exception as e:
        logger.error(f"Thumbnail backfill failed: {e}", exc_info=True)
        print(f"\n❌ Thumbnail backfill failed: {e}\n")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Start the scheduled pipeline."""
    try:
        _init_logfire()

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = get_settings()

        print("\n=== Eventwire Pipeline ===\n")
        print(f"Version: {__version__}")
        print(f"MongoDB: {sanitize_mongodb_url(settings.mongo.url)} ({settings.mongo.database})")
        print(f"Data Directory: {settings.data_dir}\n")

        if args.once:
            print("Running full pipeline once (Sync -> News -> Thumbnails)...\n")
            asyncio.run(run_pipeline(settings))
            print("\nPipeline run complete.\n")
            return 0

        print("Starting scheduler...\n")
        start_scheduler(settings)

        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except StoreUnavailableError as e:
        print(f"\n❌ {e}\n")
        return 1
    except Exception as e:
        logger.error(f"Failed to start system: {e}", exc_info=True)
        print(f"\nFailed to start: {e}\n")
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the read API with uvicorn."""
    import uvicorn

    _init_logfire()
    settings = get_settings()

    uvicorn.run(
        "eventwire.api.server:app",
        host=args.host or settings.api.host,
        port=args.port or settings.api.port,
        reload=args.reload,
    )
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Eventwire: prediction-market events enriched with news",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Eventwire {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_sync = subparsers.add_parser(
        "sync",
        help="Sync events and markets once",
    )
    parser_sync.set_defaults(func=cmd_sync)

    parser_news = subparsers.add_parser(
        "news",
        help="Discover news for every event once",
    )
    parser_news.set_defaults(func=cmd_news)

    parser_thumbnails = subparsers.add_parser(
        "thumbnails",
        help="Backfill article thumbnails once",
    )
    parser_thumbnails.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Process at most this many articles (0 = all)",
    )
    parser_thumbnails.set_defaults(func=cmd_thumbnails)

    parser_run = subparsers.add_parser(
        "run",
        help="Start the scheduled pipeline",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_run.add_argument(
        "--once",
        action="store_true",
        help="Run the full pipeline once (Sync -> News -> Thumbnails) then exit",
    )
    parser_run.set_defaults(func=cmd_run)

    parser_serve = subparsers.add_parser(
        "serve",
        help="Serve the read API",
    )
    parser_serve.add_argument("--host", default=None, help="Bind address")
    parser_serve.add_argument("--port", type=int, default=None, help="Bind port")
    parser_serve.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development)",
    )
    parser_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
