"""Command line entry point for the BuildPrompt AI service.

Subcommands:
- serve: run the HTTP API under uvicorn (the default)
- init-db: create the usage and build history tables
- set-tier: change a user's subscription tier
"""

import argparse
import asyncio
import json
import logging
import sys

import uvicorn
from dotenv import load_dotenv

from buildprompt.config import Settings, get_settings
from buildprompt.ratelimit import SubscriptionTier

# LogRecord attributes that are not caller-supplied ``extra`` fields
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

_NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "uvicorn.access")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including ``extra={...}`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(settings: Settings | None = None) -> None:
    """Configure root logging on stdout in the configured format."""
    settings = settings or get_settings()

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        handlers=[handler],
        force=True,
    )

    # Request-level chatter from client libraries
    if not settings.debug:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="buildprompt",
        description="BuildPrompt AI: build guides and coding agent prompts from project ideas.",
        epilog=(
            "Environment variables:\n"
            "  XAI_API_KEY      Model endpoint key (required to generate)\n"
            "  USAGE_BACKEND    memory or database\n"
            "  DATABASE_URL     Database connection string\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API (default)")
    serve_parser.add_argument("--host", help="Bind address (default: HOST setting)")
    serve_parser.add_argument("--port", type=int, help="Bind port (default: PORT setting)")
    serve_parser.add_argument(
        "--reload", action="store_true", help="Restart on code changes (development only)"
    )

    subparsers.add_parser("init-db", help="Create database tables")

    tier_parser = subparsers.add_parser("set-tier", help="Change a user's subscription tier")
    tier_parser.add_argument("user_id", help="User ID as sent in X-User-ID")
    tier_parser.add_argument(
        "tier", choices=[tier.value for tier in SubscriptionTier], help="New subscription tier"
    )

    return parser


def serve(settings: Settings, host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    """Run the API server until interrupted."""
    logger = logging.getLogger(__name__)

    # Tracing must be set up before the app is created
    from buildprompt.telemetry import setup_telemetry, shutdown_telemetry

    setup_telemetry()

    host = host or settings.host
    port = port or settings.port
    logger.info(
        "Starting BuildPrompt AI",
        extra={
            "app_name": settings.app_name,
            "model": settings.xai_model,
            "host": host,
            "port": port,
            "rate_limit_backend": settings.rate_limit_backend,
            "usage_backend": settings.usage_backend,
            "otel_enabled": settings.otel_enabled,
        },
    )

    try:
        if reload:
            # The reloader re-imports the app in a worker process
            uvicorn.run(
                "buildprompt.api.app:create_app",
                factory=True,
                host=host,
                port=port,
                reload=True,
                log_level=settings.log_level.lower(),
            )
        else:
            from buildprompt.api.app import create_app

            uvicorn.run(create_app(), host=host, port=port, log_level=settings.log_level.lower())
    finally:
        shutdown_telemetry()


async def init_db() -> None:
    """Create all tables on the configured database."""
    from buildprompt.db import close_database, init_database

    try:
        await init_database()
    finally:
        await close_database()


async def set_tier(user_id: str, tier: SubscriptionTier) -> None:
    """Change a user's tier in the configured usage backend."""
    from buildprompt.db import close_database, init_database
    from buildprompt.metering import create_usage_repository

    settings = get_settings()
    if settings.usage_backend != "database":
        raise SystemExit("set-tier needs USAGE_BACKEND=database; the memory backend lives in the server process")

    try:
        await init_database()
        user = await create_usage_repository(settings).set_tier(user_id, tier)
    finally:
        await close_database()
    print(f"{user.id}: {user.subscription_tier.value}")


def main(argv: list[str] | None = None) -> None:
    """Entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(settings)

    if args.command == "init-db":
        asyncio.run(init_db())
    elif args.command == "set-tier":
        asyncio.run(set_tier(args.user_id, SubscriptionTier(args.tier)))
    else:
        serve(
            settings,
            host=getattr(args, "host", None),
            port=getattr(args, "port", None),
            reload=getattr(args, "reload", False),
        )


if __name__ == "__main__":
    main()
