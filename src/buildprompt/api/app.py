"""FastAPI application for the BuildPrompt AI service.

This service handles:
- Build generation (/api/generate)
- Idea validation (/api/validate-idea)
- Monthly usage lookup (/api/user/usage)
- Coding agent catalog (/api/agents)
- Build history (/api/builds)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from buildprompt import __version__
from buildprompt.api.router import router, validation_error_response
from buildprompt.config import get_settings
from buildprompt.ratelimit import RateLimitSweeper, get_rate_limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    settings = get_settings()

    # Startup: Initialize database when usage is persisted there
    if settings.usage_backend == "database":
        try:
            from buildprompt.db import init_database

            logger.info("Initializing database: %s", settings.database_url.split("@")[-1])
            await init_database()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error("Failed to initialize database: %s", e)
            raise

    # Startup: Start the rate limit sweeper
    sweeper = RateLimitSweeper()
    app.state.sweeper = sweeper
    await sweeper.start()

    yield

    # Shutdown: Stop the sweeper
    try:
        await sweeper.stop()
    except Exception as e:
        logger.error("Failed to stop rate limit sweeper: %s", e)

    # Shutdown: Release the rate limit store
    try:
        await get_rate_limiter().close()
    except Exception as e:
        logger.error("Failed to close rate limiter: %s", e)

    # Shutdown: Close database connection
    if settings.usage_backend == "database":
        try:
            from buildprompt.db import close_database

            logger.info("Closing database connection")
            await close_database()
        except Exception as e:
            logger.error("Failed to close database: %s", e)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return the API error envelope for malformed /api requests."""
    if request.url.path.startswith("/api/"):
        logger.info("Malformed request to %s: %s", request.url.path, exc.errors())
        return validation_error_response(exc)
    return await request_validation_exception_handler(request, exc)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Health check endpoint
    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy", "service": settings.app_name}

    # Ready check endpoint
    @app.get("/ready")
    async def ready_check() -> dict:
        """Readiness check endpoint."""
        sweeper = getattr(app.state, "sweeper", None)
        return {
            "status": "ready",
            "service": settings.app_name,
            "sweeper": sweeper.get_status() if sweeper else None,
        }

    # Provides: /api/generate, /api/validate-idea, /api/user/usage, /api/agents, /api/builds
    app.include_router(router)

    # Malformed bodies and query parameters get the API error envelope
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Browser clients call the API from the web app origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
    )

    return app
