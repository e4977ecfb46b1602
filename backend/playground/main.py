"""
AI Playground backend application.

FastAPI application that streams one prompt to several models at once,
with structured logging, error handling and session history.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from playground import __version__
from playground.api import health_router, playground_router, providers_router
from playground.config import Settings, get_settings
from playground.core.logging import get_logger, setup_logging
from playground.core.middleware import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    setup_exception_handlers,
)
from playground.db import dispose_engine, get_engine, get_session_factory, verify_database_connection
from playground.providers import ProviderRegistry
from playground.services import (
    ActiveRunManager,
    SlidingWindowRateLimiter,
    SqlSessionStore,
    StreamOrchestrator,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings

    setup_logging(
        level=settings.log_level,
        json_output=not settings.debug,
        log_file=settings.log_file or None,
    )
    logger.info(
        "Starting AI Playground backend",
        data={
            "host": settings.host,
            "port": settings.port,
            "debug": settings.debug,
            "providers": list(app.state.provider_registry.providers),
        },
    )

    # Does NOT run migrations
    if verify_database_connection(getattr(app.state, "engine", None)):
        logger.info("Database connection verified")
    else:
        logger.warning(
            "Database connection failed - run 'alembic upgrade head' to initialize"
        )

    app.state.start_time = datetime.now(UTC)

    yield

    logger.info("Shutting down AI Playground backend")
    await app.state.provider_registry.aclose()
    if app.state.owns_engine:
        dispose_engine()


def create_app(
    settings: Settings | None = None,
    *,
    registry: ProviderRegistry | None = None,
    session_factory: Callable[[], Session] | None = None,
    limiter: SlidingWindowRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="AI Playground",
        description="Compare streamed answers from several language models side by side",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.owns_engine = session_factory is None
    if session_factory is None:
        app.state.engine = get_engine()
        session_factory = get_session_factory()
    app.state.session_factory = session_factory

    app.state.provider_registry = registry or ProviderRegistry(settings)
    app.state.session_store = SqlSessionStore(session_factory)
    app.state.orchestrator = StreamOrchestrator(
        registry=app.state.provider_registry,
        store=app.state.session_store,
        limiter=limiter
        or SlidingWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        run_manager=ActiveRunManager(),
        heartbeat_interval=settings.sse_ping_interval_seconds,
    )

    # Setup exception handlers (must be before middleware)
    setup_exception_handlers(app)

    # Last added = first executed
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    app.include_router(health_router)
    app.include_router(providers_router)
    app.include_router(playground_router)

    return app


# Create application instance
app = create_app()
