"""
QuizIQ API - Main Application Entry Point.

Public event collector plus the dashboard API for trackers, statistics
and exports.
"""
import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from quiziq.core.config import settings
from quiziq.core.database import close_db, init_db
from quiziq.core.exceptions import QuizIQError, RateLimitError
from quiziq.core.logging import configure_logging, get_logger
from quiziq.middleware import ErrorHandlerMiddleware, PathScopedCORSMiddleware, RequestIdMiddleware
from quiziq.routers import (
    admin_router,
    collect_router,
    export_router,
    health_router,
    leads_router,
    stats_router,
    trackers_router,
)
from quiziq.services.rate_limit import (
    InMemoryRateLimiter,
    build_rate_limiter,
    cleanup_rate_limiter,
    now_ms,
)

# Configure logging before anything else
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info(
        "Starting application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Tables and the default policy row
    await init_db()

    # Initialize Sentry if configured
    if settings.sentry_dsn:
        import sentry_sdk

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,
        )
        logger.info("Sentry initialized")

    cleanup_task = None
    limiter = app.state.rate_limiter
    if isinstance(limiter, InMemoryRateLimiter):
        cleanup_task = asyncio.create_task(
            limiter.run_cleanup(settings.rate_limit_cleanup_interval)
        )

    yield

    # Shutdown
    logger.info("Shutting down application")
    if cleanup_task is not None:
        cleanup_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await cleanup_task
    await cleanup_rate_limiter(limiter)
    await close_db()


async def quiziq_error_handler(request: Request, exc: QuizIQError) -> JSONResponse:
    """Render taxonomy errors as ``{"error": ...}``; 5xx details stay in the logs."""
    headers = None

    if exc.status_code >= 500:
        logger.error("Request failed", error=exc.message, error_type=type(exc).__name__)
        body = {"error": "Internal server error"}
    else:
        logger.info(
            "Request rejected",
            status=exc.status_code,
            error=exc.message,
            error_type=type(exc).__name__,
        )
        body = exc.to_dict()

    if isinstance(exc, RateLimitError):
        retry_after = max((exc.reset_at - now_ms() + 999) // 1000, 0)
        headers = {"Retry-After": str(retry_after)}

    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query strings and bodies are 400s, like every other input error."""
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
    logger.info("Request validation failed", errors=len(details))
    return JSONResponse(status_code=400, content={"error": "Invalid input", "details": details})


def create_app() -> FastAPI:
    """
    Application factory function.
    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Quiz funnel tracking and analytics API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # One limiter per application, handed to the collector through a dependency
    app.state.rate_limiter = build_rate_limiter(settings)

    app.add_exception_handler(QuizIQError, quiziq_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Add middleware (order matters - last added = outermost)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(PathScopedCORSMiddleware, allowed_origins=settings.allowed_origins)
    app.add_middleware(RequestIdMiddleware)

    # Register routers
    app.include_router(health_router)
    app.include_router(collect_router, prefix="/api")
    app.include_router(stats_router, prefix="/api")
    app.include_router(export_router, prefix="/api")
    app.include_router(leads_router, prefix="/api")
    app.include_router(trackers_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")

    logger.info(
        "Application created",
        routes=len(app.routes),
        cors_origins=len(settings.allowed_origins),
        rate_limit_backend=settings.rate_limit_backend,
    )

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "quiziq.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
