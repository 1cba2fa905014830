"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and
the rate limiter lifecycle) so tests can build independent instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from ratekeeper.adapters.rate_limit.base import AbstractRateLimiter
from ratekeeper.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from ratekeeper.adapters.rate_limit.sweeper import RateLimitSweeper
from ratekeeper.api.routes import health_router, rate_limit_router
from ratekeeper.core.config import settings
from ratekeeper.core.exception_handlers import setup_exception_handlers
from ratekeeper.core.logging import configure_logging
from ratekeeper.core.middleware import request_id_middleware
from ratekeeper.core.openapi import apply_openapi_customizations
from ratekeeper.core.rate_limit import rate_limit_outcome_middleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the expired-entry sweep for as long as the app is serving."""

    sweeper: RateLimitSweeper = app.state.rate_limit_sweeper
    sweeper.start()
    try:
        yield
    finally:
        await sweeper.stop()


def create_app(
    *,
    limiter: AbstractRateLimiter | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        limiter: Limiter to install; a fresh in-memory limiter by default.
        configure_logs: Install the service log handler on the root logger.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    if configure_logs:
        configure_logging(settings.log)

    app = FastAPI(
        title=settings.app.name,
        description=(
            "Admission control for HTTP APIs: per-client fixed-window quotas "
            "with standard X-RateLimit-* and Retry-After metadata."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    if limiter is None:
        limiter = InMemoryFixedWindowRateLimiter()
    app.state.rate_limiter = limiter
    app.state.rate_limit_sweeper = RateLimitSweeper(
        app.state.rate_limiter,
        interval_seconds=settings.rate_limit.sweep_interval_seconds,
    )

    # Outcome reporting must run inside the request id context
    app.middleware("http")(rate_limit_outcome_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(rate_limit_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info(
        "app.created",
        extra={
            "app_env": settings.app_env,
            "rate_limit_enabled": settings.rate_limit.enabled,
            "limiter": type(app.state.rate_limiter).__name__,
        },
    )
    return app
