"""FastAPI application factory.

create_app() returns a configured FastAPI instance. The lifespan manages
startup/shutdown (Redis pool, database engine). Middleware, CORS,
exception handlers and routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tickoff import __version__
from tickoff.api import api_router
from tickoff.config import settings
from tickoff.middleware.errors import register_exception_handlers

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "tickoff.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from tickoff.db.redis_pool import close_redis, init_redis
    try:
        await init_redis()
        logger.info("tickoff.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis only backs rate limiting; run without it
        logger.warning("tickoff.redis_unavailable", error=str(e))
        await close_redis()

    yield

    logger.info("tickoff.shutdown")
    await close_redis()

    from tickoff.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Tickoff",
        description="Todo lists with cookie-based JWT authentication",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from tickoff.middleware.rate_limit import RateLimitMiddleware
    from tickoff.middleware.request_id import RequestIdMiddleware
    from tickoff.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: tickoff.main:app)
app = create_app()
