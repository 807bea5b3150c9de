"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis, database engine).
Middleware, CORS, and routers all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inkwell import __version__
from inkwell.api import api_router
from inkwell.auth.sessions import build_session_store
from inkwell.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: FastAPI lifespan replaces on_event("startup") / on_event("shutdown").
    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "inkwell.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        session_backend=settings.session_backend,
    )

    from inkwell.cache import close_redis, init_redis
    if settings.session_backend == "redis":
        try:
            await init_redis()
            logger.info("inkwell.redis_connected", url=settings.redis_url)
        except Exception as e:
            # Sessions degrade to "absent" and rate limiting is skipped;
            # bearer tokens keep working.
            logger.warning("inkwell.redis_unavailable", error=str(e))

    yield

    logger.info("inkwell.shutdown")
    await close_redis()

    from inkwell.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Inkwell",
        description="Blog and admin backend — sessions, tokens, roles, uploads",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.session_store = build_session_store(settings.session_backend)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from inkwell.middleware.rate_limit import RateLimitMiddleware
    from inkwell.middleware.request_id import RequestIdMiddleware
    from inkwell.middleware.security import SecurityHeadersMiddleware

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
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Origin", "Accept", "X-Request-ID"],
    )

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: inkwell.main:app)
app = create_app()
