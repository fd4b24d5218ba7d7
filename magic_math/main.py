"""
Magic Math API application.

FastAPI application wiring the compute engine, the Redis-backed result
cache and the dual-backend rate limiter, with structured logging and
error handling.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from magic_math import __version__
from magic_math.algorithms import MagicMathEngine
from magic_math.api import compute_router, health_router
from magic_math.cache import BackendStatus, RedisBackend, RedisCacheStore
from magic_math.config import Settings, get_settings
from magic_math.core import get_logger, setup_exception_handlers, setup_logging
from magic_math.core.limits.limiter import RateLimiter
from magic_math.core.middleware import RateLimitMiddleware, RequestContextMiddleware
from magic_math.core.scheduler import PeriodicTask
from magic_math.services.compute_service import ComputeService

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the shared backend, limiter and compute instances for the app's lifetime."""
    settings: Settings = _app.state.settings

    # Startup
    setup_logging(
        level=settings.log_level,
        json_output=not settings.debug,
        log_file=settings.log_file or None,
    )
    logger.info(
        "Starting Magic Math API",
        data={
            "host": settings.host,
            "port": settings.port,
            "redis_enabled": settings.redis_enabled,
            "rate_limit_max": settings.rate_limit_max,
            "rate_limit_window_ms": settings.rate_limit_window,
            "large_input_threshold": settings.large_input_threshold,
        },
    )
    _app.state.start_time = datetime.now(UTC)

    status = BackendStatus()
    backend = RedisBackend(
        status,
        settings.redis_url,
        timeout_s=settings.redis_timeout_seconds,
        client_factory=getattr(_app.state, "redis_client_factory", None),
    )
    cache = RedisCacheStore(backend, default_ttl=settings.cache_ttl)
    limiter = RateLimiter(
        cache,
        limit=settings.rate_limit_max,
        window_ms=settings.rate_limit_window,
        key_prefix=settings.rate_limit_key_prefix,
    )
    service = ComputeService(
        MagicMathEngine(threshold=settings.large_input_threshold),
        cache,
        key_prefix=settings.cache_key_prefix,
        ttl_seconds=settings.cache_ttl,
    )
    _app.state.redis_backend = backend
    _app.state.cache_store = cache
    _app.state.rate_limiter = limiter
    _app.state.compute_service = service

    # Never fatal: without Redis every request computes and limits in memory.
    await backend.init()
    logger.info("Initialized backends", data={"backend": status.name})

    background = [
        PeriodicTask("rate-limit-sweeper", settings.rate_limit_window / 1000, limiter.sweep),
    ]
    if backend.enabled:
        background.append(
            PeriodicTask("backend-monitor", settings.redis_reconnect_interval_seconds, backend.probe)
        )
    for task in background:
        await task.start()

    yield

    # Shutdown
    logger.info("Shutting down Magic Math API")
    for task in background:
        await task.stop()
    await backend.close()


def create_app(
    settings: Settings | None = None,
    *,
    redis_client_factory: Callable[[str, float], Any] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Overrides ``get_settings()``.
        redis_client_factory: Builds the Redis client; tests pass a double.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Magic Math API",
        description="Cached, rate-limited magic math: f(n) = f(n-1) + f(n-2) + n",
        version=__version__,
        lifespan=lifespan,
        docs_url=settings.docs_url,
        redoc_url=None,
    )
    app.state.settings = settings
    if redis_client_factory is not None:
        app.state.redis_client_factory = redis_client_factory

    # Exception handlers
    setup_exception_handlers(app)

    # Add middleware (order matters - last added = first executed)
    # 1. Rate limiting (headers on every response, 429 when over the limit)
    app.add_middleware(RateLimitMiddleware, enabled=settings.rate_limit_enabled)

    # 2. Request context (inject request ID, log requests)
    app.add_middleware(RequestContextMiddleware)

    # 3. CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "X-RateLimit-Backend",
        ],
    )

    # Register routers; the catch-all /{value} route must come last
    app.include_router(health_router)
    app.include_router(compute_router)

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "magic_math.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


app = create_app()
