"""
Health check endpoint.

Reports liveness plus the external store's connectivity flag. Exempt from
rate limiting so monitoring never trips the limiter.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Request

from magic_math.api.deps import get_rate_limiter, get_redis_backend
from magic_math.cache.backend import RedisBackend
from magic_math.core.limits.limiter import RateLimiter

router = APIRouter(tags=["health"])


@router.get("/health")
@router.get("/healthz")
async def healthcheck(
    request: Request,
    backend: RedisBackend = Depends(get_redis_backend),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> dict[str, Any]:
    """
    Health check endpoint.

    The service is healthy with or without the external store; ``backend``
    tells monitoring which one is in use.
    """
    start_time = getattr(request.app.state, "start_time", None)
    now = datetime.now(UTC)
    return {
        "status": "ok",
        "version": request.app.version,
        "timestamp": now.isoformat(),
        "uptime_seconds": int((now - start_time).total_seconds()) if start_time else None,
        "backend": {
            "connected": backend.is_connected(),
            "name": backend.status.name,
            "enabled": backend.enabled,
        },
        "rate_limit": {
            "limit": limiter.limit,
            "window_ms": limiter.window_ms,
            **limiter.counters.snapshot(),
        },
    }
