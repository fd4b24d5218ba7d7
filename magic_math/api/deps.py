"""FastAPI dependencies resolving the instances built in the app lifespan."""

from fastapi import Request

from magic_math.cache.backend import RedisBackend
from magic_math.core.limits.limiter import RateLimiter
from magic_math.services.compute_service import ComputeService


def get_compute_service(request: Request) -> ComputeService:
    return request.app.state.compute_service


def get_redis_backend(request: Request) -> RedisBackend:
    return request.app.state.redis_backend


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter
