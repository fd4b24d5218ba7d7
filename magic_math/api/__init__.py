"""API routers."""

from magic_math.api.compute import router as compute_router
from magic_math.api.health import router as health_router

__all__ = [
    "compute_router",
    "health_router",
]
