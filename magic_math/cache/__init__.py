"""External cache store and its connectivity status."""

from magic_math.cache.backend import (
    BACKEND_MEMORY,
    BACKEND_REDIS,
    BackendStatus,
    RedisBackend,
)
from magic_math.cache.store import CacheResult, CacheStore, RedisCacheStore

__all__ = [
    "BACKEND_MEMORY",
    "BACKEND_REDIS",
    "BackendStatus",
    "CacheResult",
    "CacheStore",
    "RedisBackend",
    "RedisCacheStore",
]
