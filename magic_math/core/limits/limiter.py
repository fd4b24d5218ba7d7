"""Dual-backend rate limiter and client identifier resolution."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping

from magic_math.cache.backend import BACKEND_MEMORY, BACKEND_REDIS
from magic_math.cache.store import CacheStore
from magic_math.core.limits import RateLimitResult
from magic_math.core.limits.cache import CacheRateLimitStore
from magic_math.core.limits.memory import InMemoryRateLimitStore
from magic_math.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CLIENT_IDENTIFIER = "127.0.0.1"


def resolve_client_identifier(headers: Mapping[str, str]) -> str:
    """Identify the client from proxy headers.

    Precedence: first address of ``X-Forwarded-For``, then
    ``CF-Connecting-IP``, then the loopback address.
    """
    forwarded_for = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded_for:
        return forwarded_for
    connecting_ip = (headers.get("cf-connecting-ip") or "").strip()
    if connecting_ip:
        return connecting_ip
    return DEFAULT_CLIENT_IDENTIFIER


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RateLimitCounters:
    """Server-wide totals. Over-limit attempts are counted too."""

    requests_total: int = 0
    requests_limited: int = 0
    by_backend: Dict[str, int] = field(default_factory=dict)

    def record(self, backend: str, limited: bool) -> None:
        self.requests_total += 1
        if limited:
            self.requests_limited += 1
        self.by_backend[backend] = self.by_backend.get(backend, 0) + 1

    def snapshot(self) -> dict:
        return {
            "requests_total": self.requests_total,
            "requests_limited": self.requests_limited,
            "by_backend": dict(self.by_backend),
        }


@dataclass(frozen=True)
class RateLimitDecision:
    """What the HTTP layer needs: whether to reject, and headers to attach."""

    limited: bool
    headers: Dict[str, str]
    result: RateLimitResult
    backend: str


class RateLimiter:
    """Fixed-window limiter choosing its backend per call.

    While the cache store reports connected, windows live in the external
    store; otherwise they live in ``memory_store``. A store that drops out
    mid-check is treated as disconnected and the check is re-run in memory.
    """

    def __init__(
        self,
        cache: CacheStore,
        *,
        limit: int = 100,
        window_ms: int = 60000,
        key_prefix: str = "rate_limit:",
        memory_store: InMemoryRateLimitStore | None = None,
        clock: Callable[[], int] = _now_ms,
    ):
        """Initialize the limiter.

        Args:
            cache: Cache store; its ``is_connected()`` selects the backend.
            limit: Requests allowed per window.
            window_ms: Window length in milliseconds.
            key_prefix: Namespace for window keys in the external store.
            memory_store: In-process fallback store (created if omitted).
            clock: Returns the current time in epoch milliseconds.
        """
        self._cache = cache
        self.limit = limit
        self.window_ms = window_ms
        self.memory_store = memory_store or InMemoryRateLimitStore()
        self.cache_store = CacheRateLimitStore(cache, key_prefix=key_prefix)
        self.counters = RateLimitCounters()
        self._clock = clock

    def now_ms(self) -> int:
        return self._clock()

    @property
    def backend_name(self) -> str:
        return BACKEND_REDIS if self._cache.is_connected() else BACKEND_MEMORY

    async def check(self, identifier: str) -> tuple[RateLimitResult, str]:
        """Count one request for ``identifier`` and report its window state."""
        now_ms = self.now_ms()
        result = None
        backend = BACKEND_MEMORY
        if self._cache.is_connected():
            result = await self.cache_store.check(identifier, self.limit, self.window_ms, now_ms)
            if self._cache.is_connected():
                backend = BACKEND_REDIS
            else:
                result = None
        if result is None:
            result = await self.memory_store.check(identifier, self.limit, self.window_ms, now_ms)

        self.counters.record(backend, result.limited)
        if result.limited:
            logger.warning(
                "Rate limit exceeded",
                data={"identifier": identifier, "backend": backend, "reset_at": result.reset_at},
            )
        return result, backend

    async def apply_rate_limit(self, identifier: str) -> RateLimitDecision:
        """Check ``identifier`` and build the ``X-RateLimit-*`` response headers."""
        result, backend = await self.check(identifier)
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_at // 1000),
            "X-RateLimit-Backend": backend,
        }
        return RateLimitDecision(limited=result.limited, headers=headers, result=result, backend=backend)

    async def sweep(self) -> int:
        """Drop expired in-memory windows."""
        removed = await self.memory_store.sweep(self.now_ms())
        if removed:
            logger.debug("Swept expired rate limit windows", data={"removed": removed})
        return removed
