"""Rate limit store keeping windows in the external cache store.

Each identifier's window lives under ``<prefix><identifier>`` with a TTL equal
to the time left in the window, so the store expires stale windows itself.
The get-then-set pair is not atomic across workers; concurrent requests may
undercount slightly, which is accepted for this limiter.
"""

from __future__ import annotations

import math
from typing import Any

from magic_math.cache.store import CacheStore
from magic_math.core.limits import (
    RateLimitResult,
    RateLimitStore,
    RateLimitWindow,
    evaluate_window,
)
from magic_math.core.logging import get_logger

logger = get_logger(__name__)


def _decode_window(value: Any) -> RateLimitWindow | None:
    if not isinstance(value, dict):
        return None
    count, reset_at = value.get("count"), value.get("reset_at")
    if not isinstance(count, int) or not isinstance(reset_at, int):
        return None
    return RateLimitWindow(count=count, reset_at=reset_at)


class CacheRateLimitStore(RateLimitStore):
    """Fixed-window rate limiting on top of a ``CacheStore``."""

    def __init__(self, cache: CacheStore, key_prefix: str = "rate_limit:"):
        self._cache = cache
        self._prefix = key_prefix

    def key_for(self, identifier: str) -> str:
        return f"{self._prefix}{identifier}"

    async def check(self, identifier: str, limit: int, window_ms: int, now_ms: int) -> RateLimitResult:
        key = self.key_for(identifier)

        lookup = await self._cache.get(key)
        window = _decode_window(lookup.value) if lookup.hit else None
        if lookup.hit and window is None:
            logger.warning("Ignoring malformed rate limit window", data={"key": key})

        if window is None or window.reset_at <= now_ms:
            window = RateLimitWindow(count=1, reset_at=now_ms + window_ms)
        else:
            window = RateLimitWindow(count=window.count + 1, reset_at=window.reset_at)

        ttl_seconds = max(1, math.ceil((window.reset_at - now_ms) / 1000))
        await self._cache.set(
            key,
            {"count": window.count, "reset_at": window.reset_at},
            ttl_seconds,
        )
        return evaluate_window(window, limit)
