"""Fixed-window rate limit store abstractions.

Two backends share one contract: a cache-backed store used while the
external store is connected, and an in-process store used otherwise. The
``RateLimiter`` in ``magic_math.core.limits.limiter`` picks between them on
every call.

Usage:
    from magic_math.core.limits.limiter import RateLimiter

    limiter = RateLimiter(cache_store, limit=100, window_ms=60000)
    decision = await limiter.apply_rate_limit("203.0.113.7")
    if decision.limited:
        ...  # answer 429 with decision.headers
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

__all__ = [
    "RateLimitResult",
    "RateLimitStore",
    "RateLimitWindow",
    "evaluate_window",
]


@dataclass
class RateLimitWindow:
    """Counter for one identifier within its active window.

    Attributes:
        count: Requests seen in this window, including over-limit ones.
        reset_at: Epoch milliseconds at which the window ends.
    """
    count: int
    reset_at: int


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        limited: Whether the request exceeds the window's capacity.
        remaining: Requests left in the window, never negative.
        reset_at: Epoch milliseconds at which the window resets.
    """
    limited: bool
    remaining: int
    reset_at: int


def evaluate_window(window: RateLimitWindow, limit: int) -> RateLimitResult:
    """Turn an already-incremented window into a check result."""
    return RateLimitResult(
        limited=window.count > limit,
        remaining=max(0, limit - window.count),
        reset_at=window.reset_at,
    )


class RateLimitStore(Protocol):
    """Protocol for rate limit backends.

    Fixed (non-sliding) window: the first request of a window, or the first
    after ``reset_at``, opens a new window with ``count=1``; every later
    request increments ``count`` and keeps ``reset_at``. Bursts straddling a
    window edge can reach twice the nominal rate.
    """

    async def check(self, identifier: str, limit: int, window_ms: int, now_ms: int) -> RateLimitResult:
        """Record a request and check rate limit.

        Args:
            identifier: Client identifier (usually an IP address).
            limit: Maximum requests allowed in the window.
            window_ms: Window duration in milliseconds.
            now_ms: Current time in epoch milliseconds.

        Returns:
            RateLimitResult with limited/remaining/reset info.
        """
        ...
