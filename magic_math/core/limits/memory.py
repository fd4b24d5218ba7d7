"""In-memory fixed-window rate limit store.

Used while the external store is disconnected. Per-process only; windows
are swept periodically so identifiers that stop sending requests do not
accumulate.
"""

from __future__ import annotations

from asyncio import Lock

from magic_math.core.limits import (
    RateLimitResult,
    RateLimitStore,
    RateLimitWindow,
    evaluate_window,
)


class InMemoryRateLimitStore(RateLimitStore):
    """In-memory fixed-window rate limiting.

    The read-modify-write of a window happens under a lock so concurrent
    requests for the same identifier never lose an increment.
    """

    def __init__(self) -> None:
        self._windows: dict[str, RateLimitWindow] = {}
        self._lock = Lock()

    async def check(self, identifier: str, limit: int, window_ms: int, now_ms: int) -> RateLimitResult:
        async with self._lock:
            window = self._windows.get(identifier)
            if window is None or window.reset_at <= now_ms:
                window = RateLimitWindow(count=0, reset_at=now_ms + window_ms)
                self._windows[identifier] = window
            window.count += 1
            return evaluate_window(window, limit)

    async def sweep(self, now_ms: int) -> int:
        """Delete windows whose ``reset_at`` has passed.

        Returns:
            Number of windows removed.
        """
        async with self._lock:
            expired = [key for key, window in self._windows.items() if window.reset_at <= now_ms]
            for key in expired:
                del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)
