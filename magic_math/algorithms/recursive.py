"""Recursive magic math with a persistent memo table."""

from __future__ import annotations

import threading

from magic_math.algorithms.validation import validate_input


class MemoizedMagicMath:
    """Recursive-with-memoization strategy.

    The memo table lives as long as the instance, so repeated calls are
    served from it. Values are deterministic, which makes concurrent
    first-writes of the same key harmless; the lock only keeps the dict and
    the ceiling marker consistent with each other.

    The memo is always contiguous (computing ``f(n)`` fills ``0..n``), so a
    cold call for a large ``n`` is split into strides that each recurse at
    most ``stride`` frames deep.
    """

    def __init__(self, stride: int = 256):
        if stride < 2:
            raise ValueError("stride must be at least 2")
        self._stride = stride
        self._lock = threading.Lock()
        self._memo: dict[int, int] = {0: 0, 1: 1}
        self._ceiling = 1

    def __call__(self, n: int) -> int:
        n = validate_input(n)
        for step in range(self._ceiling + self._stride, n, self._stride):
            self._recurse(step)
        return self._recurse(n)

    def _recurse(self, n: int) -> int:
        cached = self._memo.get(n)
        if cached is not None:
            return cached

        value = self._recurse(n - 1) + self._recurse(n - 2) + n
        with self._lock:
            self._memo[n] = value
            if n > self._ceiling:
                self._ceiling = n
        return value

    def __len__(self) -> int:
        return len(self._memo)

    def clear(self) -> None:
        """Drop everything but the base cases."""
        with self._lock:
            self._memo = {0: 0, 1: 1}
            self._ceiling = 1
