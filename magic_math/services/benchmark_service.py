"""Timing comparison of the recursive and iterative strategies."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from magic_math.algorithms import MemoizedMagicMath, magic_math_iterative
from magic_math.algorithms.validation import validate_input

DEFAULT_SIZES = (10, 100, 1000)


@dataclass
class StrategyTiming:
    runs_ms: List[float] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def average_ms(self) -> Optional[float]:
        if not self.runs_ms:
            return None
        return sum(self.runs_ms) / len(self.runs_ms)


@dataclass
class BenchmarkReport:
    n: int
    recursive: StrategyTiming
    iterative: StrategyTiming

    @property
    def winner(self) -> str:
        rec, it = self.recursive.average_ms, self.iterative.average_ms
        if rec is None and it is None:
            return "none"
        if rec is None:
            return "iterative"
        if it is None:
            return "recursive"
        if rec < it:
            return "recursive"
        if it < rec:
            return "iterative"
        return "tie"

    @property
    def improvement_pct(self) -> Optional[float]:
        """How much faster the winner was, relative to the loser."""
        rec, it = self.recursive.average_ms, self.iterative.average_ms
        if rec is None or it is None or rec == it:
            return None
        slower = max(rec, it)
        return round((slower - min(rec, it)) / slower * 100, 2) if slower else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n": self.n,
            "recursive_ms": _round(self.recursive.average_ms),
            "iterative_ms": _round(self.iterative.average_ms),
            "recursive_error": self.recursive.error,
            "iterative_error": self.iterative.error,
            "winner": self.winner,
            "improvement_pct": self.improvement_pct,
        }


def _round(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 4)


def _time_runs(fn: Callable[[int], int], n: int, runs: int) -> StrategyTiming:
    timing = StrategyTiming()
    for _ in range(runs):
        start = time.perf_counter()
        try:
            fn(n)
        except (RecursionError, ValueError) as exc:
            timing.error = f"{type(exc).__name__}: {exc}"
            break
        timing.runs_ms.append((time.perf_counter() - start) * 1000)
    return timing


def run_benchmark(n: int, runs: int = 5) -> BenchmarkReport:
    """Time both strategies for ``n``.

    The recursive strategy gets a fresh memo table, so the first run is the
    cold one and later runs show the memoized cost.
    """
    n = validate_input(n)
    if isinstance(runs, bool) or not isinstance(runs, int) or runs < 1:
        raise ValueError("runs must be a positive integer")
    recursive = MemoizedMagicMath()
    return BenchmarkReport(
        n=n,
        recursive=_time_runs(recursive, n, runs),
        iterative=_time_runs(magic_math_iterative, n, runs),
    )


def benchmark_summary(sizes=DEFAULT_SIZES, runs: int = 3) -> Dict[str, Any]:
    """Payload for the ``/benchmark`` endpoint."""
    return {
        "message": "Magic Math Benchmark",
        "runs": runs,
        "tests": [run_benchmark(n, runs).to_dict() for n in sizes],
    }

