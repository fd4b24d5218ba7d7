"""Magic math strategies and the size-based dispatch between them.

Usage:
    from magic_math.algorithms import MagicMathEngine

    engine = MagicMathEngine(threshold=1000)
    result, algorithm = engine.compute(25)
"""

from __future__ import annotations

import sys

from magic_math.algorithms.iterative import magic_math_iterative
from magic_math.algorithms.recursive import MemoizedMagicMath
from magic_math.algorithms.validation import validate_input
from magic_math.models import Algorithm

# Results grow past the default int <-> str conversion limit around n = 20000.
sys.set_int_max_str_digits(0)

LARGE_INPUT_THRESHOLD = 1000

__all__ = [
    "LARGE_INPUT_THRESHOLD",
    "MagicMathEngine",
    "MemoizedMagicMath",
    "magic_math_iterative",
    "select_algorithm",
    "validate_input",
]


def select_algorithm(n: int, threshold: int = LARGE_INPUT_THRESHOLD) -> Algorithm:
    """Pick the strategy for ``n``: iterative at or above ``threshold``."""
    return Algorithm.ITERATIVE if n >= threshold else Algorithm.RECURSIVE


class MagicMathEngine:
    """Dispatcher owning a memoized recursive strategy and the threshold policy.

    One instance per application; tests create their own so memo tables are
    never shared between them.
    """

    def __init__(self, threshold: int = LARGE_INPUT_THRESHOLD, recursive: MemoizedMagicMath | None = None):
        self.threshold = threshold
        self.recursive = recursive or MemoizedMagicMath()

    def compute(self, n: int) -> tuple[int, Algorithm]:
        """Validate ``n`` and evaluate it with the strategy its size calls for.

        Raises:
            InvalidInputError: ``n`` is not a non-negative integer.
        """
        n = validate_input(n)
        algorithm = select_algorithm(n, self.threshold)
        if algorithm is Algorithm.ITERATIVE:
            return magic_math_iterative(n), algorithm
        return self.recursive(n), algorithm

