"""Tests for the magic math strategies and size-based dispatch."""

import math
from concurrent.futures import ThreadPoolExecutor

import pytest

from magic_math.algorithms import (
    LARGE_INPUT_THRESHOLD,
    MagicMathEngine,
    MemoizedMagicMath,
    magic_math_iterative,
    select_algorithm,
    validate_input,
)
from magic_math.core.exceptions import INVALID_INPUT_MESSAGE, InvalidInputError
from magic_math.models import Algorithm

KNOWN_VALUES = {
    0: 0,
    1: 1,
    2: 3,
    3: 7,
    4: 14,
    5: 26,
    6: 46,
    7: 79,
    10: 364,
}


def _fibonacci(n):
    a, b = 0, 1
    for _ in range(n):
        a, b = b, a + b
    return a


class TestValidation:
    """Tests for validate_input."""

    @pytest.mark.parametrize("value", [0, 1, 42, 10**30])
    def test_accepts_non_negative_integers(self, value):
        assert validate_input(value) == value

    @pytest.mark.parametrize("value", [-1, -100, 5.0, 2.5, math.nan, "5", None, True, False, [5]])
    def test_rejects_everything_else(self, value):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_input(value)
        assert exc_info.value.message == INVALID_INPUT_MESSAGE
        assert exc_info.value.status_code == 400

    def test_invalid_input_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_input(-1)


class TestIterative:
    """Tests for magic_math_iterative."""

    @pytest.mark.parametrize("n,expected", sorted(KNOWN_VALUES.items()))
    def test_known_values(self, n, expected):
        assert magic_math_iterative(n) == expected

    def test_matches_closed_form(self):
        """f(n) = F(n + 4) - n - 3 where F is the Fibonacci sequence."""
        for n in (50, 999, 5000):
            assert magic_math_iterative(n) == _fibonacci(n + 4) - n - 3

    def test_rejects_negative(self):
        with pytest.raises(InvalidInputError):
            magic_math_iterative(-1)


class TestMemoizedRecursive:
    """Tests for MemoizedMagicMath."""

    @pytest.fixture
    def recursive(self):
        return MemoizedMagicMath()

    @pytest.mark.parametrize("n,expected", sorted(KNOWN_VALUES.items()))
    def test_known_values(self, recursive, n, expected):
        assert recursive(n) == expected

    def test_agrees_with_iterative(self, recursive):
        for n in range(0, 2001):
            assert recursive(n) == magic_math_iterative(n)

    def test_cold_call_on_large_input_does_not_exhaust_stack(self, recursive):
        n = 20000
        assert recursive(n) == magic_math_iterative(n)

    def test_memo_persists_across_calls(self, recursive):
        recursive(300)
        assert len(recursive) == 301
        recursive(100)
        assert len(recursive) == 301

    def test_clear_resets_memo(self, recursive):
        recursive(50)
        recursive.clear()
        assert len(recursive) == 2
        assert recursive(5) == 26

    def test_concurrent_threads_share_one_memo(self, recursive):
        inputs = [1200, 1200, 900, 1500, 300, 1500, 1100, 700] * 4

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(recursive, inputs))

        assert results == [magic_math_iterative(n) for n in inputs]
        assert len(recursive) == max(inputs) + 1

    def test_rejects_small_stride(self):
        with pytest.raises(ValueError):
            MemoizedMagicMath(stride=1)


class TestDispatch:
    """Tests for select_algorithm and MagicMathEngine."""

    def test_default_threshold(self):
        assert LARGE_INPUT_THRESHOLD == 1000

    def test_threshold_boundary(self):
        assert select_algorithm(999) == Algorithm.RECURSIVE
        assert select_algorithm(1000) == Algorithm.ITERATIVE
        assert select_algorithm(0) == Algorithm.RECURSIVE

    def test_custom_threshold(self):
        assert select_algorithm(10, threshold=10) == Algorithm.ITERATIVE
        assert select_algorithm(9, threshold=10) == Algorithm.RECURSIVE

    def test_engine_reports_algorithm_used(self):
        engine = MagicMathEngine(threshold=100)
        assert engine.compute(5) == (26, Algorithm.RECURSIVE)
        value, algorithm = engine.compute(100)
        assert algorithm == Algorithm.ITERATIVE
        assert value == magic_math_iterative(100)

    def test_engine_results_independent_of_threshold(self):
        low = MagicMathEngine(threshold=2)
        high = MagicMathEngine(threshold=5000)
        for n in (0, 1, 2, 17, 999, 1000, 1500):
            assert low.compute(n)[0] == high.compute(n)[0]

    def test_engine_validates(self):
        with pytest.raises(InvalidInputError):
            MagicMathEngine().compute(-3)
