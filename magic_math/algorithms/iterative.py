"""Iterative magic math.

magic_math(0) = 0
magic_math(1) = 1
magic_math(N) = magic_math(N-1) + magic_math(N-2) + N

Keeps only the two most recent terms, so memory is constant and there is no
recursion depth to worry about. Used for inputs at or above the large-input
threshold.
"""

from magic_math.algorithms.validation import validate_input


def magic_math_iterative(n: int) -> int:
    n = validate_input(n)
    if n < 2:
        return n

    prev, current = 0, 1
    for i in range(2, n + 1):
        prev, current = current, current + prev + i
    return current
