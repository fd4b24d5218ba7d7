"""Input validation shared by both strategies."""

from typing import Any

from magic_math.core.exceptions import InvalidInputError


def validate_input(value: Any) -> int:
    """Return ``value`` if it is a non-negative ``int``, else raise.

    Booleans, floats (even integral ones such as ``5.0``), NaN and strings are
    rejected rather than coerced.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError()
    if value < 0:
        raise InvalidInputError()
    return value
