"""Core module with logging, exception handling, middleware and rate limiting."""

from magic_math.core.exceptions import (
    InvalidInputError,
    MagicMathException,
    setup_exception_handlers,
)
from magic_math.core.logging import get_logger, setup_logging

__all__ = [
    "InvalidInputError",
    "MagicMathException",
    "get_logger",
    "setup_exception_handlers",
    "setup_logging",
]
