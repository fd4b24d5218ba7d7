"""Exception types and handlers for the FastAPI application."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from magic_math.core.logging import current_request_id, get_logger

logger = get_logger(__name__)

INVALID_INPUT_MESSAGE = "Input must be a non-negative integer"


class MagicMathException(Exception):
    """Base exception for the Magic Math service."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str = "E5000",
        details: dict = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(message)


class InvalidInputError(MagicMathException, ValueError):
    """Input failed integer / non-negativity validation.

    Never retried and never cached. Subclasses ``ValueError`` so plain
    callers of the algorithms can catch it without importing this module.
    """

    def __init__(self, message: str = INVALID_INPUT_MESSAGE):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, code="E4000")


class InvalidPathError(MagicMathException):
    """Path does not match the ``/:number`` format."""

    def __init__(self, message: str = "Invalid path. Use /:number format."):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, code="E4001")


class BatchTooLargeError(MagicMathException):
    """Batch request exceeds the configured item limit."""

    def __init__(self, max_items: int):
        super().__init__(
            f"Batch size exceeds maximum of {max_items} items",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="E4002",
            details={"max_batch_size": max_items},
        )


def _error_body(detail, code: str, message: str) -> dict:
    return {
        "detail": detail,
        "error": {
            "code": code,
            "message": message,
            "request_id": current_request_id(),
        },
    }


def setup_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error envelope for every error path."""

    @app.exception_handler(MagicMathException)
    async def magic_math_exception_handler(
        request: Request, exc: MagicMathException
    ) -> JSONResponse:
        """Handle service-specific exceptions."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            f"Request rejected: {exc.message}",
            data={"status_code": exc.status_code, "code": exc.code, "details": exc.details},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={**_error_body(exc.message, exc.code, exc.message), **exc.details},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed path or body input is a client error with the fixed message."""
        logger.warning("Request validation error", data={"errors": jsonable_errors(exc.errors())})
        body = _error_body(INVALID_INPUT_MESSAGE, "E4000", INVALID_INPUT_MESSAGE)
        body["errors"] = jsonable_errors(exc.errors())
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Model validation failing outside request parsing is a server-side bug."""
        logger.error("Internal validation error", data={"errors": jsonable_errors(exc.errors())})
        return _internal_error_response()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        code = f"E{exc.status_code}0"
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.detail, code, str(exc.detail)),
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Last resort; the middleware normally answers first via ``unhandled_exception_response``."""
        return unhandled_exception_response(exc)


def _internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error", "E5000", "Internal server error"),
    )


def unhandled_exception_response(exc: Exception) -> JSONResponse:
    """Log ``exc`` with its traceback and build the bare 500 envelope.

    Starlette sends ``Exception`` handlers to its outermost middleware, so the
    request context and rate limit middleware call this themselves to keep
    their headers on 500 responses.
    """
    logger.error(f"Unhandled exception: {type(exc).__name__}: {exc}", exc_info=exc)
    return _internal_error_response()


def jsonable_errors(errors: list) -> list:
    """Drop non-serializable members (``ctx`` may hold exception objects)."""
    return [{k: v for k, v in err.items() if k in ("type", "loc", "msg")} for err in errors]
