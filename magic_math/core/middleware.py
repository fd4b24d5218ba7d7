"""Custom middleware for the Magic Math service."""

import json
import math
import secrets
import time
from typing import Callable, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from magic_math.core.exceptions import unhandled_exception_response
from magic_math.core.limits.limiter import RateLimiter, resolve_client_identifier
from magic_math.core.logging import bind_request, current_request_id, get_logger, request_context

logger = get_logger(__name__)


async def _call_app(request: Request, call_next: Callable) -> Response:
    """Run the rest of the stack, turning an unhandled error into the 500 envelope."""
    try:
        return await call_next(request)
    except Exception as exc:
        return unhandled_exception_response(exc)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id, log its outcome and echo the id back.

    A client-supplied ``X-Request-ID`` is reused when it is short and
    printable; anything else is replaced with a fresh random id.
    """

    MAX_REQUEST_ID_LENGTH = 64

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = self._request_id(request.headers.get("X-Request-ID"))
        token = bind_request(request_id, request.method, request.url.path)
        started = time.perf_counter()
        try:
            response = await _call_app(request, call_next)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            log = logger.error if response.status_code >= 500 else logger.info
            log(
                f"{request.method} {request.url.path} -> {response.status_code}",
                data={
                    "duration_ms": elapsed_ms,
                    "client": resolve_client_identifier(request.headers),
                    "rate_limit_backend": response.headers.get("X-RateLimit-Backend"),
                },
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_context.reset(token)

    def _request_id(self, supplied: Optional[str]) -> str:
        if supplied and len(supplied) <= self.MAX_REQUEST_ID_LENGTH and supplied.isprintable():
            return supplied
        return secrets.token_hex(8)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window rate limiting for every non-exempt request.

    The limiter is read from ``app.state.rate_limiter`` (set up in the
    lifespan), so the same instance serves middleware and health reporting.
    Rate limit headers go on every response, limited or not.
    """

    EXEMPT_PATHS = frozenset({"/health", "/healthz"})
    EXEMPT_METHODS = frozenset({"OPTIONS"})  # CORS preflight must not be rate-limited

    def __init__(
        self,
        app,
        enabled: bool = True,
        exempt_paths: Optional[Iterable[str]] = None,
    ):
        """Initialize rate limit middleware.

        Args:
            app: The ASGI application
            enabled: Master switch; when False every request passes through.
            exempt_paths: Paths never counted. Defaults to the health endpoints.
        """
        super().__init__(app)
        self.enabled = enabled
        self.exempt_paths = frozenset(exempt_paths) if exempt_paths is not None else self.EXEMPT_PATHS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Apply rate limiting to incoming requests."""
        limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
        path = request.url.path.rstrip("/") or "/"
        if (
            not self.enabled
            or limiter is None
            or request.method in self.EXEMPT_METHODS
            or path in self.exempt_paths
        ):
            return await _call_app(request, call_next)

        identifier = resolve_client_identifier(request.headers)
        decision = await limiter.apply_rate_limit(identifier)

        if decision.limited:
            retry_after = max(1, math.ceil((decision.result.reset_at - limiter.now_ms()) / 1000))
            body = {
                "detail": "Rate limit exceeded",
                "error": {
                    "code": "E1005",
                    "message": "Rate limit exceeded",
                    "request_id": current_request_id(),
                },
            }
            return Response(
                content=json.dumps(body),
                status_code=429,
                media_type="application/json",
                headers={**decision.headers, "Retry-After": str(retry_after)},
            )

        response = await _call_app(request, call_next)
        for name, value in decision.headers.items():
            response.headers[name] = value
        return response
