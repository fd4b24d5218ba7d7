"""Best-effort key/value cache on top of the external store.

Every operation returns a ``CacheResult`` instead of raising: callers branch
on ``result.ok`` / ``result.hit``. When the backend is disconnected the
store does nothing and reports a miss; there is no in-process substitute
for cached results.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

from magic_math.cache.backend import BACKEND_ERRORS, RedisBackend
from magic_math.core.logging import get_logger

logger = get_logger(__name__)

ERROR_DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class CacheResult:
    """Outcome of a cache operation.

    Attributes:
        ok: The operation reached the store and succeeded.
        value: Decoded value for a ``get`` hit, else None.
        error: Why the operation did not succeed (None on success or plain miss).
    """
    ok: bool
    value: Any = None
    error: str | None = None

    @property
    def hit(self) -> bool:
        return self.ok and self.value is not None


MISS = CacheResult(ok=True)
DISCONNECTED = CacheResult(ok=False, error=ERROR_DISCONNECTED)


class CacheStore(Protocol):
    """Protocol for cache backends."""

    def is_connected(self) -> bool:
        ...

    async def get(self, key: str) -> CacheResult:
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> CacheResult:
        ...

    async def delete(self, key: str) -> CacheResult:
        ...

    async def flush_all(self) -> CacheResult:
        ...


class RedisCacheStore(CacheStore):
    """Cache store backed by Redis, JSON-encoding values.

    Any store error marks the shared ``BackendStatus`` disconnected and comes
    back as ``CacheResult(ok=False, error=...)``.
    """

    def __init__(self, backend: RedisBackend, default_ttl: int = 3600):
        """Initialize the store.

        Args:
            backend: Connection owner whose status selects the backend.
            default_ttl: TTL in seconds for ``set`` calls that pass none.
        """
        self._backend = backend
        self.default_ttl = default_ttl

    @property
    def status(self):
        return self._backend.status

    def is_connected(self) -> bool:
        return self._backend.is_connected()

    async def get(self, key: str) -> CacheResult:
        client = self._active_client()
        if client is None:
            return DISCONNECTED
        try:
            raw = await client.get(key)
        except BACKEND_ERRORS as exc:
            return self._failed("get", exc)
        if raw is None:
            return MISS
        try:
            return CacheResult(ok=True, value=json.loads(raw))
        except ValueError as exc:
            logger.warning("Discarding undecodable cache entry", data={"key": key, "error": str(exc)})
            return CacheResult(ok=True, error="corrupt")

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> CacheResult:
        client = self._active_client()
        if client is None:
            return DISCONNECTED
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            logger.warning("Value is not JSON serializable", data={"key": key, "error": str(exc)})
            return CacheResult(ok=False, error="unserializable")
        try:
            await client.set(key, payload, ex=max(1, int(ttl)))
        except BACKEND_ERRORS as exc:
            return self._failed("set", exc)
        return CacheResult(ok=True)

    async def delete(self, key: str) -> CacheResult:
        client = self._active_client()
        if client is None:
            return DISCONNECTED
        try:
            await client.delete(key)
        except BACKEND_ERRORS as exc:
            return self._failed("delete", exc)
        return CacheResult(ok=True)

    async def flush_all(self) -> CacheResult:
        client = self._active_client()
        if client is None:
            return DISCONNECTED
        try:
            await client.flushdb()
        except BACKEND_ERRORS as exc:
            return self._failed("flush", exc)
        return CacheResult(ok=True)

    def _active_client(self) -> Any | None:
        if not self._backend.is_connected():
            return None
        return self._backend.client

    def _failed(self, operation: str, exc: BaseException) -> CacheResult:
        self._backend.record_failure(operation, exc)
        return CacheResult(ok=False, error=f"{type(exc).__name__}: {exc}")
