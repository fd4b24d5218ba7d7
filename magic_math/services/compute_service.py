"""Cache-aside magic math computation.

The cache is advisory: results are always correct without it, only slower.
Computation runs in the threadpool, off the event loop; batch items compute
concurrently in worker threads. There is no request coalescing: two
concurrent misses for the same ``n`` both compute and both write back.
Results are deterministic, so the last write wins with the same value.
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, List

from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from magic_math.algorithms import MagicMathEngine, validate_input
from magic_math.cache.store import CacheStore
from magic_math.core.exceptions import InvalidInputError
from magic_math.core.logging import get_logger
from magic_math.models import BatchItem, BatchItemError, ComputeResult, Provenance

logger = get_logger(__name__)


class ComputeService:
    """Result and batch orchestration over an engine and a cache store."""

    def __init__(
        self,
        engine: MagicMathEngine,
        cache: CacheStore,
        *,
        key_prefix: str = "magic_math:",
        ttl_seconds: int = 3600,
    ):
        self.engine = engine
        self.cache = cache
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds

    def cache_key(self, n: int) -> str:
        return f"{self.key_prefix}{n}"

    async def compute_with_cache(self, n: int) -> ComputeResult:
        """Serve ``n`` from the cache, computing and writing back on a miss.

        Raises:
            InvalidInputError: ``n`` is not a non-negative integer.
        """
        n = validate_input(n)
        key = self.cache_key(n)

        if self.cache.is_connected():
            lookup = await self.cache.get(key)
            if lookup.hit:
                try:
                    return ComputeResult.from_cache_payload(lookup.value)
                except ValidationError:
                    logger.warning("Cached record is malformed, recomputing", data={"key": key})
            elif lookup.error:
                logger.debug("Cache lookup failed", data={"key": key, "error": lookup.error})

        # CPU-bound: off the event loop.
        result, algorithm = await run_in_threadpool(self.engine.compute, n)
        record = ComputeResult(
            input=n,
            result=result,
            algorithm=algorithm,
            provenance=Provenance.MISS,
        )

        if self.cache.is_connected():
            stored = await self.cache.set(key, record.to_cache_payload(), self.ttl_seconds)
            if not stored.ok:
                logger.debug("Cache write-back skipped", data={"key": key, "error": stored.error})

        return record

    async def compute_batch(self, inputs: Iterable[Any]) -> List[BatchItem]:
        """Compute every input independently, preserving order.

        Invalid items become ``BatchItemError`` entries at their position; the
        rest of the batch is unaffected. All items run concurrently and the
        call returns once every one of them has finished.
        """
        items = list(inputs)
        return list(await asyncio.gather(*(self._compute_item(value) for value in items)))

    async def _compute_item(self, value: Any) -> BatchItem:
        try:
            return await self.compute_with_cache(value)
        except InvalidInputError as exc:
            return BatchItemError(input=value, error=exc.message)
