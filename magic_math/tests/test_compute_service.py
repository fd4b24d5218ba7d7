"""Tests for cache-aside computation and batch orchestration."""

import asyncio
import json
import threading

import pytest

from magic_math.algorithms import MagicMathEngine, magic_math_iterative
from magic_math.cache import BackendStatus, RedisBackend, RedisCacheStore
from magic_math.core.exceptions import INVALID_INPUT_MESSAGE, InvalidInputError
from magic_math.models import Algorithm, BatchItemError, ComputeResult
from magic_math.services.compute_service import ComputeService


@pytest.fixture
def backend(stub_redis_factory):
    return RedisBackend(BackendStatus(), "redis://stub:6379/0", client_factory=stub_redis_factory)


@pytest.fixture
def service(backend):
    cache = RedisCacheStore(backend)
    return ComputeService(MagicMathEngine(threshold=1000), cache, ttl_seconds=120)


class TestComputeWithCache:
    """Tests for ComputeService.compute_with_cache."""

    @pytest.mark.asyncio
    async def test_miss_then_hit_when_connected(self, backend, service, stub_redis):
        await backend.init()

        first = await service.compute_with_cache(5)
        second = await service.compute_with_cache(5)

        assert (first.input, first.result, first.algorithm, first.provenance) == (5, 26, "recursive", "miss")
        assert (second.input, second.result, second.algorithm, second.provenance) == (5, 26, "recursive", "hit")
        assert stub_redis.ttls["magic_math:5"] == 120

    @pytest.mark.asyncio
    async def test_provenance_is_not_cached(self, backend, service, stub_redis):
        await backend.init()
        await service.compute_with_cache(7)

        stored = json.loads(stub_redis.data["magic_math:7"])

        assert stored == {"input": 7, "result": 79, "algorithm": "recursive"}

    @pytest.mark.asyncio
    async def test_always_miss_when_disconnected(self, service, stub_redis):
        first = await service.compute_with_cache(5)
        second = await service.compute_with_cache(5)

        assert first.provenance == "miss"
        assert second.provenance == "miss"
        assert first.result == second.result == 26
        assert stub_redis.data == {}

    @pytest.mark.asyncio
    async def test_large_input_uses_iterative(self, backend, service):
        await backend.init()

        record = await service.compute_with_cache(1500)

        assert record.algorithm == "iterative"
        assert record.result == magic_math_iterative(1500)

    @pytest.mark.asyncio
    async def test_store_failure_mid_request_still_answers(self, backend, service, stub_redis):
        await backend.init()
        stub_redis.fail = True

        record = await service.compute_with_cache(10)

        assert record.result == 364
        assert record.provenance == "miss"
        assert backend.is_connected() is False

    @pytest.mark.asyncio
    async def test_malformed_cache_record_is_recomputed(self, backend, service, stub_redis):
        await backend.init()
        stub_redis.data["magic_math:6"] = json.dumps({"input": 6, "answer": "nope"})

        record = await service.compute_with_cache(6)

        assert record.result == 46
        assert record.provenance == "miss"
        assert json.loads(stub_redis.data["magic_math:6"])["result"] == 46

    @pytest.mark.asyncio
    async def test_invalid_input_is_not_cached(self, backend, service, stub_redis):
        await backend.init()

        with pytest.raises(InvalidInputError):
            await service.compute_with_cache(-1)

        assert stub_redis.data == {}


class TestComputeBatch:
    """Tests for ComputeService.compute_batch."""

    @pytest.mark.asyncio
    async def test_mixed_batch_keeps_order(self, service):
        results = await service.compute_batch([5, -1, "abc", 3])

        assert len(results) == 4
        assert isinstance(results[0], ComputeResult)
        assert results[0].result == 26
        assert results[1] == BatchItemError(input=-1, error=INVALID_INPUT_MESSAGE)
        assert results[2] == BatchItemError(input="abc", error=INVALID_INPUT_MESSAGE)
        assert isinstance(results[3], ComputeResult)
        assert results[3].result == 7

    @pytest.mark.asyncio
    async def test_empty_batch(self, service):
        assert await service.compute_batch([]) == []

    @pytest.mark.asyncio
    async def test_duplicates_within_batch(self, backend, service):
        await backend.init()

        results = await service.compute_batch([4, 4, 4])

        assert [r.result for r in results] == [14, 14, 14]
        assert {r.provenance for r in results} <= {"hit", "miss"}

    @pytest.mark.asyncio
    async def test_floats_and_booleans_are_rejected(self, service):
        results = await service.compute_batch([5.0, True])
        assert all(isinstance(r, BatchItemError) for r in results)


class GatedEngine:
    """Engine whose ``compute`` waits on a threading primitive before answering."""

    threshold = 1000

    def __init__(self, parties=1):
        self.released = threading.Event()
        self.barrier = threading.Barrier(parties, timeout=2)

    def compute(self, n):
        if self.barrier.parties > 1:
            self.barrier.wait()
        elif not self.released.wait(timeout=2):
            return -1, Algorithm.RECURSIVE
        return magic_math_iterative(n), Algorithm.RECURSIVE


class TestComputeOffEventLoop:
    """Computation must leave the event loop free."""

    @pytest.mark.asyncio
    async def test_event_loop_runs_while_computing(self, backend):
        engine = GatedEngine()
        service = ComputeService(engine, RedisCacheStore(backend))

        task = asyncio.create_task(service.compute_with_cache(5))
        await asyncio.sleep(0.05)
        # Only reachable while compute is in progress if it is not blocking the loop.
        engine.released.set()
        record = await task

        assert record.result == 26

    @pytest.mark.asyncio
    async def test_batch_items_compute_concurrently(self, backend):
        engine = GatedEngine(parties=3)
        service = ComputeService(engine, RedisCacheStore(backend))

        results = await service.compute_batch([3, 4, 5])

        assert [r.result for r in results] == [7, 14, 26]
        assert engine.barrier.broken is False
