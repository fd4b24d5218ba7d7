"""Pytest configuration and fixtures for Magic Math tests.

Sets the test environment before any test module imports the app, and
provides an in-memory Redis client double so cache and rate limiter paths
can be exercised without a server.
"""

import os

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError


def pytest_configure(config):
    """Configure test environment before any tests run.

    Set environment variables BEFORE importing the app so the module-level
    ``app`` is built with test settings.
    """
    config.addinivalue_line("markers", "slow: Slow-running tests (excluded from fast)")
    config.addinivalue_line("markers", "integration: Integration tests requiring external services")

    os.environ.setdefault("ENVIRONMENT", "test")
    os.environ.setdefault("LOG_LEVEL", "WARNING")

    from magic_math.config import get_settings

    get_settings.cache_clear()


class StubRedis:
    """Subset of the ``redis.asyncio.Redis`` API backed by a dict.

    Set ``fail = True`` to make every call raise a connection error.
    """

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.fail = False
        self.closed = False
        self.close_calls = 0

    def _check(self):
        if self.fail:
            raise RedisConnectionError("stub redis unavailable")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, key):
        self._check()
        self.ttls.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0

    async def flushdb(self):
        self._check()
        self.data.clear()
        self.ttls.clear()
        return True

    async def aclose(self):
        self.close_calls += 1
        self.closed = True


@pytest.fixture
def stub_redis():
    """A fresh Redis client double."""
    return StubRedis()


@pytest.fixture
def stub_redis_factory(stub_redis):
    """Client factory returning ``stub_redis`` for any URL."""

    def factory(url, timeout_s):
        return stub_redis

    return factory
