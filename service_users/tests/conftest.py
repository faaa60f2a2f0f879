"""
Shared fixtures for Users Service tests.
"""

import asyncio
from typing import Dict, Optional, Tuple

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from service_users.app.cache.redis_cache import RedisCache
from service_users.app.persistence.postgres import UserStore


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` with a manual clock."""

    def __init__(self):
        self.now = 0.0
        self.down = False
        self.closed = False
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self.calls = []
        self._lock = asyncio.Lock()

    def advance(self, seconds: float):
        self.now += seconds

    def ttl_of(self, key: str) -> Optional[float]:
        _, expires_at = self._data[key]
        return None if expires_at is None else expires_at - self.now

    def _check(self, op: str):
        self.calls.append(op)
        if self.down:
            raise RedisConnectionError("Connection refused")

    def _live(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self.now:
            del self._data[key]
            return None
        return value

    async def ping(self):
        self._check("ping")
        return True

    async def get(self, key):
        self._check("get")
        return self._live(key)

    async def setex(self, key, ttl, value):
        self._check("setex")
        self._data[key] = (value, self.now + ttl)
        return True

    async def delete(self, *keys):
        self._check("delete")
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                del self._data[key]
                removed += 1
        return removed

    async def incr(self, key):
        self._check("incr")
        async with self._lock:
            current = int(self._live(key) or 0)
            # Yield so concurrent callers really interleave
            await asyncio.sleep(0)
            self._data[key] = (str(current + 1), None)
            return current + 1

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_cache(fake_redis):
    return RedisCache("redis://localhost:6379/0", client=fake_redis)


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'users.db'}"


@pytest.fixture
def user_store(sqlite_url):
    return UserStore(sqlite_url)
