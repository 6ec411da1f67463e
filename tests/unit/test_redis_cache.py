"""Tests for the Redis CacheService against an in-process fake client."""

import json
from fnmatch import fnmatchcase
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from catalog.infrastructure.cache.redis_cache import CacheService


class FakePipeline:
    def __init__(self, data: dict[str, str]) -> None:
        self.data = data
        self.batches: list[tuple[str, ...]] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc) -> bool:
        return False

    def unlink(self, *keys: str) -> None:
        self.batches.append(keys)

    async def execute(self) -> list[int]:
        return [sum(self.data.pop(k, None) is not None for k in keys) for keys in self.batches]


class FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = None

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key: str) -> int:
        return int(self.data.pop(key, None) is not None)

    async def scan_iter(self, match: str):
        for key in list(self.data):
            if fnmatchcase(key, match):
                yield key

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self.data)

    async def aclose(self) -> None:
        pass


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def service(fake_redis: FakeRedis, settings) -> CacheService:
    return CacheService(redis_client=fake_redis, settings=settings)


async def test_set_uses_setex_with_ttl_and_set_without(service: CacheService, fake_redis) -> None:
    assert await service.set("a", {"v": 1}, ttl=30) is True
    assert await service.set("b", {"v": 2}) is True
    assert fake_redis.ttls == {"a": 30, "b": None}
    assert json.loads(fake_redis.data["a"]) == {"v": 1}


async def test_get_decodes_json(service: CacheService) -> None:
    await service.set("a", [1, "x"])
    assert await service.get("a") == [1, "x"]
    assert await service.get("missing") is None


async def test_delete_pattern_unlinks_matches(service: CacheService, fake_redis) -> None:
    for key in ("link:query:list:1", "link:query:list:2", "link:entity:1"):
        await service.set(key, 1)

    assert await service.delete_pattern("link:query:*") == 2
    assert list(fake_redis.data) == ["link:entity:1"]


async def test_errors_degrade_to_miss(service: CacheService, fake_redis) -> None:
    """Redis errors are logged and reported as a miss / False / 0."""
    fake_redis.get = AsyncMock(side_effect=redis.RedisError("boom"))
    fake_redis.setex = AsyncMock(side_effect=redis.RedisError("boom"))
    fake_redis.delete = AsyncMock(side_effect=redis.RedisError("boom"))

    assert await service.get("a") is None
    assert await service.set("a", 1, ttl=5) is False
    assert await service.delete("a") is False


async def test_unconnected_service_is_unavailable(settings) -> None:
    service = CacheService(settings=settings)
    assert service.is_available() is False
    assert await service.get("a") is None
    assert await service.set("a", 1) is False
    assert await service.delete_pattern("*") == 0


async def test_low_level_writes_require_a_client(settings) -> None:
    service = CacheService(settings=settings)
    with pytest.raises(redis.ConnectionError):
        await service._write("a", "1", None)
    with pytest.raises(redis.ConnectionError):
        await service._unlink(["a"])


async def test_disconnect(service: CacheService) -> None:
    await service.disconnect()
    assert service.is_available() is False
