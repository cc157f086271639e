"""
Tests for the view cache backends.

Covers: per-entry TTL boundaries on the in-process backend, idempotent
delete, LRU bound, Redis key layout and RedisError -> CacheError mapping,
and backend selection from settings.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from feedback_intel.core.errors import CacheError
from feedback_intel.services.cache_backends import (
    CacheEntry,
    MemoryCacheBackend,
    RedisCacheBackend,
    build_cache_backend,
)


# ═══════════════════════════════════════════════════════════════════════
# 1. CacheEntry
# ═══════════════════════════════════════════════════════════════════════

class TestCacheEntry:

    def test_valid_strictly_before_expiry(self):
        entry = CacheEntry(value=b"x", inserted_at=100.0, ttl_seconds=300)
        assert entry.is_valid(399.9)
        assert not entry.is_valid(400.0)
        assert not entry.is_valid(500.0)


# ═══════════════════════════════════════════════════════════════════════
# 2. MemoryCacheBackend
# ═══════════════════════════════════════════════════════════════════════

class TestMemoryCacheBackend:

    @pytest.mark.asyncio
    async def test_put_then_get(self, backend):
        await backend.put("stats", b'{"total":1}', 300)
        assert await backend.get("stats") == b'{"total":1}'

    @pytest.mark.asyncio
    async def test_missing_key_is_none(self, backend):
        assert await backend.get("top-issues") is None

    @pytest.mark.asyncio
    async def test_entry_expires_at_ttl(self, backend, clock):
        await backend.put("stats", b"a", 300)
        clock.advance(299)
        assert await backend.get("stats") == b"a"
        clock.advance(1)
        assert await backend.get("stats") is None

    @pytest.mark.asyncio
    async def test_ttls_are_per_entry(self, backend, clock):
        await backend.put("stats", b"s", 300)
        await backend.put("ai-insights", b"i", 600)
        clock.advance(450)
        assert await backend.get("stats") is None
        assert await backend.get("ai-insights") == b"i"

    @pytest.mark.asyncio
    async def test_overwrite_resets_ttl(self, backend, clock):
        await backend.put("stats", b"old", 300)
        clock.advance(200)
        await backend.put("stats", b"new", 300)
        clock.advance(200)
        assert await backend.get("stats") == b"new"

    @pytest.mark.asyncio
    async def test_delete_absent_key_is_noop(self, backend):
        await backend.delete("never-stored")
        assert len(backend) == 0

    @pytest.mark.asyncio
    async def test_delete_removes_entry(self, backend):
        await backend.put("stats", b"a", 300)
        await backend.delete("stats")
        assert await backend.get("stats") is None

    @pytest.mark.asyncio
    async def test_maxsize_evicts(self, clock):
        small = MemoryCacheBackend(maxsize=2, timer=clock)
        await small.put("a", b"1", 300)
        await small.put("b", b"2", 300)
        await small.put("c", b"3", 300)
        assert len(small) == 2
        assert await small.get("c") == b"3"

    @pytest.mark.asyncio
    async def test_ping(self, backend):
        assert await backend.ping() is True


# ═══════════════════════════════════════════════════════════════════════
# 3. RedisCacheBackend (client mocked)
# ═══════════════════════════════════════════════════════════════════════

@pytest.fixture
def redis_client():
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=0)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


class TestRedisCacheBackend:

    def test_requires_url_or_client(self):
        with pytest.raises(ValueError):
            RedisCacheBackend()

    @pytest.mark.asyncio
    async def test_put_uses_set_with_expiry(self, redis_client):
        backend = RedisCacheBackend(client=redis_client)
        await backend.put("stats", b"payload", 300)
        redis_client.set.assert_awaited_once_with("fbi:view:stats", b"payload", ex=300)

    @pytest.mark.asyncio
    async def test_get_namespaced_key(self, redis_client):
        redis_client.get.return_value = b"cached"
        backend = RedisCacheBackend(client=redis_client, namespace="test")
        assert await backend.get("top-issues") == b"cached"
        redis_client.get.assert_awaited_once_with("test:view:top-issues")

    @pytest.mark.asyncio
    async def test_delete_absent_key_does_not_raise(self, redis_client):
        backend = RedisCacheBackend(client=redis_client)
        await backend.delete("stats")
        redis_client.delete.assert_awaited_once_with("fbi:view:stats")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("op,args", [
        ("get", ("stats",)),
        ("put", ("stats", b"x", 300)),
        ("delete", ("stats",)),
    ])
    async def test_redis_errors_become_cache_errors(self, redis_client, op, args):
        failing = AsyncMock(side_effect=RedisConnectionError("connection refused"))
        setattr(redis_client, "set" if op == "put" else op, failing)
        backend = RedisCacheBackend(client=redis_client)

        with pytest.raises(CacheError) as exc_info:
            await getattr(backend, op)(*args)
        assert exc_info.value.code == "FBI-CACHE-001"
        assert exc_info.value.context["op"] == op

    @pytest.mark.asyncio
    async def test_ping_false_on_error(self, redis_client):
        redis_client.ping = AsyncMock(side_effect=RedisConnectionError("down"))
        backend = RedisCacheBackend(client=redis_client)
        assert await backend.ping() is False

    @pytest.mark.asyncio
    async def test_close(self, redis_client):
        backend = RedisCacheBackend(client=redis_client)
        await backend.close()
        redis_client.aclose.assert_awaited_once()


# ═══════════════════════════════════════════════════════════════════════
# 4. Backend selection
# ═══════════════════════════════════════════════════════════════════════

class TestBuildCacheBackend:

    def test_memory_backend(self):
        settings = MagicMock(cache_backend="memory", cache_max_entries=8)
        assert isinstance(build_cache_backend(settings), MemoryCacheBackend)

    def test_redis_backend(self):
        settings = MagicMock(
            cache_backend="redis",
            redis_url="redis://localhost:6379/0",
            cache_socket_timeout_s=1.0,
        )
        backend = build_cache_backend(settings)
        assert isinstance(backend, RedisCacheBackend)
        assert backend.name == "redis"
