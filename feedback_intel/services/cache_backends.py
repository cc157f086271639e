"""
Cache Service backends.

The view cache is a plain key-value service with per-key TTL:

- get(key)                  -> bytes or None (absent / expired)
- put(key, value, ttl_s)
- delete(key)               idempotent; deleting an absent key is a no-op

Two implementations:
- MemoryCacheBackend: in-process cachetools TLRUCache (single worker, dev, tests)
- RedisCacheBackend:  shared Redis (``SET key value EX ttl``), for multi-worker deploys

Backend failures raise CacheError; the coordinator decides what they mean.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

import redis.asyncio as aioredis
from cachetools import TLRUCache
from redis.exceptions import RedisError

from feedback_intel.core.errors import CacheError

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Contract consumed by the cache-aside coordinator."""

    name: str = "unknown"

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None when absent or expired."""

    @abstractmethod
    async def put(self, key: str, value: bytes, ttl_seconds: int) -> None:
        """Store value under key, valid for ttl_seconds."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key. Must not raise when the key is absent."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


@dataclass(frozen=True)
class CacheEntry:
    """Value wrapper recording when it was stored and for how long it is valid."""
    value: bytes
    inserted_at: float
    ttl_seconds: int

    @property
    def expires_at(self) -> float:
        return self.inserted_at + self.ttl_seconds

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


def _entry_ttu(_key: str, entry: CacheEntry, now: float) -> float:
    return now + entry.ttl_seconds


class MemoryCacheBackend(CacheBackend):
    """In-process cache with per-entry TTL.

    Args:
        maxsize: Maximum number of entries before least-recently-used eviction.
        timer: Monotonic clock in seconds; injectable for tests.
    """

    name = "memory"

    def __init__(self, maxsize: int = 1024, timer: Callable[[], float] = time.monotonic):
        self._timer = timer
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_entry_ttu, timer=timer)

    async def get(self, key: str) -> Optional[bytes]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        # TLRUCache already drops expired items on access; double-check the boundary
        if not entry.is_valid(self._timer()):
            self._cache.pop(key, None)
            return None
        return entry.value

    async def put(self, key: str, value: bytes, ttl_seconds: int) -> None:
        self._cache[key] = CacheEntry(value=value, inserted_at=self._timer(), ttl_seconds=ttl_seconds)

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    def __len__(self) -> int:
        return len(self._cache)


class RedisCacheBackend(CacheBackend):
    """Redis-backed cache. Redis is only a cache here, never the source of truth."""

    name = "redis"

    def __init__(self, url: Optional[str] = None, client: Optional[aioredis.Redis] = None,
                 socket_timeout: float = 2.0, namespace: str = "fbi"):
        if client is None:
            if not url:
                raise ValueError("RedisCacheBackend needs a url or a client")
            client = aioredis.from_url(
                url,
                socket_connect_timeout=socket_timeout,
                socket_timeout=socket_timeout,
            )
        self.client = client
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:view:{key}"

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return await self.client.get(self._key(key))
        except RedisError as exc:
            raise CacheError(detail=f"get {key}: {exc}", context={"op": "get", "key": key}) from exc

    async def put(self, key: str, value: bytes, ttl_seconds: int) -> None:
        try:
            await self.client.set(self._key(key), value, ex=ttl_seconds)
        except RedisError as exc:
            raise CacheError(detail=f"put {key}: {exc}", context={"op": "put", "key": key}) from exc

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(self._key(key))
        except RedisError as exc:
            raise CacheError(detail=f"delete {key}: {exc}", context={"op": "delete", "key": key}) from exc

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self.client.aclose()


def build_cache_backend(settings) -> CacheBackend:
    """Select the cache backend from settings."""
    if settings.cache_backend == "redis":
        logger.info("Using Redis view cache at %s", settings.redis_url.split("@")[-1])
        return RedisCacheBackend(url=settings.redis_url, socket_timeout=settings.cache_socket_timeout_s)
    logger.info("Using in-process view cache (maxsize=%d)", settings.cache_max_entries)
    return MemoryCacheBackend(maxsize=settings.cache_max_entries)
