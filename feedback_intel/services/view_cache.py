"""
Cache-Aside Coordinator
=======================

Wraps each view computation with get-or-compute-and-store semantics and
owns the invalidation protocol triggered by record writes.

Read path:
    get(view_key) ── hit ──► return cached bytes (compute_fn not called)
        │
       miss / cache read error
        ▼
    compute_fn() ── raises ──► propagate, nothing cached
        │
        ▼
    put(view_key, payload, ttl)   write-back failure is logged and dropped
        ▼
    return payload

Concurrent misses on the same key both compute and both write; the last
write wins. Views are pure, so the only cost is redundant work.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, FrozenSet, Iterable, Optional, Set, Union

from feedback_intel.core.errors import CacheError
from feedback_intel.services.cache_backends import CacheBackend

logger = logging.getLogger(__name__)

# Keys dropped after every successful write. recent-issues is never cached.
CACHED_VIEW_KEYS: FrozenSet[str] = frozenset(
    {"stats", "top-issues", "repeat-users", "longest-unresolved", "ai-insights"}
)


@dataclass(frozen=True)
class UncachedPayload:
    """A computed payload that must be returned but not stored (e.g. a fallback)."""
    payload: bytes
    reason: str = ""


@dataclass(frozen=True)
class CacheWriteResult:
    key: str
    ok: bool
    error: Optional[CacheError] = None


ComputeFn = Callable[[], Awaitable[Union[bytes, UncachedPayload]]]


class ViewCacheCoordinator:
    """Cache-aside wrapper around a CacheBackend.

    Args:
        backend: Cache service implementation.
        invalidate_retries: Attempts per key when a delete fails.
        invalidate_backoff_ms: Base delay between delete attempts (jittered).
    """

    def __init__(self, backend: CacheBackend, invalidate_retries: int = 3, invalidate_backoff_ms: int = 50):
        self.backend = backend
        self._retries = max(1, invalidate_retries)
        self._backoff_ms = invalidate_backoff_ms

    async def get_or_compute(self, view_key: str, ttl: int, compute_fn: ComputeFn) -> bytes:
        cached = await self._read(view_key)
        if cached is not None:
            logger.debug("view_cache_hit", extra={"view": view_key})
            return cached

        logger.debug("view_cache_miss", extra={"view": view_key})
        result = await compute_fn()

        if isinstance(result, UncachedPayload):
            logger.info("view_cache_skip", extra={"view": view_key, "reason": result.reason})
            return result.payload

        write = await self._write_back(view_key, result, ttl)
        if not write.ok:
            # Fire-and-forget: the fresh payload is still correct for this response
            logger.warning(
                "view_cache_write_failed",
                extra={"view": view_key, "error": str(write.error)},
            )
        return result

    async def _read(self, view_key: str) -> Optional[bytes]:
        try:
            return await self.backend.get(view_key)
        except CacheError as exc:
            logger.warning("view_cache_read_failed", extra={"view": view_key, "error": str(exc)})
            return None

    async def _write_back(self, view_key: str, payload: bytes, ttl: int) -> CacheWriteResult:
        try:
            await self.backend.put(view_key, payload, ttl)
            return CacheWriteResult(key=view_key, ok=True)
        except CacheError as exc:
            return CacheWriteResult(key=view_key, ok=False, error=exc)

    async def invalidate(self, view_keys: Iterable[str]) -> Set[str]:
        """Delete every listed key. Absent keys are a no-op.

        Each delete is retried with jittered backoff. Returns the keys that
        still could not be deleted; those expire passively by TTL.
        """
        keys = sorted(set(view_keys))
        failed: Set[str] = set()
        for key in keys:
            if not await self._delete_with_retry(key):
                failed.add(key)

        if failed:
            logger.error(
                "view_cache_invalidate_failed",
                extra={"keys": sorted(failed), "attempts": self._retries},
            )
        logger.info("view_cache_invalidated", extra={"keys": [k for k in keys if k not in failed]})
        return failed

    async def _delete_with_retry(self, key: str) -> bool:
        for attempt in range(self._retries):
            try:
                await self.backend.delete(key)
                return True
            except CacheError as exc:
                if attempt + 1 >= self._retries:
                    break
                delay = random.randint(self._backoff_ms, self._backoff_ms * 2) / 1000
                logger.warning(
                    "cache delete retry %d/%d for %s: %s (wait %.3fs)",
                    attempt + 1, self._retries, key, exc, delay,
                )
                await asyncio.sleep(delay)
        return False
