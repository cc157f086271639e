"""
Tests for the cache-aside coordinator.

Covers: compute-once within TTL, recompute after expiry, failures not
cached, cache read errors treated as misses, write-back errors dropped,
uncached fallback payloads, and the invalidation protocol (idempotent,
retried, failed keys reported).
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from feedback_intel.core.errors import CacheError, StoreError
from feedback_intel.services.view_cache import (
    CACHED_VIEW_KEYS,
    UncachedPayload,
    ViewCacheCoordinator,
)


def _mock_backend(**overrides):
    """Backend mock whose operations succeed unless overridden."""
    backend = MagicMock()
    backend.get = AsyncMock(return_value=None)
    backend.put = AsyncMock()
    backend.delete = AsyncMock()
    for name, effect in overrides.items():
        setattr(backend, name, AsyncMock(side_effect=effect))
    return backend


# ═══════════════════════════════════════════════════════════════════════
# 1. get_or_compute
# ═══════════════════════════════════════════════════════════════════════

class TestGetOrCompute:

    @pytest.mark.asyncio
    async def test_second_read_within_ttl_is_identical_and_computes_once(self, coordinator):
        compute = AsyncMock(return_value=b'{"total":3}')

        first = await coordinator.get_or_compute("stats", 300, compute)
        second = await coordinator.get_or_compute("stats", 300, compute)

        assert first == second == b'{"total":3}'
        assert compute.await_count == 1

    @pytest.mark.asyncio
    async def test_recomputes_after_ttl(self, coordinator, clock):
        compute = AsyncMock(side_effect=[b"v1", b"v2"])

        assert await coordinator.get_or_compute("stats", 300, compute) == b"v1"
        clock.advance(300)
        assert await coordinator.get_or_compute("stats", 300, compute) == b"v2"
        assert compute.await_count == 2

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, coordinator):
        stats = AsyncMock(return_value=b"s")
        top = AsyncMock(return_value=b"t")

        await coordinator.get_or_compute("stats", 300, stats)
        await coordinator.get_or_compute("top-issues", 300, top)

        assert stats.await_count == 1
        assert top.await_count == 1

    @pytest.mark.asyncio
    async def test_compute_failure_propagates_and_is_not_cached(self, coordinator, backend):
        compute = AsyncMock(side_effect=StoreError(detail="database is locked"))

        with pytest.raises(StoreError):
            await coordinator.get_or_compute("stats", 300, compute)

        assert await backend.get("stats") is None

    @pytest.mark.asyncio
    async def test_read_error_is_a_miss(self):
        backend = _mock_backend(get=CacheError(detail="timeout"))
        coordinator = ViewCacheCoordinator(backend)
        compute = AsyncMock(return_value=b"fresh")

        assert await coordinator.get_or_compute("stats", 300, compute) == b"fresh"
        compute.assert_awaited_once()
        backend.put.assert_awaited_once_with("stats", b"fresh", 300)

    @pytest.mark.asyncio
    async def test_write_back_error_still_returns_payload(self):
        backend = _mock_backend(put=CacheError(detail="read-only replica"))
        coordinator = ViewCacheCoordinator(backend)
        compute = AsyncMock(return_value=b"fresh")

        with patch("feedback_intel.services.view_cache.logger") as mock_logger:
            result = await coordinator.get_or_compute("stats", 300, compute)

        assert result == b"fresh"
        events = [c.args[0] for c in mock_logger.warning.call_args_list]
        assert "view_cache_write_failed" in events

    @pytest.mark.asyncio
    async def test_uncached_payload_returned_but_not_stored(self, coordinator, backend):
        compute = AsyncMock(return_value=UncachedPayload(b"fallback", reason="summarizer_fallback"))

        assert await coordinator.get_or_compute("ai-insights", 600, compute) == b"fallback"
        assert await backend.get("ai-insights") is None

        # Next read tries again instead of serving the fallback for 600s
        compute.return_value = b"real insight"
        assert await coordinator.get_or_compute("ai-insights", 600, compute) == b"real insight"
        assert await backend.get("ai-insights") == b"real insight"


# ═══════════════════════════════════════════════════════════════════════
# 2. invalidate
# ═══════════════════════════════════════════════════════════════════════

class TestInvalidate:

    def test_cached_key_set(self):
        assert CACHED_VIEW_KEYS == {"stats", "top-issues", "repeat-users", "longest-unresolved", "ai-insights"}
        assert "recent-issues" not in CACHED_VIEW_KEYS

    @pytest.mark.asyncio
    async def test_absent_keys_are_a_noop(self, coordinator):
        failed = await coordinator.invalidate({"stats", "never-cached"})
        assert failed == set()

    @pytest.mark.asyncio
    async def test_drops_entries_so_next_read_recomputes(self, coordinator):
        compute = AsyncMock(side_effect=[b"before", b"after"])
        await coordinator.get_or_compute("stats", 300, compute)

        await coordinator.invalidate(CACHED_VIEW_KEYS)

        assert await coordinator.get_or_compute("stats", 300, compute) == b"after"

    @pytest.mark.asyncio
    async def test_only_listed_keys_are_dropped(self, coordinator, backend):
        await backend.put("stats", b"s", 300)
        await backend.put("other", b"o", 300)

        await coordinator.invalidate({"stats"})

        assert await backend.get("stats") is None
        assert await backend.get("other") == b"o"

    @pytest.mark.asyncio
    async def test_transient_delete_error_is_retried(self):
        backend = _mock_backend()
        backend.delete = AsyncMock(side_effect=[CacheError(detail="blip"), None])
        coordinator = ViewCacheCoordinator(backend, invalidate_retries=3, invalidate_backoff_ms=0)

        failed = await coordinator.invalidate({"stats"})

        assert failed == set()
        assert backend.delete.await_count == 2

    @pytest.mark.asyncio
    async def test_persistent_delete_error_reports_key(self):
        backend = _mock_backend(delete=CacheError(detail="down"))
        coordinator = ViewCacheCoordinator(backend, invalidate_retries=2, invalidate_backoff_ms=0)

        failed = await coordinator.invalidate({"stats", "top-issues"})

        assert failed == {"stats", "top-issues"}
        assert backend.delete.await_count == 4
