"""
Health check endpoints.

- GET /api/health          cheap: process alive, version, uptime
- GET /api/health/deep     bounded checks for the record store and the view cache
"""
import asyncio
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from feedback_intel.core.structured_logging import APP_VERSION, SERVICE_NAME, get_uptime_s
from feedback_intel.dependencies import get_cache_backend, get_record_store
from feedback_intel.services.cache_backends import CacheBackend
from feedback_intel.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter()

COMPONENT_TIMEOUT = 2.0  # seconds


# ── Cheap health ─────────────────────────────────────────────────────
@router.get("/health")
async def health_check():
    """Cheap health check, no I/O."""
    return {
        "status": "ok",
        "version": APP_VERSION,
        "service": SERVICE_NAME,
        "uptime_s": round(get_uptime_s(), 1),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Deep health ──────────────────────────────────────────────────────
@router.get("/health/deep")
async def deep_health_check(
    store: RecordStore = Depends(get_record_store),
    cache: CacheBackend = Depends(get_cache_backend),
):
    """Deep health check with bounded component checks.

    The store is the source of truth, so a dead store is ``down``. A dead
    cache only costs latency and reports as ``degraded``.
    """
    results = await asyncio.gather(
        _bounded_check("record_store", _check_store(store)),
        _bounded_check("view_cache", _check_cache(cache)),
    )
    components = dict(results)

    statuses = [c.get("status", "down") for c in components.values()]
    if "down" in statuses:
        overall = "down"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "ok"

    return {
        "status": overall,
        "checked_at": datetime.now(timezone.utc).isoformat(),
        "version": APP_VERSION,
        "uptime_s": round(get_uptime_s(), 1),
        "components": components,
    }


async def _bounded_check(name: str, coro) -> tuple[str, dict]:
    """Run a component check with a 2-second timeout."""
    try:
        result = await asyncio.wait_for(coro, timeout=COMPONENT_TIMEOUT)
        return name, result
    except asyncio.TimeoutError:
        return name, {"status": "down", "detail_safe": "Health check timed out"}
    except Exception as e:
        logger.warning("health_check_error", extra={"component": name, "error": str(e)})
        return name, {"status": "down", "detail_safe": f"Check failed: {type(e).__name__}"}


async def _check_store(store: RecordStore) -> dict:
    start = time.perf_counter()
    ok = await store.ping()
    latency_ms = round((time.perf_counter() - start) * 1000, 1)
    if not ok:
        return {"status": "down", "latency_ms": latency_ms, "detail_safe": "Query failed"}
    return {"status": "ok", "latency_ms": latency_ms}


async def _check_cache(cache: CacheBackend) -> dict:
    start = time.perf_counter()
    ok = await cache.ping()
    latency_ms = round((time.perf_counter() - start) * 1000, 1)
    if not ok:
        # Reads fall through to the store while the cache is unreachable
        return {"status": "degraded", "latency_ms": latency_ms, "backend": cache.name,
                "detail_safe": "Cache unreachable, serving uncached"}
    return {"status": "ok", "latency_ms": latency_ms, "backend": cache.name}
