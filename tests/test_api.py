"""
Route tests through FastAPI's TestClient.

Services are rebuilt per test on a temporary SQLite database and injected
with ``app.dependency_overrides``.
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from feedback_intel.config import settings
from feedback_intel.core.errors import StoreError
from feedback_intel.dependencies import (
    get_cache_backend,
    get_dashboard_service,
    get_ingestion_pipeline,
    get_record_store,
)
from feedback_intel.main import app
from feedback_intel.services.dashboard import DashboardService
from feedback_intel.services.ingestion import IngestionPipeline
from feedback_intel.services.view_engine import INSIGHTS_FALLBACK_MESSAGE, AggregateViewEngine


@pytest.fixture
def dashboard(store, coordinator):
    return DashboardService(AggregateViewEngine(store), coordinator, settings.ttl_for)


@pytest.fixture
def client(store, backend, coordinator, dashboard):
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_cache_backend] = lambda: backend
    app.dependency_overrides[get_dashboard_service] = lambda: dashboard
    app.dependency_overrides[get_ingestion_pipeline] = lambda: IngestionPipeline(store, coordinator)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _post(client, *records):
    return client.post("/api/feedback", json=list(records))


# ═══════════════════════════════════════════════════════════════════════
# 1. Health
# ═══════════════════════════════════════════════════════════════════════

class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.headers["x-request-id"]

    def test_request_id_echoed(self, client):
        response = client.get("/api/health", headers={"x-request-id": "req-123"})
        assert response.headers["x-request-id"] == "req-123"

    def test_deep_health_ok(self, client):
        body = client.get("/api/health/deep").json()
        assert body["status"] == "ok"
        assert body["components"]["record_store"]["status"] == "ok"
        assert body["components"]["view_cache"]["backend"] == "memory"

    def test_deep_health_cache_down_is_degraded(self, client):
        dead_cache = MagicMock()
        dead_cache.name = "redis"
        dead_cache.ping = AsyncMock(return_value=False)
        app.dependency_overrides[get_cache_backend] = lambda: dead_cache

        body = client.get("/api/health/deep").json()

        assert body["status"] == "degraded"
        assert body["components"]["view_cache"]["status"] == "degraded"


# ═══════════════════════════════════════════════════════════════════════
# 2. Ingestion
# ═══════════════════════════════════════════════════════════════════════

class TestIngestionRoutes:

    def test_post_batch(self, client):
        response = _post(
            client,
            {"title": "Deploy fails", "source": "GitHub", "user_email": "dev@example.com"},
            {"title": "", "source": "Discord"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["inserted"] == 1
        assert body["errors"] == 1
        assert body["message"] == "Ingested 1 feedback entries"
        assert body["details"]["successful"][0]["sentiment"] == "negative"
        assert body["details"]["failed"][0]["index"] == 1
        assert body["stale_keys"] == []

    def test_seed(self, client):
        body = client.post("/api/seed").json()
        assert body["inserted"] == 25

        stats = client.get("/api/stats").json()
        assert stats["total"] == 25
        assert stats["repeatUsers"] >= 1


# ═══════════════════════════════════════════════════════════════════════
# 3. Views
# ═══════════════════════════════════════════════════════════════════════

class TestViewRoutes:

    def test_stats_payload_keys(self, client):
        _post(client, {"title": "Love it", "source": "Twitter"}, {"title": "Broken", "source": "GitHub"})

        body = client.get("/api/stats").json()

        assert body == {"total": 2, "avgSentiment": "5.0", "unresolved": 2, "repeatUsers": 0}

    def test_cached_view_identical_within_ttl(self, client, store):
        _post(client, {"title": "Slow", "source": "GitHub"})
        first = client.get("/api/top-issues")

        # Bypass the pipeline: the store changes but the cache is not invalidated
        import asyncio
        asyncio.run(store.insert({"title": "Hidden", "source": "GitHub"}))
        second = client.get("/api/top-issues")

        assert first.content == second.content

    def test_write_invalidates_cached_views(self, client):
        _post(client, {"title": "Slow", "source": "GitHub"})
        assert client.get("/api/stats").json()["total"] == 1

        _post(client, {"title": "Slow", "source": "GitHub"})

        assert client.get("/api/stats").json()["total"] == 2
        assert client.get("/api/top-issues").json()[0]["count"] == 2

    def test_recent_reflects_latest_write(self, client, store):
        _post(client, {"title": "First", "source": "GitHub"})
        assert client.get("/api/recent").json()[0]["title"] == "First"

        import asyncio
        asyncio.run(store.insert({"title": "Second", "source": "GitHub"}))

        assert client.get("/api/recent").json()[0]["title"] == "Second"

    def test_repeat_users(self, client):
        _post(
            client,
            {"title": "A", "source": "GitHub", "user_email": "two@example.com"},
            {"title": "B", "source": "GitHub", "user_email": "two@example.com"},
            {"title": "C", "source": "GitHub", "user_email": "one@example.com"},
        )

        body = client.get("/api/repeat-users").json()

        assert body == [{"user_email": "two@example.com", "complaint_count": 2, "issues": "A | B"}]

    def test_longest_unresolved(self, client):
        _post(client, {"title": "Old", "source": "GitHub"}, {"title": "New", "source": "GitHub"})
        body = client.get("/api/longest-unresolved").json()
        assert [i["title"] for i in body] == ["Old", "New"]
        assert body[0]["days_open"] == 0

    def test_ai_insights_fallback_without_summarizer(self, client):
        body = client.get("/api/ai-insights").json()
        assert body["insights"] == INSIGHTS_FALLBACK_MESSAGE
        assert "generated_at" in body

    def test_generic_view_route(self, client):
        _post(client, {"title": "Slow", "source": "GitHub"})
        assert client.get("/api/views/recent-issues").json()[0]["title"] == "Slow"
        assert client.get("/api/views/stats").json()["total"] == 1

    def test_unknown_view_is_404(self, client):
        response = client.get("/api/views/nope")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "FBI-API-400"

    def test_feedback_detail(self, client):
        body = _post(client, {"title": "API is slow", "source": "GitHub", "user_email": "u@example.com"}).json()
        record_id = body["details"]["successful"][0]["id"]

        detail = client.get(f"/api/feedback/{record_id}").json()

        assert detail["title"] == "API is slow"
        assert detail["category"] == "performance"
        assert [h["id"] for h in detail["userHistory"]] == [record_id]
        assert "user_history" not in detail
        assert detail["created_at"].endswith("Z")

    def test_feedback_detail_not_found(self, client):
        response = client.get("/api/feedback/12345")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "FBI-API-404"

    def test_store_error_is_503(self, client):
        failing = MagicMock()
        failing.get_view = AsyncMock(side_effect=StoreError(detail="database is locked"))
        app.dependency_overrides[get_dashboard_service] = lambda: failing

        response = client.get("/api/stats")

        assert response.status_code == 503
        body = response.json()["error"]
        assert body["code"] == "FBI-DB-001"
        assert body["retryable"] is True
