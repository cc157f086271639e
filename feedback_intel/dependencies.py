"""
FastAPI dependency factories.

This is the only place collaborators are wired together. Services receive
their store, cache and model clients through their constructors; routers
receive services through ``Depends`` (overridable in tests via
``app.dependency_overrides``).
"""

import logging
from typing import Optional

from feedback_intel.config import settings
from feedback_intel.services.cache_backends import CacheBackend, build_cache_backend
from feedback_intel.services.dashboard import DashboardService
from feedback_intel.services.ingestion import IngestionPipeline
from feedback_intel.services.insights import build_summarizer
from feedback_intel.services.record_store import RecordStore
from feedback_intel.services.sentiment import HTTPSentimentClassifier
from feedback_intel.services.view_cache import ViewCacheCoordinator
from feedback_intel.services.view_engine import AggregateViewEngine

logger = logging.getLogger(__name__)

_record_store: Optional[RecordStore] = None
_cache_backend: Optional[CacheBackend] = None
_coordinator: Optional[ViewCacheCoordinator] = None
_dashboard_service: Optional[DashboardService] = None
_ingestion_pipeline: Optional[IngestionPipeline] = None


def get_record_store() -> RecordStore:
    global _record_store
    if _record_store is None:
        _record_store = RecordStore()
    return _record_store


def get_cache_backend() -> CacheBackend:
    global _cache_backend
    if _cache_backend is None:
        _cache_backend = build_cache_backend(settings)
    return _cache_backend


def get_view_cache() -> ViewCacheCoordinator:
    global _coordinator
    if _coordinator is None:
        _coordinator = ViewCacheCoordinator(
            get_cache_backend(),
            invalidate_retries=settings.cache_invalidate_retries,
            invalidate_backoff_ms=settings.cache_invalidate_backoff_ms,
        )
    return _coordinator


def get_dashboard_service() -> DashboardService:
    """Get the singleton dashboard service."""
    global _dashboard_service
    if _dashboard_service is None:
        engine = AggregateViewEngine(
            get_record_store(),
            summarizer=build_summarizer(settings),
            limit=settings.view_limit,
            insights_window_days=settings.insights_window_days,
            insights_max_records=settings.insights_max_records,
            summarizer_timeout_s=settings.summarizer_timeout_s,
            separator=settings.repeat_user_separator,
        )
        _dashboard_service = DashboardService(engine, get_view_cache(), settings.ttl_for)
    return _dashboard_service


def get_ingestion_pipeline() -> IngestionPipeline:
    """Get the singleton ingestion pipeline."""
    global _ingestion_pipeline
    if _ingestion_pipeline is None:
        classifier = None
        if settings.classifier_url:
            classifier = HTTPSentimentClassifier(
                settings.classifier_url,
                api_token=settings.classifier_api_token,
                timeout=settings.classifier_timeout_s,
            )
        _ingestion_pipeline = IngestionPipeline(
            get_record_store(),
            get_view_cache(),
            classifier=classifier,
            classifier_timeout_s=settings.classifier_timeout_s,
            max_input_chars=settings.classifier_max_input_chars,
            confidence_threshold=settings.classifier_confidence_threshold,
        )
    return _ingestion_pipeline


async def shutdown_dependencies() -> None:
    """Close the cache client and forget wired singletons."""
    global _record_store, _cache_backend, _coordinator, _dashboard_service, _ingestion_pipeline
    if _cache_backend is not None:
        await _cache_backend.close()
    _record_store = _cache_backend = _coordinator = None
    _dashboard_service = _ingestion_pipeline = None
