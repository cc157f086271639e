"""
Ingestion Pipeline
==================

validate ─► classify ─► derive category/priority ─► insert   (per record)
                                                      │
                       after the whole batch ─► invalidate cached views once

A failing record (validation or insert) is reported and skipped; the rest
of the batch continues. Invalidation runs once the batch ends, before the
result is returned or an unexpected error propagates, and only when at
least one insert succeeded.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from feedback_intel.core.errors import StoreError
from feedback_intel.models.views import (
    FailedRecord,
    FeedbackIn,
    IngestDetails,
    IngestedRecord,
    IngestResult,
)
from feedback_intel.services.feedback_rules import derive_category, derive_priority
from feedback_intel.services.record_store import RecordStore
from feedback_intel.services.sentiment import SentimentClassifier, classification_text, resolve_sentiment
from feedback_intel.services.view_cache import CACHED_VIEW_KEYS, ViewCacheCoordinator

logger = logging.getLogger(__name__)


class FeedbackValidationError(ValueError):
    pass


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_feedback(raw: FeedbackIn) -> FeedbackIn:
    """Normalize whitespace and enforce the required fields."""
    title = _clean(raw.title)
    source = _clean(raw.source)
    if not title:
        raise FeedbackValidationError("title is required")
    if not source:
        raise FeedbackValidationError("source is required")
    return FeedbackIn(
        title=title,
        description=_clean(raw.description),
        source=source,
        user_email=_clean(raw.user_email),
        user_id=_clean(raw.user_id),
    )


class IngestionPipeline:
    """Classifies and stores feedback batches, then invalidates cached views.

    Args:
        store: Record store adapter (single insert path).
        coordinator: Cache-aside coordinator owning invalidation.
        classifier: Primary sentiment classifier; None means keyword-only.
        classifier_timeout_s: Deadline per classification call.
        max_input_chars: Classifier input truncation.
        confidence_threshold: Minimum confidence for a positive/negative label.
        invalidation_keys: Views dropped after a successful batch.
    """

    def __init__(
        self,
        store: RecordStore,
        coordinator: ViewCacheCoordinator,
        classifier: Optional[SentimentClassifier] = None,
        classifier_timeout_s: float = 5.0,
        max_input_chars: int = 500,
        confidence_threshold: float = 0.6,
        invalidation_keys: Iterable[str] = CACHED_VIEW_KEYS,
    ):
        self.store = store
        self.coordinator = coordinator
        self.classifier = classifier
        self.classifier_timeout_s = classifier_timeout_s
        self.max_input_chars = max_input_chars
        self.confidence_threshold = confidence_threshold
        self.invalidation_keys = frozenset(invalidation_keys)

    async def ingest(self, batch: Sequence[FeedbackIn], label: str = "Ingested") -> IngestResult:
        details = IngestDetails()
        try:
            for index, raw in enumerate(batch):
                await self._ingest_one(index, raw, details)
        finally:
            # runs on an unexpected error too; earlier records are committed
            stale_keys = await self._invalidate(details)

        logger.info(
            "feedback_batch_ingested",
            extra={
                "inserted": len(details.successful),
                "errors": len(details.failed),
                "stale_keys": stale_keys,
            },
        )
        return IngestResult(
            message=f"{label} {len(details.successful)} feedback entries",
            inserted=len(details.successful),
            errors=len(details.failed),
            details=details,
            stale_keys=stale_keys,
        )

    async def _ingest_one(self, index: int, raw: FeedbackIn, details: IngestDetails) -> None:
        try:
            record = validate_feedback(raw)
        except FeedbackValidationError as exc:
            details.failed.append(FailedRecord(index=index, title=raw.title, error=str(exc)))
            return

        sentiment = await resolve_sentiment(
            self.classifier,
            classification_text(record.title, record.description, self.max_input_chars),
            timeout=self.classifier_timeout_s,
            threshold=self.confidence_threshold,
        )
        fields = {
            "title": record.title,
            "description": record.description,
            "source": record.source,
            "user_email": record.user_email,
            "user_id": record.user_id,
            "sentiment": sentiment.value,
            "category": derive_category(record.title),
            "priority": derive_priority(sentiment.value, record.title).value,
        }

        try:
            record_id = await self.store.insert(fields)
        except StoreError as exc:
            logger.error(
                "feedback_insert_failed",
                extra={"index": index, "title": record.title, "error": str(exc)},
            )
            details.failed.append(FailedRecord(index=index, title=record.title, error=exc.detail or exc.code))
            return

        details.successful.append(IngestedRecord(id=record_id, title=record.title, sentiment=sentiment.value))

    async def _invalidate(self, details: IngestDetails) -> List[str]:
        if not details.successful:
            return []
        return sorted(await self.coordinator.invalidate(self.invalidation_keys))
