"""
Error code system.

FeedbackIntelError is the base exception for all structured errors.
Raise it (or one of the subclasses below) with an error code from the
registry, and the error middleware will produce a structured JSON response.

Usage:
    from feedback_intel.core.errors import StoreError
    raise StoreError(detail="database is locked", context={"view": "stats"})
"""

from __future__ import annotations

import re

CODE_PATTERN = re.compile(r"^FBI-[A-Z]{2,6}-\d{3}$")


class FeedbackIntelError(Exception):
    """Structured application error tied to the error registry.

    Args:
        code: Registry error code, e.g. "FBI-DB-001".
        detail: Internal-only detail message (never exposed to users).
        context: Arbitrary key-value context for structured logging.
    """

    default_code: str = "FBI-SYS-001"

    def __init__(
        self,
        code: str | None = None,
        detail: str | None = None,
        context: dict | None = None,
    ) -> None:
        code = code or self.default_code
        if not CODE_PATTERN.match(code):
            raise ValueError(f"Invalid error code format: {code!r}")
        self.code = code
        self.detail = detail
        self.context = context or {}
        super().__init__(f"{code}: {detail}" if detail else code)


class StoreError(FeedbackIntelError):
    """Record store query or insert failed. Surfaced to the caller, never retried."""

    default_code = "FBI-DB-001"


class CacheError(FeedbackIntelError):
    """Cache service get/put/delete failed."""

    default_code = "FBI-CACHE-001"


class ClassifierError(FeedbackIntelError):
    """Sentiment classifier failed or timed out. Recovered by keyword fallback."""

    default_code = "FBI-CLS-001"


class SummarizerError(FeedbackIntelError):
    """Insight summarizer failed or timed out. Recovered by a fixed message."""

    default_code = "FBI-LLM-001"


class FeedbackNotFoundError(FeedbackIntelError):
    default_code = "FBI-API-404"


class UnknownViewError(FeedbackIntelError):
    default_code = "FBI-API-400"


__all__ = [
    "CODE_PATTERN",
    "FeedbackIntelError",
    "StoreError",
    "CacheError",
    "ClassifierError",
    "SummarizerError",
    "FeedbackNotFoundError",
    "UnknownViewError",
]
