"""
Sentiment classification.

Primary path: a hosted binary text classifier (SST-2 style) returning
``{label, confidence}``. Confident POSITIVE/NEGATIVE labels map straight
through; anything under the threshold is neutral.

Fallback path: only when the classifier raises or times out (never on low
confidence), a lowercase keyword scan decides. The fallback never raises.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from feedback_intel.core.async_utils import with_timeout
from feedback_intel.core.errors import ClassifierError
from feedback_intel.models.feedback import Sentiment

logger = logging.getLogger(__name__)

POSITIVE_KEYWORDS = ("great", "love", "awesome", "excellent")
NEGATIVE_KEYWORDS = ("fail", "error", "broken", "slow", "issue", "problem")


@dataclass(frozen=True)
class Classification:
    label: str  # "positive" | "negative"
    confidence: float


class SentimentClassifier(ABC):
    @abstractmethod
    async def classify(self, text: str) -> Classification:
        """Classify bounded-length text.

        Raises:
            ClassifierError: On any upstream failure or malformed response.
        """


class HTTPSentimentClassifier(SentimentClassifier):
    """Client for a HuggingFace-style text-classification inference endpoint.

    The endpoint answers ``[[{"label": "POSITIVE", "score": 0.99}, ...]]``
    (or a flat list of the same objects); the top-scoring label wins.
    """

    def __init__(self, url: str, api_token: Optional[str] = None, timeout: float = 5.0):
        self._url = url
        self._timeout = timeout
        self._headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}

    async def classify(self, text: str) -> Classification:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self._url, json={"inputs": text}, headers=self._headers)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ClassifierError(detail=str(exc), context={"url": self._url}) from exc

        return self._parse(data)

    def _parse(self, data) -> Classification:
        candidates = data[0] if data and isinstance(data, list) and isinstance(data[0], list) else data
        if not isinstance(candidates, list) or not candidates:
            raise ClassifierError(detail=f"unexpected classifier payload: {data!r}"[:200])
        try:
            best = max(candidates, key=lambda c: float(c["score"]))
            return Classification(label=str(best["label"]).lower(), confidence=float(best["score"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ClassifierError(detail=f"malformed classifier candidate: {exc}") from exc


def map_classification(result: Classification, threshold: float = 0.6) -> Sentiment:
    """Primary mapping: confident positive/negative pass through, else neutral."""
    if result.label == Sentiment.POSITIVE.value and result.confidence > threshold:
        return Sentiment.POSITIVE
    if result.label == Sentiment.NEGATIVE.value and result.confidence > threshold:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def keyword_sentiment(text: str) -> Sentiment:
    """Fallback mapping by keyword presence; positive keywords win."""
    lowered = text.lower()
    if any(word in lowered for word in POSITIVE_KEYWORDS):
        return Sentiment.POSITIVE
    if any(word in lowered for word in NEGATIVE_KEYWORDS):
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def classification_text(title: str, description: Optional[str], max_chars: int = 500) -> str:
    """Title and description joined, truncated to the classifier's input limit."""
    text = f"{title} {description}" if description else title
    return text[:max_chars]


async def resolve_sentiment(
    classifier: Optional[SentimentClassifier],
    text: str,
    timeout: float = 5.0,
    threshold: float = 0.6,
) -> Sentiment:
    """Run the classifier with a deadline; on any failure fall back to keywords.

    Never raises: a classifier bug or an unparseable result is treated the
    same as an outage.
    """
    if classifier is None:
        return keyword_sentiment(text)
    try:
        result = await with_timeout(classifier.classify(text), timeout, "sentiment classifier")
        return map_classification(result, threshold)
    except Exception as exc:
        logger.warning(
            "sentiment_classifier_failed",
            extra={"error": str(exc), "error_kind": type(exc).__name__},
        )
        return keyword_sentiment(text)
