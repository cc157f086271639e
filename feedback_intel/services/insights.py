"""
Insight Summarizer
==================

Turns a batch of recent feedback into a short free-text trend summary.

Contract: ``summarize([(title, description), ...]) -> str``; any failure
surfaces as SummarizerError. The view engine owns the timeout and the
fallback message.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from feedback_intel.core.errors import SummarizerError
from feedback_intel.services.llm_providers import BaseLLMProvider, LLMProviderError, build_llm_provider

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a product manager analyzing customer feedback. Provide 3 concise insights "
    "about trends, patterns, or urgent issues. Each insight should be 1-2 sentences."
)
USER_PROMPT_TEMPLATE = "Analyze this customer feedback and provide 3 key insights:\n\n{feedback}"

FeedbackPair = Tuple[str, Optional[str]]


def format_feedback_lines(pairs: Sequence[FeedbackPair]) -> str:
    """One ``title: description`` line per record."""
    return "\n".join(f"{title}: {description or 'No description'}" for title, description in pairs)


class InsightSummarizer(ABC):
    @abstractmethod
    async def summarize(self, pairs: Sequence[FeedbackPair]) -> str:
        """Return free-text insight for the given records.

        Raises:
            SummarizerError: On any upstream failure.
        """


class LLMInsightSummarizer(InsightSummarizer):
    """Summarizer backed by one of the BYO-key LLM providers."""

    def __init__(self, provider: BaseLLMProvider, temperature: float = 0.3, max_tokens: int = 512):
        self.provider = provider
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def summarize(self, pairs: Sequence[FeedbackPair]) -> str:
        if not pairs:
            return ""

        prompt = USER_PROMPT_TEMPLATE.format(feedback=format_feedback_lines(pairs))
        try:
            return await self.provider.generate(
                prompt,
                system_prompt=SYSTEM_PROMPT,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except LLMProviderError as exc:
            raise SummarizerError(
                detail=exc.message,
                context={"provider": exc.provider, "records": len(pairs)},
            ) from exc


def build_summarizer(settings) -> Optional[InsightSummarizer]:
    """Build the LLM summarizer, or None when no provider key is configured."""
    try:
        provider = build_llm_provider(settings.llm_provider)
    except LLMProviderError as exc:
        logger.warning("Insight summarizer disabled: %s", exc.message)
        return None
    logger.info("Insight summarizer using %s", provider.get_model_info())
    return LLMInsightSummarizer(
        provider,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
