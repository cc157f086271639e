"""
Feedback Intelligence Configuration
===================================

PURPOSE:
    Pydantic-Settings based configuration for the feedback dashboard backend.
    All settings can be overridden via environment variables (FEEDBACK_INTEL_ prefix).

NOTES:
    View TTLs live here and nowhere else. Call sites ask for
    ``settings.ttl_for(view_key)`` instead of passing literal seconds.
"""

import logging
from typing import Dict, List, Literal, Optional

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

_DEFAULT_CLASSIFIER_URL = (
    "https://api-inference.huggingface.co/models/"
    "distilbert-base-uncased-finetuned-sst-2-english"
)


class Settings(BaseSettings):
    app_name: str = "Feedback Intelligence"
    debug: bool = False

    # Record store
    database_url: str = "sqlite:///./data/feedback.db"

    # Cache service
    cache_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    cache_max_entries: int = 1024
    cache_socket_timeout_s: float = 2.0

    # Per-view TTLs in seconds. recent-issues is never cached, so it has no entry.
    view_ttls: Dict[str, int] = {
        "stats": 300,
        "top-issues": 300,
        "repeat-users": 300,
        "longest-unresolved": 300,
        "ai-insights": 600,  # more expensive to recompute, staler is fine
    }
    cache_invalidate_retries: int = 3
    cache_invalidate_backoff_ms: int = 50

    # Sentiment classifier (hosted text-classification model)
    classifier_url: str = _DEFAULT_CLASSIFIER_URL
    classifier_api_token: Optional[str] = None
    classifier_timeout_s: float = 5.0
    classifier_max_input_chars: int = 500
    classifier_confidence_threshold: float = 0.6

    # Insight summarizer (BYO-key LLM)
    llm_provider: Literal["openai", "anthropic"] = "openai"
    llm_model: Optional[str] = None
    llm_temperature: float = 0.3
    llm_max_tokens: int = 512
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    summarizer_timeout_s: float = 20.0

    # View shapes
    view_limit: int = 5
    insights_window_days: int = 7
    insights_max_records: int = 20
    repeat_user_separator: str = " | "

    # Logging
    log_dir: str = "logs"
    log_file: str = "feedback_intel.jsonl"
    log_level: str = "INFO"

    # CORS
    cors_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"
        env_prefix = "FEEDBACK_INTEL_"

    def ttl_for(self, view_key: str) -> int:
        """Return the configured TTL for a cached view.

        Raises:
            KeyError: if the view has no TTL configured (i.e. is not cacheable).
        """
        try:
            return int(self.view_ttls[view_key])
        except KeyError:
            raise KeyError(f"No cache TTL configured for view {view_key!r}")


settings = Settings()
