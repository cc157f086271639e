"""
Pytest configuration for feedback-intel tests.
Points the service at throwaway storage and disables external model calls.
"""

import os
import tempfile

# Must be set before any feedback_intel import reads Settings
_test_data_dir = tempfile.mkdtemp(prefix="feedback_intel_test_")
os.environ["FEEDBACK_INTEL_DATABASE_URL"] = f"sqlite:///{_test_data_dir}/test.db"
os.environ["FEEDBACK_INTEL_LOG_DIR"] = os.path.join(_test_data_dir, "logs")
os.environ["FEEDBACK_INTEL_CACHE_BACKEND"] = "memory"
os.environ["FEEDBACK_INTEL_CLASSIFIER_URL"] = ""
os.environ.pop("FEEDBACK_INTEL_OPENAI_API_KEY", None)
os.environ.pop("FEEDBACK_INTEL_ANTHROPIC_API_KEY", None)

from datetime import datetime, timedelta, timezone

import pytest

from feedback_intel.core.database import build_engine, get_session_context, init_db
from feedback_intel.models.feedback import Feedback
from feedback_intel.services.cache_backends import MemoryCacheBackend
from feedback_intel.services.record_store import RecordStore
from feedback_intel.services.view_cache import ViewCacheCoordinator

# Load error registry so FeedbackIntelError returns correct HTTP status codes
from feedback_intel.core.errors.registry import error_registry
error_registry.load()

NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database per test with the feedback table created."""
    eng = build_engine(f"sqlite:///{tmp_path}/feedback.db")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return RecordStore(engine=engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    return MemoryCacheBackend(maxsize=64, timer=clock)


@pytest.fixture
def coordinator(backend):
    return ViewCacheCoordinator(backend, invalidate_retries=3, invalidate_backoff_ms=1)


@pytest.fixture
def add_feedback(engine):
    """Insert a record directly, with full control over timestamps.

    Each call gets a created_at one minute after the previous one unless
    ``created_at`` is given.
    """
    counter = {"n": 0}

    def _add(title, source="GitHub", description=None, user_email=None,
             sentiment="neutral", created_at=None, resolved_at=None, **extra):
        counter["n"] += 1
        created = created_at or (NOW - timedelta(days=1) + timedelta(minutes=counter["n"]))
        with get_session_context(engine) as session:
            record = Feedback(
                title=title,
                description=description,
                source=source,
                user_email=user_email,
                sentiment=sentiment,
                created_at=created,
                resolved_at=resolved_at,
                **extra,
            )
            session.add(record)
            session.commit()
            session.refresh(record)
            return record.id

    return _add
