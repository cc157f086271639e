"""
Record Store Adapter
====================

Parameterized reads and the single insert path against the ``feedback``
relation. Blocking SQL runs on the default thread pool via run_sync().
Every SQLAlchemy failure surfaces as StoreError.

The adapter owns persisted FeedbackRecords. Everything else reads through
``query`` / ``query_one`` with a statement built by the caller.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import Select
from sqlmodel import select

from feedback_intel.core.async_utils import run_sync
from feedback_intel.core.database import get_engine, get_session_context
from feedback_intel.core.errors import StoreError
from feedback_intel.models.feedback import Feedback, as_utc, utcnow

logger = logging.getLogger(__name__)

INSERT_FIELDS = ("title", "description", "source", "user_email", "user_id", "sentiment", "category", "priority")

_TIMESTAMP_STEP = timedelta(microseconds=1)


class RecordStore:
    """Async facade over a SQLModel engine for the feedback relation."""

    def __init__(self, engine: Optional[Engine] = None, clock=utcnow, timeout: float = 30):
        """
        Args:
            engine: SQLAlchemy engine; defaults to the configured one.
            clock: Returns aware-UTC "now" for created_at.
            timeout: Deadline in seconds for reads. Inserts have none and
                rely on the driver's lock timeout, so a reported failure
                always means nothing was committed.
        """
        self._engine = engine
        self._clock = clock
        self._timeout = timeout
        self._insert_lock = threading.Lock()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = get_engine()
        return self._engine

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, fields: Dict[str, Any]) -> int:
        """Insert one record and return its store-assigned id.

        Raises:
            StoreError: code FBI-DB-002 on any database failure.
        """
        try:
            return await run_sync(self._insert_sync, fields, timeout=None)
        except SQLAlchemyError as exc:
            raise StoreError(
                "FBI-DB-002",
                detail=str(exc),
                context={"title": fields.get("title")},
            ) from exc

    def _insert_sync(self, fields: Dict[str, Any]) -> int:
        values = {k: fields[k] for k in INSERT_FIELDS if fields.get(k) is not None}
        # One writer at a time so created_at stays monotonic in insertion order
        with self._insert_lock, get_session_context(self.engine) as session:
            last = session.exec(select(func.max(Feedback.created_at))).one()
            created_at = self._next_timestamp(last)
            record = Feedback(created_at=created_at, **values)
            session.add(record)
            session.commit()
            session.refresh(record)
            return record.id

    def _next_timestamp(self, last: Optional[datetime]) -> datetime:
        now = as_utc(self._clock())
        last = as_utc(last)
        if last is not None and now <= last:
            return last + _TIMESTAMP_STEP
        return now

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def query(self, statement: Select) -> List[Any]:
        """Run a read-only statement and return all rows in order.

        Raises:
            StoreError: code FBI-DB-001 on any database failure.
        """
        return await self._read(self._query_sync, statement)

    async def query_one(self, statement: Select) -> Any:
        """Run a read-only statement and return the first row (or None)."""
        return await self._read(self._query_one_sync, statement)

    async def _read(self, fn, statement):
        try:
            return await run_sync(fn, statement, timeout=self._timeout)
        except (SQLAlchemyError, TimeoutError) as exc:
            raise StoreError("FBI-DB-001", detail=str(exc)) from exc

    def _query_sync(self, statement: Select) -> List[Any]:
        with get_session_context(self.engine) as session:
            rows = session.exec(statement).all()
            # Detach ORM instances so they can leave the session
            session.expunge_all()
            return list(rows)

    def _query_one_sync(self, statement: Select) -> Any:
        with get_session_context(self.engine) as session:
            row = session.exec(statement).first()
            session.expunge_all()
            return row

    async def ping(self) -> bool:
        """Cheap liveness probe used by the deep health check."""
        try:
            await self.query_one(select(func.count()).select_from(Feedback))
            return True
        except StoreError as exc:
            logger.warning("record_store_ping_failed", extra={"error": str(exc)})
            return False
