"""
Aggregate View Engine
=====================

Stateless definitions of the dashboard views. Each view is a deterministic
function of the feedback relation at query time (plus, for AI insights, the
summarizer's answer for the trailing window). Nothing here touches the cache.

Views:
    stats               total / unresolved / average sentiment / repeat users
    top-issues          unresolved records grouped by exact title
    recent-issues       newest records (never cached)
    repeat-users        unresolved records grouped by submitting user, size >= 2
    longest-unresolved  oldest unresolved records with days open
    ai-insights         LLM summary of the last N days

Average sentiment covers *all* records, resolved included,
while the other aggregates look at unresolved records only.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from sqlalchemy import case, func
from sqlmodel import select

from feedback_intel.core.async_utils import with_timeout
from feedback_intel.core.errors import FeedbackNotFoundError, SummarizerError
from feedback_intel.models.feedback import Feedback, Sentiment, as_utc, utcnow
from feedback_intel.models.views import (
    AIInsights,
    FeedbackDetail,
    RecentIssue,
    RepeatUser,
    StatsView,
    TopIssue,
    UnresolvedIssue,
    UserHistoryItem,
)
from feedback_intel.services.insights import InsightSummarizer
from feedback_intel.services.record_store import RecordStore

logger = logging.getLogger(__name__)

SENTIMENT_SCORES = {
    Sentiment.POSITIVE.value: 8.0,
    Sentiment.NEUTRAL.value: 5.0,
}
DEFAULT_SENTIMENT_SCORE = 2.0  # negative, unset, anything else

NO_INSIGHTS_MESSAGE = "No insights available at this time."
INSIGHTS_FALLBACK_MESSAGE = "AI analysis temporarily unavailable. Using cached data."
USER_HISTORY_LIMIT = 10

_SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class InsightsOutcome:
    view: AIInsights
    fallback: bool = False


def sentiment_score_expr():
    """SQL CASE mapping a sentiment label to its dashboard score."""
    return case(
        *[(Feedback.sentiment == label, score) for label, score in SENTIMENT_SCORES.items()],
        else_=DEFAULT_SENTIMENT_SCORE,
    )


def format_avg_sentiment(avg: Optional[float]) -> str:
    if avg is None:
        return "0.0"
    return f"{float(avg):.1f}"


def days_open(created_at: datetime, now: datetime) -> int:
    """Whole days elapsed since creation, floored."""
    elapsed = (as_utc(now) - as_utc(created_at)).total_seconds()
    return max(0, int(elapsed // _SECONDS_PER_DAY))


def _unresolved():
    return Feedback.resolved_at.is_(None)


class AggregateViewEngine:
    """Computes view payload models from the record store.

    Args:
        store: Record store adapter.
        summarizer: Insight summarizer; None means insights always fall back.
        clock: Returns aware-UTC "now"; injectable for tests.
        limit: Rows per ranked view.
    """

    def __init__(
        self,
        store: RecordStore,
        summarizer: Optional[InsightSummarizer] = None,
        clock: Callable[[], datetime] = utcnow,
        limit: int = 5,
        insights_window_days: int = 7,
        insights_max_records: int = 20,
        summarizer_timeout_s: float = 20.0,
        separator: str = " | ",
    ):
        self.store = store
        self.summarizer = summarizer
        self.clock = clock
        self.limit = limit
        self.insights_window_days = insights_window_days
        self.insights_max_records = insights_max_records
        self.summarizer_timeout_s = summarizer_timeout_s
        self.separator = separator

    # ------------------------------------------------------------------
    # stats
    # ------------------------------------------------------------------

    async def stats(self) -> StatsView:
        total = await self.store.query_one(select(func.count(Feedback.id)))
        unresolved = await self.store.query_one(
            select(func.count(Feedback.id)).where(_unresolved())
        )
        avg = await self.store.query_one(select(func.avg(sentiment_score_expr())))

        repeaters = (
            select(Feedback.user_email)
            .where(Feedback.user_email.is_not(None))
            .group_by(Feedback.user_email)
            .having(func.count(Feedback.id) >= 2)
            .subquery()
        )
        repeat_users = await self.store.query_one(select(func.count()).select_from(repeaters))

        return StatsView(
            total=total or 0,
            avg_sentiment=format_avg_sentiment(avg),
            unresolved=unresolved or 0,
            repeat_users=repeat_users or 0,
        )

    # ------------------------------------------------------------------
    # top-issues
    # ------------------------------------------------------------------

    async def top_issues(self) -> List[TopIssue]:
        issue_count = func.count(Feedback.id).label("issue_count")
        stmt = (
            select(Feedback.title, issue_count, func.max(Feedback.sentiment))
            .where(_unresolved())
            .group_by(Feedback.title)
            # title breaks count ties so one computation is stable
            .order_by(issue_count.desc(), Feedback.title)
            .limit(self.limit)
        )
        rows = await self.store.query(stmt)
        return [TopIssue(title=title, count=count, sentiment=sentiment) for title, count, sentiment in rows]

    # ------------------------------------------------------------------
    # recent-issues
    # ------------------------------------------------------------------

    async def recent_issues(self) -> List[RecentIssue]:
        stmt = (
            select(Feedback)
            .order_by(Feedback.created_at.desc(), Feedback.id.desc())
            .limit(self.limit)
        )
        rows = await self.store.query(stmt)
        return [
            RecentIssue(
                id=fb.id,
                title=fb.title,
                description=fb.description,
                source=fb.source,
                created_at=fb.created_at,
                sentiment=fb.sentiment,
            )
            for fb in rows
        ]

    # ------------------------------------------------------------------
    # repeat-users
    # ------------------------------------------------------------------

    async def repeat_users(self) -> List[RepeatUser]:
        complaints = func.count(Feedback.id).label("complaints")
        groups_stmt = (
            select(Feedback.user_email, complaints)
            .where(_unresolved(), Feedback.user_email.is_not(None))
            .group_by(Feedback.user_email)
            .having(func.count(Feedback.id) >= 2)
            .order_by(complaints.desc(), Feedback.user_email)
            .limit(self.limit)
        )
        groups: List[Tuple[str, int]] = [tuple(row) for row in await self.store.query(groups_stmt)]
        if not groups:
            return []

        emails = [email for email, _ in groups]
        first_seen = func.min(Feedback.created_at).label("first_seen")
        titles_stmt = (
            select(Feedback.user_email, Feedback.title, first_seen)
            .where(_unresolved(), Feedback.user_email.in_(emails))
            .group_by(Feedback.user_email, Feedback.title)
            .order_by(Feedback.user_email, first_seen, Feedback.title)
        )
        titles_by_user = {email: [] for email in emails}
        for email, title, _ in await self.store.query(titles_stmt):
            titles_by_user[email].append(title)

        return [
            RepeatUser(
                user_email=email,
                complaint_count=count,
                issues=self.separator.join(titles_by_user[email]),
            )
            for email, count in groups
        ]

    # ------------------------------------------------------------------
    # longest-unresolved
    # ------------------------------------------------------------------

    async def longest_unresolved(self) -> List[UnresolvedIssue]:
        stmt = (
            select(Feedback)
            .where(_unresolved())
            .order_by(Feedback.created_at.asc(), Feedback.id.asc())
            .limit(self.limit)
        )
        rows = await self.store.query(stmt)
        now = self.clock()
        return [
            UnresolvedIssue(
                id=fb.id,
                title=fb.title,
                created_at=fb.created_at,
                source=fb.source,
                days_open=days_open(fb.created_at, now),
            )
            for fb in rows
        ]

    # ------------------------------------------------------------------
    # ai-insights
    # ------------------------------------------------------------------

    async def ai_insights(self) -> InsightsOutcome:
        """Summarize the trailing window. Summarizer failures never raise."""
        now = as_utc(self.clock())
        cutoff = now - timedelta(days=self.insights_window_days)
        stmt = (
            select(Feedback.title, Feedback.description)
            .where(Feedback.created_at > cutoff)
            .order_by(Feedback.created_at.desc(), Feedback.id.desc())
            .limit(self.insights_max_records)
        )
        pairs = [(title, description) for title, description in await self.store.query(stmt)]

        if self.summarizer is None:
            logger.info("insight_summarizer_not_configured")
            return InsightsOutcome(AIInsights(insights=INSIGHTS_FALLBACK_MESSAGE, generated_at=now), fallback=True)

        try:
            text = await with_timeout(
                self.summarizer.summarize(pairs),
                self.summarizer_timeout_s,
                "insight summarizer",
            )
        except (SummarizerError, TimeoutError) as exc:
            logger.warning("insight_summarizer_failed", extra={"error": str(exc), "records": len(pairs)})
            return InsightsOutcome(AIInsights(insights=INSIGHTS_FALLBACK_MESSAGE, generated_at=now), fallback=True)

        return InsightsOutcome(AIInsights(insights=(text or "").strip() or NO_INSIGHTS_MESSAGE, generated_at=now))

    # ------------------------------------------------------------------
    # feedback detail (uncached, not part of the invalidation set)
    # ------------------------------------------------------------------

    async def feedback_detail(self, feedback_id: int) -> FeedbackDetail:
        fb = await self.store.query_one(select(Feedback).where(Feedback.id == feedback_id))
        if fb is None:
            raise FeedbackNotFoundError(detail=f"feedback id {feedback_id}", context={"feedback_id": feedback_id})

        history: List[UserHistoryItem] = []
        if fb.user_email:
            stmt = (
                select(Feedback)
                .where(Feedback.user_email == fb.user_email)
                .order_by(Feedback.created_at.desc(), Feedback.id.desc())
                .limit(USER_HISTORY_LIMIT)
            )
            history = [
                UserHistoryItem(
                    id=row.id,
                    title=row.title,
                    created_at=row.created_at,
                    sentiment=row.sentiment,
                    resolved_at=row.resolved_at,
                )
                for row in await self.store.query(stmt)
            ]

        return FeedbackDetail(
            id=fb.id,
            title=fb.title,
            description=fb.description,
            source=fb.source,
            user_email=fb.user_email,
            sentiment=fb.sentiment,
            category=fb.category,
            priority=fb.priority,
            created_at=fb.created_at,
            resolved_at=fb.resolved_at,
            user_history=history,
        )
