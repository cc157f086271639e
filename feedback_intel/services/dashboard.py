"""
Dashboard Service
=================

One query operation per view name, each returning the serialized JSON
payload the transport layer sends as-is. Cached views go through the
cache-aside coordinator with their configured TTL; recent-issues and
feedback detail are always computed fresh.
"""

import logging
from typing import Awaitable, Callable, Dict, List

from pydantic import TypeAdapter

from feedback_intel.core.errors import UnknownViewError
from feedback_intel.core.structured_logging import view_var
from feedback_intel.models.views import RecentIssue, RepeatUser, TopIssue, UnresolvedIssue
from feedback_intel.services.view_cache import UncachedPayload, ViewCacheCoordinator
from feedback_intel.services.view_engine import AggregateViewEngine

logger = logging.getLogger(__name__)

VIEW_STATS = "stats"
VIEW_TOP_ISSUES = "top-issues"
VIEW_RECENT_ISSUES = "recent-issues"
VIEW_REPEAT_USERS = "repeat-users"
VIEW_LONGEST_UNRESOLVED = "longest-unresolved"
VIEW_AI_INSIGHTS = "ai-insights"

VIEW_NAMES = (
    VIEW_STATS,
    VIEW_TOP_ISSUES,
    VIEW_RECENT_ISSUES,
    VIEW_REPEAT_USERS,
    VIEW_LONGEST_UNRESOLVED,
    VIEW_AI_INSIGHTS,
)

_top_issues_json = TypeAdapter(List[TopIssue])
_recent_issues_json = TypeAdapter(List[RecentIssue])
_repeat_users_json = TypeAdapter(List[RepeatUser])
_unresolved_json = TypeAdapter(List[UnresolvedIssue])


class DashboardService:
    """Serves view payloads.

    Args:
        engine: Aggregate view engine (stateless computations).
        coordinator: Cache-aside coordinator.
        ttl_for: Maps a cached view key to its TTL in seconds.
    """

    def __init__(self, engine: AggregateViewEngine, coordinator: ViewCacheCoordinator,
                 ttl_for: Callable[[str], int]):
        self.engine = engine
        self.coordinator = coordinator
        self.ttl_for = ttl_for
        self._views: Dict[str, Callable[[], Awaitable[bytes]]] = {
            VIEW_STATS: self.stats,
            VIEW_TOP_ISSUES: self.top_issues,
            VIEW_RECENT_ISSUES: self.recent_issues,
            VIEW_REPEAT_USERS: self.repeat_users,
            VIEW_LONGEST_UNRESOLVED: self.longest_unresolved,
            VIEW_AI_INSIGHTS: self.ai_insights,
        }

    async def get_view(self, name: str) -> bytes:
        handler = self._views.get(name)
        if handler is None:
            raise UnknownViewError(detail=name, context={"view": name})
        token = view_var.set(name)
        try:
            return await handler()
        finally:
            view_var.reset(token)

    async def _cached(self, key: str, compute) -> bytes:
        return await self.coordinator.get_or_compute(key, self.ttl_for(key), compute)

    # ── cached views ──────────────────────────────────────────────────

    async def stats(self) -> bytes:
        async def compute() -> bytes:
            view = await self.engine.stats()
            return view.model_dump_json(by_alias=True).encode()

        return await self._cached(VIEW_STATS, compute)

    async def top_issues(self) -> bytes:
        async def compute() -> bytes:
            return _top_issues_json.dump_json(await self.engine.top_issues(), by_alias=True)

        return await self._cached(VIEW_TOP_ISSUES, compute)

    async def repeat_users(self) -> bytes:
        async def compute() -> bytes:
            return _repeat_users_json.dump_json(await self.engine.repeat_users(), by_alias=True)

        return await self._cached(VIEW_REPEAT_USERS, compute)

    async def longest_unresolved(self) -> bytes:
        async def compute() -> bytes:
            return _unresolved_json.dump_json(await self.engine.longest_unresolved(), by_alias=True)

        return await self._cached(VIEW_LONGEST_UNRESOLVED, compute)

    async def ai_insights(self) -> bytes:
        async def compute():
            outcome = await self.engine.ai_insights()
            payload = outcome.view.model_dump_json().encode()
            if outcome.fallback:
                return UncachedPayload(payload, reason="summarizer_fallback")
            return payload

        return await self._cached(VIEW_AI_INSIGHTS, compute)

    # ── always fresh ──────────────────────────────────────────────────

    async def recent_issues(self) -> bytes:
        return _recent_issues_json.dump_json(await self.engine.recent_issues(), by_alias=True)

    async def feedback_detail(self, feedback_id: int) -> bytes:
        detail = await self.engine.feedback_detail(feedback_id)
        return detail.model_dump_json(by_alias=True).encode()
