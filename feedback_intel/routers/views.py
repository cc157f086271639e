"""
Views Router
============

Read-only dashboard endpoints. Each route returns the payload bytes the
dashboard service produced (cached or fresh) without re-serializing them.
"""

import logging

from fastapi import APIRouter, Depends, Response

from feedback_intel.dependencies import get_dashboard_service
from feedback_intel.services.dashboard import (
    VIEW_AI_INSIGHTS,
    VIEW_LONGEST_UNRESOLVED,
    VIEW_RECENT_ISSUES,
    VIEW_REPEAT_USERS,
    VIEW_STATS,
    VIEW_TOP_ISSUES,
    DashboardService,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _json(payload: bytes) -> Response:
    return Response(content=payload, media_type="application/json")


@router.get("/stats")
async def get_stats(dashboard: DashboardService = Depends(get_dashboard_service)):
    """Totals, average sentiment score, unresolved and repeat-user counts."""
    return _json(await dashboard.get_view(VIEW_STATS))


@router.get("/top-issues")
async def get_top_issues(dashboard: DashboardService = Depends(get_dashboard_service)):
    """Most frequent unresolved titles."""
    return _json(await dashboard.get_view(VIEW_TOP_ISSUES))


@router.get("/recent")
async def get_recent(dashboard: DashboardService = Depends(get_dashboard_service)):
    """Newest records. Never cached."""
    return _json(await dashboard.get_view(VIEW_RECENT_ISSUES))


@router.get("/repeat-users")
async def get_repeat_users(dashboard: DashboardService = Depends(get_dashboard_service)):
    return _json(await dashboard.get_view(VIEW_REPEAT_USERS))


@router.get("/longest-unresolved")
async def get_longest_unresolved(dashboard: DashboardService = Depends(get_dashboard_service)):
    return _json(await dashboard.get_view(VIEW_LONGEST_UNRESOLVED))


@router.get("/ai-insights")
async def get_ai_insights(dashboard: DashboardService = Depends(get_dashboard_service)):
    """LLM summary of the last week's feedback."""
    return _json(await dashboard.get_view(VIEW_AI_INSIGHTS))


@router.get("/views/{view_name}")
async def get_view(view_name: str, dashboard: DashboardService = Depends(get_dashboard_service)):
    """Any view by its name; unknown names are a 404."""
    return _json(await dashboard.get_view(view_name))


@router.get("/feedback/{feedback_id}")
async def get_feedback_detail(feedback_id: int, dashboard: DashboardService = Depends(get_dashboard_service)):
    """One record plus the submitting user's recent history."""
    return _json(await dashboard.feedback_detail(feedback_id))
