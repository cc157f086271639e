"""
Payload models for the dashboard views and the ingestion endpoint.

Key names follow the dashboard client's contract (``avgSentiment``,
``repeatUsers``, ``complaint_count`` ...), so several fields carry aliases.
Always serialize with ``by_alias=True``.
"""

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from feedback_intel.models.feedback import as_utc

# Store timestamps come back naive from SQLite; payloads always carry UTC.
UTCDatetime = Annotated[datetime, AfterValidator(as_utc)]


class StatsView(BaseModel):
    """Headline counters."""
    model_config = ConfigDict(populate_by_name=True)

    total: int = Field(..., examples=[25], description="Total feedback records")
    avg_sentiment: str = Field(..., alias="avgSentiment", examples=["4.2"],
                               description="Mean sentiment score (positive=8, neutral=5, other=2), one decimal")
    unresolved: int = Field(..., examples=[21], description="Records without a resolution timestamp")
    repeat_users: int = Field(..., alias="repeatUsers", examples=[4],
                              description="Distinct users with two or more records")


class TopIssue(BaseModel):
    title: str
    count: int
    sentiment: Optional[str] = None


class RecentIssue(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    source: str
    created_at: UTCDatetime
    sentiment: Optional[str] = None


class RepeatUser(BaseModel):
    user_email: str
    complaint_count: int
    issues: str = Field(..., description="Distinct titles joined by the configured separator")


class UnresolvedIssue(BaseModel):
    id: int
    title: str
    created_at: UTCDatetime
    source: str
    days_open: int


class AIInsights(BaseModel):
    insights: str
    generated_at: UTCDatetime


class UserHistoryItem(BaseModel):
    id: int
    title: str
    created_at: UTCDatetime
    sentiment: Optional[str] = None
    resolved_at: Optional[UTCDatetime] = None


class FeedbackDetail(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    description: Optional[str] = None
    source: str
    user_email: Optional[str] = None
    sentiment: Optional[str] = None
    category: Optional[str] = None
    priority: str
    created_at: UTCDatetime
    resolved_at: Optional[UTCDatetime] = None
    user_history: List[UserHistoryItem] = Field(default_factory=list, alias="userHistory")


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

class FeedbackIn(BaseModel):
    """Raw feedback tuple as submitted. Required fields are checked per record
    by the ingestion pipeline so one bad record does not reject the batch."""
    title: Optional[str] = None
    description: Optional[str] = None
    source: Optional[str] = None
    user_email: Optional[str] = None
    user_id: Optional[str] = None


class IngestedRecord(BaseModel):
    id: int
    title: str
    sentiment: str


class FailedRecord(BaseModel):
    index: int
    title: Optional[str] = None
    error: str


class IngestDetails(BaseModel):
    successful: List[IngestedRecord] = Field(default_factory=list)
    failed: List[FailedRecord] = Field(default_factory=list)


class IngestResult(BaseModel):
    message: str
    inserted: int
    errors: int
    details: IngestDetails
    stale_keys: List[str] = Field(default_factory=list,
                                  description="Cache keys that could not be invalidated (expire by TTL)")
