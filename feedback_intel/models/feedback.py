"""
Feedback Model
==============

Stores short text feedback gathered from community channels, support
tickets and social media, along with the sentiment/category/priority
derived at ingestion time.

Timestamps are timezone-aware UTC. SQLite hands them back without an
offset, so anything read from the store goes through ``as_utc`` before it
is compared or serialized.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a stored timestamp to aware UTC; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Feedback(SQLModel, table=True):
    __tablename__ = "feedback"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    source: str  # Discord, GitHub, Support Ticket, Twitter, ...
    user_email: Optional[str] = Field(default=None, index=True)
    user_id: Optional[str] = None
    sentiment: Optional[str] = None  # Sentiment value, NULL when unset
    category: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, index=True)
    resolved_at: Optional[datetime] = Field(default=None, index=True)
    priority: str = Field(default=Priority.MEDIUM.value)
    upvotes: int = Field(default=1)
