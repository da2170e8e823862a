"""Task data model for TonyOS."""

from datetime import datetime, timezone
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field, field_serializer


class TaskStatus(str, Enum):
    """Task status enumeration."""
    OPEN = "open"
    DOING = "doing"
    SCHEDULED = "scheduled"
    DONE = "done"


class TaskBucket(str, Enum):
    """Coarse time-horizon bucket, in presentation order."""
    TODAY = "today"
    THIS_WEEK = "this_week"
    LATER = "later"
    BACKLOG = "backlog"


class Task(BaseModel):
    """Canonical Task model.

    The four ``*_score`` fields are explicit overrides. ``None`` means the
    value is inferred at read time by the scoring engine.
    """

    id: str = Field(..., description="Unique task identifier (UUID v4)")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Free-text description")
    area: Optional[str] = Field(None, description="Free-form category label")
    status: TaskStatus = Field(TaskStatus.OPEN, description="Workflow status")
    bucket: TaskBucket = Field(TaskBucket.LATER, description="Time-horizon bucket")
    priority: int = Field(3, description="Priority 1..5 (1 = highest)")
    due_date: Optional[datetime] = Field(None, description="Due date")
    estimated_minutes: Optional[int] = Field(None, description="Estimated effort in minutes")
    leverage_score: Optional[int] = Field(None, description="Explicit leverage override")
    urgency_score: Optional[int] = Field(None, description="Explicit urgency override")
    risk_score: Optional[int] = Field(None, description="Explicit risk override")
    friction_score: Optional[int] = Field(None, description="Explicit friction override")
    created_at: datetime = Field(..., description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Task last update timestamp")

    @field_serializer("due_date", "created_at", "updated_at", when_used="json")
    def serialize_utc(self, value: Optional[datetime]) -> Optional[str]:
        """Timestamps are held as naive UTC; emit them with an explicit +00:00 offset."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc).isoformat()
        return value.astimezone(timezone.utc).isoformat()

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class ScoredTask(Task):
    """Task annotated with effective sub-scores and the composite score."""

    leverage_score: int = Field(..., description="Effective leverage (explicit or inferred)")
    urgency_score: int = Field(..., description="Effective urgency (explicit or inferred)")
    risk_score: int = Field(..., description="Effective risk (explicit or inferred)")
    friction_score: int = Field(..., description="Effective friction (explicit or inferred)")
    score: int = Field(..., description="Composite: leverage + urgency + risk - friction")
