"""Request/response models for the task, chat and brain-dump endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from tonyos.models.task import ScoredTask, TaskBucket, TaskStatus
from tonyos.models.task_factory import parse_due_date
from tonyos.models.constants import BRAIN_DUMP_MAX_CHARS, MAX_PRIORITY, MIN_PRIORITY


def _non_empty_title(value: Any) -> Any:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("title must be a non-empty string")
    return value.strip()


class TaskCreateRequest(BaseModel):
    """Request body for POST /tasks."""

    title: str
    description: Optional[str] = None
    area: Optional[str] = None
    bucket: Optional[TaskBucket] = None
    priority: Optional[int] = Field(None, ge=MIN_PRIORITY, le=MAX_PRIORITY)
    due_date: Optional[datetime] = None
    estimated_minutes: Optional[int] = Field(None, ge=0)
    leverage_score: Optional[int] = None
    urgency_score: Optional[int] = None
    risk_score: Optional[int] = None
    friction_score: Optional[int] = None

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Any) -> Any:
        return _non_empty_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v: Any) -> Optional[datetime]:
        return parse_due_date(v)


class TaskUpdateRequest(BaseModel):
    """Request body for PATCH /tasks/{task_id}.

    Only fields present in the body are updated. Sending null clears an
    optional field; for a score override that means "infer it again".
    """

    title: Optional[str] = None
    description: Optional[str] = None
    area: Optional[str] = None
    status: Optional[TaskStatus] = None
    bucket: Optional[TaskBucket] = None
    priority: Optional[int] = Field(None, ge=MIN_PRIORITY, le=MAX_PRIORITY)
    due_date: Optional[datetime] = None
    estimated_minutes: Optional[int] = Field(None, ge=0)
    leverage_score: Optional[int] = None
    urgency_score: Optional[int] = None
    risk_score: Optional[int] = None
    friction_score: Optional[int] = None

    @field_validator("title", "status", "bucket", "priority", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("may not be null")
        return v

    @field_validator("title", mode="after")
    @classmethod
    def validate_title(cls, v: Any) -> Any:
        return _non_empty_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v: Any) -> Optional[datetime]:
        return parse_due_date(v)

    def changed_fields(self) -> Dict[str, Any]:
        """Fields the caller actually sent, with text fields trimmed."""
        fields = self.model_dump(exclude_unset=True)
        for name in ("description", "area"):
            if name in fields and fields[name] is not None:
                fields[name] = fields[name].strip() or None
        return fields


class TaskResponse(BaseModel):
    """Response wrapping a single annotated task."""
    task: ScoredTask


class TaskListResponse(BaseModel):
    """Response for the task list."""
    tasks: List[ScoredTask]
    count: int


class BrainDumpRequest(BaseModel):
    """Request body for POST /brain-dump."""

    text: str = Field(..., max_length=BRAIN_DUMP_MAX_CHARS)
    default_bucket: Optional[str] = Field(
        None, description="Bucket for tasks with none implied (unrecognized values fall back to today)"
    )
    default_area: Optional[str] = None

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text is required")
        return v


class BrainDumpResponse(BaseModel):
    """Response for POST /brain-dump."""
    tasks: List[ScoredTask]
    count: int


class ChatRequest(BaseModel):
    """Request body for POST /chat."""

    prompt: str

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt is required")
        return v


class ChatResponse(BaseModel):
    """Response for POST /chat."""
    response: str


class HealthResponse(BaseModel):
    """Response for GET /health."""
    status: str
    version: str
    uptime_seconds: float
    timestamp: datetime
