"""SQLAlchemy database models for TonyOS."""

import logging
import uuid
from datetime import datetime
from typing import Type, TypeVar, Union

from sqlalchemy import Column, DateTime, Index, Integer, String

from tonyos.database.database import Base
from tonyos.models.task import TaskBucket, TaskStatus
from tonyos.models.constants import CREATE_DEFAULT_BUCKET, DEFAULT_PRIORITY, LEGACY_STATUS_VALUES

logger = logging.getLogger(__name__)

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


def status_from_db(value: str) -> TaskStatus:
    """Map a stored status to the canonical vocabulary.

    Older rows may use `todo`, `in_progress` or `completed`. These are mapped,
    and logged so the vocabulary drift stays visible.
    """
    legacy = LEGACY_STATUS_VALUES.get((value or "").lower())
    if legacy is not None:
        logger.warning(f"Mapping legacy task status '{value}' to '{legacy.value}'")
        return legacy
    return value_to_enum(value, TaskStatus, TaskStatus.OPEN)


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_bucket", "bucket"),
        Index("ix_tasks_status", "status"),
        Index("ix_tasks_due_date", "due_date"),
        Index("ix_tasks_created_at_position", "created_at", "position"),
    )

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Basic fields
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    area = Column(String, nullable=True)
    status = Column(String, nullable=False, default=TaskStatus.OPEN.value)
    bucket = Column(String, nullable=False, default=CREATE_DEFAULT_BUCKET.value)

    # Planning fields
    priority = Column(Integer, nullable=False, default=DEFAULT_PRIORITY)
    due_date = Column(DateTime, nullable=True)
    estimated_minutes = Column(Integer, nullable=True)

    # Explicit score overrides (NULL = inferred at read time)
    leverage_score = Column(Integer, nullable=True)
    urgency_score = Column(Integer, nullable=True)
    risk_score = Column(Integer, nullable=True)
    friction_score = Column(Integer, nullable=True)

    # Insertion sequence; tie-break for rows sharing a created_at
    position = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from tonyos.models.task import Task

        return Task(
            id=self.id,
            title=self.title,
            description=self.description,
            area=self.area,
            status=status_from_db(self.status),
            bucket=value_to_enum(self.bucket, TaskBucket, CREATE_DEFAULT_BUCKET),
            priority=self.priority if self.priority is not None else DEFAULT_PRIORITY,
            due_date=self.due_date,
            estimated_minutes=self.estimated_minutes,
            leverage_score=self.leverage_score,
            urgency_score=self.urgency_score,
            risk_score=self.risk_score,
            friction_score=self.friction_score,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model."""
        # Handle enum values (Pydantic with use_enum_values=True returns strings)
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            area=task.area,
            status=enum_to_value(task.status),
            bucket=enum_to_value(task.bucket),
            priority=task.priority,
            due_date=task.due_date,
            estimated_minutes=task.estimated_minutes,
            leverage_score=task.leverage_score,
            urgency_score=task.urgency_score,
            risk_score=task.risk_score,
            friction_score=task.friction_score,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )
