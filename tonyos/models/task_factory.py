"""Task creation factory for TonyOS.

This module centralizes task creation logic so that tasks created through the
API and tasks extracted from a brain dump get identical defaults.
"""

import logging
import math
import uuid
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional, Union

from dateutil import parser as date_parser

from tonyos.models.task import Task, TaskBucket, TaskStatus
from tonyos.models.constants import (
    DEFAULT_AREA,
    DEFAULT_PRIORITY,
    MAX_PRIORITY,
    MIN_PRIORITY,
)

logger = logging.getLogger(__name__)


def clamp_priority(value: Any) -> int:
    """Coerce a priority into 1..5.

    Absent or non-numeric values give the default priority (3). Numeric values
    are truncated to an integer and clamped.
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_PRIORITY
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return DEFAULT_PRIORITY
    if not isinstance(value, (int, float)):
        return DEFAULT_PRIORITY
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return DEFAULT_PRIORITY
    return max(MIN_PRIORITY, min(MAX_PRIORITY, int(value)))


def normalize_bucket(value: Any, default: TaskBucket) -> TaskBucket:
    """Return the bucket for ``value``, or ``default`` if it is not recognized.

    The default is required: each entry point decides its own fallback.
    """
    if isinstance(value, TaskBucket):
        return value
    if isinstance(value, str):
        try:
            return TaskBucket(value.strip().lower())
        except ValueError:
            pass
    return default


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC (naive values are assumed UTC)."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_due_date(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """Parse a due date into a naive UTC datetime.

    ``None`` and blank strings mean "no due date".

    Raises:
        ValueError: If the value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return to_naive_utc(date_parser.parse(value.strip()))
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid due_date: {value!r}") from e
    raise ValueError(f"Invalid due_date type: {type(value).__name__}")


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def create_task_base(
    title: str,
    description: Optional[str] = None,
    area: Optional[str] = None,
    bucket: Any = None,
    priority: Any = None,
    due_date: Optional[datetime] = None,
    estimated_minutes: Optional[int] = None,
    leverage_score: Optional[int] = None,
    urgency_score: Optional[int] = None,
    risk_score: Optional[int] = None,
    friction_score: Optional[int] = None,
    *,
    default_bucket: TaskBucket,
) -> Task:
    """Create a new open task with defaults applied.

    Args:
        title: Task title (trimmed)
        description: Optional description (trimmed, blank -> None)
        area: Optional area label (trimmed, blank -> None)
        bucket: Bucket; unrecognized or missing values fall back to ``default_bucket``
        priority: Priority, clamped to 1..5 (default 3)
        due_date: Due date (already parsed)
        estimated_minutes: Optional effort estimate
        leverage_score: Explicit leverage override
        urgency_score: Explicit urgency override
        risk_score: Explicit risk override
        friction_score: Explicit friction override
        default_bucket: Fallback bucket for this entry point

    Returns:
        Task object with status ``open`` and fresh timestamps
    """
    now = datetime.utcnow()
    return Task(
        id=str(uuid.uuid4()),
        title=title.strip(),
        description=_clean_text(description),
        area=_clean_text(area),
        status=TaskStatus.OPEN,
        bucket=normalize_bucket(bucket, default_bucket),
        priority=clamp_priority(priority),
        due_date=to_naive_utc(due_date) if due_date is not None else None,
        estimated_minutes=estimated_minutes,
        leverage_score=leverage_score,
        urgency_score=urgency_score,
        risk_score=risk_score,
        friction_score=friction_score,
        created_at=now,
        updated_at=now,
    )


def task_from_candidate(
    candidate: Mapping[str, Any],
    default_bucket: TaskBucket,
    default_area: Optional[str] = None,
) -> Optional[Task]:
    """Build a task from a brain-dump candidate field-set.

    Candidates come from the language model and are loosely typed, so every
    field is coerced rather than validated. Returns None when the candidate
    has no usable title.
    """
    if not isinstance(candidate, Mapping):
        logger.debug(f"Skipping non-object brain dump candidate: {type(candidate).__name__}")
        return None

    title = _clean_text(candidate.get("title"))
    if not title:
        logger.debug("Skipping brain dump candidate without a title")
        return None

    try:
        due_date = parse_due_date(candidate.get("due_date"))
    except ValueError:
        logger.debug(f"Ignoring unparseable due_date on candidate '{title[:50]}'")
        due_date = None

    return create_task_base(
        title=title,
        description=candidate.get("description"),
        area=_clean_text(candidate.get("area")) or _clean_text(default_area) or DEFAULT_AREA,
        bucket=candidate.get("bucket"),
        priority=candidate.get("priority"),
        due_date=due_date,
        default_bucket=default_bucket,
    )
