"""Score calculation for TonyOS.

Every task gets four sub-scores and one composite ranking score:

- leverage: impact relative to effort (from priority when not set)
- urgency: time pressure (from due date, else from bucket)
- risk: cost of not acting (tracks urgency when not set)
- friction: how costly the task is to start (from description keywords)

composite = leverage + urgency + risk - friction

Explicit values on the task always win over inference. Scores are a read-time
view: they depend on the current instant and are never persisted.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

from tonyos.models.task import Task, ScoredTask, TaskBucket
from tonyos.models.task_factory import clamp_priority, parse_due_date


# Hours-until-due thresholds, checked in order: (upper bound, urgency)
URGENCY_BY_HOURS = (
    (24, 4),
    (72, 3),
    (24 * 7, 2),
)
URGENCY_OVERDUE = 5
URGENCY_DISTANT = 1

URGENCY_BY_BUCKET = {
    TaskBucket.TODAY.value: 3,
    TaskBucket.THIS_WEEK.value: 2,
}
URGENCY_DEFAULT_BUCKET = 1

# Checked in order; the first matching category wins.
FRICTION_KEYWORDS = (
    (("tax", "accounting", "legal"), 3),
    (("call", "email"), 1),
)
FRICTION_DEFAULT = 2


@dataclass(frozen=True)
class TaskScores:
    """Effective sub-scores and composite score for one task."""

    leverage: int
    urgency: int
    risk: int
    friction: int

    @property
    def composite(self) -> int:
        return self.leverage + self.urgency + self.risk - self.friction


def _explicit(value: Any) -> Optional[int]:
    """Return an explicit score override, or None if the caller left it unset."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def usable_due_date(value: Any) -> Optional[datetime]:
    """Coerce a stored due date, treating anything unparseable as absent."""
    if isinstance(value, (datetime, date, str)):
        try:
            return parse_due_date(value)
        except ValueError:
            return None
    return None


def leverage_score(task: Task) -> int:
    """Leverage: explicit value, else 6 - priority (priority 1 -> 5, priority 5 -> 1)."""
    explicit = _explicit(getattr(task, "leverage_score", None))
    if explicit is not None:
        return explicit
    return 6 - clamp_priority(getattr(task, "priority", None))


def urgency_score(task: Task, now: Optional[datetime] = None) -> int:
    """Urgency from time-to-due, falling back to the bucket when there is no usable due date."""
    explicit = _explicit(getattr(task, "urgency_score", None))
    if explicit is not None:
        return explicit

    due_date = usable_due_date(getattr(task, "due_date", None))
    if due_date is None:
        bucket = getattr(task, "bucket", None)
        bucket = getattr(bucket, "value", bucket)
        return URGENCY_BY_BUCKET.get(bucket, URGENCY_DEFAULT_BUCKET)

    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    hours_until_due = (_as_utc(due_date) - now).total_seconds() / 3600
    if hours_until_due < 0:
        return URGENCY_OVERDUE
    for max_hours, urgency in URGENCY_BY_HOURS:
        if hours_until_due <= max_hours:
            return urgency
    return URGENCY_DISTANT


def risk_score(task: Task, urgency: int) -> int:
    """Risk: explicit value, else derived from urgency (risk tracks time pressure)."""
    explicit = _explicit(getattr(task, "risk_score", None))
    if explicit is not None:
        return explicit
    if urgency >= 4:
        return 4
    if urgency == 3:
        return 3
    return 2


def friction_score(task: Task) -> int:
    """Friction: explicit value, else keyword match on the description."""
    explicit = _explicit(getattr(task, "friction_score", None))
    if explicit is not None:
        return explicit
    description = (getattr(task, "description", None) or "").lower()
    if not description:
        return FRICTION_DEFAULT
    for keywords, friction in FRICTION_KEYWORDS:
        if any(keyword in description for keyword in keywords):
            return friction
    return FRICTION_DEFAULT


def compute_scores(task: Task, now: Optional[datetime] = None) -> TaskScores:
    """Compute all sub-scores for a task.

    This function is deterministic for a given task and ``now`` and never
    raises on bad field values.

    Args:
        task: Task to score (any subset of score overrides may be set)
        now: Reference instant for due-date urgency (defaults to current UTC time)

    Returns:
        TaskScores with effective leverage, urgency, risk and friction
    """
    urgency = urgency_score(task, now=now)
    return TaskScores(
        leverage=leverage_score(task),
        urgency=urgency,
        risk=risk_score(task, urgency),
        friction=friction_score(task),
    )


def annotate_task(task: Task, now: Optional[datetime] = None) -> ScoredTask:
    """Return the task with effective scores filled in and the composite score attached."""
    scores = compute_scores(task, now=now)
    data = task.model_dump()
    data.update(
        priority=clamp_priority(data.get("priority")),
        due_date=usable_due_date(data.get("due_date")),
        leverage_score=scores.leverage,
        urgency_score=scores.urgency,
        risk_score=scores.risk,
        friction_score=scores.friction,
        score=scores.composite,
    )
    return ScoredTask(**data)
