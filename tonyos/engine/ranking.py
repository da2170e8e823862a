"""Task ordering for TonyOS.

The default order is a fixed multi-key sort over raw task fields:

1. Incomplete tasks before done tasks
2. Bucket (today, this_week, later, backlog)
3. Priority ascending (1 first)
4. Due date ascending, tasks without a due date last
5. Creation time ascending

It does not use the composite score. Ordering by composite score is a
separate, optional view.
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Sequence, TypeVar

from tonyos.models.task import Task, ScoredTask, TaskBucket, TaskStatus
from tonyos.models.task_factory import clamp_priority, to_naive_utc
from tonyos.engine.scoring import annotate_task, usable_due_date

T = TypeVar("T", bound=Task)

BUCKET_RANK = {bucket.value: rank for rank, bucket in enumerate(TaskBucket)}


class TaskOrder(str, Enum):
    """Supported presentation orders."""
    DEFAULT = "default"
    SCORE = "score"


def _value(field) -> str:
    return getattr(field, "value", field)


def _is_done(task: Task) -> bool:
    return _value(task.status) == TaskStatus.DONE.value


def _bucket_sort_key(task: Task) -> int:
    """Unrecognized buckets sort after every known bucket."""
    return BUCKET_RANK.get(_value(task.bucket), len(BUCKET_RANK))


def _due_date_sort_key(task: Task) -> tuple:
    """Get sort key for due date.

    Tasks with due dates come before those without; earlier dates first.

    Returns:
        Tuple for sorting: (has_due_date: 0 or 1, naive UTC due date or datetime.max)
    """
    due_date = usable_due_date(task.due_date)
    if due_date:
        return (0, due_date)
    return (1, datetime.max)


def _created_at_sort_key(task: Task) -> datetime:
    # Naive UTC, compared as-is (never through host local time).
    created_at = task.created_at
    return to_naive_utc(created_at) if isinstance(created_at, datetime) else datetime.max


def default_sort_key(task: Task) -> tuple:
    """Lexicographic key for the default presentation order."""
    return (
        _is_done(task),
        _bucket_sort_key(task),
        clamp_priority(task.priority),
        _due_date_sort_key(task),
        _created_at_sort_key(task),
    )


def rank_tasks(tasks: Iterable[T]) -> List[T]:
    """Order tasks for presentation ("next actions first").

    The sort is stable, so tasks with identical keys keep their input order.

    Args:
        tasks: Tasks to rank (plain or scored)

    Returns:
        New list in presentation order
    """
    return sorted(tasks, key=default_sort_key)


def rank_by_score(tasks: Iterable[ScoredTask]) -> List[ScoredTask]:
    """Order scored tasks by composite score, highest first.

    Done tasks still sort last; ties fall back to the default order.
    """
    return sorted(
        tasks,
        key=lambda task: (_is_done(task), -task.score, default_sort_key(task)),
    )


def present_tasks(
    tasks: Sequence[Task],
    now: Optional[datetime] = None,
    order: TaskOrder = TaskOrder.DEFAULT,
) -> List[ScoredTask]:
    """Annotate tasks with scores and order them for the API."""
    scored = [annotate_task(task, now=now) for task in tasks]
    if TaskOrder(order) == TaskOrder.SCORE:
        return rank_by_score(scored)
    return rank_tasks(scored)


def next_best_task(tasks: Sequence[Task], now: Optional[datetime] = None) -> Optional[ScoredTask]:
    """Return the single open task with the highest composite score, or None."""
    candidates = [task for task in tasks if not _is_done(task)]
    if not candidates:
        return None
    return present_tasks(candidates, now=now, order=TaskOrder.SCORE)[0]
