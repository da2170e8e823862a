"""Scoring and ranking engine for TonyOS."""

from tonyos.engine.scoring import TaskScores, compute_scores, annotate_task
from tonyos.engine.ranking import (
    TaskOrder,
    rank_tasks,
    rank_by_score,
    present_tasks,
    next_best_task,
)

__all__ = [
    "TaskScores",
    "compute_scores",
    "annotate_task",
    "TaskOrder",
    "rank_tasks",
    "rank_by_score",
    "present_tasks",
    "next_best_task",
]
