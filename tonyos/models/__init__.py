"""Data models for TonyOS."""

from tonyos.models.task import Task, ScoredTask, TaskStatus, TaskBucket

__all__ = [
    "Task",
    "ScoredTask",
    "TaskStatus",
    "TaskBucket",
]
