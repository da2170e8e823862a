"""Repository layer for database operations."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import asc, desc, func

from tonyos.models.task import Task, TaskStatus
from tonyos.database.models import TaskDB, enum_to_value

logger = logging.getLogger(__name__)

# Fields a partial update may touch
UPDATABLE_FIELDS = frozenset({
    "title",
    "description",
    "area",
    "status",
    "bucket",
    "priority",
    "due_date",
    "estimated_minutes",
    "leverage_score",
    "urgency_score",
    "risk_score",
    "friction_score",
})

ENUM_FIELDS = frozenset({"status", "bucket"})


class TaskRepository:
    """Repository for Task database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _get_db_row(self, task_id: str) -> Optional[TaskDB]:
        return self.db.query(TaskDB).filter(TaskDB.id == task_id).first()

    def _next_position(self) -> int:
        """Next insertion sequence number (1 for an empty table)."""
        current = self.db.query(func.max(TaskDB.position)).scalar()
        return (current or 0) + 1

    def create(self, task: Task) -> Task:
        """Create a new task."""
        try:
            task_db = TaskDB.from_pydantic(task)
            task_db.position = self._next_position()
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task.id}: {task.title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def create_many(self, tasks: List[Task]) -> List[Task]:
        """Create several tasks in a single transaction.

        Either every task is stored or none is.
        """
        if not tasks:
            return []
        try:
            rows = [TaskDB.from_pydantic(task) for task in tasks]
            start = self._next_position()
            for offset, row in enumerate(rows):
                row.position = start + offset
            self.db.add_all(rows)
            self.db.commit()
            for row in rows:
                self.db.refresh(row)
            logger.debug(f"Created {len(rows)} tasks in one transaction")
            return [row.to_pydantic() for row in rows]
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create {len(tasks)} tasks: {type(e).__name__}: {str(e)}")
            raise

    def get(self, task_id: str) -> Optional[Task]:
        """Get task by ID."""
        task_db = self._get_db_row(task_id)
        return task_db.to_pydantic() if task_db else None

    def get_all(self) -> List[Task]:
        """Get all tasks in creation order (oldest first).

        Rows with the same created_at come back in insertion order.
        """
        tasks_db = (
            self.db.query(TaskDB)
            .order_by(asc(TaskDB.created_at), asc(TaskDB.position))
            .all()
        )
        return [task_db.to_pydantic() for task_db in tasks_db]

    def get_recent(self, limit: int) -> List[Task]:
        """Get the most recently created tasks (newest first)."""
        tasks_db = (
            self.db.query(TaskDB)
            .order_by(desc(TaskDB.created_at), desc(TaskDB.position))
            .limit(limit)
            .all()
        )
        return [task_db.to_pydantic() for task_db in tasks_db]

    def update_fields(self, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        """Apply a partial update.

        Only keys present in ``fields`` are written; an explicit None clears
        the column. ``updated_at`` is always refreshed.

        Returns:
            The updated task, or None if it does not exist

        Raises:
            ValueError: If ``fields`` contains an unknown field
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        task_db = self._get_db_row(task_id)
        if not task_db:
            return None

        for name, value in fields.items():
            if name in ENUM_FIELDS and value is not None:
                value = enum_to_value(value)
            setattr(task_db, name, value)
        task_db.updated_at = datetime.utcnow()

        try:
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Updated task {task_id}: {', '.join(sorted(fields)) or 'no fields'}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task {task_id}: {type(e).__name__}: {str(e)}")
            raise

    def complete(self, task_id: str) -> Optional[Task]:
        """Mark a task as done."""
        return self.update_fields(task_id, {"status": TaskStatus.DONE})

    def delete(self, task_id: str) -> bool:
        """Permanently delete a task by ID."""
        task_db = self._get_db_row(task_id)
        if not task_db:
            return False

        try:
            self.db.delete(task_db)
            self.db.commit()
            logger.debug(f"Deleted task {task_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete task {task_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete_all(self) -> int:
        """Delete every task (used by the seed script)."""
        try:
            affected = self.db.query(TaskDB).delete(synchronize_session=False)
            self.db.commit()
            logger.debug(f"Deleted {affected} tasks")
            return int(affected)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete all tasks: {type(e).__name__}: {str(e)}")
            raise
