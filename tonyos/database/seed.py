"""Seed the tasks table with a sample task list.

Wipes existing tasks, then inserts the sample set in one transaction.

Run with: python -m tonyos.database.seed
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from tonyos.database.database import SessionLocal, init_db
from tonyos.database.repository import TaskRepository
from tonyos.models.task import Task, TaskBucket
from tonyos.models.constants import CREATE_DEFAULT_BUCKET
from tonyos.models.task_factory import create_task_base

logger = logging.getLogger(__name__)


def _sample_tasks(now: datetime) -> List[Task]:
    end_of_today = now.replace(hour=23, minute=59, second=0, microsecond=0)
    samples = [
        # Today
        dict(title="Load this season's bookings into the dashboard",
             description="Import every booked shoot so the board reflects the real pipeline.",
             area="Studio", bucket=TaskBucket.TODAY, priority=1, due_date=end_of_today),
        dict(title="Schedule team headshot days",
             description="Lock in dates for portraits before the holidays.",
             area="Studio", bucket=TaskBucket.TODAY, priority=1, due_date=end_of_today),
        dict(title="Send final packaging art to manufacturers",
             description="Email final art files to three manufacturers for quoting.",
             area="Products", bucket=TaskBucket.TODAY, priority=2, due_date=end_of_today),
        # This week
        dict(title="Write gallery retention policy",
             description="Define gallery expiration, cold storage and paid extensions.",
             area="Studio", bucket=TaskBucket.THIS_WEEK, priority=2),
        dict(title="Gather entity documents for holding review",
             description="Pull operating agreements and tax returns for the accountant.",
             area="Holdings", bucket=TaskBucket.THIS_WEEK, priority=2),
        dict(title="Plan NAS redundancy upgrade",
             description="Decide on mirror/backup strategy, hardware and budget.",
             area="Infrastructure", bucket=TaskBucket.THIS_WEEK, priority=1),
        dict(title="Book annual health check",
             description="Call the clinic and book bloodwork.",
             area="Personal", bucket=TaskBucket.THIS_WEEK, priority=1),
        # Later
        dict(title="Draft next year's restructuring map",
             description="High-level diagram of entities, flows and roles.",
             area="Holdings", bucket=TaskBucket.LATER, priority=1, due_date=now + timedelta(days=30)),
        dict(title="Consolidate bookkeeping across entities",
             description="Clean books before restructuring and tax season.",
             area="Finance", bucket=TaskBucket.LATER, priority=2, due_date=now + timedelta(days=45)),
        dict(title="Plan family days for next month",
             description="Pick specific days so work doesn't swallow them.",
             area="Family", bucket=TaskBucket.LATER, priority=1, due_date=now + timedelta(days=20)),
        # Backlog
        dict(title="Research a second storage location",
             area="Infrastructure", bucket=TaskBucket.BACKLOG, priority=4),
    ]
    return [create_task_base(default_bucket=CREATE_DEFAULT_BUCKET, **sample) for sample in samples]


def seed_tasks(db: Session, now: Optional[datetime] = None) -> List[Task]:
    """Replace all tasks with the sample set and return the stored tasks."""
    repository = TaskRepository(db)
    removed = repository.delete_all()
    created = repository.create_many(_sample_tasks(now or datetime.utcnow()))
    logger.info(f"Removed {removed} tasks, seeded {len(created)} tasks")
    return created


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    init_db()
    db = SessionLocal()
    try:
        created = seed_tasks(db)
        print(f"Seeded {len(created)} tasks")
    finally:
        db.close()


if __name__ == "__main__":
    main()
