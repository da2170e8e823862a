"""Add insertion position to tasks

Revision ID: 9e3b5d7f1a42
Revises: 4a7c1e9b2d10
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "9e3b5d7f1a42"
down_revision: Union[str, Sequence[str], None] = "4a7c1e9b2d10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column("tasks", sa.Column("position", sa.Integer(), nullable=True))
    op.create_index("ix_tasks_created_at_position", "tasks", ["created_at", "position"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_tasks_created_at_position", table_name="tasks")
    op.drop_column("tasks", "position")
