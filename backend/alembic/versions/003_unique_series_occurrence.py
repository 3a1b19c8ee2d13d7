"""One row per series per due date

Revision ID: 003
Revises: 002
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '003'
down_revision: Union[str, None] = '002'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    # NULL recurrence_parent_id (series roots, one-off tasks) never collides in SQLite
    conn.execute(text(
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_series_due "
        "ON tasks(user_id, recurrence_parent_id, due_date)"
    ))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP INDEX IF EXISTS idx_tasks_series_due"))
