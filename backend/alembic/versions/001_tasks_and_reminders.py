"""Tasks and reminders

Revision ID: 001
Revises: None
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    # status and resolved_at travel together: resolved_at is NULL iff status = 'active'
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT 'T',
            priority INTEGER,
            status TEXT NOT NULL DEFAULT 'active',
            resolved_at TEXT,
            due_date TEXT,
            due_time TEXT,
            is_recurring INTEGER NOT NULL DEFAULT 0,
            recurrence_rule TEXT,
            recurrence_parent_id TEXT,
            recurring_streak INTEGER NOT NULL DEFAULT 0,
            parent_task_id TEXT,
            created_at TEXT NOT NULL,
            CHECK ((status = 'active') = (resolved_at IS NULL))
        )
    """))
    conn.execute(text(
        "CREATE INDEX IF NOT EXISTS idx_tasks_user_status_due ON tasks(user_id, status, due_date)"
    ))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS reminders (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            task_id TEXT NOT NULL,
            remind_at TEXT,
            dismissed_at TEXT,
            created_at TEXT NOT NULL
        )
    """))
    conn.execute(text(
        "CREATE INDEX IF NOT EXISTS idx_reminders_task ON reminders(user_id, task_id, dismissed_at)"
    ))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS reminders"))
    conn.execute(text("DROP TABLE IF EXISTS tasks"))
