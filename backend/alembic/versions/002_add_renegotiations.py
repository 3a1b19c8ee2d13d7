"""Add renegotiation tracking

Revision ID: 002
Revises: 001
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    # Check existing columns
    columns = {row[1] for row in conn.execute(text("PRAGMA table_info(tasks)")).fetchall()}

    if "renegotiation_count" not in columns:
        conn.execute(text("ALTER TABLE tasks ADD COLUMN renegotiation_count INTEGER NOT NULL DEFAULT 0"))
    if "original_due_date" not in columns:
        conn.execute(text("ALTER TABLE tasks ADD COLUMN original_due_date TEXT"))
    if "last_renegotiated_at" not in columns:
        conn.execute(text("ALTER TABLE tasks ADD COLUMN last_renegotiated_at TEXT"))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS task_renegotiations (
            id TEXT PRIMARY KEY,
            task_id TEXT NOT NULL,
            user_id TEXT NOT NULL,
            action TEXT NOT NULL,
            from_due_date TEXT,
            to_due_date TEXT,
            reason_code TEXT NOT NULL,
            reason_text TEXT,
            split_into_task_ids TEXT,
            created_at TEXT NOT NULL
        )
    """))
    conn.execute(text(
        "CREATE INDEX IF NOT EXISTS idx_task_renegotiations_task "
        "ON task_renegotiations(user_id, task_id, created_at)"
    ))


def downgrade() -> None:
    # SQLite doesn't support DROP COLUMN easily; only the history table goes
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS task_renegotiations"))
