import sqlite3
import json
import logging
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from contextlib import contextmanager

from pydantic import BaseModel

import config
from models import Reminder, RecurrenceRule, Task

logger = logging.getLogger(__name__)

DATABASE_PATH = config.DATABASE_PATH

# Columns a conditional update may change
TASK_UPDATABLE_FIELDS = {
    "status",
    "resolved_at",
    "due_date",
    "recurring_streak",
    "renegotiation_count",
    "original_due_date",
    "last_renegotiated_at",
}


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH, timeout=30.0)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess
    import os

    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        check=True
    )


def _now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _to_db_value(value: Any) -> Any:
    """Convert a Python value to its SQLite storage form."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return value


def _row_to_task(row) -> Task:
    """Convert a database row to a Task model."""
    rule = row["recurrence_rule"]
    # Treat empty string as no rule
    recurrence_rule = RecurrenceRule.model_validate_json(rule) if rule else None
    return Task(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        category=row["category"],
        priority=row["priority"],
        status=row["status"],
        resolved_at=row["resolved_at"],
        due_date=row["due_date"],
        due_time=row["due_time"],
        is_recurring=bool(row["is_recurring"]),
        recurrence_rule=recurrence_rule,
        recurrence_parent_id=row["recurrence_parent_id"],
        recurring_streak=row["recurring_streak"] or 0,
        renegotiation_count=row["renegotiation_count"] or 0,
        original_due_date=row["original_due_date"],
        last_renegotiated_at=row["last_renegotiated_at"],
        parent_task_id=row["parent_task_id"],
        created_at=row["created_at"],
    )


def _row_to_reminder(row) -> Reminder:
    return Reminder(
        id=row["id"],
        user_id=row["user_id"],
        task_id=row["task_id"],
        remind_at=row["remind_at"],
        dismissed_at=row["dismissed_at"],
        created_at=row["created_at"],
    )


# Task reads

def get_task_db(user_id: str, task_id: str) -> Optional[Task]:
    """Fetch one task, scoped to its owner."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND user_id = ?",
            (task_id, user_id)
        ).fetchone()
        return _row_to_task(row) if row else None


def get_tasks_db(user_id: str) -> list[Task]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks WHERE user_id = ? ORDER BY due_date IS NULL, due_date, created_at, rowid",
            (user_id,)
        ).fetchall()
        return [_row_to_task(row) for row in rows]


def get_active_tasks_due_before_db(user_id: str, before: date) -> list[Task]:
    """Active tasks whose due date is strictly before the given date, oldest due first."""
    with get_db() as conn:
        rows = conn.execute(
            """SELECT * FROM tasks
               WHERE user_id = ? AND status = 'active'
                 AND due_date IS NOT NULL AND due_date < ?
               ORDER BY due_date, created_at""",
            (user_id, before.isoformat())
        ).fetchall()
        return [_row_to_task(row) for row in rows]


def find_occurrence_db(user_id: str, recurrence_parent_id: str, due_date: date) -> Optional[Task]:
    """Find the generated occurrence of a series for a given due date."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM tasks WHERE user_id = ? AND recurrence_parent_id = ? AND due_date = ?",
            (user_id, recurrence_parent_id, due_date.isoformat())
        ).fetchone()
        return _row_to_task(row) if row else None


# Task writes

def create_task_db(
    task_id: str,
    user_id: str,
    title: str,
    category: str = "T",
    priority: Optional[int] = None,
    due_date: Optional[date] = None,
    due_time: Optional[str] = None,
    is_recurring: bool = False,
    recurrence_rule: Optional[RecurrenceRule] = None,
    recurrence_parent_id: Optional[str] = None,
    recurring_streak: int = 0,
    parent_task_id: Optional[str] = None,
) -> Task:
    """Insert a new active task.
    Raises sqlite3.IntegrityError if the series already has a row for due_date.
    """
    created_at = _now_iso()
    with get_db() as conn:
        conn.execute(
            """INSERT INTO tasks
               (id, user_id, title, category, priority, status, resolved_at, due_date, due_time,
                is_recurring, recurrence_rule, recurrence_parent_id, recurring_streak,
                renegotiation_count, parent_task_id, created_at)
               VALUES (?, ?, ?, ?, ?, 'active', NULL, ?, ?, ?, ?, ?, ?, 0, ?, ?)""",
            (
                task_id, user_id, title, category, priority,
                _to_db_value(due_date), due_time,
                int(is_recurring), _to_db_value(recurrence_rule), recurrence_parent_id,
                recurring_streak, parent_task_id, created_at,
            )
        )
        conn.commit()

    return Task(
        id=task_id,
        user_id=user_id,
        title=title,
        category=category,
        priority=priority,
        due_date=due_date,
        due_time=due_time,
        is_recurring=is_recurring,
        recurrence_rule=recurrence_rule,
        recurrence_parent_id=recurrence_parent_id,
        recurring_streak=recurring_streak,
        parent_task_id=parent_task_id,
        created_at=created_at,
    )


def update_task_if_db(
    user_id: str,
    task_id: str,
    changes: dict[str, Any],
    *,
    status_is: Optional[str] = None,
    renegotiation_count: Optional[int] = None,
) -> bool:
    """
    Conditional single-row update.

    Applies changes only if the row still matches the guard:
      status_is            -> current status == status_is
      renegotiation_count  -> current renegotiation_count == renegotiation_count

    Returns True if this caller changed the row, False if the guard no longer
    matched (another request got there first) or the row doesn't exist.
    """
    unknown = set(changes) - TASK_UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Not updatable: {sorted(unknown)}")
    if not changes:
        raise ValueError("No changes given")

    set_clause = ", ".join(f"{field} = ?" for field in changes)
    params = [_to_db_value(value) for value in changes.values()]
    where = "id = ? AND user_id = ?"
    params += [task_id, user_id]

    if status_is is not None:
        where += " AND status = ?"
        params.append(_to_db_value(status_is))
    if renegotiation_count is not None:
        where += " AND renegotiation_count = ?"
        params.append(renegotiation_count)

    with get_db() as conn:
        cursor = conn.execute(f"UPDATE tasks SET {set_clause} WHERE {where}", params)
        conn.commit()
        return cursor.rowcount == 1


# Reminders

def create_reminder_db(
    reminder_id: str,
    user_id: str,
    task_id: str,
    remind_at: Optional[datetime] = None,
) -> Reminder:
    created_at = _now_iso()
    with get_db() as conn:
        conn.execute(
            """INSERT INTO reminders (id, user_id, task_id, remind_at, dismissed_at, created_at)
               VALUES (?, ?, ?, ?, NULL, ?)""",
            (reminder_id, user_id, task_id, _to_db_value(remind_at), created_at)
        )
        conn.commit()
    return Reminder(
        id=reminder_id,
        user_id=user_id,
        task_id=task_id,
        remind_at=remind_at,
        created_at=created_at,
    )


def get_reminders_db(user_id: str, task_id: str) -> list[Reminder]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM reminders WHERE user_id = ? AND task_id = ? ORDER BY created_at, rowid",
            (user_id, task_id)
        ).fetchall()
        return [_row_to_reminder(row) for row in rows]


def dismiss_reminders_db(user_id: str, task_id: str, dismissed_at: datetime) -> int:
    """Dismiss every undismissed reminder for a task in one statement. Returns how many changed."""
    with get_db() as conn:
        cursor = conn.execute(
            """UPDATE reminders SET dismissed_at = ?
               WHERE user_id = ? AND task_id = ? AND dismissed_at IS NULL""",
            (_to_db_value(dismissed_at), user_id, task_id)
        )
        conn.commit()
        return cursor.rowcount


# Renegotiation history

def record_renegotiation_db(
    user_id: str,
    task_id: str,
    action: str,
    reason_code: str,
    from_due_date: Optional[date],
    to_due_date: Optional[date],
    reason_text: Optional[str] = None,
    split_into_task_ids: Optional[list[str]] = None,
) -> str:
    renegotiation_id = str(uuid.uuid4())
    with get_db() as conn:
        conn.execute(
            """INSERT INTO task_renegotiations
               (id, task_id, user_id, action, from_due_date, to_due_date,
                reason_code, reason_text, split_into_task_ids, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                renegotiation_id, task_id, user_id, _to_db_value(action),
                _to_db_value(from_due_date), _to_db_value(to_due_date),
                _to_db_value(reason_code), reason_text,
                json.dumps(split_into_task_ids) if split_into_task_ids else None,
                datetime.now().isoformat(timespec="microseconds"),
            )
        )
        conn.commit()
    return renegotiation_id


def get_reason_history_db(user_id: str, task_id: str, limit: int = 10) -> list[str]:
    """Most recent reason codes for a task, oldest first."""
    return get_reason_histories_db(user_id, [task_id], limit).get(task_id, [])


def get_reason_histories_db(user_id: str, task_ids: list[str], limit: int = 10) -> dict[str, list[str]]:
    """Reason code history for several tasks: {task_id: [oldest, ..., newest]}, last `limit` each."""
    if not task_ids:
        return {}
    placeholders = ",".join("?" for _ in task_ids)
    with get_db() as conn:
        rows = conn.execute(
            f"""SELECT task_id, reason_code FROM task_renegotiations
                WHERE user_id = ? AND task_id IN ({placeholders})
                ORDER BY created_at DESC, rowid DESC""",
            (user_id, *task_ids)
        ).fetchall()

    newest_first: dict[str, list[str]] = {}
    for row in rows:
        reasons = newest_first.setdefault(row["task_id"], [])
        if len(reasons) < limit:
            reasons.append(row["reason_code"])
    return {task_id: list(reversed(reasons)) for task_id, reasons in newest_first.items()}
