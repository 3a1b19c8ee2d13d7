"""
Overdue scanning: which active tasks have a due date before today, most days first.
Comparisons are date-only; time of day never matters.
"""
from datetime import date, datetime
from typing import NamedTuple, Optional, Union

from models import Task, TaskStatus
from supportive_copy import DAYS_PAST_DUE_COPY


class OverdueEntry(NamedTuple):
    task: Task
    days_overdue: int


def _as_date(now: Union[date, datetime]) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(now, datetime):
        return now.date()
    return now


def days_overdue(due_date: Optional[date], now: Union[date, datetime]) -> int:
    """Calendar days since due_date; 0 for today, future dates, or no date."""
    if due_date is None:
        return 0
    return max(0, (_as_date(now) - due_date).days)


def is_overdue(task: Task, now: Union[date, datetime]) -> bool:
    if task.due_date is None or task.status != TaskStatus.ACTIVE:
        return False
    return task.due_date < _as_date(now)


def scan_overdue(tasks: list[Task], now: Union[date, datetime]) -> list[OverdueEntry]:
    """Overdue tasks sorted most-overdue-first; ties keep their input order."""
    entries = [
        OverdueEntry(task, days_overdue(task.due_date, now))
        for task in tasks
        if is_overdue(task, now)
    ]
    # sorted() is stable
    return sorted(entries, key=lambda entry: entry.days_overdue, reverse=True)


def describe_days_past_due(days: int) -> str:
    if days <= 0:
        return DAYS_PAST_DUE_COPY["today"]
    if days == 1:
        return DAYS_PAST_DUE_COPY["yesterday"]
    if days < 7:
        return DAYS_PAST_DUE_COPY["days"].format(days=days)
    if days < 14:
        return DAYS_PAST_DUE_COPY["over_a_week"]
    if days < 30:
        return DAYS_PAST_DUE_COPY["weeks"].format(weeks=days // 7)
    return DAYS_PAST_DUE_COPY["over_a_month"]
