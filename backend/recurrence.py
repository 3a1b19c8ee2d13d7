"""
Recurrence date arithmetic.

Pure functions over (last due date, rule): nothing here reads the clock or
the database, so results depend only on the inputs.
"""
from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from models import Frequency, RecurrenceRule
from supportive_copy import RECURRENCE_COPY


def next_occurrence(last_due_date: Optional[date], rule: RecurrenceRule) -> Optional[date]:
    """
    Calculate the due date of the next occurrence.

    Monthly rules keep the day of month, clamped to the last day of the target
    month (Jan 31 + 1 month -> Feb 28/29, never March).
    Returns None when there is no last due date or the series has ended.
    """
    if last_due_date is None:
        return None

    interval = rule.interval

    if rule.frequency == Frequency.DAILY:
        next_date = last_due_date + timedelta(days=interval)
    elif rule.frequency == Frequency.WEEKLY:
        next_date = last_due_date + timedelta(weeks=interval)
    elif rule.frequency == Frequency.MONTHLY:
        # relativedelta clamps the day to the month length
        next_date = last_due_date + relativedelta(months=interval)
    else:
        return None

    if rule.end_date is not None and next_date > rule.end_date:
        return None

    return next_date


def describe_rule(rule: RecurrenceRule) -> str:
    """Human-readable rule, e.g. "Every 2 weeks"."""
    single, plural = RECURRENCE_COPY[rule.frequency.value]
    if rule.interval == 1:
        return single
    return plural.format(interval=rule.interval)
