"""
Reminder cascade: once a task is done, its outstanding reminders are dismissed.

This runs after the status write has already been committed, so it never
raises. A storage error comes back as a warning on the outcome and the
caller reports it without undoing the transition. Re-running is safe since
already-dismissed reminders are left alone.
"""
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import database
from supportive_copy import WARNING_MESSAGES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CascadeOutcome:
    dismissed: int = 0
    warning: Optional[str] = None


def dismiss_for_task(user_id: str, task_id: str, now: Optional[datetime] = None) -> CascadeOutcome:
    now = now or datetime.now()
    try:
        dismissed = database.dismiss_reminders_db(user_id, task_id, now)
    except sqlite3.Error:
        logger.exception("Reminder dismissal failed task=%s", task_id)
        return CascadeOutcome(warning=WARNING_MESSAGES["reminders_unavailable"])

    if dismissed:
        logger.debug("Dismissed %d reminders task=%s", dismissed, task_id)
    return CascadeOutcome(dismissed=dismissed)
