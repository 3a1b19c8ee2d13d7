"""
Task status transitions: complete, skip, drop and revert to active.

Every transition is two phases:
1. One conditional write, guarded by the status that was read. The database
   decides who wins when two requests race; the loser re-reads and returns
   the row as the winner left it. A storage error here aborts with nothing
   changed.
2. Best-effort side effects: the next occurrence of a recurring task and the
   reminder cascade. Their errors are logged and returned as warnings on the
   result.

The next occurrence is found-or-created by every caller that sees the task
in its settled state, winner or not. The unique series index keeps that to
one row, so all callers report the same occurrence whatever the timing.
"""
import logging
import sqlite3
import uuid
from datetime import date, datetime
from typing import Any, Optional

import database
import reminders
from errors import NotFound, PersistenceFailure, RaceNoOp, ValidationError
from models import Task, TaskStatus, TransitionResult
from recurrence import describe_rule, next_occurrence
from streaks import StreakTransition, apply_transition, transition_for_status
from supportive_copy import ERROR_MESSAGES, WARNING_MESSAGES

logger = logging.getLogger(__name__)

# Parking is a renegotiation; it carries a reason and clears the due date
DIRECT_STATUSES = (TaskStatus.ACTIVE, TaskStatus.DONE, TaskStatus.DROPPED, TaskStatus.SKIPPED)

# Statuses whose recurring tasks roll forward to a next occurrence
ROLLING_STATUSES = (TaskStatus.DONE, TaskStatus.SKIPPED)


def load_task(user_id: str, task_id: str) -> Task:
    try:
        task = database.get_task_db(user_id, task_id)
    except sqlite3.Error as e:
        logger.exception("Task read failed task=%s", task_id)
        raise PersistenceFailure(ERROR_MESSAGES["save_unavailable"]) from e
    if task is None:
        raise NotFound(ERROR_MESSAGES["task_not_found"])
    return task


def apply_conditional_write(
    user_id: str,
    task_id: str,
    changes: dict[str, Any],
    **guard: Any,
) -> None:
    """
    Issue the single guarded write for a transition.
    Raises RaceNoOp if the guard no longer matched, PersistenceFailure on storage errors.
    """
    try:
        won = database.update_task_if_db(user_id, task_id, changes, **guard)
    except sqlite3.Error as e:
        logger.exception("Task write failed task=%s", task_id)
        raise PersistenceFailure(ERROR_MESSAGES["save_unavailable"]) from e
    if not won:
        raise RaceNoOp(f"Task {task_id} was already updated by another request")


def complete_task(user_id: str, task_id: str, now: Optional[datetime] = None) -> TransitionResult:
    """Mark a task done. Completing a task that is already done is a no-op."""
    return transition_task(user_id, task_id, TaskStatus.DONE, now=now)


def is_allowed_transition(current: TaskStatus, target: TaskStatus) -> bool:
    """Active tasks can be resolved; resolved or parked tasks can only go back to active."""
    if current == TaskStatus.ACTIVE:
        return target != TaskStatus.ACTIVE
    return target == TaskStatus.ACTIVE


def transition_task(
    user_id: str,
    task_id: str,
    target: TaskStatus,
    now: Optional[datetime] = None,
) -> TransitionResult:
    if target not in DIRECT_STATUSES:
        raise ValidationError(ERROR_MESSAGES["status_not_allowed"])

    now = now or datetime.now()
    task = load_task(user_id, task_id)

    if task.status == target:
        return _settled_result(task)
    if not is_allowed_transition(task.status, target):
        raise ValidationError(ERROR_MESSAGES["transition_not_allowed"])

    changes: dict[str, Any] = {
        "status": target,
        "resolved_at": None if target == TaskStatus.ACTIVE else now,
    }

    next_due = _next_due(task, target)

    streak_transition = transition_for_status(target)
    if streak_transition == StreakTransition.SKIP:
        changes["recurring_streak"] = apply_transition(task.recurring_streak, streak_transition)
    elif streak_transition == StreakTransition.COMPLETE and next_due is not None:
        changes["recurring_streak"] = apply_transition(task.recurring_streak, streak_transition)

    try:
        apply_conditional_write(user_id, task_id, changes, status_is=task.status)
    except RaceNoOp:
        current = load_task(user_id, task_id)
        logger.info("Task %s already %s; returning current state", task_id, current.status.value)
        return _settled_result(current)

    updated = load_task(user_id, task_id)
    logger.info("Task %s %s -> %s", task_id, task.status.value, target.value)

    warnings: list[str] = []
    spawned = None
    if next_due is not None:
        spawned, warning = _spawn_next_occurrence(updated, next_due, _carried_streak(updated))
        if warning:
            warnings.append(warning)

    dismissed = 0
    if target == TaskStatus.DONE:
        outcome = reminders.dismiss_for_task(user_id, task_id, now)
        dismissed = outcome.dismissed
        if outcome.warning:
            warnings.append(outcome.warning)

    return _result(updated, next_occurrence=spawned, reminders_dismissed=dismissed, warnings=warnings)


def _next_due(task: Task, status: TaskStatus) -> Optional[date]:
    if status in ROLLING_STATUSES and task.is_recurring and task.recurrence_rule:
        return next_occurrence(task.due_date, task.recurrence_rule)
    return None


def _carried_streak(task: Task) -> int:
    # A skip breaks the chain; a completion carries the extended streak forward
    return task.recurring_streak if task.status == TaskStatus.DONE else 0


def _result(task: Task, **kwargs: Any) -> TransitionResult:
    repeats = describe_rule(task.recurrence_rule) if task.is_recurring and task.recurrence_rule else None
    return TransitionResult(task=task, repeats=repeats, **kwargs)


def _settled_result(task: Task) -> TransitionResult:
    """
    Result for a task some request already moved to its current status.
    Reminders were handled by that request; the series' next row is found or created.
    """
    next_due = _next_due(task, task.status)
    if next_due is None:
        return _result(task)
    spawned, warning = _spawn_next_occurrence(task, next_due, _carried_streak(task))
    return _result(task, next_occurrence=spawned, warnings=[warning] if warning else [])


def _spawn_next_occurrence(task: Task, next_due: date, streak: int) -> tuple[Optional[Task], Optional[str]]:
    """
    Create the next row of a recurring series.
    If the series already has a row for next_due, that row is returned instead.
    Errors are not retried here: a missing occurrence is better than a duplicate.
    """
    parent_id = task.recurrence_parent_id or task.id
    try:
        created = database.create_task_db(
            str(uuid.uuid4()),
            task.user_id,
            task.title,
            category=task.category,
            priority=task.priority,
            due_date=next_due,
            due_time=task.due_time,
            is_recurring=True,
            recurrence_rule=task.recurrence_rule,
            recurrence_parent_id=parent_id,
            recurring_streak=streak,
        )
    except sqlite3.IntegrityError:
        logger.info("Series %s already has an occurrence on %s", parent_id, next_due)
        try:
            return database.find_occurrence_db(task.user_id, parent_id, next_due), None
        except sqlite3.Error:
            logger.exception("Next occurrence lookup failed task=%s", task.id)
            return None, WARNING_MESSAGES["next_occurrence_unavailable"]
    except sqlite3.Error:
        logger.exception("Next occurrence creation failed task=%s due=%s", task.id, next_due)
        return None, WARNING_MESSAGES["next_occurrence_unavailable"]

    logger.info("Created next occurrence %s of series %s due %s", created.id, parent_id, next_due)
    return created, None
