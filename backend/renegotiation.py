"""
Renegotiation: resolving a task some other way than completing it.

Pure parts (pattern analysis, action validators, date suggestions) take
explicit inputs and never touch storage. renegotiate() ties them to the
persisted task, guarded by renegotiation_count so two concurrent
renegotiations can't both apply.
"""
import logging
import sqlite3
import uuid
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Optional

from pydantic import BaseModel

import database
import reminders
from errors import RaceNoOp, ValidationError
from lifecycle import apply_conditional_write, load_task
from models import (
    ActionOption,
    AttentionItem,
    AttentionList,
    PatternAnalysis,
    ReasonCode,
    ReasonOption,
    RenegotiationAction,
    RenegotiationOptions,
    RenegotiationRequest,
    RenegotiationResult,
    SubtaskInput,
    Task,
    TaskStatus,
)
from overdue import describe_days_past_due, scan_overdue
from supportive_copy import (
    ACTION_COPY,
    ERROR_MESSAGES,
    PATTERN_SUGGESTIONS,
    REASON_COPY,
    SUPPORTIVE_COPY,
    WARNING_MESSAGES,
)

logger = logging.getLogger(__name__)

PATTERN_THRESHOLD = 3
HEAVY_PATTERN_THRESHOLD = 5
MAX_SUBTASKS = 10
MAX_SUBTASK_TITLE_LENGTH = 500
DEFAULT_SUBTASK_MINUTES = 30

ACTION_ORDER = [
    RenegotiationAction.RESCHEDULE,
    RenegotiationAction.SPLIT,
    RenegotiationAction.PARK,
    RenegotiationAction.DROP,
]

REASON_RECOMMENDATIONS = {
    ReasonCode.UNDERESTIMATED: RenegotiationAction.SPLIT,
    ReasonCode.LOW_ENERGY: RenegotiationAction.RESCHEDULE,
}


class ActionPlan(BaseModel):
    """Validated outcome of an action: what the task becomes."""
    action: RenegotiationAction
    status: TaskStatus
    due_date: Optional[date] = None
    subtasks: list[SubtaskInput] = []


# Pattern detection

def has_pattern(renegotiation_count: int, threshold: int = PATTERN_THRESHOLD) -> bool:
    return renegotiation_count >= threshold


def most_common_reason(reasons: list[ReasonCode]) -> ReasonCode:
    """
    Most frequent reason in an oldest-first history.
    On a tie, the reason that occurred most recently wins.
    """
    if not reasons:
        return ReasonCode.OTHER
    counts = Counter(reasons)
    last_seen = {reason: index for index, reason in enumerate(reasons)}
    return max(counts, key=lambda reason: (counts[reason], last_seen[reason]))


def recommend_action(reason: ReasonCode, renegotiation_count: int) -> RenegotiationAction:
    if renegotiation_count >= HEAVY_PATTERN_THRESHOLD:
        return RenegotiationAction.DROP
    return REASON_RECOMMENDATIONS.get(reason, RenegotiationAction.DROP)


def pattern_suggestion(reason: ReasonCode, renegotiation_count: int) -> str:
    if renegotiation_count >= HEAVY_PATTERN_THRESHOLD:
        return PATTERN_SUGGESTIONS["heavy"]
    return PATTERN_SUGGESTIONS.get(reason.value, PATTERN_SUGGESTIONS["default"])


def analyze_pattern(
    task_id: str,
    task_title: str,
    renegotiation_count: int,
    reasons: list[ReasonCode],
) -> PatternAnalysis:
    """Decide whether a task's renegotiation history forms a pattern, and what to do about it."""
    if not has_pattern(renegotiation_count):
        return PatternAnalysis(
            task_id=task_id,
            task_title=task_title,
            renegotiation_count=renegotiation_count,
            has_pattern=False,
            recommended_actions=list(ACTION_ORDER),
        )

    reason = most_common_reason(reasons)
    recommended = recommend_action(reason, renegotiation_count)
    return PatternAnalysis(
        task_id=task_id,
        task_title=task_title,
        renegotiation_count=renegotiation_count,
        has_pattern=True,
        most_common_reason=reason,
        recommended_action=recommended,
        recommended_actions=[recommended] + [a for a in ACTION_ORDER if a != recommended],
        suggestion=pattern_suggestion(reason, renegotiation_count),
    )


def _known_reasons(raw_reasons: list[str]) -> list[ReasonCode]:
    """Stored history as ReasonCode; codes this version doesn't know count as "other"."""
    known = {code.value for code in ReasonCode}
    return [ReasonCode(r) if r in known else ReasonCode.OTHER for r in raw_reasons]


# Request validation

def parse_action(raw: Any) -> RenegotiationAction:
    if raw is None or raw == "":
        raise ValidationError(ERROR_MESSAGES["action_required"])
    if not isinstance(raw, str):
        raise ValidationError(ERROR_MESSAGES["action_unknown"])
    try:
        return RenegotiationAction(raw)
    except ValueError:
        raise ValidationError(ERROR_MESSAGES["action_unknown"])


def parse_reason(raw: Any) -> ReasonCode:
    if raw is None or raw == "":
        raise ValidationError(ERROR_MESSAGES["reason_required"])
    if not isinstance(raw, str):
        raise ValidationError(ERROR_MESSAGES["reason_unknown"])
    try:
        return ReasonCode(raw)
    except ValueError:
        raise ValidationError(ERROR_MESSAGES["reason_unknown"])


def parse_due_date(raw: Any) -> date:
    """Accepts YYYY-MM-DD or a full ISO datetime (only the date part is kept)."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(ERROR_MESSAGES["date_required"])
    if not isinstance(raw, str):
        raise ValidationError(ERROR_MESSAGES["date_unreadable"])
    value = raw.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        raise ValidationError(ERROR_MESSAGES["date_unreadable"])


def validate_subtasks(subtasks: Optional[list[SubtaskInput]]) -> list[SubtaskInput]:
    if not subtasks:
        raise ValidationError(ERROR_MESSAGES["subtasks_required"])
    if len(subtasks) > MAX_SUBTASKS:
        raise ValidationError(ERROR_MESSAGES["subtasks_too_many"])
    for subtask in subtasks:
        # Titles are stored stripped, so the limits apply to the stripped text
        title = (subtask.title or "").strip()
        if not title:
            raise ValidationError(ERROR_MESSAGES["subtask_title_required"])
        if len(title) > MAX_SUBTASK_TITLE_LENGTH:
            raise ValidationError(ERROR_MESSAGES["subtask_title_too_long"])
    return subtasks


# Action handlers

def prepare_reschedule(raw_due_date: Any, today: date) -> ActionPlan:
    """A new due date must be after today; past dates are rejected, never clamped."""
    new_due = parse_due_date(raw_due_date)
    if new_due <= today:
        raise ValidationError(ERROR_MESSAGES["date_not_future"])
    return ActionPlan(action=RenegotiationAction.RESCHEDULE, status=TaskStatus.ACTIVE, due_date=new_due)


def prepare_park() -> ActionPlan:
    return ActionPlan(action=RenegotiationAction.PARK, status=TaskStatus.PARKED)


def prepare_drop() -> ActionPlan:
    return ActionPlan(action=RenegotiationAction.DROP, status=TaskStatus.DROPPED)


def prepare_split(subtasks: Optional[list[SubtaskInput]]) -> ActionPlan:
    # The parent's content moves into the subtasks, so the parent counts as done
    return ActionPlan(
        action=RenegotiationAction.SPLIT,
        status=TaskStatus.DONE,
        subtasks=validate_subtasks(subtasks),
    )


def prepare_action(action: RenegotiationAction, request: RenegotiationRequest, today: date) -> ActionPlan:
    if action == RenegotiationAction.RESCHEDULE:
        return prepare_reschedule(request.due_date, today)
    if action == RenegotiationAction.SPLIT:
        return prepare_split(request.subtasks)
    if action == RenegotiationAction.PARK:
        return prepare_park()
    return prepare_drop()


# Suggestions

def default_subtasks(title: str, count: int = 2) -> list[SubtaskInput]:
    return [
        SubtaskInput(title=f"{title} - Part {i}", estimated_minutes=DEFAULT_SUBTASK_MINUTES)
        for i in range(1, count + 1)
    ]


def suggest_reschedule_dates(reason: ReasonCode, renegotiation_count: int, today: date) -> list[date]:
    """Candidate new due dates, soonest first, all after today."""
    suggestions = [today + timedelta(days=1)]

    if reason == ReasonCode.LOW_ENERGY:
        # next Saturday, for a rested start
        days_to_saturday = (5 - today.weekday()) % 7 or 7
        suggestions.append(today + timedelta(days=days_to_saturday))
    elif reason == ReasonCode.BLOCKED:
        suggestions.append(today + timedelta(days=3))
    else:
        suggestions.append(today + timedelta(days=7))

    if renegotiation_count >= 2:
        suggestions.append(today + timedelta(days=14))

    return sorted(set(suggestions))


def with_suggestions(analysis: PatternAnalysis, today: date) -> PatternAnalysis:
    """Attach concrete next steps to a detected pattern: dates to move to, and steps if splitting."""
    if not analysis.has_pattern:
        return analysis
    update = {
        "suggested_dates": suggest_reschedule_dates(
            analysis.most_common_reason, analysis.renegotiation_count, today
        ),
    }
    if analysis.recommended_action == RenegotiationAction.SPLIT:
        update["suggested_subtasks"] = default_subtasks(analysis.task_title)
    return analysis.model_copy(update=update)


def renegotiation_options() -> RenegotiationOptions:
    return RenegotiationOptions(
        title=SUPPORTIVE_COPY["modal_title"],
        subtitle=SUPPORTIVE_COPY["modal_subtitle"],
        note=SUPPORTIVE_COPY["no_judgment"],
        actions=[
            ActionOption(
                value=action,
                label=ACTION_COPY[action.value]["label"],
                description=ACTION_COPY[action.value]["description"],
                supportive_message=ACTION_COPY[action.value]["supportive_message"],
            )
            for action in ACTION_ORDER
        ],
        reasons=[
            ReasonOption(
                value=reason,
                label=REASON_COPY[reason.value]["label"],
                short_label=REASON_COPY[reason.value]["short_label"],
            )
            for reason in ReasonCode
        ],
        encouragement=list(SUPPORTIVE_COPY["encouragement"]),
    )


# Orchestration

def renegotiate(user_id: str, request: RenegotiationRequest, now: Optional[datetime] = None) -> RenegotiationResult:
    """
    Apply a renegotiation action to a task.

    Validation happens before anything is read or written. The task write is
    guarded by the renegotiation_count that was read; if another request
    renegotiated the task in between, this one applies nothing and returns
    the task as it now stands.
    """
    now = now or datetime.now()
    action = parse_action(request.action)
    reason = parse_reason(request.reason_code)
    plan = prepare_action(action, request, now.date())

    task = load_task(user_id, request.task_id)

    changes = {
        "status": plan.status,
        "resolved_at": None if plan.status == TaskStatus.ACTIVE else now,
        "due_date": plan.due_date,
        "renegotiation_count": task.renegotiation_count + 1,
        "last_renegotiated_at": now,
        "original_due_date": task.original_due_date or task.due_date,
    }
    try:
        apply_conditional_write(
            user_id, task.id, changes, renegotiation_count=task.renegotiation_count
        )
    except RaceNoOp:
        logger.info("Task %s was renegotiated concurrently; returning current state", task.id)
        return RenegotiationResult(task=load_task(user_id, task.id))

    logger.info("Task %s renegotiated action=%s reason=%s", task.id, action.value, reason.value)
    warnings: list[str] = []

    subtasks_created: list[Task] = []
    if plan.subtasks:
        subtasks_created, warning = _create_subtasks(task, plan.subtasks)
        if warning:
            warnings.append(warning)

    renegotiation_id = None
    try:
        renegotiation_id = database.record_renegotiation_db(
            user_id,
            task.id,
            action.value,
            reason.value,
            from_due_date=task.due_date,
            to_due_date=plan.due_date,
            reason_text=request.reason_text,
            split_into_task_ids=[t.id for t in subtasks_created] or None,
        )
    except sqlite3.Error:
        logger.exception("Renegotiation history write failed task=%s", task.id)
        warnings.append(WARNING_MESSAGES["history_unavailable"])

    dismissed = 0
    if plan.status == TaskStatus.DONE:
        outcome = reminders.dismiss_for_task(user_id, task.id, now)
        dismissed = outcome.dismissed
        if outcome.warning:
            warnings.append(outcome.warning)

    updated = load_task(user_id, task.id)
    analysis = analyze_pattern(
        updated.id,
        updated.title,
        updated.renegotiation_count,
        _reason_history(user_id, task.id, reason, recorded=renegotiation_id is not None),
    )
    if analysis.has_pattern:
        logger.info(
            "Renegotiation pattern task=%s count=%d reason=%s",
            task.id, analysis.renegotiation_count, analysis.most_common_reason.value,
        )

    return RenegotiationResult(
        task=updated,
        message=ACTION_COPY[action.value]["success"],
        renegotiation_id=renegotiation_id,
        subtasks_created=subtasks_created or None,
        pattern_warning=with_suggestions(analysis, now.date()) if analysis.has_pattern else None,
        reminders_dismissed=dismissed,
        warnings=warnings,
    )


def quick_reschedule(
    user_id: str,
    task_id: str,
    raw_due_date: Any,
    raw_reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> RenegotiationResult:
    """Reschedule without the full flow; an unknown or missing reason is recorded as "other"."""
    known = {code.value for code in ReasonCode}
    reason = raw_reason if raw_reason in known else ReasonCode.OTHER.value
    request = RenegotiationRequest(
        task_id=task_id,
        action=RenegotiationAction.RESCHEDULE.value,
        reason_code=reason,
        due_date=raw_due_date,
    )
    return renegotiate(user_id, request, now=now)


def tasks_needing_attention(
    user_id: str,
    now: Optional[datetime] = None,
    include_patterns: bool = False,
) -> AttentionList:
    """
    Overdue active tasks, most days past due first, each with its pattern status
    and a few dates it could move to. With include_patterns, the full analysis
    of every task that shows a pattern is listed as well.
    """
    now = now or datetime.now()
    today = now.date()
    candidates = database.get_active_tasks_due_before_db(user_id, today)
    entries = scan_overdue(candidates, now)
    histories = database.get_reason_histories_db(user_id, [entry.task.id for entry in entries])

    items = []
    patterns = []
    for task, days in entries:
        reasons = _known_reasons(histories.get(task.id, []))
        analysis = analyze_pattern(task.id, task.title, task.renegotiation_count, reasons)
        if analysis.has_pattern:
            patterns.append(with_suggestions(analysis, today))
        items.append(AttentionItem(
            id=task.id,
            title=task.title,
            due_date=task.due_date,
            days_overdue=days,
            renegotiation_count=task.renegotiation_count,
            has_pattern=analysis.has_pattern,
            recommended_action=analysis.recommended_action,
            since=describe_days_past_due(days),
            suggested_dates=suggest_reschedule_dates(
                most_common_reason(reasons), task.renegotiation_count, today
            ),
        ))
    return AttentionList(
        tasks=items,
        count=len(items),
        patterns=patterns if include_patterns else None,
    )


def _reason_history(user_id: str, task_id: str, latest: ReasonCode, recorded: bool) -> list[ReasonCode]:
    try:
        history = _known_reasons(database.get_reason_history_db(user_id, task_id))
    except sqlite3.Error:
        logger.exception("Reason history read failed task=%s", task_id)
        history = []
    if not recorded:
        history.append(latest)
    return history


def _create_subtasks(parent: Task, subtasks: list[SubtaskInput]) -> tuple[list[Task], Optional[str]]:
    created: list[Task] = []
    try:
        for subtask in subtasks:
            created.append(database.create_task_db(
                str(uuid.uuid4()),
                parent.user_id,
                subtask.title.strip(),
                category=parent.category,
                priority=parent.priority,
                due_date=subtask.due_date,
                parent_task_id=parent.id,
            ))
    except sqlite3.Error:
        logger.exception("Subtask creation stopped after %d of %d parent=%s", len(created), len(subtasks), parent.id)
        return created, WARNING_MESSAGES["subtasks_unavailable"]
    return created, None
