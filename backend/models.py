from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel


class TaskStatus(str, Enum):
    ACTIVE = "active"
    DONE = "done"
    DROPPED = "dropped"
    SKIPPED = "skipped"
    PARKED = "parked"  # set aside through renegotiation, no due date


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RenegotiationAction(str, Enum):
    RESCHEDULE = "reschedule"
    SPLIT = "split"
    PARK = "park"
    DROP = "drop"


class ReasonCode(str, Enum):
    UNDERESTIMATED = "underestimated"
    INTERRUPTION = "interruption"
    LOW_ENERGY = "low_energy"
    BLOCKED = "blocked"
    CHANGED_PRIORITIES = "changed_priorities"
    FORGOT = "forgot"
    LIFE_HAPPENED = "life_happened"
    OTHER = "other"


class RecurrenceRule(BaseModel):
    frequency: Frequency
    interval: int = Field(default=1, ge=1)
    end_date: Optional[date] = None


class Task(BaseModel):
    id: str
    user_id: str
    title: str
    category: str = "T"
    priority: Optional[int] = None
    status: TaskStatus = TaskStatus.ACTIVE
    # Paired with status: when the task left "active". None iff status is active.
    resolved_at: Optional[datetime] = None
    due_date: Optional[date] = None
    due_time: Optional[str] = None  # HH:MM
    is_recurring: bool = False
    recurrence_rule: Optional[RecurrenceRule] = None
    recurrence_parent_id: Optional[str] = None
    recurring_streak: int = Field(default=0, ge=0)
    renegotiation_count: int = Field(default=0, ge=0)
    original_due_date: Optional[date] = None
    last_renegotiated_at: Optional[datetime] = None
    parent_task_id: Optional[str] = None  # set on subtasks created by a split
    created_at: datetime

    @model_validator(mode="after")
    def _resolution_matches_status(self) -> "Task":
        if (self.status == TaskStatus.ACTIVE) != (self.resolved_at is None):
            raise ValueError("resolved_at must be set exactly when status is not active")
        return self

    def _resolved_as(self, status: TaskStatus) -> Optional[datetime]:
        return self.resolved_at if self.status == status else None

    @computed_field
    @property
    def completed_at(self) -> Optional[datetime]:
        return self._resolved_as(TaskStatus.DONE)

    @computed_field
    @property
    def dropped_at(self) -> Optional[datetime]:
        return self._resolved_as(TaskStatus.DROPPED)

    @computed_field
    @property
    def skipped_at(self) -> Optional[datetime]:
        return self._resolved_as(TaskStatus.SKIPPED)

    @computed_field
    @property
    def parked_at(self) -> Optional[datetime]:
        return self._resolved_as(TaskStatus.PARKED)


class Reminder(BaseModel):
    id: str
    user_id: str
    task_id: str
    remind_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None
    created_at: datetime


class TaskCreate(BaseModel):
    title: str
    category: str = "T"
    priority: Optional[int] = None
    due_date: Optional[date] = None
    due_time: Optional[str] = None  # HH:MM
    is_recurring: bool = False
    recurrence_rule: Optional[RecurrenceRule] = None


class TaskUpdate(BaseModel):
    status: TaskStatus


# Request/response bodies below use camelCase on the wire and accept snake_case too.
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubtaskInput(CamelModel):
    title: str = ""
    estimated_minutes: Optional[int] = None
    due_date: Optional[date] = None


class RenegotiationRequest(CamelModel):
    # action, reason_code and due_date take any JSON value so bad values get
    # our own validation message instead of a schema error
    task_id: str
    action: Any
    reason_code: Any
    reason_text: Optional[str] = None
    due_date: Any = None
    subtasks: Optional[list[SubtaskInput]] = None


class QuickRescheduleRequest(CamelModel):
    task_id: str
    due_date: Any = None
    reason_code: Optional[str] = None


class PatternAnalysis(CamelModel):
    task_id: str
    task_title: str
    renegotiation_count: int
    has_pattern: bool
    most_common_reason: Optional[ReasonCode] = None
    recommended_action: Optional[RenegotiationAction] = None
    recommended_actions: list[RenegotiationAction] = []
    suggestion: Optional[str] = None
    suggested_dates: list[date] = []
    suggested_subtasks: list[SubtaskInput] = []


class TransitionResult(CamelModel):
    task: Task
    next_occurrence: Optional[Task] = None
    reminders_dismissed: int = 0
    repeats: Optional[str] = None  # e.g. "Every 2 weeks"
    # Secondary effects that did not go through; the transition itself stands
    warnings: list[str] = []


class RenegotiationResult(CamelModel):
    task: Task
    message: Optional[str] = None
    renegotiation_id: Optional[str] = None
    subtasks_created: Optional[list[Task]] = None
    pattern_warning: Optional[PatternAnalysis] = None
    reminders_dismissed: int = 0
    warnings: list[str] = []


class ActionOption(CamelModel):
    value: RenegotiationAction
    label: str
    description: str
    supportive_message: str


class ReasonOption(CamelModel):
    value: ReasonCode
    label: str
    short_label: str


class RenegotiationOptions(CamelModel):
    """Choices and wording for a renegotiation dialog."""
    title: str
    subtitle: str
    note: str
    actions: list[ActionOption]
    reasons: list[ReasonOption]
    encouragement: list[str]


class AttentionItem(CamelModel):
    id: str
    title: str
    due_date: date
    days_overdue: int
    renegotiation_count: int
    has_pattern: bool
    recommended_action: Optional[RenegotiationAction] = None
    since: str  # supportive relative phrase, e.g. "3 days ago"
    suggested_dates: list[date] = []


class AttentionList(CamelModel):
    tasks: list[AttentionItem]
    count: int
    # Only filled when asked for
    patterns: Optional[list[PatternAnalysis]] = None
