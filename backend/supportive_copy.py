# User-facing copy for the lifecycle core.
# Everything a person reads lives here so the wording can be scanned in one place.
# Keep it supportive: no judgment about missed dates, no pressure words.

ACTION_COPY = {
    "reschedule": {
        "label": "Still important, reschedule",
        "description": "Move to a new date that works better",
        "supportive_message": "Plans change, and that's okay. Let's find a better time.",
        "success": "Task rescheduled",
    },
    "split": {
        "label": "Break into smaller steps",
        "description": "Create smaller, more manageable subtasks",
        "supportive_message": "Sometimes big tasks need to be broken down. That's smart planning.",
        "success": "Task broken down into smaller steps",
    },
    "park": {
        "label": "Not important now, park",
        "description": "Set aside for another time, without pressure",
        "supportive_message": "It's wise to focus on what matters most right now.",
        "success": "Task parked for another time",
    },
    "drop": {
        "label": "No longer relevant, drop",
        "description": "Remove this task from your list",
        "supportive_message": "Letting go of tasks that no longer serve you is a sign of clarity.",
        "success": "Task removed from your list",
    },
}

REASON_COPY = {
    "underestimated": {"label": "I underestimated the effort", "short_label": "Underestimated"},
    "interruption": {"label": "Got interrupted or distracted", "short_label": "Interrupted"},
    "low_energy": {"label": "Didn't have the energy", "short_label": "Low energy"},
    "blocked": {"label": "Waiting on something else", "short_label": "Blocked"},
    "changed_priorities": {"label": "Other things took priority", "short_label": "Priorities changed"},
    "forgot": {"label": "It slipped my mind", "short_label": "Slipped my mind"},
    "life_happened": {"label": "Life happened", "short_label": "Life happened"},
    "other": {"label": "Something else", "short_label": "Other"},
}

PATTERN_SUGGESTIONS = {
    "heavy": "This task has been replanned many times. It may not be worth doing, and letting it go is a fine choice.",
    "underestimated": "This keeps taking more effort than expected. Splitting it into smaller subtasks can help.",
    "low_energy": "Energy is often the blocker here. Try moving it to a higher-energy slot in your day.",
    "interruption": "Interruptions keep getting in the way. A protected block of time might help.",
    "blocked": "This often waits on something else. Clearing what it depends on could free it up.",
    "changed_priorities": "Priorities keep shifting around this one. It's worth checking if it still matters.",
    "forgot": "This one slips out of view. A reminder or a more visible spot could help.",
    "life_happened": "Life happens. Building a little extra room into plans can help.",
    "default": "Consider whether this task is still serving you.",
}

SUPPORTIVE_COPY = {
    "modal_title": "Let's adjust this task",
    "modal_subtitle": "Plans change, and that's okay. What would you like to do?",
    "no_judgment": "No judgment here. Life happens.",
    "encouragement": [
        "Making adjustments is part of the process.",
        "Flexibility is a superpower.",
        "You're still making progress.",
        "One step at a time.",
        "Self-compassion leads to better outcomes.",
    ],
}

# Relative phrases for how long ago a due date passed
DAYS_PAST_DUE_COPY = {
    "today": "Due today",
    "yesterday": "Since yesterday",
    "days": "{days} days ago",
    "over_a_week": "Over a week ago",
    "weeks": "{weeks} weeks ago",
    "over_a_month": "Over a month ago",
}

RECURRENCE_COPY = {
    "daily": ("Every day", "Every {interval} days"),
    "weekly": ("Every week", "Every {interval} weeks"),
    "monthly": ("Every month", "Every {interval} months"),
}

ERROR_MESSAGES = {
    "task_not_found": "We couldn't find that task.",
    "status_not_allowed": "A task can be set to active, done, dropped or skipped here. Use a renegotiation to park it.",
    "transition_not_allowed": "Move this task back to active first, then choose what to do with it.",
    "action_required": "Choose what you'd like to do with this task.",
    "action_unknown": "Choose one of: reschedule, split, park or drop.",
    "reason_required": "Pick a reason so we can spot patterns for you.",
    "reason_unknown": "Pick one of the listed reasons.",
    "date_required": "Choose a new date to reschedule to.",
    "date_unreadable": "That date couldn't be read. Use the YYYY-MM-DD format.",
    "date_not_future": "Pick a date after today.",
    "subtasks_required": "Add at least one smaller step.",
    "subtasks_too_many": "You can add up to 10 smaller steps at a time.",
    "subtask_title_required": "Every step needs a title.",
    "subtask_title_too_long": "Step titles can be up to 500 characters.",
    "rate_limited": "That's a lot of requests at once. Give it a minute and try again.",
    "save_unavailable": "The change couldn't be saved right now. Please try again.",
    "caller_required": "Sign in to continue.",
}

# Reported alongside a successful transition when a secondary step did not go through
WARNING_MESSAGES = {
    "next_occurrence_unavailable": "The next task in this series couldn't be created yet.",
    "reminders_unavailable": "Reminders for this task couldn't be cleared yet.",
    "subtasks_unavailable": "The smaller steps couldn't be created yet.",
    "history_unavailable": "This change couldn't be added to the task's history yet.",
}

ALL_COPY_TABLES = (
    ACTION_COPY,
    REASON_COPY,
    PATTERN_SUGGESTIONS,
    SUPPORTIVE_COPY,
    DAYS_PAST_DUE_COPY,
    RECURRENCE_COPY,
    ERROR_MESSAGES,
    WARNING_MESSAGES,
)
