from enum import Enum

from models import TaskStatus


class StreakTransition(str, Enum):
    COMPLETE = "complete"
    SKIP = "skip"
    OTHER = "other"  # drop, park, revert, manual edits


def apply_transition(current_streak: int, transition: StreakTransition) -> int:
    """Completion extends the streak, a skip breaks it, anything else leaves it alone."""
    if transition == StreakTransition.COMPLETE:
        return current_streak + 1
    if transition == StreakTransition.SKIP:
        return 0
    return current_streak


def transition_for_status(status: TaskStatus) -> StreakTransition:
    if status == TaskStatus.DONE:
        return StreakTransition.COMPLETE
    if status == TaskStatus.SKIPPED:
        return StreakTransition.SKIP
    return StreakTransition.OTHER
