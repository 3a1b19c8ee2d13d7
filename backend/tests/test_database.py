"""
Tests for database.py - task rows, conditional updates, reminders, renegotiation history.
"""
import pytest
import sqlite3
import sys
import os
from datetime import date, datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import (
    create_reminder_db,
    create_task_db,
    dismiss_reminders_db,
    find_occurrence_db,
    get_active_tasks_due_before_db,
    get_reason_histories_db,
    get_reason_history_db,
    get_reminders_db,
    get_task_db,
    get_tasks_db,
    record_renegotiation_db,
    update_task_if_db,
)
from models import Frequency, RecurrenceRule, TaskStatus

USER = "user-1"
OTHER_USER = "user-2"
NOW = datetime(2025, 3, 10, 14, 0)


class TestTaskRows:
    """Tests for creating and reading tasks."""

    def test_create_task_basic(self, test_db):
        """New tasks start active with no resolution."""
        task = create_task_db("id-1", USER, "Buy groceries")

        assert task.status == TaskStatus.ACTIVE
        assert task.resolved_at is None
        assert task.completed_at is None
        assert task.recurring_streak == 0
        assert task.renegotiation_count == 0
        assert get_task_db(USER, "id-1").model_dump() == task.model_dump()

    def test_create_recurring_task(self, test_db):
        """Recurrence rule round-trips through its JSON column."""
        rule = RecurrenceRule(frequency=Frequency.WEEKLY, interval=2, end_date=date(2025, 12, 31))
        create_task_db("id-1", USER, "Water plants", due_date=date(2025, 3, 3), is_recurring=True, recurrence_rule=rule)

        task = get_task_db(USER, "id-1")
        assert task.is_recurring is True
        assert task.recurrence_rule == rule
        assert task.due_date == date(2025, 3, 3)

    def test_tasks_scoped_to_owner(self, test_db):
        create_task_db("id-1", USER, "Mine")
        create_task_db("id-2", OTHER_USER, "Theirs")

        assert get_task_db(USER, "id-2") is None
        assert [t.id for t in get_tasks_db(USER)] == ["id-1"]

    def test_get_tasks_ordered_by_due_date(self, test_db):
        """Dated tasks first, soonest first; undated tasks last."""
        create_task_db("undated", USER, "Someday")
        create_task_db("late-march", USER, "B", due_date=date(2025, 3, 20))
        create_task_db("early-march", USER, "A", due_date=date(2025, 3, 1))

        assert [t.id for t in get_tasks_db(USER)] == ["early-march", "late-march", "undated"]

    def test_active_tasks_due_before(self, test_db):
        create_task_db("past", USER, "Past", due_date=date(2025, 3, 1))
        create_task_db("today", USER, "Today", due_date=date(2025, 3, 10))
        create_task_db("done", USER, "Done", due_date=date(2025, 3, 2))
        update_task_if_db(USER, "done", {"status": TaskStatus.DONE, "resolved_at": NOW})

        tasks = get_active_tasks_due_before_db(USER, date(2025, 3, 10))

        assert [t.id for t in tasks] == ["past"]

    def test_series_occurrence_unique(self, test_db):
        """A series can only have one row per due date."""
        create_task_db("next-1", USER, "Gym", due_date=date(2025, 3, 11), recurrence_parent_id="root")

        with pytest.raises(sqlite3.IntegrityError):
            create_task_db("next-2", USER, "Gym", due_date=date(2025, 3, 11), recurrence_parent_id="root")

        found = find_occurrence_db(USER, "root", date(2025, 3, 11))
        assert found.id == "next-1"
        assert find_occurrence_db(USER, "root", date(2025, 3, 12)) is None

    def test_resolution_check_constraint(self, test_db):
        """The table refuses a non-active status without a resolution time."""
        create_task_db("id-1", USER, "Task")

        with pytest.raises(sqlite3.IntegrityError):
            update_task_if_db(USER, "id-1", {"status": TaskStatus.DONE})


class TestConditionalUpdate:
    """Tests for update_task_if_db guards."""

    def test_status_guard_wins_once(self, test_db):
        create_task_db("id-1", USER, "Task")
        changes = {"status": TaskStatus.DONE, "resolved_at": NOW}

        assert update_task_if_db(USER, "id-1", changes, status_is=TaskStatus.ACTIVE) is True
        assert update_task_if_db(USER, "id-1", changes, status_is=TaskStatus.ACTIVE) is False

        task = get_task_db(USER, "id-1")
        assert task.status == TaskStatus.DONE
        assert task.completed_at == NOW

    def test_renegotiation_count_guard(self, test_db):
        create_task_db("id-1", USER, "Task")

        assert update_task_if_db(USER, "id-1", {"renegotiation_count": 1}, renegotiation_count=0) is True
        assert update_task_if_db(USER, "id-1", {"renegotiation_count": 1}, renegotiation_count=0) is False
        assert get_task_db(USER, "id-1").renegotiation_count == 1

    def test_other_owner_matches_nothing(self, test_db):
        create_task_db("id-1", USER, "Task")

        assert update_task_if_db(OTHER_USER, "id-1", {"due_date": date(2025, 4, 1)}) is False
        assert get_task_db(USER, "id-1").due_date is None

    def test_clears_values(self, test_db):
        create_task_db("id-1", USER, "Task", due_date=date(2025, 3, 1))

        update_task_if_db(USER, "id-1", {"due_date": None})

        assert get_task_db(USER, "id-1").due_date is None

    @pytest.mark.parametrize("changes", [{}, {"title": "Renamed"}, {"user_id": OTHER_USER}])
    def test_rejects_unknown_or_empty_changes(self, test_db, changes):
        create_task_db("id-1", USER, "Task")

        with pytest.raises(ValueError):
            update_task_if_db(USER, "id-1", changes)


class TestReminders:

    def test_dismiss_only_undismissed(self, test_db):
        create_task_db("id-1", USER, "Task")
        create_reminder_db("r-1", USER, "id-1")
        create_reminder_db("r-2", USER, "id-1", remind_at=datetime(2025, 3, 10, 9, 0))
        create_reminder_db("r-3", USER, "other-task")

        assert dismiss_reminders_db(USER, "id-1", NOW) == 2
        assert dismiss_reminders_db(USER, "id-1", datetime(2025, 3, 11)) == 0

        assert [r.dismissed_at for r in get_reminders_db(USER, "id-1")] == [NOW, NOW]
        assert get_reminders_db(USER, "other-task")[0].dismissed_at is None

    def test_dismiss_scoped_to_owner(self, test_db):
        create_reminder_db("r-1", USER, "id-1")

        assert dismiss_reminders_db(OTHER_USER, "id-1", NOW) == 0
        assert get_reminders_db(USER, "id-1")[0].dismissed_at is None


class TestRenegotiationHistory:

    def test_history_oldest_first(self, test_db):
        for reason in ("underestimated", "blocked", "low_energy"):
            record_renegotiation_db(USER, "id-1", "reschedule", reason, date(2025, 3, 1), date(2025, 3, 12))

        assert get_reason_history_db(USER, "id-1") == ["underestimated", "blocked", "low_energy"]

    def test_history_limit_keeps_newest(self, test_db):
        for i in range(12):
            record_renegotiation_db(USER, "id-1", "park", "other" if i < 10 else "forgot", None, None)

        history = get_reason_history_db(USER, "id-1", limit=3)

        assert history == ["other", "forgot", "forgot"]

    def test_histories_for_several_tasks(self, test_db):
        record_renegotiation_db(USER, "a", "park", "blocked", None, None)
        record_renegotiation_db(USER, "b", "drop", "forgot", None, None)
        record_renegotiation_db(OTHER_USER, "a", "drop", "other", None, None)

        histories = get_reason_histories_db(USER, ["a", "b", "c"])

        assert histories == {"a": ["blocked"], "b": ["forgot"]}
        assert get_reason_histories_db(USER, []) == {}

    def test_split_ids_stored(self, test_db):
        renegotiation_id = record_renegotiation_db(
            USER, "id-1", "split", "underestimated", None, None,
            reason_text="too big", split_into_task_ids=["s-1", "s-2"],
        )

        conn = sqlite3.connect(test_db)
        row = conn.execute(
            "SELECT split_into_task_ids, reason_text FROM task_renegotiations WHERE id = ?",
            (renegotiation_id,)
        ).fetchone()
        conn.close()

        assert row == ('["s-1", "s-2"]', "too big")
