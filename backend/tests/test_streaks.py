"""
Tests for streaks.py - streak transitions.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import TaskStatus
from streaks import StreakTransition, apply_transition, transition_for_status


class TestApplyTransition:

    @pytest.mark.parametrize("streak", [0, 1, 7, 365])
    def test_complete_increments(self, streak):
        assert apply_transition(streak, StreakTransition.COMPLETE) == streak + 1

    @pytest.mark.parametrize("streak", [0, 1, 7, 365])
    def test_skip_resets(self, streak):
        assert apply_transition(streak, StreakTransition.SKIP) == 0

    @pytest.mark.parametrize("streak", [0, 1, 7, 365])
    def test_other_leaves_unchanged(self, streak):
        assert apply_transition(streak, StreakTransition.OTHER) == streak

    def test_consecutive_completions_count_up(self):
        streak = 0
        for _ in range(5):
            streak = apply_transition(streak, StreakTransition.COMPLETE)
        assert streak == 5
        assert apply_transition(streak, StreakTransition.SKIP) == 0


class TestTransitionForStatus:

    def test_mapping(self):
        assert transition_for_status(TaskStatus.DONE) == StreakTransition.COMPLETE
        assert transition_for_status(TaskStatus.SKIPPED) == StreakTransition.SKIP
        assert transition_for_status(TaskStatus.DROPPED) == StreakTransition.OTHER
        assert transition_for_status(TaskStatus.ACTIVE) == StreakTransition.OTHER
        assert transition_for_status(TaskStatus.PARKED) == StreakTransition.OTHER
