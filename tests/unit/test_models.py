"""
Unit tests for the streak domain values.

These tests verify the core value objects and the compliance evaluator
without touching external services (no database, no clock).

Testing philosophy:
- Test behavior, not implementation
- Each test should have a clear "given/when/then" structure
- Use descriptive names that explain what we're testing
- Prefer real objects over mocks where practical
"""

from dataclasses import FrozenInstanceError
from datetime import timedelta

import pytest

from traininglog.core.streaks.compliance import ComplianceEvaluator
from traininglog.core.streaks.models import (
    CompliancePeriod,
    LogEntry,
    TrainingSlot,
)

from helpers import at


def monday_period(**overrides) -> CompliancePeriod:
    """The Monday 19 October 2026 period for a 09:00 slot."""
    slot = TrainingSlot(day_of_week=1, time="09:00")
    fields = dict(
        slot=slot,
        slots=(slot,),
        occurrence=at(10, 19, 9),
        window_start=at(10, 19),
        window_end=at(10, 20, 9),
        is_open=False,
    )
    fields.update(overrides)
    return CompliancePeriod(**fields)


# ---------------------------------------------------------------------------
# TrainingSlot Tests
# ---------------------------------------------------------------------------

class TestTrainingSlot:
    """Tests for the TrainingSlot value object."""

    def test_label_names_the_day(self):
        """Labels read the way the sidebar shows them."""
        assert TrainingSlot(day_of_week=0, time="07:15").label == "Sunday 07:15"
        assert TrainingSlot(day_of_week=6, time="18:00").label == "Saturday 18:00"

    def test_time_parts(self):
        slot = TrainingSlot(day_of_week=3, time="18:45")
        assert (slot.hours, slot.minutes) == (18, 45)

    def test_key_ignores_group(self):
        """The same day and time from two groups is one commitment."""
        custom = TrainingSlot(day_of_week=1, time="09:00")
        inherited = TrainingSlot(day_of_week=1, time="09:00", source_group_id="club")

        assert custom.key == inherited.key
        assert custom != inherited

    def test_slots_are_immutable(self):
        slot = TrainingSlot(day_of_week=1, time="09:00")
        with pytest.raises(FrozenInstanceError):
            slot.time = "10:00"


class TestLogEntry:
    def test_defaults(self):
        entry = LogEntry(user_id="athlete-1", timestamp=at(10, 19, 9))

        assert entry.visibility == "coach"
        assert entry.tags == []
        assert entry.notes == ""


# ---------------------------------------------------------------------------
# CompliancePeriod Tests
# ---------------------------------------------------------------------------

class TestCompliancePeriod:
    """Tests for period identity and containment."""

    def test_key_is_iso_date_of_training_day(self):
        period = monday_period()

        assert period.key == "2026-10-19"
        assert period.occurrence_date.isoformat() == "2026-10-19"

    def test_contains_both_ends(self):
        period = monday_period()

        assert period.contains(at(10, 19))
        assert period.contains(at(10, 20, 9))
        assert not period.contains(at(10, 19) - timedelta(microseconds=1))
        assert not period.contains(at(10, 20, 9) + timedelta(microseconds=1))


# ---------------------------------------------------------------------------
# ComplianceEvaluator Tests
# ---------------------------------------------------------------------------

class TestComplianceEvaluator:
    """Tests for the log-in-window predicate."""

    def test_unsorted_input_is_handled(self):
        """
        Given logs in arbitrary order,
        When checking a period,
        Then a log inside the window satisfies it.
        """
        evaluator = ComplianceEvaluator([at(10, 21), at(10, 19, 8), at(10, 12), at(10, 20, 8)])

        assert evaluator.is_satisfied(monday_period())
        assert evaluator.log_count == 4

    def test_accepts_entries_or_timestamps(self):
        entries = ComplianceEvaluator([LogEntry(user_id="a", timestamp=at(10, 19, 9))])
        timestamps = ComplianceEvaluator([at(10, 19, 9)])

        assert entries.is_satisfied(monday_period()) == timestamps.is_satisfied(monday_period())

    def test_empty_window(self):
        evaluator = ComplianceEvaluator([at(10, 12, 9), at(10, 26, 9)])

        assert not evaluator.is_satisfied(monday_period())

    def test_no_logs(self):
        assert not ComplianceEvaluator([]).is_satisfied(monday_period())

    def test_older_window_is_judged_on_its_own(self):
        older = monday_period(window_start=at(10, 12), window_end=at(10, 13, 9))
        evaluator = ComplianceEvaluator([at(10, 19, 9)])

        assert evaluator.is_satisfied(monday_period())
        assert not evaluator.is_satisfied(older)
