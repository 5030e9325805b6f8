"""
Unit tests for compliance period arithmetic.

Testing philosophy:
- Assert exact window boundaries, they decide streaks
- Periods never overlap, whatever the schedule looks like
- Adoption and horizon cut history the same way
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from traininglog.core.streaks.models import TrainingSlot
from traininglog.core.streaks.periods import (
    ONE_MICROSECOND,
    PeriodCalculator,
    current_period,
    js_weekday,
)

from helpers import MONDAY, at


@pytest.fixture
def calculator() -> PeriodCalculator:
    return PeriodCalculator()


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------

class TestPeriodWindows:
    """Tests for where each period starts and ends."""

    def test_monday_window_runs_midnight_to_grace(self, calculator, monday_slot):
        """
        Given a Monday 09:00 slot,
        When it's Monday 10:00,
        Then the open window is Monday 00:00 through Tuesday 09:00.
        """
        periods = calculator.periods([monday_slot], at(10, 19, 10))

        assert periods[0].window_start == at(10, 19)
        assert periods[0].window_end == at(10, 20, 9)
        assert periods[0].occurrence == at(10, 19, 9)
        assert periods[0].is_open is True

    def test_newest_first_weekly(self, calculator, monday_slot):
        calc = PeriodCalculator(max_periods=4)

        periods = calc.periods([monday_slot], at(10, 19, 10))

        assert [p.key for p in periods] == ["2026-10-19", "2026-10-12", "2026-10-05", "2026-09-28"]
        assert [p.is_open for p in periods] == [True, False, False, False]

    def test_period_listed_before_its_slot_time(self, calculator, monday_slot):
        """The day has started, so its period exists even at 07:00."""
        periods = calculator.periods([monday_slot], at(10, 19, 7))

        assert periods[0].key == "2026-10-19"
        assert periods[0].is_open is True

    def test_window_end_is_inclusive(self, calculator, monday_slot):
        periods = calculator.periods([monday_slot], at(10, 20, 9))
        assert periods[0].is_open is True

        periods = calculator.periods([monday_slot], at(10, 20, 9) + ONE_MICROSECOND)
        assert periods[0].is_open is False

    def test_next_day_clips_the_window(self, calculator, monday_slot):
        """
        Given Monday 09:00 and Tuesday 07:00,
        Then Monday's window ends just before Tuesday starts.
        """
        schedule = [monday_slot, TrainingSlot(day_of_week=2, time="07:00")]

        periods = calculator.periods(schedule, at(10, 20, 8))

        tuesday, monday = periods[0], periods[1]
        assert tuesday.key == "2026-10-20"
        assert monday.window_end == datetime(2026, 10, 19, 23, 59, 59, 999999, tzinfo=timezone.utc)
        assert monday.window_end < tuesday.window_start
        assert monday.is_open is False

    def test_periods_never_overlap(self, calculator):
        schedule = [
            TrainingSlot(1, "21:00"),
            TrainingSlot(2, "06:00"),
            TrainingSlot(3, "23:30"),
            TrainingSlot(5, "12:00"),
        ]

        periods = calculator.periods(schedule, at(10, 22, 12))

        assert sum(p.is_open for p in periods) <= 1
        for newer, older in zip(periods, periods[1:]):
            assert older.window_end < newer.window_start

    def test_same_day_slots_share_one_period(self, calculator):
        schedule = [TrainingSlot(1, "18:00"), TrainingSlot(1, "06:00")]

        periods = calculator.periods(schedule, at(10, 19, 20))

        assert periods[0].slot == TrainingSlot(1, "06:00")
        assert periods[0].slots == (TrainingSlot(1, "06:00"), TrainingSlot(1, "18:00"))
        assert periods[0].window_end == at(10, 20, 18)
        assert periods[1].key == "2026-10-12"

    def test_custom_grace(self, monday_slot):
        calc = PeriodCalculator(grace=timedelta(hours=3))

        periods = calc.periods([monday_slot], at(10, 19, 13))

        assert periods[0].window_end == at(10, 19, 12)
        assert periods[0].is_open is False


# ---------------------------------------------------------------------------
# History bounds
# ---------------------------------------------------------------------------

class TestHistoryBounds:
    """Tests for adoption, horizon and the lookback cap."""

    def test_empty_schedule_has_no_periods(self, calculator):
        assert calculator.periods([], at(10, 19, 10)) == []

    def test_slot_counts_from_adoption(self, calculator):
        slot = TrainingSlot(MONDAY, "09:00", adopted_at=at(10, 6))

        periods = calculator.periods([slot], at(10, 19, 10))

        assert [p.key for p in periods] == ["2026-10-19", "2026-10-12"]

    def test_adoption_after_slot_time_skips_that_day(self, calculator):
        """Adopting Monday 09:00 at Monday 10:00 starts counting next week."""
        slot = TrainingSlot(MONDAY, "09:00", adopted_at=at(10, 12, 10))

        periods = calculator.periods([slot], at(10, 19, 10))

        assert [p.key for p in periods] == ["2026-10-19"]

    def test_future_adoption_gives_no_periods(self, calculator):
        slot = TrainingSlot(MONDAY, "09:00", adopted_at=at(11, 1))
        assert calculator.periods([slot], at(10, 19, 10)) == []

    def test_horizon_cuts_history(self, calculator, monday_slot):
        periods = calculator.periods([monday_slot], at(10, 19, 10), horizon=at(10, 10))

        assert [p.key for p in periods] == ["2026-10-19", "2026-10-12"]

    def test_max_periods_caps_lookback(self, monday_slot):
        calc = PeriodCalculator(max_periods=2)
        assert len(calc.periods([monday_slot], at(10, 19, 10))) == 2

    def test_only_newest_period_can_be_current(self, calculator, monday_slot):
        assert current_period(calculator.periods([monday_slot], at(10, 19, 10))).key == "2026-10-19"
        assert current_period(calculator.periods([monday_slot], at(10, 21, 10))) is None
        assert current_period([]) is None


# ---------------------------------------------------------------------------
# Timezones and inputs
# ---------------------------------------------------------------------------

class TestTimezones:
    """Tests for schedules interpreted outside UTC."""

    def test_slot_times_are_local(self, monday_slot):
        """Monday 09:00 in New York (EDT) is 13:00 UTC."""
        calc = PeriodCalculator(tz=ZoneInfo("America/New_York"))

        periods = calc.periods([monday_slot], at(10, 19, 14))

        assert periods[0].occurrence == at(10, 19, 13)
        assert periods[0].window_start == at(10, 19, 4)
        assert periods[0].key == "2026-10-19"

    def test_local_day_decides_the_period(self, monday_slot):
        """02:00 UTC Tuesday is still Monday evening in New York."""
        calc = PeriodCalculator(tz=ZoneInfo("America/New_York"))

        periods = calc.periods([monday_slot], at(10, 20, 2))

        assert periods[0].key == "2026-10-19"
        assert periods[0].is_open is True

    def test_naive_now_is_rejected(self, calculator, monday_slot):
        with pytest.raises(ValueError, match="timezone-aware"):
            calculator.periods([monday_slot], datetime(2026, 10, 19, 10))

    def test_negative_grace_is_rejected(self):
        with pytest.raises(ValueError):
            PeriodCalculator(grace=timedelta(hours=-1))

    def test_js_weekday_starts_on_sunday(self):
        assert js_weekday(at(10, 18).date()) == 0
        assert js_weekday(at(10, 19).date()) == 1
        assert js_weekday(at(10, 24).date()) == 6


# ---------------------------------------------------------------------------
# Next practice
# ---------------------------------------------------------------------------

class TestNextPractice:
    """Tests for the next scheduled session lookup."""

    def test_later_the_same_week(self, calculator, monday_slot):
        schedule = [monday_slot, TrainingSlot(3, "18:00")]

        assert calculator.next_practice(schedule, at(10, 19, 10)) == at(10, 21, 18)

    def test_later_the_same_day(self, calculator, monday_slot):
        schedule = [monday_slot, TrainingSlot(3, "18:00")]

        assert calculator.next_practice(schedule, at(10, 19, 8)) == at(10, 19, 9)

    def test_slot_at_exactly_now_rolls_over(self, calculator, monday_slot):
        assert calculator.next_practice([monday_slot], at(10, 19, 9)) == at(10, 26, 9)

    def test_respects_adoption(self, calculator):
        slot = TrainingSlot(MONDAY, "09:00", adopted_at=at(10, 27))

        assert calculator.next_practice([slot], at(10, 19, 10)) == at(11, 2, 9)

    def test_empty_schedule(self, calculator):
        assert calculator.next_practice([], at(10, 19, 10)) is None
