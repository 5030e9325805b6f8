"""
Compliance period arithmetic.

Turns a canonical schedule plus a reference instant into the list of
training-day windows the athlete is judged against, newest first.

Boundary policy:
- Slots on the same calendar day share one period. Two sessions on a
  Monday are still one training day.
- A period starts at midnight of the training day (schedule timezone), so
  an early log before the scheduled time still counts.
- It ends `grace` after the day's last slot, clipped to one microsecond
  before the next training day starts. Periods never overlap, which means
  at most one is open at any instant.
- A period is listed once it has started. It's open while now <= window_end.

Everything here is a pure function of (schedule, now, horizon). There's no
iteration state to carry between calls and nothing is cached.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Sequence

from .models import CompliancePeriod, TrainingSlot

DEFAULT_GRACE = timedelta(hours=24)
DEFAULT_MAX_PERIODS = 366
ONE_MICROSECOND = timedelta(microseconds=1)


def js_weekday(day: date) -> int:
    """Day of week with Sunday = 0, matching TrainingSlot.day_of_week."""
    return (day.weekday() + 1) % 7


def _require_aware(instant: datetime, name: str) -> None:
    if instant.tzinfo is None or instant.tzinfo.utcoffset(instant) is None:
        raise ValueError(f"{name} must be timezone-aware")


@dataclass(frozen=True)
class PeriodCalculator:
    """
    Enumerates compliance periods for a schedule.

    Configuration (timezone, grace, how far back to look) is fixed per
    calculator; schedule and now are per call.
    """
    tz: tzinfo = timezone.utc
    grace: timedelta = DEFAULT_GRACE
    max_periods: int = DEFAULT_MAX_PERIODS

    def __post_init__(self) -> None:
        if self.grace < timedelta(0):
            raise ValueError("Grace window cannot be negative")
        if self.max_periods < 1:
            raise ValueError("max_periods must be at least 1")

    # -----------------------------------------------------------------------
    # Occurrences
    # -----------------------------------------------------------------------

    def slot_instant(self, day: date, slot: TrainingSlot) -> datetime:
        """The instant a slot occurs on a given calendar day."""
        return datetime.combine(day, time(slot.hours, slot.minutes), tzinfo=self.tz)

    def day_start(self, day: date) -> datetime:
        return datetime.combine(day, time(0, 0), tzinfo=self.tz)

    def slots_on(
        self,
        schedule: Sequence[TrainingSlot],
        day: date,
        horizon: Optional[datetime] = None,
    ) -> list[TrainingSlot]:
        """
        Slots that are in force on a calendar day, earliest first.

        A slot only counts from its adoption instant onward; the horizon
        applies the same cut to every slot.
        """
        weekday = js_weekday(day)
        active = []
        for slot in schedule:
            if slot.day_of_week != weekday:
                continue
            instant = self.slot_instant(day, slot)
            if slot.adopted_at is not None and instant < slot.adopted_at:
                continue
            if horizon is not None and instant < horizon:
                continue
            active.append(slot)
        return sorted(active, key=lambda slot: slot.time)

    def _earliest_day(
        self,
        schedule: Sequence[TrainingSlot],
        horizon: Optional[datetime],
    ) -> Optional[date]:
        # Below this day nothing can be in force, so walking further back is pointless
        bounds = []
        if horizon is not None:
            bounds.append(horizon.astimezone(self.tz).date())
        if all(slot.adopted_at is not None for slot in schedule):
            bounds.append(min(slot.adopted_at for slot in schedule).astimezone(self.tz).date())
        return max(bounds) if bounds else None

    def _next_training_start(
        self,
        schedule: Sequence[TrainingSlot],
        after: date,
        horizon: Optional[datetime],
    ) -> Optional[datetime]:
        for offset in range(1, 8):
            day = after + timedelta(days=offset)
            if self.slots_on(schedule, day, horizon):
                return self.day_start(day)
        return None

    def _build_period(
        self,
        day: date,
        slots: list[TrainingSlot],
        next_start: Optional[datetime],
        now: datetime,
    ) -> CompliancePeriod:
        window_start = self.day_start(day)
        window_end = self.slot_instant(day, slots[-1]) + self.grace
        if next_start is not None:
            window_end = min(window_end, next_start - ONE_MICROSECOND)

        return CompliancePeriod(
            slot=slots[0],
            slots=tuple(slots),
            occurrence=self.slot_instant(day, slots[0]),
            window_start=window_start,
            window_end=window_end,
            is_open=now <= window_end,
        )

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def periods(
        self,
        schedule: Sequence[TrainingSlot],
        now: datetime,
        horizon: Optional[datetime] = None,
    ) -> list[CompliancePeriod]:
        """
        All started periods, newest first, across every slot in the schedule.

        Walks back from today until max_periods have been collected or the
        horizon/adoption bound is passed. Returns an empty list for an empty
        schedule or one that hasn't been adopted yet.
        """
        _require_aware(now, "now")
        if horizon is not None:
            _require_aware(horizon, "horizon")
        if not schedule:
            return []

        today = now.astimezone(self.tz).date()
        earliest = self._earliest_day(schedule, horizon)
        next_start = self._next_training_start(schedule, today, horizon)

        result: list[CompliancePeriod] = []
        day = today
        # Each week holds at least one training day, so this bounds the walk
        for _ in range(self.max_periods * 7 + 7):
            if len(result) >= self.max_periods:
                break
            if earliest is not None and day < earliest:
                break

            slots = self.slots_on(schedule, day, horizon)
            if slots and self.day_start(day) <= now:
                period = self._build_period(day, slots, next_start, now)
                result.append(period)
                next_start = period.window_start

            day -= timedelta(days=1)

        return result

    def next_practice(
        self,
        schedule: Sequence[TrainingSlot],
        from_instant: datetime,
    ) -> Optional[datetime]:
        """
        The next scheduled slot strictly after from_instant.

        If it's 10:00 and today's practice is at 18:00, that's 18:00 today.
        A slot at exactly from_instant has already started, so it rolls over
        to next week. Returns None for an empty schedule.
        """
        _require_aware(from_instant, "from_instant")
        if not schedule:
            return None

        local = from_instant.astimezone(self.tz)
        candidates = []
        for slot in schedule:
            days_ahead = (slot.day_of_week - js_weekday(local.date())) % 7
            candidate = self.slot_instant(local.date() + timedelta(days=days_ahead), slot)
            while candidate <= local or (
                slot.adopted_at is not None and candidate < slot.adopted_at
            ):
                candidate += timedelta(days=7)
            candidates.append(candidate)

        return min(candidates)


def current_period(periods: Sequence[CompliancePeriod]) -> Optional[CompliancePeriod]:
    """The open period, if any. Only the newest period can be open."""
    if periods and periods[0].is_open:
        return periods[0]
    return None
