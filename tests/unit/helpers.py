"""
Test doubles and time helpers shared by the unit tests.

The in-memory stores implement the same protocols the Snowflake
repositories do, so the streak service can be tested without a database.
All dates are anchored on Monday 19 October 2026.
"""

from datetime import date, datetime, timezone

from traininglog.core.streaks.models import LogEntry, SkipRecord, TrainingSlot


MONDAY = 1


def at(month: int, day: int, hour: int = 0, minute: int = 0, microsecond: int = 0) -> datetime:
    """A UTC instant in 2026."""
    return datetime(2026, month, day, hour, minute, 0, microsecond, tzinfo=timezone.utc)


class FixedClock:
    """A clock that always says the same thing until moved."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class InMemorySlotSource:
    def __init__(self, slots=None) -> None:
        self.slots = list(slots or [])
        self.calls = 0

    def fetch_user_training_slots(self, user_id: str) -> list[TrainingSlot]:
        self.calls += 1
        return list(self.slots)


class InMemoryLogStore:
    def __init__(self, timestamps=None, user_id: str = "athlete-1") -> None:
        self.logs = [LogEntry(user_id=user_id, timestamp=ts) for ts in (timestamps or [])]
        self.ranges: list[tuple[datetime, datetime]] = []

    def add(self, timestamp: datetime, user_id: str = "athlete-1") -> None:
        self.logs.append(LogEntry(user_id=user_id, timestamp=timestamp))

    def fetch_logs_in_range(self, user_id, start, end) -> list[LogEntry]:
        self.ranges.append((start, end))
        return [
            log for log in self.logs
            if log.user_id == user_id and start <= log.timestamp <= end
        ]


class InMemorySkipStore:
    def __init__(self) -> None:
        self.records: list[SkipRecord] = []

    def skip(self, user_id: str, skip_date: date, slot: TrainingSlot) -> None:
        self.records.append(SkipRecord(
            user_id=user_id,
            skip_date=skip_date,
            day_of_week=slot.day_of_week,
            scheduled_time=slot.time,
            reason="sick",
        ))

    def is_period_skipped(self, user_id: str, period_key: str) -> bool:
        return any(
            r.user_id == user_id and r.skip_date.isoformat() == period_key
            for r in self.records
        )

    def record_skip(self, record: SkipRecord) -> bool:
        for existing in self.records:
            if (
                existing.user_id == record.user_id
                and existing.skip_date == record.skip_date
                and existing.day_of_week == record.day_of_week
                and existing.scheduled_time == record.scheduled_time
            ):
                return False
        self.records.append(record)
        return True

    def delete_skips_for_date(self, user_id: str, skip_date: date) -> int:
        before = len(self.records)
        self.records = [
            r for r in self.records
            if not (r.user_id == user_id and r.skip_date == skip_date)
        ]
        return before - len(self.records)


class SteppingClock:
    """A clock that moves on to the next instant every time it's read."""

    def __init__(self, *instants: datetime) -> None:
        self._instants = list(instants)
        self.reads = 0

    def __call__(self) -> datetime:
        instant = self._instants[min(self.reads, len(self._instants) - 1)]
        self.reads += 1
        return instant
