"""
Streak service: wires the engine to its data sources.

This is the only part of the core that touches collaborators. Each call:
1. Reads the clock once
2. Loads the schedule (unless the caller already has it)
3. Enumerates periods and fetches the one log range they span
4. Hands everything to the pure engine functions

Nothing is kept between calls. Collaborator errors propagate unchanged;
retrying is the caller's business.
"""

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional, Protocol, Sequence

from .compliance import ComplianceEvaluator
from .engine import SkipLookup, compute_streak, resolve_skip_status
from .models import (
    CompliancePeriod,
    LogEntry,
    SkipDisabledReason,
    SkipRecord,
    StreakResult,
    TodaySkipStatus,
    TrainingSlot,
)
from .periods import PeriodCalculator
from .schedule import RawSlot, normalize_schedule

logger = logging.getLogger(__name__)

MAX_SKIP_REASON_LENGTH = 200


# ---------------------------------------------------------------------------
# Protocols (collaborators)
# ---------------------------------------------------------------------------

class TrainingSlotSource(Protocol):
    """Where a user's schedule lives (profile slots plus group defaults)."""

    def fetch_user_training_slots(self, user_id: str) -> list[TrainingSlot]:
        ...


class LogStore(Protocol):
    """Range reads over a user's training logs."""

    def fetch_logs_in_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[LogEntry]:
        """Logs with start <= timestamp <= end."""
        ...


class SkipStore(Protocol):
    """Explicit skip markers. The core reads them; recording goes through record_skip."""

    def is_period_skipped(self, user_id: str, period_key: str) -> bool:
        ...

    def record_skip(self, record: SkipRecord) -> bool:
        """Persist a skip; False if an identical one already exists."""
        ...

    def delete_skips_for_date(self, user_id: str, skip_date: date) -> int:
        ...


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class InvalidSkipReasonError(ValueError):
    """Raised when a skip is requested without a reason."""
    pass


class SkipNotAllowedError(Exception):
    """Raised when a skip is requested for a period that can't be skipped."""

    def __init__(self, reason: SkipDisabledReason, detail: Optional[str] = None) -> None:
        self.reason = reason
        super().__init__(detail or reason.message)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class StreakService:
    """
    Computes streaks and skip eligibility for one user at a time.

    Stateless beyond its collaborators: create one per request or share
    it, the result is the same.
    """

    def __init__(
        self,
        slot_source: TrainingSlotSource,
        log_store: LogStore,
        skip_store: Optional[SkipStore] = None,
        clock: Clock = utc_now,
        calculator: Optional[PeriodCalculator] = None,
    ) -> None:
        self._slot_source = slot_source
        self._log_store = log_store
        self._skip_store = skip_store
        self._clock = clock
        self._calculator = calculator or PeriodCalculator()

    def compute_streak(
        self,
        user_id: str,
        slots: Optional[Iterable[RawSlot]] = None,
        horizon: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> StreakResult:
        """
        Current consecutive-compliance streak.

        slots can be passed when the caller already loaded the user's
        profile; otherwise they're fetched. horizon caps how far back the
        streak may reach (typically the account creation time). now pins
        the reference instant, so several calls can share one clock read.
        """
        now = self._now(now)
        schedule = self._schedule(user_id, slots)
        periods = self._calculator.periods(schedule, now, horizon)

        if not periods:
            logger.info(
                "No training obligation, streak is zero",
                extra={"user_id": user_id, "slot_count": len(schedule)}
            )
            return StreakResult(streak=0)

        evaluator = self._evaluator(user_id, periods)
        result = compute_streak(periods, evaluator, self._skip_lookup(user_id))

        logger.info(
            "Computed streak",
            extra={
                "user_id": user_id,
                "streak": result.streak,
                "periods_considered": len(periods),
                "logs_in_range": evaluator.log_count,
            }
        )

        return result

    def compute_today_skip_status(
        self,
        user_id: str,
        slots: Optional[Iterable[RawSlot]] = None,
        now: Optional[datetime] = None,
    ) -> TodaySkipStatus:
        """Whether today's training can be skipped, and the reason when not."""
        now = self._now(now)
        schedule = self._schedule(user_id, slots)
        return self._today_status(user_id, schedule, now)

    def next_practice(
        self,
        user_id: str,
        slots: Optional[Iterable[RawSlot]] = None,
    ) -> Optional[datetime]:
        """When the athlete trains next, or None without a schedule."""
        schedule = self._schedule(user_id, slots)
        return self._calculator.next_practice(schedule, self._now())

    def record_skip(
        self,
        user_id: str,
        day: date,
        reason: str,
        slots: Optional[Iterable[RawSlot]] = None,
    ) -> int:
        """
        Mark today's training as intentionally skipped.

        One record is stored per slot on that day. Only today's open period
        can be skipped; anything else would rewrite history. Returns how
        many records were inserted (0 if they all existed already).
        """
        if self._skip_store is None:
            raise RuntimeError("Skip recording requires a skip store")

        cleaned = (reason or "").strip()
        if not cleaned:
            raise InvalidSkipReasonError("Skip reason is required")

        now = self._now()
        schedule = self._schedule(user_id, slots)
        today = self._today(now)

        if day != today:
            raise SkipNotAllowedError(
                SkipDisabledReason.NO_TRAINING,
                "Only today's training can be skipped",
            )

        status = self._today_status(user_id, schedule, now)
        if not status.can_skip_today:
            raise SkipNotAllowedError(status.skip_disabled_reason)

        period = replace(self._calculator, max_periods=1).periods(schedule, now)[0]
        inserted = 0
        for slot in period.slots:
            record = SkipRecord(
                user_id=user_id,
                skip_date=period.occurrence_date,
                day_of_week=slot.day_of_week,
                scheduled_time=slot.time,
                reason=cleaned[:MAX_SKIP_REASON_LENGTH],
                created_at=now,
            )
            if self._skip_store.record_skip(record):
                inserted += 1

        logger.info(
            "Recorded skip",
            extra={"user_id": user_id, "date": period.key, "inserted": inserted}
        )

        return inserted

    def clear_redundant_skips(
        self,
        user_id: str,
        log_timestamp: datetime,
        slots: Optional[Iterable[RawSlot]] = None,
    ) -> int:
        """
        Drop skip markers made redundant by a new log.

        If the athlete skipped and then trained anyway, the period is
        satisfied and the skip no longer means anything. Returns the number
        of records removed.
        """
        if self._skip_store is None:
            return 0

        schedule = self._schedule(user_id, slots)
        periods = self._calculator.periods(schedule, self._now())

        for period in periods:
            if period.contains(log_timestamp):
                removed = self._skip_store.delete_skips_for_date(
                    user_id, period.occurrence_date
                )
                if removed:
                    logger.info(
                        "Removed redundant skips",
                        extra={"user_id": user_id, "date": period.key, "removed": removed}
                    )
                return removed
            if period.window_end < log_timestamp:
                break

        return 0

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _now(self, now: Optional[datetime] = None) -> datetime:
        if now is None:
            now = self._clock()
        if now.tzinfo is None:
            raise ValueError("now must be timezone-aware")
        return now

    def _today(self, now: datetime) -> date:
        return now.astimezone(self._calculator.tz).date()

    def _schedule(
        self,
        user_id: str,
        slots: Optional[Iterable[RawSlot]],
    ) -> tuple[TrainingSlot, ...]:
        if slots is None:
            slots = self._slot_source.fetch_user_training_slots(user_id)
        return normalize_schedule(slots)

    def _evaluator(
        self,
        user_id: str,
        periods: Sequence[CompliancePeriod],
    ) -> ComplianceEvaluator:
        # Periods are newest first and disjoint, so one range covers them all
        start = periods[-1].window_start
        end = periods[0].window_end
        logs = self._log_store.fetch_logs_in_range(user_id, start, end)
        return ComplianceEvaluator(logs)

    def _skip_lookup(self, user_id: str) -> SkipLookup:
        if self._skip_store is None:
            return lambda period: False
        store = self._skip_store
        return lambda period: store.is_period_skipped(user_id, period.key)

    def _today_status(
        self,
        user_id: str,
        schedule: Sequence[TrainingSlot],
        now: datetime,
    ) -> TodaySkipStatus:
        # Only the newest period matters for today
        periods = replace(self._calculator, max_periods=1).periods(schedule, now)
        evaluator = self._evaluator(user_id, periods) if periods else ComplianceEvaluator([])

        status = resolve_skip_status(
            schedule,
            periods,
            evaluator,
            self._skip_lookup(user_id),
            self._today(now),
        )

        logger.info(
            "Computed today's skip status",
            extra={
                "user_id": user_id,
                "can_skip_today": status.can_skip_today,
                "reason": status.skip_disabled_reason.value if status.skip_disabled_reason else None,
            }
        )

        return status
