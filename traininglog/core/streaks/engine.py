"""
Streak counting and skip eligibility.

Both functions take already-enumerated periods and an evaluator built for
the current request. They do no I/O: the service fetches data, these decide.
"""

import logging
from datetime import date
from typing import Callable, Sequence

from .compliance import ComplianceEvaluator
from .models import (
    CompliancePeriod,
    SkipDisabledReason,
    StreakResult,
    TodaySkipStatus,
    TrainingSlot,
)
from .periods import current_period

logger = logging.getLogger(__name__)

SkipLookup = Callable[[CompliancePeriod], bool]


def compute_streak(
    periods: Sequence[CompliancePeriod],
    evaluator: ComplianceEvaluator,
    is_skipped: SkipLookup,
) -> StreakResult:
    """
    Count consecutive satisfied training days, newest closed one first.

    - The open period is ignored: it neither extends nor breaks the streak
      until it closes.
    - A satisfied period adds one.
    - An unsatisfied period that was explicitly skipped passes through
      without adding anything.
    - The first unsatisfied, unskipped period ends the count.

    No periods (no schedule, or nothing adopted yet) means a streak of 0.
    """
    streak = 0

    for period in periods:
        if period.is_open:
            continue
        if evaluator.is_satisfied(period):
            streak += 1
            continue
        if is_skipped(period):
            continue
        logger.debug(
            "Streak broken",
            extra={"period": period.key, "slot": period.slot.label, "streak": streak}
        )
        break

    return StreakResult(streak=streak)


def resolve_skip_status(
    schedule: Sequence[TrainingSlot],
    periods: Sequence[CompliancePeriod],
    evaluator: ComplianceEvaluator,
    is_skipped: SkipLookup,
    today: date,
) -> TodaySkipStatus:
    """
    Decide whether today's open period may be marked as skipped.

    Rules, first match wins:
    1. No schedule at all                   -> no_training
    2. No open period that started today    -> no_training
    3. Already logged inside the period     -> already_logged
    4. Already skipped                      -> already_skipped
    5. Otherwise the day can be skipped.

    Past periods are never skippable; only the open one is considered.
    """
    if not schedule:
        return TodaySkipStatus(False, SkipDisabledReason.NO_TRAINING)

    period = current_period(periods)
    if period is None or period.occurrence_date != today:
        return TodaySkipStatus(False, SkipDisabledReason.NO_TRAINING)

    if evaluator.is_satisfied(period):
        return TodaySkipStatus(False, SkipDisabledReason.ALREADY_LOGGED)

    if is_skipped(period):
        return TodaySkipStatus(False, SkipDisabledReason.ALREADY_SKIPPED)

    return TodaySkipStatus(True, None)
