"""
Streak and schedule-compliance engine.

Schedule model -> period calculator -> compliance evaluator -> streak engine,
with the skip eligibility resolver alongside. StreakService is the entry
point that wires them to the data sources.
"""

from .compliance import ComplianceEvaluator
from .engine import compute_streak, resolve_skip_status
from .models import (
    CompliancePeriod,
    LogEntry,
    ScheduleValidationError,
    SkipDisabledReason,
    SkipRecord,
    StreakResult,
    TodaySkipStatus,
    TrainingSlot,
)
from .periods import PeriodCalculator, current_period
from .schedule import apply_group_template, normalize_schedule, sort_slots
from .service import (
    InvalidSkipReasonError,
    SkipNotAllowedError,
    StreakService,
)

__all__ = [
    "ComplianceEvaluator",
    "CompliancePeriod",
    "InvalidSkipReasonError",
    "LogEntry",
    "PeriodCalculator",
    "ScheduleValidationError",
    "SkipDisabledReason",
    "SkipNotAllowedError",
    "SkipRecord",
    "StreakResult",
    "StreakService",
    "TodaySkipStatus",
    "TrainingSlot",
    "apply_group_template",
    "compute_streak",
    "current_period",
    "normalize_schedule",
    "resolve_skip_status",
    "sort_slots",
]
