"""
Domain models for schedule compliance and streaks.

These models describe what an athlete committed to (training slots), what
they actually did (log entries), and the derived windows we judge them
against (compliance periods). Nothing here knows about Snowflake or HTTP.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


class ScheduleValidationError(ValueError):
    """Raised when slot data can't be turned into a valid schedule."""
    pass


class SkipDisabledReason(Enum):
    """
    Why today's training can't be skipped.

    The value is the wire code returned to clients; `message` is the
    human-readable sentence shown in the sidebar.
    """
    NO_TRAINING = "no_training"
    ALREADY_LOGGED = "already_logged"
    ALREADY_SKIPPED = "already_skipped"

    @property
    def message(self) -> str:
        return _REASON_MESSAGES[self]


_REASON_MESSAGES = {
    SkipDisabledReason.NO_TRAINING: "no training scheduled today.",
    SkipDisabledReason.ALREADY_LOGGED: "already logged today.",
    SkipDisabledReason.ALREADY_SKIPPED: "already skipped this period.",
}


@dataclass(frozen=True)
class TrainingSlot:
    """
    A recurring weekly training commitment.

    day_of_week follows the JavaScript convention the clients use:
    0 = Sunday, 6 = Saturday. time is "HH:mm" on a 24h clock.

    Frozen because a slot is a value: two slots with the same day and
    time are the same commitment, whichever group they came from.
    """
    day_of_week: int
    time: str
    source_group_id: Optional[str] = None
    adopted_at: Optional[datetime] = None  # None means "always been there"

    @property
    def key(self) -> tuple[int, str]:
        return (self.day_of_week, self.time)

    @property
    def hours(self) -> int:
        return int(self.time.split(":")[0])

    @property
    def minutes(self) -> int:
        return int(self.time.split(":")[1])

    @property
    def label(self) -> str:
        """Human-readable form: 'Monday 09:00'"""
        return f"{DAY_NAMES[self.day_of_week]} {self.time}"


@dataclass
class LogEntry:
    """
    A single training log written by an athlete.

    Only user_id and timestamp matter for compliance. The rest rides
    along so repositories can hand back complete entries.
    """
    user_id: str
    timestamp: datetime
    visibility: str = "coach"
    tags: list[str] = field(default_factory=list)
    notes: str = ""


@dataclass(frozen=True)
class CompliancePeriod:
    """
    One training day's obligation window.

    All slots that fall on the same calendar day share a period; `slot`
    is the earliest of them and `occurrence` is its scheduled instant.
    The window runs from midnight of that day to `window_end`, inclusive
    on both ends.
    """
    slot: TrainingSlot
    slots: tuple[TrainingSlot, ...]
    occurrence: datetime
    window_start: datetime
    window_end: datetime
    is_open: bool = False

    @property
    def occurrence_date(self) -> date:
        return self.window_start.date()

    @property
    def key(self) -> str:
        """Stable identifier for skip lookups: the ISO date of the training day."""
        return self.occurrence_date.isoformat()

    def contains(self, instant: datetime) -> bool:
        return self.window_start <= instant <= self.window_end


@dataclass(frozen=True)
class StreakResult:
    """Consecutive satisfied training days, ending at the latest closed one."""
    streak: int = 0

    def __post_init__(self) -> None:
        if self.streak < 0:
            raise ValueError("Streak cannot be negative")


@dataclass(frozen=True)
class TodaySkipStatus:
    """Whether the athlete may skip today's open period, and why not."""
    can_skip_today: bool
    skip_disabled_reason: Optional[SkipDisabledReason] = None

    def __post_init__(self) -> None:
        if self.can_skip_today and self.skip_disabled_reason is not None:
            raise ValueError("A skippable day has no disabled reason")
        if not self.can_skip_today and self.skip_disabled_reason is None:
            raise ValueError("A non-skippable day needs a disabled reason")


@dataclass
class SkipRecord:
    """An athlete's explicit 'not training today' marker for one slot."""
    user_id: str
    skip_date: date
    day_of_week: int
    scheduled_time: str
    reason: str = ""
    created_at: Optional[datetime] = None
