"""
Compliance evaluation: did the athlete log anything inside a period?

The evaluator is built per request from the logs the store returned for
that request's range. It answers by binary search over sorted timestamps
and never outlives the request, so an edited or deleted log shows up in
the very next streak calculation.
"""

from bisect import bisect_left
from datetime import datetime
from typing import Iterable, Union

from .models import CompliancePeriod, LogEntry


class ComplianceEvaluator:
    """Pure predicate over one snapshot of a user's log timestamps."""

    def __init__(self, logs: Iterable[Union[LogEntry, datetime]]) -> None:
        self._timestamps: list[datetime] = sorted(
            log.timestamp if isinstance(log, LogEntry) else log
            for log in logs
        )

    @property
    def log_count(self) -> int:
        return len(self._timestamps)

    def is_satisfied(self, period: CompliancePeriod) -> bool:
        start = bisect_left(self._timestamps, period.window_start)
        return (
            start < len(self._timestamps)
            and self._timestamps[start] <= period.window_end
        )

