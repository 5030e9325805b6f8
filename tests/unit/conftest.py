"""
Shared fixtures for unit tests.

Plain helpers and in-memory stores live in helpers.py; this module only
turns the common scenarios into fixtures.
"""

from datetime import datetime

import pytest

from traininglog.core.streaks.models import TrainingSlot

from helpers import MONDAY, at


@pytest.fixture
def monday_slot() -> TrainingSlot:
    """Monday 09:00, the schedule most scenarios use."""
    return TrainingSlot(day_of_week=MONDAY, time="09:00")


@pytest.fixture
def three_mondays_logged() -> list[datetime]:
    """Logs on the three Mondays before 19 October 2026."""
    return [at(9, 28, 9, 30), at(10, 5, 9, 30), at(10, 12, 9, 30)]
