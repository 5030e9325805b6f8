"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .logs import LogRepository
from .schedules import TrainingSlotRepository
from .skips import SkipRepository

__all__ = ["LogRepository", "SkipRepository", "TrainingSlotRepository"]
