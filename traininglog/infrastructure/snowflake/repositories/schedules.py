"""
Snowflake repository for training schedules.

A user's slots are stored as ordered rows. Order matters for group
template sync (group slots are replaced in place), so position is kept
even though the schedule itself is a set.

Table:
    training_slots (
        user_id          VARCHAR,
        position         INTEGER,
        day_of_week      INTEGER,
        scheduled_time   VARCHAR,
        source_group_id  VARCHAR,
        adopted_at       TIMESTAMP_TZ
    )
"""

import logging
from typing import Iterable

from traininglog.core.streaks.models import TrainingSlot
from traininglog.core.streaks.schedule import validate_slot

from ..client import SnowflakeConnection
from .logs import as_utc

logger = logging.getLogger(__name__)


class TrainingSlotRepository:
    """Stores each user's recurring training slots."""

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def fetch_user_training_slots(self, user_id: str) -> list[TrainingSlot]:
        """
        Slots in stored order, duplicates included.

        Rows are validated on the way out; a corrupt row raises
        ScheduleValidationError rather than being skipped.
        """
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT day_of_week, scheduled_time, source_group_id, adopted_at
                FROM training_slots
                WHERE user_id = %s
                ORDER BY position
            """, (user_id,))

            slots = []
            for day_of_week, scheduled_time, source_group_id, adopted_at in cursor.fetchall():
                slots.append(validate_slot(TrainingSlot(
                    day_of_week=int(day_of_week),
                    time=scheduled_time,
                    source_group_id=source_group_id,
                    adopted_at=as_utc(adopted_at) if adopted_at else None,
                )))

            logger.debug(
                "Fetched training slots",
                extra={"user_id": user_id, "count": len(slots)}
            )

            return slots

        finally:
            cursor.close()

    def replace_user_training_slots(
        self,
        user_id: str,
        slots: Iterable[TrainingSlot],
    ) -> None:
        """Overwrite a user's slots, keeping the given order."""
        slots = [validate_slot(slot) for slot in slots]
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                DELETE FROM training_slots
                WHERE user_id = %s
            """, (user_id,))

            for position, slot in enumerate(slots):
                cursor.execute("""
                    INSERT INTO training_slots (
                        user_id, position, day_of_week, scheduled_time,
                        source_group_id, adopted_at
                    ) VALUES (%s, %s, %s, %s, %s, %s)
                """, (
                    user_id,
                    position,
                    slot.day_of_week,
                    slot.time,
                    slot.source_group_id,
                    slot.adopted_at,
                ))

            self._conn.commit()

            logger.info(
                "Training slots replaced",
                extra={"user_id": user_id, "count": len(slots)}
            )

        except Exception as e:
            logger.error(
                "Failed to replace training slots",
                extra={"user_id": user_id, "error": str(e)}
            )
            raise
        finally:
            cursor.close()
