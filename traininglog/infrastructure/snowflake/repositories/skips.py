"""
Snowflake repository for skipped training days.

A skip is stored per slot (date + day + time) so a day with two sessions
gets two rows. The streak engine asks per period, which is per date.

Table:
    skipped_days (
        user_id         VARCHAR,
        skip_date       DATE,
        day_of_week     INTEGER,
        scheduled_time  VARCHAR,
        reason          VARCHAR(200),
        created_at      TIMESTAMP_TZ
    )
"""

import logging
from datetime import date

from traininglog.core.streaks.models import SkipRecord

from ..client import SnowflakeConnection

logger = logging.getLogger(__name__)


class SkipRepository:
    """Skip markers written by athletes, read by the streak service."""

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def is_period_skipped(self, user_id: str, period_key: str) -> bool:
        """period_key is the ISO date of the training day."""
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT COUNT(*)
                FROM skipped_days
                WHERE user_id = %s
                  AND skip_date = %s
            """, (user_id, date.fromisoformat(period_key)))

            row = cursor.fetchone()
            return bool(row and row[0])

        finally:
            cursor.close()

    def record_skip(self, record: SkipRecord) -> bool:
        """
        Insert a skip unless the same slot on the same date is already skipped.

        Returns True when a row was inserted.
        """
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT COUNT(*)
                FROM skipped_days
                WHERE user_id = %s
                  AND skip_date = %s
                  AND day_of_week = %s
                  AND scheduled_time = %s
            """, (record.user_id, record.skip_date, record.day_of_week, record.scheduled_time))

            row = cursor.fetchone()
            if row and row[0]:
                return False

            cursor.execute("""
                INSERT INTO skipped_days (
                    user_id, skip_date, day_of_week, scheduled_time, reason, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s)
            """, (
                record.user_id,
                record.skip_date,
                record.day_of_week,
                record.scheduled_time,
                record.reason,
                record.created_at,
            ))

            self._conn.commit()
            return True

        except Exception as e:
            logger.error(
                "Failed to record skip",
                extra={"user_id": record.user_id, "date": str(record.skip_date), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def delete_skips_for_date(self, user_id: str, skip_date: date) -> int:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                DELETE FROM skipped_days
                WHERE user_id = %s
                  AND skip_date = %s
            """, (user_id, skip_date))

            self._conn.commit()
            return cursor.rowcount or 0

        finally:
            cursor.close()

    def list_skips(self, user_id: str) -> list[SkipRecord]:
        """All of a user's skips, newest first."""
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT user_id, skip_date, day_of_week, scheduled_time, reason, created_at
                FROM skipped_days
                WHERE user_id = %s
                ORDER BY skip_date DESC, scheduled_time DESC
            """, (user_id,))

            return [
                SkipRecord(
                    user_id=row[0],
                    skip_date=row[1],
                    day_of_week=int(row[2]),
                    scheduled_time=row[3],
                    reason=row[4] or "",
                    created_at=row[5],
                )
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
