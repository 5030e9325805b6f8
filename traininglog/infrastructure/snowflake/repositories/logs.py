"""
Snowflake repository for training logs.

The streak engine only needs range reads and counts. Log CRUD belongs to
the log API; add_log exists for seeding and tests.

Table:
    training_logs (
        log_id      VARCHAR PRIMARY KEY,
        user_id     VARCHAR,
        logged_at   TIMESTAMP_TZ,
        visibility  VARCHAR,
        tags        VARIANT,
        notes       VARCHAR
    )
"""

import json
import logging
from datetime import datetime, timezone
from uuid import uuid4

from traininglog.core.streaks.models import LogEntry

from ..client import SnowflakeConnection

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """
    Normalize a timestamp column to an aware UTC datetime.

    TIMESTAMP_NTZ values come back naive; we store everything in UTC so
    a naive value is UTC by convention.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LogRepository:
    """Read access to a user's training logs."""

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def fetch_logs_in_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[LogEntry]:
        """Logs with start <= logged_at <= end, oldest first."""
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT user_id, logged_at, visibility, tags, notes
                FROM training_logs
                WHERE user_id = %s
                  AND logged_at >= %s
                  AND logged_at <= %s
                ORDER BY logged_at
            """, (user_id, start, end))

            rows = cursor.fetchall()

            logger.debug(
                "Fetched logs in range",
                extra={
                    "user_id": user_id,
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "count": len(rows),
                }
            )

            return [self._build_log_from_row(row) for row in rows]

        except Exception as e:
            logger.error(
                "Failed to fetch logs",
                extra={"user_id": user_id, "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def count_logs(self, user_id: str) -> int:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT COUNT(*)
                FROM training_logs
                WHERE user_id = %s
            """, (user_id,))

            row = cursor.fetchone()
            return int(row[0]) if row else 0

        finally:
            cursor.close()

    def add_log(self, entry: LogEntry) -> str:
        """Insert a log entry and return its generated ID."""
        cursor = self._conn.cursor()
        log_id = str(uuid4())

        try:
            cursor.execute("""
                INSERT INTO training_logs (
                    log_id, user_id, logged_at, visibility, tags, notes
                )
                SELECT %s, %s, %s, %s, PARSE_JSON(%s), %s
            """, (
                log_id,
                entry.user_id,
                as_utc(entry.timestamp),
                entry.visibility,
                json.dumps(entry.tags),
                entry.notes,
            ))

            self._conn.commit()

            logger.info(
                "Training log saved",
                extra={"user_id": entry.user_id, "log_id": log_id}
            )

            return log_id

        except Exception as e:
            logger.error(
                "Failed to save training log",
                extra={"user_id": entry.user_id, "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def _build_log_from_row(self, row) -> LogEntry:
        user_id, logged_at, visibility, tags, notes = row

        # VARIANT comes back as a JSON string from the connector
        if isinstance(tags, str):
            tags = json.loads(tags) if tags else []

        return LogEntry(
            user_id=user_id,
            timestamp=as_utc(logged_at),
            visibility=visibility or "coach",
            tags=list(tags or []),
            notes=notes or "",
        )
