"""
Athlete stats endpoint.

Feeds the dashboard sidebar: total logs, current streak, and whether the
"skip today" button should be enabled. The streak and skip status come
from the streak service; the log count and has-schedule flag are plain
lookups combined here.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.streaks.models import ScheduleValidationError
from ..dependencies import (
    AuthenticatedUser,
    ClockDep,
    LogRepositoryDep,
    SlotRepositoryDep,
    StreakServiceDep,
    UserId,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class StatsResponse(BaseModel):
    """Sidebar stats for the current athlete."""
    total_logs: int = Field(description="Number of logs the athlete has written")
    streak: int = Field(description="Consecutive training days completed", ge=0)
    has_training_slots: bool = Field(description="Whether a training schedule is configured")
    can_skip_today: bool = Field(description="Whether today's training can be marked as skipped")
    skip_disabled_reason: str | None = Field(
        None,
        description="Why skipping is disabled: no_training, already_logged or already_skipped"
    )
    skip_disabled_message: str | None = Field(
        None,
        description="Human-readable form of skip_disabled_reason"
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=StatsResponse,
    status_code=status.HTTP_200_OK,
    summary="Get my stats",
    description="Total logs, current streak and today's skip status for the athlete",
)
async def get_stats(
    user_id: UserId,
    clock: ClockDep,
    api_key: AuthenticatedUser = None,
    service: StreakServiceDep = None,
    logs: LogRepositoryDep = None,
    slots: SlotRepositoryDep = None,
) -> StatsResponse:
    """
    Compute the athlete's stats.

    The schedule and the clock are read once and handed to both streak
    and skip calculations so they see the same slots at the same instant.
    """
    now = clock()
    try:
        training_slots = slots.fetch_user_training_slots(user_id)
        streak = service.compute_streak(user_id, training_slots, now=now)
        skip_status = service.compute_today_skip_status(user_id, training_slots, now=now)
    except ScheduleValidationError as e:
        logger.error(
            "Stored training schedule is invalid",
            extra={"user_id": user_id, "error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Training schedule is invalid: {e}"
        )

    total_logs = logs.count_logs(user_id)
    reason = skip_status.skip_disabled_reason

    return StatsResponse(
        total_logs=total_logs,
        streak=streak.streak,
        has_training_slots=len(training_slots) > 0,
        can_skip_today=skip_status.can_skip_today,
        skip_disabled_reason=reason.value if reason else None,
        skip_disabled_message=reason.message if reason else None,
    )
