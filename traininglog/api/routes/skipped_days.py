"""
Skipped-day endpoint.

Lets an athlete mark today's training as intentionally skipped, with a
reason their coach can read. A skip keeps the streak alive without adding
to it. Only today's open training day can be skipped.
"""

import logging
from datetime import date

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.streaks.models import ScheduleValidationError, SkipDisabledReason
from ...core.streaks.service import InvalidSkipReasonError, SkipNotAllowedError
from ..dependencies import AuthenticatedUser, StreakServiceDep, UserId

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class SkipDayRequest(BaseModel):
    """Request to skip a training day."""
    skip_date: date = Field(
        alias="date",
        description="The training day to skip (must be today)"
    )
    reason: str = Field(
        default="",
        description="Why the athlete isn't training. Trimmed and cut to 200 characters."
    )


class SkipDayResponse(BaseModel):
    """Result of recording a skip."""
    success: bool = Field(description="Whether the skip was recorded")
    skipped: int = Field(description="Number of slots marked as skipped")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=SkipDayResponse,
    status_code=status.HTTP_200_OK,
    summary="Skip today's training",
    description="Mark every slot of today's training day as skipped",
    responses={
        400: {"description": "Missing reason or no training scheduled"},
        409: {"description": "Already logged or already skipped"},
    },
)
async def skip_day(
    request: SkipDayRequest,
    user_id: UserId,
    api_key: AuthenticatedUser = None,
    service: StreakServiceDep = None,
) -> SkipDayResponse:
    """Record a skip for today's open training day."""
    logger.info(
        "Processing skip request",
        extra={"user_id": user_id, "date": request.skip_date.isoformat()}
    )

    try:
        skipped = service.record_skip(user_id, request.skip_date, request.reason)
    except InvalidSkipReasonError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Date and reason are required"
        )
    except SkipNotAllowedError as e:
        logger.warning(
            "Skip rejected",
            extra={"user_id": user_id, "reason": e.reason.value}
        )
        code = (
            status.HTTP_400_BAD_REQUEST
            if e.reason == SkipDisabledReason.NO_TRAINING
            else status.HTTP_409_CONFLICT
        )
        raise HTTPException(status_code=code, detail=str(e))
    except ScheduleValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Training schedule is invalid: {e}"
        )

    return SkipDayResponse(success=True, skipped=skipped)
