"""
Training schedule endpoints.

Athletes pick their own weekly slots and can pull in their group's
training template. Every edit stamps new slots with an adoption time, so
adding a Wednesday session today doesn't count last Wednesday as missed.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.streaks.models import ScheduleValidationError, TrainingSlot
from ...core.streaks.schedule import (
    apply_group_template,
    normalize_schedule,
    stamp_adoption,
)
from ..dependencies import (
    AuthenticatedUser,
    ClockDep,
    SlotRepositoryDep,
    StreakServiceDep,
    UserId,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class SlotItem(BaseModel):
    """One weekly training slot."""
    day_of_week: int = Field(description="0 = Sunday .. 6 = Saturday")
    time: str = Field(description="Start time, HH:mm 24h")
    source_group_id: str | None = Field(None, description="Group the slot was inherited from")


class ScheduleUpdateRequest(BaseModel):
    """Replace the athlete's slots."""
    slots: list[SlotItem] = Field(description="The full new schedule")


class GroupSyncRequest(BaseModel):
    """Pull a group's training template into the athlete's schedule."""
    group_id: str = Field(description="Group whose template to apply", min_length=1)
    template: list[SlotItem] = Field(description="The group's current training template")


class ScheduleResponse(BaseModel):
    """The athlete's canonical schedule."""
    slots: list[SlotItem] = Field(description="Deduplicated slots in week order")
    next_practice: datetime | None = Field(None, description="Next scheduled session, if any")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _to_response(slots: list[TrainingSlot], service, user_id: str) -> ScheduleResponse:
    schedule = normalize_schedule(slots)
    return ScheduleResponse(
        slots=[
            SlotItem(
                day_of_week=slot.day_of_week,
                time=slot.time,
                source_group_id=slot.source_group_id,
            )
            for slot in schedule
        ],
        next_practice=service.next_practice(user_id, schedule),
    )


def _invalid(e: ScheduleValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=str(e),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=ScheduleResponse,
    status_code=status.HTTP_200_OK,
    summary="Get my training schedule",
)
async def get_schedule(
    user_id: UserId,
    api_key: AuthenticatedUser = None,
    repository: SlotRepositoryDep = None,
    service: StreakServiceDep = None,
) -> ScheduleResponse:
    try:
        slots = repository.fetch_user_training_slots(user_id)
    except ScheduleValidationError as e:
        raise _invalid(e)
    return _to_response(slots, service, user_id)


@router.put(
    "",
    response_model=ScheduleResponse,
    status_code=status.HTTP_200_OK,
    summary="Replace my training schedule",
    responses={422: {"description": "Invalid day or time"}},
)
async def update_schedule(
    request: ScheduleUpdateRequest,
    user_id: UserId,
    clock: ClockDep,
    api_key: AuthenticatedUser = None,
    repository: SlotRepositoryDep = None,
    service: StreakServiceDep = None,
) -> ScheduleResponse:
    """
    Replace the athlete's slots.

    Slots kept from the previous schedule keep their adoption time; new
    ones start counting now.
    """
    try:
        previous = repository.fetch_user_training_slots(user_id)
        slots = stamp_adoption(
            previous,
            [slot.model_dump() for slot in request.slots],
            clock(),
        )
    except ScheduleValidationError as e:
        raise _invalid(e)

    repository.replace_user_training_slots(user_id, slots)

    logger.info(
        "Training schedule updated",
        extra={"user_id": user_id, "slot_count": len(slots)}
    )

    return _to_response(slots, service, user_id)


@router.post(
    "/sync-group",
    response_model=ScheduleResponse,
    status_code=status.HTTP_200_OK,
    summary="Sync my group's training schedule",
    description="Replace group slots with the group's latest template; custom slots are kept",
    responses={422: {"description": "Invalid day or time"}},
)
async def sync_group_schedule(
    request: GroupSyncRequest,
    user_id: UserId,
    clock: ClockDep,
    api_key: AuthenticatedUser = None,
    repository: SlotRepositoryDep = None,
    service: StreakServiceDep = None,
) -> ScheduleResponse:
    try:
        previous = repository.fetch_user_training_slots(user_id)
        merged = apply_group_template(
            previous,
            request.group_id,
            [slot.model_dump() for slot in request.template],
        )
        slots = stamp_adoption(previous, merged, clock())
    except ScheduleValidationError as e:
        raise _invalid(e)

    repository.replace_user_training_slots(user_id, slots)

    logger.info(
        "Group schedule synced",
        extra={"user_id": user_id, "group_id": request.group_id, "slot_count": len(slots)}
    )

    return _to_response(slots, service, user_id)
