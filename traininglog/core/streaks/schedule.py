"""
Schedule normalization.

A user's training slots arrive from several places: slots they picked
themselves and slots inherited from each group's training template. The
same commitment can show up twice (a custom Monday 09:00 and the group's
Monday 09:00). Everything downstream works on the canonical form built
here: validated, deduplicated on (day_of_week, time), sorted by week order.

Validation is strict. A slot with day 9 or time "25:00" would silently
produce nonsense periods, so it's rejected instead of clamped.
"""

import logging
import re
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Union

from .models import ScheduleValidationError, TrainingSlot

logger = logging.getLogger(__name__)

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

RawSlot = Union[TrainingSlot, Mapping[str, Any]]


def parse_time(time: str) -> tuple[int, int]:
    """
    Parse "HH:mm" (or "H:mm") into (hours, minutes).

    Raises ScheduleValidationError for anything else.
    """
    match = _TIME_PATTERN.match(str(time).strip()) if time is not None else None
    if not match:
        raise ScheduleValidationError(f"Invalid slot time {time!r}, expected HH:mm")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ScheduleValidationError(f"Slot time {time!r} is out of range")

    return hours, minutes


def _field(raw: Mapping[str, Any], *names: str) -> Any:
    # Accept both the camelCase documents the clients send and snake_case rows
    for name in names:
        if name in raw:
            return raw[name]
    return None


def _parse_adopted_at(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        adopted_at = value
    elif isinstance(value, str):
        try:
            adopted_at = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ScheduleValidationError(f"Invalid adoption timestamp {value!r}")
    else:
        raise ScheduleValidationError(f"Invalid adoption timestamp {value!r}")

    if adopted_at is not None and adopted_at.tzinfo is None:
        raise ScheduleValidationError("Adoption timestamp must be timezone-aware")
    return adopted_at


def validate_slot(raw: RawSlot) -> TrainingSlot:
    """Build a validated TrainingSlot from a slot or a slot-shaped mapping."""
    if isinstance(raw, TrainingSlot):
        day_of_week = raw.day_of_week
        time = raw.time
        source_group_id = raw.source_group_id
        adopted_at = raw.adopted_at
    elif isinstance(raw, Mapping):
        day_of_week = _field(raw, "day_of_week", "dayOfWeek")
        time = _field(raw, "time")
        source_group_id = _field(raw, "source_group_id", "sourceGroupId")
        adopted_at = _field(raw, "adopted_at", "adoptedAt")
    else:
        raise ScheduleValidationError(f"Unsupported slot type: {type(raw).__name__}")

    # bool is an int subclass; True is not a weekday
    if not isinstance(day_of_week, int) or isinstance(day_of_week, bool):
        raise ScheduleValidationError(f"Invalid day of week {day_of_week!r}")
    if not 0 <= day_of_week <= 6:
        raise ScheduleValidationError(
            f"Day of week {day_of_week} is out of range (0 = Sunday .. 6 = Saturday)"
        )

    hours, minutes = parse_time(time)

    return TrainingSlot(
        day_of_week=day_of_week,
        time=f"{hours:02d}:{minutes:02d}",
        source_group_id=str(source_group_id) if source_group_id else None,
        adopted_at=_parse_adopted_at(adopted_at),
    )


def sort_slots(slots: Iterable[TrainingSlot]) -> list[TrainingSlot]:
    """Order slots through the week: Sunday first, then by time of day."""
    return sorted(slots, key=lambda slot: slot.key)


def normalize_schedule(raw_slots: Optional[Iterable[RawSlot]]) -> tuple[TrainingSlot, ...]:
    """
    Turn raw slots into the canonical schedule.

    Duplicates on (day_of_week, time) collapse to the first one seen, so
    its source_group_id and adopted_at win. An empty or missing input is a
    valid, empty schedule.
    """
    canonical: dict[tuple[int, str], TrainingSlot] = {}
    duplicates = 0

    for raw in raw_slots or ():
        slot = validate_slot(raw)
        if slot.key in canonical:
            duplicates += 1
            continue
        canonical[slot.key] = slot

    if duplicates:
        logger.debug(
            "Collapsed duplicate training slots",
            extra={"duplicates": duplicates, "slot_count": len(canonical)}
        )

    return tuple(sort_slots(canonical.values()))


def apply_group_template(
    current_slots: Iterable[RawSlot],
    group_id: str,
    template: Iterable[RawSlot],
) -> list[TrainingSlot]:
    """
    Sync a group's training template into a user's slots.

    Slots sourced from the group are replaced in place, one for one, by the
    template's slots; custom slots stay where they are. If the template
    shrank, surplus group slots are dropped; if it grew, the extra template
    slots are appended. An empty template leaves the user's slots alone.
    """
    template_slots = [validate_slot(slot) for slot in template]
    current = [validate_slot(slot) for slot in current_slots]

    if not template_slots:
        return current

    updated: list[TrainingSlot] = []
    next_template = 0

    for slot in current:
        if slot.source_group_id != group_id:
            updated.append(slot)
            continue
        if next_template < len(template_slots):
            replacement = template_slots[next_template]
            # A moved slot is a new commitment; an unchanged one keeps its history
            unchanged = replacement.key == slot.key
            updated.append(TrainingSlot(
                day_of_week=replacement.day_of_week,
                time=replacement.time,
                source_group_id=group_id,
                adopted_at=slot.adopted_at if unchanged else replacement.adopted_at,
            ))
            next_template += 1

    for replacement in template_slots[next_template:]:
        updated.append(TrainingSlot(
            day_of_week=replacement.day_of_week,
            time=replacement.time,
            source_group_id=group_id,
            adopted_at=replacement.adopted_at,
        ))

    return updated


def stamp_adoption(
    previous: Iterable[RawSlot],
    updated: Iterable[RawSlot],
    adopted_at: datetime,
) -> list[TrainingSlot]:
    """
    Carry adoption times across a schedule edit.

    Slots the user already had keep their original adoption time; slots
    that are new in this edit are adopted now, so they can't produce
    missed days from before they existed.
    """
    known = {slot.key: slot.adopted_at for slot in normalize_schedule(previous)}
    stamped = []
    for raw in updated:
        slot = validate_slot(raw)
        if slot.key in known:
            adopted = known[slot.key]
        else:
            adopted = slot.adopted_at or adopted_at
        stamped.append(TrainingSlot(
            day_of_week=slot.day_of_week,
            time=slot.time,
            source_group_id=slot.source_group_id,
            adopted_at=adopted,
        ))
    return stamped
