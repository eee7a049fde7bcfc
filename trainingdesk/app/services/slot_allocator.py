"""Slot allocation: machine and trainer conflict checks, reservation and the daily slot grid."""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from trainingdesk.app.core.errors import (
    MachineUnavailableError,
    NotFoundError,
    SlotConflictError,
    TrainerConflictError,
)
from trainingdesk.app.core.settings import get_settings
from trainingdesk.app.core.time import to_naive_utc
from trainingdesk.app.crud.crud_training_session import training_session_crud
from trainingdesk.app.models.machine import Machine
from trainingdesk.app.models.studio_settings import WEEKDAYS
from trainingdesk.app.schemas.planning import SlotAvailability, TimeSlot

logger = logging.getLogger(__name__)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap; touching windows do not conflict."""
    return a_start < b_end and b_start < a_end


def check_availability(
    db: Session,
    machine_id: int,
    start: datetime,
    end: datetime,
    excluding_session_id: Optional[int] = None,
) -> SlotAvailability:
    conflicts = training_session_crud.find_overlapping(
        db,
        machine_id,
        to_naive_utc(start),
        to_naive_utc(end),
        exclude_id=excluding_session_id,
    )
    return SlotAvailability(available=not conflicts, conflicts=[s.id for s in conflicts])


def reserve_slot(
    db: Session,
    machine_id: int,
    start: datetime,
    end: datetime,
    excluding_session_id: Optional[int] = None,
) -> Machine:
    """Lock the machine and make sure the window is free.

    Must run inside the transaction that persists the session; the reservation
    is the session row itself, so there is nothing to release later.
    """
    machine = training_session_crud.lock_machine(db, machine_id)
    if machine is None:
        raise NotFoundError("Machine", machine_id)
    if not machine.is_available:
        raise MachineUnavailableError(machine_id)

    availability = check_availability(db, machine_id, start, end, excluding_session_id)
    if not availability.available:
        logger.info(
            "Slot conflict on machine %s for %s - %s (conflicts=%s)",
            machine_id,
            start,
            end,
            availability.conflicts,
        )
        raise SlotConflictError(machine_id, availability.conflicts)
    return machine


def check_trainer_availability(
    db: Session,
    trainer_id: int,
    start: datetime,
    end: datetime,
    excluding_session_id: Optional[int] = None,
) -> SlotAvailability:
    conflicts = training_session_crud.find_trainer_overlapping(
        db,
        trainer_id,
        to_naive_utc(start),
        to_naive_utc(end),
        exclude_id=excluding_session_id,
    )
    return SlotAvailability(available=not conflicts, conflicts=[s.id for s in conflicts])


def ensure_trainer_free(
    db: Session,
    trainer_id: Optional[int],
    start: datetime,
    end: datetime,
    excluding_session_id: Optional[int] = None,
) -> None:
    """Raise when the trainer already runs another session in the window.

    Sessions without a trainer are never checked.
    """
    if trainer_id is None:
        return
    availability = check_trainer_availability(db, trainer_id, start, end, excluding_session_id)
    if not availability.available:
        logger.info(
            "Trainer conflict for trainer %s at %s - %s (conflicts=%s)",
            trainer_id,
            start,
            end,
            availability.conflicts,
        )
        raise TrainerConflictError(trainer_id, availability.conflicts)


def parse_clock(value: str) -> time:
    hour, minute = value.split(":")[:2]
    return time(int(hour), int(minute))


def _day_hours(opening_hours: Mapping[str, Any], day: str) -> tuple[Optional[time], Optional[time]]:
    entry = opening_hours.get(day)
    if entry is None:
        return None, None
    if not isinstance(entry, Mapping):
        entry = entry.model_dump()
    if not entry.get("is_open") or not entry.get("open_time") or not entry.get("close_time"):
        return None, None
    return parse_clock(entry["open_time"]), parse_clock(entry["close_time"])


def generate_time_slots(
    reference_date: date,
    opening_hours: Mapping[str, Any],
    granularity_minutes: Optional[int] = None,
) -> list[TimeSlot]:
    """Slots covering the opening hours of ``reference_date``'s weekday.

    A trailing period shorter than one slot is dropped; closed days yield no slots.
    """
    step = timedelta(minutes=granularity_minutes or get_settings().slot_granularity_minutes)
    open_time, close_time = _day_hours(opening_hours, WEEKDAYS[reference_date.weekday()])
    if open_time is None or close_time is None:
        return []

    slots = []
    cursor = datetime.combine(reference_date, open_time)
    closing = datetime.combine(reference_date, close_time)
    while cursor + step <= closing:
        slot_end = cursor + step
        slots.append(
            TimeSlot(
                start=cursor,
                end=slot_end,
                label=f"{cursor:%H:%M} - {slot_end:%H:%M}",
                hour=cursor.hour,
                minute=cursor.minute,
            )
        )
        cursor = slot_end
    return slots


def count_available_slots(opening_hours: Mapping[str, Any], granularity_minutes: Optional[int] = None) -> dict[str, int]:
    step = granularity_minutes or get_settings().slot_granularity_minutes
    counts = {}
    for day in WEEKDAYS:
        open_time, close_time = _day_hours(opening_hours, day)
        if open_time is None or close_time is None:
            counts[day] = 0
            continue
        minutes = (close_time.hour * 60 + close_time.minute) - (open_time.hour * 60 + open_time.minute)
        counts[day] = max(minutes, 0) // step
    return counts
