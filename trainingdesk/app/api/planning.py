"""Planning endpoints: slot grid, trainer availability, statistics, weekly cap and studio settings."""

from datetime import date, datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trainingdesk.app.core.errors import SessionValidationError
from trainingdesk.app.core.time import utc_now
from trainingdesk.app.db.session import get_db
from trainingdesk.app.schemas.planning import (
    DailyStatistics,
    SlotAvailability,
    SlotCounts,
    StudioSettingsRead,
    StudioSettingsUpdate,
    TimeSlot,
    WeeklyLimitStatus,
)
from trainingdesk.app.services.session_limits import studio_weekly_status
from trainingdesk.app.services.session_statistics import daily_statistics
from trainingdesk.app.services.slot_allocator import (
    check_trainer_availability,
    count_available_slots,
    generate_time_slots,
)
from trainingdesk.app.services.studio_settings import get_studio_settings, update_studio_settings

router = APIRouter(prefix="/planning", tags=["planning"])


@router.get("/slots", response_model=list[TimeSlot])
def time_slots(day: date, db: Session = Depends(get_db)):
    settings = get_studio_settings(db)
    return generate_time_slots(day, settings.opening_hours or {})


@router.get("/slot-counts", response_model=SlotCounts)
def slot_counts(db: Session = Depends(get_db)):
    days = count_available_slots(get_studio_settings(db).opening_hours or {})
    return SlotCounts(days=days, weekly_total=sum(days.values()))


@router.get("/trainers/{trainer_id}/availability", response_model=SlotAvailability)
def trainer_availability(
    trainer_id: int,
    start: datetime,
    end: datetime,
    exclude_session_id: int | None = None,
    db: Session = Depends(get_db),
):
    return check_trainer_availability(db, trainer_id, start, end, excluding_session_id=exclude_session_id)


@router.get("/statistics", response_model=list[DailyStatistics])
def statistics(start: date, end: date, db: Session = Depends(get_db)):
    if end < start:
        raise SessionValidationError("The end date must not be before the start date")
    return daily_statistics(db, start, end)


@router.get("/weekly-limit", response_model=WeeklyLimitStatus)
def weekly_limit(day: date | None = None, db: Session = Depends(get_db)):
    return studio_weekly_status(db, day or utc_now().date())


@router.get("/settings", response_model=StudioSettingsRead)
def read_studio_settings(db: Session = Depends(get_db)):
    return get_studio_settings(db)


@router.put("/settings", response_model=StudioSettingsRead)
def write_studio_settings(settings_in: StudioSettingsUpdate, db: Session = Depends(get_db)):
    return update_studio_settings(db, settings_in)
