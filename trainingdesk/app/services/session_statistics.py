"""Per-day session counts by type."""

from datetime import date, timedelta

from sqlalchemy.orm import Session

from trainingdesk.app.crud.crud_training_session import training_session_crud
from trainingdesk.app.schemas.planning import DailyStatistics


def daily_statistics(db: Session, start: date, end: date) -> list[DailyStatistics]:
    """One row per day in [start, end], cancelled sessions excluded."""
    if end < start:
        return []
    days = {}
    cursor = start
    while cursor <= end:
        days[cursor] = DailyStatistics(date=cursor)
        cursor += timedelta(days=1)

    for scheduled_start, session_type in training_session_crud.session_types_between(db, start, end):
        stats = days.get(scheduled_start.date())
        if stats is None:
            continue
        stats.total += 1
        setattr(stats, session_type.value, getattr(stats, session_type.value) + 1)
    return list(days.values())
