"""Weekly booking caps for the studio and for individual members.

Weeks run Sunday through Saturday. Cancelled sessions never count.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from trainingdesk.app.core.errors import WeeklyLimitReachedError
from trainingdesk.app.core.time import as_date
from trainingdesk.app.crud.crud_training_session import training_session_crud
from trainingdesk.app.models.enums import SessionType
from trainingdesk.app.models.studio_settings import StudioSettings
from trainingdesk.app.schemas.planning import WeeklyLimitStatus
from trainingdesk.app.services.studio_settings import get_studio_settings

# Makeup sessions replace a missed one and are exempt from the member cap.
MEMBER_CAPPED_TYPES = [SessionType.MEMBER, SessionType.CONTRACTUAL, SessionType.TRIAL]


def week_range(day: date | datetime) -> tuple[date, date]:
    day = as_date(day)
    days_since_sunday = (day.weekday() + 1) % 7
    week_start = day - timedelta(days=days_since_sunday)
    return week_start, week_start + timedelta(days=6)


def _week_bounds(day: date | datetime) -> tuple[datetime, datetime]:
    week_start, week_end = week_range(day)
    return datetime.combine(week_start, time.min), datetime.combine(week_end + timedelta(days=1), time.min)


def studio_weekly_status(db: Session, day: date | datetime, settings: Optional[StudioSettings] = None) -> WeeklyLimitStatus:
    settings = settings or get_studio_settings(db)
    week_start, week_end = week_range(day)
    start, end = _week_bounds(day)
    current = training_session_crud.count_active_between(db, start, end)
    max_allowed = settings.max_sessions_per_week
    percentage = round(current / max_allowed * 100, 1) if max_allowed else 0.0
    return WeeklyLimitStatus(
        week_start=week_start,
        week_end=week_end,
        current_count=current,
        max_allowed=max_allowed,
        can_book=max_allowed is None or current < max_allowed,
        percentage=percentage,
    )


def check_studio_weekly_limit(db: Session, scheduled_start: datetime, settings: StudioSettings) -> None:
    status = studio_weekly_status(db, scheduled_start, settings)
    if not status.can_book:
        raise WeeklyLimitReachedError("studio", status.current_count, status.max_allowed)


def check_member_weekly_limit(
    db: Session,
    member_id: int,
    scheduled_start: datetime,
    session_type: SessionType,
    settings: StudioSettings,
) -> None:
    max_allowed = settings.max_member_sessions_per_week
    if max_allowed is None or session_type not in MEMBER_CAPPED_TYPES:
        return
    start, end = _week_bounds(scheduled_start)
    current = training_session_crud.count_active_between(
        db, start, end, member_id=member_id, session_types=MEMBER_CAPPED_TYPES
    )
    if current >= max_allowed:
        raise WeeklyLimitReachedError("member", current, max_allowed)
