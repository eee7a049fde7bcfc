"""Planning indicators shown next to a booked session.

``compute_indicators`` is pure: it only looks at the figures it is handed and
never raises for missing optional data; a missing date simply means that
indicator is absent. ``load_planning_data`` gathers those figures for one
member on a given day.
"""

from datetime import date, datetime, time
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from trainingdesk.app.core.time import as_date, days_between
from trainingdesk.app.crud.crud_training_session import training_session_crud
from trainingdesk.app.models.enums import SessionStatus
from trainingdesk.app.models.subscription_payment import SubscriptionPayment
from trainingdesk.app.models.training_session import TrainingSession
from trainingdesk.app.schemas.planning import (
    CheckupReminder,
    PaymentReminder,
    PlanningData,
    PlanningIndicators,
    SessionWithIndicators,
    SubscriptionWarning,
)
from trainingdesk.app.schemas.training_session import SessionRead
from trainingdesk.app.services.credit_ledger import get_active_subscription
from trainingdesk.app.services.studio_settings import get_studio_settings, planning_thresholds


def _subscription_warning(data: PlanningData, session_day: date, warning_days: Optional[int]) -> Optional[SubscriptionWarning]:
    if data.subscription_end_date is None or warning_days is None:
        return None
    remaining = days_between(session_day, data.subscription_end_date)
    if 0 <= remaining <= warning_days:
        return SubscriptionWarning(days_remaining=remaining, expiry_date=data.subscription_end_date)
    return None


def _checkup_reminder(data: PlanningData, checkup_sessions: Optional[int]) -> Optional[CheckupReminder]:
    if not checkup_sessions or checkup_sessions <= 0:
        return None
    count = data.sessions_since_checkup or 0
    if count >= checkup_sessions:
        return CheckupReminder(sessions_since_checkup=count)
    return None


def _payment_reminder(data: PlanningData, session_day: date, reminder_days: Optional[int]) -> Optional[PaymentReminder]:
    if data.latest_payment_date is None or reminder_days is None:
        return None
    elapsed = days_between(data.latest_payment_date, session_day)
    if elapsed >= reminder_days:
        return PaymentReminder(last_payment_date=data.latest_payment_date, days_since_payment=elapsed)
    return None


def compute_indicators(data: PlanningData, session_date: date | datetime, settings: Any) -> PlanningIndicators:
    session_day = as_date(session_date)
    return PlanningIndicators(
        subscription_warning=_subscription_warning(
            data, session_day, getattr(settings, "subscription_warning_days", None)
        ),
        checkup_reminder=_checkup_reminder(data, getattr(settings, "body_checkup_sessions", None)),
        payment_reminder=_payment_reminder(data, session_day, getattr(settings, "payment_reminder_days", None)),
    )


def load_planning_data(db: Session, member_id: int, session_date: date | datetime) -> PlanningData:
    subscription = get_active_subscription(db, member_id, as_date(session_date))
    member = training_session_crud.get_member(db, member_id)

    completed = db.query(func.count(TrainingSession.id)).filter(
        TrainingSession.member_id == member_id,
        TrainingSession.status == SessionStatus.COMPLETED,
    )
    if member is not None and member.last_body_checkup_date is not None:
        checkup_start = datetime.combine(member.last_body_checkup_date, time.min)
        completed = completed.filter(TrainingSession.scheduled_start >= checkup_start)

    latest_payment = (
        db.query(func.max(SubscriptionPayment.payment_date))
        .filter(SubscriptionPayment.member_id == member_id)
        .scalar()
    )

    return PlanningData(
        subscription_end_date=subscription.end_date if subscription is not None else None,
        sessions_since_checkup=completed.scalar() or 0,
        latest_payment_date=latest_payment,
    )


def session_with_indicators(db: Session, session_obj: TrainingSession) -> SessionWithIndicators:
    indicators = PlanningIndicators()
    if session_obj.member_id is not None:
        data = load_planning_data(db, session_obj.member_id, session_obj.scheduled_start)
        thresholds = planning_thresholds(get_studio_settings(db))
        indicators = compute_indicators(data, session_obj.scheduled_start, thresholds)
    return SessionWithIndicators(session=SessionRead.model_validate(session_obj), indicators=indicators)
