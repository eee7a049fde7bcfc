"""Training session lifecycle: booking, status changes, rescheduling and deletion.

Every operation runs in a single database transaction that covers the slot
check, the session row and the credit ledger, and returns a ``SessionChange``
describing what happened. Validation failures are raised before anything is
written.

Status changes follow::

    scheduled -> in_progress -> completed
    scheduled -> cancelled
    in_progress -> cancelled

``completed`` and ``cancelled`` are terminal. Member and makeup sessions take
one credit from the member's active subscription when they are booked and give
it back when they are cancelled or deleted.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from trainingdesk.app.core.errors import (
    InvalidTransitionError,
    NoActiveSubscriptionError,
    NoRemainingCreditsError,
    NotFoundError,
    SessionValidationError,
)
from trainingdesk.app.core.settings import get_settings
from trainingdesk.app.core.time import to_naive_utc, utc_now
from trainingdesk.app.crud.crud_training_session import training_session_crud, transaction
from trainingdesk.app.models.enums import SessionStatus, SessionType, SubscriptionStatus
from trainingdesk.app.models.member import Member
from trainingdesk.app.models.subscription import MemberSubscription
from trainingdesk.app.models.training_session import TrainingSession
from trainingdesk.app.schemas.training_session import (
    LedgerAdjustment,
    SessionChange,
    SessionCreate,
    SessionFilters,
    SessionRead,
    TrialMemberCreate,
)
from trainingdesk.app.services.credit_ledger import (
    assign_session_credit,
    consume_credit,
    get_active_subscription,
    release_session_credit,
)
from trainingdesk.app.services.member_directory import create_trial_member, get_member, resolve_trial_member
from trainingdesk.app.services.session_limits import check_member_weekly_limit, check_studio_weekly_limit
from trainingdesk.app.services.slot_allocator import ensure_trainer_free, reserve_slot
from trainingdesk.app.services.studio_settings import get_studio_settings

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.SCHEDULED: frozenset({SessionStatus.IN_PROGRESS, SessionStatus.CANCELLED}),
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}

CREDIT_CONSUMING_TYPES = frozenset({SessionType.MEMBER, SessionType.MAKEUP})


def can_transition(current: SessionStatus, requested: SessionStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[SessionStatus(current)]


def _snapshot(session_obj: TrainingSession) -> SessionRead:
    return SessionRead.model_validate(session_obj)


def _get_session_for_update(db: Session, session_id: int) -> TrainingSession:
    session_obj = training_session_crud.get_for_update(db, session_id)
    if session_obj is None:
        raise NotFoundError("Session", session_id)
    return session_obj


def validate_window(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """Normalize a booking window to naive UTC and check its duration."""
    start, end = to_naive_utc(start), to_naive_utc(end)
    if end <= start:
        raise SessionValidationError("Session end time must be after its start time")
    settings = get_settings()
    duration = end - start
    if duration < timedelta(minutes=settings.min_session_minutes):
        raise SessionValidationError(
            f"Session must last at least {settings.min_session_minutes} minutes",
            duration_minutes=int(duration.total_seconds() // 60),
        )
    if duration > timedelta(minutes=settings.max_session_minutes):
        raise SessionValidationError(
            f"Session cannot last longer than {settings.max_session_minutes // 60} hours",
            duration_minutes=int(duration.total_seconds() // 60),
        )
    return start, end


@dataclass
class BookingParty:
    """Who a new session is for, as resolved during validation."""

    member: Optional[Member] = None
    trial_details: Optional[TrialMemberCreate] = None
    subscription: Optional[MemberSubscription] = None
    guest_first_name: Optional[str] = None
    guest_last_name: Optional[str] = None
    guest_gym_name: Optional[str] = None


def _has_guest(data: SessionCreate) -> bool:
    return data.guest is not None and not data.guest.is_empty()


def _reject_guest(data: SessionCreate) -> None:
    if _has_guest(data):
        raise SessionValidationError(f"Guest details are not allowed on {data.session_type.value} sessions")


def _reject_new_member(data: SessionCreate) -> None:
    if data.new_member is not None:
        raise SessionValidationError("New member details are only accepted for trial sessions")


def _require_member(db: Session, data: SessionCreate) -> Member:
    if data.member_id is None:
        raise SessionValidationError(f"A member is required for {data.session_type.value} sessions")
    return get_member(db, data.member_id)


def _validate_trial(db: Session, data: SessionCreate) -> BookingParty:
    _reject_guest(data)
    if data.member_id is not None:
        raise SessionValidationError("Trial sessions are booked for a new member, not an existing one")
    if data.new_member is None:
        raise SessionValidationError("Trial sessions require the new member's details")
    return BookingParty(member=resolve_trial_member(db, data.new_member), trial_details=data.new_member)


def _validate_credit_session(db: Session, data: SessionCreate) -> BookingParty:
    _reject_guest(data)
    _reject_new_member(data)
    member = _require_member(db, data)
    subscription = get_active_subscription(db, member.id, to_naive_utc(data.scheduled_start).date())
    if subscription is None:
        raise NoActiveSubscriptionError(member.id)
    if subscription.remaining_sessions <= 0:
        raise NoRemainingCreditsError(subscription.id)
    return BookingParty(member=member, subscription=subscription)


def _validate_contractual(db: Session, data: SessionCreate) -> BookingParty:
    _reject_guest(data)
    _reject_new_member(data)
    return BookingParty(member=_require_member(db, data))


def _validate_multi_site(db: Session, data: SessionCreate) -> BookingParty:
    _reject_new_member(data)
    if data.member_id is not None:
        raise SessionValidationError("Multi-site sessions are booked for a guest, not a member")
    guest = data.guest
    if guest is None or not (guest.first_name and guest.last_name and guest.gym_name):
        raise SessionValidationError("Multi-site sessions require the guest's first name, last name and gym")
    return BookingParty(
        guest_first_name=guest.first_name,
        guest_last_name=guest.last_name,
        guest_gym_name=guest.gym_name,
    )


def _validate_collaboration(db: Session, data: SessionCreate) -> BookingParty:
    _reject_new_member(data)
    if data.member_id is not None:
        _reject_guest(data)
        return BookingParty(member=get_member(db, data.member_id))
    guest = data.guest
    if guest is None or not guest.first_name:
        raise SessionValidationError("Collaboration sessions require a member or a guest first name")
    return BookingParty(
        guest_first_name=guest.first_name,
        guest_last_name=guest.last_name,
        guest_gym_name=guest.gym_name,
    )


def _validate_non_bookable(db: Session, data: SessionCreate) -> BookingParty:
    _reject_guest(data)
    _reject_new_member(data)
    if data.member_id is not None:
        return BookingParty(member=get_member(db, data.member_id))
    return BookingParty()


TYPE_VALIDATORS: dict[SessionType, Callable[[Session, SessionCreate], BookingParty]] = {
    SessionType.TRIAL: _validate_trial,
    SessionType.MEMBER: _validate_credit_session,
    SessionType.MAKEUP: _validate_credit_session,
    SessionType.CONTRACTUAL: _validate_contractual,
    SessionType.MULTI_SITE: _validate_multi_site,
    SessionType.COLLABORATION: _validate_collaboration,
    SessionType.NON_BOOKABLE: _validate_non_bookable,
}

_missing_validators = set(SessionType) - set(TYPE_VALIDATORS)
if _missing_validators:
    raise RuntimeError(f"No booking rules for session types: {sorted(t.value for t in _missing_validators)}")


def create_session(db: Session, data: SessionCreate) -> SessionChange:
    """Validate, reserve and persist a new session, debiting a credit when its type requires one."""
    start, end = validate_window(data.scheduled_start, data.scheduled_end)
    session_type = SessionType(data.session_type)

    with transaction(db):
        party = TYPE_VALIDATORS[session_type](db, data)

        settings = get_studio_settings(db)
        check_studio_weekly_limit(db, start, settings)
        if party.member is not None:
            check_member_weekly_limit(db, party.member.id, start, session_type, settings)

        reserve_slot(db, data.machine_id, start, end)
        ensure_trainer_free(db, data.trainer_id, start, end)

        member = party.member
        if member is None and party.trial_details is not None:
            member = create_trial_member(db, party.trial_details)

        session_obj = TrainingSession(
            machine_id=data.machine_id,
            trainer_id=data.trainer_id,
            member_id=member.id if member is not None else None,
            scheduled_start=start,
            scheduled_end=end,
            status=SessionStatus.SCHEDULED,
            session_type=session_type,
            guest_first_name=party.guest_first_name,
            guest_last_name=party.guest_last_name,
            guest_gym_name=party.guest_gym_name,
            notes=data.notes,
        )

        ledger = []
        if session_type in CREDIT_CONSUMING_TYPES:
            consume_credit(db, party.subscription.id)
            session_obj.counted_in_subscription_id = party.subscription.id
            ledger.append(LedgerAdjustment(subscription_id=party.subscription.id, delta=1))

        training_session_crud.create(db, session_obj)
        after = _snapshot(session_obj)

    logger.info(
        "Booked %s session %s on machine %s for %s - %s",
        session_type.value,
        after.id,
        after.machine_id,
        after.scheduled_start,
        after.scheduled_end,
    )
    return SessionChange(operation="create", session_id=after.id, before=None, after=after, ledger=ledger)


def transition_session(
    db: Session,
    session_id: int,
    new_status: SessionStatus,
    trainer_id: Optional[int] = None,
) -> SessionChange:
    new_status = SessionStatus(new_status)
    with transaction(db):
        session_obj = _get_session_for_update(db, session_id)
        current = SessionStatus(session_obj.status)
        before = _snapshot(session_obj)

        # A repeated cancel is answered with the session as it stands.
        if current == SessionStatus.CANCELLED and new_status == SessionStatus.CANCELLED:
            return SessionChange(operation="transition", session_id=session_id, before=before, after=before)

        if not can_transition(current, new_status):
            raise InvalidTransitionError(current.value, new_status.value)

        ledger = []
        changes = {}
        if trainer_id is not None:
            if new_status != SessionStatus.CANCELLED:
                ensure_trainer_free(
                    db,
                    trainer_id,
                    session_obj.scheduled_start,
                    session_obj.scheduled_end,
                    excluding_session_id=session_obj.id,
                )
            changes["trainer_id"] = trainer_id
        if new_status == SessionStatus.CANCELLED:
            adjustment = release_session_credit(db, session_obj)
            if adjustment is not None:
                ledger.append(adjustment)
            changes["cancelled_at"] = to_naive_utc(utc_now())

        if changes:
            training_session_crud.update_fields(db, session_obj, changes)
        training_session_crud.update_status(db, session_obj, new_status)
        after = _snapshot(session_obj)

    logger.info("Session %s moved from %s to %s", session_id, current.value, new_status.value)
    return SessionChange(operation="transition", session_id=session_id, before=before, after=after, ledger=ledger)


def reschedule_session(
    db: Session,
    session_id: int,
    machine_id: Optional[int] = None,
    scheduled_start: Optional[datetime] = None,
    scheduled_end: Optional[datetime] = None,
) -> SessionChange:
    """Move a scheduled session to another window or machine.

    Credits are not re-checked; the session keeps the debit it was booked with.
    """
    with transaction(db):
        session_obj = _get_session_for_update(db, session_id)
        current = SessionStatus(session_obj.status)
        if current != SessionStatus.SCHEDULED:
            raise InvalidTransitionError(
                current.value,
                "rescheduled",
                message=f"Only scheduled sessions can be rescheduled; this one is {current.value}",
            )
        before = _snapshot(session_obj)

        target_machine = machine_id if machine_id is not None else session_obj.machine_id
        start, end = validate_window(
            scheduled_start if scheduled_start is not None else session_obj.scheduled_start,
            scheduled_end if scheduled_end is not None else session_obj.scheduled_end,
        )
        reserve_slot(db, target_machine, start, end, excluding_session_id=session_obj.id)
        ensure_trainer_free(db, session_obj.trainer_id, start, end, excluding_session_id=session_obj.id)

        training_session_crud.update_fields(
            db,
            session_obj,
            {"machine_id": target_machine, "scheduled_start": start, "scheduled_end": end},
        )
        after = _snapshot(session_obj)

    logger.info("Rescheduled session %s to machine %s at %s - %s", session_id, target_machine, start, end)
    return SessionChange(operation="reschedule", session_id=session_id, before=before, after=after)


def delete_session(db: Session, session_id: int) -> SessionChange:
    """Remove a session row, giving back its credit if it still holds one."""
    with transaction(db):
        session_obj = _get_session_for_update(db, session_id)
        current = SessionStatus(session_obj.status)
        before = _snapshot(session_obj)

        ledger = []
        adjustment = release_session_credit(db, session_obj)
        if adjustment is not None:
            ledger.append(adjustment)
        training_session_crud.delete(db, session_obj)

    logger.info("Deleted %s session %s", current.value, session_id)
    return SessionChange(operation="delete", session_id=session_id, before=before, after=None, ledger=ledger)


def assign_deferred_credit(db: Session, session_id: int, subscription_id: int) -> SessionChange:
    """Count a contractual session against a subscription after the fact.

    Contractual sessions are booked before the member's plan exists; once it
    does, this debits the session exactly once. Repeating the call is a no-op.
    """
    with transaction(db):
        session_obj = _get_session_for_update(db, session_id)
        if session_obj.session_type != SessionType.CONTRACTUAL:
            raise SessionValidationError("Only contractual sessions take a deferred credit")
        if session_obj.status == SessionStatus.CANCELLED:
            raise SessionValidationError("Cancelled sessions cannot be counted against a subscription")

        subscription = training_session_crud.get_subscription(db, subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription", subscription_id)
        if subscription.member_id != session_obj.member_id:
            raise SessionValidationError(
                "Subscription does not belong to the session's member",
                subscription_id=subscription_id,
                member_id=session_obj.member_id,
            )
        uncounted = session_obj.counted_in_subscription_id is None
        if uncounted and subscription.status != SubscriptionStatus.ACTIVE:
            raise NoActiveSubscriptionError(session_obj.member_id)

        before = _snapshot(session_obj)
        ledger = []
        adjustment = assign_session_credit(db, session_obj, subscription_id)
        if adjustment is not None:
            ledger.append(adjustment)
        after = _snapshot(session_obj)

    return SessionChange(operation="assign_credit", session_id=session_id, before=before, after=after, ledger=ledger)


def get_session(db: Session, session_id: int) -> TrainingSession:
    session_obj = training_session_crud.get(db, session_id)
    if session_obj is None:
        raise NotFoundError("Session", session_id)
    return session_obj


def list_sessions(db: Session, filters: Optional[SessionFilters] = None) -> list[TrainingSession]:
    return training_session_crud.list_sessions(db, filters)
