"""Persistence for training sessions, machines and subscription counters.

Unlike the plain CRUD helpers elsewhere, nothing here commits: every call runs
inside the caller's transaction (see ``transaction``) so a booking's slot
check, insert and credit debit land together or not at all.
"""

from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from typing import Any, Iterator, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from trainingdesk.app.models.enums import SessionStatus, SessionType
from trainingdesk.app.models.machine import Machine
from trainingdesk.app.models.member import Member
from trainingdesk.app.models.subscription import MemberSubscription
# Registers the payments mapper used by the subscription relationship.
from trainingdesk.app.models.subscription_payment import SubscriptionPayment  # noqa: F401
from trainingdesk.app.models.training_session import TrainingSession
from trainingdesk.app.schemas.training_session import SessionFilters


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


class CRUDTrainingSession:
    def get(self, db: Session, session_id: int) -> Optional[TrainingSession]:
        return db.query(TrainingSession).filter(TrainingSession.id == session_id).first()

    def get_for_update(self, db: Session, session_id: int) -> Optional[TrainingSession]:
        return db.query(TrainingSession).filter(TrainingSession.id == session_id).with_for_update().first()

    def get_machine(self, db: Session, machine_id: int) -> Optional[Machine]:
        return db.query(Machine).filter(Machine.id == machine_id).first()

    def lock_machine(self, db: Session, machine_id: int) -> Optional[Machine]:
        # Row lock serializes bookings per machine on databases that support it.
        return db.query(Machine).filter(Machine.id == machine_id).with_for_update().first()

    def find_overlapping(
        self,
        db: Session,
        machine_id: int,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> List[TrainingSession]:
        query = db.query(TrainingSession).filter(
            TrainingSession.machine_id == machine_id,
            TrainingSession.status != SessionStatus.CANCELLED,
            TrainingSession.scheduled_start < end,
            TrainingSession.scheduled_end > start,
        )
        if exclude_id is not None:
            query = query.filter(TrainingSession.id != exclude_id)
        return query.order_by(TrainingSession.scheduled_start.asc()).all()

    def find_trainer_overlapping(
        self,
        db: Session,
        trainer_id: int,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> List[TrainingSession]:
        query = db.query(TrainingSession).filter(
            TrainingSession.trainer_id == trainer_id,
            TrainingSession.status != SessionStatus.CANCELLED,
            TrainingSession.scheduled_start < end,
            TrainingSession.scheduled_end > start,
        )
        if exclude_id is not None:
            query = query.filter(TrainingSession.id != exclude_id)
        return query.order_by(TrainingSession.scheduled_start.asc()).all()

    def create(self, db: Session, session_obj: TrainingSession) -> TrainingSession:
        db.add(session_obj)
        db.flush()
        return session_obj

    def update_status(self, db: Session, session_obj: TrainingSession, status: SessionStatus) -> TrainingSession:
        session_obj.status = status
        db.flush()
        return session_obj

    def update_fields(self, db: Session, session_obj: TrainingSession, partial: dict[str, Any]) -> TrainingSession:
        for field, value in partial.items():
            setattr(session_obj, field, value)
        db.flush()
        return session_obj

    def delete(self, db: Session, session_obj: TrainingSession) -> None:
        db.delete(session_obj)
        db.flush()

    def get_subscription(self, db: Session, subscription_id: int) -> Optional[MemberSubscription]:
        return db.query(MemberSubscription).filter(MemberSubscription.id == subscription_id).first()

    def adjust_used_sessions(self, db: Session, subscription_id: int, delta: int) -> bool:
        """Move ``used_sessions`` by +1/-1 with a conditional UPDATE.

        Returns False when the guard rejects the change: no credit left for a
        debit, or nothing to give back for a restore.
        """
        if delta not in (1, -1):
            raise ValueError("used_sessions moves one credit at a time")
        db.flush()
        query = db.query(MemberSubscription).filter(MemberSubscription.id == subscription_id)
        if delta > 0:
            query = query.filter(MemberSubscription.used_sessions < MemberSubscription.total_sessions_snapshot)
        else:
            query = query.filter(MemberSubscription.used_sessions > 0)
        updated = query.update(
            {MemberSubscription.used_sessions: MemberSubscription.used_sessions + delta},
            synchronize_session=False,
        )
        self._refresh_loaded(db, MemberSubscription, subscription_id)
        return updated == 1

    def set_counted_subscription(self, db: Session, session_id: int, subscription_id: int) -> bool:
        db.flush()
        updated = (
            db.query(TrainingSession)
            .filter(TrainingSession.id == session_id, TrainingSession.counted_in_subscription_id.is_(None))
            .update({TrainingSession.counted_in_subscription_id: subscription_id}, synchronize_session=False)
        )
        self._refresh_loaded(db, TrainingSession, session_id)
        return updated == 1

    def clear_counted_subscription(self, db: Session, session_id: int, subscription_id: int) -> bool:
        """Detach a session from the subscription it was debited from; True only for the first caller."""
        db.flush()
        updated = (
            db.query(TrainingSession)
            .filter(
                TrainingSession.id == session_id,
                TrainingSession.counted_in_subscription_id == subscription_id,
            )
            .update({TrainingSession.counted_in_subscription_id: None}, synchronize_session=False)
        )
        self._refresh_loaded(db, TrainingSession, session_id)
        return updated == 1

    def list_sessions(self, db: Session, filters: Optional[SessionFilters] = None) -> List[TrainingSession]:
        query = db.query(TrainingSession)
        if filters is not None:
            if filters.machine_id is not None:
                query = query.filter(TrainingSession.machine_id == filters.machine_id)
            if filters.trainer_id is not None:
                query = query.filter(TrainingSession.trainer_id == filters.trainer_id)
            if filters.member_id is not None:
                query = query.filter(TrainingSession.member_id == filters.member_id)
            if filters.status is not None:
                query = query.filter(TrainingSession.status == filters.status)
            if filters.start_date is not None:
                query = query.filter(TrainingSession.scheduled_start >= datetime.combine(filters.start_date, time.min))
            if filters.end_date is not None:
                next_day = datetime.combine(filters.end_date + timedelta(days=1), time.min)
                query = query.filter(TrainingSession.scheduled_start < next_day)
        return query.order_by(TrainingSession.scheduled_start.asc(), TrainingSession.id.asc()).all()

    def count_active_between(
        self,
        db: Session,
        start: datetime,
        end: datetime,
        member_id: Optional[int] = None,
        session_types: Optional[list[SessionType]] = None,
    ) -> int:
        query = db.query(func.count(TrainingSession.id)).filter(
            TrainingSession.status != SessionStatus.CANCELLED,
            TrainingSession.scheduled_start >= start,
            TrainingSession.scheduled_start < end,
        )
        if member_id is not None:
            query = query.filter(TrainingSession.member_id == member_id)
        if session_types:
            query = query.filter(TrainingSession.session_type.in_(session_types))
        return query.scalar() or 0

    def session_types_between(self, db: Session, start: date, end: date) -> list[tuple[datetime, SessionType]]:
        """Return (scheduled_start, session_type) of non-cancelled sessions between two dates, inclusive."""
        rows = (
            db.query(TrainingSession.scheduled_start, TrainingSession.session_type)
            .filter(
                TrainingSession.status != SessionStatus.CANCELLED,
                TrainingSession.scheduled_start >= datetime.combine(start, time.min),
                TrainingSession.scheduled_start < datetime.combine(end + timedelta(days=1), time.min),
            )
            .all()
        )
        return [(row[0], row[1]) for row in rows]

    def has_occurred_sessions(self, db: Session, member_id: int) -> bool:
        return (
            db.query(TrainingSession.id)
            .filter(
                TrainingSession.member_id == member_id,
                TrainingSession.status.in_([SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED]),
            )
            .first()
            is not None
        )

    def get_member(self, db: Session, member_id: int) -> Optional[Member]:
        return db.query(Member).filter(Member.id == member_id).first()

    def _refresh_loaded(self, db: Session, model, identifier: int) -> None:
        # Bulk UPDATEs bypass the identity map; reload any copy already in memory.
        loaded = db.identity_map.get(db.identity_key(model, identifier))
        if loaded is not None:
            db.refresh(loaded)


training_session_crud = CRUDTrainingSession()
