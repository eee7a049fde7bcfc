"""Training session endpoints for Training Desk."""

from datetime import date

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from trainingdesk.app.db.session import get_db
from trainingdesk.app.models.enums import SessionStatus
from trainingdesk.app.schemas.planning import SessionWithIndicators
from trainingdesk.app.schemas.training_session import (
    DeferredCreditAssign,
    SessionChange,
    SessionCreate,
    SessionFilters,
    SessionRead,
    SessionReschedule,
    SessionTransition,
)
from trainingdesk.app.services import session_lifecycle
from trainingdesk.app.services.planning_indicators import session_with_indicators

router = APIRouter(prefix="/training-sessions", tags=["training-sessions"])


@router.post("", response_model=SessionChange, status_code=status.HTTP_201_CREATED)
def create_training_session(session_in: SessionCreate, db: Session = Depends(get_db)):
    return session_lifecycle.create_session(db, session_in)


@router.get("", response_model=list[SessionRead])
def list_training_sessions(
    machine_id: int | None = None,
    trainer_id: int | None = None,
    member_id: int | None = None,
    status: SessionStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    filters = SessionFilters(
        machine_id=machine_id,
        trainer_id=trainer_id,
        member_id=member_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    return session_lifecycle.list_sessions(db, filters)


@router.get("/{session_id}", response_model=SessionWithIndicators)
def get_training_session(session_id: int, db: Session = Depends(get_db)):
    session_obj = session_lifecycle.get_session(db, session_id)
    return session_with_indicators(db, session_obj)


@router.post("/{session_id}/transition", response_model=SessionChange)
def transition_training_session(session_id: int, transition_in: SessionTransition, db: Session = Depends(get_db)):
    return session_lifecycle.transition_session(
        db, session_id, transition_in.new_status, trainer_id=transition_in.trainer_id
    )


@router.patch("/{session_id}/schedule", response_model=SessionChange)
def reschedule_training_session(session_id: int, schedule_in: SessionReschedule, db: Session = Depends(get_db)):
    return session_lifecycle.reschedule_session(
        db,
        session_id,
        machine_id=schedule_in.machine_id,
        scheduled_start=schedule_in.scheduled_start,
        scheduled_end=schedule_in.scheduled_end,
    )


@router.delete("/{session_id}", response_model=SessionChange)
def delete_training_session(session_id: int, db: Session = Depends(get_db)):
    return session_lifecycle.delete_session(db, session_id)


@router.post("/{session_id}/deferred-credit", response_model=SessionChange)
def assign_training_session_credit(session_id: int, credit_in: DeferredCreditAssign, db: Session = Depends(get_db)):
    return session_lifecycle.assign_deferred_credit(db, session_id, credit_in.subscription_id)
