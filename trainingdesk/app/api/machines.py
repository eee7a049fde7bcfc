"""Machine endpoints for Training Desk."""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trainingdesk.app.core.errors import NotFoundError
from trainingdesk.app.crud.crud_training_session import training_session_crud
from trainingdesk.app.db.session import get_db
from trainingdesk.app.models.machine import Machine
from trainingdesk.app.schemas.machine import MachineRead
from trainingdesk.app.schemas.planning import SlotAvailability
from trainingdesk.app.services.slot_allocator import check_availability

router = APIRouter(prefix="/machines", tags=["machines"])


@router.get("", response_model=list[MachineRead])
def list_machines(db: Session = Depends(get_db)):
    return db.query(Machine).order_by(Machine.machine_number.asc()).all()


@router.get("/{machine_id}/availability", response_model=SlotAvailability)
def machine_availability(
    machine_id: int,
    start: datetime,
    end: datetime,
    exclude_session_id: int | None = None,
    db: Session = Depends(get_db),
):
    if training_session_crud.get_machine(db, machine_id) is None:
        raise NotFoundError("Machine", machine_id)
    return check_availability(db, machine_id, start, end, excluding_session_id=exclude_session_id)
