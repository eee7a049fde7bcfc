"""Training session schemas for Training Desk."""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from trainingdesk.app.models.enums import SessionStatus, SessionType


class TrialMemberCreate(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    gender: Optional[Literal["male", "female"]] = None
    referral_source: Optional[
        Literal["instagram", "member_referral", "website_ib", "prospection", "studio", "phone", "chatbot"]
    ] = None


class GuestFields(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gym_name: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.first_name or self.last_name or self.gym_name)


class SessionCreate(BaseModel):
    machine_id: int
    trainer_id: Optional[int] = None
    scheduled_start: datetime
    scheduled_end: datetime
    session_type: SessionType
    member_id: Optional[int] = None
    new_member: Optional[TrialMemberCreate] = None
    guest: Optional[GuestFields] = None
    notes: Optional[str] = None


class SessionTransition(BaseModel):
    new_status: SessionStatus
    trainer_id: Optional[int] = None


class SessionReschedule(BaseModel):
    machine_id: Optional[int] = None
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None


class DeferredCreditAssign(BaseModel):
    subscription_id: int


class SessionFilters(BaseModel):
    machine_id: Optional[int] = None
    trainer_id: Optional[int] = None
    member_id: Optional[int] = None
    status: Optional[SessionStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class SessionRead(BaseModel):
    id: int
    machine_id: int
    trainer_id: Optional[int] = None
    member_id: Optional[int] = None
    scheduled_start: datetime
    scheduled_end: datetime
    status: SessionStatus
    session_type: SessionType
    guest_first_name: Optional[str] = None
    guest_last_name: Optional[str] = None
    guest_gym_name: Optional[str] = None
    counted_in_subscription_id: Optional[int] = None
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LedgerAdjustment(BaseModel):
    subscription_id: int
    delta: int


class SessionChange(BaseModel):
    """Outcome of one lifecycle operation, expressed as a reversible command.

    ``before``/``after`` are snapshots of the session around the operation
    (``None`` when it did not exist before a create or after a delete).
    Callers that keep their own view of sessions use ``apply`` to record the
    change and ``revert`` to undo it if a later step on their side fails.
    """

    operation: Literal["create", "transition", "reschedule", "delete", "assign_credit"]
    session_id: int
    before: Optional[SessionRead] = None
    after: Optional[SessionRead] = None
    ledger: list[LedgerAdjustment] = Field(default_factory=list)

    def apply(self, cache: dict[int, SessionRead]) -> dict[int, SessionRead]:
        return self._write(cache, self.after)

    def revert(self, cache: dict[int, SessionRead]) -> dict[int, SessionRead]:
        return self._write(cache, self.before)

    def _write(self, cache: dict[int, SessionRead], snapshot: Optional[SessionRead]) -> dict[int, SessionRead]:
        if snapshot is None:
            cache.pop(self.session_id, None)
        else:
            cache[self.session_id] = snapshot
        return cache
