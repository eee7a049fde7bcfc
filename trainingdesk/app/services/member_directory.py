"""Member directory lookups needed by the booking flow."""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trainingdesk.app.core.errors import DuplicateTrialMemberError, NotFoundError
from trainingdesk.app.crud.crud_training_session import training_session_crud
from trainingdesk.app.models.enums import MemberType
from trainingdesk.app.models.member import Member
from trainingdesk.app.schemas.training_session import TrialMemberCreate

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return str(email).strip().lower()


def get_member(db: Session, member_id: int) -> Member:
    member = training_session_crud.get_member(db, member_id)
    if member is None:
        raise NotFoundError("Member", member_id)
    return member


def resolve_trial_member(db: Session, member_in: TrialMemberCreate) -> Optional[Member]:
    """Find the member a trial booking may reuse, without writing anything.

    Returns None for an unknown email. An existing trial member whose sessions
    never took place (only scheduled or cancelled ones) is returned for reuse;
    anyone else already has history with the studio.
    """
    email = normalize_email(member_in.email)
    existing = db.query(Member).filter(Member.email == email).first()
    if existing is None:
        return None
    if existing.member_type != MemberType.TRIAL or training_session_crud.has_occurred_sessions(db, existing.id):
        raise DuplicateTrialMemberError(email)
    logger.info("Reusing trial member %s for %s", existing.id, email)
    return existing


def create_trial_member(db: Session, member_in: TrialMemberCreate) -> Member:
    """Insert the trial member; an email taken in the meantime is reported as a duplicate."""
    email = normalize_email(member_in.email)
    member = Member(
        first_name=member_in.first_name,
        last_name=member_in.last_name,
        email=email,
        phone=member_in.phone,
        gender=member_in.gender,
        referral_source=member_in.referral_source,
        member_type=MemberType.TRIAL,
        status="pending",
    )
    db.add(member)
    try:
        db.flush()
    except IntegrityError as exc:
        logger.info("Trial member insert for %s hit an existing email", email)
        raise DuplicateTrialMemberError(email) from exc
    logger.info("Created trial member %s for %s", member.id, member.email)
    return member
