"""Session-credit accounting against member subscriptions.

A credit-consuming session debits exactly one subscription once, and the
session row remembers which one in ``counted_in_subscription_id``. Giving the
credit back always targets that recorded subscription, never whichever plan
the member holds today. Nothing in this module commits.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from trainingdesk.app.core.errors import NoActiveSubscriptionError, NoRemainingCreditsError, NotFoundError
from trainingdesk.app.core.time import utc_now
from trainingdesk.app.crud.crud_training_session import training_session_crud
from trainingdesk.app.models.enums import SubscriptionStatus
from trainingdesk.app.models.subscription import MemberSubscription
from trainingdesk.app.models.training_session import TrainingSession
from trainingdesk.app.schemas.training_session import LedgerAdjustment

logger = logging.getLogger(__name__)


def get_active_subscription(
    db: Session, member_id: int, on_date: Optional[date] = None
) -> Optional[MemberSubscription]:
    """Newest active subscription whose date range covers ``on_date`` (today by default)."""
    on_date = on_date or utc_now().date()
    return (
        db.query(MemberSubscription)
        .filter(
            MemberSubscription.member_id == member_id,
            MemberSubscription.status == SubscriptionStatus.ACTIVE,
            MemberSubscription.start_date <= on_date,
            or_(MemberSubscription.end_date.is_(None), MemberSubscription.end_date >= on_date),
        )
        .order_by(MemberSubscription.created_at.desc(), MemberSubscription.id.desc())
        .first()
    )


def consume_credit(db: Session, subscription_id: int) -> MemberSubscription:
    subscription = training_session_crud.get_subscription(db, subscription_id)
    if subscription is None:
        raise NotFoundError("Subscription", subscription_id)
    if subscription.status != SubscriptionStatus.ACTIVE:
        logger.info("Credit refused for subscription %s: status is %s", subscription_id, subscription.status)
        raise NoActiveSubscriptionError(subscription.member_id)
    if not training_session_crud.adjust_used_sessions(db, subscription_id, 1):
        logger.info("Credit refused for subscription %s: no sessions remaining", subscription_id)
        raise NoRemainingCreditsError(subscription_id)
    logger.info(
        "Consumed credit on subscription %s (%s/%s used)",
        subscription_id,
        subscription.used_sessions,
        subscription.total_sessions_snapshot,
    )
    return subscription


def restore_credit(db: Session, subscription_id: int) -> bool:
    """Give one credit back, never taking ``used_sessions`` below zero."""
    subscription = training_session_crud.get_subscription(db, subscription_id)
    if subscription is None:
        raise NotFoundError("Subscription", subscription_id)
    restored = training_session_crud.adjust_used_sessions(db, subscription_id, -1)
    if restored:
        logger.info(
            "Restored credit on subscription %s (%s/%s used)",
            subscription_id,
            subscription.used_sessions,
            subscription.total_sessions_snapshot,
        )
    else:
        logger.warning("Restore on subscription %s skipped: used_sessions already 0", subscription_id)
    return restored


def assign_session_credit(db: Session, session_obj: TrainingSession, subscription_id: int) -> Optional[LedgerAdjustment]:
    """Record and debit a credit for an already persisted session.

    Returns None when the session already counts against a subscription.
    """
    if not training_session_crud.set_counted_subscription(db, session_obj.id, subscription_id):
        return None
    consume_credit(db, subscription_id)
    return LedgerAdjustment(subscription_id=subscription_id, delta=1)


def release_session_credit(db: Session, session_obj: TrainingSession) -> Optional[LedgerAdjustment]:
    """Undo a session's debit once.

    The back-reference is cleared with a conditional update in the same
    transaction as the restore, so a repeated cancel or delete finds nothing
    to release.
    """
    subscription_id = session_obj.counted_in_subscription_id
    if subscription_id is None:
        return None
    if not training_session_crud.clear_counted_subscription(db, session_obj.id, subscription_id):
        return None
    if not restore_credit(db, subscription_id):
        return None
    return LedgerAdjustment(subscription_id=subscription_id, delta=-1)
