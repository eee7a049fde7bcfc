from datetime import date

import pytest

from trainingdesk.app.core.errors import NoActiveSubscriptionError, NoRemainingCreditsError, NotFoundError
from trainingdesk.app.db.base import Base
from trainingdesk.app.db.session import SessionLocal, engine
from trainingdesk.app.models.enums import MemberType, SubscriptionStatus
from trainingdesk.app.models.member import Member
from trainingdesk.app.models.subscription import MemberSubscription
from trainingdesk.app.services.credit_ledger import consume_credit, get_active_subscription, restore_credit


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _create_member(db, email="member@example.com"):
    member = Member(first_name="Alex", last_name="Martin", email=email, member_type=MemberType.FULL)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def _create_subscription(
    db,
    member_id,
    total=10,
    used=0,
    status=SubscriptionStatus.ACTIVE,
    start_date=date(2030, 1, 1),
    end_date=date(2030, 6, 30),
):
    subscription = MemberSubscription(
        member_id=member_id,
        plan_name_snapshot="10 sessions",
        total_sessions_snapshot=total,
        used_sessions=used,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    return subscription


def test_consume_credit_increments_used_sessions():
    db = SessionLocal()
    try:
        member = _create_member(db)
        subscription = _create_subscription(db, member.id, total=10, used=3)

        consume_credit(db, subscription.id)
        db.commit()

        db.refresh(subscription)
        assert subscription.used_sessions == 4
        assert subscription.remaining_sessions == 6
    finally:
        db.close()


def test_consume_credit_refuses_when_exhausted():
    db = SessionLocal()
    try:
        member = _create_member(db)
        subscription = _create_subscription(db, member.id, total=2, used=2)

        with pytest.raises(NoRemainingCreditsError):
            consume_credit(db, subscription.id)
        db.rollback()

        db.refresh(subscription)
        assert subscription.used_sessions == 2
    finally:
        db.close()


def test_restore_credit_never_goes_below_zero():
    db = SessionLocal()
    try:
        member = _create_member(db)
        subscription = _create_subscription(db, member.id, total=10, used=1)

        assert restore_credit(db, subscription.id) is True
        assert restore_credit(db, subscription.id) is False
        db.commit()

        db.refresh(subscription)
        assert subscription.used_sessions == 0
    finally:
        db.close()


def test_unknown_subscription_is_not_found():
    db = SessionLocal()
    try:
        with pytest.raises(NotFoundError):
            consume_credit(db, 42)
        with pytest.raises(NotFoundError):
            restore_credit(db, 42)
    finally:
        db.rollback()
        db.close()


def test_active_subscription_is_the_newest_active_one():
    db = SessionLocal()
    try:
        member = _create_member(db)
        _create_subscription(db, member.id, total=10)
        newest = _create_subscription(db, member.id, total=20)
        _create_subscription(db, member.id, total=5, status=SubscriptionStatus.EXPIRED)

        active = get_active_subscription(db, member.id, date(2030, 2, 1))
        assert active.id == newest.id
        assert get_active_subscription(db, member.id + 1, date(2030, 2, 1)) is None
    finally:
        db.close()


def test_active_subscription_must_cover_the_date():
    db = SessionLocal()
    try:
        member = _create_member(db)
        first_half = _create_subscription(db, member.id, start_date=date(2030, 1, 1), end_date=date(2030, 6, 30))
        open_ended = _create_subscription(db, member.id, start_date=date(2030, 7, 1), end_date=None)

        assert get_active_subscription(db, member.id, date(2030, 3, 1)).id == first_half.id
        assert get_active_subscription(db, member.id, date(2030, 6, 30)).id == first_half.id
        assert get_active_subscription(db, member.id, date(2031, 8, 1)).id == open_ended.id
        assert get_active_subscription(db, member.id, date(2029, 12, 31)) is None
    finally:
        db.close()


def test_consume_credit_refuses_inactive_subscription():
    db = SessionLocal()
    try:
        member = _create_member(db)
        subscription = _create_subscription(db, member.id, total=10, used=1, status=SubscriptionStatus.EXPIRED)

        with pytest.raises(NoActiveSubscriptionError):
            consume_credit(db, subscription.id)
        db.rollback()

        db.refresh(subscription)
        assert subscription.used_sessions == 1
    finally:
        db.close()
