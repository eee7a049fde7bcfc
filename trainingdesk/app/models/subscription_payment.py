"""Subscription payment rows, read for payment reminders."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship

from trainingdesk.app.core.time import utc_now
from trainingdesk.app.db.base_class import Base


class SubscriptionPayment(Base):
    __tablename__ = "subscription_payments"

    id = Column(Integer, primary_key=True, index=True)
    subscription_id = Column(Integer, ForeignKey("member_subscriptions.id"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    subscription = relationship("MemberSubscription", back_populates="payments")
