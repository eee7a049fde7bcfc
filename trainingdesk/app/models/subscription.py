"""Member subscription: the prepaid session-credit counter owned by billing."""

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from trainingdesk.app.core.time import utc_now
from trainingdesk.app.db.base_class import Base
from trainingdesk.app.models.enums import SubscriptionStatus, enum_values


class MemberSubscription(Base):
    __tablename__ = "member_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    plan_name_snapshot = Column(String(120), nullable=False, default="")
    total_sessions_snapshot = Column(Integer, nullable=False)
    used_sessions = Column(Integer, nullable=False, default=0)
    status = Column(
        Enum(SubscriptionStatus, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=SubscriptionStatus.ACTIVE,
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    member = relationship("Member", back_populates="subscriptions")
    payments = relationship("SubscriptionPayment", back_populates="subscription", cascade="all, delete-orphan")

    @property
    def remaining_sessions(self) -> int:
        return self.total_sessions_snapshot - self.used_sessions
