"""Member model (directory entries the booking flow reads or creates)."""

from sqlalchemy import Column, Date, DateTime, Enum, Integer, String
from sqlalchemy.orm import relationship

from trainingdesk.app.core.time import utc_now
from trainingdesk.app.db.base_class import Base
from trainingdesk.app.models.enums import MemberType, enum_values


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(50), nullable=True)
    gender = Column(String(20), nullable=True)
    referral_source = Column(String(50), nullable=True)
    member_type = Column(
        Enum(MemberType, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=MemberType.FULL,
    )
    status = Column(String(20), nullable=False, default="active")
    last_body_checkup_date = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    subscriptions = relationship("MemberSubscription", back_populates="member", cascade="all, delete-orphan")
    sessions = relationship("TrainingSession", back_populates="member")
