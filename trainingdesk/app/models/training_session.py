"""Training session model: one occupant on one machine for one time window."""

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from trainingdesk.app.core.time import utc_now
from trainingdesk.app.db.base_class import Base
from trainingdesk.app.models.enums import SessionStatus, SessionType, enum_values


class TrainingSession(Base):
    __tablename__ = "training_sessions"
    __table_args__ = (
        CheckConstraint("scheduled_end > scheduled_start", name="ck_training_sessions_window"),
        Index("ix_training_sessions_machine_window", "machine_id", "scheduled_start", "scheduled_end"),
    )

    id = Column(Integer, primary_key=True, index=True)
    machine_id = Column(Integer, ForeignKey("machines.id"), nullable=False)
    trainer_id = Column(Integer, nullable=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=True, index=True)
    scheduled_start = Column(DateTime, nullable=False)
    scheduled_end = Column(DateTime, nullable=False)
    status = Column(
        Enum(SessionStatus, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=SessionStatus.SCHEDULED,
    )
    session_type = Column(
        Enum(SessionType, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
    )
    guest_first_name = Column(String(100), nullable=True)
    guest_last_name = Column(String(100), nullable=True)
    guest_gym_name = Column(String(120), nullable=True)
    counted_in_subscription_id = Column(Integer, ForeignKey("member_subscriptions.id"), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    machine = relationship("Machine", back_populates="sessions")
    member = relationship("Member", back_populates="sessions")
