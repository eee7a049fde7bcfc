"""Machine model: a shared physical training resource."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from trainingdesk.app.core.time import utc_now
from trainingdesk.app.db.base_class import Base


class Machine(Base):
    __tablename__ = "machines"

    id = Column(Integer, primary_key=True, index=True)
    machine_number = Column(Integer, nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    sessions = relationship("TrainingSession", back_populates="machine")
