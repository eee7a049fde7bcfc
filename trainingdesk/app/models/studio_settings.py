"""Studio-wide planning and booking settings (single row)."""

from sqlalchemy import JSON, Column, DateTime, Integer

from trainingdesk.app.core.time import utc_now
from trainingdesk.app.db.base_class import Base

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def default_opening_hours() -> dict:
    hours = {day: {"is_open": True, "open_time": "09:00", "close_time": "21:00"} for day in WEEKDAYS}
    hours["sunday"] = {"is_open": False, "open_time": None, "close_time": None}
    return hours


class StudioSettings(Base):
    __tablename__ = "studio_settings"

    id = Column(Integer, primary_key=True, index=True)
    subscription_warning_days = Column(Integer, nullable=False, default=35)
    body_checkup_sessions = Column(Integer, nullable=False, default=5)
    payment_reminder_days = Column(Integer, nullable=False, default=27)
    max_sessions_per_week = Column(Integer, nullable=False, default=250)
    max_member_sessions_per_week = Column(Integer, nullable=True)
    opening_hours = Column(JSON, nullable=False, default=default_opening_hours)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)
