"""Planning schemas: indicators, time slots, statistics and settings."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from trainingdesk.app.models.studio_settings import WEEKDAYS
from trainingdesk.app.schemas.training_session import SessionRead


class PlanningThresholds(BaseModel):
    subscription_warning_days: int = 35
    body_checkup_sessions: Optional[int] = 5
    payment_reminder_days: int = 27

    model_config = ConfigDict(from_attributes=True)


class PlanningData(BaseModel):
    subscription_end_date: Optional[date] = None
    sessions_since_checkup: Optional[int] = None
    latest_payment_date: Optional[date] = None


class SubscriptionWarning(BaseModel):
    days_remaining: int
    expiry_date: date


class CheckupReminder(BaseModel):
    sessions_since_checkup: int


class PaymentReminder(BaseModel):
    last_payment_date: date
    days_since_payment: int


class PlanningIndicators(BaseModel):
    subscription_warning: Optional[SubscriptionWarning] = None
    checkup_reminder: Optional[CheckupReminder] = None
    payment_reminder: Optional[PaymentReminder] = None

    @property
    def has_any(self) -> bool:
        return any((self.subscription_warning, self.checkup_reminder, self.payment_reminder))


class SessionWithIndicators(BaseModel):
    session: SessionRead
    indicators: PlanningIndicators


class TimeSlot(BaseModel):
    start: datetime
    end: datetime
    label: str
    hour: int
    minute: int


class SlotAvailability(BaseModel):
    available: bool
    conflicts: list[int]


class DailyStatistics(BaseModel):
    date: date
    total: int = 0
    trial: int = 0
    member: int = 0
    contractual: int = 0
    makeup: int = 0
    multi_site: int = 0
    collaboration: int = 0
    non_bookable: int = 0


class WeeklyLimitStatus(BaseModel):
    week_start: date
    week_end: date
    current_count: int
    max_allowed: Optional[int]
    can_book: bool
    percentage: float


class OpeningHoursDay(BaseModel):
    is_open: bool
    open_time: Optional[str] = None
    close_time: Optional[str] = None

    @field_validator("open_time", "close_time")
    @classmethod
    def _check_clock(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            parsed = datetime.strptime(value, "%H:%M")
        except ValueError:
            raise ValueError("times must use the HH:MM format") from None
        return parsed.strftime("%H:%M")

    @model_validator(mode="after")
    def _check_open_window(self):
        if self.is_open:
            if self.open_time is None or self.close_time is None:
                raise ValueError("an open day needs both an opening and a closing time")
            if self.close_time <= self.open_time:
                raise ValueError("closing time must be after opening time")
        return self


class StudioSettingsRead(BaseModel):
    subscription_warning_days: int
    body_checkup_sessions: int
    payment_reminder_days: int
    max_sessions_per_week: int
    max_member_sessions_per_week: Optional[int] = None
    opening_hours: dict[str, OpeningHoursDay]

    model_config = ConfigDict(from_attributes=True)


class StudioSettingsUpdate(BaseModel):
    subscription_warning_days: Optional[int] = Field(default=None, ge=1)
    body_checkup_sessions: Optional[int] = Field(default=None, ge=1)
    payment_reminder_days: Optional[int] = Field(default=None, ge=1)
    max_sessions_per_week: Optional[int] = Field(default=None, ge=1)
    max_member_sessions_per_week: Optional[int] = Field(default=None, ge=1)
    opening_hours: Optional[dict[str, OpeningHoursDay]] = None

    @field_validator("opening_hours")
    @classmethod
    def _check_weekdays(cls, value):
        if value is None:
            return value
        unknown = sorted(set(value) - set(WEEKDAYS))
        if unknown:
            raise ValueError(f"unknown weekdays: {', '.join(unknown)}")
        return value


class SlotCounts(BaseModel):
    days: dict[str, int]
    weekly_total: int
