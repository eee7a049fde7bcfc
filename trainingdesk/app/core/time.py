"""Time utilities for timezone-aware UTC datetimes and calendar-day math."""

from datetime import UTC, date, datetime


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime for defaults and onupdate hooks."""
    return datetime.now(UTC)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC, the form session instants are stored in."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_between(start: date | datetime, end: date | datetime) -> int:
    """Whole calendar days from start to end (negative when end is earlier)."""
    return (as_date(end) - as_date(start)).days
