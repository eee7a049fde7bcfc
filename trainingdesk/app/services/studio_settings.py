"""Studio settings provider: planning thresholds, weekly caps and opening hours."""

from sqlalchemy.orm import Session

from trainingdesk.app.core.errors import SessionValidationError
from trainingdesk.app.models.studio_settings import StudioSettings, default_opening_hours
from trainingdesk.app.schemas.planning import PlanningThresholds, StudioSettingsUpdate

DEFAULT_SETTINGS = {
    "subscription_warning_days": 35,
    "body_checkup_sessions": 5,
    "payment_reminder_days": 27,
    "max_sessions_per_week": 250,
    "max_member_sessions_per_week": None,
}

# Only the per-member cap may be switched off with null.
NULLABLE_FIELDS = frozenset({"max_member_sessions_per_week"})


def get_studio_settings(db: Session) -> StudioSettings:
    """Return the stored settings row, or an unsaved row holding the defaults."""
    settings = db.query(StudioSettings).order_by(StudioSettings.id.asc()).first()
    if settings:
        return settings
    return StudioSettings(opening_hours=default_opening_hours(), **DEFAULT_SETTINGS)


def ensure_studio_settings(db: Session) -> StudioSettings:
    settings = db.query(StudioSettings).order_by(StudioSettings.id.asc()).first()
    if settings:
        return settings
    settings = StudioSettings(opening_hours=default_opening_hours(), **DEFAULT_SETTINGS)
    db.add(settings)
    db.commit()
    db.refresh(settings)
    return settings


def update_studio_settings(db: Session, settings_in: StudioSettingsUpdate) -> StudioSettings:
    update_data = settings_in.model_dump(exclude_unset=True)
    cleared = sorted(
        field for field, value in update_data.items() if value is None and field not in NULLABLE_FIELDS
    )
    if cleared:
        raise SessionValidationError(f"Settings cannot be cleared: {', '.join(cleared)}", fields=cleared)

    settings = ensure_studio_settings(db)
    if "opening_hours" in update_data:
        hours = dict(settings.opening_hours or default_opening_hours())
        hours.update(update_data.pop("opening_hours"))
        settings.opening_hours = hours
    for field, value in update_data.items():
        setattr(settings, field, value)
    db.commit()
    db.refresh(settings)
    return settings


def planning_thresholds(settings: StudioSettings) -> PlanningThresholds:
    return PlanningThresholds.model_validate(settings)
