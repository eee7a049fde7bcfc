from datetime import date, datetime

import pytest

from trainingdesk.app.core.errors import WeeklyLimitReachedError
from trainingdesk.app.db.base import Base
from trainingdesk.app.db.session import SessionLocal, engine
from trainingdesk.app.models.enums import SessionStatus, SessionType
from trainingdesk.app.models.machine import Machine
from trainingdesk.app.models.studio_settings import StudioSettings, default_opening_hours
from trainingdesk.app.models.training_session import TrainingSession
from trainingdesk.app.schemas.training_session import SessionCreate
from trainingdesk.app.services.session_lifecycle import create_session
from trainingdesk.app.services.session_limits import studio_weekly_status, week_range


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _seed(db, max_per_week):
    machine = Machine(machine_number=1, name="Machine 1", is_available=True)
    db.add(machine)
    db.add(StudioSettings(opening_hours=default_opening_hours(), max_sessions_per_week=max_per_week))
    db.commit()
    db.refresh(machine)
    return machine


def _add_session(db, machine_id, day, hour, status=SessionStatus.SCHEDULED):
    db.add(
        TrainingSession(
            machine_id=machine_id,
            scheduled_start=datetime(2030, 1, day, hour, 0),
            scheduled_end=datetime(2030, 1, day, hour, 30),
            status=status,
            session_type=SessionType.NON_BOOKABLE,
        )
    )
    db.commit()


def test_week_runs_sunday_to_saturday():
    assert week_range(date(2030, 1, 9)) == (date(2030, 1, 6), date(2030, 1, 12))
    assert week_range(date(2030, 1, 6)) == (date(2030, 1, 6), date(2030, 1, 12))
    assert week_range(datetime(2030, 1, 12, 20, 0)) == (date(2030, 1, 6), date(2030, 1, 12))


def test_weekly_status_counts_only_active_sessions_in_the_week():
    db = SessionLocal()
    try:
        machine = _seed(db, max_per_week=4)
        _add_session(db, machine.id, 6, 10)
        _add_session(db, machine.id, 12, 10)
        _add_session(db, machine.id, 8, 10, status=SessionStatus.CANCELLED)
        _add_session(db, machine.id, 13, 10)

        status = studio_weekly_status(db, date(2030, 1, 9))
        assert status.week_start == date(2030, 1, 6)
        assert status.week_end == date(2030, 1, 12)
        assert status.current_count == 2
        assert status.max_allowed == 4
        assert status.can_book is True
        assert status.percentage == 50.0
    finally:
        db.close()


def test_studio_cap_blocks_new_bookings():
    db = SessionLocal()
    try:
        machine = _seed(db, max_per_week=1)
        _add_session(db, machine.id, 7, 10)

        with pytest.raises(WeeklyLimitReachedError) as exc_info:
            create_session(
                db,
                SessionCreate(
                    machine_id=machine.id,
                    scheduled_start=datetime(2030, 1, 8, 10, 0),
                    scheduled_end=datetime(2030, 1, 8, 10, 30),
                    session_type=SessionType.NON_BOOKABLE,
                ),
            )
        assert exc_info.value.details["current_count"] == 1

        next_week = create_session(
            db,
            SessionCreate(
                machine_id=machine.id,
                scheduled_start=datetime(2030, 1, 13, 10, 0),
                scheduled_end=datetime(2030, 1, 13, 10, 30),
                session_type=SessionType.NON_BOOKABLE,
            ),
        )
        assert next_week.after.id is not None
    finally:
        db.close()
