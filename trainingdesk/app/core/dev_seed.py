import os

from sqlalchemy.orm import Session

from trainingdesk.app.models.machine import Machine
from trainingdesk.app.services.studio_settings import ensure_studio_settings

DEFAULT_MACHINES = [
    (1, "Machine 1"),
    (2, "Machine 2"),
    (3, "Machine 3"),
]


def ensure_default_machines(db: Session) -> None:
    created = False
    for number, name in DEFAULT_MACHINES:
        existing = db.query(Machine).filter(Machine.machine_number == number).first()
        if existing:
            continue
        db.add(Machine(machine_number=number, name=name, is_available=True))
        created = True

    if created:
        db.commit()


def seed_studio(db: Session) -> None:
    """
    Create the studio's machines and default settings for local development.
    Skips execution when running under pytest so tests start from an empty schema.
    """
    if os.getenv("PYTEST_CURRENT_TEST"):
        return

    ensure_default_machines(db)
    ensure_studio_settings(db)
