from datetime import date

import pytest
from fastapi.testclient import TestClient

from trainingdesk.app.db.base import Base
from trainingdesk.app.db.session import SessionLocal, engine
from trainingdesk.app.main import app
from trainingdesk.app.models.enums import MemberType, SubscriptionStatus
from trainingdesk.app.models.machine import Machine
from trainingdesk.app.models.member import Member
from trainingdesk.app.models.subscription import MemberSubscription


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def seed_studio(total=10, used=0):
    db = SessionLocal()
    try:
        machines = [Machine(machine_number=n, name=f"Machine {n}", is_available=True) for n in (1, 2, 3)]
        member = Member(first_name="Alex", last_name="Martin", email="alex@example.com", member_type=MemberType.FULL)
        db.add_all([*machines, member])
        db.flush()
        subscription = MemberSubscription(
            member_id=member.id,
            total_sessions_snapshot=total,
            used_sessions=used,
            status=SubscriptionStatus.ACTIVE,
            start_date=date(2030, 1, 1),
            end_date=date(2030, 1, 10),
        )
        db.add(subscription)
        db.flush()
        ids = {
            "machine_id": machines[0].id,
            "other_machine_id": machines[1].id,
            "member_id": member.id,
            "subscription_id": subscription.id,
        }
        db.commit()
        return ids
    finally:
        db.close()


def used_sessions(subscription_id):
    db = SessionLocal()
    try:
        return db.get(MemberSubscription, subscription_id).used_sessions
    finally:
        db.close()


def book(client, machine_id, start, end, session_type="member", **extra):
    payload = {
        "machine_id": machine_id,
        "scheduled_start": start,
        "scheduled_end": end,
        "session_type": session_type,
        **extra,
    }
    return client.post("/training-sessions", json=payload)


def test_health_and_root():
    client = TestClient(app)
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/").json()["status"] == "ok"


def test_create_member_session_returns_change_with_ledger():
    ids = seed_studio(total=10, used=9)
    client = TestClient(app)

    resp = book(client, ids["machine_id"], "2030-01-07T10:00:00", "2030-01-07T10:30:00", member_id=ids["member_id"])
    assert resp.status_code == 201
    body = resp.json()
    assert body["operation"] == "create"
    assert body["before"] is None
    assert body["after"]["status"] == "scheduled"
    assert body["ledger"] == [{"subscription_id": ids["subscription_id"], "delta": 1}]
    assert used_sessions(ids["subscription_id"]) == 10

    refused = book(client, ids["machine_id"], "2030-01-07T11:00:00", "2030-01-07T11:30:00", member_id=ids["member_id"])
    assert refused.status_code == 409
    assert refused.json()["code"] == "NO_REMAINING_CREDITS"


def test_overlapping_booking_returns_conflicts():
    ids = seed_studio()
    client = TestClient(app)
    first = book(client, ids["machine_id"], "2030-01-07T10:00:00", "2030-01-07T10:30:00", member_id=ids["member_id"])
    assert first.status_code == 201

    resp = book(client, ids["machine_id"], "2030-01-07T10:15:00", "2030-01-07T10:45:00", member_id=ids["member_id"])
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "SLOT_CONFLICT"
    assert body["conflicts"] == [first.json()["session_id"]]
    assert used_sessions(ids["subscription_id"]) == 1

    adjacent = book(client, ids["machine_id"], "2030-01-07T10:30:00", "2030-01-07T11:00:00", member_id=ids["member_id"])
    assert adjacent.status_code == 201


def test_validation_errors_map_to_422():
    ids = seed_studio()
    client = TestClient(app)

    too_short = book(client, ids["machine_id"], "2030-01-07T10:00:00", "2030-01-07T10:10:00", member_id=ids["member_id"])
    assert too_short.status_code == 422
    assert too_short.json()["code"] == "INVALID_SESSION"

    no_member = book(client, ids["machine_id"], "2030-01-07T10:00:00", "2030-01-07T10:30:00")
    assert no_member.status_code == 422


def test_unknown_session_returns_404():
    seed_studio()
    client = TestClient(app)
    resp = client.get("/training-sessions/999")
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"
    assert client.delete("/training-sessions/999").status_code == 404


def test_session_lifecycle_over_http():
    ids = seed_studio(total=10, used=0)
    client = TestClient(app)
    created = book(client, ids["machine_id"], "2030-01-07T10:00:00", "2030-01-07T10:30:00", member_id=ids["member_id"])
    session_id = created.json()["session_id"]

    detail = client.get(f"/training-sessions/{session_id}")
    assert detail.status_code == 200
    assert detail.json()["session"]["id"] == session_id
    assert detail.json()["indicators"]["subscription_warning"]["days_remaining"] == 3

    moved = client.patch(
        f"/training-sessions/{session_id}/schedule",
        json={"scheduled_start": "2030-01-07T12:00:00", "scheduled_end": "2030-01-07T12:45:00"},
    )
    assert moved.status_code == 200
    assert moved.json()["after"]["scheduled_start"] == "2030-01-07T12:00:00"

    started = client.post(f"/training-sessions/{session_id}/transition", json={"new_status": "in_progress", "trainer_id": 3})
    assert started.status_code == 200
    assert started.json()["after"]["trainer_id"] == 3

    invalid = client.post(f"/training-sessions/{session_id}/transition", json={"new_status": "scheduled"})
    assert invalid.status_code == 409
    assert invalid.json()["code"] == "INVALID_TRANSITION"

    cancelled = client.post(f"/training-sessions/{session_id}/transition", json={"new_status": "cancelled"})
    assert cancelled.status_code == 200
    assert cancelled.json()["ledger"] == [{"subscription_id": ids["subscription_id"], "delta": -1}]
    assert used_sessions(ids["subscription_id"]) == 0

    deleted = client.delete(f"/training-sessions/{session_id}")
    assert deleted.status_code == 200
    assert deleted.json()["after"] is None
    assert deleted.json()["ledger"] == []
    assert used_sessions(ids["subscription_id"]) == 0


def test_deferred_credit_endpoint():
    ids = seed_studio(total=10, used=0)
    client = TestClient(app)
    created = book(
        client,
        ids["machine_id"],
        "2030-01-07T10:00:00",
        "2030-01-07T10:30:00",
        session_type="contractual",
        member_id=ids["member_id"],
    )
    assert created.json()["ledger"] == []
    session_id = created.json()["session_id"]

    resp = client.post(f"/training-sessions/{session_id}/deferred-credit", json={"subscription_id": ids["subscription_id"]})
    assert resp.status_code == 200
    assert resp.json()["after"]["counted_in_subscription_id"] == ids["subscription_id"]
    assert used_sessions(ids["subscription_id"]) == 1


def test_trial_booking_over_http():
    ids = seed_studio()
    client = TestClient(app)
    new_member = {
        "first_name": "Sam",
        "last_name": "Durand",
        "email": "sam@example.com",
        "phone": "0600000000",
        "referral_source": "instagram",
    }
    resp = book(
        client,
        ids["machine_id"],
        "2030-01-07T10:00:00",
        "2030-01-07T10:30:00",
        session_type="trial",
        new_member=new_member,
    )
    assert resp.status_code == 201
    assert resp.json()["after"]["member_id"] is not None

    duplicate = book(
        client,
        ids["machine_id"],
        "2030-01-07T11:00:00",
        "2030-01-07T11:30:00",
        session_type="trial",
        new_member={**new_member, "email": "alex@example.com"},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "DUPLICATE_TRIAL_MEMBER"


def test_list_sessions_with_filters():
    ids = seed_studio()
    client = TestClient(app)
    book(client, ids["machine_id"], "2030-01-07T10:00:00", "2030-01-07T10:30:00", member_id=ids["member_id"])
    book(client, ids["machine_id"], "2030-01-08T10:00:00", "2030-01-08T10:30:00", member_id=ids["member_id"])

    all_sessions = client.get("/training-sessions")
    assert len(all_sessions.json()) == 2

    one_day = client.get("/training-sessions", params={"start_date": "2030-01-08", "end_date": "2030-01-08"})
    assert [s["scheduled_start"] for s in one_day.json()] == ["2030-01-08T10:00:00"]

    by_member = client.get("/training-sessions", params={"member_id": ids["member_id"], "status": "scheduled"})
    assert len(by_member.json()) == 2


def test_machines_and_availability():
    ids = seed_studio()
    client = TestClient(app)
    machines = client.get("/machines").json()
    assert [m["machine_number"] for m in machines] == [1, 2, 3]

    book(client, ids["machine_id"], "2030-01-07T10:00:00", "2030-01-07T10:30:00", member_id=ids["member_id"])
    busy = client.get(
        f"/machines/{ids['machine_id']}/availability",
        params={"start": "2030-01-07T10:15:00", "end": "2030-01-07T10:45:00"},
    )
    assert busy.status_code == 200
    assert busy.json()["available"] is False
    assert len(busy.json()["conflicts"]) == 1

    missing = client.get("/machines/999/availability", params={"start": "2030-01-07T10:00:00", "end": "2030-01-07T11:00:00"})
    assert missing.status_code == 404


def test_double_booked_trainer_returns_trainer_conflict():
    ids = seed_studio()
    client = TestClient(app)
    first = book(
        client,
        ids["machine_id"],
        "2030-01-07T10:00:00",
        "2030-01-07T10:30:00",
        member_id=ids["member_id"],
        trainer_id=4,
    )
    assert first.status_code == 201

    resp = book(
        client,
        ids["other_machine_id"],
        "2030-01-07T10:15:00",
        "2030-01-07T10:45:00",
        session_type="non_bookable",
        trainer_id=4,
    )
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "TRAINER_CONFLICT"
    assert body["trainer_id"] == 4
    assert body["conflicts"] == [first.json()["session_id"]]

    free = book(
        client,
        ids["other_machine_id"],
        "2030-01-07T10:15:00",
        "2030-01-07T10:45:00",
        session_type="non_bookable",
    )
    assert free.status_code == 201
    busy = client.post(
        f"/training-sessions/{free.json()['session_id']}/transition",
        json={"new_status": "in_progress", "trainer_id": 4},
    )
    assert busy.status_code == 409
    assert busy.json()["code"] == "TRAINER_CONFLICT"
