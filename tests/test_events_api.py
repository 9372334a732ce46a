"""End-to-end tests for event submission, approval and the advisory check."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from schedulink.domain.errors import StorageError
from schedulink.domain.models import Venue
from schedulink.main import (
    app,
    event_repo,
    handler_registry,
    notification_repo,
    submissions,
    venue_repo,
)


@pytest.fixture(autouse=True)
def _clear_repos():
    """Reset in-memory repos before each test."""
    event_repo._store.clear()
    notification_repo._store.clear()
    handler_registry.clear()
    venue_repo.add(Venue(id="hall", name="Main Hall"))
    venue_repo.add(Venue(id="gym", name="Gymnasium"))
    yield
    event_repo._store.clear()
    notification_repo._store.clear()
    handler_registry.clear()


@pytest.fixture()
def client():
    return TestClient(app)


def _body(**overrides) -> dict:
    body = {
        "name": "Spring concert",
        "start_date": "2024-01-10",
        "venue_ids": ["hall"],
        "event_start_time": "10:00",
        "event_end_time": "11:30",
    }
    body.update(overrides)
    return body


def _create(client: TestClient, **overrides) -> dict:
    resp = client.post("/api/events", json=_body(**overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()


def _approval_note_id(event_id: str) -> str:
    (note,) = [n for n in notification_repo.list_for_event(event_id) if n.type == "event_approval"]
    return note.id


def _create_approved(client: TestClient, **overrides) -> dict:
    event = _create(client, **overrides)
    resp = client.put(f"/api/notifications/{_approval_note_id(event['id'])}/approve")
    assert resp.status_code == 200, resp.text
    return event


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


def test_create_event_is_pending_with_approval_notification(client: TestClient):
    resp = client.post("/api/events", json=_body(status="approved"))
    assert resp.status_code == 201
    event = resp.json()
    assert event["status"] == "pending"
    assert event["end_date"] is None

    notes = client.get("/api/notifications").json()
    assert len(notes) == 1
    assert notes[0]["event_id"] == event["id"]
    assert notes[0]["event_name"] == "Spring concert"
    assert notes[0]["message"] == 'New event "Spring concert" requires approval'
    assert notes[0]["status"] == "pending"


def test_create_accepts_datetime_strings_and_blank_optionals(client: TestClient):
    event = _create(
        client,
        start_date="2024-01-10T00:00:00",
        end_date="",
        setup_start_time="",
        application_date="2024-01-02T08:30:00Z",
    )
    assert event["start_date"] == "2024-01-10"
    assert event["end_date"] is None
    assert event["setup_start_time"] is None
    assert event["application_date"] == "2024-01-02"


def test_create_rejected_on_conflict_with_all_conflicts(client: TestClient):
    first = _create_approved(client, name="Morning talk", event_start_time="11:00", event_end_time="12:00")
    second = _create_approved(
        client, name="Workshop", venue_ids=["gym"], event_start_time="09:00", event_end_time="10:30"
    )

    resp = client.post("/api/events", json=_body(venue_ids=["hall", "gym"]))

    assert resp.status_code == 409
    body = resp.json()
    assert {c["event_id"] for c in body["conflicts"]} == {first["id"], second["id"]}
    assert "Morning talk" in body["message"]
    # No partial write.
    assert len(event_repo.list_all()) == 2


def test_create_ignores_pending_events(client: TestClient):
    _create(client)
    _create(client)
    assert len(event_repo.list_all()) == 2


def test_touching_boundary_allowed(client: TestClient):
    _create_approved(client, event_start_time="10:00", event_end_time="11:00")
    _create(client, event_start_time="11:00", event_end_time="12:00")


def test_missing_name_is_unprocessable(client: TestClient):
    body = _body()
    del body["name"]
    resp = client.post("/api/events", json=body)
    assert resp.status_code == 422


def test_blank_name_is_bad_request(client: TestClient):
    resp = client.post("/api/events", json=_body(name="   "))
    assert resp.status_code == 400
    assert resp.json() == {"error": "Event name and start date are required"}


@pytest.mark.parametrize(
    "overrides",
    [
        {"end_date": "2024-01-09"},
        {"event_end_time": ""},
        {"event_start_time": "12:00", "event_end_time": "11:00"},
    ],
)
def test_inconsistent_window_is_bad_request(client: TestClient, overrides):
    resp = client.post("/api/events", json=_body(**overrides))
    assert resp.status_code == 400


def test_unknown_venue_not_found(client: TestClient):
    resp = client.post("/api/events", json=_body(venue_ids=["nowhere"]))
    assert resp.status_code == 404
    assert event_repo.list_all() == []


def test_create_fails_open_on_detector_storage_error(client: TestClient, monkeypatch):
    def broken(*args, **kwargs):
        raise StorageError("database unavailable")

    monkeypatch.setattr(event_repo, "list_overlapping", broken)

    resp = client.post("/api/events", json=_body())
    assert resp.status_code == 201


def test_create_propagates_write_storage_error(client: TestClient, monkeypatch):
    def broken(event):
        raise StorageError("disk full")

    monkeypatch.setattr(event_repo, "add", broken)

    resp = client.post("/api/events", json=_body())
    assert resp.status_code == 500
    assert resp.json() == {"error": "disk full"}


# ---------------------------------------------------------------------------
# Update & delete
# ---------------------------------------------------------------------------


def test_update_approved_event_does_not_conflict_with_itself(client: TestClient):
    event = _create_approved(client)

    resp = client.put(f"/api/events/{event['id']}", json=_body(name="Renamed concert"))

    assert resp.status_code == 200
    updated = resp.json()
    assert updated["name"] == "Renamed concert"
    assert updated["status"] == "approved"
    assert updated["created_at"] == event["created_at"]


def test_update_into_conflict_rejected(client: TestClient):
    _create_approved(client, name="Recital", event_start_time="14:00", event_end_time="16:00")
    event = _create(client, event_start_time="09:00", event_end_time="10:00")

    resp = client.put(
        f"/api/events/{event['id']}",
        json=_body(event_start_time="15:00", event_end_time="17:00"),
    )

    assert resp.status_code == 409
    assert event_repo.get(event["id"]).event_start_time.hour == 9


def test_update_unknown_event(client: TestClient):
    resp = client.put("/api/events/missing", json=_body())
    assert resp.status_code == 404


def test_delete_removes_event_and_notifications(client: TestClient):
    event = _create(client)

    resp = client.delete(f"/api/events/{event['id']}")

    assert resp.status_code == 200
    assert client.get(f"/api/events/{event['id']}").status_code == 404
    assert notification_repo.list_for_event(event["id"]) == []


# ---------------------------------------------------------------------------
# Approval over HTTP
# ---------------------------------------------------------------------------


def test_approve_conflict_returns_structured_409(client: TestClient):
    blocker = _create(client, name="Board meeting", event_start_time="11:00", event_end_time="12:00")
    candidate = _create(client)
    client.put(f"/api/notifications/{_approval_note_id(blocker['id'])}/approve")

    resp = client.put(f"/api/notifications/{_approval_note_id(candidate['id'])}/approve")

    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "Cannot approve event due to conflict"
    assert body["conflict"]["event_name"] == "Board meeting"
    assert body["conflict"]["start_date"] == "2024-01-10"
    assert body["conflict"]["venue_names"] == ["Main Hall"]
    assert body["message"] == (
        'This event conflicts with "Board meeting" on 2024-01-10 from 11:00 to 12:00 at Main Hall.'
    )
    assert client.get(f"/api/events/{candidate['id']}").json()["status"] == "pending"


def test_approve_publishes_broadcasts(client: TestClient):
    pending = _create(client, name="Rehearsal", event_start_time="11:00", event_end_time="13:00")
    approved = _create_approved(client, name="Recital")

    feed = client.get("/api/broadcasts").json()
    assert [(b["type"], b["event_id"]) for b in feed] == [
        ("event_conflict", pending["id"]),
        ("event_approved", approved["id"]),
    ]

    conflicts = client.get("/api/notifications", params={"type": "event_conflict"}).json()
    assert [n["event_id"] for n in conflicts] == [pending["id"]]
    assert conflicts[0]["event_name"] == "Rehearsal"


def test_decline_over_http(client: TestClient):
    event = _create(client)
    note_id = _approval_note_id(event["id"])

    for _ in range(2):
        resp = client.put(f"/api/notifications/{note_id}/decline")
        assert resp.status_code == 200
        assert client.get(f"/api/events/{event['id']}").json()["status"] == "declined"


def test_approve_unknown_notification(client: TestClient):
    resp = client.put("/api/notifications/missing/approve")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Notification not found"}


def test_list_events_filters_by_status(client: TestClient):
    approved = _create_approved(client)
    _create(client, venue_ids=["gym"])

    resp = client.get("/api/events", params={"status": "approved"})
    assert [e["id"] for e in resp.json()] == [approved["id"]]
    assert len(client.get("/api/events").json()) == 2


# ---------------------------------------------------------------------------
# Advisory check
# ---------------------------------------------------------------------------


def test_check_conflicts_is_dry_run(client: TestClient):
    existing = _create_approved(client, event_start_time="11:00", event_end_time="12:00")

    resp = client.post("/api/events/check-conflicts", json=_body())

    assert resp.status_code == 200
    body = resp.json()
    assert body["has_conflicts"] is True
    assert [c["event_id"] for c in body["conflicts"]] == [existing["id"]]
    assert len(event_repo.list_all()) == 1


def test_check_conflicts_excludes_event(client: TestClient):
    existing = _create_approved(client)

    resp = client.post(
        "/api/events/check-conflicts",
        json=_body(),
        params={"exclude_event_id": existing["id"]},
    )

    assert resp.json() == {"has_conflicts": False, "conflicts": []}


def test_check_conflicts_fails_open(client: TestClient, monkeypatch):
    def broken(*args, **kwargs):
        raise StorageError("database unavailable")

    monkeypatch.setattr(event_repo, "list_overlapping", broken)

    resp = client.post("/api/events/check-conflicts", json=_body())
    assert resp.status_code == 200
    assert resp.json() == {"has_conflicts": False, "conflicts": []}


def test_strict_mode_propagates_detector_failure(client: TestClient, monkeypatch):
    def broken(*args, **kwargs):
        raise StorageError("database unavailable")

    monkeypatch.setattr(event_repo, "list_overlapping", broken)
    monkeypatch.setattr(submissions, "fail_open", False)

    resp = client.post("/api/events", json=_body())
    assert resp.status_code == 500
    assert event_repo.list_all() == []
