from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import api  # noqa: E402
from catalog import ChecklistCatalog  # noqa: E402
from conftest import unavailable_session  # noqa: E402
from errors import StoreWriteError  # noqa: E402
from store import RecordStore  # noqa: E402
from users import UserDirectory  # noqa: E402


@pytest.fixture()
def client(store):
    api.app.dependency_overrides[api.get_store] = lambda: store
    try:
        yield TestClient(api.app)
    finally:
        api.app.dependency_overrides.clear()


@pytest.fixture()
def people(store):
    directory = UserDirectory(store)
    return {
        "fom": directory.add_user("Ahmed Ihsaan", "Ahmed.Ihsaan", "Front Office Manager"),
        "agent": directory.add_user("Aishath Rasha", "Aishath.Rasha", "GSA"),
    }


@pytest.fixture()
def templates(store):
    catalog = ChecklistCatalog(store)
    catalog.add_template("Check Float", "Cashiering", "ALL")
    catalog.add_template("Night audit", "Cashiering", "Night")


def _current(client, user_id, shift_type="Morning Shift (07:00 - 16:00)"):
    resp = client.get("/api/v1/shifts/current", params={"user_id": user_id, "shift_type": shift_type})
    assert resp.status_code == 200
    return resp.json()


def test_health_and_operational_date(client):
    assert client.get("/health").json() == {"status": "ok"}
    body = client.get("/api/v1/operational-date").json()
    assert len(body["shift_types"]) == 3
    assert body["default_shift_type"] in body["shift_types"]


def test_shift_round_trip(client, people, templates):
    agent = people["agent"]
    shift = _current(client, agent.id)
    assert [task["label"] for task in shift["tasks"]] == ["Check Float"]
    assert shift["occupancy"] == 75
    assert shift["progress"] == 0

    toggled = client.post(
        "/api/v1/shifts/toggle", json={"shift": shift, "task_id": shift["tasks"][0]["id"]}
    ).json()
    assert toggled["tasks"][0]["isCompleted"] is True

    saved = client.post("/api/v1/shifts/save", json={"user_id": agent.id, "shift": toggled, "final": True})
    assert saved.status_code == 200
    assert saved.json()["status"] == "submitted"

    again = _current(client, agent.id)
    assert again["status"] == "submitted"
    assert again["progress"] == 100

    submitted = client.get("/api/v1/shifts/submitted", params={"date": again["date"]}).json()
    assert submitted["shift_types"] == ["Morning Shift (07:00 - 16:00)"]

    resubmit = client.post("/api/v1/shifts/save", json={"user_id": agent.id, "shift": again, "final": True})
    assert resubmit.status_code == 409

    history = client.get("/api/v1/shifts/history", params={"search": "aishath"}).json()["shifts"]
    assert len(history) == 1
    assert history[0]["progress"] == 100


def test_reopen_permissions(client, people, templates):
    agent, fom = people["agent"], people["fom"]
    shift = _current(client, agent.id)
    client.post("/api/v1/shifts/save", json={"user_id": agent.id, "shift": shift, "final": True})
    payload = {"date": shift["date"], "shift_type": shift["type"]}

    denied = client.post("/api/v1/shifts/reopen", json={**payload, "user_id": agent.id})
    assert denied.status_code == 403
    assert _current(client, agent.id)["status"] == "submitted"

    allowed = client.post("/api/v1/shifts/reopen", json={**payload, "user_id": fom.id})
    assert allowed.status_code == 200
    assert _current(client, agent.id)["status"] == "draft"

    nothing = client.post("/api/v1/shifts/reopen", json={**payload, "user_id": fom.id})
    assert nothing.status_code == 409


def test_stale_draft_save_after_submit_is_409(client, people, templates):
    agent = people["agent"]
    draft = _current(client, agent.id)
    assert client.post("/api/v1/shifts/save", json={"user_id": agent.id, "shift": draft, "final": True}).status_code == 200

    stale = client.post("/api/v1/shifts/save", json={"user_id": agent.id, "shift": draft, "final": False})
    assert stale.status_code == 409
    assert _current(client, agent.id)["status"] == "submitted"


def test_management_cannot_load_a_shift_checklist(client, store, templates):
    viewer = UserDirectory(store).add_user("Fathimath Leena", "Fathimath.Leena", "Management")
    resp = client.get("/api/v1/shifts/current", params={"user_id": viewer.id})
    assert resp.status_code == 403
    body = client.get(f"/api/v1/users/{viewer.id}/permissions").json()
    assert body["permissions"]["work_shifts"] is False


def test_unknown_user_is_404(client):
    assert client.get("/api/v1/shifts/current", params={"user_id": 42}).status_code == 404


def test_guest_request_flow(client, people):
    agent = people["agent"]
    created = client.post(
        "/api/v1/guest-requests",
        json={
            "user_id": agent.id,
            "room_number": "204",
            "guest_name": "Ms. Rahman",
            "description": "Extra towels",
            "priority": "High",
        },
    )
    assert created.status_code == 201
    request_id = created.json()["id"]
    assert created.json()["status"] == "Pending"

    bad = client.post("/api/v1/guest-requests", json={"user_id": agent.id, "room_number": "1"})
    assert bad.status_code == 400

    url = f"/api/v1/guest-requests/{request_id}/status"
    moved = client.post(url, json={"user_id": agent.id, "status": "In Progress", "remarks": "Assigned to housekeeping"})
    assert moved.json()["remarks"] == "Assigned to housekeeping"
    assert moved.json()["updatedBy"] == "Aishath Rasha"
    assert client.post(url, json={"user_id": agent.id, "status": "Completed"}).status_code == 200
    assert client.post(url, json={"user_id": agent.id, "status": "Pending"}).status_code == 409
    assert client.post("/api/v1/guest-requests/999/status", json={"user_id": agent.id, "status": "Completed"}).status_code == 404

    listing = client.get("/api/v1/guest-requests", params={"status": "Completed"}).json()
    assert [item["id"] for item in listing["requests"]] == [request_id]
    assert listing["counts"]["completed"] == 1


def test_occupancy_endpoints(client, people):
    fom = people["fom"]
    put = client.put(
        "/api/v1/occupancy",
        json={"actor_id": fom.id, "days": [{"date": "2024-06-10", "percentage": 120, "notes": "Full"}]},
    )
    assert put.json()["days"][0]["percentage"] == 100
    bad_date = {"actor_id": fom.id, "days": [{"date": "10/06/2024", "percentage": 1}]}
    assert client.put("/api/v1/occupancy", json=bad_date).status_code == 400

    week = client.get("/api/v1/occupancy/week", params={"anchor": "2024-06-12"}).json()["days"]
    assert [day["percentage"] for day in week] == [100, 65, 65, 65, 65, 65, 65]

    imported = client.post("/api/v1/occupancy/import", json={"actor_id": fom.id, "csv": "2024-06-11,40,Quiet"})
    assert imported.json() == {"processed": 1}
    assert client.post("/api/v1/occupancy/import", json={"actor_id": fom.id, "csv": "nonsense"}).status_code == 400

    forecast = client.get("/api/v1/occupancy/forecast", params={"start": "2024-06-10"}).json()
    assert [day["percentage"] for day in forecast["days"]][:3] == [100, 40, 0]
    assert client.get("/api/v1/occupancy/template").json()["csv"].startswith("Date,Percentage,Notes")


def test_occupancy_writes_require_a_manager(client, people):
    days = [{"date": "2024-06-10", "percentage": 80}]
    assert client.put("/api/v1/occupancy", json={"days": days}).status_code == 400
    denied = client.put("/api/v1/occupancy", json={"actor_id": people["agent"].id, "days": days})
    assert denied.status_code == 403
    imported = client.post("/api/v1/occupancy/import", json={"actor_id": people["agent"].id, "csv": "2024-06-11,40,Quiet"})
    assert imported.status_code == 403
    assert client.post("/api/v1/occupancy/import", json={"csv": "2024-06-11,40,Quiet"}).status_code == 400

    week = client.get("/api/v1/occupancy/week", params={"anchor": "2024-06-10"}).json()["days"]
    assert [day["percentage"] for day in week] == [65] * 7


def test_checklist_admin_requires_manager(client, people):
    agent, fom = people["agent"], people["fom"]
    denied = client.post("/api/v1/templates", json={"user_id": agent.id, "label": "Greet", "category": "Arrivals"})
    assert denied.status_code == 403

    created = client.post("/api/v1/templates", json={"user_id": fom.id, "label": "Greet", "category": "Arrivals"})
    assert created.status_code == 201
    assert created.json()["shiftType"] == "ALL"

    listing = client.get("/api/v1/templates").json()
    assert [item["label"] for item in listing["templates"]] == ["Greet"]
    assert "Arrivals" in listing["categories"]

    assert client.post("/api/v1/categories", json={"user_id": fom.id, "name": "VIP"}).json() == {"categories": ["VIP"]}
    assert client.post("/api/v1/categories", json={"user_id": fom.id, "name": "VIP"}).status_code == 400
    assert client.delete(f"/api/v1/templates/{created.json()['id']}", params={"user_id": fom.id}).status_code == 200


def test_users_roster_and_settings(client, people):
    agent, fom = people["agent"], people["fom"]
    assert client.post("/api/v1/users", json={"actor_id": agent.id, "name": "X Y", "username": "x"}).status_code == 403

    created = client.post("/api/v1/users", json={"actor_id": fom.id, "name": "Hassan Zahir", "username": "Hassan.Zahir"})
    assert created.status_code == 201
    assert created.json()["initials"] == "HZ"
    edited = client.put(f"/api/v1/users/{created.json()['id']}", json={"actor_id": fom.id, "role": "Senior GSA"})
    assert edited.json()["role"] == "Senior GSA"
    assert client.delete(f"/api/v1/users/{fom.id}", params={"actor_id": fom.id}).status_code == 403

    assigned = client.post(
        "/api/v1/roster", json={"actor_id": fom.id, "date": "2024-06-10", "shift_type": "Morning", "user_id": agent.id}
    )
    assert assigned.status_code == 201
    duplicate = client.post(
        "/api/v1/roster", json={"actor_id": fom.id, "date": "2024-06-10", "shift_type": "Morning", "user_id": agent.id}
    )
    assert duplicate.status_code == 409
    week = client.get("/api/v1/roster", params={"anchor": "2024-06-14"}).json()["assignments"]
    assert [(a["date"], a["userId"]) for a in week] == [("2024-06-10", agent.id)]

    assert client.get("/api/v1/settings").json()["appName"] == "The HUB | Nova Maldives"
    assert client.put("/api/v1/settings", json={"actor_id": agent.id, "appName": "X"}).status_code == 403
    saved = client.put("/api/v1/settings", json={"actor_id": fom.id, "appName": "Front Desk"})
    assert saved.json()["appName"] == "Front Desk"
    assert saved.json()["supportMessage"] == "Contact IT for support."


def test_store_write_failure_maps_to_502(client, people, store, monkeypatch):
    def failing_upsert(table, rows, **kwargs):
        raise StoreWriteError("database is unavailable", table=table)

    monkeypatch.setattr(store, "upsert", failing_upsert)
    resp = client.put(
        "/api/v1/occupancy",
        json={"actor_id": people["fom"].id, "days": [{"date": "2024-06-10", "percentage": 50}]},
    )
    assert resp.status_code == 502
    assert resp.json()["detail"].startswith("Saving failed")


def test_store_read_failure_degrades(client):
    api.app.dependency_overrides[api.get_store] = lambda: RecordStore(unavailable_session)
    assert client.get("/api/v1/settings").json()["appName"] == "The HUB | Nova Maldives"
    assert client.get("/api/v1/guest-requests").json()["requests"] == []


def test_permissions_endpoint(client, people):
    body = client.get(f"/api/v1/users/{people['agent'].id}/permissions").json()
    assert body["role"] == "GSA"
    assert body["permissions"]["reopen_shift"] is False
    fom = client.get(f"/api/v1/users/{people['fom'].id}/permissions").json()
    assert fom["permissions"]["edit_settings"] is True


def test_user_lookup_on_unavailable_store_is_503(client):
    api.app.dependency_overrides[api.get_store] = lambda: RecordStore(unavailable_session)
    resp = client.get("/api/v1/shifts/current", params={"user_id": 1})
    assert resp.status_code == 503
