from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from caseflow.app import create_app
from caseflow.core.settings import Settings
from conftest import ADMIN, EMPLOYEE, OWNER, STRANGER, TRADEMARK_TEMPLATE


def headers(actor) -> dict[str, str]:
    return {"X-User-ID": actor.user_id, "X-User-Role": actor.role.value, "X-User-Name": actor.name}


@pytest.fixture()
def client(engine):
    app = create_app(Settings(sla_sweep_enabled=False))
    with TestClient(app) as test_client:
        yield test_client


def _open_case(client) -> str:
    response = client.post(
        "/api/cases",
        json={"end_user_id": OWNER.user_id, "service_id": "trademark"},
        headers=headers(ADMIN),
    )
    assert response.status_code == 201
    case_id = response.json()["case"]["case_id"]
    response = client.post(f"/api/cases/{case_id}/assign", json={"employee_id": EMPLOYEE.user_id}, headers=headers(ADMIN))
    assert response.status_code == 200
    response = client.post(
        f"/api/cases/{case_id}/workflow",
        json={"template_id": TRADEMARK_TEMPLATE},
        headers=headers(EMPLOYEE),
    )
    assert response.status_code == 200
    return case_id


def _upload(client, case_id: str, actor, name: str, document_type: str = "Identity Proof"):
    return client.post(
        "/api/documents/upload",
        json={
            "case_id": case_id,
            "document_type": document_type,
            "file": {"url": f"https://files.example.com/{name}", "provider_id": name},
            "metadata": {"original_name": name, "size": 2048, "mime_type": "image/png"},
        },
        headers=headers(actor),
    )


def test_landing_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


def test_missing_user_header_is_unauthorized(client):
    response = client.get("/api/workflow-templates")
    assert response.status_code == 401


def test_case_lifecycle_over_http(client):
    case_id = _open_case(client)

    response = client.get(f"/api/cases/{case_id}", headers=headers(OWNER))
    assert response.status_code == 200
    case = response.json()["case"]
    assert case["status"] == "new"
    assert case["sla_status"] == "on_time"
    assert case["estimated_resolution_time"] == "4 business days"

    assert client.get(f"/api/cases/{case_id}", headers=headers(STRANGER)).status_code == 403

    response = client.put(
        f"/api/cases/{case_id}/checklist",
        json={"step_id": "document-collection", "item_id": "verify-identity", "is_completed": True},
        headers=headers(EMPLOYEE),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["summary"]["completed_items"] == 1
    assert body["steps"][0]["items"][0]["is_completed"] is True

    response = client.put(
        f"/api/cases/{case_id}/status",
        json={"status": "in_progress", "current_step": 1},
        headers=headers(EMPLOYEE),
    )
    assert response.status_code == 200
    assert response.json()["case"]["current_step"] == 1

    response = client.put(f"/api/cases/{case_id}/status", json={"status": "completed"}, headers=headers(EMPLOYEE))
    assert response.status_code == 200
    assert response.json()["case"]["completed_at"] is not None

    response = client.put(f"/api/cases/{case_id}/status", json={"status": "cancelled"}, headers=headers(EMPLOYEE))
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"
    assert response.json()["current_status"] == "completed"

    response = client.post(f"/api/cases/{case_id}/reopen", headers=headers(ADMIN))
    assert response.status_code == 200
    assert response.json()["case"]["reopen_count"] == 1

    response = client.put(f"/api/cases/{case_id}/status", json={"status": "paused"}, headers=headers(EMPLOYEE))
    assert response.status_code == 422


def test_timeline_views(client):
    case_id = _open_case(client)
    client.post(f"/api/cases/{case_id}/notes", json={"note": "Left a voicemail"}, headers=headers(EMPLOYEE))

    user_view = client.get(f"/api/cases/{case_id}/timeline", headers=headers(OWNER)).json()
    staff_view = client.get(f"/api/cases/{case_id}/timeline/internal", headers=headers(EMPLOYEE)).json()

    assert "internal_note_added" not in [item["event_type"] for item in user_view["items"]]
    assert staff_view["items"][0]["event_type"] == "internal_note_added"
    assert staff_view["items"][0]["payload"] == {"kind": "note", "note": "Left a voicemail"}
    assert staff_view["items"][0]["icon"] == "lock"
    assert staff_view["pagination"] == {"page": 1, "limit": 50, "total": 4, "pages": 1}
    assert client.get(f"/api/cases/{case_id}/timeline/internal", headers=headers(OWNER)).status_code == 403

    filtered = client.get(
        f"/api/cases/{case_id}/timeline",
        params={"event_type": "case_created"},
        headers=headers(EMPLOYEE),
    ).json()
    assert [item["event_type"] for item in filtered["items"]] == ["case_created"]


def test_document_endpoints(client):
    case_id = _open_case(client)
    first = _upload(client, case_id, OWNER, "one.png")
    assert first.status_code == 201
    first_id = first.json()["version"]["version_id"]
    assert _upload(client, case_id, OWNER, "two.png").json()["version"]["version"] == 2

    rejected = _upload(client, case_id, OWNER, "pan.png", document_type="PAN Card")
    assert rejected.status_code == 400
    assert rejected.json()["error"] == "validation_error"

    response = client.put(
        f"/api/documents/version/{first_id}/verify",
        json={"verification_status": "rejected"},
        headers=headers(EMPLOYEE),
    )
    assert response.status_code == 400

    response = client.post(f"/api/documents/version/{first_id}/restore", headers=headers(EMPLOYEE))
    assert response.status_code == 201
    restored = response.json()["version"]
    assert restored["version"] == 3
    assert restored["restored_from"] == 1

    history = client.get(f"/api/documents/{case_id}/Identity Proof/versions", headers=headers(OWNER)).json()
    assert [item["version"] for item in history["items"]] == [3, 2, 1]
    assert [item["status"] for item in history["items"]] == ["active", "superseded", "superseded"]

    response = client.put(
        f"/api/documents/version/{restored['version_id']}/verify",
        json={"verification_status": "verified"},
        headers=headers(EMPLOYEE),
    )
    assert response.json()["version"]["verification_status"] == "verified"

    status = client.get(f"/api/documents/{case_id}/status", headers=headers(OWNER)).json()
    assert status["summary"]["total"] == 4
    assert status["summary"]["uploaded"] == 1
    assert status["summary"]["verified"] == 1
    assert status["summary"]["all_uploaded"] is False

    response = client.delete(f"/api/documents/version/{first_id}", headers=headers(OWNER))
    assert response.status_code == 403
    response = client.delete(f"/api/documents/version/{first_id}", headers=headers(ADMIN))
    assert response.json()["version"]["status"] == "deleted"

    assert client.get("/api/documents/version/missing", headers=headers(ADMIN)).status_code == 404


def test_template_endpoints(client):
    payload = {
        "name": "Company Express",
        "service_id": "company_registration",
        "steps": [{"name": "Draft", "estimated_duration": 10, "checklist_items": [{"title": "MoA"}]}],
    }
    assert client.post("/api/workflow-templates", json=payload, headers=headers(EMPLOYEE)).status_code == 403
    response = client.post("/api/workflow-templates", json=payload, headers=headers(ADMIN))
    assert response.status_code == 201
    template = response.json()["template"]
    assert template["total_estimated_duration"] == 10

    response = client.put(
        f"/api/workflow-templates/{template['template_id']}",
        json={"description": "Fast track"},
        headers=headers(ADMIN),
    )
    assert response.json()["template"]["description"] == "Fast track"

    clone = client.post(f"/api/workflow-templates/{template['template_id']}/clone", headers=headers(ADMIN)).json()
    assert clone["template"]["name"] == "Company Express (Copy)"

    listing = client.get(
        "/api/workflow-templates",
        params={"service_id": "company_registration"},
        headers=headers(EMPLOYEE),
    ).json()
    assert listing["pagination"]["total"] == 2

    response = client.delete(f"/api/workflow-templates/{template['template_id']}", headers=headers(ADMIN))
    assert response.json()["template"]["state"] == "archived"
    assert client.get("/api/workflow-templates/missing", headers=headers(ADMIN)).status_code == 404


def test_sla_endpoints(client, clock):
    case_id = _open_case(client)
    assert client.post("/api/sla/sweep", headers=headers(EMPLOYEE)).status_code == 403

    clock.advance(hours=80)
    response = client.post("/api/sla/sweep", headers=headers(ADMIN))
    assert response.status_code == 200
    assert response.json()["updated"] == 1
    assert response.json()["alerts"] == 1

    alerts = client.get("/api/sla/alerts", headers=headers(EMPLOYEE)).json()
    assert [item["case_id"] for item in alerts["items"]] == [case_id]
    assert alerts["items"][0]["sla_status"] == "at_risk"
    assert alerts["items"][0]["hours_remaining"] == 16
    assert client.get("/api/sla/alerts", headers=headers(OWNER)).status_code == 403


def test_lifespan_starts_and_stops_sweeper(engine):
    app = create_app(Settings(sla_sweep_enabled=True, sla_sweep_interval_seconds=3600))
    with TestClient(app):
        assert app.state.sla_sweeper.running
    assert not app.state.sla_sweeper.running
