from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from conftest import auth_headers
from leadflow.exceptions import ValidationError
from leadflow.leads import ledger, service
from leadflow.leads.history_models import ActivityType
from leadflow.leads.schemas import ActivityCreate, LeadCreate
from leadflow.users.models import User


@pytest.fixture(name="lead")
def lead_fixture(client: TestClient, sales: User):
    response = client.post("/leads/", json={"client_name": "Acme Ltd"}, headers=auth_headers(sales))
    return response.json()

def test_activities_keep_insertion_order(client: TestClient, sales: User, lead):
    url = f"/leads/{lead['id']}/activity"
    first = client.post(url, json={"type": "call", "description": "Intro call", "outcome": "Interested"},
                        headers=auth_headers(sales))
    assert first.status_code == 201
    second = client.post(url, json={"type": "email", "description": "Sent proposal", "next_action": "Follow up"},
                         headers=auth_headers(sales))
    assert second.status_code == 201

    response = client.get(f"/leads/{lead['id']}", headers=auth_headers(sales))
    activities = response.json()["activities"]
    assert [a["type"] for a in activities] == ["call", "email"]
    assert [a["position"] for a in activities] == [0, 1]
    assert activities[0]["outcome"] == "Interested"
    assert activities[1]["next_action"] == "Follow up"
    assert activities[0]["performed_at"] < activities[1]["performed_at"]

def test_contact_activities_update_last_contacted(client: TestClient, sales: User, lead):
    url = f"/leads/{lead['id']}/activity"

    response = client.post(url, json={"type": "note", "description": "Looked them up"}, headers=auth_headers(sales))
    assert response.json()["last_contacted_date"] is None

    response = client.post(url, json={"type": "meeting", "description": "Demo"}, headers=auth_headers(sales))
    body = response.json()
    assert body["last_contacted_date"] == body["activities"][-1]["performed_at"]

def test_activity_validation(client: TestClient, sales: User, lead):
    url = f"/leads/{lead['id']}/activity"

    response = client.post(url, json={"type": "call"}, headers=auth_headers(sales))
    assert response.status_code == 400
    assert "description" in response.json()["detail"]

    response = client.post(url, json={"type": "fax", "description": "x"}, headers=auth_headers(sales))
    assert response.status_code == 422

    response = client.post(
        "/leads/00000000-0000-0000-0000-000000000000/activity",
        json={"type": "call", "description": "x"},
        headers=auth_headers(sales)
    )
    assert response.status_code == 404

def test_timestamps_strictly_increase_within_a_lead(session: Session, sales: User):
    lead = service.create_lead(session, LeadCreate(client_name="Acme"), sales)
    frozen = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)

    for description in ("one", "two", "three"):
        ledger.add_activity(
            session, lead, ActivityCreate(type=ActivityType.CALL, description=description), sales, now=frozen
        )

    stamps = [a.performed_at for a in lead.activities]
    assert [a.description for a in lead.activities] == ["one", "two", "three"]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == 3

def test_remarks_are_appended(client: TestClient, sales: User, admin: User, lead):
    url = f"/leads/{lead['id']}/remarks"
    assert client.post(url, json={"text": "Prefers email"}, headers=auth_headers(sales)).status_code == 201
    response = client.post(url, json={"text": "Budget approved"}, headers=auth_headers(admin))
    assert response.status_code == 201

    remarks = response.json()["remarks"]
    assert [r["text"] for r in remarks] == ["Prefers email", "Budget approved"]
    assert remarks[0]["added_by"]["id"] == str(sales.id)
    assert remarks[1]["added_by"]["name"] == "Ada Admin"

    response = client.post(url, json={"text": "  "}, headers=auth_headers(sales))
    assert response.status_code == 400

def test_blank_remark_rejected_by_service(session: Session, sales: User):
    lead = service.create_lead(session, LeadCreate(client_name="Acme"), sales)
    with pytest.raises(ValidationError):
        ledger.add_remark(session, lead, None, sales)
