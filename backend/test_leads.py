from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from conftest import auth_headers, make_user
from leadflow.exceptions import ForbiddenError, ValidationError
from leadflow.leads import service
from leadflow.leads.history_models import ActivityType, LeadActivity
from leadflow.leads.models import Lead, LeadStatus
from leadflow.leads.schemas import LeadCreate, LeadUpdate
from leadflow.users.models import User, UserRole


def create_lead(client: TestClient, user: User, **fields):
    body = {"client_name": "Acme Ltd", "estimated_value": 5000, "category": "warm"}
    body.update(fields)
    response = client.post("/leads/", json=body, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()

def status_changes(lead_json):
    return [a for a in lead_json["activities"] if a["type"] == "status_change"]

def test_create_lead_defaults(client: TestClient, sales: User):
    lead = create_lead(client, sales, client_email="  Buyer@Acme.COM ")

    assert lead["status"] == "new"
    assert lead["priority"] == "medium"
    assert lead["source"] == "other"
    assert lead["estimated_value"] == 5000
    assert lead["client_email"] == "buyer@acme.com"
    assert lead["sales_person"]["id"] == str(sales.id)
    assert lead["sales_person"]["name"] == "Sam Sales"
    assert lead["assigned_by_id"] is None
    assert lead["conversion_date"] is None
    assert lead["actual_close_date"] is None
    assert lead["activities"] == []
    assert lead["days_since_creation"] in (0, 1)

def test_create_lead_requires_client_name(client: TestClient, sales: User):
    response = client.post("/leads/", json={"company": "Nameless"}, headers=auth_headers(sales))
    assert response.status_code == 400
    assert "client_name" in response.json()["detail"]

    response = client.post("/leads/", json={"client_name": "   "}, headers=auth_headers(sales))
    assert response.status_code == 400

def test_admin_creates_lead_for_sales_person(client: TestClient, admin: User, sales: User):
    # Admin must say who owns the lead
    response = client.post("/leads/", json={"client_name": "Globex"}, headers=auth_headers(admin))
    assert response.status_code == 400

    # Owner must be an active sales user
    response = client.post(
        "/leads/", json={"client_name": "Globex", "sales_person_id": str(admin.id)}, headers=auth_headers(admin)
    )
    assert response.status_code == 400

    lead = create_lead(client, admin, client_name="Globex", sales_person_id=str(sales.id))
    assert lead["sales_person_id"] == str(sales.id)
    assert lead["assigned_by_id"] == str(admin.id)

def test_sales_cannot_create_lead_for_someone_else(client: TestClient, sales: User, other_sales: User):
    response = client.post(
        "/leads/",
        json={"client_name": "Initech", "sales_person_id": str(other_sales.id)},
        headers=auth_headers(sales)
    )
    assert response.status_code == 403

def test_non_sales_roles_are_forbidden(client: TestClient, designer: User):
    response = client.post("/leads/", json={"client_name": "Initech"}, headers=auth_headers(designer))
    assert response.status_code == 403
    assert client.get("/leads/", headers=auth_headers(designer)).status_code == 403

def test_status_change_appends_one_activity(client: TestClient, sales: User):
    lead = create_lead(client, sales)

    response = client.put(f"/leads/{lead['id']}", json={"status": "contacted"}, headers=auth_headers(sales))
    assert response.status_code == 200
    changes = status_changes(response.json())
    assert len(changes) == 1
    assert changes[0]["description"] == "Status changed from new to contacted"
    assert changes[0]["performed_by_id"] == str(sales.id)

    # Same status again: nothing to record
    response = client.put(f"/leads/{lead['id']}", json={"status": "contacted"}, headers=auth_headers(sales))
    assert len(status_changes(response.json())) == 1

    # Non-status edits: nothing to record either
    response = client.put(f"/leads/{lead['id']}", json={"company": "Acme Group"}, headers=auth_headers(sales))
    assert len(status_changes(response.json())) == 1
    assert response.json()["company"] == "Acme Group"
    assert response.json()["status"] == "contacted"

def test_partial_update_keeps_unspecified_fields(client: TestClient, sales: User):
    lead = create_lead(client, sales, description="Needs a CRM", client_phone="555-0100")

    response = client.put(f"/leads/{lead['id']}", json={"priority": "urgent"}, headers=auth_headers(sales))
    body = response.json()
    assert body["priority"] == "urgent"
    assert body["description"] == "Needs a CRM"
    assert body["client_phone"] == "555-0100"
    assert body["estimated_value"] == 5000

def test_update_rejects_blank_client_name(client: TestClient, sales: User):
    lead = create_lead(client, sales)
    response = client.put(f"/leads/{lead['id']}", json={"client_name": ""}, headers=auth_headers(sales))
    assert response.status_code == 400

def test_conversion_dates_are_stamped_once(client: TestClient, sales: User):
    lead = create_lead(client, sales)

    response = client.put(
        f"/leads/{lead['id']}", json={"status": "converted", "actual_value": 6000}, headers=auth_headers(sales)
    )
    converted = response.json()
    assert converted["status"] == "converted"
    assert converted["actual_value"] == 6000
    assert converted["conversion_date"] is not None
    assert converted["actual_close_date"] == converted["conversion_date"]

    response = client.put(
        f"/leads/{lead['id']}", json={"description": "Signed", "actual_value": 6500}, headers=auth_headers(sales)
    )
    assert response.json()["conversion_date"] == converted["conversion_date"]
    assert response.json()["actual_close_date"] == converted["actual_close_date"]

def test_conversion_date_survives_leaving_converted(session: Session, sales: User):
    lead = service.create_lead(session, LeadCreate(client_name="Acme"), sales)
    first = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

    service.update_lead(session, lead.id, LeadUpdate(status="converted"), sales, now=first)
    service.update_lead(session, lead.id, LeadUpdate(status="negotiation"), sales, now=first + timedelta(days=1))
    lead = service.update_lead(session, lead.id, LeadUpdate(status="converted"), sales, now=first + timedelta(days=2))

    assert lead.conversion_date.replace(tzinfo=timezone.utc) == first
    assert lead.actual_close_date.replace(tzinfo=timezone.utc) == first
    assert len([a for a in lead.activities if a.type == ActivityType.STATUS_CHANGE]) == 3

def test_existing_close_date_is_kept_on_conversion(session: Session, sales: User):
    lead = service.create_lead(session, LeadCreate(client_name="Acme"), sales)
    lead.actual_close_date = datetime(2026, 1, 5, tzinfo=timezone.utc)
    session.add(lead)
    session.commit()

    lead = service.update_lead(session, lead.id, LeadUpdate(status="converted"), sales)
    assert lead.conversion_date is not None
    assert lead.actual_close_date.replace(tzinfo=timezone.utc) == datetime(2026, 1, 5, tzinfo=timezone.utc)

def test_legacy_statuses_are_mapped(client: TestClient, sales: User):
    lead = create_lead(client, sales)

    response = client.put(f"/leads/{lead['id']}", json={"status": "confirmed"}, headers=auth_headers(sales))
    assert response.status_code == 200
    assert response.json()["status"] == "qualified"

    response = client.put(f"/leads/{lead['id']}", json={"status": "pending"}, headers=auth_headers(sales))
    assert response.json()["status"] == "new"

    response = client.get("/leads/?status=pending", headers=auth_headers(sales))
    assert [row["id"] for row in response.json()] == [lead["id"]]

    response = client.get("/leads/?status=archived", headers=auth_headers(sales))
    assert response.status_code == 400

    response = client.put(f"/leads/{lead['id']}", json={"status": "archived"}, headers=auth_headers(sales))
    assert response.status_code == 422

def test_ownership_is_enforced(client: TestClient, sales: User, other_sales: User, admin: User):
    lead = create_lead(client, sales)
    url = f"/leads/{lead['id']}"
    intruder = auth_headers(other_sales)

    assert client.get(url, headers=intruder).status_code == 403
    assert client.put(url, json={"status": "lost"}, headers=intruder).status_code == 403
    assert client.post(f"{url}/activity", json={"type": "call", "description": "hi"}, headers=intruder).status_code == 403
    assert client.post(f"{url}/remarks", json={"text": "hi"}, headers=intruder).status_code == 403
    assert client.delete(url, headers=intruder).status_code == 403

    # Admins can do all of it
    assert client.get(url, headers=auth_headers(admin)).status_code == 200
    response = client.put(url, json={"status": "lost", "lost_reason": "Budget"}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["lost_reason"] == "Budget"
    assert client.delete(url, headers=auth_headers(admin)).status_code == 200

def test_missing_lead_is_404(client: TestClient, sales: User):
    url = "/leads/00000000-0000-0000-0000-000000000000"
    assert client.get(url, headers=auth_headers(sales)).status_code == 404
    assert client.put(url, json={"status": "lost"}, headers=auth_headers(sales)).status_code == 404
    assert client.delete(url, headers=auth_headers(sales)).status_code == 404

def test_list_leads_scoping(client: TestClient, sales: User, other_sales: User, admin: User):
    mine = create_lead(client, sales, client_name="Mine", category="hot_deal")
    create_lead(client, other_sales, client_name="Theirs")
    hidden = create_lead(client, sales, client_name="Archived")
    client.put(f"/leads/{hidden['id']}", json={"is_active": False}, headers=auth_headers(sales))

    response = client.get("/leads/", headers=auth_headers(sales))
    assert [row["id"] for row in response.json()] == [mine["id"]]

    # Sales users cannot peek at another owner's list
    response = client.get(f"/leads/?sales_person_id={other_sales.id}", headers=auth_headers(sales))
    assert response.status_code == 403

    response = client.get("/leads/?include_inactive=true", headers=auth_headers(sales))
    assert {row["client_name"] for row in response.json()} == {"Mine", "Archived"}

    response = client.get("/leads/", headers=auth_headers(admin))
    assert {row["client_name"] for row in response.json()} == {"Mine", "Theirs"}

    response = client.get(f"/leads/?sales_person_id={other_sales.id}", headers=auth_headers(admin))
    assert [row["client_name"] for row in response.json()] == ["Theirs"]

    response = client.get("/leads/?category=hot_deal", headers=auth_headers(admin))
    assert [row["client_name"] for row in response.json()] == ["Mine"]

def test_reassign_lead(client: TestClient, session: Session, admin: User, sales: User, other_sales: User):
    lead = create_lead(client, sales)
    client.put(f"/leads/{lead['id']}", json={"status": "negotiation"}, headers=auth_headers(sales))

    # Only admins reassign
    response = client.put(
        f"/leads/{lead['id']}/assign", json={"sales_person_id": str(other_sales.id)}, headers=auth_headers(sales)
    )
    assert response.status_code == 403

    response = client.put(
        f"/leads/{lead['id']}/assign", json={"sales_person_id": str(other_sales.id)}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    body = response.json()
    assert body["sales_person_id"] == str(other_sales.id)
    assert body["assigned_by_id"] == str(admin.id)
    assert body["status"] == "negotiation"
    assert body["conversion_date"] is None
    assert body["activities"][-1]["type"] == "note"
    assert str(other_sales.id) in body["activities"][-1]["description"]

    # The previous owner loses access, the new one gains it
    assert client.get(f"/leads/{lead['id']}", headers=auth_headers(sales)).status_code == 403
    assert client.get(f"/leads/{lead['id']}", headers=auth_headers(other_sales)).status_code == 200

def test_reassign_requires_sales_owner(client: TestClient, admin: User, sales: User, designer: User):
    lead = create_lead(client, sales)
    response = client.put(
        f"/leads/{lead['id']}/assign", json={"sales_person_id": str(designer.id)}, headers=auth_headers(admin)
    )
    assert response.status_code == 400

def test_delete_removes_lead_and_history(client: TestClient, session: Session, sales: User):
    lead = create_lead(client, sales)
    client.put(f"/leads/{lead['id']}", json={"status": "contacted"}, headers=auth_headers(sales))

    response = client.delete(f"/leads/{lead['id']}", headers=auth_headers(sales))
    assert response.status_code == 200

    session.expire_all()
    assert session.exec(select(Lead)).all() == []
    assert session.exec(select(LeadActivity)).all() == []

def test_service_raises_domain_errors(session: Session, sales: User, other_sales: User):
    with pytest.raises(ValidationError):
        service.create_lead(session, LeadCreate(), sales)

    lead = service.create_lead(session, LeadCreate(client_name="Acme"), sales)
    with pytest.raises(ForbiddenError):
        service.update_lead(session, lead.id, LeadUpdate(status="lost"), other_sales)

    session.refresh(lead)
    assert lead.status == LeadStatus.NEW
    assert lead.activities == []

def test_unapproved_sales_user_cannot_own_leads(client: TestClient, session: Session, admin: User, sales: User):
    pending = make_user(session, "pending@example.com", UserRole.SALES, approved=False)

    response = client.post(
        "/leads/", json={"client_name": "Globex", "sales_person_id": str(pending.id)}, headers=auth_headers(admin)
    )
    assert response.status_code == 400
    assert "approved" in response.json()["detail"]

    lead = create_lead(client, sales)
    response = client.put(
        f"/leads/{lead['id']}/assign", json={"sales_person_id": str(pending.id)}, headers=auth_headers(admin)
    )
    assert response.status_code == 400

def test_list_page_size_is_capped(client: TestClient, sales: User):
    assert client.get("/leads/?limit=500", headers=auth_headers(sales)).status_code == 200
    assert client.get("/leads/?limit=501", headers=auth_headers(sales)).status_code == 422
    assert client.get("/leads/?limit=0", headers=auth_headers(sales)).status_code == 422
