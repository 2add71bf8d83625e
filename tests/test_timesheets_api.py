from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from portal.models.entities import HourCategory, HourRegistration
from portal.services.membership_service import MembershipResolver
from portal.services.timesheet_service import validate_hour_entry
from tests.factories import auth_headers, create_organization, create_project, create_user

MEMBER_EMAIL = "member@client.com"


def _registration_count(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(HourRegistration))


@pytest.mark.parametrize("category", ["administration", "brainstorming", "research", "client_acquisition"])
def test_non_project_category_with_project_is_rejected(
    client: TestClient,
    db_session: Session,
    category: str,
) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id)

    response = client.post(
        "/api/v1/hour-registrations",
        headers=auth_headers(),
        json={"description": "Paperwork", "hours": 1, "category": category, "project_id": str(project.id)},
    )

    assert response.status_code == 422
    assert _registration_count(db_session) == 0


def test_validate_hour_entry_rejects_bad_input_before_persistence() -> None:
    with pytest.raises(HTTPException) as zero_hours:
        validate_hour_entry(Decimal("0"), HourCategory.CLIENT, None)
    assert zero_hours.value.status_code == 422


def test_hour_registration_lifecycle(client: TestClient, db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    create_user(db_session, MEMBER_EMAIL, organization_ids=[organization.id])
    project = create_project(db_session, organization.id)

    created = client.post(
        "/api/v1/hour-registrations",
        headers=auth_headers(MEMBER_EMAIL),
        json={"description": "Wireframes", "hours": 3, "project_id": str(project.id)},
    )
    assert created.status_code == 201
    registration = created.json()
    assert registration["category"] == "client"
    assert Decimal(registration["hours"]) == Decimal("3")

    listed = client.get("/api/v1/hour-registrations", headers=auth_headers(MEMBER_EMAIL)).json()["items"]
    assert [item["id"] for item in listed] == [registration["id"]]

    url = f"/api/v1/hour-registrations/{registration['id']}"
    still_linked = client.patch(url, headers=auth_headers(MEMBER_EMAIL), json={"category": "administration"})
    assert still_linked.status_code == 422

    unlinked = client.patch(
        url,
        headers=auth_headers(MEMBER_EMAIL),
        json={"category": "administration", "project_id": None},
    )
    assert unlinked.status_code == 200
    assert unlinked.json()["project_id"] is None
    assert unlinked.json()["category"] == "administration"

    negative = client.patch(url, headers=auth_headers(MEMBER_EMAIL), json={"hours": -2})
    assert negative.status_code == 422

    assert client.delete(url, headers=auth_headers("other@client.com")).status_code == 403
    assert client.delete(url, headers=auth_headers(MEMBER_EMAIL)).status_code == 204
    assert _registration_count(db_session) == 0


def test_hours_on_foreign_project_are_forbidden(client: TestClient, db_session: Session) -> None:
    org_a = create_organization(db_session, "Org A")
    org_b = create_organization(db_session, "Org B")
    create_user(db_session, MEMBER_EMAIL, organization_ids=[org_a.id])
    foreign = create_project(db_session, org_b.id)

    response = client.post(
        "/api/v1/hour-registrations",
        headers=auth_headers(MEMBER_EMAIL),
        json={"description": "Snooping", "hours": 1, "project_id": str(foreign.id)},
    )

    assert response.status_code == 403
    assert _registration_count(db_session) == 0


def test_expenses_are_limited_to_internal_members(client: TestClient, db_session: Session) -> None:
    internal = MembershipResolver(db_session).get_or_create_internal_organization()
    db_session.commit()
    create_user(db_session, "staff@contractor.com", organization_ids=[internal.id])
    create_user(db_session, MEMBER_EMAIL)

    created = client.post(
        "/api/v1/expenses",
        headers=auth_headers("staff@contractor.com"),
        json={"description": "Laptop", "amount": "€ 1,499.00", "vendor": "Apple", "category": "hardware"},
    )
    assert created.status_code == 201
    assert created.json()["amount"] == "1499.00"

    assert client.get("/api/v1/expenses", headers=auth_headers(MEMBER_EMAIL)).status_code == 403
    admin_view = client.get("/api/v1/expenses", headers=auth_headers())
    assert admin_view.status_code == 200
    assert [item["vendor"] for item in admin_view.json()["items"]] == ["Apple"]

    invalid = client.post(
        "/api/v1/expenses",
        headers=auth_headers("staff@contractor.com"),
        json={"description": "Nothing", "amount": "abc"},
    )
    assert invalid.status_code == 422

    expense_id = created.json()["id"]
    assert client.delete(f"/api/v1/expenses/{expense_id}", headers=auth_headers(MEMBER_EMAIL)).status_code == 403
    assert client.delete(f"/api/v1/expenses/{expense_id}", headers=auth_headers()).status_code == 204


def test_expense_update_changes_only_given_fields(client: TestClient, db_session: Session) -> None:
    internal = MembershipResolver(db_session).get_or_create_internal_organization()
    db_session.commit()
    create_user(db_session, "staff@contractor.com", organization_ids=[internal.id])
    create_user(db_session, MEMBER_EMAIL)
    staff = auth_headers("staff@contractor.com")

    created = client.post(
        "/api/v1/expenses",
        headers=staff,
        json={"description": "Laptop", "amount": "1499", "vendor": "Apple", "category": "hardware"},
    ).json()
    url = f"/api/v1/expenses/{created['id']}"

    updated = client.patch(url, headers=staff, json={"amount": "$1,299.50", "currency": "USD", "vendor": ""})
    assert updated.status_code == 200
    assert updated.json()["amount"] == "1299.50"
    assert updated.json()["currency"] == "USD"
    assert updated.json()["vendor"] is None
    assert updated.json()["category"] == "hardware"
    assert updated.json()["description"] == "Laptop"

    assert client.patch(url, headers=staff, json={"amount": "-5"}).status_code == 422
    assert client.patch(url, headers=auth_headers(MEMBER_EMAIL), json={"description": "Mine"}).status_code == 403
    missing = client.patch(f"/api/v1/expenses/{uuid.uuid4()}", headers=staff, json={"description": "Ghost"})
    assert missing.status_code == 404

    unchanged = client.get("/api/v1/expenses", headers=staff).json()["items"][0]
    assert unchanged["amount"] == "1299.50"
    assert unchanged["description"] == "Laptop"
