from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from portal.models.entities import (
    HourCategory,
    HourRegistration,
    Invoice,
    InvoiceStatus,
    MoneyCurrency,
    ProjectStatus,
    TransactionType,
)
from portal.services.dashboard_service import DashboardService, percent_change, previous_month_start
from tests.factories import auth_headers, create_organization, create_project, create_user

NOW = datetime(2026, 3, 15, 12, 0, 0)


def _paid_invoice(db: Session, organization_id, number: str, amount: str, **fields) -> None:
    fields.setdefault("status", InvoiceStatus.PAID)
    db.add(
        Invoice(
            invoice_number=number,
            organization_id=organization_id,
            amount=amount,
            created_at=NOW,
            updated_at=NOW,
            **fields,
        )
    )
    db.commit()


def _hours(db: Session, user_id, hours: str, date: datetime) -> None:
    db.add(
        HourRegistration(
            user_id=user_id,
            description="Work",
            hours=Decimal(hours),
            category=HourCategory.ADMINISTRATION,
            date=date,
            created_at=date,
            updated_at=date,
        )
    )
    db.commit()


def test_percent_change_and_month_boundaries() -> None:
    assert percent_change(Decimal("150"), Decimal("100")) == Decimal("50.0")
    assert percent_change(Decimal("10"), Decimal("0")) == Decimal("100")
    assert percent_change(Decimal("0"), Decimal("0")) == Decimal("0")
    assert previous_month_start(datetime(2026, 1, 20)) == datetime(2025, 12, 1)


def test_revenue_counts_paid_invoices_with_credit_sign(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    _paid_invoice(db_session, organization.id, "INV-2026-0001", "1000.00", due_date=datetime(2026, 3, 5))
    _paid_invoice(
        db_session,
        organization.id,
        "INV-2026-0002",
        "100.00",
        currency=MoneyCurrency.USD,
        paid_at=datetime(2026, 2, 10),
    )
    _paid_invoice(
        db_session,
        organization.id,
        "INV-2026-0003",
        "50.00",
        transaction_type=TransactionType.CREDIT,
        due_date=datetime(2026, 2, 20),
    )
    _paid_invoice(db_session, organization.id, "INV-2025-0004", "200.00", due_date=datetime(2025, 12, 1))
    _paid_invoice(
        db_session,
        organization.id,
        "INV-2026-0005",
        "999.00",
        status=InvoiceStatus.SENT,
        due_date=datetime(2026, 3, 1),
    )

    revenue = DashboardService(db_session).get_stats(now=NOW)["revenue"]

    assert revenue["total"] == "1242.00"
    assert revenue["this_month"] == "1000.00"
    assert revenue["last_month"] == "42.00"
    assert Decimal(revenue["change_percent"]) == Decimal("2281.0")
    months = {entry["month"]: entry["amount"] for entry in revenue["by_month"]}
    assert len(months) == 12
    assert months["2026-01"] == "0.00"
    assert months["2026-02"] == "42.00"
    assert months["2026-03"] == "1000.00"


def test_hours_and_directory_counts(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    user = create_user(db_session, "staff@exo.dev", organization_ids=[organization.id])
    create_project(db_session, organization.id)
    create_project(db_session, organization.id, status=ProjectStatus.COMPLETED)
    _hours(db_session, user.id, "3.5", datetime(2026, 3, 2))
    _hours(db_session, user.id, "2", datetime(2026, 2, 10))
    _hours(db_session, user.id, "1.25", datetime(2025, 11, 1))

    stats = DashboardService(db_session).get_stats(now=NOW)

    assert Decimal(stats["hours"]["total"]) == Decimal("6.75")
    assert Decimal(stats["hours"]["this_month"]) == Decimal("3.5")
    assert Decimal(stats["hours"]["last_month"]) == Decimal("2")
    assert Decimal(stats["hours"]["change_percent"]) == Decimal("75.0")
    assert stats["projects"] == {"total": 2, "active": 1, "completed": 1}
    assert stats["organizations"] == 1
    assert stats["users"] == 1


def test_dashboard_endpoint_is_admin_only(client: TestClient, db_session: Session) -> None:
    create_user(db_session, "member@client.com")

    assert client.get("/api/v1/dashboard/stats", headers=auth_headers("member@client.com")).status_code == 403

    response = client.get("/api/v1/dashboard/stats", headers=auth_headers())
    assert response.status_code == 200
    assert response.json()["revenue"]["total"] == "0.00"
    assert response.json()["currency"] == "EUR"
