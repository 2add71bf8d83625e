from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session
from structlog.testing import capture_logs

from portal.core.stages import ProjectKind
from portal.models.entities import Invoice, InvoiceStatus, InvoiceType, MoneyCurrency
from portal.services import billing_service
from portal.services.billing_service import BillingAutomationEngine, next_invoice_number
from tests.factories import create_organization, create_project

NOW = datetime(2026, 3, 15, 12, 0, 0)


def _invoices(db: Session) -> list[Invoice]:
    return db.scalars(select(Invoice).order_by(Invoice.created_at.asc())).all()


def _move(db: Session, project, stage: str) -> str:
    old_stage = project.stage
    project.stage = stage
    db.commit()
    return old_stage


def _add_invoice(db: Session, organization_id, number: str, **fields) -> Invoice:
    invoice = Invoice(
        invoice_number=number,
        organization_id=organization_id,
        amount="10.00",
        created_at=NOW,
        updated_at=NOW,
        **fields,
    )
    db.add(invoice)
    db.commit()
    return invoice


def test_entering_first_payment_creates_auto_invoice(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id, title="Webshop", currency=MoneyCurrency.USD)
    engine = BillingAutomationEngine(db_session)

    old_stage = _move(db_session, project, "pay_first")
    invoice = engine.on_stage_transition(project, old_stage, now=NOW)

    assert invoice is not None
    assert invoice.invoice_number == "INV-2026-0001"
    assert invoice.amount == "605.00"
    assert invoice.currency is MoneyCurrency.USD
    assert invoice.type is InvoiceType.AUTO
    assert invoice.status is InvoiceStatus.SENT
    assert invoice.milestone == "pay_first"
    assert invoice.description == "Payment for Webshop - First payment"
    assert invoice.organization_id == organization.id
    assert invoice.due_date == NOW + timedelta(days=30)


def test_repeated_transition_is_idempotent(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id)
    engine = BillingAutomationEngine(db_session)

    old_stage = _move(db_session, project, "pay_first")
    assert engine.on_stage_transition(project, old_stage, now=NOW) is not None

    _move(db_session, project, "deliver")
    _move(db_session, project, "pay_first")
    assert engine.on_stage_transition(project, "deliver", now=NOW) is None

    assert len(_invoices(db_session)) == 1


def test_final_payment_gets_its_own_invoice_and_number(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id, title="Webshop")
    engine = BillingAutomationEngine(db_session)

    engine.on_stage_transition(project, _move(db_session, project, "pay_first"), now=NOW)
    final = engine.on_stage_transition(project, _move(db_session, project, "pay_final"), now=NOW)

    assert final is not None
    assert final.invoice_number == "INV-2026-0002"
    assert final.description == "Payment for Webshop - Final payment"
    assert [invoice.milestone for invoice in _invoices(db_session)] == ["pay_first", "pay_final"]


@pytest.mark.parametrize("stage", ["kick_off", "deliver", "revise", "completed"])
def test_non_billable_stages_create_nothing(db_session: Session, stage: str) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id, stage="pay_first")
    engine = BillingAutomationEngine(db_session)

    assert engine.on_stage_transition(project, _move(db_session, project, stage), now=NOW) is None
    assert _invoices(db_session) == []


def test_unchanged_stage_and_labs_projects_create_nothing(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    client_project = create_project(db_session, organization.id, stage="pay_first")
    labs_project = create_project(db_session, organization.id, kind=ProjectKind.LABS, stage="concept", subtotal=None)
    engine = BillingAutomationEngine(db_session)

    assert engine.on_stage_transition(client_project, "pay_first", now=NOW) is None
    assert engine.on_stage_transition(labs_project, _move(db_session, labs_project, "mvp"), now=NOW) is None
    assert _invoices(db_session) == []


def test_zero_subtotal_creates_nothing(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id, subtotal="not a number")
    engine = BillingAutomationEngine(db_session)

    assert engine.on_stage_transition(project, _move(db_session, project, "pay_first"), now=NOW) is None
    assert _invoices(db_session) == []


def test_legacy_description_marker_counts_as_existing(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id, title="Webshop")
    _add_invoice(
        db_session,
        organization.id,
        "INV-2025-0007",
        project_id=project.id,
        type=InvoiceType.AUTO,
        description="Payment for Webshop - First payment",
    )
    engine = BillingAutomationEngine(db_session)

    assert engine.on_stage_transition(project, _move(db_session, project, "pay_first"), now=NOW) is None
    assert len(_invoices(db_session)) == 1


def test_invoice_numbers_continue_per_year(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    _add_invoice(db_session, organization.id, "INV-2026-0009")
    _add_invoice(db_session, organization.id, "INV-2025-0042")
    _add_invoice(db_session, organization.id, "INV-2026-custom")
    engine = BillingAutomationEngine(db_session)

    assert next_invoice_number(engine.repo, 2026) == "INV-2026-0010"
    assert next_invoice_number(engine.repo, 2027) == "INV-2027-0001"


def test_billing_failure_is_logged_and_suppressed(db_session: Session, monkeypatch: pytest.MonkeyPatch) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id)
    engine = BillingAutomationEngine(db_session)

    def explode(invoice: Invoice) -> Invoice:
        raise RuntimeError("database went away")

    monkeypatch.setattr(engine.repo, "add_invoice", explode)

    assert engine.on_stage_transition(project, _move(db_session, project, "pay_first"), now=NOW) is None
    db_session.refresh(project)
    assert project.stage == "pay_first"
    assert _invoices(db_session) == []


def test_negative_subtotal_creates_nothing(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id, subtotal="-1000")
    engine = BillingAutomationEngine(db_session)

    with capture_logs() as logs:
        assert engine.on_stage_transition(project, _move(db_session, project, "pay_first"), now=NOW) is None

    assert _invoices(db_session) == []
    assert [entry["reason"] for entry in logs if entry["event"] == "billing.auto_invoice_skipped"] == ["nothing_owed"]


def test_concurrent_milestone_insert_counts_as_existing(
    db_session: Session, monkeypatch: pytest.MonkeyPatch
) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id, title="Webshop")
    engine = BillingAutomationEngine(db_session)
    old_stage = _move(db_session, project, "pay_first")
    _add_invoice(
        db_session,
        organization.id,
        "INV-2026-0001",
        project_id=project.id,
        type=InvoiceType.AUTO,
        milestone="pay_first",
    )

    real_lookup = engine.find_milestone_invoice
    lookups: list[str] = []

    def lookup_missing_the_winner(project_id, stage: str) -> Invoice | None:
        # The first lookup runs before the other writer has committed.
        lookups.append(stage)
        if len(lookups) == 1:
            return None
        return real_lookup(project_id, stage)

    monkeypatch.setattr(engine, "find_milestone_invoice", lookup_missing_the_winner)

    with capture_logs() as logs:
        result = engine.on_stage_transition(project, old_stage, now=NOW)

    assert result is None
    assert len(lookups) == 2
    assert len(_invoices(db_session)) == 1
    skipped = [entry for entry in logs if entry["event"] == "billing.auto_invoice_skipped"]
    assert skipped and skipped[0]["reason"] == "already_exists"
    db_session.refresh(project)
    assert project.stage == "pay_first"


def test_invoice_number_collision_is_logged_and_keeps_stage(
    db_session: Session, monkeypatch: pytest.MonkeyPatch
) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id)
    _add_invoice(db_session, organization.id, "INV-2026-0001")
    engine = BillingAutomationEngine(db_session)

    monkeypatch.setattr(billing_service, "next_invoice_number", lambda repo, year: "INV-2026-0001")

    with capture_logs() as logs:
        result = engine.on_stage_transition(project, _move(db_session, project, "pay_first"), now=NOW)

    assert result is None
    assert [entry["log_level"] for entry in logs if entry["event"] == "billing.auto_invoice_failed"] == ["error"]
    assert [invoice.invoice_number for invoice in _invoices(db_session)] == ["INV-2026-0001"]
    assert _invoices(db_session)[0].project_id is None
    db_session.refresh(project)
    assert project.stage == "pay_first"
