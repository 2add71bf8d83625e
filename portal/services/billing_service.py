"""Stage-triggered invoice automation.

The engine reacts to a project stage change that has already been committed.
Entering a billable milestone creates one ``auto`` invoice for that
(project, milestone) pair; repeated or concurrent transitions into the same
milestone are no-ops. Billing is best effort: failures are logged and never
undo the stage change.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core.config import get_settings
from portal.core.currency import ZERO, payment_amount, to_money_string
from portal.core.stages import BILLABLE_MILESTONES
from portal.models.entities import Invoice, InvoiceStatus, InvoiceType, Project, TransactionType
from portal.repositories.portal_repository import PortalRepository

log = structlog.get_logger()

INVOICE_NUMBER_PATTERN = re.compile(r"^INV-(\d{4})-(\d+)$")


def format_invoice_number(year: int, sequence: int) -> str:
    return f"INV-{year}-{sequence:04d}"


def next_invoice_number(repo: PortalRepository, year: int) -> str:
    """Next ``INV-{year}-NNNN`` number; the sequence restarts every calendar year."""

    highest = 0
    for number in repo.list_invoice_numbers_with_prefix(f"INV-{year}-"):
        match = INVOICE_NUMBER_PATTERN.match(number)
        if match is None or int(match.group(1)) != year:
            continue
        highest = max(highest, int(match.group(2)))
    return format_invoice_number(year, highest + 1)


def milestone_marker(stage: str) -> str:
    return f"{BILLABLE_MILESTONES[stage]} payment"


def milestone_description(project_title: str, stage: str) -> str:
    return f"Payment for {project_title} - {milestone_marker(stage)}"


def _matches_milestone(invoice: Invoice, stage: str) -> bool:
    if invoice.milestone is not None:
        return invoice.milestone == stage
    # Rows written before the milestone column existed only carry the marker text.
    return bool(invoice.description) and milestone_marker(stage) in invoice.description


class BillingAutomationEngine:
    """Creates milestone invoices after committed project stage transitions."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PortalRepository(db)
        self.settings = get_settings()

    def find_milestone_invoice(self, project_id: UUID, stage: str) -> Invoice | None:
        for invoice in self.repo.list_auto_invoices_for_project(project_id):
            if _matches_milestone(invoice, stage):
                return invoice
        return None

    def on_stage_transition(
        self,
        project: Project,
        old_stage: str | None,
        *,
        now: datetime | None = None,
    ) -> Invoice | None:
        """Create the milestone invoice for ``project``'s new stage, if one is owed.

        Returns the created invoice, or ``None`` when nothing was created.
        """

        new_stage = project.stage
        if new_stage == old_stage or new_stage not in BILLABLE_MILESTONES:
            return None

        project_id = project.id
        issued_at = now or datetime.utcnow()
        try:
            return self._create_milestone_invoice(project, new_stage, issued_at)
        except IntegrityError:
            self.db.rollback()
            if self.find_milestone_invoice(project_id, new_stage) is not None:
                log.info(
                    "billing.auto_invoice_skipped",
                    project_id=str(project_id),
                    stage=new_stage,
                    reason="already_exists",
                )
                return None
            log.exception("billing.auto_invoice_failed", project_id=str(project_id), stage=new_stage)
            return None
        except Exception:
            self.db.rollback()
            log.exception("billing.auto_invoice_failed", project_id=str(project_id), stage=new_stage)
            return None

    def _create_milestone_invoice(self, project: Project, stage: str, issued_at: datetime) -> Invoice | None:
        existing = self.find_milestone_invoice(project.id, stage)
        if existing is not None:
            log.info(
                "billing.auto_invoice_skipped",
                project_id=str(project.id),
                stage=stage,
                reason="already_exists",
                invoice_number=existing.invoice_number,
            )
            return None

        amount = payment_amount(project.subtotal, stage)
        if amount is None or amount <= ZERO or project.organization_id is None:
            log.info(
                "billing.auto_invoice_skipped",
                project_id=str(project.id),
                stage=stage,
                reason="nothing_owed",
            )
            return None

        invoice = Invoice(
            invoice_number=next_invoice_number(self.repo, issued_at.year),
            project_id=project.id,
            organization_id=project.organization_id,
            amount=to_money_string(amount),
            currency=project.currency,
            status=InvoiceStatus.SENT,
            type=InvoiceType.AUTO,
            transaction_type=TransactionType.DEBIT,
            description=milestone_description(project.title, stage),
            milestone=stage,
            due_date=issued_at + timedelta(days=self.settings.invoice_due_days),
            created_at=issued_at,
            updated_at=issued_at,
        )
        self.repo.add_invoice(invoice)
        self.db.commit()
        self.db.refresh(invoice)

        log.info(
            "billing.auto_invoice_created",
            project_id=str(project.id),
            stage=stage,
            invoice_id=str(invoice.id),
            invoice_number=invoice.invoice_number,
            amount=invoice.amount,
        )
        return invoice
