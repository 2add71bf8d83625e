"""Application service for manual invoice administration and invoice listings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext
from portal.core.currency import ZERO, format_currency, parse_amount, to_money_string
from portal.models.entities import Invoice, InvoiceStatus, InvoiceType, MoneyCurrency, TransactionType
from portal.repositories.portal_repository import PortalRepository
from portal.services.access_service import ProjectAccessGuard
from portal.services.billing_service import next_invoice_number

log = structlog.get_logger()


@dataclass(slots=True)
class InvoiceCreateData:
    organization_id: UUID
    amount: str
    project_id: UUID | None = None
    invoice_number: str | None = None
    currency: MoneyCurrency = MoneyCurrency.EUR
    status: InvoiceStatus = InvoiceStatus.DRAFT
    transaction_type: TransactionType = TransactionType.DEBIT
    description: str | None = None
    due_date: datetime | None = None


@dataclass(slots=True)
class InvoiceUpdateData:
    invoice_number: str | None = None
    amount: str | None = None
    currency: MoneyCurrency | None = None
    status: InvoiceStatus | None = None
    transaction_type: TransactionType | None = None
    description: str | None = None
    due_date: datetime | None = None
    paid_at: datetime | None = None


def _normalize_amount(raw: str) -> str:
    amount = parse_amount(raw)
    if amount <= ZERO:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="amount must be a number greater than zero.",
        )
    return to_money_string(amount)


class InvoiceService:
    """Invoice CRUD. Automatic milestone invoices are created by the billing engine."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PortalRepository(db)
        self.guard = ProjectAccessGuard(db)

    @staticmethod
    def serialize_invoice(invoice: Invoice) -> dict[str, object]:
        return {
            "id": str(invoice.id),
            "invoice_number": invoice.invoice_number,
            "project_id": str(invoice.project_id) if invoice.project_id else None,
            "organization_id": str(invoice.organization_id),
            "amount": invoice.amount,
            "formatted_amount": format_currency(parse_amount(invoice.amount), invoice.currency.value),
            "currency": invoice.currency.value,
            "status": invoice.status.value,
            "type": invoice.type.value,
            "transaction_type": invoice.transaction_type.value,
            "description": invoice.description,
            "milestone": invoice.milestone,
            "due_date": invoice.due_date.isoformat() if invoice.due_date else None,
            "paid_at": invoice.paid_at.isoformat() if invoice.paid_at else None,
            "created_at": invoice.created_at.isoformat(),
            "updated_at": invoice.updated_at.isoformat(),
        }

    def _get_invoice_or_404(self, invoice_id: UUID) -> Invoice:
        invoice = self.repo.get_invoice(invoice_id)
        if invoice is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found.")
        return invoice

    def list_invoices(
        self,
        *,
        context: RequestUserContext,
        organization_id: UUID | None = None,
    ) -> list[Invoice]:
        """Admins may list every invoice; members only those of one of their organizations."""

        if context.is_platform_admin:
            return self.repo.list_invoices(organization_id)
        if organization_id is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="organization_id is required.",
            )
        self.guard.ensure_organization_access(context.email, organization_id)
        return self.repo.list_invoices(organization_id)

    def create_invoice(self, data: InvoiceCreateData) -> Invoice:
        if self.repo.get_organization(data.organization_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found.")
        if data.project_id is not None:
            project = self.repo.get_project(data.project_id)
            if project is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
            if project.organization_id != data.organization_id:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Project does not belong to the invoice organization.",
                )

        now = datetime.utcnow()
        invoice_number = (
            data.invoice_number.strip() if data.invoice_number else next_invoice_number(self.repo, now.year)
        )
        invoice = Invoice(
            invoice_number=invoice_number,
            project_id=data.project_id,
            organization_id=data.organization_id,
            amount=_normalize_amount(data.amount),
            currency=data.currency,
            status=data.status,
            type=InvoiceType.MANUAL,
            transaction_type=data.transaction_type,
            description=data.description.strip() if data.description else None,
            due_date=data.due_date,
            paid_at=now if data.status is InvoiceStatus.PAID else None,
            created_at=now,
            updated_at=now,
        )

        try:
            self.repo.add_invoice(invoice)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Invoice number already exists.",
            ) from exc

        self.db.refresh(invoice)
        log.info("invoice.created", invoice_id=str(invoice.id), invoice_number=invoice.invoice_number)
        return invoice

    def update_invoice(self, invoice_id: UUID, data: InvoiceUpdateData) -> Invoice:
        invoice = self._get_invoice_or_404(invoice_id)
        amount = _normalize_amount(data.amount) if data.amount is not None else invoice.amount
        now = datetime.utcnow()

        if data.invoice_number is not None:
            invoice.invoice_number = data.invoice_number.strip()
        invoice.amount = amount
        if data.currency is not None:
            invoice.currency = data.currency
        if data.transaction_type is not None:
            invoice.transaction_type = data.transaction_type
        if data.description is not None:
            invoice.description = data.description.strip() or None
        if data.due_date is not None:
            invoice.due_date = data.due_date
        if data.status is not None:
            invoice.status = data.status
            if data.status is InvoiceStatus.PAID and invoice.paid_at is None and data.paid_at is None:
                invoice.paid_at = now
        if data.paid_at is not None:
            invoice.paid_at = data.paid_at
        invoice.updated_at = now

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Invoice number already exists.",
            ) from exc

        self.db.refresh(invoice)
        return invoice

    def delete_invoice(self, invoice_id: UUID) -> None:
        invoice = self._get_invoice_or_404(invoice_id)
        self.repo.delete_invoice(invoice)
        self.db.commit()
        log.info("invoice.deleted", invoice_id=str(invoice_id))
