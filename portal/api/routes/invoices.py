"""Invoice endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext, get_current_user_context, require_platform_admin
from portal.db.dependencies import get_db_session
from portal.models.entities import InvoiceStatus, MoneyCurrency, TransactionType
from portal.services.invoice_service import InvoiceCreateData, InvoiceService, InvoiceUpdateData

router = APIRouter(prefix="/invoices", tags=["invoices"])


class InvoiceCreatePayload(BaseModel):
    organization_id: UUID
    amount: str = Field(min_length=1, max_length=64)
    project_id: UUID | None = None
    invoice_number: str | None = Field(default=None, min_length=1, max_length=32)
    currency: MoneyCurrency = MoneyCurrency.EUR
    status: InvoiceStatus = InvoiceStatus.DRAFT
    transaction_type: TransactionType = TransactionType.DEBIT
    description: str | None = Field(default=None, max_length=4000)
    due_date: datetime | None = None


class InvoiceUpdatePayload(BaseModel):
    invoice_number: str | None = Field(default=None, min_length=1, max_length=32)
    amount: str | None = Field(default=None, min_length=1, max_length=64)
    currency: MoneyCurrency | None = None
    status: InvoiceStatus | None = None
    transaction_type: TransactionType | None = None
    description: str | None = Field(default=None, max_length=4000)
    due_date: datetime | None = None
    paid_at: datetime | None = None


@router.get("")
def list_invoices(
    organization_id: UUID | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = InvoiceService(db)
    invoices = service.list_invoices(context=context, organization_id=organization_id)
    return {"items": [service.serialize_invoice(invoice) for invoice in invoices]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_invoice(
    payload: InvoiceCreatePayload,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InvoiceService(db)
    invoice = service.create_invoice(InvoiceCreateData(**payload.model_dump()))
    return service.serialize_invoice(invoice)


@router.patch("/{invoice_id}")
def update_invoice(
    invoice_id: UUID,
    payload: InvoiceUpdatePayload,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InvoiceService(db)
    invoice = service.update_invoice(invoice_id, InvoiceUpdateData(**payload.model_dump()))
    return service.serialize_invoice(invoice)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    invoice_id: UUID,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> Response:
    InvoiceService(db).delete_invoice(invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
