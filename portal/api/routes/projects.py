"""Project lifecycle, payment summary and project invoice endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext, get_current_user_context, require_platform_admin
from portal.core.stages import ProjectKind
from portal.db.dependencies import get_db_session
from portal.models.entities import MoneyCurrency, ProjectStatus
from portal.services.invoice_service import InvoiceService
from portal.services.project_service import ProjectCreateData, ProjectService, ProjectUpdateData

router = APIRouter(prefix="/projects", tags=["projects"])


class ProjectCreatePayload(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    organization_id: UUID
    kind: ProjectKind = ProjectKind.CLIENT
    stage: str | None = Field(default=None, min_length=1, max_length=32)
    description: str | None = Field(default=None, max_length=4000)
    status: ProjectStatus = ProjectStatus.ACTIVE
    subtotal: str | None = Field(default=None, max_length=64)
    currency: MoneyCurrency = MoneyCurrency.EUR
    start_date: datetime | None = None
    deadline: datetime | None = None


class ProjectUpdatePayload(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    organization_id: UUID | None = None
    kind: ProjectKind | None = None
    stage: str | None = Field(default=None, min_length=1, max_length=32)
    description: str | None = Field(default=None, max_length=4000)
    status: ProjectStatus | None = None
    subtotal: str | None = Field(default=None, max_length=64)
    currency: MoneyCurrency | None = None
    start_date: datetime | None = None
    deadline: datetime | None = None


@router.get("")
def list_projects(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    return {"items": ProjectService(db).list_projects(context=context)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreatePayload,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    project = service.create_project(ProjectCreateData(**payload.model_dump()))
    return service.serialize_project(project)


@router.get("/{project_id}")
def get_project(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    project = service.get_project(context=context, project_id=project_id)
    return service.serialize_project(project)


@router.patch("/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectUpdatePayload,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    result = service.update_project(project_id, ProjectUpdateData(**payload.model_dump()))
    body = service.serialize_project(result.project)
    body["auto_invoice_id"] = str(result.auto_invoice.id) if result.auto_invoice else None
    return body


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: UUID,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> Response:
    ProjectService(db).delete_project(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/payment")
def get_project_payment(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return ProjectService(db).get_payment_summary(context=context, project_id=project_id)


@router.get("/{project_id}/invoices")
def list_project_invoices(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    invoices = ProjectService(db).list_project_invoices(context=context, project_id=project_id)
    return {"items": [InvoiceService.serialize_invoice(invoice) for invoice in invoices]}
