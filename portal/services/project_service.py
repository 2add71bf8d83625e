"""Application service for project lifecycle, payments and billing hand-off."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext
from portal.core.currency import (
    AmountError,
    format_currency,
    parse_amount,
    payment_amount,
    read_amount,
    to_money_string,
    total,
    vat,
)
from portal.core.stages import (
    ProjectKind,
    default_stage,
    format_stage,
    is_valid_stage,
    progress_percent,
    stage_color,
    stages_for,
)
from portal.models.entities import Invoice, MoneyCurrency, Project, ProjectStatus
from portal.repositories.portal_repository import PortalRepository
from portal.services.access_service import ProjectAccessGuard
from portal.services.billing_service import BillingAutomationEngine

log = structlog.get_logger()


@dataclass(slots=True)
class ProjectCreateData:
    title: str
    organization_id: UUID
    kind: ProjectKind = ProjectKind.CLIENT
    stage: str | None = None
    description: str | None = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    subtotal: str | None = None
    currency: MoneyCurrency = MoneyCurrency.EUR
    start_date: datetime | None = None
    deadline: datetime | None = None


@dataclass(slots=True)
class ProjectUpdateData:
    title: str | None = None
    organization_id: UUID | None = None
    kind: ProjectKind | None = None
    stage: str | None = None
    description: str | None = None
    status: ProjectStatus | None = None
    subtotal: str | None = None
    currency: MoneyCurrency | None = None
    start_date: datetime | None = None
    deadline: datetime | None = None


@dataclass(slots=True)
class ProjectUpdateResult:
    project: Project
    auto_invoice: Invoice | None = None


def _ensure_valid_stage(stage: str, kind: ProjectKind) -> None:
    if not is_valid_stage(stage, kind):
        allowed = ", ".join(descriptor.value for descriptor in stages_for(kind))
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Stage '{stage}' is not valid for {kind.value} projects. Expected one of: {allowed}.",
        )


def _normalize_subtotal(raw: str | None) -> str | None:
    """Stripped subtotal text, or ``None`` when blank; unusable amounts raise 422."""

    if raw is None or not raw.strip():
        return None
    try:
        amount = read_amount(raw)
    except AmountError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Invalid subtotal: {exc}") from exc
    if amount < 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Invalid subtotal: amount cannot be negative.",
        )
    return raw.strip()


def _money(amount: Decimal | None) -> str | None:
    if amount is None:
        return None
    return to_money_string(amount)


class ProjectService:
    """Project CRUD, payment summaries and stage-transition billing."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PortalRepository(db)
        self.guard = ProjectAccessGuard(db)
        self.billing = BillingAutomationEngine(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_project(project: Project, total_hours: Decimal | None = None) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": str(project.id),
            "organization_id": str(project.organization_id),
            "title": project.title,
            "description": project.description,
            "status": project.status.value,
            "kind": project.kind.value,
            "stage": project.stage,
            "stage_label": format_stage(project.stage, project.kind),
            "stage_color": stage_color(project.stage, project.kind),
            "progress": progress_percent(project.stage, project.kind),
            "subtotal": project.subtotal,
            "currency": project.currency.value,
            "start_date": project.start_date.isoformat() if project.start_date else None,
            "deadline": project.deadline.isoformat() if project.deadline else None,
            "created_at": project.created_at.isoformat(),
            "updated_at": project.updated_at.isoformat(),
        }
        if total_hours is not None:
            payload["total_hours"] = str(total_hours)
        return payload

    @staticmethod
    def serialize_payment_summary(project: Project) -> dict[str, object]:
        currency = project.currency.value
        due = payment_amount(project.subtotal, project.stage)
        return {
            "project_id": str(project.id),
            "stage": project.stage,
            "stage_label": format_stage(project.stage, project.kind),
            "progress": progress_percent(project.stage, project.kind),
            "currency": currency,
            "subtotal": to_money_string(parse_amount(project.subtotal)),
            "vat": to_money_string(vat(project.subtotal)),
            "total": to_money_string(total(project.subtotal)),
            "payment_due": _money(due),
            "formatted": {
                "subtotal": format_currency(parse_amount(project.subtotal), currency),
                "vat": format_currency(vat(project.subtotal), currency),
                "total": format_currency(total(project.subtotal), currency),
                "payment_due": format_currency(due, currency) if due is not None else None,
            },
        }

    def _get_project_or_404(self, project_id: UUID) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    def _ensure_organization_exists(self, organization_id: UUID) -> None:
        if self.repo.get_organization(organization_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found.")

    # ---------- Project CRUD ----------
    def list_projects(self, *, context: RequestUserContext) -> list[dict[str, object]]:
        if context.is_platform_admin:
            hours = self.repo.total_hours_by_project()
            return [
                self.serialize_project(project, hours.get(project.id, Decimal("0")))
                for project in self.repo.list_projects()
            ]
        return [
            self.serialize_project(project)
            for project in self.repo.list_projects(set(context.organization_ids))
        ]

    def create_project(self, data: ProjectCreateData) -> Project:
        self._ensure_organization_exists(data.organization_id)

        stage = data.stage or default_stage(data.kind)
        _ensure_valid_stage(stage, data.kind)
        subtotal = _normalize_subtotal(data.subtotal)

        now = datetime.utcnow()
        project = self.repo.add_project(
            Project(
                title=data.title.strip(),
                description=data.description.strip() if data.description else None,
                status=data.status,
                kind=data.kind,
                stage=stage,
                subtotal=subtotal,
                currency=data.currency,
                organization_id=data.organization_id,
                start_date=data.start_date,
                deadline=data.deadline,
                created_at=now,
                updated_at=now,
            )
        )
        self.db.commit()
        self.db.refresh(project)
        log.info("project.created", project_id=str(project.id), organization_id=str(project.organization_id))
        return project

    def get_project(self, *, context: RequestUserContext, project_id: UUID) -> Project:
        return self.guard.ensure_project_access(context.email, project_id)

    def update_project(self, project_id: UUID, data: ProjectUpdateData) -> ProjectUpdateResult:
        """Apply a partial update and hand any stage change to billing.

        The project change is committed first; billing runs afterwards with
        its own error boundary, so an invoicing failure never rolls back the
        stage.
        """

        project = self._get_project_or_404(project_id)
        old_stage = project.stage
        auto_invoice: Invoice | None = None

        kind = data.kind or project.kind
        if data.stage is not None:
            _ensure_valid_stage(data.stage, kind)
        subtotal = _normalize_subtotal(data.subtotal) if data.subtotal is not None else project.subtotal
        if data.organization_id is not None and data.organization_id != project.organization_id:
            self._ensure_organization_exists(data.organization_id)
            project.organization_id = data.organization_id

        if data.stage is not None:
            project.stage = data.stage
        elif kind != project.kind and not is_valid_stage(project.stage, kind):
            project.stage = default_stage(kind)
        project.kind = kind

        if data.title is not None:
            project.title = data.title.strip()
        if data.description is not None:
            project.description = data.description.strip() or None
        if data.status is not None:
            project.status = data.status
        project.subtotal = subtotal
        if data.currency is not None:
            project.currency = data.currency
        if data.start_date is not None:
            project.start_date = data.start_date
        if data.deadline is not None:
            project.deadline = data.deadline
        project.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(project)

        if project.stage != old_stage:
            log.info(
                "project.stage_changed",
                project_id=str(project.id),
                old_stage=old_stage,
                new_stage=project.stage,
            )
            auto_invoice = self.billing.on_stage_transition(project, old_stage)
        return ProjectUpdateResult(project=project, auto_invoice=auto_invoice)

    def delete_project(self, project_id: UUID) -> None:
        project = self._get_project_or_404(project_id)
        self.repo.delete_project(project)
        self.db.commit()
        log.info("project.deleted", project_id=str(project_id))

    # ---------- Payments ----------
    def get_payment_summary(self, *, context: RequestUserContext, project_id: UUID) -> dict[str, object]:
        project = self.guard.ensure_project_access(context.email, project_id)
        return self.serialize_payment_summary(project)

    def list_project_invoices(self, *, context: RequestUserContext, project_id: UUID) -> list[Invoice]:
        project = self.guard.ensure_project_access(context.email, project_id)
        return self.repo.list_invoices_for_project(project.id)

