"""Application service for contract records attached to projects."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext
from portal.models.entities import Contract, Project
from portal.repositories.portal_repository import PortalRepository
from portal.services.access_service import ProjectAccessGuard

log = structlog.get_logger()

INTERNAL_ONLY = "Contracts are managed by internal organization members."


@dataclass(slots=True)
class ContractCreateData:
    project_id: UUID
    name: str
    file_url: str | None = None


class ContractService:
    """Internal members manage contracts; client members may read their own project's contracts."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PortalRepository(db)
        self.guard = ProjectAccessGuard(db)

    @staticmethod
    def serialize_contract(contract: Contract, project: Project) -> dict[str, object]:
        return {
            "id": str(contract.id),
            "project_id": str(contract.project_id),
            "project_title": project.title,
            "organization_id": str(project.organization_id),
            "name": contract.name,
            "file_url": contract.file_url,
            "signed": contract.signed,
            "signed_at": contract.signed_at.isoformat() if contract.signed_at else None,
            "created_at": contract.created_at.isoformat(),
        }

    def _get_contract_or_404(self, contract_id: UUID) -> Contract:
        contract = self.repo.get_contract(contract_id)
        if contract is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contract not found.")
        return contract

    def list_contracts(self, *, context: RequestUserContext) -> list[tuple[Contract, Project]]:
        self.guard.ensure_internal_member(context.email, INTERNAL_ONLY)
        return self.repo.list_contracts()

    def get_contract(self, *, context: RequestUserContext, contract_id: UUID) -> tuple[Contract, Project]:
        contract = self._get_contract_or_404(contract_id)
        if not self.guard.is_internal_member(context.email) and not self.guard.can_access_project(
            context.email, contract.project_id
        ):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient organization permissions for this contract.",
            )
        return contract, self.repo.get_project(contract.project_id)

    def create_contract(self, *, context: RequestUserContext, data: ContractCreateData) -> tuple[Contract, Project]:
        self.guard.ensure_internal_member(context.email, INTERNAL_ONLY)

        project = self.repo.get_project(data.project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        name = data.name.strip()
        if not name:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Contract name is required.",
            )

        contract = self.repo.add_contract(
            Contract(
                project_id=project.id,
                name=name,
                file_url=data.file_url.strip() if data.file_url and data.file_url.strip() else None,
                signed=False,
                created_at=datetime.utcnow(),
            )
        )
        self.db.commit()
        self.db.refresh(contract)
        log.info("contract.created", contract_id=str(contract.id), project_id=str(project.id))
        return contract, project

    def delete_contract(self, *, context: RequestUserContext, contract_id: UUID) -> None:
        self.guard.ensure_internal_member(context.email, INTERNAL_ONLY)
        contract = self._get_contract_or_404(contract_id)
        self.repo.delete_contract(contract)
        self.db.commit()
        log.info("contract.deleted", contract_id=str(contract_id))
