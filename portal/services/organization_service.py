"""Application service for organizations (tenants)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext
from portal.models.entities import Organization
from portal.repositories.portal_repository import PortalRepository

log = structlog.get_logger()


@dataclass(slots=True)
class OrganizationCreateData:
    name: str
    image: str | None = None


@dataclass(slots=True)
class OrganizationUpdateData:
    name: str | None = None
    image: str | None = None


class OrganizationService:
    """Organization CRUD; writes are restricted to platform administrators by the routes."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PortalRepository(db)

    @staticmethod
    def serialize_organization(organization: Organization, member_count: int | None = None) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": str(organization.id),
            "name": organization.name,
            "image": organization.image,
            "created_at": organization.created_at.isoformat(),
            "updated_at": organization.updated_at.isoformat(),
        }
        if member_count is not None:
            payload["member_count"] = member_count
        return payload

    def _get_organization_or_404(self, organization_id: UUID) -> Organization:
        organization = self.repo.get_organization(organization_id)
        if organization is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found.")
        return organization

    def list_organizations(self, *, context: RequestUserContext) -> list[dict[str, object]]:
        if context.is_platform_admin:
            counts = self.repo.member_counts_by_organization()
            return [
                self.serialize_organization(organization, counts.get(organization.id, 0))
                for organization in self.repo.list_organizations()
            ]
        return [
            self.serialize_organization(organization)
            for organization in self.repo.list_organizations(set(context.organization_ids))
        ]

    def create_organization(self, data: OrganizationCreateData) -> Organization:
        now = datetime.utcnow()
        organization = self.repo.add_organization(
            Organization(
                name=data.name.strip(),
                image=data.image.strip() if data.image else None,
                created_at=now,
                updated_at=now,
            )
        )
        self.db.commit()
        self.db.refresh(organization)
        log.info("organization.created", organization_id=str(organization.id), name=organization.name)
        return organization

    def update_organization(self, organization_id: UUID, data: OrganizationUpdateData) -> Organization:
        organization = self._get_organization_or_404(organization_id)
        if data.name is not None:
            organization.name = data.name.strip()
        if data.image is not None:
            organization.image = data.image.strip() or None
        organization.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(organization)
        return organization

    def delete_organization(self, organization_id: UUID) -> None:
        """Delete an organization that owns no projects or invoices.

        Memberships go with it; users whose legacy primary organization was
        this one fall back to their first remaining membership.
        """

        organization = self._get_organization_or_404(organization_id)
        if self.repo.organization_in_use(organization.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Organization still owns projects or invoices.",
            )

        self.repo.delete_memberships_for_organization(organization.id)
        now = datetime.utcnow()
        for user in self.repo.list_users_with_primary_organization(organization.id):
            remaining = self.repo.list_membership_organization_ids(user.id)
            user.organization_id = remaining[0] if remaining else None
            user.updated_at = now
        self.db.flush()

        self.repo.delete_organization(organization)
        self.db.commit()
        log.info("organization.deleted", organization_id=str(organization_id))
