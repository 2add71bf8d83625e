"""Tenant isolation checks for projects and organization-scoped resources."""

from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from portal.models.entities import Project
from portal.repositories.portal_repository import PortalRepository
from portal.services.membership_service import MembershipResolver


class ProjectAccessGuard:
    """Read/write access decisions.

    Platform administrators bypass tenant isolation entirely; the admin check
    runs before any lookup. Everyone else needs a membership in the owning
    organization.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PortalRepository(db)
        self.memberships = MembershipResolver(db)

    def can_access_project(self, email: str | None, project_id: UUID) -> bool:
        if self.memberships.is_platform_admin(email):
            return True
        if not email:
            return False

        project = self.repo.get_project(project_id)
        if project is None or project.organization_id is None:
            return False

        user = self.repo.find_user_by_email(email)
        if user is None:
            return False
        return self.memberships.is_member_of(user.id, project.organization_id)

    def can_access_organization_scoped_resource(self, email: str | None, organization_id: UUID) -> bool:
        if self.memberships.is_platform_admin(email):
            return True
        if not email:
            return False

        user = self.repo.find_user_by_email(email)
        if user is None:
            return False
        return self.memberships.is_member_of(user.id, organization_id)

    def ensure_project_access(self, email: str | None, project_id: UUID) -> Project:
        """Resolve a project the caller may see or raise 404/403."""

        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        if not self.can_access_project(email, project_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient organization permissions for this project.",
            )
        return project

    def ensure_organization_access(self, email: str | None, organization_id: UUID) -> None:
        if not self.can_access_organization_scoped_resource(email, organization_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient organization permissions for this operation.",
            )

    def is_internal_member(self, email: str | None) -> bool:
        """Admins, plus members of the internal organization once it exists."""

        if self.memberships.is_platform_admin(email):
            return True
        internal = self.repo.find_organization_by_name(self.memberships.settings.internal_organization_name)
        if internal is None:
            return False
        return self.can_access_organization_scoped_resource(email, internal.id)

    def ensure_internal_member(self, email: str | None, detail: str) -> None:
        if not self.is_internal_member(email):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
