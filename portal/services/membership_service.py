"""Tenant membership resolution.

A user's organizations come from two places: the legacy ``users.organization_id``
column written by single-tenant versions of the portal, and the
``user_organizations`` join table. Readers always take the union of both.
Writers replace the join rows wholesale and recompute the legacy column as the
first organization of the new set, so the two never diverge.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core.config import Settings, get_settings
from portal.models.entities import Organization, User, UserOrganization
from portal.repositories.portal_repository import PortalRepository

log = structlog.get_logger()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_platform_admin(email: str | None, settings: Settings | None = None) -> bool:
    """Whether ``email`` belongs to the administrative domain. No database access."""

    if not email:
        return False
    settings = settings or get_settings()
    return normalize_email(email).endswith(settings.admin_email_domain)


def _dedupe(organization_ids: list[UUID]) -> list[UUID]:
    return list(dict.fromkeys(organization_ids))


class MembershipResolver:
    """Resolves and rewrites organization memberships for users."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PortalRepository(db)
        self.settings = get_settings()

    def is_platform_admin(self, email: str | None) -> bool:
        return is_platform_admin(email, self.settings)

    def organizations_of(self, user_id: UUID) -> set[UUID]:
        """Union of legacy primary organization and join-table memberships.

        Unknown users resolve to the empty set, which callers treat the same as
        a user without memberships.
        """

        user = self.repo.get_user(user_id)
        if user is None:
            return set()

        organization_ids = set(self.repo.list_membership_organization_ids(user_id))
        if user.organization_id is not None:
            organization_ids.add(user.organization_id)
        return organization_ids

    def is_member_of(self, user_id: UUID, organization_id: UUID) -> bool:
        return organization_id in self.organizations_of(user_id)

    def replace_memberships(
        self,
        user_id: UUID,
        organization_ids: list[UUID],
        *,
        commit: bool = True,
    ) -> User:
        """Replace every membership of ``user_id`` with ``organization_ids``.

        Deletes all join rows, inserts one row per distinct id in the given
        order and sets the legacy column to the first id, or ``None`` for an
        empty set.
        With ``commit=False`` the caller owns both the transaction and the
        audit log entry.
        """

        user = self.repo.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

        target_ids = _dedupe(organization_ids)
        if self.repo.count_existing_organizations(set(target_ids)) != len(target_ids):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found.")

        now = datetime.utcnow()
        self.repo.delete_memberships_for_user(user.id)
        for position, organization_id in enumerate(target_ids):
            # Offsetting created_at keeps insertion order readable back from the table.
            self.repo.add_membership(
                UserOrganization(
                    user_id=user.id,
                    organization_id=organization_id,
                    created_at=now + timedelta(microseconds=position),
                )
            )

        user.organization_id = target_ids[0] if target_ids else None
        user.updated_at = now
        self.db.flush()

        if commit:
            self.db.commit()
            self.db.refresh(user)
            log.info(
                "membership.replaced",
                user_id=str(user.id),
                organization_ids=[str(organization_id) for organization_id in target_ids],
            )
        return user

    def get_or_create_internal_organization(self) -> Organization:
        name = self.settings.internal_organization_name
        organization = self.repo.find_organization_by_name(name)
        if organization is not None:
            return organization

        now = datetime.utcnow()
        organization = self.repo.add_organization(Organization(name=name, created_at=now, updated_at=now))
        log.info("organization.created", organization_id=str(organization.id), name=name, internal=True)
        return organization

    def ensure_user_exists(self, email: str, name: str | None = None) -> User:
        """Return the user for ``email``, provisioning one on first sight.

        Newly seen platform administrators join the internal organization.
        """

        normalized_email = normalize_email(email)
        user = self.repo.find_user_by_email(normalized_email)
        if user is not None:
            return user

        now = datetime.utcnow()
        user = self.repo.add_user(
            User(
                email=normalized_email,
                name=name.strip() if name else None,
                organization_id=None,
                created_at=now,
                updated_at=now,
            )
        )
        if self.is_platform_admin(normalized_email):
            internal = self.get_or_create_internal_organization()
            self.replace_memberships(user.id, [internal.id], commit=False)

        try:
            self.db.commit()
        except IntegrityError:
            # Another request provisioned the same email first.
            self.db.rollback()
            existing = self.repo.find_user_by_email(normalized_email)
            if existing is None:
                raise
            return existing

        self.db.refresh(user)
        log.info("user.provisioned", user_id=str(user.id), email=normalized_email)
        return user
