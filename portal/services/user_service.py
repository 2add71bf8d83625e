"""Application service for users and their organization memberships."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext
from portal.models.entities import User
from portal.repositories.portal_repository import PortalRepository
from portal.services.access_service import ProjectAccessGuard
from portal.services.membership_service import MembershipResolver, normalize_email

log = structlog.get_logger()


@dataclass(slots=True)
class UserCreateData:
    email: str
    name: str | None = None
    image: str | None = None
    phone: str | None = None
    note: str | None = None
    organization_ids: list[UUID] = field(default_factory=list)


@dataclass(slots=True)
class UserUpdateData:
    email: str | None = None
    name: str | None = None
    image: str | None = None
    phone: str | None = None
    note: str | None = None
    # None leaves memberships untouched; an empty list removes them all.
    organization_ids: list[UUID] | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class UserService:
    """User administration on top of the membership resolver."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PortalRepository(db)
        self.memberships = MembershipResolver(db)
        self.guard = ProjectAccessGuard(db)

    @staticmethod
    def serialize_user(user: User, organization_ids: list[UUID]) -> dict[str, object]:
        return {
            "id": str(user.id),
            "email": user.email,
            "name": user.name,
            "image": user.image,
            "phone": user.phone,
            "note": user.note,
            "organization_id": str(user.organization_id) if user.organization_id else None,
            "organization_ids": [str(organization_id) for organization_id in organization_ids],
            "created_at": user.created_at.isoformat(),
            "updated_at": user.updated_at.isoformat(),
        }

    def serialize_with_memberships(self, user: User) -> dict[str, object]:
        organization_ids = list(self.repo.list_membership_organization_ids(user.id))
        if user.organization_id is not None and user.organization_id not in organization_ids:
            organization_ids.insert(0, user.organization_id)
        return self.serialize_user(user, organization_ids)

    def _get_user_or_404(self, user_id: UUID) -> User:
        user = self.repo.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return user

    def list_users(
        self,
        *,
        context: RequestUserContext,
        organization_id: UUID | None = None,
    ) -> list[dict[str, object]]:
        if organization_id is None:
            if not context.is_platform_admin:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="organization_id is required.",
                )
            users = self.repo.list_users()
        else:
            if self.repo.get_organization(organization_id) is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found.")
            self.guard.ensure_organization_access(context.email, organization_id)
            users = self.repo.list_users(self.repo.list_user_ids_in_organization(organization_id))

        memberships = self.repo.list_memberships_by_user()
        return [self.serialize_user(user, memberships.get(user.id, [])) for user in users]

    def create_user(self, data: UserCreateData) -> User:
        email = normalize_email(data.email)
        if self.repo.find_user_by_email(email) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User email already exists.")

        now = datetime.utcnow()
        try:
            user = self.repo.add_user(
                User(
                    email=email,
                    name=_clean(data.name),
                    image=_clean(data.image),
                    phone=_clean(data.phone),
                    note=_clean(data.note),
                    created_at=now,
                    updated_at=now,
                )
            )
            self.memberships.replace_memberships(user.id, data.organization_ids, commit=False)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User email already exists.") from exc
        except HTTPException:
            self.db.rollback()
            raise

        self.db.refresh(user)
        log.info(
            "user.created",
            user_id=str(user.id),
            email=email,
            organization_ids=[str(organization_id) for organization_id in data.organization_ids],
        )
        return user

    def update_user(self, user_id: UUID, data: UserUpdateData) -> User:
        user = self._get_user_or_404(user_id)

        if data.email is not None:
            email = normalize_email(data.email)
            existing = self.repo.find_user_by_email(email)
            if existing is not None and existing.id != user.id:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User email already exists.")
            user.email = email
        if data.name is not None:
            user.name = _clean(data.name)
        if data.image is not None:
            user.image = _clean(data.image)
        if data.phone is not None:
            user.phone = _clean(data.phone)
        if data.note is not None:
            user.note = _clean(data.note)
        user.updated_at = datetime.utcnow()

        try:
            if data.organization_ids is not None:
                self.memberships.replace_memberships(user.id, data.organization_ids, commit=False)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User email already exists.") from exc
        except HTTPException:
            self.db.rollback()
            raise

        self.db.refresh(user)
        log.info(
            "user.updated",
            user_id=str(user.id),
            organization_ids=(
                None if data.organization_ids is None else [str(organization_id) for organization_id in data.organization_ids]
            ),
        )
        return user

    def delete_user(self, user_id: UUID) -> None:
        user = self._get_user_or_404(user_id)
        self.repo.delete_user(user)
        self.db.commit()
        log.info("user.deleted", user_id=str(user_id))
