"""Authentication context extraction and admin guard utilities."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from portal.core.config import get_settings
from portal.db.dependencies import get_db_session
from portal.services.membership_service import MembershipResolver, normalize_email


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: UUID
    email: str
    name: str | None
    is_platform_admin: bool
    organization_ids: frozenset[UUID]

    def is_member_of(self, organization_id: UUID) -> bool:
        return organization_id in self.organization_ids


def current_user_email(
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
) -> str | None:
    """Email of the authenticated caller, or ``None`` when the request carries no identity.

    Identity comes from a trusted header set by the front-end proxy. The
    development principal is used only when explicitly enabled.
    """

    if x_user_email and x_user_email.strip():
        return normalize_email(x_user_email)

    settings = get_settings()
    if settings.auth_allow_dev_principal:
        return normalize_email(settings.auth_dev_email)
    return None


def _display_name(email: str, x_user_name: str | None) -> str | None:
    if x_user_name and x_user_name.strip():
        return x_user_name.strip()
    settings = get_settings()
    if settings.auth_allow_dev_principal and email == normalize_email(settings.auth_dev_email):
        return settings.auth_dev_name.strip()
    return None


def get_current_user_context(
    email: str | None = Depends(current_user_email),
    x_user_name: str | None = Header(default=None, alias="X-User-Name"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user and organization memberships.

    Unknown emails are provisioned on first sight.
    """

    if email is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing identity header. Expected X-User-Email or enable development principal fallback.",
        )

    resolver = MembershipResolver(db)
    user = resolver.ensure_user_exists(email, _display_name(email, x_user_name))

    return RequestUserContext(
        user_id=user.id,
        email=user.email,
        name=user.name,
        is_platform_admin=resolver.is_platform_admin(user.email),
        organization_ids=frozenset(resolver.organizations_of(user.id)),
    )


def require_platform_admin(
    context: RequestUserContext = Depends(get_current_user_context),
) -> RequestUserContext:
    """Dependency requiring a platform administrator."""

    if not context.is_platform_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only platform administrators can perform this operation.",
        )
    return context
