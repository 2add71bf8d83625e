"""Current user endpoint."""

from fastapi import APIRouter, Depends

from portal.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated user and organization memberships."""

    return {
        "id": str(context.user_id),
        "email": context.email,
        "name": context.name,
        "is_platform_admin": context.is_platform_admin,
        "organization_ids": sorted(str(organization_id) for organization_id in context.organization_ids),
    }
