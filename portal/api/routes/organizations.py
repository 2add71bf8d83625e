"""Organization (tenant) endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext, get_current_user_context, require_platform_admin
from portal.db.dependencies import get_db_session
from portal.services.organization_service import (
    OrganizationCreateData,
    OrganizationService,
    OrganizationUpdateData,
)

router = APIRouter(prefix="/organizations", tags=["organizations"])


class OrganizationCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    image: str | None = Field(default=None, max_length=2048)


class OrganizationUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    image: str | None = Field(default=None, max_length=2048)


@router.get("")
def list_organizations(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    return {"items": OrganizationService(db).list_organizations(context=context)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_organization(
    payload: OrganizationCreatePayload,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = OrganizationService(db)
    organization = service.create_organization(OrganizationCreateData(name=payload.name, image=payload.image))
    return service.serialize_organization(organization)


@router.patch("/{organization_id}")
def update_organization(
    organization_id: UUID,
    payload: OrganizationUpdatePayload,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = OrganizationService(db)
    organization = service.update_organization(
        organization_id,
        OrganizationUpdateData(name=payload.name, image=payload.image),
    )
    return service.serialize_organization(organization)


@router.delete("/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_organization(
    organization_id: UUID,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> Response:
    OrganizationService(db).delete_organization(organization_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
