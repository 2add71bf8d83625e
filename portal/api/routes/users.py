"""User administration endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext, get_current_user_context, require_platform_admin
from portal.db.dependencies import get_db_session
from portal.services.user_service import UserCreateData, UserService, UserUpdateData

router = APIRouter(prefix="/users", tags=["users"])


class UserCreatePayload(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str | None = Field(default=None, max_length=255)
    image: str | None = Field(default=None, max_length=2048)
    phone: str | None = Field(default=None, max_length=64)
    note: str | None = Field(default=None, max_length=4000)
    organization_ids: list[UUID] = Field(default_factory=list)


class UserUpdatePayload(BaseModel):
    email: str | None = Field(default=None, min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str | None = Field(default=None, max_length=255)
    image: str | None = Field(default=None, max_length=2048)
    phone: str | None = Field(default=None, max_length=64)
    note: str | None = Field(default=None, max_length=4000)
    organization_ids: list[UUID] | None = None


@router.get("")
def list_users(
    organization_id: UUID | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    return {"items": UserService(db).list_users(context=context, organization_id=organization_id)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreatePayload,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = UserService(db)
    user = service.create_user(
        UserCreateData(
            email=payload.email,
            name=payload.name,
            image=payload.image,
            phone=payload.phone,
            note=payload.note,
            organization_ids=payload.organization_ids,
        )
    )
    return service.serialize_with_memberships(user)


@router.patch("/{user_id}")
def update_user(
    user_id: UUID,
    payload: UserUpdatePayload,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = UserService(db)
    user = service.update_user(
        user_id,
        UserUpdateData(
            email=payload.email,
            name=payload.name,
            image=payload.image,
            phone=payload.phone,
            note=payload.note,
            organization_ids=payload.organization_ids,
        ),
    )
    return service.serialize_with_memberships(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: UUID,
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> Response:
    UserService(db).delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
