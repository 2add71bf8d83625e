"""Contract record endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext, get_current_user_context
from portal.db.dependencies import get_db_session
from portal.services.contract_service import ContractCreateData, ContractService

router = APIRouter(prefix="/contracts", tags=["contracts"])


class ContractCreatePayload(BaseModel):
    project_id: UUID
    name: str = Field(min_length=1, max_length=255)
    file_url: str | None = Field(default=None, max_length=2048)


@router.get("")
def list_contracts(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = ContractService(db)
    rows = service.list_contracts(context=context)
    return {"items": [service.serialize_contract(contract, project) for contract, project in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_contract(
    payload: ContractCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ContractService(db)
    contract, project = service.create_contract(context=context, data=ContractCreateData(**payload.model_dump()))
    return service.serialize_contract(contract, project)


@router.get("/{contract_id}")
def get_contract(
    contract_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ContractService(db)
    contract, project = service.get_contract(context=context, contract_id=contract_id)
    return service.serialize_contract(contract, project)


@router.delete("/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contract(
    contract_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    ContractService(db).delete_contract(context=context, contract_id=contract_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
