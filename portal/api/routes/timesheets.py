"""Hour registration and expense endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext, get_current_user_context
from portal.db.dependencies import get_db_session
from portal.models.entities import HourCategory, MoneyCurrency
from portal.services.timesheet_service import (
    ExpenseCreateData,
    ExpenseService,
    ExpenseUpdateData,
    HourRegistrationCreateData,
    HourRegistrationService,
    HourRegistrationUpdateData,
)

router = APIRouter(tags=["timesheets"])


class HourRegistrationCreatePayload(BaseModel):
    description: str = Field(min_length=1, max_length=4000)
    hours: Decimal = Field(max_digits=10, decimal_places=2)
    category: HourCategory = HourCategory.CLIENT
    project_id: UUID | None = None
    date: datetime | None = None


class HourRegistrationUpdatePayload(BaseModel):
    description: str | None = Field(default=None, min_length=1, max_length=4000)
    hours: Decimal | None = Field(default=None, max_digits=10, decimal_places=2)
    category: HourCategory | None = None
    project_id: UUID | None = None
    date: datetime | None = None


class ExpenseCreatePayload(BaseModel):
    description: str = Field(min_length=1, max_length=4000)
    amount: str = Field(min_length=1, max_length=64)
    currency: MoneyCurrency = MoneyCurrency.EUR
    date: datetime | None = None
    category: str | None = Field(default=None, max_length=64)
    vendor: str | None = Field(default=None, max_length=255)


class ExpenseUpdatePayload(BaseModel):
    description: str | None = Field(default=None, min_length=1, max_length=4000)
    amount: str | None = Field(default=None, min_length=1, max_length=64)
    currency: MoneyCurrency | None = None
    date: datetime | None = None
    category: str | None = Field(default=None, max_length=64)
    vendor: str | None = Field(default=None, max_length=255)


@router.get("/hour-registrations")
def list_hour_registrations(
    project_id: UUID | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = HourRegistrationService(db)
    rows = service.list_registrations(context=context, project_id=project_id)
    return {"items": [service.serialize_registration(row) for row in rows]}


@router.post("/hour-registrations", status_code=status.HTTP_201_CREATED)
def create_hour_registration(
    payload: HourRegistrationCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = HourRegistrationService(db)
    registration = service.create_registration(
        context=context,
        data=HourRegistrationCreateData(**payload.model_dump()),
    )
    return service.serialize_registration(registration)


@router.patch("/hour-registrations/{registration_id}")
def update_hour_registration(
    registration_id: UUID,
    payload: HourRegistrationUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = HourRegistrationService(db)
    registration = service.update_registration(
        context=context,
        registration_id=registration_id,
        data=HourRegistrationUpdateData(
            **payload.model_dump(),
            project_id_provided="project_id" in payload.model_fields_set,
        ),
    )
    return service.serialize_registration(registration)


@router.delete("/hour-registrations/{registration_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_hour_registration(
    registration_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    HourRegistrationService(db).delete_registration(context=context, registration_id=registration_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/expenses")
def list_expenses(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = ExpenseService(db)
    return {"items": [service.serialize_expense(expense) for expense in service.list_expenses(context=context)]}


@router.post("/expenses", status_code=status.HTTP_201_CREATED)
def create_expense(
    payload: ExpenseCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ExpenseService(db)
    expense = service.create_expense(context=context, data=ExpenseCreateData(**payload.model_dump()))
    return service.serialize_expense(expense)


@router.patch("/expenses/{expense_id}")
def update_expense(
    expense_id: UUID,
    payload: ExpenseUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ExpenseService(db)
    expense = service.update_expense(
        context=context,
        expense_id=expense_id,
        data=ExpenseUpdateData(**payload.model_dump()),
    )
    return service.serialize_expense(expense)


@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    ExpenseService(db).delete_expense(context=context, expense_id=expense_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
