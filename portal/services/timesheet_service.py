"""Application service for hour registrations and internal expenses."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext
from portal.core.currency import ZERO, parse_amount, to_money_string
from portal.models.entities import NON_PROJECT_CATEGORIES, Expense, HourCategory, HourRegistration, MoneyCurrency
from portal.repositories.portal_repository import PortalRepository
from portal.services.access_service import ProjectAccessGuard

log = structlog.get_logger()


@dataclass(slots=True)
class HourRegistrationCreateData:
    description: str
    hours: Decimal
    category: HourCategory = HourCategory.CLIENT
    project_id: UUID | None = None
    date: datetime | None = None


@dataclass(slots=True)
class HourRegistrationUpdateData:
    description: str | None = None
    hours: Decimal | None = None
    category: HourCategory | None = None
    # project_id may be cleared explicitly, so "not provided" is tracked separately.
    project_id: UUID | None = None
    project_id_provided: bool = False
    date: datetime | None = None


@dataclass(slots=True)
class ExpenseCreateData:
    description: str
    amount: str
    currency: MoneyCurrency = MoneyCurrency.EUR
    date: datetime | None = None
    category: str | None = None
    vendor: str | None = None


@dataclass(slots=True)
class ExpenseUpdateData:
    description: str | None = None
    amount: str | None = None
    currency: MoneyCurrency | None = None
    date: datetime | None = None
    # Empty strings clear these two; None leaves them untouched.
    category: str | None = None
    vendor: str | None = None


def _expense_amount(raw: str) -> str:
    amount = parse_amount(raw)
    if amount <= ZERO:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="amount must be a number greater than zero.",
        )
    return to_money_string(amount)


def validate_hour_entry(hours: Decimal, category: HourCategory, project_id: UUID | None) -> None:
    """Reject entries that must never reach the database."""

    if hours <= 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="hours must be greater than zero.",
        )
    if category in NON_PROJECT_CATEGORIES and project_id is not None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Category '{category.value}' cannot be linked to a project.",
        )


class HourRegistrationService:
    """Time tracking for the signed-in user; admins may manage any entry."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PortalRepository(db)
        self.guard = ProjectAccessGuard(db)

    @staticmethod
    def serialize_registration(registration: HourRegistration) -> dict[str, object]:
        return {
            "id": str(registration.id),
            "user_id": str(registration.user_id),
            "project_id": str(registration.project_id) if registration.project_id else None,
            "description": registration.description,
            "hours": str(registration.hours),
            "category": registration.category.value,
            "date": registration.date.isoformat(),
            "created_at": registration.created_at.isoformat(),
            "updated_at": registration.updated_at.isoformat(),
        }

    def _get_owned_registration(self, *, context: RequestUserContext, registration_id: UUID) -> HourRegistration:
        registration = self.repo.get_hour_registration(registration_id)
        if registration is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hour registration not found.")
        if registration.user_id != context.user_id and not context.is_platform_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Hour registrations can only be changed by their owner.",
            )
        return registration

    def list_registrations(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID | None = None,
    ) -> list[HourRegistration]:
        if project_id is not None:
            self.guard.ensure_project_access(context.email, project_id)
            return self.repo.list_hour_registrations_for_project(project_id)
        return self.repo.list_hour_registrations_for_user(context.user_id)

    def create_registration(
        self,
        *,
        context: RequestUserContext,
        data: HourRegistrationCreateData,
    ) -> HourRegistration:
        validate_hour_entry(data.hours, data.category, data.project_id)
        if data.project_id is not None:
            self.guard.ensure_project_access(context.email, data.project_id)

        now = datetime.utcnow()
        registration = self.repo.add_hour_registration(
            HourRegistration(
                user_id=context.user_id,
                project_id=data.project_id,
                description=data.description.strip(),
                hours=data.hours,
                category=data.category,
                date=data.date or now,
                created_at=now,
                updated_at=now,
            )
        )
        self.db.commit()
        self.db.refresh(registration)
        return registration

    def update_registration(
        self,
        *,
        context: RequestUserContext,
        registration_id: UUID,
        data: HourRegistrationUpdateData,
    ) -> HourRegistration:
        registration = self._get_owned_registration(context=context, registration_id=registration_id)

        hours = data.hours if data.hours is not None else registration.hours
        category = data.category or registration.category
        project_id = data.project_id if data.project_id_provided else registration.project_id
        validate_hour_entry(hours, category, project_id)
        if project_id is not None and project_id != registration.project_id:
            self.guard.ensure_project_access(context.email, project_id)

        if data.description is not None:
            registration.description = data.description.strip()
        if data.date is not None:
            registration.date = data.date
        registration.hours = hours
        registration.category = category
        registration.project_id = project_id
        registration.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(registration)
        return registration

    def delete_registration(self, *, context: RequestUserContext, registration_id: UUID) -> None:
        registration = self._get_owned_registration(context=context, registration_id=registration_id)
        self.repo.delete_hour_registration(registration)
        self.db.commit()


class ExpenseService:
    """Expenses belong to the internal organization and are visible to its members only."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PortalRepository(db)
        self.guard = ProjectAccessGuard(db)

    @staticmethod
    def serialize_expense(expense: Expense) -> dict[str, object]:
        return {
            "id": str(expense.id),
            "user_id": str(expense.user_id),
            "description": expense.description,
            "amount": expense.amount,
            "currency": expense.currency.value,
            "date": expense.date.isoformat(),
            "category": expense.category,
            "vendor": expense.vendor,
            "created_at": expense.created_at.isoformat(),
            "updated_at": expense.updated_at.isoformat(),
        }

    def _ensure_internal_access(self, context: RequestUserContext) -> None:
        self.guard.ensure_internal_member(
            context.email,
            "Expenses are restricted to internal organization members.",
        )

    def _get_expense_or_404(self, expense_id: UUID) -> Expense:
        expense = self.repo.get_expense(expense_id)
        if expense is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found.")
        return expense

    def list_expenses(self, *, context: RequestUserContext) -> list[Expense]:
        self._ensure_internal_access(context)
        return self.repo.list_expenses()

    def create_expense(self, *, context: RequestUserContext, data: ExpenseCreateData) -> Expense:
        self._ensure_internal_access(context)
        amount = _expense_amount(data.amount)

        now = datetime.utcnow()
        expense = self.repo.add_expense(
            Expense(
                user_id=context.user_id,
                description=data.description.strip(),
                amount=amount,
                currency=data.currency,
                date=data.date or now,
                category=data.category.strip() if data.category else None,
                vendor=data.vendor.strip() if data.vendor else None,
                created_at=now,
                updated_at=now,
            )
        )
        self.db.commit()
        self.db.refresh(expense)
        log.info("expense.created", expense_id=str(expense.id), user_id=str(context.user_id))
        return expense

    def update_expense(self, *, context: RequestUserContext, expense_id: UUID, data: ExpenseUpdateData) -> Expense:
        self._ensure_internal_access(context)
        expense = self._get_expense_or_404(expense_id)
        amount = _expense_amount(data.amount) if data.amount is not None else expense.amount

        if data.description is not None:
            expense.description = data.description.strip()
        expense.amount = amount
        if data.currency is not None:
            expense.currency = data.currency
        if data.date is not None:
            expense.date = data.date
        if data.category is not None:
            expense.category = data.category.strip() or None
        if data.vendor is not None:
            expense.vendor = data.vendor.strip() or None
        expense.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(expense)
        log.info("expense.updated", expense_id=str(expense.id))
        return expense

    def delete_expense(self, *, context: RequestUserContext, expense_id: UUID) -> None:
        self._ensure_internal_access(context)
        expense = self._get_expense_or_404(expense_id)
        self.repo.delete_expense(expense)
        self.db.commit()
        log.info("expense.deleted", expense_id=str(expense_id))
