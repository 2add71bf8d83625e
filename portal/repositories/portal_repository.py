"""Repository helpers for the portal domain."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from portal.models.entities import (
    Contract,
    Expense,
    HourRegistration,
    Invoice,
    InvoiceStatus,
    InvoiceType,
    Organization,
    Project,
    ProjectStatus,
    User,
    UserOrganization,
)


class PortalRepository:
    """Persistence operations used by membership, access, and billing services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Organizations ----------
    def get_organization(self, organization_id: UUID) -> Organization | None:
        return self.db.scalar(select(Organization).where(Organization.id == organization_id))

    def find_organization_by_name(self, name: str) -> Organization | None:
        return self.db.scalar(
            select(Organization).where(Organization.name == name).order_by(Organization.created_at.asc()).limit(1)
        )

    def list_organizations(self, organization_ids: set[UUID] | None = None) -> list[Organization]:
        statement = select(Organization).order_by(Organization.name.asc())
        if organization_ids is not None:
            if not organization_ids:
                return []
            statement = statement.where(Organization.id.in_(organization_ids))
        return self.db.scalars(statement).all()

    def count_existing_organizations(self, organization_ids: set[UUID]) -> int:
        if not organization_ids:
            return 0
        return self.db.scalar(
            select(func.count()).select_from(Organization).where(Organization.id.in_(organization_ids))
        )

    def member_counts_by_organization(self) -> dict[UUID, int]:
        pairs = set(
            self.db.execute(select(UserOrganization.organization_id, UserOrganization.user_id)).all()
        )
        pairs.update(
            self.db.execute(
                select(User.organization_id, User.id).where(User.organization_id.is_not(None))
            ).all()
        )
        counts: dict[UUID, int] = {}
        for organization_id, _ in pairs:
            counts[organization_id] = counts.get(organization_id, 0) + 1
        return counts

    def add_organization(self, organization: Organization) -> Organization:
        self.db.add(organization)
        self.db.flush()
        return organization

    def delete_organization(self, organization: Organization) -> None:
        self.db.delete(organization)
        self.db.flush()

    def organization_in_use(self, organization_id: UUID) -> bool:
        project_id = self.db.scalar(
            select(Project.id).where(Project.organization_id == organization_id).limit(1)
        )
        if project_id is not None:
            return True
        invoice_id = self.db.scalar(
            select(Invoice.id).where(Invoice.organization_id == organization_id).limit(1)
        )
        return invoice_id is not None

    # ---------- Users and memberships ----------
    def find_user_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(User.email == email.strip().lower()))

    def get_user(self, user_id: UUID) -> User | None:
        return self.db.scalar(select(User).where(User.id == user_id))

    def list_users(self, user_ids: set[UUID] | None = None) -> list[User]:
        statement = select(User).order_by(User.email.asc())
        if user_ids is not None:
            if not user_ids:
                return []
            statement = statement.where(User.id.in_(user_ids))
        return self.db.scalars(statement).all()

    def add_user(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    def delete_user(self, user: User) -> None:
        self.db.execute(delete(UserOrganization).where(UserOrganization.user_id == user.id))
        self.db.execute(delete(HourRegistration).where(HourRegistration.user_id == user.id))
        self.db.execute(delete(Expense).where(Expense.user_id == user.id))
        self.db.delete(user)
        self.db.flush()

    def list_membership_organization_ids(self, user_id: UUID) -> list[UUID]:
        return self.db.scalars(
            select(UserOrganization.organization_id)
            .where(UserOrganization.user_id == user_id)
            .order_by(UserOrganization.created_at.asc())
        ).all()

    def list_memberships_by_user(self) -> dict[UUID, list[UUID]]:
        rows = self.db.execute(
            select(UserOrganization.user_id, UserOrganization.organization_id).order_by(
                UserOrganization.created_at.asc()
            )
        ).all()
        grouped: dict[UUID, list[UUID]] = {}
        for user_id, organization_id in rows:
            grouped.setdefault(user_id, []).append(organization_id)
        legacy = self.db.execute(select(User.id, User.organization_id).where(User.organization_id.is_not(None))).all()
        for user_id, organization_id in legacy:
            memberships = grouped.setdefault(user_id, [])
            if organization_id not in memberships:
                memberships.insert(0, organization_id)
        return grouped

    def list_user_ids_in_organization(self, organization_id: UUID) -> set[UUID]:
        joined = self.db.scalars(
            select(UserOrganization.user_id).where(UserOrganization.organization_id == organization_id)
        ).all()
        legacy = self.db.scalars(select(User.id).where(User.organization_id == organization_id)).all()
        return set(joined) | set(legacy)

    def delete_memberships_for_user(self, user_id: UUID) -> None:
        self.db.execute(delete(UserOrganization).where(UserOrganization.user_id == user_id))
        self.db.flush()

    def delete_memberships_for_organization(self, organization_id: UUID) -> None:
        self.db.execute(
            delete(UserOrganization).where(UserOrganization.organization_id == organization_id)
        )
        self.db.flush()

    def add_membership(self, membership: UserOrganization) -> UserOrganization:
        self.db.add(membership)
        self.db.flush()
        return membership

    def list_users_with_primary_organization(self, organization_id: UUID) -> list[User]:
        return self.db.scalars(select(User).where(User.organization_id == organization_id)).all()

    # ---------- Projects ----------
    def get_project(self, project_id: UUID) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def list_projects(self, organization_ids: set[UUID] | None = None) -> list[Project]:
        statement = select(Project).order_by(Project.created_at.desc())
        if organization_ids is not None:
            if not organization_ids:
                return []
            statement = statement.where(Project.organization_id.in_(organization_ids))
        return self.db.scalars(statement).all()

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    def delete_project(self, project: Project) -> None:
        self.db.execute(delete(Contract).where(Contract.project_id == project.id))
        self.db.execute(delete(HourRegistration).where(HourRegistration.project_id == project.id))
        self.db.execute(delete(Invoice).where(Invoice.project_id == project.id))
        self.db.delete(project)
        self.db.flush()

    def total_hours_by_project(self) -> dict[UUID, Decimal]:
        rows = self.db.execute(
            select(HourRegistration.project_id, func.coalesce(func.sum(HourRegistration.hours), 0))
            .where(HourRegistration.project_id.is_not(None))
            .group_by(HourRegistration.project_id)
        ).all()
        return {project_id: Decimal(str(total)) for project_id, total in rows}

    # ---------- Invoices ----------
    def get_invoice(self, invoice_id: UUID) -> Invoice | None:
        return self.db.scalar(select(Invoice).where(Invoice.id == invoice_id))

    def list_invoices(self, organization_id: UUID | None = None) -> list[Invoice]:
        statement = select(Invoice).order_by(Invoice.created_at.desc())
        if organization_id is not None:
            statement = statement.where(Invoice.organization_id == organization_id)
        return self.db.scalars(statement).all()

    def list_invoices_for_project(self, project_id: UUID) -> list[Invoice]:
        return self.db.scalars(
            select(Invoice).where(Invoice.project_id == project_id).order_by(Invoice.created_at.asc())
        ).all()

    def list_auto_invoices_for_project(self, project_id: UUID) -> list[Invoice]:
        return self.db.scalars(
            select(Invoice)
            .where(and_(Invoice.project_id == project_id, Invoice.type == InvoiceType.AUTO))
            .order_by(Invoice.created_at.asc())
        ).all()

    def list_invoice_numbers_with_prefix(self, prefix: str) -> list[str]:
        return self.db.scalars(
            select(Invoice.invoice_number).where(Invoice.invoice_number.startswith(prefix))
        ).all()

    def add_invoice(self, invoice: Invoice) -> Invoice:
        self.db.add(invoice)
        self.db.flush()
        return invoice

    def delete_invoice(self, invoice: Invoice) -> None:
        self.db.delete(invoice)
        self.db.flush()

    # ---------- Hour registrations ----------
    def get_hour_registration(self, registration_id: UUID) -> HourRegistration | None:
        return self.db.scalar(select(HourRegistration).where(HourRegistration.id == registration_id))

    def list_hour_registrations_for_user(self, user_id: UUID) -> list[HourRegistration]:
        return self.db.scalars(
            select(HourRegistration)
            .where(HourRegistration.user_id == user_id)
            .order_by(HourRegistration.date.desc())
        ).all()

    def list_hour_registrations_for_project(self, project_id: UUID) -> list[HourRegistration]:
        return self.db.scalars(
            select(HourRegistration)
            .where(HourRegistration.project_id == project_id)
            .order_by(HourRegistration.date.desc())
        ).all()

    def add_hour_registration(self, registration: HourRegistration) -> HourRegistration:
        self.db.add(registration)
        self.db.flush()
        return registration

    def delete_hour_registration(self, registration: HourRegistration) -> None:
        self.db.delete(registration)
        self.db.flush()

    # ---------- Expenses ----------
    def get_expense(self, expense_id: UUID) -> Expense | None:
        return self.db.scalar(select(Expense).where(Expense.id == expense_id))

    def list_expenses(self, user_id: UUID | None = None) -> list[Expense]:
        statement = select(Expense).order_by(Expense.date.desc())
        if user_id is not None:
            statement = statement.where(Expense.user_id == user_id)
        return self.db.scalars(statement).all()

    def add_expense(self, expense: Expense) -> Expense:
        self.db.add(expense)
        self.db.flush()
        return expense

    def delete_expense(self, expense: Expense) -> None:
        self.db.delete(expense)
        self.db.flush()

    # ---------- Contracts ----------
    def get_contract(self, contract_id: UUID) -> Contract | None:
        return self.db.scalar(select(Contract).where(Contract.id == contract_id))

    def list_contracts(self) -> list[tuple[Contract, Project]]:
        return self.db.execute(
            select(Contract, Project)
            .join(Project, Contract.project_id == Project.id)
            .order_by(Contract.created_at.desc())
        ).all()

    def add_contract(self, contract: Contract) -> Contract:
        self.db.add(contract)
        self.db.flush()
        return contract

    def delete_contract(self, contract: Contract) -> None:
        self.db.delete(contract)
        self.db.flush()

    # ---------- Dashboard aggregates ----------
    def list_paid_invoices(self) -> list[Invoice]:
        return self.db.scalars(select(Invoice).where(Invoice.status == InvoiceStatus.PAID)).all()

    def sum_hours(self, start: datetime | None = None, end: datetime | None = None) -> Decimal:
        statement = select(func.coalesce(func.sum(HourRegistration.hours), 0))
        if start is not None:
            statement = statement.where(HourRegistration.date >= start)
        if end is not None:
            statement = statement.where(HourRegistration.date < end)
        return Decimal(str(self.db.scalar(statement)))

    def count_projects_by_status(self) -> dict[ProjectStatus, int]:
        rows = self.db.execute(select(Project.status, func.count()).group_by(Project.status)).all()
        return {project_status: count for project_status, count in rows}

    def count_organizations(self) -> int:
        return self.db.scalar(select(func.count()).select_from(Organization))

    def count_users(self) -> int:
        return self.db.scalar(select(func.count()).select_from(User))
