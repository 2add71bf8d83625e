"""ORM model package."""

from portal.models.entities import (
    Contract,
    Expense,
    HourRegistration,
    Invoice,
    Organization,
    Project,
    User,
    UserOrganization,
)

__all__ = [
    "Contract",
    "Expense",
    "HourRegistration",
    "Invoice",
    "Organization",
    "Project",
    "User",
    "UserOrganization",
]
