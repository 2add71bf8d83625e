"""Administrator dashboard figures: revenue, hours and directory counts."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from portal.core.currency import ZERO, parse_amount, to_eur, to_money_string
from portal.models.entities import Invoice, ProjectStatus, TransactionType
from portal.repositories.portal_repository import PortalRepository

HUNDRED = Decimal("100")
Q1 = Decimal("0.1")


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def previous_month_start(moment: datetime) -> datetime:
    return month_start(month_start(moment) - timedelta(days=1))


def percent_change(current: Decimal, previous: Decimal) -> Decimal:
    """Month-over-month change; growth from nothing counts as 100%."""

    if previous > ZERO:
        return ((current - previous) / previous * HUNDRED).quantize(Q1)
    if current > ZERO:
        return HUNDRED
    return ZERO


def signed_revenue(invoice: Invoice) -> Decimal:
    """Invoice amount in euros; credits count against revenue."""

    amount = to_eur(parse_amount(invoice.amount), invoice.currency.value)
    if invoice.transaction_type is TransactionType.CREDIT:
        return -amount
    return amount


def revenue_date(invoice: Invoice) -> datetime:
    return _naive_utc(invoice.due_date or invoice.paid_at or invoice.created_at)


class DashboardService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PortalRepository(db)

    def get_stats(self, *, now: datetime | None = None) -> dict[str, object]:
        now = now or datetime.utcnow()
        this_month = month_start(now)
        last_month = previous_month_start(now)

        total_revenue = ZERO
        revenue_this_month = ZERO
        revenue_last_month = ZERO
        by_month = {month: ZERO for month in range(1, 13)}
        for invoice in self.repo.list_paid_invoices():
            value = signed_revenue(invoice)
            booked_on = revenue_date(invoice)
            total_revenue += value
            if booked_on >= this_month:
                revenue_this_month += value
            elif booked_on >= last_month:
                revenue_last_month += value
            if booked_on.year == now.year:
                by_month[booked_on.month] += value

        hours_this_month = self.repo.sum_hours(start=this_month)
        hours_last_month = self.repo.sum_hours(start=last_month, end=this_month)
        projects = self.repo.count_projects_by_status()

        return {
            "currency": "EUR",
            "revenue": {
                "total": to_money_string(total_revenue),
                "this_month": to_money_string(revenue_this_month),
                "last_month": to_money_string(revenue_last_month),
                "change_percent": str(percent_change(revenue_this_month, revenue_last_month)),
                "by_month": [
                    {"month": f"{now.year}-{month:02d}", "amount": to_money_string(amount)}
                    for month, amount in by_month.items()
                ],
            },
            "hours": {
                "total": str(self.repo.sum_hours()),
                "this_month": str(hours_this_month),
                "last_month": str(hours_last_month),
                "change_percent": str(percent_change(hours_this_month, hours_last_month)),
            },
            "projects": {
                "total": sum(projects.values()),
                "active": projects.get(ProjectStatus.ACTIVE, 0),
                "completed": projects.get(ProjectStatus.COMPLETED, 0),
            },
            "organizations": self.repo.count_organizations(),
            "users": self.repo.count_users(),
        }
