"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


project_status = postgresql.ENUM(
    "active", "completed", "on_hold", "cancelled", name="project_status", create_type=False
)
project_kind = postgresql.ENUM("client", "labs", name="project_kind", create_type=False)
money_currency = postgresql.ENUM("EUR", "USD", name="money_currency", create_type=False)
invoice_status = postgresql.ENUM(
    "draft", "sent", "paid", "overdue", "cancelled", name="invoice_status", create_type=False
)
invoice_type = postgresql.ENUM("manual", "auto", name="invoice_type", create_type=False)
transaction_type = postgresql.ENUM("debit", "credit", name="transaction_type", create_type=False)
hour_category = postgresql.ENUM(
    "client",
    "administration",
    "brainstorming",
    "research",
    "labs",
    "client_acquisition",
    name="hour_category",
    create_type=False,
)

ENUMS = (project_status, project_kind, money_currency, invoice_status, invoice_type, transaction_type, hour_category)


def upgrade() -> None:
    for enum_type in ENUMS:
        enum_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "organizations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("image", sa.String(length=2048), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("image", sa.String(length=2048), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_organization_id", "users", ["organization_id"])

    op.create_table(
        "user_organizations",
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_user_organizations_organization_id", "user_organizations", ["organization_id"])

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", project_status, nullable=False),
        sa.Column("kind", project_kind, nullable=False),
        sa.Column("stage", sa.String(length=32), nullable=False, server_default="kick_off"),
        sa.Column("subtotal", sa.String(length=64), nullable=True),
        sa.Column("currency", money_currency, nullable=False),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id"),
            nullable=False,
        ),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_projects_organization_id", "projects", ["organization_id"])
    op.create_index("ix_projects_kind", "projects", ["kind"])

    op.create_table(
        "invoices",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("invoice_number", sa.String(length=32), nullable=False, unique=True),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=True),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id"),
            nullable=False,
        ),
        sa.Column("amount", sa.String(length=64), nullable=False),
        sa.Column("currency", money_currency, nullable=False),
        sa.Column("status", invoice_status, nullable=False),
        sa.Column("type", invoice_type, nullable=False),
        sa.Column("transaction_type", transaction_type, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("milestone", sa.String(length=32), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("project_id", "milestone", name="uq_invoices_project_milestone"),
    )
    op.create_index("ix_invoices_project_id", "invoices", ["project_id"])
    op.create_index("ix_invoices_organization_id", "invoices", ["organization_id"])

    op.create_table(
        "hour_registrations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("hours", sa.Numeric(10, 2), nullable=False),
        sa.Column("category", hour_category, nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("hours > 0", name="ck_hour_registrations_hours_positive"),
    )
    op.create_index("ix_hour_registrations_user_date", "hour_registrations", ["user_id", "date"])
    op.create_index("ix_hour_registrations_project_id", "hour_registrations", ["project_id"])

    op.create_table(
        "expenses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount", sa.String(length=64), nullable=False),
        sa.Column("currency", money_currency, nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("vendor", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_expenses_user_date", "expenses", ["user_id", "date"])

    op.create_table(
        "contracts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("file_url", sa.String(length=2048), nullable=True),
        sa.Column("signed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_contracts_project_id", "contracts", ["project_id"])


def downgrade() -> None:
    op.drop_index("ix_contracts_project_id", table_name="contracts")
    op.drop_table("contracts")

    op.drop_index("ix_expenses_user_date", table_name="expenses")
    op.drop_table("expenses")

    op.drop_index("ix_hour_registrations_project_id", table_name="hour_registrations")
    op.drop_index("ix_hour_registrations_user_date", table_name="hour_registrations")
    op.drop_table("hour_registrations")

    op.drop_index("ix_invoices_organization_id", table_name="invoices")
    op.drop_index("ix_invoices_project_id", table_name="invoices")
    op.drop_table("invoices")

    op.drop_index("ix_projects_kind", table_name="projects")
    op.drop_index("ix_projects_organization_id", table_name="projects")
    op.drop_table("projects")

    op.drop_index("ix_user_organizations_organization_id", table_name="user_organizations")
    op.drop_table("user_organizations")

    op.drop_index("ix_users_organization_id", table_name="users")
    op.drop_table("users")

    op.drop_table("organizations")

    for enum_type in reversed(ENUMS):
        enum_type.drop(op.get_bind(), checkfirst=True)
