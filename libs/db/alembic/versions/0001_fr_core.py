# ruff: noqa: I001
"""Core reporting schema: tenants, registries, imported data, report lines.

Revision ID: 0001_fr_core
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_fr_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _registry(name: str, *extra: sa.Column) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("tenant_id", sa.String(length=36), sa.ForeignKey("fr_tenants.id"), nullable=False),
        *extra,
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index(f"ix_{name}_tenant_id", name, ["tenant_id"], unique=False)


def upgrade() -> None:
    op.create_table(
        "fr_tenants",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("last_closed_year", sa.Integer(), nullable=True),
        sa.Column("last_closed_month", sa.String(length=16), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )

    _registry(
        "fr_companies",
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("nickname", sa.String(), nullable=True),
        sa.Column("cnpj", sa.String(length=32), nullable=True),
        sa.Column("erp_code", sa.String(length=64), nullable=True),
    )
    _registry(
        "fr_chart_accounts",
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
    )
    _registry(
        "fr_cost_centers",
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
    )

    op.create_table(
        "fr_accounting_entries",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("tenant_id", sa.String(length=36), sa.ForeignKey("fr_tenants.id"), nullable=False),
        sa.Column(
            "company_id", sa.String(length=36), sa.ForeignKey("fr_companies.id"), nullable=False
        ),
        sa.Column(
            "account_id", sa.String(length=36), sa.ForeignKey("fr_chart_accounts.id"), nullable=False
        ),
        sa.Column(
            "cost_center_id",
            sa.String(length=36),
            sa.ForeignKey("fr_cost_centers.id"),
            nullable=False,
        ),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.String(length=16), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("natureza", sa.CHAR(length=1), nullable=False),
        sa.Column("value", sa.Numeric(18, 6), nullable=False),
        sa.Column("history", sa.Text(), nullable=True),
        sa.Column("account_code", sa.String(length=64), nullable=True),
        sa.Column("cost_center_code", sa.String(length=64), nullable=True),
        sa.Column("company_cnpj", sa.String(length=32), nullable=True),
        sa.Column("company_erp_code", sa.String(length=64), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("natureza in ('D','C')", name="ck_fr_entry_natureza"),
    )
    op.create_index(
        "ix_fr_entries_tenant_period",
        "fr_accounting_entries",
        ["tenant_id", "year", "month"],
        unique=False,
    )

    op.create_table(
        "fr_monthly_balances",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("tenant_id", sa.String(length=36), sa.ForeignKey("fr_tenants.id"), nullable=False),
        sa.Column(
            "company_id", sa.String(length=36), sa.ForeignKey("fr_companies.id"), nullable=False
        ),
        sa.Column(
            "account_id", sa.String(length=36), sa.ForeignKey("fr_chart_accounts.id"), nullable=False
        ),
        sa.Column("account_code", sa.String(length=64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.String(length=16), nullable=False),
        sa.Column("value", sa.Numeric(18, 6), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index(
        "ix_fr_balances_tenant_company_period",
        "fr_monthly_balances",
        ["tenant_id", "company_id", "year", "month"],
        unique=False,
    )

    op.create_table(
        "fr_report_lines",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("tenant_id", sa.String(length=36), sa.ForeignKey("fr_tenants.id"), nullable=False),
        sa.Column("template_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("line_type", sa.String(length=16), nullable=False),
        sa.Column("sign", sa.SmallInteger(), nullable=False, server_default=sa.text("1")),
        sa.Column("parent_id", sa.String(length=64), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("linked_account_id", sa.String(length=64), nullable=True),
        sa.Column(
            "is_vertical_analysis_base", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.CheckConstraint(
            "line_type in ('data_bucket','header','total')", name="ck_fr_report_line_type"
        ),
        sa.CheckConstraint("sign in (1,-1)", name="ck_fr_report_line_sign"),
    )
    op.create_index("ix_fr_report_lines_tenant_id", "fr_report_lines", ["tenant_id"], unique=False)

    op.create_table(
        "fr_account_mappings",
        sa.Column(
            "tenant_id", sa.String(length=36), sa.ForeignKey("fr_tenants.id"), primary_key=True
        ),
        sa.Column(
            "account_id",
            sa.String(length=36),
            sa.ForeignKey("fr_chart_accounts.id"),
            primary_key=True,
        ),
        sa.Column("linked_account_id", sa.String(length=64), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("fr_account_mappings")
    op.drop_index("ix_fr_report_lines_tenant_id", table_name="fr_report_lines")
    op.drop_table("fr_report_lines")
    op.drop_index("ix_fr_balances_tenant_company_period", table_name="fr_monthly_balances")
    op.drop_table("fr_monthly_balances")
    op.drop_index("ix_fr_entries_tenant_period", table_name="fr_accounting_entries")
    op.drop_table("fr_accounting_entries")
    for name in ("fr_cost_centers", "fr_chart_accounts", "fr_companies"):
        op.drop_index(f"ix_{name}_tenant_id", table_name=name)
        op.drop_table(name)
    op.drop_table("fr_tenants")
