from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------
# Tenancy: fr_tenants
# ---------------------------


class FrTenant(Base):
    __tablename__ = "fr_tenants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Closing lock boundary. Both must be set for the lock to apply; the month
    # is stored as its canonical upper-case name (e.g. "JUNHO").
    last_closed_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_closed_month: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Registries: companies, chart of accounts, cost centers
# ---------------------------


class FrCompany(Base):
    __tablename__ = "fr_companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    tenant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_tenants.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    nickname: Mapped[str | None] = mapped_column(String, nullable=True)
    # Stored as typed by the user (with or without punctuation); the import
    # path normalizes to digits only before matching.
    cnpj: Mapped[str | None] = mapped_column(String(32), nullable=True)
    erp_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class FrChartAccount(Base):
    __tablename__ = "fr_chart_accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    tenant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_tenants.id"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class FrCostCenter(Base):
    __tablename__ = "fr_cost_centers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    tenant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_tenants.id"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


# ---------------------------
# Imported data: accounting entries and monthly balances
# ---------------------------


class FrAccountingEntry(Base):
    __tablename__ = "fr_accounting_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    tenant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_tenants.id"), nullable=False
    )
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_companies.id"), nullable=False
    )
    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_chart_accounts.id"), nullable=False
    )
    cost_center_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_cost_centers.id"), nullable=False
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[str] = mapped_column(String(16), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    natureza: Mapped[str] = mapped_column(CHAR(1), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    history: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Raw identifiers as read from the spreadsheet, kept for traceability.
    account_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cost_center_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    company_cnpj: Mapped[str | None] = mapped_column(String(32), nullable=True)
    company_erp_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("natureza in ('D','C')", name="ck_fr_entry_natureza"),
        Index("ix_fr_entries_tenant_period", "tenant_id", "year", "month"),
    )


class FrMonthlyBalance(Base):
    __tablename__ = "fr_monthly_balances"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    tenant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_tenants.id"), nullable=False
    )
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_companies.id"), nullable=False
    )
    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_chart_accounts.id"), nullable=False
    )
    # Code exactly as it appeared in the spreadsheet.
    account_code: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[str] = mapped_column(String(16), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_fr_balances_tenant_company_period", "tenant_id", "company_id", "year", "month"),
    )


# ---------------------------
# Report structure: report lines and account mapping
# ---------------------------


class FrReportLine(Base):
    __tablename__ = "fr_report_lines"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_tenants.id"), nullable=False, index=True
    )
    template_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    line_type: Mapped[str] = mapped_column(String(16), nullable=False)
    sign: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1)
    # Self reference without a FK: report lines are edited as a whole tree and
    # orphans are tolerated (and skipped) by the aggregation engine.
    parent_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    linked_account_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_vertical_analysis_base: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    __table_args__ = (
        CheckConstraint(
            "line_type in ('data_bucket','header','total')", name="ck_fr_report_line_type"
        ),
        CheckConstraint("sign in (1,-1)", name="ck_fr_report_line_sign"),
    )


class FrAccountMapping(Base):
    __tablename__ = "fr_account_mappings"

    tenant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_tenants.id"), primary_key=True
    )
    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fr_chart_accounts.id"), primary_key=True
    )
    # Identifier that data-bucket report lines link to (DRE or balance-sheet
    # account id).
    linked_account_id: Mapped[str] = mapped_column(String(64), nullable=False)


__all__ = [
    "Base",
    "FrTenant",
    "FrCompany",
    "FrChartAccount",
    "FrCostCenter",
    "FrAccountingEntry",
    "FrMonthlyBalance",
    "FrReportLine",
    "FrAccountMapping",
]
