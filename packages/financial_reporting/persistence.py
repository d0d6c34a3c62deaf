# ruff: noqa: I001
"""Persistence collaborator backed by the shared ``db`` library.

Every function takes an open SQLAlchemy ``Session`` and an explicit tenant
id; none of them commits. Callers wrap calls in ``db.client.session_scope``
so a batch is committed (or rolled back) as a unit.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Collection, Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from db.models.finance import (
    FrAccountingEntry,
    FrAccountMapping,
    FrChartAccount,
    FrCompany,
    FrCostCenter,
    FrMonthlyBalance,
    FrReportLine,
    FrTenant,
)
from .config import NEAR_ZERO_THRESHOLD
from .logging_setup import get_logger
from .models import (
    AccountingEntry,
    AccountRecord,
    CompanyRecord,
    CostCenterRecord,
    LineType,
    MonthlyBalanceBatchStats,
    MonthlyBalanceEntry,
    ReferenceCollections,
    ReportLine,
)
from .normalizers import strip_leading_zeros
from .periods import ClosingConfig, normalize_month
from .reference_index import build_account_index

logger = get_logger("financial_reporting.persistence")


# Scale of the Numeric(18, 6) value columns; finer than the near-zero threshold.
_VALUE_QUANTUM = Decimal("0.000001")


def _to_decimal(value: float) -> Decimal:
    return Decimal(str(value)).quantize(_VALUE_QUANTUM, rounding=ROUND_HALF_UP)


def _month(value: str) -> str:
    canonical = normalize_month(value)
    if canonical is None:
        raise ValueError(f"unknown month: {value!r}")
    return canonical


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------


def load_reference_collections(session: Session, tenant_id: str) -> ReferenceCollections:
    """All active companies, accounts and cost centers of ``tenant_id``."""

    companies = session.scalars(
        select(FrCompany).where(FrCompany.tenant_id == tenant_id, FrCompany.is_active.is_(True))
    ).all()
    accounts = session.scalars(
        select(FrChartAccount).where(
            FrChartAccount.tenant_id == tenant_id, FrChartAccount.is_active.is_(True)
        )
    ).all()
    cost_centers = session.scalars(
        select(FrCostCenter).where(
            FrCostCenter.tenant_id == tenant_id, FrCostCenter.is_active.is_(True)
        )
    ).all()
    return ReferenceCollections(
        companies=tuple(
            CompanyRecord(id=c.id, cnpj=c.cnpj, erp_code=c.erp_code, name=c.name) for c in companies
        ),
        accounts=tuple(AccountRecord(id=a.id, code=a.code, name=a.name) for a in accounts),
        cost_centers=tuple(
            CostCenterRecord(id=cc.id, code=cc.code, name=cc.name) for cc in cost_centers
        ),
    )


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


def bulk_save_entries(
    session: Session, entries: Sequence[AccountingEntry], tenant_id: str
) -> None:
    """Insert one batch of accounting entries; raises on any failure."""

    session.add_all(
        FrAccountingEntry(
            tenant_id=tenant_id,
            company_id=e.company_id,
            account_id=e.account_id,
            cost_center_id=e.cost_center_id,
            year=e.year,
            month=_month(e.month),
            entry_date=e.entry_date,
            natureza=e.natureza,
            value=_to_decimal(e.value),
            history=e.history,
            account_code=e.account_code,
            cost_center_code=e.cost_center_code,
            company_cnpj=e.cnpj,
            company_erp_code=e.erp_code,
        )
        for e in entries
    )
    session.flush()


def bulk_save_monthly_balances(
    session: Session,
    entries: Sequence[MonthlyBalanceEntry],
    tenant_id: str,
    *,
    threshold: float = NEAR_ZERO_THRESHOLD,
) -> MonthlyBalanceBatchStats:
    """Resolve account codes and replace balances for one batch.

    Account codes are matched against the tenant's chart of accounts using
    the same variants as the import index. Near-zero values and unknown codes
    are counted and skipped. Existing rows with the same (company, account,
    year, month) are deleted first and reported as ``deleted_records``.
    """

    accounts = session.scalars(
        select(FrChartAccount).where(
            FrChartAccount.tenant_id == tenant_id, FrChartAccount.is_active.is_(True)
        )
    ).all()
    account_by_code = build_account_index(AccountRecord(id=a.id, code=a.code) for a in accounts)

    zero_values = 0
    not_found: dict[str, int] = defaultdict(int)
    # (company, year, month) -> {account_id: (code, value)}; last value wins
    resolved: dict[tuple[str, int, str], dict[str, tuple[str, float]]] = defaultdict(dict)
    for e in entries:
        if abs(e.value) < threshold:
            zero_values += 1
            continue
        code = e.account_code.strip()
        account_id = account_by_code.get(code) or account_by_code.get(strip_leading_zeros(code))
        if account_id is None:
            not_found[code] += 1
            continue
        resolved[(e.company_id, e.year, _month(e.month))][account_id] = (code, e.value)

    deleted = 0
    for (company_id, year, month), by_account in resolved.items():
        result = session.execute(
            delete(FrMonthlyBalance).where(
                FrMonthlyBalance.tenant_id == tenant_id,
                FrMonthlyBalance.company_id == company_id,
                FrMonthlyBalance.year == year,
                FrMonthlyBalance.month == month,
                FrMonthlyBalance.account_id.in_(list(by_account)),
            )
        )
        deleted += result.rowcount or 0
        session.add_all(
            FrMonthlyBalance(
                tenant_id=tenant_id,
                company_id=company_id,
                account_id=account_id,
                account_code=code,
                year=year,
                month=month,
                value=_to_decimal(value),
            )
            for account_id, (code, value) in by_account.items()
        )
    session.flush()

    # Duplicate keys inside one batch collapse to one row but each still counts
    # as a processed value.
    success = len(entries) - zero_values - sum(not_found.values())
    if not_found:
        logger.debug("Batch had %d unknown account codes", len(not_found))
    return MonthlyBalanceBatchStats(
        success=success,
        account_not_found=sum(not_found.values()),
        zero_values=zero_values,
        deleted_records=deleted,
        account_errors=dict(not_found),
    )


def delete_period_entries(
    session: Session,
    *,
    kind: Literal["entries", "balances"],
    tenant_id: str,
    year: int,
    month: str,
    company_ids: Collection[str] | None = None,
) -> int:
    """Delete one period's accounting entries or balances; returns the row count."""

    model: type[FrAccountingEntry] | type[FrMonthlyBalance]
    if kind == "entries":
        model = FrAccountingEntry
    elif kind == "balances":
        model = FrMonthlyBalance
    else:
        raise ValueError(f"kind must be 'entries' or 'balances', got {kind!r}")
    stmt = delete(model).where(
        model.tenant_id == tenant_id, model.year == year, model.month == _month(month)
    )
    if company_ids:
        stmt = stmt.where(model.company_id.in_(list(company_ids)))
    result = session.execute(stmt)
    count = result.rowcount or 0
    logger.info("Deleted %d %s for %s/%d", count, kind, _month(month), year)
    return count


# ---------------------------------------------------------------------------
# Report inputs
# ---------------------------------------------------------------------------


def load_report_lines(
    session: Session, tenant_id: str, template_id: str | None = None
) -> list[ReportLine]:
    stmt = select(FrReportLine).where(FrReportLine.tenant_id == tenant_id)
    if template_id is not None:
        stmt = stmt.where(FrReportLine.template_id == template_id)
    return [
        ReportLine(
            id=r.id,
            name=r.name,
            type=LineType(r.line_type),
            sign=r.sign,
            parent_id=r.parent_id,
            order=r.display_order,
            linked_account_id=r.linked_account_id,
            is_vertical_analysis_base=r.is_vertical_analysis_base,
        )
        for r in session.scalars(stmt.order_by(FrReportLine.display_order, FrReportLine.id))
    ]


def load_account_mapping(session: Session, tenant_id: str) -> dict[str, str]:
    """``account_id -> linked id`` for the tenant, read once per report."""

    rows = session.execute(
        select(FrAccountMapping.account_id, FrAccountMapping.linked_account_id).where(
            FrAccountMapping.tenant_id == tenant_id
        )
    )
    return {account_id: linked for account_id, linked in rows}


def load_monthly_balances(
    session: Session,
    tenant_id: str,
    *,
    years: Iterable[int],
    company_ids: Collection[str] | None = None,
) -> list[MonthlyBalanceEntry]:
    stmt = select(FrMonthlyBalance).where(
        FrMonthlyBalance.tenant_id == tenant_id, FrMonthlyBalance.year.in_(list(years))
    )
    if company_ids:
        stmt = stmt.where(FrMonthlyBalance.company_id.in_(list(company_ids)))
    return [
        MonthlyBalanceEntry(
            tenant_id=b.tenant_id,
            company_id=b.company_id,
            account_code=b.account_code,
            year=b.year,
            month=b.month,
            value=float(b.value),
            account_id=b.account_id,
        )
        for b in session.scalars(stmt)
    ]


def load_accounting_entries(
    session: Session,
    tenant_id: str,
    *,
    years: Iterable[int],
    company_ids: Collection[str] | None = None,
) -> list[AccountingEntry]:
    stmt = select(FrAccountingEntry).where(
        FrAccountingEntry.tenant_id == tenant_id, FrAccountingEntry.year.in_(list(years))
    )
    if company_ids:
        stmt = stmt.where(FrAccountingEntry.company_id.in_(list(company_ids)))
    return [
        AccountingEntry(
            tenant_id=e.tenant_id,
            company_id=e.company_id,
            account_id=e.account_id,
            cost_center_id=e.cost_center_id,
            year=e.year,
            month=e.month,
            entry_date=e.entry_date,
            natureza=e.natureza,
            value=float(e.value),
            history=e.history,
            account_code=e.account_code,
            cost_center_code=e.cost_center_code,
            cnpj=e.company_cnpj,
            erp_code=e.company_erp_code,
        )
        for e in session.scalars(stmt)
    ]


def load_closing_config(session: Session, tenant_id: str) -> ClosingConfig:
    tenant = session.get(FrTenant, tenant_id)
    if tenant is None:
        return ClosingConfig()
    return ClosingConfig(
        last_closed_year=tenant.last_closed_year,
        last_closed_month=tenant.last_closed_month,
    )


__all__ = [
    "load_reference_collections",
    "bulk_save_entries",
    "bulk_save_monthly_balances",
    "delete_period_entries",
    "load_report_lines",
    "load_account_mapping",
    "load_monthly_balances",
    "load_accounting_entries",
    "load_closing_config",
]
