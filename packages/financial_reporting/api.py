"""Public API: spreadsheet importers and report building.

The two importers are storage-agnostic: callers pass the tenant's registry
collections and a ``persist_batch`` callable. The ``*_from_file`` and
``report_from_database`` helpers wire them to the ``db`` library and are what
the CLI uses.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass
from os import PathLike
from typing import Literal

from .aggregation import build_financial_report, entries_to_balances
from .analysis import LineAnalysis, analyze_report, prune_zero_branches
from .audit import AuditTrail
from .batching import BatchImporter, ImportProgress, ImportReport
from .config import ImportSettings
from .errors import ConfigurationError
from .ingest import FieldMapping, RawRow, SheetData, read_sheet, suggest_field_mapping
from .logging_setup import get_logger
from .models import (
    AccountingEntry,
    Adjustment,
    FinancialAccount,
    ImportStats,
    MonthlyBalanceBatchStats,
    MonthlyBalanceEntry,
    MonthlyBalanceStats,
    ReferenceCollections,
)
from .normalizers import RowIssue, is_blank, normalize_code, normalize_entry_row, parse_value
from .periods import Period, UserRole, display_periods, normalize_month
from .reference_index import build_reference_index
from .resolver import EntryResolver

logger = get_logger("financial_reporting.api")

# DB imports stay inside the *_from_file/report_from_database helpers so the
# pure importers work without a configured database.


# ---------------------------------------------------------------------------
# Accounting entries
# ---------------------------------------------------------------------------


def _coerce_mapping(mapping: FieldMapping | Mapping[str, str | None]) -> FieldMapping:
    if isinstance(mapping, FieldMapping):
        return mapping
    return FieldMapping.from_pairs(mapping)


def import_accounting_entries(
    sheet: SheetData,
    *,
    tenant_id: str,
    mapping: FieldMapping | Mapping[str, str | None],
    collections: ReferenceCollections,
    persist_batch: Callable[[list[AccountingEntry]], object],
    settings: ImportSettings | None = None,
    on_progress: Callable[[ImportProgress], None] | None = None,
) -> ImportReport:
    """Import accounting entries from ``sheet``.

    Parameters
    ----------
    sheet:
        Header plus data rows (see :func:`~financial_reporting.ingest.read_sheet`).
    tenant_id:
        Owner of every persisted entry.
    mapping:
        Logical field → column; validated before any row is read.
    collections:
        All active companies, accounts and cost centers of the tenant.
    persist_batch:
        Saves one batch atomically and raises on failure.

    Returns
    -------
    ImportReport
        ``stats`` is an :class:`ImportStats`; ``audit_entries`` lists every
        row that was not persisted (and every persisted row when
        ``settings.audit_successes``).

    Raises
    ------
    ConfigurationError
        Missing tenant, invalid mapping or mapped columns absent from the sheet.
    ImportAborted
        ``persist_batch`` raised; earlier batches remain persisted.
    """

    if not tenant_id:
        raise ConfigurationError("tenant_id is required")
    settings = settings or ImportSettings()
    field_mapping = _coerce_mapping(mapping)
    columns = sheet.column_index(field_mapping.columns())

    resolver = EntryResolver(build_reference_index(collections))
    stats = ImportStats(total_rows=len(sheet))
    audit = AuditTrail()

    def transform(row: RawRow) -> list[AccountingEntry]:
        outcome = normalize_entry_row(row, threshold=settings.near_zero_threshold)
        if isinstance(outcome, RowIssue):
            if outcome.is_skip:
                stats.zero_values += 1
                audit.warning(outcome.line_number, outcome.reason)
            else:
                stats.invalid_data += 1
                audit.error(outcome.line_number, outcome.reason)
            return []
        resolution = resolver.resolve(outcome)
        resolution.tally(stats)
        if not resolution.ok:
            audit.add(resolution.to_audit_entry())
            return []
        if settings.audit_successes:
            audit.add(resolution.to_audit_entry())
        return [resolution.to_entry(tenant_id)]

    importer: BatchImporter[RawRow, AccountingEntry] = BatchImporter(
        transform=transform,
        persist=persist_batch,
        batch_size=settings.entry_batch_size,
        stats=stats,
        audit=audit,
    )
    report = importer.run(list(sheet.raw_rows(columns)), on_progress)
    logger.info(
        "Accounting entries imported: total=%d success=%d skipped=%d invalid=%d",
        stats.total_rows,
        stats.success,
        stats.zero_values,
        stats.invalid_data,
    )
    return report


# ---------------------------------------------------------------------------
# Monthly balances
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PeriodColumn:
    """Sheet column holding the balances of one (year, month)."""

    year: int
    month: str
    column: str

    def __post_init__(self) -> None:
        canonical = normalize_month(self.month)
        if canonical is None:
            raise ConfigurationError(f"unknown month in period mapping: {self.month!r}")
        object.__setattr__(self, "month", canonical)

    @property
    def label(self) -> str:
        return f"{self.month}/{self.year}"


def import_monthly_balances(
    sheet: SheetData,
    *,
    tenant_id: str,
    company_id: str,
    account_column: str,
    periods: Sequence[PeriodColumn],
    persist_batch: Callable[[list[MonthlyBalanceEntry]], MonthlyBalanceBatchStats | None],
    settings: ImportSettings | None = None,
    on_progress: Callable[[ImportProgress], None] | None = None,
) -> ImportReport:
    """Import one company's monthly balances from ``sheet``.

    Every (row, period column) pair is one counted value. Empty cells are
    skipped and unreadable ones are invalid here; ``persist_batch`` resolves
    account codes and reports zero values, unknown accounts and replaced rows
    in a :class:`MonthlyBalanceBatchStats` that is merged into the run's
    :class:`MonthlyBalanceStats`.
    """

    if not tenant_id:
        raise ConfigurationError("tenant_id is required")
    if not company_id:
        raise ConfigurationError("select the company the balances belong to")
    if not account_column or not account_column.strip():
        raise ConfigurationError("map the account code column")
    if not periods:
        raise ConfigurationError("map at least one period column")
    blank = [p.label for p in periods if not p.column or not p.column.strip()]
    if blank:
        raise ConfigurationError(f"period mappings without a column: {', '.join(blank)}")

    settings = settings or ImportSettings()
    period_keys = [f"period:{i}" for i in range(len(periods))]
    columns = sheet.column_index(
        {"account": account_column, **{k: p.column for k, p in zip(period_keys, periods)}}
    )
    weight = len(periods)
    stats = MonthlyBalanceStats(total_rows=len(sheet) * weight)
    audit = AuditTrail()

    def transform(row: RawRow) -> list[MonthlyBalanceEntry]:
        if row.is_empty():
            stats.zero_values += weight
            audit.warning(row.line_number, "Ignorada (Linha vazia)")
            return []
        code = normalize_code(row.get("account"))
        if not code:
            stats.invalid_data += weight
            audit.error(row.line_number, "Erro (Código da conta ausente)")
            return []
        # Counters are applied once the whole row is read; a row that raises
        # midway is counted by the driver as ``weight`` invalid values instead.
        out: list[MonthlyBalanceEntry] = []
        skipped = 0
        invalid: list[str] = []
        for key, period in zip(period_keys, periods):
            raw = row.get(key)
            if is_blank(raw):
                skipped += 1
                continue
            value = parse_value(raw)
            if math.isnan(value):
                invalid.append(f'Erro (Valor inválido em {period.label}: "{raw}")')
                continue
            out.append(
                MonthlyBalanceEntry(
                    tenant_id=tenant_id,
                    company_id=company_id,
                    account_code=code,
                    year=period.year,
                    month=period.month,
                    value=value,
                )
            )
        stats.zero_values += skipped
        stats.invalid_data += len(invalid)
        for reason in invalid:
            audit.error(row.line_number, reason, account_code=code)
        return out

    importer: BatchImporter[RawRow, MonthlyBalanceEntry] = BatchImporter(
        transform=transform,
        persist=persist_batch,
        batch_size=settings.balance_batch_size,
        stats=stats,
        audit=audit,
        merge_batch_stats=stats.merge_batch,
        failed_row_weight=weight,
    )
    report = importer.run(list(sheet.raw_rows(columns)), on_progress)
    logger.info(
        "Monthly balances imported: values=%d success=%d skipped=%d invalid=%d "
        "account_not_found=%d replaced=%d",
        stats.total_rows,
        stats.success,
        stats.zero_values,
        stats.invalid_data,
        stats.account_not_found,
        stats.deleted_records,
    )
    return report


# ---------------------------------------------------------------------------
# DB-backed helpers
# ---------------------------------------------------------------------------


def import_entries_from_file(
    path: str | PathLike[str],
    *,
    tenant_id: str,
    mapping: Mapping[str, str] | None = None,
    database_url: str | None = None,
    settings: ImportSettings | None = None,
    on_progress: Callable[[ImportProgress], None] | None = None,
) -> tuple[SheetData, ImportReport]:
    """Read ``path`` and import it into the database.

    ``mapping`` overrides the header-based suggestion key by key. Each batch
    is committed in its own transaction.
    """

    from db.client import session_scope

    from .persistence import bulk_save_entries, load_reference_collections

    sheet = read_sheet(path)
    pairs: dict[str, str | None] = {**suggest_field_mapping(sheet.headers), **(mapping or {})}
    field_mapping = FieldMapping.from_pairs(pairs)

    with session_scope(database_url=database_url) as session:
        collections = load_reference_collections(session, tenant_id)

    def persist(entries: list[AccountingEntry]) -> None:
        with session_scope(database_url=database_url) as session:
            bulk_save_entries(session, entries, tenant_id)

    report = import_accounting_entries(
        sheet,
        tenant_id=tenant_id,
        mapping=field_mapping,
        collections=collections,
        persist_batch=persist,
        settings=settings,
        on_progress=on_progress,
    )
    return sheet, report


def import_balances_from_file(
    path: str | PathLike[str],
    *,
    tenant_id: str,
    company_id: str,
    account_column: str,
    periods: Sequence[PeriodColumn],
    database_url: str | None = None,
    settings: ImportSettings | None = None,
    on_progress: Callable[[ImportProgress], None] | None = None,
) -> tuple[SheetData, ImportReport]:
    from db.client import session_scope

    from .persistence import bulk_save_monthly_balances

    settings = settings or ImportSettings()
    sheet = read_sheet(path)

    def persist(entries: list[MonthlyBalanceEntry]) -> MonthlyBalanceBatchStats:
        with session_scope(database_url=database_url) as session:
            return bulk_save_monthly_balances(
                session, entries, tenant_id, threshold=settings.near_zero_threshold
            )

    report = import_monthly_balances(
        sheet,
        tenant_id=tenant_id,
        company_id=company_id,
        account_column=account_column,
        periods=periods,
        persist_batch=persist,
        settings=settings,
        on_progress=on_progress,
    )
    return sheet, report


@dataclass(frozen=True, slots=True)
class FinancialReport:
    roots: tuple[FinancialAccount, ...]
    periods: list[Period]
    analysis: dict[str, LineAnalysis]


def report_from_database(
    *,
    tenant_id: str,
    years: Iterable[int],
    months: Iterable[str] | None = None,
    role: UserRole | str | None = None,
    template_id: str | None = None,
    company_ids: Collection[str] | None = None,
    source: Literal["balances", "entries"] = "balances",
    adjustments: Iterable[Adjustment] = (),
    hide_empty: bool = False,
    database_url: str | None = None,
) -> FinancialReport:
    """Load report inputs for ``tenant_id``, aggregate and analyze them.

    ``source="entries"`` builds the DRE view from accounting entries
    (debits negative, credits positive) instead of monthly balances.
    """

    from db.client import session_scope

    from .persistence import (
        load_account_mapping,
        load_accounting_entries,
        load_closing_config,
        load_monthly_balances,
        load_report_lines,
    )

    year_list = sorted({int(y) for y in years})
    if not year_list:
        raise ConfigurationError("at least one year is required")

    with session_scope(database_url=database_url) as session:
        lines = load_report_lines(session, tenant_id, template_id)
        account_mapping = load_account_mapping(session, tenant_id)
        closing = load_closing_config(session, tenant_id)
        if source == "entries":
            balances = entries_to_balances(
                load_accounting_entries(
                    session, tenant_id, years=year_list, company_ids=company_ids
                )
            )
        else:
            balances = load_monthly_balances(
                session, tenant_id, years=year_list, company_ids=company_ids
            )

    roots = build_financial_report(
        lines,
        balances,
        account_mapping=account_mapping,
        years=year_list,
        company_ids=company_ids,
        adjustments=adjustments,
    )
    periods = display_periods(year_list, months, role=role, closing=closing)
    if hide_empty:
        roots = prune_zero_branches(roots, periods)
    return FinancialReport(roots=roots, periods=periods, analysis=analyze_report(roots, periods))


__all__ = [
    "import_accounting_entries",
    "import_monthly_balances",
    "PeriodColumn",
    "import_entries_from_file",
    "import_balances_from_file",
    "FinancialReport",
    "report_from_database",
    "build_financial_report",
    "analyze_report",
]
