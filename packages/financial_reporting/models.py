"""Data models for ``financial_reporting``.

Three groups live here:

- registry records handed to the reference index (companies, chart of
  accounts, cost centers);
- import results (persistable entries, audit entries and the run-scoped
  statistics accumulators);
- the report tree (report-line definitions, per-cell ``MonthlyData`` and the
  aggregated ``FinancialAccount`` nodes).
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from datetime import date
from enum import StrEnum
from typing import Any

from .periods import Period

# ---------------------------------------------------------------------------
# Registry records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CompanyRecord:
    id: str
    cnpj: str | None = None
    erp_code: str | None = None
    name: str | None = None


@dataclass(frozen=True, slots=True)
class AccountRecord:
    id: str
    code: str
    name: str | None = None


@dataclass(frozen=True, slots=True)
class CostCenterRecord:
    id: str
    code: str
    name: str | None = None


# Records coming straight from a store may be plain mappings with varying
# field names; the reference index accepts both shapes.
type RegistryRecord = CompanyRecord | AccountRecord | CostCenterRecord | Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ReferenceCollections:
    """All active registry records for one tenant."""

    companies: Sequence[CompanyRecord | Mapping[str, Any]] = ()
    accounts: Sequence[AccountRecord | Mapping[str, Any]] = ()
    cost_centers: Sequence[CostCenterRecord | Mapping[str, Any]] = ()


# ---------------------------------------------------------------------------
# Persistable entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AccountingEntry:
    """A resolved accounting entry ready for ``bulk_save_entries``.

    ``value`` is the magnitude as read from the file; the debit/credit sense
    is carried by ``natureza``. The raw identifying codes are kept alongside
    the resolved ids.
    """

    tenant_id: str
    company_id: str
    account_id: str
    cost_center_id: str
    year: int
    month: str
    entry_date: date
    natureza: str
    value: float
    history: str | None = None
    account_code: str | None = None
    cost_center_code: str | None = None
    cnpj: str | None = None
    erp_code: str | None = None


@dataclass(frozen=True, slots=True)
class MonthlyBalanceEntry:
    """One account balance for a company and period.

    At import time only ``account_code`` is known; ``account_id`` is filled in
    when balances are read back for aggregation.
    """

    tenant_id: str
    company_id: str
    account_code: str
    year: int
    month: str
    value: float
    account_id: str | None = None

    @property
    def period(self) -> Period:
        return Period(self.year, self.month)


# ---------------------------------------------------------------------------
# Audit entries and statistics
# ---------------------------------------------------------------------------


class AuditStatus(StrEnum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class AuditEntry:
    """Diagnostic record for one source line.

    ``line`` is 1-based and matches the spreadsheet (header on line 1).
    Found flags are ``None`` when resolution never ran for the row.
    """

    line: int
    status: AuditStatus
    reason: str
    cnpj: str | None = None
    erp_code: str | None = None
    account_code: str | None = None
    cost_center_code: str | None = None
    company_found: bool | None = None
    account_found: bool | None = None
    cost_center_found: bool | None = None


@dataclass(slots=True)
class ImportStats:
    """Cumulative counters for an accounting-entry import.

    ``success + zero_values + invalid_data == total_rows`` once a run has
    processed every row. A row failing several lookups counts once under
    ``invalid_data`` but bumps every matching ``*_not_found`` counter.
    """

    total_rows: int = 0
    success: int = 0
    zero_values: int = 0
    invalid_data: int = 0
    company_not_found: int = 0
    account_not_found: int = 0
    cost_center_not_found: int = 0

    def snapshot(self) -> ImportStats:
        return replace(self)

    def summary_rows(self) -> list[tuple[str, int]]:
        return [
            ("Total de linhas", self.total_rows),
            ("Importados com sucesso", self.success),
            ("Valores zerados/vazios", self.zero_values),
            ("Dados inválidos", self.invalid_data),
            ("Empresa não encontrada", self.company_not_found),
            ("Conta não encontrada", self.account_not_found),
            ("Centro de resultado não encontrado", self.cost_center_not_found),
        ]


@dataclass(frozen=True, slots=True)
class MonthlyBalanceBatchStats:
    """What the monthly-balance collaborator reports back for one batch."""

    success: int = 0
    account_not_found: int = 0
    zero_values: int = 0
    deleted_records: int = 0
    account_errors: Mapping[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class MonthlyBalanceStats:
    """Cumulative counters for a monthly-balance import.

    Counted per period value, not per row:
    ``success + account_not_found + zero_values + invalid_data == total_rows``.
    """

    total_rows: int = 0
    success: int = 0
    zero_values: int = 0
    invalid_data: int = 0
    account_not_found: int = 0
    deleted_records: int = 0
    account_errors: dict[str, int] = field(default_factory=dict)

    def merge_batch(self, batch: MonthlyBalanceBatchStats | None) -> None:
        if batch is None:
            return
        self.success += batch.success
        self.account_not_found += batch.account_not_found
        self.zero_values += batch.zero_values
        self.deleted_records += batch.deleted_records
        for code, count in batch.account_errors.items():
            self.account_errors[code] = self.account_errors.get(code, 0) + count

    def sorted_account_errors(self) -> list[tuple[str, int]]:
        return sorted(self.account_errors.items(), key=lambda kv: (-kv[1], kv[0]))

    def snapshot(self) -> MonthlyBalanceStats:
        return replace(self, account_errors=dict(self.account_errors))

    def summary_rows(self) -> list[tuple[str, int]]:
        return [
            ("Total de valores", self.total_rows),
            ("Importados com sucesso", self.success),
            ("Valores zerados/vazios", self.zero_values),
            ("Dados inválidos", self.invalid_data),
            ("Conta não encontrada", self.account_not_found),
            ("Registros substituídos", self.deleted_records),
        ]


# ---------------------------------------------------------------------------
# Report tree
# ---------------------------------------------------------------------------


class LineType(StrEnum):
    DATA_BUCKET = "data_bucket"
    HEADER = "header"
    TOTAL = "total"


@dataclass(frozen=True, slots=True)
class ReportLine:
    """Definition of one line in a report template."""

    id: str
    name: str
    type: LineType = LineType.DATA_BUCKET
    sign: int = 1
    parent_id: str | None = None
    order: int = 0
    linked_account_id: str | None = None
    is_vertical_analysis_base: bool = False

    def __post_init__(self) -> None:
        if self.sign not in (1, -1):
            raise ValueError(f"sign must be +1 or -1, got {self.sign!r}")
        if not isinstance(self.type, LineType):
            object.__setattr__(self, "type", LineType(self.type))


# Additive components summed into ``effective_result``.
RESULT_COMPONENTS: tuple[str, ...] = (
    "balancete",
    "transf_gerencial",
    "ajuste_contabil",
    "cg_gerencial",
    "cg",
)
ADJUSTABLE_COMPONENTS: tuple[str, ...] = RESULT_COMPONENTS[1:] + ("orcado",)


@dataclass(frozen=True, slots=True)
class MonthlyData:
    balancete: float = 0.0
    transf_gerencial: float = 0.0
    ajuste_contabil: float = 0.0
    cg_gerencial: float = 0.0
    cg: float = 0.0
    orcado: float = 0.0

    @property
    def effective_result(self) -> float:
        return (
            self.balancete
            + self.transf_gerencial
            + self.ajuste_contabil
            + self.cg_gerencial
            + self.cg
        )

    def plus(self, other: MonthlyData, weight: int = 1) -> MonthlyData:
        """Component-wise ``self + weight * other``."""

        return MonthlyData(
            **{
                f.name: getattr(self, f.name) + weight * getattr(other, f.name)
                for f in fields(MonthlyData)
            }
        )

    def add_to(self, component: str, value: float) -> MonthlyData:
        return replace(self, **{component: getattr(self, component) + value})

    def is_zero(self) -> bool:
        return self.effective_result == 0 and self.orcado == 0


ZERO_MONTHLY_DATA = MonthlyData()


@dataclass(frozen=True, slots=True)
class Adjustment:
    """A manual value added to one component of matching data-bucket lines."""

    linked_account_id: str
    year: int
    month: str
    value: float
    component: str = "ajuste_contabil"
    company_id: str | None = None

    def __post_init__(self) -> None:
        if self.component not in ADJUSTABLE_COMPONENTS:
            raise ValueError(
                f"component must be one of {', '.join(ADJUSTABLE_COMPONENTS)}; "
                f"got {self.component!r}"
            )


@dataclass(frozen=True, slots=True)
class FinancialAccount:
    """An aggregated report line.

    ``monthly_data[year][month]`` holds one :class:`MonthlyData` per requested
    cell. ``children`` keep display order.
    """

    id: str
    name: str
    type: LineType
    sign: int
    parent_id: str | None
    order: int
    linked_account_id: str | None
    is_vertical_analysis_base: bool
    monthly_data: Mapping[int, Mapping[str, MonthlyData]]
    children: tuple[FinancialAccount, ...] = ()

    @property
    def is_total(self) -> bool:
        return self.type is LineType.TOTAL

    def cell(self, period: Period) -> MonthlyData:
        return self.monthly_data.get(period.year, {}).get(period.month, ZERO_MONTHLY_DATA)

    def walk(self) -> Iterator[FinancialAccount]:
        """Depth-first, pre-order over this node and its descendants."""

        yield self
        for child in self.children:
            yield from child.walk()


__all__ = [
    "CompanyRecord",
    "AccountRecord",
    "CostCenterRecord",
    "RegistryRecord",
    "ReferenceCollections",
    "AccountingEntry",
    "MonthlyBalanceEntry",
    "AuditStatus",
    "AuditEntry",
    "ImportStats",
    "MonthlyBalanceBatchStats",
    "MonthlyBalanceStats",
    "LineType",
    "ReportLine",
    "RESULT_COMPONENTS",
    "ADJUSTABLE_COMPONENTS",
    "MonthlyData",
    "ZERO_MONTHLY_DATA",
    "Adjustment",
    "FinancialAccount",
]
