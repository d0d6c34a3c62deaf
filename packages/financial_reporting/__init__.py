"""Public interface for the ``financial_reporting`` package.

Spreadsheet importers (accounting entries and monthly balances), the report
aggregation engine and its vertical/horizontal analysis. Symbol re-exports
only; see the individual modules for behavior.
"""

from .api import (
    FinancialReport,
    PeriodColumn,
    import_accounting_entries,
    import_balances_from_file,
    import_entries_from_file,
    import_monthly_balances,
    report_from_database,
)
from .aggregation import build_financial_report, entries_to_balances, iter_lines
from .analysis import analyze_report, find_vertical_analysis_base, prune_zero_branches
from .audit import AuditTrail, export_audit_log
from .batching import BatchImporter, ImportProgress, ImportReport
from .config import ImportSettings
from .errors import ConfigurationError, FinancialReportingError, ImportAborted, SpreadsheetError
from .ingest import FieldMapping, SheetData, read_sheet, suggest_field_mapping
from .models import (
    AccountingEntry,
    AccountRecord,
    Adjustment,
    AuditEntry,
    AuditStatus,
    CompanyRecord,
    CostCenterRecord,
    FinancialAccount,
    ImportStats,
    LineType,
    MonthlyBalanceEntry,
    MonthlyBalanceStats,
    MonthlyData,
    ReferenceCollections,
    ReportLine,
)
from .periods import ClosingConfig, Period, UserRole, display_periods
from .reference_index import ReferenceIndex, build_reference_index

__all__ = [
    # API
    "import_accounting_entries",
    "import_monthly_balances",
    "import_entries_from_file",
    "import_balances_from_file",
    "report_from_database",
    "build_financial_report",
    "entries_to_balances",
    "iter_lines",
    "analyze_report",
    "find_vertical_analysis_base",
    "prune_zero_branches",
    "build_reference_index",
    "export_audit_log",
    "read_sheet",
    "suggest_field_mapping",
    "display_periods",
    # Models / types
    "FinancialReport",
    "PeriodColumn",
    "AuditTrail",
    "BatchImporter",
    "ImportProgress",
    "ImportReport",
    "ImportSettings",
    "FieldMapping",
    "SheetData",
    "ReferenceIndex",
    "AccountingEntry",
    "AccountRecord",
    "Adjustment",
    "AuditEntry",
    "AuditStatus",
    "CompanyRecord",
    "CostCenterRecord",
    "FinancialAccount",
    "ImportStats",
    "LineType",
    "MonthlyBalanceEntry",
    "MonthlyBalanceStats",
    "MonthlyData",
    "ReferenceCollections",
    "ReportLine",
    "ClosingConfig",
    "Period",
    "UserRole",
    # Errors
    "FinancialReportingError",
    "ConfigurationError",
    "SpreadsheetError",
    "ImportAborted",
]
