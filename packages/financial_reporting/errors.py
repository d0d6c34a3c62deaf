"""Exception types raised by ``financial_reporting``.

Row-level problems (bad values, unknown companies, ...) never surface as
exceptions; they end up in :class:`~financial_reporting.models.ImportStats`
and the audit trail. Only the cases below propagate to callers.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .models import AuditEntry


class FinancialReportingError(Exception):
    """Base class for all package errors."""


class ConfigurationError(FinancialReportingError, ValueError):
    """Pre-flight validation failure; raised before any row is processed."""


class SpreadsheetError(FinancialReportingError, ValueError):
    """The input file cannot be read as a spreadsheet."""


class ImportAborted(FinancialReportingError, RuntimeError):
    """The persistence collaborator failed while saving a batch.

    Batches saved before the failure stay saved. ``persisted_rows`` is the
    number of rows accepted by the collaborator before ``batch_number``
    (1-based) failed; ``stats`` and ``audit`` hold everything accumulated up
    to and including the failing batch's transform step.
    """

    def __init__(
        self,
        message: str,
        *,
        stats: Any,
        audit: Sequence[AuditEntry],
        persisted_rows: int,
        batch_number: int,
    ) -> None:
        super().__init__(message)
        self.stats = stats
        self.audit = list(audit)
        self.persisted_rows = persisted_rows
        self.batch_number = batch_number


__all__ = [
    "FinancialReportingError",
    "ConfigurationError",
    "SpreadsheetError",
    "ImportAborted",
]
