"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the tenant-scoped finance models used by ``financial_reporting``.
"""

from .finance import (
    Base,
    FrAccountingEntry,
    FrAccountMapping,
    FrChartAccount,
    FrCompany,
    FrCostCenter,
    FrMonthlyBalance,
    FrReportLine,
    FrTenant,
)

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
