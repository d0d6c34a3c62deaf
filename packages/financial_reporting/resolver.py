"""Resolve a normalized row's company, account and cost center.

:class:`EntryResolver` only reads the :class:`ReferenceIndex`; resolving the
same row twice gives the same :class:`Resolution`. Counting and auditing are
left to the caller (see :meth:`Resolution.tally`).
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import AccountingEntry, AuditEntry, AuditStatus, ImportStats
from .normalizers import NormalizedRow
from .reference_index import ReferenceIndex


@dataclass(frozen=True, slots=True)
class Resolution:
    row: NormalizedRow
    company_id: str | None
    account_id: str | None
    cost_center_id: str | None

    @property
    def company_found(self) -> bool:
        return self.company_id is not None

    @property
    def account_found(self) -> bool:
        return self.account_id is not None

    @property
    def cost_center_found(self) -> bool:
        return self.cost_center_id is not None

    @property
    def ok(self) -> bool:
        return self.company_found and self.account_found and self.cost_center_found

    @property
    def reason(self) -> str:
        """One clause per dimension that failed, ``"; "``-joined."""

        clauses: list[str] = []
        if not self.company_found:
            clauses.append(
                f"Empresa não encontrada (CNPJ: {self.row.cnpj or '-'}, "
                f"ERP: {self.row.erp_code or '-'})"
            )
        if not self.account_found:
            clauses.append(f"Conta não encontrada ({self.row.account_code})")
        if not self.cost_center_found:
            clauses.append(f"Centro de Resultado não encontrado ({self.row.cost_center_code})")
        return "; ".join(clauses)

    def to_entry(self, tenant_id: str) -> AccountingEntry:
        company_id, account_id, cost_center_id = (
            self.company_id,
            self.account_id,
            self.cost_center_id,
        )
        if company_id is None or account_id is None or cost_center_id is None:
            raise ValueError(f"line {self.row.line_number} is not fully resolved: {self.reason}")
        r = self.row
        return AccountingEntry(
            tenant_id=tenant_id,
            company_id=company_id,
            account_id=account_id,
            cost_center_id=cost_center_id,
            year=r.year,
            month=r.month,
            entry_date=r.entry_date,
            natureza=r.natureza,
            value=r.value,
            history=r.history,
            account_code=r.account_code,
            cost_center_code=r.cost_center_code,
            cnpj=r.cnpj or None,
            erp_code=r.erp_code or None,
        )

    def to_audit_entry(self) -> AuditEntry:
        r = self.row
        return AuditEntry(
            line=r.line_number,
            status=AuditStatus.SUCCESS if self.ok else AuditStatus.ERROR,
            reason="OK" if self.ok else f"Erro ({self.reason})",
            cnpj=r.cnpj or None,
            erp_code=r.erp_code or None,
            account_code=r.account_code,
            cost_center_code=r.cost_center_code,
            company_found=self.company_found,
            account_found=self.account_found,
            cost_center_found=self.cost_center_found,
        )

    def tally(self, stats: ImportStats) -> None:
        """Count this outcome: one success, or one invalid row plus each miss."""

        if self.ok:
            stats.success += 1
            return
        stats.invalid_data += 1
        if not self.company_found:
            stats.company_not_found += 1
        if not self.account_found:
            stats.account_not_found += 1
        if not self.cost_center_found:
            stats.cost_center_not_found += 1


class EntryResolver:
    """Resolve rows against a fixed index."""

    def __init__(self, index: ReferenceIndex) -> None:
        self._index = index

    @property
    def index(self) -> ReferenceIndex:
        return self._index

    def resolve(self, row: NormalizedRow) -> Resolution:
        return Resolution(
            row=row,
            company_id=self._index.find_company(row.cnpj, row.erp_code),
            account_id=self._index.find_account(row.account_code),
            cost_center_id=self._index.find_cost_center(row.cost_center_code),
        )


__all__ = ["Resolution", "EntryResolver"]
