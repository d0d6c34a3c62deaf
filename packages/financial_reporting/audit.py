"""Run-scoped audit trail and its semicolon-separated export."""

from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator
from datetime import datetime
from io import StringIO

from .models import AuditEntry, AuditStatus, ImportStats, MonthlyBalanceStats


class AuditTrail:
    """Ordered list of :class:`AuditEntry` for one import."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []

    def add(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    def warning(self, line: int, reason: str) -> None:
        self._entries.append(AuditEntry(line=line, status=AuditStatus.WARNING, reason=reason))

    def error(self, line: int, reason: str, **identifiers: str | bool | None) -> None:
        self._entries.append(
            AuditEntry(line=line, status=AuditStatus.ERROR, reason=reason, **identifiers)  # type: ignore[arg-type]
        )

    def success(self, line: int, reason: str = "OK") -> None:
        self._entries.append(AuditEntry(line=line, status=AuditStatus.SUCCESS, reason=reason))

    @property
    def entries(self) -> list[AuditEntry]:
        return list(self._entries)

    def count(self, status: AuditStatus) -> int:
        return sum(1 for e in self._entries if e.status is status)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[AuditEntry]:
        return iter(self._entries)


_COLUMNS = (
    "Linha",
    "Status",
    "Motivo",
    "CNPJ",
    "Código ERP",
    "Conta",
    "Centro de Resultado",
    "Empresa encontrada",
    "Conta encontrada",
    "CR encontrado",
)

_STATUS_LABELS = {
    AuditStatus.SUCCESS: "SUCESSO",
    AuditStatus.WARNING: "AVISO",
    AuditStatus.ERROR: "ERRO",
}


def _flag(value: bool | None) -> str:
    if value is None:
        return ""
    return "Sim" if value else "Não"


def export_audit_log(
    entries: Iterable[AuditEntry],
    stats: ImportStats | MonthlyBalanceStats,
    *,
    title: str,
    source_name: str | None = None,
    generated_at: datetime | None = None,
) -> bytes:
    """Render the audit log as UTF-8 (with BOM) ``;``-separated text.

    Layout: a header block (title, timestamp, file name and one
    ``label;count`` line per counter, plus per-code account misses for
    monthly balances, most frequent first), a blank line, the column header,
    then one row per entry. Fields containing ``;``, quotes or newlines are
    quoted.
    """

    when = generated_at or datetime.now()
    buf = StringIO()
    writer = csv.writer(buf, delimiter=";", quoting=csv.QUOTE_MINIMAL, lineterminator="\n")

    writer.writerow([f"Log de Auditoria - {title}"])
    writer.writerow(["Gerado em", when.strftime("%Y-%m-%d %H:%M:%S")])
    writer.writerow(["Arquivo", source_name or "Não identificado"])
    for label, value in stats.summary_rows():
        writer.writerow([label, value])
    if isinstance(stats, MonthlyBalanceStats) and stats.account_errors:
        writer.writerow([])
        writer.writerow(["Contas não encontradas", "Ocorrências"])
        for code, count in stats.sorted_account_errors():
            writer.writerow([code, count])
    writer.writerow([])

    writer.writerow(_COLUMNS)
    for e in entries:
        writer.writerow(
            [
                e.line,
                _STATUS_LABELS[e.status],
                e.reason,
                e.cnpj or "",
                e.erp_code or "",
                e.account_code or "",
                e.cost_center_code or "",
                _flag(e.company_found),
                _flag(e.account_found),
                _flag(e.cost_center_found),
            ]
        )
    return buf.getvalue().encode("utf-8-sig")


__all__ = ["AuditTrail", "export_audit_log"]
