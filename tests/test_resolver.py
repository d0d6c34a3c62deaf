from __future__ import annotations

from datetime import date

import pytest

from financial_reporting.models import (
    AccountRecord,
    AuditStatus,
    CompanyRecord,
    CostCenterRecord,
    ImportStats,
    ReferenceCollections,
)
from financial_reporting.normalizers import NormalizedRow
from financial_reporting.reference_index import build_reference_index
from financial_reporting.resolver import EntryResolver


@pytest.fixture()
def resolver() -> EntryResolver:
    return EntryResolver(
        build_reference_index(
            ReferenceCollections(
                companies=[CompanyRecord(id="co-1", cnpj="12345678000190", erp_code="101")],
                accounts=[AccountRecord(id="acc-1", code="341101")],
                cost_centers=[CostCenterRecord(id="cc-1", code="ADM")],
            )
        )
    )


def _row(**overrides: object) -> NormalizedRow:
    fields: dict[str, object] = {
        "line_number": 4,
        "value": 250.0,
        "entry_date": date(2024, 3, 15),
        "year": 2024,
        "month": "MARÇO",
        "natureza": "D",
        "account_code": "3411010",
        "cost_center_code": "ADM",
        "cnpj": "12345678000190",
        "erp_code": "",
        "history": "Aluguel",
    }
    fields.update(overrides)
    return NormalizedRow(**fields)  # type: ignore[arg-type]


def test_fully_resolved_row_becomes_entry(resolver: EntryResolver) -> None:
    resolution = resolver.resolve(_row())
    assert resolution.ok
    entry = resolution.to_entry("tenant-1")
    assert (entry.company_id, entry.account_id, entry.cost_center_id) == ("co-1", "acc-1", "cc-1")
    assert entry.tenant_id == "tenant-1"
    assert entry.month == "MARÇO"
    assert entry.account_code == "3411010"
    assert entry.erp_code is None

    audit = resolution.to_audit_entry()
    assert audit.status is AuditStatus.SUCCESS
    assert audit.reason == "OK"


def test_resolution_is_deterministic(resolver: EntryResolver) -> None:
    row = _row(account_code="999")
    assert resolver.resolve(row) == resolver.resolve(row)


def test_every_failed_dimension_is_reported(resolver: EntryResolver) -> None:
    resolution = resolver.resolve(
        _row(cnpj="00000000000000", erp_code="X9", account_code="999", cost_center_code="FIN")
    )
    assert not resolution.ok
    assert resolution.reason == (
        "Empresa não encontrada (CNPJ: 00000000000000, ERP: X9); "
        "Conta não encontrada (999); "
        "Centro de Resultado não encontrado (FIN)"
    )
    audit = resolution.to_audit_entry()
    assert audit.status is AuditStatus.ERROR
    assert audit.reason.startswith("Erro (Empresa não encontrada")
    assert (audit.company_found, audit.account_found, audit.cost_center_found) == (
        False,
        False,
        False,
    )
    with pytest.raises(ValueError):
        resolution.to_entry("tenant-1")


def test_single_missing_dimension_blocks_entry(resolver: EntryResolver) -> None:
    resolution = resolver.resolve(_row(cost_center_code="FIN"))
    assert resolution.company_found and resolution.account_found
    with pytest.raises(ValueError, match=r"line 4 is not fully resolved: Centro de Resultado"):
        resolution.to_entry("tenant-1")


def test_tally_counts_row_once_and_each_miss(resolver: EntryResolver) -> None:
    stats = ImportStats(total_rows=3)
    resolver.resolve(_row()).tally(stats)
    resolver.resolve(_row(account_code="999")).tally(stats)
    resolver.resolve(_row(cnpj="", erp_code="nope", cost_center_code="FIN")).tally(stats)

    assert stats.success == 1
    assert stats.invalid_data == 2
    assert stats.account_not_found == 1
    assert stats.company_not_found == 1
    assert stats.cost_center_not_found == 1


def test_erp_fallback_when_cnpj_unknown(resolver: EntryResolver) -> None:
    resolution = resolver.resolve(_row(cnpj="11111111000111", erp_code="101"))
    assert resolution.company_id == "co-1"
