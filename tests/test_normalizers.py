from __future__ import annotations

import math
from datetime import date, datetime

import pytest

from financial_reporting.ingest import ColumnIndex, RawRow
from financial_reporting.models import AuditStatus
from financial_reporting.normalizers import (
    IssueKind,
    NormalizedRow,
    RowIssue,
    normalize_cnpj,
    normalize_code,
    normalize_entry_row,
    parse_date,
    parse_value,
    serial_to_date,
    strip_leading_zeros,
)

_HEADERS = ("Conta", "Valor", "Natureza", "Data", "CNPJ", "CR", "Historico", "ERP")
_COLUMNS = ColumnIndex.build(
    _HEADERS,
    {
        "idconta": "Conta",
        "valor": "Valor",
        "natureza": "Natureza",
        "data": "Data",
        "cnpj": "CNPJ",
        "siglacr": "CR",
        "historico": "Historico",
        "erpCode": "ERP",
    },
)


def _row(**overrides: object) -> RawRow:
    base: dict[str, object] = {
        "Conta": "341101",
        "Valor": "1.234,56",
        "Natureza": "C",
        "Data": "15/03/2024",
        "CNPJ": "12.345.678/0001-90",
        "CR": "ADM",
        "Historico": "Venda",
        "ERP": None,
    }
    base.update(overrides)
    return RawRow(line_number=7, cells=[base[h] for h in _HEADERS], columns=_COLUMNS)


# ---- parse_value ---------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (1500, 1500.0),
        (12.5, 12.5),
        ("1.234,56", 1234.56),
        ("1234,56", 1234.56),
        ("R$ 99,90", 99.9),
        ("-42", -42.0),
        ("12.5abc", 12.5),
        ("1.234.567,89", 1234567.89),
    ],
)
def test_parse_value_latin_formats(raw: object, expected: float) -> None:
    assert parse_value(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["abc", "--", "", None])
def test_parse_value_nan_when_nothing_numeric(raw: object) -> None:
    assert math.isnan(parse_value(raw))


# ---- dates ---------------------------------------------------------------------


def test_serial_to_date_uses_1900_system_and_ignores_time() -> None:
    assert serial_to_date(25569) == date(1970, 1, 1)
    assert serial_to_date(45366.75) == date(2024, 3, 15)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (date(2024, 1, 31), date(2024, 1, 31)),
        (datetime(2024, 2, 29, 13, 45), date(2024, 2, 29)),
        (45366, date(2024, 3, 15)),
        ("2024-03-15", date(2024, 3, 15)),
        ("2024-03-15T10:00:00", date(2024, 3, 15)),
        ("15/03/2024", date(2024, 3, 15)),
        ("5-3-2024", date(2024, 3, 5)),
        ("15/03/24", date(2024, 3, 15)),
    ],
)
def test_parse_date_accepted_shapes(raw: object, expected: date) -> None:
    assert parse_date(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "não é data", "31/02/2024", "2024/13/01"])
def test_parse_date_rejects_garbage(raw: object) -> None:
    assert parse_date(raw) is None


# ---- codes ---------------------------------------------------------------------


def test_code_helpers() -> None:
    assert normalize_code(341101.0) == "341101"
    assert normalize_code("  0042 ") == "0042"
    assert normalize_code(None) == ""
    assert normalize_cnpj("12.345.678/0001-90") == "12345678000190"
    assert strip_leading_zeros("000123") == "123"
    assert strip_leading_zeros("0000") == "0"


# ---- normalize_entry_row -------------------------------------------------------


def test_valid_row_is_typed() -> None:
    out = normalize_entry_row(_row())
    assert isinstance(out, NormalizedRow)
    assert out.line_number == 7
    assert out.value == pytest.approx(1234.56)
    assert out.entry_date == date(2024, 3, 15)
    assert (out.year, out.month) == (2024, "MARÇO")
    assert out.natureza == "C"
    assert out.cnpj == "12345678000190"
    assert out.erp_code == ""
    assert out.history == "Venda"


def test_natureza_defaults_to_debit_and_keeps_first_letter() -> None:
    blank = normalize_entry_row(_row(Natureza=None))
    word = normalize_entry_row(_row(Natureza="credito"))
    assert isinstance(blank, NormalizedRow) and blank.natureza == "D"
    assert isinstance(word, NormalizedRow) and word.natureza == "C"


def test_invalid_natureza_is_an_error() -> None:
    out = normalize_entry_row(_row(Natureza="X"))
    assert isinstance(out, RowIssue)
    assert out.kind is IssueKind.INVALID
    assert out.reason == 'Erro (Natureza inválida: "X")'


def test_empty_row_is_a_skip() -> None:
    row = RawRow(line_number=3, cells=[None, "", "  ", 0, None, None, None, None], columns=_COLUMNS)
    out = normalize_entry_row(row)
    assert isinstance(out, RowIssue)
    assert out.kind is IssueKind.EMPTY_ROW
    assert out.status is AuditStatus.WARNING
    assert out.is_skip


@pytest.mark.parametrize(
    ("overrides", "kind", "reason"),
    [
        ({"Valor": None}, IssueKind.ZERO_VALUE, "Ignorada (Coluna Valor está vazia ou nula)"),
        ({"Valor": "abc"}, IssueKind.INVALID, 'Erro (Valor inválido: "abc")'),
        ({"Valor": "0,00001"}, IssueKind.ZERO_VALUE, "Ignorada (Valor é zero: 0,00001)"),
        ({"Data": None}, IssueKind.INVALID, "Erro (Data ausente)"),
        ({"Data": "ontem"}, IssueKind.INVALID, 'Erro (Data inválida: "ontem")'),
        ({"Conta": "  "}, IssueKind.INVALID, "Erro (ID Conta ausente)"),
        ({"CR": None}, IssueKind.INVALID, "Erro (Sigla CR ausente)"),
        ({"CNPJ": None, "ERP": None}, IssueKind.INVALID, "Erro (CNPJ e Código ERP ausentes)"),
    ],
)
def test_row_issues(overrides: dict[str, object], kind: IssueKind, reason: str) -> None:
    out = normalize_entry_row(_row(**overrides))
    assert isinstance(out, RowIssue)
    assert out.kind is kind
    assert out.reason == reason
    assert out.line_number == 7


def test_checks_run_in_order_value_before_date() -> None:
    out = normalize_entry_row(_row(Valor="abc", Data=None, Conta=None))
    assert isinstance(out, RowIssue)
    assert out.reason.startswith("Erro (Valor inválido")


def test_threshold_is_configurable() -> None:
    out = normalize_entry_row(_row(Valor="0,5"), threshold=1.0)
    assert isinstance(out, RowIssue) and out.kind is IssueKind.ZERO_VALUE


def test_erp_code_alone_identifies_the_company() -> None:
    out = normalize_entry_row(_row(CNPJ=None, ERP=101.0))
    assert isinstance(out, NormalizedRow)
    assert out.cnpj == ""
    assert out.erp_code == "101"


@pytest.mark.parametrize(("raw", "skipped"), [(0.00005, True), (0.0002, False), ("0,00005", True)])
def test_near_zero_threshold_boundary(raw: object, skipped: bool) -> None:
    out = normalize_entry_row(_row(Valor=raw))
    if skipped:
        assert isinstance(out, RowIssue) and out.kind is IssueKind.ZERO_VALUE
    else:
        assert isinstance(out, NormalizedRow) and out.value == pytest.approx(0.0002)
