from __future__ import annotations

from pathlib import Path

import pytest

from financial_reporting.errors import SpreadsheetError
from financial_reporting.ingest import read_sheet


def test_semicolon_csv_with_bom(tmp_path: Path) -> None:
    path = tmp_path / "saldos.csv"
    path.write_text("\ufeffConta ; Jan/24\n341101;1.000,50\n;\n", encoding="utf-8")
    sheet = read_sheet(path)
    assert sheet.headers == ("Conta", "Jan/24")
    assert sheet.rows == [("341101", "1.000,50")]
    assert sheet.source_name == "saldos.csv"


def test_comma_csv_keeps_line_numbers(tmp_path: Path) -> None:
    path = tmp_path / "entries.csv"
    path.write_text("Conta,Valor\n1,10\n2,20\n", encoding="utf-8")
    sheet = read_sheet(path)
    columns = sheet.column_index({"idconta": "Conta", "valor": "Valor"})
    rows = list(sheet.raw_rows(columns))
    assert [(r.line_number, r.get("valor")) for r in rows] == [(2, "10"), (3, "20")]


def test_cp1252_fallback(tmp_path: Path) -> None:
    path = tmp_path / "hist.csv"
    path.write_bytes("Histórico;Valor\nPagamento;1\n".encode("cp1252"))
    assert read_sheet(path).headers == ("Histórico", "Valor")


@pytest.mark.parametrize(
    ("name", "content", "match"),
    [
        ("missing.xlsx", None, "file not found"),
        ("data.pdf", b"%PDF", "unsupported file type"),
        ("empty.csv", b"\n", "no header row"),
    ],
)
def test_unreadable_inputs(tmp_path: Path, name: str, content: bytes | None, match: str) -> None:
    path = tmp_path / name
    if content is not None:
        path.write_bytes(content)
    with pytest.raises(SpreadsheetError, match=match):
        read_sheet(path)
