"""Read the first sheet of an ``.xlsx`` workbook (or a delimited text file).

Output is a :class:`SheetData`: trimmed header names plus raw data rows with
cell values as the reader produced them (numbers, strings, dates, ``None``).
No interpretation of values happens here.
"""

from __future__ import annotations

import csv
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from io import StringIO
from os import PathLike
from pathlib import Path
from typing import Any

from ..errors import SpreadsheetError
from .field_mapping import ColumnIndex, RawRow

_EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
_TEXT_SUFFIXES = {".csv", ".txt"}


@dataclass(frozen=True, slots=True)
class SheetData:
    headers: tuple[str, ...]
    rows: Sequence[Sequence[Any]]
    source_name: str | None = None

    @classmethod
    def from_rows(
        cls,
        headers: Sequence[Any],
        rows: Sequence[Sequence[Any]],
        *,
        source_name: str | None = None,
    ) -> SheetData:
        return cls(
            headers=tuple(_header_text(h) for h in headers),
            rows=[tuple(r) for r in rows],
            source_name=source_name,
        )

    def __len__(self) -> int:
        return len(self.rows)

    def column_index(self, columns: Mapping[str, str]) -> ColumnIndex:
        return ColumnIndex.build(self.headers, columns)

    def raw_rows(self, columns: ColumnIndex) -> Iterator[RawRow]:
        """Yield rows as :class:`RawRow`, numbered from line 2."""

        for offset, cells in enumerate(self.rows):
            yield RawRow(line_number=offset + 2, cells=cells, columns=columns)


def _header_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _drop_trailing_blank_rows(rows: list[tuple[Any, ...]]) -> list[tuple[Any, ...]]:
    # Worksheets often report formatted-but-empty rows past the data.
    while rows and all(c is None or (isinstance(c, str) and not c.strip()) for c in rows[-1]):
        rows.pop()
    return rows


def _read_xlsx(path: Path) -> tuple[list[Any], list[tuple[Any, ...]]]:
    import openpyxl

    try:
        workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:  # openpyxl raises several unrelated types
        raise SpreadsheetError(f"could not open workbook {path.name}: {exc}") from exc
    try:
        sheet = workbook.worksheets[0]
        rows_iter = sheet.iter_rows(values_only=True)
        header = next(rows_iter, None)
        if header is None:
            raise SpreadsheetError(f"{path.name}: first sheet is empty (no header row)")
        data = [tuple(r) for r in rows_iter]
    finally:
        workbook.close()
    return list(header), data


def _sniff_delimiter(first_line: str) -> str:
    return ";" if first_line.count(";") >= first_line.count(",") and ";" in first_line else ","


def _read_delimited(path: Path) -> tuple[list[Any], list[tuple[Any, ...]]]:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError:
        # Spreadsheet tools on Windows commonly save CSV as cp1252.
        text = path.read_text(encoding="cp1252")
    first_line = text.split("\n", 1)[0]
    if not first_line.strip():
        raise SpreadsheetError(f"{path.name}: file has no header row")
    reader = csv.reader(StringIO(text, newline=""), delimiter=_sniff_delimiter(first_line))
    header = next(reader)
    data = [tuple(row) for row in reader]
    return list(header), data


def read_sheet(path: str | PathLike[str]) -> SheetData:
    """Load ``path`` into a :class:`SheetData`.

    ``.xlsx``/``.xlsm`` files are read with openpyxl (first worksheet, cached
    formula values). ``.csv``/``.txt`` use ``;`` when the header line has at
    least as many semicolons as commas, else ``,``.
    """

    p = Path(path)
    if not p.is_file():
        raise SpreadsheetError(f"file not found: {p}")
    suffix = p.suffix.lower()
    if suffix in _EXCEL_SUFFIXES:
        header, data = _read_xlsx(p)
    elif suffix in _TEXT_SUFFIXES:
        header, data = _read_delimited(p)
    else:
        raise SpreadsheetError(
            f"unsupported file type {suffix or '(none)'!r}; use .xlsx, .xlsm, .csv or .txt"
        )
    return SheetData.from_rows(header, _drop_trailing_blank_rows(data), source_name=p.name)


__all__ = ["SheetData", "read_sheet"]
