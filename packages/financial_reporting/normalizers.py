"""Per-row parsing for spreadsheet imports.

Turns one :class:`~financial_reporting.ingest.RawRow` into either a typed
:class:`NormalizedRow` or a :class:`RowIssue` describing why the row is
skipped or rejected. Nothing here looks at registries; entity resolution is
the resolver's job.

Value rules (Latin-locale spreadsheets):

- numeric cells are used as-is;
- text keeps only digits, ``,``, ``.`` and ``-``; a lone comma is the decimal
  separator; with both present, dots are thousands separators and the comma
  is decimal;
- the cleaned text is read like a lenient float parser (longest numeric
  prefix), so ``"12.5abc"`` cleans to ``"12.5"`` and ``"--"`` is NaN.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import StrEnum
from typing import Any

from .config import NEAR_ZERO_THRESHOLD
from .ingest.field_mapping import RawRow
from .models import AuditStatus
from .periods import month_for_date_number

# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------

_NOT_NUMERIC = re.compile(r"[^\d.,-]")
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_NON_DIGITS = re.compile(r"\D")

# 1900 date system; serial 25569 is 1970-01-01.
_SERIAL_EPOCH = date(1899, 12, 30)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:$|[T\s])")
_DMY_DATE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})(?:$|\s)")
_DMY_SHORT_DATE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{2})(?:$|\s)")


def is_blank(raw: Any) -> bool:
    """``None`` or whitespace-only text."""

    return raw is None or (isinstance(raw, str) and not raw.strip())


def _is_number(raw: Any) -> bool:
    return isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool)


def parse_value(raw: Any) -> float:
    """Parse a monetary cell; ``nan`` when nothing numeric can be read."""

    if _is_number(raw):
        return float(raw)
    if raw is None:
        return math.nan
    s = _NOT_NUMERIC.sub("", str(raw).strip())
    if "," in s and "." not in s:
        s = s.replace(",", ".", 1)
    elif "," in s and "." in s:
        s = s.replace(".", "").replace(",", ".", 1)
    m = _FLOAT_PREFIX.match(s)
    if m is None:
        return math.nan
    return float(m.group(0))


def serial_to_date(serial: float) -> date:
    """Convert a spreadsheet date serial (fraction = time of day, ignored)."""

    return _SERIAL_EPOCH + timedelta(days=math.floor(serial))


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(raw: Any) -> date | None:
    """Parse a date cell; ``None`` when missing or unparseable.

    Accepts ``date``/``datetime`` objects, serial numbers and text. Text has
    ``/`` replaced by ``-`` and is tried as ``YYYY-MM-DD`` (time suffix
    allowed), then ``DD-MM-YYYY``, then ``DD-MM-YY`` (years 2000-2099).
    """

    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if _is_number(raw):
        value = float(raw)
        if not math.isfinite(value):
            return None
        try:
            return serial_to_date(value)
        except OverflowError:
            return None
    s = str(raw).strip().replace("/", "-")
    if not s:
        return None
    if m := _ISO_DATE.match(s):
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    if m := _DMY_DATE.match(s):
        return _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    if m := _DMY_SHORT_DATE.match(s):
        return _safe_date(2000 + int(m.group(3)), int(m.group(2)), int(m.group(1)))
    return None


def normalize_code(raw: Any) -> str:
    """Stringify and trim a code cell. Integral floats drop their ``.0``."""

    if raw is None:
        return ""
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw).strip()


def normalize_cnpj(raw: Any) -> str:
    """Digits only, so punctuated and bare CNPJs compare equal."""

    return _NON_DIGITS.sub("", normalize_code(raw))


def strip_leading_zeros(code: str) -> str:
    """Drop leading zeros without ever returning an empty string."""

    return code.lstrip("0") or "0"


def _text(raw: Any) -> str | None:
    s = normalize_code(raw)
    return s or None


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------


class IssueKind(StrEnum):
    EMPTY_ROW = "empty_row"
    ZERO_VALUE = "zero_value"
    INVALID = "invalid"


@dataclass(frozen=True, slots=True)
class RowIssue:
    """Terminal decision for a row that will not be persisted."""

    line_number: int
    kind: IssueKind
    reason: str

    @property
    def status(self) -> AuditStatus:
        return AuditStatus.ERROR if self.kind is IssueKind.INVALID else AuditStatus.WARNING

    @property
    def is_skip(self) -> bool:
        return self.kind is not IssueKind.INVALID


@dataclass(frozen=True, slots=True)
class NormalizedRow:
    line_number: int
    value: float
    entry_date: date
    year: int
    month: str
    natureza: str
    account_code: str
    cost_center_code: str
    cnpj: str
    erp_code: str
    history: str | None = None
    company_name: str | None = None
    account_description: str | None = None
    cost_center_description: str | None = None


def normalize_entry_row(
    row: RawRow, *, threshold: float = NEAR_ZERO_THRESHOLD
) -> NormalizedRow | RowIssue:
    """Validate and type one accounting-entry row.

    Checks run in this order: empty row, value, date, account code,
    cost-center code, company identifiers, natureza. The first failing check
    decides the outcome.
    """

    line = row.line_number
    if row.is_empty():
        return RowIssue(line, IssueKind.EMPTY_ROW, "Ignorada (Linha vazia)")

    raw_value = row.get("valor")
    if is_blank(raw_value):
        return RowIssue(line, IssueKind.ZERO_VALUE, "Ignorada (Coluna Valor está vazia ou nula)")
    value = parse_value(raw_value)
    if math.isnan(value):
        return RowIssue(line, IssueKind.INVALID, f'Erro (Valor inválido: "{raw_value}")')
    if abs(value) < threshold:
        return RowIssue(line, IssueKind.ZERO_VALUE, f"Ignorada (Valor é zero: {raw_value})")

    raw_date = row.get("data")
    if is_blank(raw_date):
        return RowIssue(line, IssueKind.INVALID, "Erro (Data ausente)")
    entry_date = parse_date(raw_date)
    if entry_date is None:
        return RowIssue(line, IssueKind.INVALID, f'Erro (Data inválida: "{raw_date}")')

    account_code = normalize_code(row.get("idconta"))
    if not account_code:
        return RowIssue(line, IssueKind.INVALID, "Erro (ID Conta ausente)")
    cost_center_code = normalize_code(row.get("siglacr"))
    if not cost_center_code:
        return RowIssue(line, IssueKind.INVALID, "Erro (Sigla CR ausente)")
    cnpj = normalize_cnpj(row.get("cnpj"))
    erp_code = normalize_code(row.get("erpCode"))
    if not cnpj and not erp_code:
        return RowIssue(line, IssueKind.INVALID, "Erro (CNPJ e Código ERP ausentes)")

    raw_natureza = normalize_code(row.get("natureza")).upper()
    natureza = raw_natureza[:1] or "D"
    if natureza not in ("D", "C"):
        return RowIssue(
            line, IssueKind.INVALID, f'Erro (Natureza inválida: "{row.get("natureza")}")'
        )

    return NormalizedRow(
        line_number=line,
        value=value,
        entry_date=entry_date,
        year=entry_date.year,
        month=month_for_date_number(entry_date.month),
        natureza=natureza,
        account_code=account_code,
        cost_center_code=cost_center_code,
        cnpj=cnpj,
        erp_code=erp_code,
        history=_text(row.get("historico")),
        company_name=_text(row.get("empresa")),
        account_description=_text(row.get("descricaoconta")),
        cost_center_description=_text(row.get("descricaocr")),
    )


__all__ = [
    "is_blank",
    "parse_value",
    "serial_to_date",
    "parse_date",
    "normalize_code",
    "normalize_cnpj",
    "strip_leading_zeros",
    "IssueKind",
    "RowIssue",
    "NormalizedRow",
    "normalize_entry_row",
]
