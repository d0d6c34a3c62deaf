"""Logical-field → spreadsheet-column mapping for accounting-entry imports.

A :class:`FieldMapping` names which header column feeds each logical field.
:class:`ColumnIndex` turns a mapping plus the sheet header into column
positions once per import, and :class:`RawRow` gives per-row access by
logical key.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class FieldDefinition:
    key: str
    label: str
    required: bool


FIELD_DEFINITIONS: tuple[FieldDefinition, ...] = (
    FieldDefinition("idconta", "Conta Contábil (ID)", True),
    FieldDefinition("valor", "Valor", True),
    FieldDefinition("natureza", "Natureza (D/C)", True),
    FieldDefinition("data", "Data Lançamento", True),
    FieldDefinition("cnpj", "CNPJ Empresa", False),
    FieldDefinition("siglacr", "Sigla CR", True),
    FieldDefinition("historico", "Histórico / Observação", False),
    FieldDefinition("descricaoconta", "Descrição da Conta", False),
    FieldDefinition("descricaocr", "Descrição CR", False),
    FieldDefinition("empresa", "Nome Empresa", False),
    FieldDefinition("erpCode", "Cód. ERP", False),
)

LOGICAL_KEYS: tuple[str, ...] = tuple(d.key for d in FIELD_DEFINITIONS)


class FieldMapping(BaseModel):
    """Validated mapping from logical keys to header names.

    Every required key must name a non-empty column; the company pair
    (``cnpj``/``erpCode``) needs at least one of the two.
    """

    model_config = ConfigDict(
        strict=True,
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    idconta: str
    valor: str
    natureza: str
    data: str
    siglacr: str
    cnpj: str | None = None
    erp_code: str | None = Field(default=None, alias="erpCode")
    historico: str | None = None
    descricaoconta: str | None = None
    descricaocr: str | None = None
    empresa: str | None = None

    @field_validator("idconta", "valor", "natureza", "data", "siglacr")
    @classmethod
    def _required_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("column name must be non-empty")
        return v

    @field_validator(
        "cnpj", "erp_code", "historico", "descricaoconta", "descricaocr", "empresa"
    )
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        return v or None

    @model_validator(mode="after")
    def _company_pair(self) -> FieldMapping:
        if not self.cnpj and not self.erp_code:
            raise ValueError("map at least one of 'cnpj' or 'erpCode'")
        return self

    @classmethod
    def from_pairs(cls, pairs: Mapping[str, str | None]) -> FieldMapping:
        """Build a mapping keyed by logical names, raising ``ConfigurationError``.

        Unknown keys are rejected; empty values count as unmapped.
        """

        unknown = sorted(k for k in pairs if k not in LOGICAL_KEYS)
        if unknown:
            raise ConfigurationError(f"unknown mapping keys: {', '.join(unknown)}")
        try:
            return cls.model_validate({k: v for k, v in pairs.items() if v is not None})
        except ValidationError as exc:
            missing = [
                ".".join(str(p) for p in err["loc"]) or "mapping"
                for err in exc.errors()
            ]
            raise ConfigurationError(
                f"invalid field mapping ({', '.join(missing)}): "
                + "; ".join(err["msg"] for err in exc.errors())
            ) from exc

    def columns(self) -> dict[str, str]:
        """Logical key → column for every mapped field."""

        raw = self.model_dump(by_alias=True)
        return {k: v for k, v in raw.items() if v}


def suggest_field_mapping(headers: Sequence[str]) -> dict[str, str]:
    """Guess a column for each logical key from the header names.

    A header matches when it equals the key, contains the field label, or
    (for ``historico``) contains ``hist``/``obs``. Comparison ignores case.
    The result is a suggestion and is not validated.
    """

    suggestion: dict[str, str] = {}
    for definition in FIELD_DEFINITIONS:
        key = definition.key.lower()
        label = definition.label.lower()
        for header in headers:
            h = header.lower()
            if (
                h == key
                or label in h
                or (definition.key == "historico" and ("hist" in h or "obs" in h))
            ):
                suggestion[definition.key] = header
                break
    return suggestion


# ---------------------------------------------------------------------------
# Column positions and row access
# ---------------------------------------------------------------------------


class ColumnIndex:
    """Logical key → column position, computed once per import."""

    __slots__ = ("_positions",)

    def __init__(self, positions: Mapping[str, int]) -> None:
        self._positions = dict(positions)

    @classmethod
    def build(cls, headers: Sequence[str], columns: Mapping[str, str]) -> ColumnIndex:
        """Resolve ``columns`` (key → header name) against ``headers``.

        Exact header match wins; a case-insensitive match is the fallback.
        Raises ``ConfigurationError`` listing every column absent from the header.
        """

        exact: dict[str, int] = {}
        folded: dict[str, int] = {}
        for i, h in enumerate(headers):
            exact.setdefault(h, i)
            folded.setdefault(h.strip().lower(), i)

        positions: dict[str, int] = {}
        missing: list[str] = []
        for key, column in columns.items():
            if column in exact:
                positions[key] = exact[column]
            elif column.strip().lower() in folded:
                positions[key] = folded[column.strip().lower()]
            else:
                missing.append(f"{key}={column!r}")
        if missing:
            raise ConfigurationError(
                "mapped columns not found in the sheet header: " + ", ".join(missing)
            )
        return cls(positions)

    def __contains__(self, key: object) -> bool:
        return key in self._positions

    def position(self, key: str) -> int | None:
        return self._positions.get(key)

    def keys(self) -> Iterable[str]:
        return self._positions.keys()


def _is_blank(cell: Any) -> bool:
    if cell is None or cell is False:
        return True
    if isinstance(cell, str):
        return not cell.strip()
    if isinstance(cell, (int, float)):
        return cell == 0
    return False


@dataclass(frozen=True, slots=True)
class RawRow:
    """One data row as read from the sheet.

    ``line_number`` is 1-based and counts the header, so the first data row
    is line 2.
    """

    line_number: int
    cells: Sequence[Any]
    columns: ColumnIndex

    def get(self, key: str) -> Any:
        idx = self.columns.position(key)
        if idx is None or idx >= len(self.cells):
            return None
        return self.cells[idx]

    def is_empty(self) -> bool:
        return all(_is_blank(c) for c in self.cells)


__all__ = [
    "FieldDefinition",
    "FIELD_DEFINITIONS",
    "LOGICAL_KEYS",
    "FieldMapping",
    "suggest_field_mapping",
    "ColumnIndex",
    "RawRow",
]
