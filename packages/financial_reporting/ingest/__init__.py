"""Spreadsheet input: file reading, field mapping and row access."""

from .field_mapping import (
    FIELD_DEFINITIONS,
    LOGICAL_KEYS,
    ColumnIndex,
    FieldDefinition,
    FieldMapping,
    RawRow,
    suggest_field_mapping,
)
from .spreadsheet import SheetData, read_sheet

__all__ = [
    "FIELD_DEFINITIONS",
    "LOGICAL_KEYS",
    "FieldDefinition",
    "FieldMapping",
    "suggest_field_mapping",
    "ColumnIndex",
    "RawRow",
    "SheetData",
    "read_sheet",
]
