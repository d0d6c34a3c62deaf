"""Canonical months, report periods and the closing-lock visibility rule.

Months are identified by their upper-case Portuguese names (``"JANEIRO"`` ..
``"DEZEMBRO"``). Anything read from a spreadsheet or the database goes through
:func:`normalize_month` before being compared.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import NamedTuple

CALENDAR_MONTHS: tuple[str, ...] = (
    "JANEIRO",
    "FEVEREIRO",
    "MARÇO",
    "ABRIL",
    "MAIO",
    "JUNHO",
    "JULHO",
    "AGOSTO",
    "SETEMBRO",
    "OUTUBRO",
    "NOVEMBRO",
    "DEZEMBRO",
)


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text.strip().upper())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


_MONTH_BY_FOLDED: dict[str, str] = {_fold(m): m for m in CALENDAR_MONTHS}


def normalize_month(name: object) -> str | None:
    """Return the canonical month name for ``name`` or ``None``.

    Case and accents are ignored, so ``"marco"``, ``"Março"`` and ``"MARÇO"``
    all map to ``"MARÇO"``. Integers 1..12 are accepted as month numbers.
    """

    if name is None:
        return None
    if isinstance(name, int) and not isinstance(name, bool):
        return CALENDAR_MONTHS[name - 1] if 1 <= name <= 12 else None
    return _MONTH_BY_FOLDED.get(_fold(str(name)))


def month_index(month: str) -> int:
    """0-based position of ``month`` in :data:`CALENDAR_MONTHS`."""

    canonical = normalize_month(month)
    if canonical is None:
        raise ValueError(f"unknown month: {month!r}")
    return CALENDAR_MONTHS.index(canonical)


def month_for_date_number(number: int) -> str:
    """Month name for a 1-based calendar month number."""

    return CALENDAR_MONTHS[number - 1]


class Period(NamedTuple):
    """One report column: a fiscal year and a canonical month name."""

    year: int
    month: str

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.year, month_index(self.month))

    def label(self) -> str:
        return f"{self.month[:3]}/{self.year}"


# ---------------------------------------------------------------------------
# Roles and the closing lock
# ---------------------------------------------------------------------------


class UserRole(StrEnum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    ADMINISTRADOR = "Administrador"
    GESTOR = "Gestor"
    ANALISTA = "Analista"
    LEITOR = "Leitor"
    SUPORTE = "Suporte"
    OPERACIONAL = "Operacional"

    @classmethod
    def parse(cls, value: str | UserRole) -> UserRole:
        if isinstance(value, UserRole):
            return value
        wanted = value.strip().lower()
        for role in cls:
            if role.value.lower() == wanted or role.name.lower() == wanted:
                return role
        raise ValueError(f"unknown role: {value!r}")


RESTRICTED_ROLES: frozenset[UserRole] = frozenset({UserRole.ANALISTA, UserRole.LEITOR})


@dataclass(frozen=True, slots=True)
class ClosingConfig:
    """Tenant-level "last closed" boundary.

    The lock only applies when both fields are set.
    """

    last_closed_year: int | None = None
    last_closed_month: str | None = None

    @property
    def boundary(self) -> tuple[int, int] | None:
        if self.last_closed_year is None or not self.last_closed_month:
            return None
        canonical = normalize_month(self.last_closed_month)
        if canonical is None:
            return None
        return (self.last_closed_year, CALENDAR_MONTHS.index(canonical))


def is_period_visible(
    period: Period,
    *,
    role: UserRole | str | None,
    closing: ClosingConfig | None,
) -> bool:
    """Whether ``role`` may see ``period`` given the closing boundary.

    Restricted roles see periods up to and including the last closed month.
    Every other role (and an absent role) sees everything.
    """

    if role is None or closing is None:
        return True
    if UserRole.parse(role) not in RESTRICTED_ROLES:
        return True
    boundary = closing.boundary
    if boundary is None:
        return True
    return period.sort_key <= boundary


def display_periods(
    years: Iterable[int],
    months: Iterable[str] | None = None,
    *,
    role: UserRole | str | None = None,
    closing: ClosingConfig | None = None,
) -> list[Period]:
    """Chronologically sorted periods for ``years`` x ``months``, lock applied.

    ``months`` defaults to the full calendar. Unknown month names raise
    ``ValueError``; duplicates are collapsed.
    """

    if months is None:
        month_names: list[str] = list(CALENDAR_MONTHS)
    else:
        month_names = []
        for m in months:
            canonical = normalize_month(m)
            if canonical is None:
                raise ValueError(f"unknown month: {m!r}")
            if canonical not in month_names:
                month_names.append(canonical)

    periods = {Period(int(y), m) for y in years for m in month_names}
    ordered = sorted(periods, key=lambda p: p.sort_key)
    return [p for p in ordered if is_period_visible(p, role=role, closing=closing)]


__all__ = [
    "CALENDAR_MONTHS",
    "normalize_month",
    "month_index",
    "month_for_date_number",
    "Period",
    "UserRole",
    "RESTRICTED_ROLES",
    "ClosingConfig",
    "is_period_visible",
    "display_periods",
]
