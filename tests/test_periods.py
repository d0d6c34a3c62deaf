from __future__ import annotations

import pytest

from financial_reporting.periods import (
    CALENDAR_MONTHS,
    ClosingConfig,
    Period,
    UserRole,
    display_periods,
    is_period_visible,
    month_index,
    normalize_month,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("marco", "MARÇO"),
        ("Março", "MARÇO"),
        (" janeiro ", "JANEIRO"),
        (12, "DEZEMBRO"),
        (13, None),
        ("Jan", None),
        (None, None),
    ],
)
def test_normalize_month(raw: object, expected: str | None) -> None:
    assert normalize_month(raw) == expected


def test_month_index_and_label() -> None:
    assert month_index("abril") == 3
    assert Period(2024, "MARÇO").label() == "MAR/2024"
    with pytest.raises(ValueError):
        month_index("Smarch")


def test_display_periods_sorted_chronologically_and_deduped() -> None:
    periods = display_periods([2025, 2024], ["março", "JANEIRO", "MARÇO"])
    assert periods == [
        Period(2024, "JANEIRO"),
        Period(2024, "MARÇO"),
        Period(2025, "JANEIRO"),
        Period(2025, "MARÇO"),
    ]


def test_display_periods_defaults_to_full_calendar() -> None:
    assert [p.month for p in display_periods([2024])] == list(CALENDAR_MONTHS)


def test_unknown_month_is_rejected() -> None:
    with pytest.raises(ValueError):
        display_periods([2024], ["Smarch"])


CLOSING = ClosingConfig(last_closed_year=2024, last_closed_month="JUNHO")


@pytest.mark.parametrize("role", [UserRole.ANALISTA, "leitor", "Leitor"])
def test_restricted_roles_stop_at_last_closed_month(role: object) -> None:
    periods = display_periods([2023, 2024, 2025], role=role, closing=CLOSING)  # type: ignore[arg-type]
    assert periods[-1] == Period(2024, "JUNHO")
    assert Period(2023, "DEZEMBRO") in periods
    assert all(p.year < 2025 for p in periods)


@pytest.mark.parametrize("role", [UserRole.ADMIN, "Gestor", "super_admin", None])
def test_other_roles_see_everything(role: object) -> None:
    periods = display_periods([2024, 2025], role=role, closing=CLOSING)  # type: ignore[arg-type]
    assert len(periods) == 24


def test_lock_requires_both_fields() -> None:
    partial = ClosingConfig(last_closed_year=2024, last_closed_month=None)
    assert partial.boundary is None
    assert is_period_visible(Period(2030, "JANEIRO"), role=UserRole.LEITOR, closing=partial)


def test_unknown_role_raises() -> None:
    with pytest.raises(ValueError):
        UserRole.parse("Estagiário")


def test_lock_boundary_scenario() -> None:
    july, june, next_jan = Period(2024, "JULHO"), Period(2024, "JUNHO"), Period(2025, "JANEIRO")
    reader = display_periods([2024, 2025], role="Leitor", closing=CLOSING)
    assert june in reader
    assert july not in reader
    assert next_jan not in reader
    admin = display_periods([2024, 2025], role="Administrador", closing=CLOSING)
    assert {june, july, next_jan} <= set(admin)
