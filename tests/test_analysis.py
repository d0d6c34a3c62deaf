from __future__ import annotations

import pytest

from financial_reporting.aggregation import build_financial_report
from financial_reporting.analysis import (
    analyze_report,
    find_vertical_analysis_base,
    prune_zero_branches,
)
from financial_reporting.models import LineType, MonthlyBalanceEntry, ReportLine
from financial_reporting.periods import Period

JAN = Period(2024, "JANEIRO")
FEB = Period(2024, "FEVEREIRO")
MAR = Period(2024, "MARÇO")

LINES = [
    ReportLine(id="3.1", name="Receita Bruta", linked_account_id="REC", order=1),
    ReportLine(id="3.2", name="Despesas", linked_account_id="DESP", order=2),
    ReportLine(id="3.3", name="Vazia", linked_account_id="NADA", order=3),
    ReportLine(id="3.5", name="Receita Líquida", type=LineType.TOTAL, order=5),
    ReportLine(id="3.5.1", name="Receita", parent_id="3.5", linked_account_id="REC", order=1),
]
MAPPING = {"acc-rec": "REC", "acc-desp": "DESP"}


def _bal(account_id: str, period: Period, value: float) -> MonthlyBalanceEntry:
    return MonthlyBalanceEntry(
        tenant_id="t",
        company_id="co-1",
        account_code=account_id,
        year=period.year,
        month=period.month,
        value=value,
        account_id=account_id,
    )


@pytest.fixture()
def roots():  # type: ignore[no-untyped-def]
    return build_financial_report(
        LINES,
        [
            _bal("acc-rec", JAN, 1000),
            _bal("acc-rec", FEB, 0.0),
            _bal("acc-rec", MAR, 1500),
            _bal("acc-desp", JAN, 250),
            _bal("acc-desp", FEB, 300),
            _bal("acc-desp", MAR, 450),
        ],
        account_mapping=MAPPING,
        years=[2024],
    )


def test_base_falls_back_to_default_id(roots) -> None:  # type: ignore[no-untyped-def]
    base = find_vertical_analysis_base(roots)
    assert base is not None and base.id == "3.5"


def test_flagged_line_wins_over_default() -> None:
    lines = [
        ReportLine(id="3.5", name="Default", type=LineType.TOTAL),
        ReportLine(id="9", name="Flagged", is_vertical_analysis_base=True),
    ]
    roots = build_financial_report(lines, [], account_mapping={}, years=[2024])
    base = find_vertical_analysis_base(roots)
    assert base is not None and base.id == "9"


def test_vertical_is_share_of_base(roots) -> None:  # type: ignore[no-untyped-def]
    analysis = analyze_report(roots, [JAN, MAR])
    desp = analysis["3.2"]
    assert desp.cells[0].vertical == pytest.approx(25.0)
    assert desp.cells[1].vertical == pytest.approx(30.0)
    assert analysis["3.5"].cells[0].vertical == pytest.approx(100.0)
    # TOTAL column: (250 + 450) / (1000 + 1500)
    assert desp.total.value == pytest.approx(700)
    assert desp.total.vertical == pytest.approx(28.0)
    assert desp.total.period is None


def test_vertical_undefined_when_base_is_zero(roots) -> None:  # type: ignore[no-untyped-def]
    analysis = analyze_report(roots, [FEB])
    assert analysis["3.2"].cells[0].vertical is None


def test_horizontal_uses_previous_displayed_period(roots) -> None:  # type: ignore[no-untyped-def]
    contiguous = analyze_report(roots, [JAN, FEB, MAR])["3.2"]
    assert contiguous.cells[0].horizontal is None
    assert contiguous.cells[1].horizontal == pytest.approx(20.0)
    assert contiguous.cells[2].horizontal == pytest.approx(50.0)

    # With February hidden, March compares against January.
    gapped = analyze_report(roots, [JAN, MAR])["3.2"]
    assert gapped.cells[1].horizontal == pytest.approx(80.0)


def test_horizontal_undefined_after_zero(roots) -> None:  # type: ignore[no-untyped-def]
    receita = analyze_report(roots, [JAN, FEB, MAR])["3.1"]
    assert receita.cells[1].horizontal == pytest.approx(-100.0)
    assert receita.cells[2].horizontal is None


def test_analysis_keeps_display_order_and_depth(roots) -> None:  # type: ignore[no-untyped-def]
    analysis = analyze_report(roots, [JAN])
    assert list(analysis) == ["3.1", "3.2", "3.3", "3.5", "3.5.1"]
    assert analysis["3.5.1"].depth == 1


def test_prune_drops_empty_buckets_but_keeps_totals(roots) -> None:  # type: ignore[no-untyped-def]
    pruned = prune_zero_branches(roots, [JAN])
    assert [r.id for r in pruned] == ["3.1", "3.2", "3.5"]

    empty = build_financial_report(LINES, [], account_mapping=MAPPING, years=[2024])
    assert [r.id for r in prune_zero_branches(empty)] == ["3.5"]
