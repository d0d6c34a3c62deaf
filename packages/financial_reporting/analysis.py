"""Vertical/horizontal analysis over an aggregated report tree.

Both figures are percentages of a line's effective result:

- vertical (AV): ``value / base_value * 100`` for the same period, where the
  base is the line flagged ``is_vertical_analysis_base`` (fallbacks in
  :func:`find_vertical_analysis_base`);
- horizontal (AH): ``(value / previous - 1) * 100`` where ``previous`` is the
  preceding *displayed* period, so gaps in the display set are skipped.

``None`` means undefined (zero or missing denominator).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from .aggregation import iter_lines
from .models import FinancialAccount, LineType
from .periods import Period

DEFAULT_BASE_LINE_ID = "3.5"


@dataclass(frozen=True, slots=True)
class AnalysisCell:
    """One displayed cell. ``period`` is ``None`` for the TOTAL column."""

    period: Period | None
    value: float
    orcado: float
    vertical: float | None
    horizontal: float | None


@dataclass(frozen=True, slots=True)
class LineAnalysis:
    line_id: str
    name: str
    depth: int
    cells: tuple[AnalysisCell, ...]
    total: AnalysisCell


def find_vertical_analysis_base(
    roots: Sequence[FinancialAccount], default_id: str = DEFAULT_BASE_LINE_ID
) -> FinancialAccount | None:
    """Flagged line (depth-first), else top-level ``default_id``, else first top-level total."""

    for _, node in iter_lines(roots):
        if node.is_vertical_analysis_base:
            return node
    for node in roots:
        if node.id == default_id:
            return node
    for node in roots:
        if node.is_total:
            return node
    return None


def _ratio_pct(numerator: float, denominator: float | None) -> float | None:
    if not denominator:
        return None
    return numerator / denominator * 100


def analyze_report(
    roots: Sequence[FinancialAccount],
    periods: Sequence[Period],
    *,
    base: FinancialAccount | None = None,
    default_base_id: str = DEFAULT_BASE_LINE_ID,
) -> dict[str, LineAnalysis]:
    """Per-line cells for ``periods`` (already sorted and lock-filtered).

    Returns a dict keyed by line id in display order.
    """

    if base is None:
        base = find_vertical_analysis_base(roots, default_base_id)
    base_values = [base.cell(p).effective_result for p in periods] if base is not None else None
    base_total = sum(base_values) if base_values is not None else None

    out: dict[str, LineAnalysis] = {}
    for depth, node in iter_lines(roots):
        cells: list[AnalysisCell] = []
        previous: float | None = None
        for i, period in enumerate(periods):
            data = node.cell(period)
            value = data.effective_result
            cells.append(
                AnalysisCell(
                    period=period,
                    value=value,
                    orcado=data.orcado,
                    vertical=_ratio_pct(value, base_values[i] if base_values is not None else None),
                    horizontal=(
                        None
                        if i == 0 or not previous
                        else (value / previous - 1) * 100
                    ),
                )
            )
            previous = value
        total_value = sum(c.value for c in cells)
        out[node.id] = LineAnalysis(
            line_id=node.id,
            name=node.name,
            depth=depth,
            cells=tuple(cells),
            total=AnalysisCell(
                period=None,
                value=total_value,
                orcado=sum(c.orcado for c in cells),
                vertical=_ratio_pct(total_value, base_total),
                horizontal=None,
            ),
        )
    return out


def _has_values(node: FinancialAccount, periods: Iterable[Period] | None) -> bool:
    if periods is None:
        return any(
            not data.is_zero() for months in node.monthly_data.values() for data in months.values()
        )
    return any(not node.cell(p).is_zero() for p in periods)


def prune_zero_branches(
    roots: Sequence[FinancialAccount], periods: Sequence[Period] | None = None
) -> tuple[FinancialAccount, ...]:
    """Drop lines without any non-zero result or budget (display filter).

    Header and total lines are always kept. Only ``periods`` are inspected
    when given.
    """

    def prune(node: FinancialAccount) -> FinancialAccount | None:
        kept = tuple(c for c in (prune(child) for child in node.children) if c is not None)
        if node.type in (LineType.HEADER, LineType.TOTAL):
            return replace(node, children=kept)
        if kept or _has_values(node, periods):
            return replace(node, children=kept)
        return None

    return tuple(n for n in (prune(r) for r in roots) if n is not None)


__all__ = [
    "DEFAULT_BASE_LINE_ID",
    "AnalysisCell",
    "LineAnalysis",
    "find_vertical_analysis_base",
    "analyze_report",
    "prune_zero_branches",
]
