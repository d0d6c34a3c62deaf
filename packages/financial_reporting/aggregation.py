"""Financial aggregation engine.

Builds the report tree from report-line definitions and monthly balances in
three passes:

1. node store: one zeroed cell per (year, month) for every line, then
   balances (and manual adjustments) are added into the data-bucket lines
   linked to their account;
2. edges: parent → children lists, children sorted by ``order`` then id;
3. post-order: every header/total node is the sum of its children, each
   child weighted by its own ``sign``.

The result is a tuple of immutable :class:`FinancialAccount` roots. Nothing
is persisted; the tree is rebuilt on every call.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Collection, Iterable, Iterator, Mapping, Sequence

from .logging_setup import get_logger
from .models import (
    AccountingEntry,
    Adjustment,
    FinancialAccount,
    LineType,
    MonthlyBalanceEntry,
    MonthlyData,
    ReportLine,
    ZERO_MONTHLY_DATA,
)
from .periods import CALENDAR_MONTHS, normalize_month

logger = get_logger("financial_reporting.aggregation")

type Cells = dict[int, dict[str, MonthlyData]]


def _zero_cells(years: Sequence[int]) -> Cells:
    return {y: {m: ZERO_MONTHLY_DATA for m in CALENDAR_MONTHS} for y in years}


def _add(cells: Cells, year: int, month: str, component: str, value: float) -> None:
    row = cells[year]
    row[month] = row[month].add_to(component, value)


def _sum_children(
    years: Sequence[int], children: Iterable[FinancialAccount]
) -> Cells:
    total = _zero_cells(years)
    for child in children:
        for year in years:
            child_year = child.monthly_data.get(year, {})
            for month in CALENDAR_MONTHS:
                data = child_year.get(month)
                if data is not None and data is not ZERO_MONTHLY_DATA:
                    total[year][month] = total[year][month].plus(data, child.sign)
    return total


def build_financial_report(
    lines: Iterable[ReportLine],
    balances: Iterable[MonthlyBalanceEntry],
    *,
    account_mapping: Mapping[str, str],
    years: Iterable[int],
    company_ids: Collection[str] | None = None,
    adjustments: Iterable[Adjustment] = (),
) -> tuple[FinancialAccount, ...]:
    """Aggregate ``balances`` into the report tree described by ``lines``.

    Parameters
    ----------
    lines:
        Report-line definitions for one template.
    balances:
        Balances with ``account_id`` resolved. Balances without an account id,
        without a mapping entry or outside ``years`` are dropped.
    account_mapping:
        ``account_id -> linked id`` that data-bucket lines point at. Two lines
        sharing a linked id both receive the balance.
    years:
        Fiscal years to materialize; every line gets a cell for each month.
    company_ids:
        When given, only balances/adjustments of these companies count
        (adjustments without a company always count).
    adjustments:
        Manual values added to non-``balancete`` components of data buckets.
    """

    year_list = sorted({int(y) for y in years})
    year_set = set(year_list)
    companies = set(company_ids) if company_ids is not None else None

    # Pass 1: node store and bucketing.
    store: dict[str, ReportLine] = {}
    for line in lines:
        if line.id in store:
            logger.warning("Duplicate report line id %r; keeping the first definition", line.id)
            continue
        store[line.id] = line

    cells: dict[str, Cells] = {
        line_id: _zero_cells(year_list)
        for line_id, line in store.items()
        if line.type is LineType.DATA_BUCKET
    }
    buckets: dict[str, list[str]] = defaultdict(list)
    for line_id, line in store.items():
        if line.type is LineType.DATA_BUCKET and line.linked_account_id:
            buckets[line.linked_account_id].append(line_id)

    unmapped = 0
    for balance in balances:
        if companies is not None and balance.company_id not in companies:
            continue
        month = normalize_month(balance.month)
        if balance.year not in year_set or month is None:
            continue
        linked = account_mapping.get(balance.account_id) if balance.account_id else None
        if linked is None:
            unmapped += 1
            continue
        for line_id in buckets.get(linked, ()):
            _add(cells[line_id], balance.year, month, "balancete", balance.value)
    if unmapped:
        logger.debug("Dropped %d balances with no account mapping", unmapped)

    for adj in adjustments:
        if companies is not None and adj.company_id is not None and adj.company_id not in companies:
            continue
        month = normalize_month(adj.month)
        if adj.year not in year_set or month is None:
            continue
        for line_id in buckets.get(adj.linked_account_id, ()):
            _add(cells[line_id], adj.year, month, adj.component, adj.value)

    # Pass 2: edges.
    children_of: dict[str | None, list[str]] = defaultdict(list)
    orphans: list[str] = []
    for line_id, line in store.items():
        parent = line.parent_id or None
        if parent is not None and parent not in store:
            orphans.append(line_id)
            continue
        children_of[parent].append(line_id)
    for ids in children_of.values():
        ids.sort(key=lambda i: (store[i].order, i))
    if orphans:
        logger.warning(
            "Skipping %d report lines whose parent does not exist: %s",
            len(orphans),
            ", ".join(sorted(orphans)),
        )

    # Pass 3: post-order build from the roots.
    built: dict[str, FinancialAccount] = {}
    stack: list[tuple[str, bool]] = [(i, False) for i in reversed(children_of[None])]
    while stack:
        line_id, expanded = stack.pop()
        if not expanded:
            stack.append((line_id, True))
            stack.extend((c, False) for c in reversed(children_of.get(line_id, ())))
            continue
        line = store[line_id]
        kids = tuple(built[c] for c in children_of.get(line_id, ()))
        if line.type is LineType.DATA_BUCKET:
            data = cells[line_id]
        else:
            data = _sum_children(year_list, kids)
        built[line_id] = FinancialAccount(
            id=line.id,
            name=line.name,
            type=line.type,
            sign=line.sign,
            parent_id=line.parent_id or None,
            order=line.order,
            linked_account_id=line.linked_account_id,
            is_vertical_analysis_base=line.is_vertical_analysis_base,
            monthly_data=data,
            children=kids,
        )

    under_orphans: set[str] = set()
    pending = list(orphans)
    while pending:
        i = pending.pop()
        if i not in under_orphans:
            under_orphans.add(i)
            pending.extend(children_of.get(i, ()))
    unreachable = [i for i in store if i not in built and i not in under_orphans]
    if unreachable:
        logger.warning(
            "Skipping %d report lines caught in a parent cycle: %s",
            len(unreachable),
            ", ".join(sorted(unreachable)),
        )

    return tuple(built[i] for i in children_of[None])


def iter_lines(roots: Iterable[FinancialAccount]) -> Iterator[tuple[int, FinancialAccount]]:
    """``(depth, node)`` pairs in display order."""

    stack: list[tuple[int, FinancialAccount]] = [(0, r) for r in reversed(tuple(roots))]
    while stack:
        depth, node = stack.pop()
        yield depth, node
        stack.extend((depth + 1, c) for c in reversed(node.children))


def entries_to_balances(
    entries: Iterable[AccountingEntry],
    cost_center_ids: Collection[str] | None = None,
) -> list[MonthlyBalanceEntry]:
    """Collapse accounting entries into signed balances (DRE view).

    Debits count negative, credits positive; entries are summed per
    (company, account, year, month). ``cost_center_ids`` restricts the input.
    """

    wanted = set(cost_center_ids) if cost_center_ids is not None else None
    sums: dict[tuple[str, str, str, int, str], float] = defaultdict(float)
    codes: dict[tuple[str, str, str, int, str], str] = {}
    for e in entries:
        if wanted is not None and e.cost_center_id not in wanted:
            continue
        key = (e.tenant_id, e.company_id, e.account_id, e.year, e.month)
        sums[key] += -e.value if e.natureza == "D" else e.value
        codes.setdefault(key, e.account_code or "")
    out: list[MonthlyBalanceEntry] = []
    for key, value in sums.items():
        tenant_id, company_id, account_id, year, month = key
        out.append(
            MonthlyBalanceEntry(
                tenant_id=tenant_id,
                company_id=company_id,
                account_code=codes[key],
                year=year,
                month=month,
                value=value,
                account_id=account_id,
            )
        )
    return out


__all__ = ["build_financial_report", "entries_to_balances", "iter_lines"]
