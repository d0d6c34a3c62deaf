from __future__ import annotations

from dataclasses import dataclass

import pytest

from financial_reporting.audit import AuditTrail
from financial_reporting.batching import BatchImporter, chunk_bounds, total_chunks_for
from financial_reporting.errors import ImportAborted
from financial_reporting.models import AuditStatus, ImportStats


@dataclass(frozen=True)
class _Row:
    line_number: int
    value: int


def _rows(n: int) -> list[_Row]:
    return [_Row(line_number=i + 2, value=i) for i in range(n)]


def _transform(stats: ImportStats):  # type: ignore[no-untyped-def]
    def transform(row: _Row) -> list[int]:
        if row.value % 5 == 4:
            raise ValueError(f"bad row {row.value}")
        if row.value % 3 == 0:
            stats.zero_values += 1
            return []
        stats.success += 1
        return [row.value]

    return transform


def test_chunk_math() -> None:
    assert total_chunks_for(0, 10) == 0
    assert total_chunks_for(10, 10) == 1
    assert total_chunks_for(11, 10) == 2
    assert chunk_bounds(1, total=11, chunk_size=10) == (10, 11)
    with pytest.raises(ValueError):
        total_chunks_for(5, 0)


def test_batches_are_sequential_and_persist_only_produced_items() -> None:
    stats = ImportStats(total_rows=12)
    audit = AuditTrail()
    persisted: list[list[int]] = []
    importer: BatchImporter[_Row, int] = BatchImporter(
        transform=_transform(stats),
        persist=persisted.append,
        batch_size=5,
        stats=stats,
        audit=audit,
    )
    progress = []
    report = importer.run(_rows(12), progress.append)

    assert [p.batch_number for p in progress] == [1, 2, 3]
    assert [p.processed_rows for p in progress] == [5, 10, 12]
    assert progress[-1].percent == 100
    assert all(p.total_batches == 3 for p in progress)
    # Values 0..11: multiples of 3 skipped, 4 and 9 raise.
    assert persisted == [[1, 2], [5, 7, 8], [10, 11]]
    assert report.persisted_rows == 7
    assert report.batches == 3
    assert report.status == "completed"
    assert stats.success + stats.zero_values + stats.invalid_data == stats.total_rows


def test_transform_exception_is_confined_to_its_row() -> None:
    stats = ImportStats(total_rows=5)
    audit = AuditTrail()
    importer: BatchImporter[_Row, int] = BatchImporter(
        transform=_transform(stats),
        persist=lambda items: None,
        batch_size=10,
        stats=stats,
        audit=audit,
    )
    report = importer.run(_rows(5))
    assert stats.invalid_data == 1
    [error] = [e for e in report.audit_entries if e.status is AuditStatus.ERROR]
    assert error.line == 6
    assert error.reason == "Erro (bad row 4)"


def test_batch_without_items_never_calls_persist() -> None:
    calls: list[list[int]] = []
    stats = ImportStats(total_rows=3)
    importer: BatchImporter[_Row, int] = BatchImporter(
        transform=lambda row: [],
        persist=calls.append,
        batch_size=1,
        stats=stats,
        audit=AuditTrail(),
    )
    report = importer.run(_rows(3))
    assert calls == []
    assert report.batches == 3


def test_persist_failure_aborts_and_keeps_earlier_batches() -> None:
    stats = ImportStats(total_rows=10)
    saved: list[list[int]] = []

    def persist(items: list[int]) -> None:
        if len(saved) == 1:
            raise RuntimeError("connection lost")
        saved.append(items)

    importer: BatchImporter[_Row, int] = BatchImporter(
        transform=lambda row: [row.value],
        persist=persist,
        batch_size=4,
        stats=stats,
        audit=AuditTrail(),
    )
    with pytest.raises(ImportAborted) as excinfo:
        importer.run(_rows(10))

    err = excinfo.value
    assert err.batch_number == 2
    assert err.persisted_rows == 4
    assert saved == [[0, 1, 2, 3]]
    assert isinstance(err.__cause__, RuntimeError)
    assert err.stats is stats


def test_progress_snapshots_are_independent_copies() -> None:
    stats = ImportStats(total_rows=4)
    importer: BatchImporter[_Row, int] = BatchImporter(
        transform=_transform(stats),
        persist=lambda items: None,
        batch_size=2,
        stats=stats,
        audit=AuditTrail(),
    )
    snapshots = [p.stats_snapshot for p in importer.iter_run(_rows(4))]
    assert snapshots[0].success == 1
    assert snapshots[1].success == 2
    assert snapshots[0] is not stats


def test_stopping_iteration_stops_the_import() -> None:
    saved: list[list[int]] = []
    importer: BatchImporter[_Row, int] = BatchImporter(
        transform=lambda row: [row.value],
        persist=saved.append,
        batch_size=2,
        stats=ImportStats(total_rows=6),
        audit=AuditTrail(),
    )
    runner = importer.iter_run(_rows(6))
    next(runner)
    runner.close()
    assert saved == [[0, 1]]


def test_merge_batch_stats_receives_persist_results() -> None:
    merged: list[object] = []
    importer: BatchImporter[_Row, int] = BatchImporter(
        transform=lambda row: [row.value],
        persist=lambda items: {"n": len(items)},
        batch_size=3,
        stats=ImportStats(total_rows=4),
        audit=AuditTrail(),
        merge_batch_stats=merged.append,
    )
    importer.run(_rows(4))
    assert merged == [{"n": 3}, {"n": 1}]


def test_failing_middle_row_scenario() -> None:
    stats = ImportStats(total_rows=3)
    received: list[list[int]] = []

    def transform(row: _Row) -> list[int]:
        if row.value == 1:
            raise ValueError("boom")
        stats.success += 1
        return [row.value]

    importer: BatchImporter[_Row, int] = BatchImporter(
        transform=transform,
        persist=received.append,
        batch_size=3,
        stats=stats,
        audit=AuditTrail(),
    )
    importer.run(_rows(3))
    assert (stats.success, stats.invalid_data) == (2, 1)
    assert received == [[0, 2]]
