"""Chunked import driver.

Rows are processed in fixed-size batches, strictly one after another:

1. every row of the batch goes through ``transform`` (which returns the
   items to persist, possibly none, and records its own stats/audit);
2. if the batch produced anything, ``persist`` is called once with exactly
   those items and its result (if any) is merged into the running stats;
3. the driver yields an :class:`ImportProgress`. That ``yield`` is the only
   suspension point; a caller that stops iterating simply stops the import.

A transform exception is confined to its row: it counts as invalid data and
is written to the audit trail with the exception message. A ``persist``
exception ends the run with :class:`~financial_reporting.errors.ImportAborted`;
batches persisted before it stay persisted.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from .audit import AuditTrail
from .errors import ImportAborted
from .logging_setup import get_logger
from .models import AuditEntry

logger = get_logger("financial_reporting.batching")


def total_chunks_for(total: int, chunk_size: int) -> int:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return math.ceil(total / chunk_size) if total > 0 else 0


def chunk_bounds(chunk_idx: int, *, total: int, chunk_size: int) -> tuple[int, int]:
    """``[base, end)`` slice bounds of chunk ``chunk_idx``."""

    base = chunk_idx * chunk_size
    end = min(base + chunk_size, total)
    return base, end


@dataclass(frozen=True, slots=True)
class ImportProgress:
    batch_number: int
    total_batches: int
    processed_rows: int
    total_rows: int
    stats_snapshot: Any

    @property
    def percent(self) -> int:
        if self.total_rows == 0:
            return 100
        return min(100, round(self.processed_rows * 100 / self.total_rows))


@dataclass(frozen=True, slots=True)
class ImportReport:
    stats: Any
    audit_entries: list[AuditEntry] = field(default_factory=list)
    persisted_rows: int = 0
    batches: int = 0
    status: Literal["completed"] = "completed"


def _line_of(row: object, position: int) -> int:
    line = getattr(row, "line_number", None)
    return line if isinstance(line, int) else position + 2


class BatchImporter[R, T]:
    """Drive ``transform``/``persist`` over ``rows`` in sequential batches.

    Parameters
    ----------
    transform:
        ``row -> sequence of items to persist``. Records its own stats and
        audit entries for rows it skips or rejects.
    persist:
        Called once per batch that produced items. May return batch-level
        stats, handed to ``merge_batch_stats``.
    batch_size:
        Rows per batch.
    stats, audit:
        Accumulators owned by this run.
    merge_batch_stats:
        Optional ``result -> None`` folding a ``persist`` result into ``stats``.
    failed_row_weight:
        How many counted values a row stands for when its transform raises
        (the monthly-balance import counts once per period column).
    """

    def __init__(
        self,
        *,
        transform: Callable[[R], Sequence[T]],
        persist: Callable[[list[T]], Any],
        batch_size: int,
        stats: Any,
        audit: AuditTrail,
        merge_batch_stats: Callable[[Any], None] | None = None,
        failed_row_weight: int = 1,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.transform = transform
        self.persist = persist
        self.batch_size = batch_size
        self.stats = stats
        self.audit = audit
        self.merge_batch_stats = merge_batch_stats
        self.failed_row_weight = failed_row_weight
        self.persisted_rows = 0
        self.batches_done = 0

    def _transform_batch(self, rows: Sequence[R], base: int) -> list[T]:
        out: list[T] = []
        for offset, row in enumerate(rows):
            try:
                out.extend(self.transform(row))
            except Exception as exc:  # row-level failure; the batch continues
                self.stats.invalid_data += self.failed_row_weight
                self.audit.error(_line_of(row, base + offset), f"Erro ({exc})")
        return out

    def iter_run(self, rows: Sequence[R]) -> Iterator[ImportProgress]:
        """Process ``rows``; yield progress after each batch."""

        total = len(rows)
        total_batches = total_chunks_for(total, self.batch_size)
        self.persisted_rows = 0
        self.batches_done = 0

        for chunk_idx in range(total_batches):
            base, end = chunk_bounds(chunk_idx, total=total, chunk_size=self.batch_size)
            batch_number = chunk_idx + 1
            items = self._transform_batch(rows[base:end], base)

            if items:
                try:
                    result = self.persist(items)
                except Exception as exc:
                    logger.error(
                        "Batch %d/%d failed to persist (%d rows persisted before it): %s",
                        batch_number,
                        total_batches,
                        self.persisted_rows,
                        exc,
                    )
                    raise ImportAborted(
                        f"batch {batch_number} of {total_batches} failed to persist after "
                        f"{self.persisted_rows} rows were saved: {exc}",
                        stats=self.stats,
                        audit=self.audit.entries,
                        persisted_rows=self.persisted_rows,
                        batch_number=batch_number,
                    ) from exc
                self.persisted_rows += len(items)
                if self.merge_batch_stats is not None:
                    self.merge_batch_stats(result)

            self.batches_done = batch_number
            logger.debug(
                "Batch %d/%d done: rows %d-%d, %d items persisted",
                batch_number,
                total_batches,
                base + 1,
                end,
                len(items),
            )
            yield ImportProgress(
                batch_number=batch_number,
                total_batches=total_batches,
                processed_rows=end,
                total_rows=total,
                stats_snapshot=self.stats.snapshot(),
            )

    def run(
        self,
        rows: Sequence[R],
        on_progress: Callable[[ImportProgress], None] | None = None,
    ) -> ImportReport:
        for progress in self.iter_run(rows):
            if on_progress is not None:
                on_progress(progress)
        return ImportReport(
            stats=self.stats,
            audit_entries=self.audit.entries,
            persisted_rows=self.persisted_rows,
            batches=self.batches_done,
        )


__all__ = [
    "ImportProgress",
    "ImportReport",
    "BatchImporter",
    "chunk_bounds",
    "total_chunks_for",
]
