"""Import tunables, read from the environment by the CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_ENTRY_BATCH_SIZE = 5000
DEFAULT_BALANCE_BATCH_SIZE = 3000
NEAR_ZERO_THRESHOLD = 1e-4


def _positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class ImportSettings:
    """Batch sizes and thresholds for one import run.

    Attributes
    ----------
    entry_batch_size:
        Rows per batch for accounting-entry imports.
    balance_batch_size:
        Rows per batch for monthly-balance imports.
    near_zero_threshold:
        Values with ``abs(value) < threshold`` are skipped, not stored.
    audit_successes:
        Also record a ``success`` audit entry for every persisted row.
    """

    entry_batch_size: int = DEFAULT_ENTRY_BATCH_SIZE
    balance_batch_size: int = DEFAULT_BALANCE_BATCH_SIZE
    near_zero_threshold: float = NEAR_ZERO_THRESHOLD
    audit_successes: bool = False

    def __post_init__(self) -> None:
        if self.entry_batch_size <= 0 or self.balance_batch_size <= 0:
            raise ValueError("batch sizes must be positive")
        if self.near_zero_threshold < 0:
            raise ValueError("near_zero_threshold must be >= 0")

    @classmethod
    def from_env(cls) -> ImportSettings:
        """Build settings from ``FR_*`` variables; bad values keep the defaults."""

        return cls(
            entry_batch_size=_positive_int_env("FR_ENTRY_BATCH_SIZE", DEFAULT_ENTRY_BATCH_SIZE),
            balance_batch_size=_positive_int_env(
                "FR_BALANCE_BATCH_SIZE", DEFAULT_BALANCE_BATCH_SIZE
            ),
            audit_successes=_bool_env("FR_AUDIT_SUCCESSES", False),
        )


__all__ = [
    "ImportSettings",
    "DEFAULT_ENTRY_BATCH_SIZE",
    "DEFAULT_BALANCE_BATCH_SIZE",
    "NEAR_ZERO_THRESHOLD",
]
