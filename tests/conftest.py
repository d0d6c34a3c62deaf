"""Pytest configuration for test isolation.

The ``db`` client keeps a process-wide engine bound to the first URL it sees.
Every test that bootstraps its own SQLite file needs a fresh engine, so the
shared one is disposed before and after each test. Import tunables read from
``FR_*`` variables are cleared for the same reason.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from db.client import dispose_engine


@pytest.fixture(autouse=True)
def _isolate_db_engine(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    for name in ("FR_ENTRY_BATCH_SIZE", "FR_BALANCE_BATCH_SIZE", "FR_AUDIT_SUCCESSES"):
        monkeypatch.delenv(name, raising=False)
    dispose_engine()
    yield
    dispose_engine()
