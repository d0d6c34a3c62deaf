"""DB helpers for tests: bootstrap a temporary SQLite DB and seed a tenant."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from db.models.finance import (
    FrAccountMapping,
    FrChartAccount,
    FrCompany,
    FrCostCenter,
    FrReportLine,
    FrTenant,
)


def bootstrap_sqlite_db(db_file: Path) -> str:
    """Create a SQLite database file, initialize the schema and return the URL.

    A file-backed database lets every ``session_scope`` (one per batch) see
    the same state; in-memory SQLite is per-connection.
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine)
    return url


@dataclass(slots=True)
class SeededTenant:
    """Ids of the registry rows created by :func:`seed_tenant`."""

    tenant_id: str
    companies: dict[str, str] = field(default_factory=dict)  # cnpj/erp -> id
    accounts: dict[str, str] = field(default_factory=dict)  # code -> id
    cost_centers: dict[str, str] = field(default_factory=dict)  # code -> id


def seed_tenant(
    *,
    database_url: str,
    tenant_id: str = "tenant-1",
    companies: Iterable[tuple[str, str | None, str | None]] = (),
    accounts: Iterable[tuple[str, str]] = (),
    cost_centers: Iterable[tuple[str, str]] = (),
    last_closed: tuple[int, str] | None = None,
) -> SeededTenant:
    """Insert a tenant and its registries.

    ``companies`` are ``(name, cnpj, erp_code)``; ``accounts`` and
    ``cost_centers`` are ``(code, name)``.
    """

    seeded = SeededTenant(tenant_id=tenant_id)
    with session_scope(database_url=database_url) as session:
        session.add(
            FrTenant(
                id=tenant_id,
                name=f"Tenant {tenant_id}",
                last_closed_year=last_closed[0] if last_closed else None,
                last_closed_month=last_closed[1] if last_closed else None,
            )
        )
        session.flush()
        for name, cnpj, erp in companies:
            company = FrCompany(tenant_id=tenant_id, name=name, cnpj=cnpj, erp_code=erp)
            session.add(company)
            session.flush()
            seeded.companies[cnpj or erp or name] = company.id
        for code, name in accounts:
            account = FrChartAccount(tenant_id=tenant_id, code=code, name=name)
            session.add(account)
            session.flush()
            seeded.accounts[code] = account.id
        for code, name in cost_centers:
            cc = FrCostCenter(tenant_id=tenant_id, code=code, name=name)
            session.add(cc)
            session.flush()
            seeded.cost_centers[code] = cc.id
    return seeded


def seed_report_structure(
    *,
    database_url: str,
    tenant_id: str,
    lines: Iterable[Mapping[str, object]],
    account_mapping: Mapping[str, str],
) -> None:
    """Insert report lines (dicts of ``FrReportLine`` columns) and the mapping."""

    with session_scope(database_url=database_url) as session:
        for line in lines:
            session.add(FrReportLine(tenant_id=tenant_id, **line))
        for account_id, linked in account_mapping.items():
            session.add(
                FrAccountMapping(
                    tenant_id=tenant_id, account_id=account_id, linked_account_id=linked
                )
            )
