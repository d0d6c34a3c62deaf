# ruff: noqa: I001
"""CLI for the ``financial_reporting`` package.

Command handlers (``cmd_*``) return a process exit code and print
``Error: ...`` to stderr instead of raising; the Typer commands below are thin
wrappers around them. ``DATABASE_URL`` and the ``FR_*`` import settings are
read from the environment after loading a local ``.env``.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError
from typer.models import OptionInfo

from .errors import FinancialReportingError, ImportAborted
from .logging_setup import configure_logging


# ---- Small helpers ------------------------------------------------------------


def _parse_key_values(pairs: Sequence[str], *, what: str) -> dict[str, str]:
    out: dict[str, str] = {}
    for raw in pairs:
        key, sep, value = raw.partition("=")
        if not sep or not key.strip() or not value.strip():
            raise ValueError(f"invalid {what} {raw!r}; expected KEY=VALUE")
        out[key.strip()] = value.strip()
    return out


def parse_period_option(raw: str):  # -> PeriodColumn
    """Parse ``YEAR:MONTH=COLUMN`` (e.g. ``2024:JANEIRO=Jan/24``)."""

    from .api import PeriodColumn

    target, sep, column = raw.partition("=")
    year_s, sep2, month = target.partition(":")
    if not sep or not sep2 or not column.strip():
        raise ValueError(f"invalid period {raw!r}; expected YEAR:MONTH=COLUMN")
    try:
        year = int(year_s.strip())
    except ValueError as exc:
        raise ValueError(f"invalid year in period {raw!r}") from exc
    return PeriodColumn(year=year, month=month.strip(), column=column.strip())


def _print_summary(stats) -> None:  # type: ignore[no-untyped-def]
    for label, value in stats.summary_rows():
        print(f"{label}\t{value}")


def _write_audit_log(  # type: ignore[no-untyped-def]
    path: Path | None, report, *, title: str, source_name: str | None
) -> None:
    if path is None:
        return
    from .audit import export_audit_log

    path.write_bytes(
        export_audit_log(report.audit_entries, report.stats, title=title, source_name=source_name)
    )
    print(f"Audit log written to {path}", file=sys.stderr)


def _fmt_pct(value: float | None) -> str:
    return "-" if value is None else f"{value:.1f}%"


# ---- Command handlers ---------------------------------------------------------


def cmd_import_entries(
    file: Path,
    *,
    tenant_id: str,
    mapping: Sequence[str] = (),
    audit_log: Path | None = None,
    database_url: str | None = None,
) -> int:
    """Import accounting entries from ``file``; print the summary counters."""

    from .api import import_entries_from_file
    from .config import ImportSettings

    try:
        overrides = _parse_key_values(mapping, what="mapping")
        sheet, report = import_entries_from_file(
            file,
            tenant_id=tenant_id,
            mapping=overrides,
            database_url=database_url,
            settings=ImportSettings.from_env(),
        )
    except ImportAborted as e:
        print(
            f"Error: import aborted at batch {e.batch_number}; "
            f"{e.persisted_rows} rows were saved before the failure: {e.__cause__ or e}",
            file=sys.stderr,
        )
        return 1
    except (FinancialReportingError, SQLAlchemyError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_summary(report.stats)
    _write_audit_log(
        audit_log, report, title="Importação de Lançamentos", source_name=sheet.source_name
    )
    return 0


def cmd_import_balances(
    file: Path,
    *,
    tenant_id: str,
    company_id: str,
    account_column: str,
    periods: Sequence[str],
    audit_log: Path | None = None,
    database_url: str | None = None,
) -> int:
    from .api import import_balances_from_file
    from .config import ImportSettings

    try:
        period_columns = [parse_period_option(p) for p in periods]
        sheet, report = import_balances_from_file(
            file,
            tenant_id=tenant_id,
            company_id=company_id,
            account_column=account_column,
            periods=period_columns,
            database_url=database_url,
            settings=ImportSettings.from_env(),
        )
    except ImportAborted as e:
        print(
            f"Error: import aborted at batch {e.batch_number}; "
            f"{e.persisted_rows} values were saved before the failure: {e.__cause__ or e}",
            file=sys.stderr,
        )
        return 1
    except (FinancialReportingError, SQLAlchemyError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_summary(report.stats)
    for code, count in report.stats.sorted_account_errors()[:20]:
        print(f"conta não encontrada\t{code}\t{count}")
    _write_audit_log(
        audit_log, report, title="Importação de Saldos Mensais", source_name=sheet.source_name
    )
    return 0


def cmd_report(
    *,
    tenant_id: str,
    years: Sequence[int],
    months: Sequence[str] = (),
    role: str | None = None,
    template_id: str | None = None,
    company_ids: Sequence[str] = (),
    source: str = "balances",
    hide_empty: bool = False,
    database_url: str | None = None,
) -> int:
    """Print the aggregated report as a tab-separated table.

    One row per line (indented by depth) with value, AV% and AH% per
    displayed period plus a TOTAL column.
    """

    from .api import report_from_database

    if source not in ("balances", "entries"):
        print("Error: --source must be 'balances' or 'entries'", file=sys.stderr)
        return 1
    try:
        report = report_from_database(
            tenant_id=tenant_id,
            years=years,
            months=months or None,
            role=role,
            template_id=template_id,
            company_ids=company_ids or None,
            source=source,  # type: ignore[arg-type]
            hide_empty=hide_empty,
            database_url=database_url,
        )
    except (FinancialReportingError, SQLAlchemyError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    header = ["Linha"]
    for p in report.periods:
        header += [p.label(), "AV%", "AH%"]
    header += ["TOTAL", "AV%"]
    print("\t".join(header))
    for analysis in report.analysis.values():
        row = ["  " * analysis.depth + analysis.name]
        for cell in analysis.cells:
            row += [f"{cell.value:.2f}", _fmt_pct(cell.vertical), _fmt_pct(cell.horizontal)]
        row += [f"{analysis.total.value:.2f}", _fmt_pct(analysis.total.vertical)]
        print("\t".join(row))
    return 0


def cmd_delete_period(
    *,
    kind: str,
    tenant_id: str,
    year: int,
    month: str,
    company_ids: Sequence[str] = (),
    database_url: str | None = None,
) -> int:
    from db.client import session_scope
    from .persistence import delete_period_entries

    try:
        with session_scope(database_url=database_url) as session:
            count = delete_period_entries(
                session,
                kind=kind,  # type: ignore[arg-type]
                tenant_id=tenant_id,
                year=year,
                month=month,
                company_ids=company_ids or None,
            )
    except (FinancialReportingError, SQLAlchemyError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Deleted {count} {kind}")
    return 0


# ---- Typer-based console interface --------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import accounting spreadsheets and build financial reports. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)


@app.command("import-entries")
def import_entries_cmd(
    file: Annotated[Path, FILE_OPTION],
    tenant_id: Annotated[str, TENANT_OPTION],
    *,
    mapping: list[str] | None = typer.Option(
        None,
        "--map",
        help="Field mapping KEY=COLUMN (repeatable); unmapped keys are guessed from headers.",
    ),
    audit_log: Path | None = typer.Option(
        None, help="Write the ;-separated audit log to this path."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Import accounting entries (lançamentos)."""

    raise typer.Exit(
        cmd_import_entries(
            file,
            tenant_id=tenant_id,
            mapping=mapping or (),
            audit_log=audit_log,
            database_url=database_url,
        )
    )


@app.command("import-balances")
def import_balances_cmd(
    file: Annotated[Path, FILE_OPTION],
    tenant_id: Annotated[str, TENANT_OPTION],
    company_id: Annotated[str, COMPANY_OPTION],
    account_column: Annotated[str, ACCOUNT_COLUMN_OPTION],
    period: Annotated[list[str], PERIOD_OPTION],
    *,
    audit_log: Path | None = typer.Option(
        None, help="Write the ;-separated audit log to this path."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Import monthly balances (saldos mensais) for one company."""

    raise typer.Exit(
        cmd_import_balances(
            file,
            tenant_id=tenant_id,
            company_id=company_id,
            account_column=account_column,
            periods=period,
            audit_log=audit_log,
            database_url=database_url,
        )
    )


@app.command("report")
def report_cmd(
    tenant_id: Annotated[str, TENANT_OPTION],
    year: Annotated[list[int], YEAR_OPTION],
    *,
    month: list[str] | None = typer.Option(
        None, help="Month name (repeatable); defaults to the whole year."
    ),
    role: str | None = typer.Option(
        None, help="Viewer role; Analista and Leitor stop at the last closed month."
    ),
    template_id: str | None = typer.Option(None, help="Report template to load."),
    company_id: list[str] | None = typer.Option(
        None, help="Restrict to these companies (repeatable)."
    ),
    source: str = typer.Option(
        "balances", help="'balances' (monthly balances) or 'entries' (DRE from entries)."
    ),
    hide_empty: bool = typer.Option(False, help="Drop lines without any value."),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Print the aggregated report with vertical/horizontal analysis."""

    raise typer.Exit(
        cmd_report(
            tenant_id=tenant_id,
            years=year,
            months=month or (),
            role=role,
            template_id=template_id,
            company_ids=company_id or (),
            source=source,
            hide_empty=hide_empty,
            database_url=database_url,
        )
    )


@app.command("delete-period")
def delete_period_cmd(
    kind: Annotated[str, KIND_OPTION],
    tenant_id: Annotated[str, TENANT_OPTION],
    year: Annotated[int, typer.Option(..., "--year", help="Fiscal year.")],
    month: Annotated[str, typer.Option(..., "--month", help="Month name, e.g. JANEIRO.")],
    *,
    company_id: list[str] | None = typer.Option(
        None, help="Restrict to these companies (repeatable)."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Delete one period's entries or balances."""

    raise typer.Exit(
        cmd_delete_period(
            kind=kind,
            tenant_id=tenant_id,
            year=year,
            month=month,
            company_ids=company_id or (),
            database_url=database_url,
        )
    )


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults) for the required options shared across commands.
FILE_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--file",
    help="Spreadsheet to import (.xlsx, .xlsm, .csv or .txt)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports a readable error
)
TENANT_OPTION: OptionInfo = typer.Option(..., "--tenant-id", help="Tenant that owns the data.")
COMPANY_OPTION: OptionInfo = typer.Option(
    ..., "--company-id", help="Company the balances belong to."
)
ACCOUNT_COLUMN_OPTION: OptionInfo = typer.Option(
    ..., "--account-column", help="Header of the account code column."
)
PERIOD_OPTION: OptionInfo = typer.Option(
    ..., "--period", help="YEAR:MONTH=COLUMN (repeatable), e.g. 2024:JANEIRO=Jan/24"
)
YEAR_OPTION: OptionInfo = typer.Option(..., "--year", help="Fiscal year (repeatable).")
KIND_OPTION: OptionInfo = typer.Option(..., "--kind", help="'entries' or 'balances'.")


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Load ``.env`` from the working directory and configure logging.

    Variables already set in the environment win over the file.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
