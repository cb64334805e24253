# ruff: noqa: I001
"""CLI for the ``schema_sync`` package.

Typer-based console interface over :mod:`schema_sync.api`. Environment
variables (notably ``DATABASE_URL``) are loaded from a local ``.env`` using
``python-dotenv`` before any command runs; ``--database-url`` overrides the
environment.

Exit codes: ``sync``, ``drop-column`` and ``create-group`` exit 1 on any
unhandled error after logging it. ``execute-group`` reports migration
outcomes only through the log and exits 0 once the executor returns.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.client import get_engine, session_factory

from .logging_setup import LogCategory, configure_logging, get_logger, log_event
from .models import Operation

logger = get_logger("schema_sync.cli")
console = Console()


# ---- Small module-level helpers used by CLI commands -------------------------


def _engine(database_url: str | None) -> Engine:
    return get_engine(database_url=database_url)


def _sessions(database_url: str | None) -> sessionmaker[Session]:
    return session_factory(database_url=database_url)


def read_statements(path: Path) -> list[str]:
    """Split a SQL file into statements on ``;`` outside single-quoted literals."""

    text = path.read_text(encoding="utf-8")
    statements: list[str] = []
    buf: list[str] = []
    in_quote = False
    for ch in text:
        if ch == "'":
            in_quote = not in_quote
        if ch == ";" and not in_quote:
            statements.append("".join(buf))
            buf = []
            continue
        buf.append(ch)
    statements.append("".join(buf))
    return [s.strip() for s in statements if s.strip()]


def _fail(operation: Operation, message: str, exc: Exception) -> typer.Exit:
    log_event(logger, logging.ERROR, LogCategory.DATABASE, operation, f"{message}: {exc}")
    return typer.Exit(1)


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Synchronize the finance database schema with the declared entities and "
        "manage the migration ledger. Loads DATABASE_URL from a local .env."
    ),
)

DATABASE_URL_OPTION = typer.Option(None, help="Override DATABASE_URL (falls back to env var).")


@app.callback()
def _root(
    log_level: Annotated[
        str | None, typer.Option(help="Log level (DEBUG, SUCCESS, INFO, ...).")
    ] = None,
) -> None:
    """Load ``.env`` (without overriding set variables) and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


@app.command("sync")
def sync_cmd(
    database_url: str | None = DATABASE_URL_OPTION,
    strict: Annotated[
        bool, typer.Option(help="Fail when a declared relationship does not validate.")
    ] = False,
) -> None:
    """Create/alter tables for every registered entity, then check relationships."""

    from .api import run_sync
    from .ledger import MigrationLedger

    try:
        ledger = MigrationLedger(_sessions(database_url))
        report = run_sync(_engine(database_url), ledger=ledger, strict=strict)
    except Exception as e:
        raise _fail(Operation.UPDATE, "database synchronization failed", e) from e

    table = Table(title="Schema sync")
    table.add_column("table")
    table.add_column("outcome")
    table.add_column("added")
    table.add_column("updated")
    for result in report.tables:
        outcome = "created" if result.created else ("updated" if result.changed else "unchanged")
        table.add_row(result.table, outcome, ", ".join(result.added), ", ".join(result.updated))
    console.print(table)
    for issue in report.relationship_issues:
        console.print(f"[yellow]relationship:[/yellow] {issue}")


@app.command("execute-group")
def execute_group_cmd(
    group_id: Annotated[int, typer.Argument(help="migration_group id")],
    operation: Annotated[str, typer.Argument(help="apply or rollback")],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Apply (up) or roll back (down) a migration group in one transaction."""

    from .executor import MigrationExecutor

    MigrationExecutor(_sessions(database_url)).execute_migration_group(group_id, operation)


@app.command("create-group")
def create_group_cmd(
    up_file: Annotated[Path, typer.Option(help="SQL file with the forward statements.")],
    down_file: Annotated[Path, typer.Option(help="SQL file with the reverse statements.")],
    name: Annotated[str | None, typer.Option(help="Unique group name.")] = None,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Record a migration group from two SQL files and print its id."""

    from .ledger import MigrationLedger

    try:
        up = read_statements(up_file)
        down = read_statements(down_file)
        group_id = MigrationLedger(_sessions(database_url)).create_migration_group(up, down, name)
    except (OSError, ValueError) as e:
        raise _fail(Operation.CREATE, "could not build migration group", e) from e
    if group_id is None:
        raise typer.Exit(1)
    console.print(f"migration group {group_id}: {len(up)} up / {len(down)} down statements")


@app.command("drop-column")
def drop_column_cmd(
    table: Annotated[str, typer.Argument(help="Table name")],
    column: Annotated[str, typer.Argument(help="Column to drop")],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Drop one column and record the DELETE migration."""

    from .api import drop_column
    from .ledger import MigrationLedger

    try:
        ledger = MigrationLedger(_sessions(database_url))
        statement = drop_column(_engine(database_url), table, column, ledger=ledger)
    except Exception as e:
        raise _fail(Operation.DELETE, f"could not drop {table}.{column}", e) from e
    console.print(statement)


@app.command("list-groups")
def list_groups_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """Show recorded migration groups."""

    from .ledger import MigrationLedger

    table = Table(title="migration_group")
    for col in ("id", "name", "up", "down", "created"):
        table.add_column(col)
    for g in MigrationLedger(_sessions(database_url)).list_groups():
        table.add_row(str(g.id), g.name, str(len(g.up)), str(len(g.down)), str(g.created_at or ""))
    console.print(table)


@app.command("list-migrations")
def list_migrations_cmd(
    table_name: Annotated[str | None, typer.Option("--table", help="Filter by table.")] = None,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Show recorded column-level migrations."""

    from .ledger import MigrationLedger

    table = Table(title="migration")
    for col in ("id", "name", "operation", "up", "group"):
        table.add_column(col)
    for m in MigrationLedger(_sessions(database_url)).list_migrations(table_name):
        table.add_row(str(m.id), m.name, m.operation, m.up, str(m.migration_group_id or ""))
    console.print(table)


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    app()
