"""Bring one table into structural agreement with its entity descriptor.

``TableSynchronizer.sync`` creates a missing table in one statement, or, for
an existing table, adds missing columns and re-asserts columns whose default
(or on-update behavior) drifted. Columns are never dropped by a sync pass;
``drop_column`` is the explicit, separately triggered removal path. Enum
value-set drift is not diffed.

Every added or dropped column is recorded in the migration ledger when one is
configured. Statements run one at a time on the given connection and errors
propagate, except for the best-effort unique/index statements.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from sqlalchemy.exc import DBAPIError

from . import ddl
from .introspection import SchemaIntrospector
from .logging_setup import SUCCESS, LogCategory, get_logger, log_event
from .models import (
    ID_COLUMN,
    ColumnInfo,
    ColumnSpec,
    ColumnType,
    EntityDescriptor,
    Operation,
    TableSyncResult,
    check_identifier,
)

logger = get_logger("schema_sync.tables")

IDENTITY_COLUMN = ColumnSpec(name=ID_COLUMN, type=ColumnType.INTEGER)


class Executes(Protocol):
    def exec_driver_sql(self, statement: str): ...


class Introspects(Protocol):
    def table_exists(self, name: str) -> bool: ...

    def describe_columns(self, name: str) -> dict[str, ColumnInfo]: ...

    def foreign_key_columns(self, name: str) -> set[str]: ...


class Records(Protocol):
    def save_migration(
        self,
        table_name: str,
        column_name: str,
        operation: Operation | str,
        up: str,
        down: str,
        migration_group_id: int | None = None,
    ) -> str | None: ...


def with_identity(columns: Sequence[ColumnSpec]) -> list[ColumnSpec]:
    """Return ``columns`` with the synthesized ``id`` first and exactly once."""

    return [IDENTITY_COLUMN, *(c for c in columns if c.name != ID_COLUMN)]


class TableSynchronizer:
    def __init__(
        self,
        connection: Executes,
        *,
        introspector: Introspects | None = None,
        ledger: Records | None = None,
    ) -> None:
        self._conn = connection
        self._introspector = introspector or SchemaIntrospector(connection)  # type: ignore[arg-type]
        self._ledger = ledger

    def sync(self, descriptor: EntityDescriptor) -> TableSyncResult:
        table = check_identifier(descriptor.table_name, what="table")
        columns = with_identity(descriptor.columns)
        result = TableSyncResult(table=table)

        log_event(
            logger, logging.DEBUG, LogCategory.DATABASE, Operation.SEARCH, f"checking table '{table}'"
        )

        if not self._introspector.table_exists(table):
            self._create_table(table, columns, result)
        else:
            self._update_table(table, columns, result)
        return result

    def drop_column(self, table: str, column: str) -> str:
        """Drop ``column`` from ``table`` and record a DELETE migration.

        The down statement re-adds the column from its live catalog type and
        default. Raises ``ValueError`` for the identity column, unknown
        columns and foreign-key-bearing columns.
        """

        check_identifier(table, what="table")
        check_identifier(column, what="column")
        if column == ID_COLUMN:
            raise ValueError("the identity column cannot be dropped")
        info = self._introspector.describe_columns(table).get(column)
        if info is None:
            raise ValueError(f"column {table}.{column} does not exist")
        if column in self._introspector.foreign_key_columns(table):
            raise ValueError(f"column {table}.{column} carries a foreign key")

        statement = ddl.drop_column(table, column)
        self._conn.exec_driver_sql(statement)
        log_event(
            logger,
            SUCCESS,
            LogCategory.DATABASE,
            Operation.DELETE,
            "column dropped",
            table=table,
            column=column,
        )
        self._record(table, column, Operation.DELETE, statement, ddl.restore_column(table, info))
        return statement

    # ---- Internals --------------------------------------------------------------

    def _create_table(self, table: str, columns: list[ColumnSpec], result: TableSyncResult) -> None:
        statement = ddl.create_table(table, columns)
        self._execute(statement, result)
        result.created = True
        log_event(
            logger, SUCCESS, LogCategory.DATABASE, Operation.CREATE, "table created", table=table
        )

    def _update_table(self, table: str, columns: list[ColumnSpec], result: TableSyncResult) -> None:
        existing = self._introspector.describe_columns(table)

        for col in columns:
            if col.name == ID_COLUMN:
                continue
            self._apply_constraints(table, col, result)

            info = existing.get(col.name)
            if info is None:
                statement = ddl.add_column(table, col)
                self._execute(statement, result)
                result.added.append(col.name)
                down = ddl.drop_column(table, col.name)
                self._record(table, col.name, Operation.CREATE, statement, down)
                continue

            if not ddl.defaults_match(info, col) or not ddl.on_update_matches(info, col):
                self._execute(ddl.modify_column(table, col), result)
                result.updated.append(col.name)

        if not result.changed:
            log_event(
                logger,
                logging.DEBUG,
                LogCategory.DATABASE,
                Operation.SEARCH,
                f"no schema changes for table '{table}'",
            )
            return
        log_event(
            logger,
            SUCCESS,
            LogCategory.DATABASE,
            Operation.UPDATE,
            "table updated",
            table=table,
            added=",".join(result.added) or "-",
            updated=",".join(result.updated) or "-",
        )

    def _apply_constraints(self, table: str, col: ColumnSpec, result: TableSyncResult) -> None:
        if col.unique:
            statement = ddl.add_unique(table, col.name)
        elif col.indexed:
            statement = ddl.create_index(table, col.name)
        else:
            return
        # Re-running is left to the database: a rejection (duplicate key name)
        # is expected on every pass after the first.
        try:
            self._conn.exec_driver_sql(statement)
        except DBAPIError as exc:
            log_event(
                logger,
                logging.DEBUG,
                LogCategory.DATABASE,
                Operation.UPDATE,
                "constraint statement rejected",
                table=table,
                column=col.name,
                error=exc.orig,
            )
            return
        result.constraints.append(statement)

    def _execute(self, statement: str, result: TableSyncResult) -> None:
        self._conn.exec_driver_sql(statement)
        result.statements.append(statement)

    def _record(self, table: str, column: str, op: Operation, up: str, down: str) -> None:
        if self._ledger is None:
            return
        self._ledger.save_migration(table, column, op, up, down)


__all__ = [
    "IDENTITY_COLUMN",
    "TableSynchronizer",
    "with_identity",
]
