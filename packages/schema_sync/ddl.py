"""MySQL DDL rendering and default-value comparison.

Every statement the synchronizers emit is built here so the exact shapes stay
in one place:

- ``CREATE TABLE t (<col defs>)``
- ``ALTER TABLE t ADD COLUMN <col def>`` / ``MODIFY COLUMN <col def>``
- ``ALTER TABLE t DROP COLUMN c``
- ``ALTER TABLE t ADD UNIQUE(c)`` / ``CREATE INDEX idx_c ON t(c)``

A column definition is ``name TYPE`` followed by exactly one default clause:
``DEFAULT 'literal'``, ``DEFAULT 1``/``DEFAULT 0`` for booleans,
``DEFAULT CURRENT_TIMESTAMP [ON UPDATE CURRENT_TIMESTAMP]`` or
``DEFAULT NULL``.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal, InvalidOperation

from .models import (
    CURRENT_TIMESTAMP,
    ID_COLUMN,
    ColumnInfo,
    ColumnSpec,
    ColumnType,
    DefaultValue,
)

ID_DEFINITION = f"{ID_COLUMN} INT AUTO_INCREMENT PRIMARY KEY"
ON_UPDATE_MARKER = "on update current_timestamp"


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _literal(value: DefaultValue) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def render_type(col: ColumnSpec) -> str:
    if col.type is ColumnType.ENUM:
        return "ENUM(" + ",".join(_quote(v) for v in col.enum_values) + ")"
    if col.type is ColumnType.CURRENT_TIMESTAMP:
        return "TIMESTAMP"
    return str(col.type)


def render_default_clause(col: ColumnSpec) -> str:
    default = col.effective_default
    if default == CURRENT_TIMESTAMP:
        if col.on_update_refresh:
            return " DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP"
        return " DEFAULT CURRENT_TIMESTAMP"
    if default is None:
        return " DEFAULT NULL"
    if col.type is ColumnType.BOOLEAN:
        return f" DEFAULT {1 if default else 0}"
    return f" DEFAULT {_quote(_literal(default))}"


def column_definition(col: ColumnSpec) -> str:
    if col.name == ID_COLUMN:
        return ID_DEFINITION
    return f"{col.name} {render_type(col)}{render_default_clause(col)}"


def create_table(table: str, columns: Sequence[ColumnSpec]) -> str:
    return f"CREATE TABLE {table} ({', '.join(column_definition(c) for c in columns)})"


def add_column(table: str, col: ColumnSpec) -> str:
    return f"ALTER TABLE {table} ADD COLUMN {column_definition(col)}"


def modify_column(table: str, col: ColumnSpec) -> str:
    return f"ALTER TABLE {table} MODIFY COLUMN {column_definition(col)}"


def drop_column(table: str, column: str) -> str:
    return f"ALTER TABLE {table} DROP COLUMN {column}"


def add_unique(table: str, column: str) -> str:
    return f"ALTER TABLE {table} ADD UNIQUE({column})"


def create_index(table: str, column: str) -> str:
    return f"CREATE INDEX idx_{column} ON {table}({column})"


def restore_column(table: str, info: ColumnInfo) -> str:
    """Re-add a dropped column from its catalog description."""

    clause = " DEFAULT NULL"
    if info.default is not None:
        if CURRENT_TIMESTAMP in info.default.upper():
            clause = " DEFAULT CURRENT_TIMESTAMP"
        else:
            clause = f" DEFAULT {_quote(info.default)}"
    if ON_UPDATE_MARKER in info.extra.lower():
        clause += " ON UPDATE CURRENT_TIMESTAMP"
    return f"ALTER TABLE {table} ADD COLUMN {info.name} {info.declared_type}{clause}"


# ---------------------------------------------------------------------------
# Default comparison
# ---------------------------------------------------------------------------


def intended_default(col: ColumnSpec) -> str:
    """Normalized form of the declared default, comparable to the catalog value."""

    default = col.effective_default
    if default == CURRENT_TIMESTAMP:
        return CURRENT_TIMESTAMP
    if default is None:
        return "NULL"
    if col.type is ColumnType.BOOLEAN:
        return "1" if default else "0"
    return _literal(default).upper()


def existing_default(info: ColumnInfo) -> str:
    if info.default is None:
        return "NULL"
    value = info.default
    # MariaDB reports quoted literals in information_schema.
    if len(value) >= 2 and value[0] == value[-1] == "'":
        value = value[1:-1].replace("''", "'")
    return value.upper()


def _numeric(value: str) -> Decimal | None:
    try:
        return Decimal(value)
    except (InvalidOperation, ValueError):
        return None


def defaults_match(info: ColumnInfo, col: ColumnSpec) -> bool:
    current = existing_default(info)
    intended = intended_default(col)
    if current == intended:
        return True
    if intended == CURRENT_TIMESTAMP:
        # e.g. "current_timestamp()" on MariaDB
        return CURRENT_TIMESTAMP in current
    a, b = _numeric(current), _numeric(intended)
    return a is not None and b is not None and a == b


def on_update_matches(info: ColumnInfo, col: ColumnSpec) -> bool:
    if not col.on_update_refresh or col.effective_default != CURRENT_TIMESTAMP:
        return True
    return ON_UPDATE_MARKER in info.extra.lower()


__all__ = [
    "ID_DEFINITION",
    "add_column",
    "add_unique",
    "column_definition",
    "create_index",
    "create_table",
    "defaults_match",
    "drop_column",
    "existing_default",
    "intended_default",
    "modify_column",
    "on_update_matches",
    "render_default_clause",
    "render_type",
    "restore_column",
]
