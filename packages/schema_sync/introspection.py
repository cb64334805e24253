"""Read-only queries against the live MySQL catalog.

Each method is a single ``information_schema`` query scoped to the current
database (``DATABASE()``). A table that does not exist yields empty results,
never an error. Connection or query failures propagate unchanged; nothing
here retries or interprets database errors.
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.engine import Connection

from .models import ColumnInfo

_TABLE_EXISTS = text(
    "SELECT TABLE_NAME FROM information_schema.TABLES "
    "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :name"
)

_LIST_TABLES = text(
    "SELECT TABLE_NAME FROM information_schema.TABLES "
    "WHERE TABLE_SCHEMA = DATABASE() ORDER BY TABLE_NAME"
)

_DESCRIBE_COLUMNS = text(
    "SELECT COLUMN_NAME, COLUMN_TYPE, COLUMN_DEFAULT, EXTRA "
    "FROM information_schema.COLUMNS "
    "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :name "
    "ORDER BY ORDINAL_POSITION"
)

_FOREIGN_KEY_COLUMNS = text(
    "SELECT COLUMN_NAME FROM information_schema.KEY_COLUMN_USAGE "
    "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :name "
    "AND REFERENCED_COLUMN_NAME IS NOT NULL"
)


class SchemaIntrospector:
    def __init__(self, connection: Connection) -> None:
        self._conn = connection

    def table_exists(self, name: str) -> bool:
        return self._conn.execute(_TABLE_EXISTS, {"name": name}).first() is not None

    def list_tables(self) -> list[str]:
        return [row[0] for row in self._conn.execute(_LIST_TABLES)]

    def describe_columns(self, name: str) -> dict[str, ColumnInfo]:
        """Map column name -> ``ColumnInfo`` in ordinal order."""

        columns: dict[str, ColumnInfo] = {}
        for col_name, col_type, default, extra in self._conn.execute(
            _DESCRIBE_COLUMNS, {"name": name}
        ):
            columns[col_name] = ColumnInfo(
                name=col_name,
                declared_type=_as_str(col_type),
                default=None if default is None else _as_str(default),
                extra=_as_str(extra or ""),
            )
        return columns

    def foreign_key_columns(self, name: str) -> set[str]:
        return {row[0] for row in self._conn.execute(_FOREIGN_KEY_COLUMNS, {"name": name})}


def _as_str(value: object) -> str:
    # Some driver/server combinations return catalog text as bytes.
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


__all__ = ["SchemaIntrospector"]
