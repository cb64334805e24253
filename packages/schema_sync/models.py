"""Data models and type aliases for ``schema_sync``.

Three groups live here:

- declaration types (``ColumnSpec``, ``RelationshipSpec``,
  ``EntityDescriptor``) produced by the registry at load time and never
  mutated afterwards;
- catalog types (``ColumnInfo``) returned by the introspector;
- ledger payloads (``QueryPayload``, ``QueryBatchPayload``) validating the
  structured ``up``/``down`` JSON stored in ``migration``/``migration_group``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict, field_validator

# Sentinel default: render ``DEFAULT CURRENT_TIMESTAMP`` instead of a literal.
CURRENT_TIMESTAMP = "CURRENT_TIMESTAMP"

# Synthesized identity column; never declared explicitly.
ID_COLUMN = "id"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DefaultValue: TypeAlias = str | int | float | bool | Decimal | None


def check_identifier(value: str, *, what: str) -> str:
    """Return ``value`` when it is safe to splice into DDL, else raise ``ValueError``."""

    if not isinstance(value, str) or not _IDENTIFIER.match(value):
        raise ValueError(f"invalid {what} identifier: {value!r}")
    return value


class ColumnType(StrEnum):
    """Closed column-type taxonomy; values are the MySQL type spellings."""

    VARCHAR = "VARCHAR(255)"
    CHAR = "CHAR(255)"
    TEXT = "TEXT"
    TINYINT = "TINYINT"
    MEDIUMINT = "MEDIUMINT"
    INTEGER = "INT"
    BIGINT = "BIGINT"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    DECIMAL = "DECIMAL(10,2)"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    DATETIME = "DATETIME"
    TIME = "TIME"
    TIMESTAMP = "TIMESTAMP"
    # Timestamp that defaults to the current time when no default is declared.
    CURRENT_TIMESTAMP = "CURRENT_TIMESTAMP"
    YEAR = "YEAR"
    ENUM = "ENUM"
    BLOB = "BLOB"


class RelationshipKind(StrEnum):
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_ONE = "many-to-one"
    MANY_TO_MANY = "many-to-many"


class Operation(StrEnum):
    CREATE = "create"
    DELETE = "delete"
    SEARCH = "search"
    UPDATE = "update"
    APPLY = "apply"
    ROLLBACK = "rollback"


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    """One declared field of an entity.

    ``default`` is a literal, the ``CURRENT_TIMESTAMP`` sentinel, or ``None``
    (absent; rendered as ``DEFAULT NULL``). ``on_update_refresh`` only has an
    effect together with the sentinel.
    """

    name: str
    type: ColumnType = ColumnType.VARCHAR
    default: DefaultValue = None
    enum_values: tuple[str, ...] = ()
    on_update_refresh: bool = False
    unique: bool = False
    indexed: bool = False

    def __post_init__(self) -> None:
        check_identifier(self.name, what="column")
        # Accept the MySQL spelling ("INT") and list-valued enum_values.
        object.__setattr__(self, "type", ColumnType(self.type))
        object.__setattr__(self, "enum_values", tuple(self.enum_values))
        if self.type is ColumnType.ENUM and not self.enum_values:
            raise ValueError(f"enum column {self.name!r} requires enum_values")
        if self.type is not ColumnType.ENUM and self.enum_values:
            raise ValueError(f"column {self.name!r} declares enum_values but is {self.type}")

    @property
    def effective_default(self) -> DefaultValue:
        if self.default is None and self.type is ColumnType.CURRENT_TIMESTAMP:
            return CURRENT_TIMESTAMP
        return self.default


@dataclass(frozen=True, slots=True)
class RelationshipSpec:
    """One declared association; ``target`` is an entity name resolved lazily."""

    kind: RelationshipKind
    field_name: str
    target: str
    inverse: str = ""
    join_table: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", RelationshipKind(self.kind))
        check_identifier(self.field_name, what="relationship field")


@dataclass(frozen=True, slots=True)
class EntityDescriptor:
    name: str
    table_name: str
    columns: tuple[ColumnSpec, ...] = ()
    relationships: tuple[RelationshipSpec, ...] = ()

    def column(self, name: str) -> ColumnSpec | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """A live column as reported by ``information_schema.COLUMNS``."""

    name: str
    declared_type: str
    default: str | None = None
    extra: str = ""


@dataclass(slots=True)
class TableSyncResult:
    """Outcome of synchronizing one table.

    ``statements`` holds the structural DDL (create/add/modify) that ran;
    ``constraints`` holds unique/index statements the database accepted.
    """

    table: str
    created: bool = False
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    statements: list[str] = field(default_factory=list)
    constraints: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.created or bool(self.added) or bool(self.updated)


# ---------------------------------------------------------------------------
# Ledger payloads
# ---------------------------------------------------------------------------


class QueryPayload(BaseModel):
    """``migration.up``/``migration.down``: a single SQL statement."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    query: str

    @field_validator("query")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("query must not be blank")
        return v


class QueryBatchPayload(BaseModel):
    """``migration_group.up``/``migration_group.down``: ordered statements."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    queries: tuple[str, ...]

    @field_validator("queries")
    @classmethod
    def _no_blank_statements(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if any(not q.strip() for q in v):
            raise ValueError("queries must not contain blank statements")
        return v


__all__ = [
    "CURRENT_TIMESTAMP",
    "ID_COLUMN",
    "ColumnInfo",
    "ColumnSpec",
    "ColumnType",
    "DefaultValue",
    "EntityDescriptor",
    "Operation",
    "QueryBatchPayload",
    "QueryPayload",
    "RelationshipKind",
    "RelationshipSpec",
    "TableSyncResult",
    "check_identifier",
]
