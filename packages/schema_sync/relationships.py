"""Second synchronization pass: validate declared relationships.

Runs only after every table has been synchronized. No foreign-key DDL is
emitted; the pass resolves each relationship's target by entity name, checks
that the target table exists, and that the edge names its inverse side (or
join table, for many-to-many). Problems are logged and returned so a dangling
reference surfaces at deploy time instead of at first query.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .introspection import SchemaIntrospector
from .logging_setup import LogCategory, get_logger, log_event
from .models import EntityDescriptor, Operation, RelationshipKind, RelationshipSpec
from .registry import EntityRegistry
from .tables import Introspects

logger = get_logger("schema_sync.relationships")


@dataclass(frozen=True, slots=True)
class RelationshipIssue:
    table: str
    field_name: str
    target: str
    reason: str

    def __str__(self) -> str:
        return f"{self.table}.{self.field_name} -> {self.target}: {self.reason}"


class RelationshipError(RuntimeError):
    def __init__(self, issues: list[RelationshipIssue]) -> None:
        self.issues = issues
        super().__init__(
            f"{len(issues)} invalid relationship(s): " + "; ".join(str(i) for i in issues)
        )


class RelationshipSynchronizer:
    def __init__(
        self,
        registry: EntityRegistry,
        *,
        connection=None,
        introspector: Introspects | None = None,
    ) -> None:
        if introspector is None:
            if connection is None:
                raise ValueError("either connection or introspector is required")
            introspector = SchemaIntrospector(connection)
        self._registry = registry
        self._introspector = introspector
        self._table_cache: dict[str, bool] = {}

    def sync(
        self, descriptors: Iterable[EntityDescriptor] | None = None
    ) -> list[RelationshipIssue]:
        if descriptors is None:
            descriptors = self._registry.all_entities()
        issues: list[RelationshipIssue] = []
        for descriptor in descriptors:
            for rel in descriptor.relationships:
                reason = self._check(rel)
                if reason is None:
                    self._log_edge(descriptor, rel)
                    continue
                issue = RelationshipIssue(descriptor.table_name, rel.field_name, rel.target, reason)
                log_event(logger, logging.ERROR, LogCategory.DATABASE, Operation.UPDATE, str(issue))
                issues.append(issue)
        return issues

    def _check(self, rel: RelationshipSpec) -> str | None:
        target = self._registry.find_by_name(rel.target)
        if target is None:
            return "target entity is not registered"
        if not self._table_exists(target.table_name):
            return f"target table '{target.table_name}' does not exist"
        if not rel.inverse.strip():
            return "inverse field name is empty"
        if rel.kind is RelationshipKind.MANY_TO_MANY and not (rel.join_table or "").strip():
            return "many-to-many relationship has no join table"
        return None

    def _table_exists(self, table: str) -> bool:
        if table not in self._table_cache:
            self._table_cache[table] = self._introspector.table_exists(table)
        return self._table_cache[table]

    def _log_edge(self, descriptor: EntityDescriptor, rel: RelationshipSpec) -> None:
        other_side = f"inverse={rel.inverse}"
        if rel.kind is RelationshipKind.MANY_TO_MANY:
            other_side += f", join={rel.join_table}"
        log_event(
            logger,
            logging.DEBUG,
            LogCategory.DATABASE,
            Operation.SEARCH,
            f"{descriptor.table_name}.{rel.field_name} -> {rel.target} ({rel.kind}, {other_side})",
        )


__all__ = [
    "RelationshipError",
    "RelationshipIssue",
    "RelationshipSynchronizer",
]
