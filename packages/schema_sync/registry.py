"""In-memory registry of entity descriptors.

Entity modules register their table, columns and relationships once at import
time. The registry never touches the database; synchronizers read it through
``all_entities()`` and resolve relationship targets through
``find_by_name()``.

Descriptors are immutable: ``add_column``/``add_relationship`` replace the
stored descriptor with a new one, so a descriptor handed to a caller never
changes underneath it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from typing import TypeAlias

from .logging_setup import LogCategory, get_logger, log_event
from .models import (
    ID_COLUMN,
    ColumnSpec,
    EntityDescriptor,
    Operation,
    RelationshipSpec,
    check_identifier,
)

logger = get_logger("schema_sync.registry")

EntityKey: TypeAlias = type | str


def entity_name(entity: EntityKey) -> str:
    return entity if isinstance(entity, str) else entity.__name__


class EntityRegistry:
    def __init__(self) -> None:
        # Insertion order is the synchronization order.
        self._entities: dict[str, EntityDescriptor] = {}

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity: object) -> bool:
        if not isinstance(entity, (str, type)):
            return False
        return entity_name(entity) in self._entities

    def register(self, entity: EntityKey, table_name: str) -> EntityDescriptor:
        """Register ``entity`` under ``table_name`` (lower-cased).

        Re-registering with the same table is a no-op; a different table name
        for an already registered entity raises ``ValueError``.
        """

        name = entity_name(entity)
        table = check_identifier(table_name, what="table").lower()
        existing = self._entities.get(name)
        if existing is not None:
            if existing.table_name != table:
                raise ValueError(
                    f"entity {name!r} already registered as table "
                    f"{existing.table_name!r}, not {table!r}"
                )
            return existing
        descriptor = EntityDescriptor(name=name, table_name=table)
        self._entities[name] = descriptor
        return descriptor

    def add_column(self, entity: EntityKey, column: ColumnSpec) -> EntityDescriptor:
        descriptor = self._require(entity)
        if column.name == ID_COLUMN:
            # The identity column is synthesized by the table synchronizer.
            log_event(
                logger,
                logging.DEBUG,
                LogCategory.DATABASE,
                Operation.SEARCH,
                "ignoring explicit id column",
                table=descriptor.table_name,
            )
            return descriptor
        current = descriptor.column(column.name)
        if current is not None:
            if current == column:
                return descriptor
            raise ValueError(
                f"column {column.name!r} already declared on {descriptor.name!r} "
                "with a different definition"
            )
        updated = replace(descriptor, columns=descriptor.columns + (column,))
        self._entities[descriptor.name] = updated
        return updated

    def add_relationship(
        self, entity: EntityKey, relationship: RelationshipSpec
    ) -> EntityDescriptor:
        descriptor = self._require(entity)
        if relationship in descriptor.relationships:
            return descriptor
        updated = replace(descriptor, relationships=descriptor.relationships + (relationship,))
        self._entities[descriptor.name] = updated
        return updated

    def declare(
        self,
        entity: EntityKey,
        table_name: str,
        columns: Iterable[ColumnSpec] = (),
        relationships: Iterable[RelationshipSpec] = (),
    ) -> EntityDescriptor:
        """Register an entity together with its columns and relationships."""

        descriptor = self.register(entity, table_name)
        for col in columns:
            descriptor = self.add_column(entity, col)
        for rel in relationships:
            descriptor = self.add_relationship(entity, rel)
        return descriptor

    def get(self, entity: EntityKey) -> EntityDescriptor:
        return self._require(entity)

    def find_by_name(self, name: str) -> EntityDescriptor | None:
        return self._entities.get(name)

    def find_by_table(self, table_name: str) -> EntityDescriptor | None:
        table = table_name.lower()
        for descriptor in self._entities.values():
            if descriptor.table_name == table:
                return descriptor
        return None

    def all_entities(self) -> list[EntityDescriptor]:
        return list(self._entities.values())

    def clear(self) -> None:
        self._entities.clear()

    def _require(self, entity: EntityKey) -> EntityDescriptor:
        name = entity_name(entity)
        try:
            return self._entities[name]
        except KeyError:
            raise KeyError(f"entity {name!r} is not registered") from None


default_registry = EntityRegistry()


__all__ = [
    "EntityKey",
    "EntityRegistry",
    "default_registry",
    "entity_name",
]
