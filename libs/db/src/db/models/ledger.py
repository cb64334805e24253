from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


# ---------------------------
# Batches: migration_group
# ---------------------------


class MigrationGroup(Base):
    __tablename__ = "migration_group"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    # {"queries": ["ALTER TABLE ...", ...]} executed in list order by the executor.
    up: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    down: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        "createdAt", DateTime, nullable=False, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updatedAt",
        DateTime,
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    migrations: Mapped[list[Migration]] = relationship(back_populates="group")


# ---------------------------
# Audit rows: migration
# ---------------------------


class Migration(Base):
    __tablename__ = "migration"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    table_name: Mapped[str] = mapped_column("tableName", String(255), nullable=False)
    column_name: Mapped[str] = mapped_column("columnName", String(255), nullable=False)
    # 'create' | 'delete'; other operation names never reach this table.
    operation: Mapped[str] = mapped_column(String(16), nullable=False)
    # {"query": "ALTER TABLE ..."}
    up: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    down: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    migration_group_id: Mapped[int | None] = mapped_column(
        "migrationGroup_id", Integer, ForeignKey("migration_group.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        "createdAt", DateTime, nullable=False, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updatedAt",
        DateTime,
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    group: Mapped[MigrationGroup | None] = relationship(back_populates="migrations")


__all__ = [
    "Base",
    "Migration",
    "MigrationGroup",
]
