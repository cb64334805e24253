# ruff: noqa: I001
"""Schema-change ledger tables: migration_group and migration.

Revision ID: 0001_schema_ledger
Revises: None
Create Date: 2025-10-02
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_schema_ledger"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "createdAt",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updatedAt",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    # migration_group: replayable batches, {"queries": [...]} payloads
    op.create_table(
        "migration_group",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("up", sa.JSON(), nullable=False),
        sa.Column("down", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("uq_migration_group_name", "migration_group", ["name"], unique=True)

    # migration: one row per column-level change, {"query": ...} payloads
    op.create_table(
        "migration",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("tableName", sa.String(255), nullable=False),
        sa.Column("columnName", sa.String(255), nullable=False),
        sa.Column("operation", sa.String(16), nullable=False),
        sa.Column("up", sa.JSON(), nullable=False),
        sa.Column("down", sa.JSON(), nullable=False),
        sa.Column(
            "migrationGroup_id",
            sa.Integer(),
            sa.ForeignKey("migration_group.id", name="fk_migration_group"),
            nullable=True,
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "operation in ('create','delete')",
            name="ck_migration_operation",
        ),
    )
    op.create_index("ix_migration_table_name", "migration", ["tableName"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_migration_table_name", table_name="migration")
    op.drop_table("migration")
    op.drop_index("uq_migration_group_name", table_name="migration_group")
    op.drop_table("migration_group")
