"""Baseline schema: import packages, conflicts, staging and production tables.

Revision ID: 0001_baseline
Revises:
Create Date: 2026-01-12 09:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op

from trrcms_import.adapters.sqlalchemy.mappings import mapper_registry

revision: str = "0001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    mapper_registry.metadata.create_all(op.get_bind())


def downgrade() -> None:
    mapper_registry.metadata.drop_all(op.get_bind())
