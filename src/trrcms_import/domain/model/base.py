"""
Base building blocks:
identity, audit stamps and soft deletion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4


def new_id() -> UUID:
    return uuid4()


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


NIL_UUID = UUID(int=0)


@dataclass(eq=False, kw_only=True)
class Entity:
    """Internal identity exists immediately in the domain."""

    id: UUID = field(default_factory=new_id)


@dataclass(eq=False, kw_only=True)
class AuditedEntity(Entity):
    created_at: datetime = field(default_factory=utcnow)
    created_by: UUID | None = None
    modified_at: datetime | None = None
    modified_by: UUID | None = None

    def touch(self, actor_id: UUID | None) -> None:
        self.modified_at = utcnow()
        self.modified_by = actor_id


@dataclass(eq=False, kw_only=True)
class SoftDeletableEntity(AuditedEntity):
    """Production rows are never removed by the pipeline, only flagged."""

    is_deleted: bool = False
    deleted_at: datetime | None = None
    deleted_by: UUID | None = None

    def mark_as_deleted(self, actor_id: UUID | None) -> None:
        if self.is_deleted:
            return
        self.is_deleted = True
        self.deleted_at = utcnow()
        self.deleted_by = actor_id
        self.touch(actor_id)
