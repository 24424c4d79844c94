from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from uuid import UUID


class MergeType(StrEnum):
    PRODUCTION_PRODUCTION = "production_production"
    CROSS_BATCH_MASTER_PRODUCTION = "cross_batch_master_production"
    CROSS_BATCH_MASTER_STAGING = "cross_batch_master_staging"
    WITHIN_BATCH = "within_batch"


class FieldSource(StrEnum):
    """Which side a merged field value was taken from."""

    MASTER = "master"
    DISCARDED = "discarded"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass(slots=True)
class MergeResult:
    success: bool
    master_entity_id: UUID
    discarded_entity_id: UUID
    merge_mapping: dict[str, Any] = field(default_factory=dict[str, Any])
    references_by_type: dict[str, int] = field(default_factory=dict[str, int])
    error_message: str | None = None

    @property
    def references_updated(self) -> int:
        return sum(self.references_by_type.values())

    @property
    def merge_type(self) -> MergeType | None:
        value = self.merge_mapping.get("merge_type")
        return MergeType(value) if value else None

    @property
    def merge_mapping_json(self) -> str | None:
        if not self.success:
            return None
        return json.dumps(self.merge_mapping, sort_keys=True)

    @classmethod
    def failed(cls, master_id: UUID, discarded_id: UUID, message: str) -> MergeResult:
        return cls(
            success=False,
            master_entity_id=master_id,
            discarded_entity_id=discarded_id,
            error_message=message,
        )
