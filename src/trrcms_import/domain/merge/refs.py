"""Where a conflict participant lives: production or the package's staging area."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from trrcms_import.domain.model import ProductionEntity, StagingEntity

if TYPE_CHECKING:
    from uuid import UUID

    from trrcms_import.domain.ports import Repository, StagingRepository


@dataclass(frozen=True, slots=True)
class ProductionRef[T: ProductionEntity]:
    entity: T

    @property
    def entity_id(self) -> UUID:
        return self.entity.id


@dataclass(frozen=True, slots=True)
class StagingRef[S: StagingEntity]:
    """A staging row addressed by its ``original_entity_id``."""

    entity: S

    @property
    def entity_id(self) -> UUID:
        return self.entity.original_entity_id


type EntityRef[T: ProductionEntity, S: StagingEntity] = ProductionRef[T] | StagingRef[S]


def resolve_ref[T: ProductionEntity, S: StagingEntity](
    entity_id: UUID,
    import_package_id: UUID | None,
    production: Repository[T],
    staging: StagingRepository[S],
) -> EntityRef[T, S] | None:
    """Look in production first, then in the package's staging rows by original id."""

    found = production.get_by_id(entity_id)
    if found is not None and not found.is_deleted:
        return ProductionRef(found)
    if import_package_id is None:
        return None
    staged = staging.get_by_package_and_original_id(import_package_id, entity_id)
    if staged is not None:
        return StagingRef(staged)
    return None
