"""Ports for persisting import packages, conflicts, staging rows and production records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from trrcms_import.domain.model import (
    Building,
    Claim,
    ConflictResolution,
    Evidence,
    Household,
    ImportPackage,
    Person,
    PersonPropertyRelation,
    PropertyUnit,
    StagingEntity,
    Survey,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from trrcms_import.domain.model import ConflictStatus, ConflictType, StagingValidationStatus


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...

    def get_by_id(self, entity_id: UUID) -> TEntity | None: ...

    def update(self, entity: TEntity) -> None: ...


@runtime_checkable
class NumberedRepository(Protocol):
    def count_numbers_with_prefix(self, prefix: str) -> int:
        """Count human-readable numbers (``PKG-2026-``, ``CNF-2026-``) already issued."""
        ...


@runtime_checkable
class ImportPackageRepository(Repository[ImportPackage], NumberedRepository, Protocol):
    def get_by_package_id(self, package_id: UUID) -> ImportPackage | None: ...


@runtime_checkable
class ConflictRepository(Repository[ConflictResolution], NumberedRepository, Protocol):
    def get_by_package(
        self,
        import_package_id: UUID,
        *,
        conflict_types: Iterable[ConflictType] | None = None,
        status: ConflictStatus | None = None,
    ) -> list[ConflictResolution]: ...

    def count_pending(self, import_package_id: UUID) -> int: ...

    def exists_for_pair(self, first_entity_id: UUID, second_entity_id: UUID) -> bool:
        """True when a PendingReview or Resolved conflict covers the pair in either order."""
        ...


@runtime_checkable
class StagingRepository[TStaging: StagingEntity](Protocol):
    """Generic staging store for one entity kind."""

    def add(self, entity: TStaging) -> None: ...

    def add_range(self, entities: Iterable[TStaging]) -> None: ...

    def get_by_id(self, entity_id: UUID) -> TStaging | None: ...

    def get_by_package(self, import_package_id: UUID) -> list[TStaging]: ...

    def get_by_package_and_original_id(
        self, import_package_id: UUID, original_entity_id: UUID
    ) -> TStaging | None: ...

    def get_by_package_and_status(
        self, import_package_id: UUID, statuses: Sequence[StagingValidationStatus]
    ) -> list[TStaging]: ...

    def get_status_counts_by_package(
        self, import_package_id: UUID
    ) -> dict[StagingValidationStatus, int]: ...

    def update(self, entity: TStaging) -> None: ...

    def update_range(self, entities: Iterable[TStaging]) -> None: ...

    def delete_by_package(self, import_package_id: UUID) -> int: ...


@runtime_checkable
class PersonRepository(Repository[Person], Protocol):
    def get_by_national_id(self, national_id: str) -> Person | None: ...

    def find_name_candidates(
        self, *, family_name: str, first_name: str, father_name: str
    ) -> list[Person]:
        """Same family name, or same first and father name."""
        ...


@runtime_checkable
class BuildingRepository(Repository[Building], Protocol):
    def get_by_building_code(self, building_code: str) -> Building | None: ...

    def find_in_bounding_box(
        self, *, min_lat: float, max_lat: float, min_lng: float, max_lng: float
    ) -> list[Building]: ...


@runtime_checkable
class PropertyUnitRepository(Repository[PropertyUnit], Protocol):
    def get_by_building(self, building_id: UUID) -> list[PropertyUnit]: ...


@runtime_checkable
class HouseholdRepository(Repository[Household], Protocol):
    pass


@runtime_checkable
class PersonPropertyRelationRepository(Repository[PersonPropertyRelation], Protocol):
    def get_by_person(self, person_id: UUID) -> list[PersonPropertyRelation]: ...


@runtime_checkable
class ClaimRepository(Repository[Claim], Protocol):
    def get_by_primary_claimant(self, person_id: UUID) -> list[Claim]: ...


@runtime_checkable
class SurveyRepository(Repository[Survey], Protocol):
    def get_by_building(self, building_id: UUID) -> list[Survey]: ...


@runtime_checkable
class EvidenceRepository(Repository[Evidence], Protocol):
    pass
