"""Run both matchers over a package and record conflicts."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING, cast
from uuid import UUID

from trrcms_import.config import DuplicateDetectionConfig
from trrcms_import.domain.model import (
    ConflictResolution,
    ConflictType,
    StagingKind,
    StagingValidationStatus,
    format_conflict_number,
    utcnow,
)

from .persons import PersonMatch, PersonMatcher
from .properties import PropertyMatch, PropertyMatcher

if TYPE_CHECKING:
    from trrcms_import.domain.model import StagingBuilding, StagingPerson, StagingPropertyUnit
    from trrcms_import.domain.ports import ImportRepositories


log = getLogger(__name__)

COMMITTABLE_STATUSES = (StagingValidationStatus.VALID, StagingValidationStatus.WARNING)


@dataclass(slots=True)
class DuplicateDetectionResult:
    import_package_id: UUID
    persons_scanned: int = 0
    buildings_scanned: int = 0
    person_duplicates_found: int = 0
    property_duplicates_found: int = 0
    conflict_ids: list[UUID] = field(default_factory=list[UUID])
    duration: timedelta = field(default_factory=timedelta)

    @property
    def total_conflicts_created(self) -> int:
        return self.person_duplicates_found + self.property_duplicates_found


@dataclass(slots=True)
class _ConflictNumbers:
    year: int
    next_sequence: int

    def take(self) -> str:
        number = format_conflict_number(self.year, self.next_sequence)
        self.next_sequence += 1
        return number


@dataclass(slots=True)
class DuplicateDetectionService:
    """Creates ``ConflictResolution`` rows for one package inside the caller's transaction."""

    repositories: ImportRepositories
    config: DuplicateDetectionConfig = field(default_factory=DuplicateDetectionConfig)

    def detect(self, import_package_id: UUID, actor_id: UUID) -> DuplicateDetectionResult:
        started = time.perf_counter()
        log.info("Starting duplicate detection for package %s", import_package_id)
        staging = self.repositories.staging

        persons = cast(
            "list[StagingPerson]",
            staging[StagingKind.PERSON].get_by_package_and_status(
                import_package_id, COMMITTABLE_STATUSES
            ),
        )
        buildings = cast(
            "list[StagingBuilding]",
            staging[StagingKind.BUILDING].get_by_package_and_status(
                import_package_id, COMMITTABLE_STATUSES
            ),
        )
        units = cast(
            "list[StagingPropertyUnit]",
            staging[StagingKind.PROPERTY_UNIT].get_by_package_and_status(
                import_package_id, COMMITTABLE_STATUSES
            ),
        )
        result = DuplicateDetectionResult(
            import_package_id=import_package_id,
            persons_scanned=len(persons),
            buildings_scanned=len(buildings),
        )

        person_matches = PersonMatcher(self.repositories.persons, self.config).detect(persons)
        property_matches = PropertyMatcher(
            self.repositories.buildings, self.repositories.property_units, self.config
        ).detect(buildings, units)

        year = utcnow().year
        numbers = _ConflictNumbers(
            year=year,
            next_sequence=self.repositories.conflicts.count_numbers_with_prefix(f"CNF-{year}-")
            + 1,
        )
        seen: set[frozenset[UUID]] = set()

        for match in person_matches:
            conflict = self._create(
                match, StagingKind.PERSON, import_package_id, actor_id, numbers, seen
            )
            if conflict is not None:
                result.person_duplicates_found += 1
                result.conflict_ids.append(conflict.id)
        for match in property_matches:
            conflict = self._create(
                match, StagingKind.BUILDING, import_package_id, actor_id, numbers, seen
            )
            if conflict is not None:
                result.property_duplicates_found += 1
                result.conflict_ids.append(conflict.id)

        result.duration = timedelta(seconds=time.perf_counter() - started)
        log.info(
            "Duplicate detection complete for package %s: %s person, %s property, %s total "
            "(in %.1fms)",
            import_package_id,
            result.person_duplicates_found,
            result.property_duplicates_found,
            result.total_conflicts_created,
            result.duration.total_seconds() * 1000,
        )
        return result

    def _create(
        self,
        match: PersonMatch | PropertyMatch,
        entity_type: StagingKind,
        import_package_id: UUID,
        actor_id: UUID,
        numbers: _ConflictNumbers,
        seen: set[frozenset[UUID]],
    ) -> ConflictResolution | None:
        first, second = match.pair
        key = frozenset(match.pair)
        if key in seen or self.repositories.conflicts.exists_for_pair(first, second):
            log.debug("Skipping existing conflict pair %s <-> %s", first, second)
            return None
        seen.add(key)

        family = (
            ConflictType.PERSON_DUPLICATE
            if entity_type is StagingKind.PERSON
            else ConflictType.PROPERTY_DUPLICATE
        )
        conflict_type = ConflictType(f"{family}_WithinBatch") if match.is_within_batch else family
        conflict = ConflictResolution.create(
            conflict_number=numbers.take(),
            conflict_type=conflict_type,
            entity_type=entity_type,
            first_entity_id=first,
            second_entity_id=second,
            first_entity_identifier=match.staging_identifier,
            second_entity_identifier=match.matched_identifier,
            similarity_score=match.score,
            confidence_level=match.confidence,
            conflict_description=match.description(),
            matching_criteria=match.matching_criteria(),
            import_package_id=import_package_id,
            actor_id=actor_id,
        )
        self.repositories.conflicts.add(conflict)
        return conflict
