"""Read-only view over one package's staging rows, shared by all validators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, cast

from trrcms_import.domain.model import (
    StagingBuilding,
    StagingClaim,
    StagingEvidence,
    StagingHousehold,
    StagingKind,
    StagingPerson,
    StagingPersonPropertyRelation,
    StagingPropertyUnit,
    StagingSurvey,
)
from trrcms_import.domain.staging.registry import StagedReferenceIndex

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from uuid import UUID

    from trrcms_import.domain.model import StagingEntity


@dataclass(frozen=True, slots=True)
class RecordFinding:
    """Errors and warnings one validator raised against one staging row."""

    kind: StagingKind
    record_id: UUID
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(slots=True)
class StagedDataset:
    records: Mapping[StagingKind, list[StagingEntity]]
    index: StagedReferenceIndex = field(init=False)

    def __post_init__(self) -> None:
        self.index = StagedReferenceIndex(self.records)

    def _typed[T: StagingEntity](self, kind: StagingKind, _expected: type[T]) -> list[T]:
        return cast("list[T]", self.records.get(kind, []))

    @property
    def buildings(self) -> list[StagingBuilding]:
        return self._typed(StagingKind.BUILDING, StagingBuilding)

    @property
    def property_units(self) -> list[StagingPropertyUnit]:
        return self._typed(StagingKind.PROPERTY_UNIT, StagingPropertyUnit)

    @property
    def persons(self) -> list[StagingPerson]:
        return self._typed(StagingKind.PERSON, StagingPerson)

    @property
    def households(self) -> list[StagingHousehold]:
        return self._typed(StagingKind.HOUSEHOLD, StagingHousehold)

    @property
    def relations(self) -> list[StagingPersonPropertyRelation]:
        return self._typed(StagingKind.PERSON_PROPERTY_RELATION, StagingPersonPropertyRelation)

    @property
    def claims(self) -> list[StagingClaim]:
        return self._typed(StagingKind.CLAIM, StagingClaim)

    @property
    def surveys(self) -> list[StagingSurvey]:
        return self._typed(StagingKind.SURVEY, StagingSurvey)

    @property
    def evidences(self) -> list[StagingEvidence]:
        return self._typed(StagingKind.EVIDENCE, StagingEvidence)

    def original_ids(self, kind: StagingKind) -> frozenset[UUID]:
        return self.index.original_ids(kind)

    def all_records(self) -> Iterator[StagingEntity]:
        for records in self.records.values():
            yield from records

    @property
    def total(self) -> int:
        return sum(len(records) for records in self.records.values())
