"""Registry of the eight staging stores and a batch-local reference index."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, cast

from trrcms_import.domain.model import StagingKind

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from uuid import UUID

    from trrcms_import.domain.model import StagingEntity, StagingValidationStatus
    from trrcms_import.domain.ports.persistence import StagingRepository

DEPENDENCY_ORDER: tuple[StagingKind, ...] = tuple(StagingKind)


@dataclass(slots=True)
class StagingRepositorySet:
    """Maps every ``StagingKind`` to its repository.

    Iteration follows dependency order (parents first); cleanup walks it in reverse.
    """

    repositories: Mapping[StagingKind, StagingRepository[StagingEntity]]

    def __post_init__(self) -> None:
        missing = [kind for kind in DEPENDENCY_ORDER if kind not in self.repositories]
        if missing:
            raise ValueError(f"Missing staging repositories for: {', '.join(missing)}")

    def __getitem__(self, kind: StagingKind) -> StagingRepository[StagingEntity]:
        return self.repositories[kind]

    def __iter__(self) -> Iterator[tuple[StagingKind, StagingRepository[StagingEntity]]]:
        for kind in DEPENDENCY_ORDER:
            yield kind, self.repositories[kind]

    def reversed(self) -> Iterator[tuple[StagingKind, StagingRepository[StagingEntity]]]:
        for kind in reversed(DEPENDENCY_ORDER):
            yield kind, self.repositories[kind]

    def find_record(self, row_id: UUID) -> StagingEntity | None:
        for _, repository in self:
            record = repository.get_by_id(row_id)
            if record is not None:
                return record
        return None

    def load_package(self, import_package_id: UUID) -> dict[StagingKind, list[StagingEntity]]:
        return {kind: repository.get_by_package(import_package_id) for kind, repository in self}

    def status_counts(
        self, import_package_id: UUID
    ) -> dict[StagingKind, dict[StagingValidationStatus, int]]:
        return {
            kind: repository.get_status_counts_by_package(import_package_id)
            for kind, repository in self
        }

    def delete_package(self, import_package_id: UUID) -> dict[StagingKind, int]:
        return {
            kind: repository.delete_by_package(import_package_id)
            for kind, repository in self.reversed()
        }


@dataclass(slots=True)
class StagedReferenceIndex:
    """Lazily built ``(kind, original_entity_id) -> row`` lookup over one batch."""

    records: Mapping[StagingKind, list[StagingEntity]]
    _index: dict[StagingKind, dict[UUID, StagingEntity]] = field(default_factory=dict)

    def _for_kind(self, kind: StagingKind) -> dict[UUID, StagingEntity]:
        index = self._index.get(kind)
        if index is None:
            index = {record.original_entity_id: record for record in self.records.get(kind, ())}
            self._index[kind] = index
        return index

    def get[T: StagingEntity](
        self, kind: StagingKind, original_id: UUID | None, expected: type[T]
    ) -> T | None:
        if original_id is None:
            return None
        record = self._for_kind(kind).get(original_id)
        if record is None:
            return None
        return cast("T", record) if isinstance(record, expected) else None

    def contains(self, kind: StagingKind, original_id: UUID | None) -> bool:
        return original_id is not None and original_id in self._for_kind(kind)

    def original_ids(self, kind: StagingKind) -> frozenset[UUID]:
        return frozenset(self._for_kind(kind))
