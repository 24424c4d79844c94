"""In-memory repositories and collaborators for domain-level tests."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from trrcms_import.domain.model import (
    Building,
    Claim,
    ConflictResolution,
    ConflictStatus,
    Evidence,
    Household,
    ImportPackage,
    Person,
    PersonPropertyRelation,
    PropertyUnit,
    StagingKind,
    Survey,
)
from trrcms_import.domain.ports import ImportRepositories, StoredAttachment
from trrcms_import.domain.staging import StagingRepositorySet

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence
    from uuid import UUID

    from trrcms_import.domain.model import (
        ConflictType,
        ProductionEntity,
        StagingEntity,
        StagingValidationStatus,
    )
    from trrcms_import.domain.ports import Row


class FakeStagingRepository[TStaging: StagingEntity]:
    def __init__(self, initial: Iterable[TStaging] | None = None) -> None:
        self.items: dict[UUID, TStaging] = {item.id: item for item in initial or ()}
        self.updated: list[TStaging] = []

    def add(self, entity: TStaging) -> None:
        self.items[entity.id] = entity

    def add_range(self, entities: Iterable[TStaging]) -> None:
        for entity in entities:
            self.add(entity)

    def get_by_id(self, entity_id: UUID) -> TStaging | None:
        return self.items.get(entity_id)

    def get_by_package(self, import_package_id: UUID) -> list[TStaging]:
        return [item for item in self.items.values() if item.import_package_id == import_package_id]

    def get_by_package_and_original_id(
        self, import_package_id: UUID, original_entity_id: UUID
    ) -> TStaging | None:
        for item in self.get_by_package(import_package_id):
            if item.original_entity_id == original_entity_id:
                return item
        return None

    def get_by_package_and_status(
        self, import_package_id: UUID, statuses: Sequence[StagingValidationStatus]
    ) -> list[TStaging]:
        return [
            item
            for item in self.get_by_package(import_package_id)
            if item.validation_status in statuses
        ]

    def get_status_counts_by_package(
        self, import_package_id: UUID
    ) -> dict[StagingValidationStatus, int]:
        return dict(Counter(item.validation_status for item in self.get_by_package(import_package_id)))

    def update(self, entity: TStaging) -> None:
        self.items[entity.id] = entity
        self.updated.append(entity)

    def update_range(self, entities: Iterable[TStaging]) -> None:
        for entity in entities:
            self.update(entity)

    def delete_by_package(self, import_package_id: UUID) -> int:
        doomed = [item.id for item in self.get_by_package(import_package_id)]
        for item_id in doomed:
            del self.items[item_id]
        return len(doomed)


class _FakeProductionRepository[TEntity: ProductionEntity]:
    def __init__(self, initial: Iterable[TEntity] | None = None) -> None:
        self.items: dict[UUID, TEntity] = {item.id: item for item in initial or ()}

    def add(self, entity: TEntity) -> None:
        self.items[entity.id] = entity

    def get_by_id(self, entity_id: UUID) -> TEntity | None:
        item = self.items.get(entity_id)
        if item is None or item.is_deleted:
            return None
        return item

    def update(self, entity: TEntity) -> None:
        self.items[entity.id] = entity

    def live(self) -> Iterator[TEntity]:
        return (item for item in self.items.values() if not item.is_deleted)


class FakePersonRepository(_FakeProductionRepository[Person]):
    def get_by_national_id(self, national_id: str) -> Person | None:
        return next((item for item in self.live() if item.national_id == national_id), None)

    def find_name_candidates(
        self, *, family_name: str, first_name: str, father_name: str
    ) -> list[Person]:
        return [
            item
            for item in self.live()
            if item.family_name_arabic == family_name
            or (item.first_name_arabic == first_name and item.father_name_arabic == father_name)
        ]


class FakeBuildingRepository(_FakeProductionRepository[Building]):
    def get_by_building_code(self, building_code: str) -> Building | None:
        return next((item for item in self.live() if item.building_code == building_code), None)

    def find_in_bounding_box(
        self, *, min_lat: float, max_lat: float, min_lng: float, max_lng: float
    ) -> list[Building]:
        return [
            item
            for item in self.live()
            if item.latitude is not None
            and item.longitude is not None
            and min_lat <= item.latitude <= max_lat
            and min_lng <= item.longitude <= max_lng
        ]


class FakePropertyUnitRepository(_FakeProductionRepository[PropertyUnit]):
    def get_by_building(self, building_id: UUID) -> list[PropertyUnit]:
        return [item for item in self.live() if item.building_id == building_id]


class FakeHouseholdRepository(_FakeProductionRepository[Household]):
    pass


class FakeRelationRepository(_FakeProductionRepository[PersonPropertyRelation]):
    def get_by_person(self, person_id: UUID) -> list[PersonPropertyRelation]:
        return [item for item in self.live() if item.person_id == person_id]


class FakeClaimRepository(_FakeProductionRepository[Claim]):
    def get_by_primary_claimant(self, person_id: UUID) -> list[Claim]:
        return [item for item in self.live() if item.primary_claimant_id == person_id]


class FakeSurveyRepository(_FakeProductionRepository[Survey]):
    def get_by_building(self, building_id: UUID) -> list[Survey]:
        return [item for item in self.live() if item.building_id == building_id]


class FakeEvidenceRepository(_FakeProductionRepository[Evidence]):
    pass


class FakePackageRepository:
    def __init__(self, initial: Iterable[ImportPackage] | None = None) -> None:
        self.items: dict[UUID, ImportPackage] = {item.id: item for item in initial or ()}

    def add(self, entity: ImportPackage) -> None:
        self.items[entity.id] = entity

    def get_by_id(self, entity_id: UUID) -> ImportPackage | None:
        return self.items.get(entity_id)

    def update(self, entity: ImportPackage) -> None:
        self.items[entity.id] = entity

    def get_by_package_id(self, package_id: UUID) -> ImportPackage | None:
        return next((item for item in self.items.values() if item.package_id == package_id), None)

    def count_numbers_with_prefix(self, prefix: str) -> int:
        return sum(1 for item in self.items.values() if item.package_number.startswith(prefix))


class FakeConflictRepository:
    def __init__(self, initial: Iterable[ConflictResolution] | None = None) -> None:
        self.items: dict[UUID, ConflictResolution] = {item.id: item for item in initial or ()}

    def add(self, entity: ConflictResolution) -> None:
        self.items[entity.id] = entity

    def get_by_id(self, entity_id: UUID) -> ConflictResolution | None:
        return self.items.get(entity_id)

    def update(self, entity: ConflictResolution) -> None:
        self.items[entity.id] = entity

    def count_numbers_with_prefix(self, prefix: str) -> int:
        return sum(1 for item in self.items.values() if item.conflict_number.startswith(prefix))

    def get_by_package(
        self,
        import_package_id: UUID,
        *,
        conflict_types: Iterable[ConflictType] | None = None,
        status: ConflictStatus | None = None,
    ) -> list[ConflictResolution]:
        types = set(conflict_types) if conflict_types is not None else None
        return [
            item
            for item in self.items.values()
            if item.import_package_id == import_package_id
            and (types is None or item.conflict_type in types)
            and (status is None or item.status is status)
        ]

    def count_pending(self, import_package_id: UUID) -> int:
        return len(self.get_by_package(import_package_id, status=ConflictStatus.PENDING_REVIEW))

    def exists_for_pair(self, first_entity_id: UUID, second_entity_id: UUID) -> bool:
        pair = {first_entity_id, second_entity_id}
        return any(
            {item.first_entity_id, item.second_entity_id} == pair
            and item.status in {ConflictStatus.PENDING_REVIEW, ConflictStatus.RESOLVED}
            for item in self.items.values()
        )


def make_fake_repositories() -> ImportRepositories:
    staging = StagingRepositorySet(
        repositories={kind: FakeStagingRepository() for kind in StagingKind}
    )
    return ImportRepositories(
        packages=FakePackageRepository(),
        conflicts=FakeConflictRepository(),
        staging=staging,
        persons=FakePersonRepository(),
        buildings=FakeBuildingRepository(),
        property_units=FakePropertyUnitRepository(),
        households=FakeHouseholdRepository(),
        relations=FakeRelationRepository(),
        claims=FakeClaimRepository(),
        surveys=FakeSurveyRepository(),
        evidences=FakeEvidenceRepository(),
    )


class FakeUnitOfWork:
    """Unit of work over a shared in-memory repository collection."""

    def __init__(self, repositories: ImportRepositories | None = None) -> None:
        self.repositories = repositories or make_fake_repositories()
        self.commit_count = 0
        self.rollback_called = False

    @property
    def committed(self) -> bool:
        return self.commit_count > 0

    def __enter__(self) -> FakeUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: object | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        return False

    def commit(self) -> None:
        self.commit_count += 1

    def rollback(self) -> None:
        self.rollback_called = True

    def factory(self) -> FakeUnitOfWork:
        return self


@dataclass(slots=True)
class FakeAttachmentStorage:
    root: Path = Path("/attachments")
    saved: dict[tuple[UUID, UUID], bytes] = field(default_factory=dict)
    fail_for: set[UUID] = field(default_factory=set)

    def save(
        self, import_package_id: UUID, evidence_id: UUID, file_name: str, data: bytes
    ) -> StoredAttachment:
        if evidence_id in self.fail_for:
            raise OSError(f"disk full while writing {file_name}")
        self.saved[(import_package_id, evidence_id)] = data
        return StoredAttachment(
            path=self.root / import_package_id.hex / f"{evidence_id.hex}_{file_name}",
            size_bytes=len(data),
        )

    def delete_package(self, import_package_id: UUID) -> int:
        doomed = [key for key in self.saved if key[0] == import_package_id]
        for key in doomed:
            del self.saved[key]
        return len(doomed)


class FakePackageReader:
    """Reader over plain dict tables, usable as a ``PackageReaderFactory`` result."""

    def __init__(
        self,
        tables: Mapping[str, list[Row]],
        attachments: Iterable[tuple[str, bytes]] = (),
    ) -> None:
        self.tables = {name: list(rows) for name, rows in tables.items()}
        self._attachments = list(attachments)
        self.closed = False

    def __enter__(self) -> FakePackageReader:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: object | None,
    ) -> Literal[False]:
        self.closed = True
        return False

    def table_names(self) -> list[str]:
        names = list(self.tables)
        if self._attachments:
            names.append("attachments")
        return names

    def has_table(self, name: str) -> bool:
        return name in self.table_names()

    def columns(self, table: str) -> list[str]:
        if table not in self.tables:
            raise LookupError(table)
        columns: list[str] = []
        for row in self.tables[table]:
            columns.extend(column for column in row if column not in columns)
        return columns

    def rows(self, table: str) -> Iterator[Row]:
        return iter([dict(row) for row in self.tables.get(table, [])])

    def attachments(self) -> Iterator[tuple[str, bytes]]:
        return iter(self._attachments)


if TYPE_CHECKING:
    from trrcms_import.domain.ports import (
        AttachmentStorage,
        ImportUnitOfWork,
        PackageReader,
        StagingRepository,
    )

    _check_staging: StagingRepository[StagingEntity] = FakeStagingRepository()
    _check_uow: ImportUnitOfWork = FakeUnitOfWork()
    _check_attachments: AttachmentStorage = FakeAttachmentStorage()
    _check_reader: PackageReader = FakePackageReader({})
