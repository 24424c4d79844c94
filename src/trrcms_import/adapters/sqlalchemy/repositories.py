"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import and_, delete, func, or_, select

from trrcms_import.adapters.sqlalchemy.mappings import (
    STAGING_CLASSES,
    STAGING_TABLES,
    building_table,
    claim_table,
    conflict_resolution_table,
    evidence_table,
    household_table,
    import_package_table,
    person_property_relation_table,
    person_table,
    property_unit_table,
    survey_table,
)
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
    StagingEntity,
    StagingKind,
    Survey,
)
from trrcms_import.domain.staging import StagingRepositorySet

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from sqlalchemy import CursorResult, Select, Table
    from sqlalchemy.orm import Session

    from trrcms_import.domain.model import ConflictType, ProductionEntity, StagingValidationStatus


class SqlAlchemyImportPackageRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ImportPackage) -> None:
        self.session.add(entity)

    def get_by_id(self, entity_id: UUID) -> ImportPackage | None:
        return self.session.get(ImportPackage, entity_id)

    def get_by_package_id(self, package_id: UUID) -> ImportPackage | None:
        stmt = select(ImportPackage).where(import_package_table.c.package_id == package_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def update(self, entity: ImportPackage) -> None:
        self.session.add(entity)

    def count_numbers_with_prefix(self, prefix: str) -> int:
        number = import_package_table.c.package_number
        stmt = select(func.count()).where(number.like(f"{prefix}%"))
        return int(self.session.execute(stmt).scalar_one())


class SqlAlchemyConflictRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ConflictResolution) -> None:
        self.session.add(entity)

    def get_by_id(self, entity_id: UUID) -> ConflictResolution | None:
        return self.session.get(ConflictResolution, entity_id)

    def update(self, entity: ConflictResolution) -> None:
        self.session.add(entity)

    def get_by_package(
        self,
        import_package_id: UUID,
        *,
        conflict_types: Iterable[ConflictType] | None = None,
        status: ConflictStatus | None = None,
    ) -> list[ConflictResolution]:
        table = conflict_resolution_table
        stmt = select(ConflictResolution).where(table.c.import_package_id == import_package_id)
        if conflict_types is not None:
            stmt = stmt.where(table.c.conflict_type.in_(list(conflict_types)))
        if status is not None:
            stmt = stmt.where(table.c.status == status)
        stmt = stmt.order_by(table.c.conflict_number)
        return list(self.session.execute(stmt).scalars())

    def count_pending(self, import_package_id: UUID) -> int:
        table = conflict_resolution_table
        stmt = (
            select(func.count())
            .where(table.c.import_package_id == import_package_id)
            .where(table.c.status == ConflictStatus.PENDING_REVIEW)
        )
        return int(self.session.execute(stmt).scalar_one())

    def exists_for_pair(self, first_entity_id: UUID, second_entity_id: UUID) -> bool:
        table = conflict_resolution_table
        stmt = (
            select(table.c.id)
            .where(
                or_(
                    and_(
                        table.c.first_entity_id == first_entity_id,
                        table.c.second_entity_id == second_entity_id,
                    ),
                    and_(
                        table.c.first_entity_id == second_entity_id,
                        table.c.second_entity_id == first_entity_id,
                    ),
                )
            )
            .where(table.c.status.in_([ConflictStatus.PENDING_REVIEW, ConflictStatus.RESOLVED]))
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    def count_numbers_with_prefix(self, prefix: str) -> int:
        table = conflict_resolution_table
        stmt = select(func.count()).where(table.c.conflict_number.like(f"{prefix}%"))
        return int(self.session.execute(stmt).scalar_one())


class SqlAlchemyStagingRepository[TStaging: StagingEntity]:
    """Staging store for one kind; rows come back in the order they were staged."""

    def __init__(self, session: Session, entity_cls: type[TStaging], table: Table) -> None:
        self.session = session
        self._entity_cls = entity_cls
        self._table = table

    def add(self, entity: TStaging) -> None:
        self.session.add(entity)

    def add_range(self, entities: Iterable[TStaging]) -> None:
        self.session.add_all(list(entities))

    def get_by_id(self, entity_id: UUID) -> TStaging | None:
        return self.session.get(self._entity_cls, entity_id)

    def get_by_package(self, import_package_id: UUID) -> list[TStaging]:
        stmt = (
            select(self._entity_cls)
            .where(self._table.c.import_package_id == import_package_id)
            .order_by(self._table.c.staged_at_utc, self._table.c.original_entity_id)
        )
        return list(self.session.execute(stmt).scalars())

    def get_by_package_and_original_id(
        self, import_package_id: UUID, original_entity_id: UUID
    ) -> TStaging | None:
        stmt = (
            select(self._entity_cls)
            .where(self._table.c.import_package_id == import_package_id)
            .where(self._table.c.original_entity_id == original_entity_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_package_and_status(
        self, import_package_id: UUID, statuses: Sequence[StagingValidationStatus]
    ) -> list[TStaging]:
        stmt = (
            select(self._entity_cls)
            .where(self._table.c.import_package_id == import_package_id)
            .where(self._table.c.validation_status.in_(list(statuses)))
            .order_by(self._table.c.staged_at_utc, self._table.c.original_entity_id)
        )
        return list(self.session.execute(stmt).scalars())

    def get_status_counts_by_package(
        self, import_package_id: UUID
    ) -> dict[StagingValidationStatus, int]:
        status_column = self._table.c.validation_status
        stmt = (
            select(status_column, func.count())
            .where(self._table.c.import_package_id == import_package_id)
            .group_by(status_column)
        )
        return {status: int(count) for status, count in self.session.execute(stmt).tuples()}

    def update(self, entity: TStaging) -> None:
        self.session.add(entity)

    def update_range(self, entities: Iterable[TStaging]) -> None:
        self.session.add_all(list(entities))

    def delete_by_package(self, import_package_id: UUID) -> int:
        stmt = delete(self._entity_cls).where(self._table.c.import_package_id == import_package_id)
        result = cast("CursorResult[tuple[()]]", self.session.execute(stmt))
        return result.rowcount


def build_staging_repositories(session: Session) -> StagingRepositorySet:
    repositories: dict[StagingKind, SqlAlchemyStagingRepository[StagingEntity]] = {
        kind: SqlAlchemyStagingRepository(session, STAGING_CLASSES[kind], STAGING_TABLES[kind])
        for kind in StagingKind
    }
    return StagingRepositorySet(repositories)


class SqlAlchemyProductionRepository[TEntity: ProductionEntity]:
    """Shared helpers for production stores; soft-deleted rows are invisible."""

    def __init__(self, session: Session, entity_cls: type[TEntity], table: Table) -> None:
        self.session = session
        self._entity_cls = entity_cls
        self._table = table

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def get_by_id(self, entity_id: UUID) -> TEntity | None:
        entity = self.session.get(self._entity_cls, entity_id)
        if entity is None or entity.is_deleted:
            return None
        return entity

    def update(self, entity: TEntity) -> None:
        self.session.add(entity)

    def _live(self) -> Select[tuple[TEntity]]:
        return select(self._entity_cls).where(self._table.c.is_deleted.is_(False))

    def _list_where(self, column: str, value: object) -> list[TEntity]:
        stmt = (
            self._live()
            .where(self._table.c[column] == value)
            .order_by(self._table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyPersonRepository(SqlAlchemyProductionRepository[Person]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Person, person_table)

    def get_by_national_id(self, national_id: str) -> Person | None:
        needle = national_id.strip().lower()
        if not needle:
            return None
        stmt = (
            self._live()
            .where(func.lower(func.trim(person_table.c.national_id)) == needle)
            .order_by(person_table.c.created_at)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def find_name_candidates(
        self, *, family_name: str, first_name: str, father_name: str
    ) -> list[Person]:
        conditions = []
        if family_name:
            conditions.append(person_table.c.family_name_arabic == family_name)
        if first_name and father_name:
            conditions.append(
                and_(
                    person_table.c.first_name_arabic == first_name,
                    person_table.c.father_name_arabic == father_name,
                )
            )
        if not conditions:
            return []
        stmt = self._live().where(or_(*conditions)).order_by(person_table.c.created_at)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyBuildingRepository(SqlAlchemyProductionRepository[Building]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Building, building_table)

    def get_by_building_code(self, building_code: str) -> Building | None:
        stmt = (
            self._live()
            .where(building_table.c.building_code == building_code)
            .order_by(building_table.c.created_at)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def find_in_bounding_box(
        self, *, min_lat: float, max_lat: float, min_lng: float, max_lng: float
    ) -> list[Building]:
        stmt = (
            self._live()
            .where(building_table.c.latitude.between(min_lat, max_lat))
            .where(building_table.c.longitude.between(min_lng, max_lng))
            .order_by(building_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyPropertyUnitRepository(SqlAlchemyProductionRepository[PropertyUnit]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, PropertyUnit, property_unit_table)

    def get_by_building(self, building_id: UUID) -> list[PropertyUnit]:
        return self._list_where("building_id", building_id)


class SqlAlchemyHouseholdRepository(SqlAlchemyProductionRepository[Household]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Household, household_table)


class SqlAlchemyPersonPropertyRelationRepository(
    SqlAlchemyProductionRepository[PersonPropertyRelation]
):
    def __init__(self, session: Session) -> None:
        super().__init__(session, PersonPropertyRelation, person_property_relation_table)

    def get_by_person(self, person_id: UUID) -> list[PersonPropertyRelation]:
        return self._list_where("person_id", person_id)


class SqlAlchemyClaimRepository(SqlAlchemyProductionRepository[Claim]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Claim, claim_table)

    def get_by_primary_claimant(self, person_id: UUID) -> list[Claim]:
        return self._list_where("primary_claimant_id", person_id)


class SqlAlchemySurveyRepository(SqlAlchemyProductionRepository[Survey]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Survey, survey_table)

    def get_by_building(self, building_id: UUID) -> list[Survey]:
        return self._list_where("building_id", building_id)


class SqlAlchemyEvidenceRepository(SqlAlchemyProductionRepository[Evidence]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Evidence, evidence_table)
