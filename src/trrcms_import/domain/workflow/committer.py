"""Copy approved staging rows into production, parents first.

Staging rows reference their parents by device GUID. While committing, every GUID is
mapped to the production id it ended up as:

- rows committed in this run;
- rows skipped by a merge, through their ``committed_entity_id``;
- rows discarded by a within-batch merge, through the surviving row (an alias read
  from the resolved merge conflicts);
- GUIDs that already name a live production row.

A row whose parent cannot be mapped is not written and counts as failed.
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from trrcms_import.domain.model import (
    Building,
    Claim,
    ConflictStatus,
    ConflictType,
    Evidence,
    Household,
    Person,
    PersonPropertyRelation,
    PropertyUnit,
    ResolutionAction,
    StagingBuilding,
    StagingClaim,
    StagingEvidence,
    StagingHousehold,
    StagingKind,
    StagingPerson,
    StagingPersonPropertyRelation,
    StagingPropertyUnit,
    StagingSurvey,
    Survey,
)
from trrcms_import.domain.staging import DEPENDENCY_ORDER

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from trrcms_import.domain.model import ProductionEntity, StagingEntity
    from trrcms_import.domain.ports import ImportRepositories, Repository


log = getLogger(__name__)

_WITHIN_BATCH_TYPES = (
    ConflictType.PERSON_DUPLICATE_WITHIN_BATCH,
    ConflictType.PROPERTY_DUPLICATE_WITHIN_BATCH,
)


class UnresolvedReferenceError(LookupError):
    def __init__(self, kind: StagingKind, original_id: UUID | None) -> None:
        if original_id is None:
            message = f"required {kind} reference is missing"
        else:
            message = f"{kind} {original_id} was not committed and is not in production"
        super().__init__(message)
        self.kind = kind
        self.original_id = original_id


@dataclass(slots=True)
class CommitReport:
    import_package_id: UUID
    committed_by_kind: Counter[str] = field(default_factory=Counter[str])
    failed: int = 0
    skipped: int = 0
    failures: list[str] = field(default_factory=list[str])

    @property
    def committed(self) -> int:
        return sum(self.committed_by_kind.values())

    @property
    def total(self) -> int:
        return self.committed + self.failed + self.skipped

    def summary_json(self) -> str:
        return json.dumps(
            {
                "committed": self.committed,
                "failed": self.failed,
                "skipped": self.skipped,
                "committed_by_kind": dict(sorted(self.committed_by_kind.items())),
                "failures": self.failures,
            },
            sort_keys=True,
        )


@dataclass(slots=True)
class IdMap:
    """``(kind, device GUID) -> production id`` with within-batch aliases."""

    lookup_production: Callable[[StagingKind, UUID], bool]
    committed: dict[tuple[StagingKind, UUID], UUID] = field(default_factory=dict)
    aliases: dict[tuple[StagingKind, UUID], UUID] = field(default_factory=dict)

    def record(self, kind: StagingKind, original_id: UUID, production_id: UUID) -> None:
        self.committed[(kind, original_id)] = production_id

    def alias(self, kind: StagingKind, discarded_id: UUID, master_id: UUID) -> None:
        self.aliases[(kind, discarded_id)] = master_id

    def find(self, kind: StagingKind, original_id: UUID) -> UUID | None:
        current = original_id
        visited: set[UUID] = set()
        while current not in visited:
            visited.add(current)
            production_id = self.committed.get((kind, current))
            if production_id is not None:
                return production_id
            alias = self.aliases.get((kind, current))
            if alias is None:
                break
            current = alias
        if self.lookup_production(kind, current):
            return current
        return None

    def resolve(self, kind: StagingKind, original_id: UUID | None) -> UUID | None:
        """Optional reference: None stays None, anything else must resolve."""

        if original_id is None:
            return None
        production_id = self.find(kind, original_id)
        if production_id is None:
            raise UnresolvedReferenceError(kind, original_id)
        return production_id

    def require(self, kind: StagingKind, original_id: UUID | None) -> UUID:
        production_id = self.resolve(kind, original_id)
        if production_id is None:
            raise UnresolvedReferenceError(kind, original_id)
        return production_id


@dataclass(slots=True)
class ProductionCommitter:
    """Writes one package into production inside the caller's unit of work."""

    repositories: ImportRepositories

    def commit(self, import_package_id: UUID, actor_id: UUID) -> CommitReport:
        staging = self.repositories.staging
        records = staging.load_package(import_package_id)
        ids = self._seed_id_map(import_package_id, records)
        report = CommitReport(import_package_id=import_package_id)

        for kind in DEPENDENCY_ORDER:
            batch = records.get(kind, [])
            for record in batch:
                if not record.is_committable:
                    report.skipped += 1
                    continue
                try:
                    entity = self._build(record, ids, import_package_id, actor_id)
                except UnresolvedReferenceError as exc:
                    report.failed += 1
                    report.failures.append(f"{kind} {record.original_entity_id}: {exc}")
                    log.debug("Cannot commit %s %s: %s", kind, record.original_entity_id, exc)
                    continue
                self._production(kind).add(entity)
                record.set_committed_entity_id(entity.id)
                ids.record(kind, record.original_entity_id, entity.id)
                report.committed_by_kind[kind] += 1
            staging[kind].update_range(batch)
            log.debug("Committed %s %s record(s)", report.committed_by_kind[kind], kind)

        self._link_households(records, ids, actor_id)
        log.info(
            "Production commit of package %s: %s committed, %s failed, %s skipped",
            import_package_id,
            report.committed,
            report.failed,
            report.skipped,
        )
        return report

    def _seed_id_map(
        self, import_package_id: UUID, records: dict[StagingKind, list[StagingEntity]]
    ) -> IdMap:
        ids = IdMap(lookup_production=self._exists_in_production)
        for kind, batch in records.items():
            for record in batch:
                if record.committed_entity_id is not None:
                    ids.record(kind, record.original_entity_id, record.committed_entity_id)

        merges = self.repositories.conflicts.get_by_package(
            import_package_id, conflict_types=_WITHIN_BATCH_TYPES, status=ConflictStatus.RESOLVED
        )
        for conflict in merges:
            if conflict.resolution_action is not ResolutionAction.MERGE:
                continue
            if conflict.discarded_entity_id is None or conflict.merged_entity_id is None:
                continue
            ids.alias(conflict.entity_type, conflict.discarded_entity_id, conflict.merged_entity_id)
        return ids

    def _production(self, kind: StagingKind) -> Repository[Any]:
        repositories = self.repositories
        match kind:
            case StagingKind.BUILDING:
                return repositories.buildings
            case StagingKind.PROPERTY_UNIT:
                return repositories.property_units
            case StagingKind.PERSON:
                return repositories.persons
            case StagingKind.HOUSEHOLD:
                return repositories.households
            case StagingKind.PERSON_PROPERTY_RELATION:
                return repositories.relations
            case StagingKind.CLAIM:
                return repositories.claims
            case StagingKind.SURVEY:
                return repositories.surveys
            case StagingKind.EVIDENCE:
                return repositories.evidences

    def _exists_in_production(self, kind: StagingKind, entity_id: UUID) -> bool:
        entity = self._production(kind).get_by_id(entity_id)
        return entity is not None and not entity.is_deleted

    def _build(
        self, record: StagingEntity, ids: IdMap, package_id: UUID, actor_id: UUID
    ) -> ProductionEntity:
        audit: dict[str, Any] = {"source_package_id": package_id, "created_by": actor_id}
        match record:
            case StagingBuilding():
                return _building(record, audit)
            case StagingPropertyUnit():
                return _property_unit(record, ids, audit)
            case StagingPerson():
                return _person(record, audit)
            case StagingHousehold():
                return _household(record, ids, audit)
            case StagingPersonPropertyRelation():
                return _relation(record, ids, audit)
            case StagingClaim():
                return _claim(record, ids, audit)
            case StagingSurvey():
                return _survey(record, ids, audit)
            case StagingEvidence():
                return _evidence(record, ids, audit)
            case _:
                raise TypeError(f"Unsupported staging record {type(record).__name__}")

    def _link_households(
        self, records: dict[StagingKind, list[StagingEntity]], ids: IdMap, actor_id: UUID
    ) -> None:
        """Persons are written before households; fill in their household afterwards."""

        persons = self.repositories.persons
        for record in records.get(StagingKind.PERSON, []):
            if not isinstance(record, StagingPerson) or record.original_household_id is None:
                continue
            if record.committed_entity_id is None:
                continue
            household_id = ids.find(StagingKind.HOUSEHOLD, record.original_household_id)
            person = persons.get_by_id(record.committed_entity_id)
            if household_id is None or person is None or person.household_id is not None:
                continue
            person.household_id = household_id
            person.touch(actor_id)
            persons.update(person)


def _building(record: StagingBuilding, audit: dict[str, Any]) -> Building:
    return Building(
        building_code=record.building_code,
        governorate_code=record.governorate_code,
        district_code=record.district_code,
        sub_district_code=record.sub_district_code,
        community_code=record.community_code,
        neighborhood_code=record.neighborhood_code,
        building_number=record.building_number,
        building_id=record.building_id,
        building_type=record.building_type,
        building_status=record.building_status,
        number_of_property_units=record.number_of_property_units,
        number_of_apartments=record.number_of_apartments,
        number_of_shops=record.number_of_shops,
        number_of_floors=record.number_of_floors,
        year_of_construction=record.year_of_construction,
        damage_level=record.damage_level,
        latitude=record.latitude,
        longitude=record.longitude,
        building_geometry_wkt=record.building_geometry_wkt,
        location_description=record.location_description,
        notes=record.notes,
        **audit,
    )


def _property_unit(
    record: StagingPropertyUnit, ids: IdMap, audit: dict[str, Any]
) -> PropertyUnit:
    return PropertyUnit(
        building_id=ids.require(StagingKind.BUILDING, record.original_building_id),
        unit_identifier=record.unit_identifier,
        unit_type=record.unit_type,
        status=record.status,
        floor_number=record.floor_number,
        number_of_rooms=record.number_of_rooms,
        area_square_meters=record.area_square_meters or record.estimated_area_sqm,
        description=record.description,
        damage_level=record.damage_level,
        **audit,
    )


def _person(record: StagingPerson, audit: dict[str, Any]) -> Person:
    return Person(
        family_name_arabic=record.family_name_arabic,
        first_name_arabic=record.first_name_arabic,
        father_name_arabic=record.father_name_arabic,
        mother_name_arabic=record.mother_name_arabic,
        full_name_english=record.full_name_english,
        national_id=record.national_id,
        year_of_birth=record.year_of_birth,
        gender=record.gender,
        nationality=record.nationality,
        email=record.email,
        mobile_number=record.mobile_number,
        phone_number=record.phone_number,
        relationship_to_head=record.relationship_to_head,
        **audit,
    )


def _household(record: StagingHousehold, ids: IdMap, audit: dict[str, Any]) -> Household:
    return Household(
        property_unit_id=ids.require(StagingKind.PROPERTY_UNIT, record.original_property_unit_id),
        head_of_household_person_id=ids.resolve(
            StagingKind.PERSON, record.original_head_of_household_person_id
        ),
        head_of_household_name=record.head_of_household_name,
        household_size=record.household_size,
        male_count=record.male_count,
        female_count=record.female_count,
        is_female_headed=record.is_female_headed,
        is_displaced=record.is_displaced,
        notes=record.notes,
        **audit,
    )


def _relation(
    record: StagingPersonPropertyRelation, ids: IdMap, audit: dict[str, Any]
) -> PersonPropertyRelation:
    return PersonPropertyRelation(
        person_id=ids.require(StagingKind.PERSON, record.original_person_id),
        property_unit_id=ids.require(StagingKind.PROPERTY_UNIT, record.original_property_unit_id),
        relation_type=record.relation_type,
        contract_type=record.contract_type,
        ownership_share=record.ownership_share,
        start_date=record.start_date,
        end_date=record.end_date,
        notes=record.notes,
        **audit,
    )


def _claim(record: StagingClaim, ids: IdMap, audit: dict[str, Any]) -> Claim:
    return Claim(
        property_unit_id=ids.require(StagingKind.PROPERTY_UNIT, record.original_property_unit_id),
        primary_claimant_id=ids.resolve(StagingKind.PERSON, record.original_primary_claimant_id),
        claim_type=record.claim_type,
        claim_source=record.claim_source,
        priority=record.priority,
        lifecycle_stage=record.lifecycle_stage,
        status=record.status,
        claim_description=record.claim_description,
        legal_basis=record.legal_basis,
        **audit,
    )


def _survey(record: StagingSurvey, ids: IdMap, audit: dict[str, Any]) -> Survey:
    return Survey(
        building_id=ids.require(StagingKind.BUILDING, record.original_building_id),
        property_unit_id=ids.resolve(StagingKind.PROPERTY_UNIT, record.original_property_unit_id),
        field_collector_id=record.original_field_collector_id,
        survey_date=record.survey_date,
        reference_code=record.reference_code,
        survey_type=record.survey_type,
        notes=record.notes,
        **audit,
    )


def _evidence(record: StagingEvidence, ids: IdMap, audit: dict[str, Any]) -> Evidence:
    return Evidence(
        evidence_type=record.evidence_type,
        original_file_name=record.original_file_name,
        file_path=record.file_path,
        file_size_bytes=record.file_size_bytes,
        mime_type=record.mime_type,
        file_hash=record.file_hash,
        description=record.description,
        person_id=ids.resolve(StagingKind.PERSON, record.original_person_id),
        person_property_relation_id=ids.resolve(
            StagingKind.PERSON_PROPERTY_RELATION, record.original_person_property_relation_id
        ),
        claim_id=ids.resolve(StagingKind.CLAIM, record.original_claim_id),
        **audit,
    )
