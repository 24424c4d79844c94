"""The eight default validation levels."""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, timedelta
from typing import TYPE_CHECKING

from trrcms_import.domain.model import StagingKind, VocabularyDomain, utcnow
from trrcms_import.domain.model.codes import (
    CLAIM_SOURCE_FIELD_COLLECTION,
    CLAIM_STATUS_DRAFT,
    LIFECYCLE_DRAFT_PENDING_SUBMISSION,
    RELATION_TYPE_OWNER,
)

from .dataset import RecordFinding
from .pipeline import ValidatorResult

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID

    from trrcms_import.domain.model import (
        StagingBuilding,
        StagingClaim,
        StagingEntity,
        StagingEvidence,
        StagingHousehold,
        StagingPerson,
        StagingPersonPropertyRelation,
        StagingPropertyUnit,
        StagingSurvey,
    )
    from trrcms_import.domain.ports import VocabularyProvider

    from .dataset import StagedDataset
    from .pipeline import StagingValidator


SYRIA_LAT_RANGE = (32.0, 37.5)
SYRIA_LNG_RANGE = (35.5, 42.5)
BUILDING_CODE_LENGTH = 17
MAX_NATIONAL_ID_LENGTH = 20
MIN_BIRTH_YEAR = 1900
WKT_PREFIXES = ("POLYGON", "POINT", "MULTIPOLYGON")

_CODE_PARTS: tuple[tuple[str, str, int], ...] = (
    ("governorate_code", "GovernorateCode", 2),
    ("district_code", "DistrictCode", 2),
    ("sub_district_code", "SubDistrictCode", 2),
    ("community_code", "CommunityCode", 3),
    ("neighborhood_code", "NeighborhoodCode", 3),
    ("building_number", "BuildingNumber", 5),
)


@dataclass(slots=True)
class _Collector:
    name: str
    level: int
    started: float = field(default_factory=time.perf_counter)
    findings: list[RecordFinding] = field(default_factory=list[RecordFinding])
    records_checked: int = 0

    def check(
        self,
        record: StagingEntity,
        errors: Iterable[str] = (),
        warnings: Iterable[str] = (),
    ) -> None:
        self.records_checked += 1
        self.add(record, errors, warnings)

    def add(
        self,
        record: StagingEntity,
        errors: Iterable[str] = (),
        warnings: Iterable[str] = (),
    ) -> None:
        error_tuple = tuple(errors)
        warning_tuple = tuple(warnings)
        if error_tuple or warning_tuple:
            self.findings.append(
                RecordFinding(
                    kind=record.kind,
                    record_id=record.id,
                    errors=error_tuple,
                    warnings=warning_tuple,
                )
            )

    def result(self) -> ValidatorResult:
        return ValidatorResult(
            validator_name=self.name,
            level=self.level,
            findings=self.findings,
            records_checked=self.records_checked,
            duration=timedelta(seconds=time.perf_counter() - self.started),
        )


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _in_range(value: float, bounds: tuple[float, float]) -> bool:
    return bounds[0] <= value <= bounds[1]


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def _code_is_valid(
    vocabulary: VocabularyProvider, domain: VocabularyDomain, code: int | None
) -> bool:
    return code is not None and vocabulary.is_valid_code(domain, code)


# ---- level 1 -----------------------------------------------------------------


@dataclass(slots=True)
class DataConsistencyValidator:
    """Required fields, code lengths, vocabulary codes and ranges per kind."""

    vocabulary: VocabularyProvider
    name: str = "DataConsistencyValidator"
    level: int = 1

    def validate(self, dataset: StagedDataset) -> ValidatorResult:
        collector = _Collector(self.name, self.level)
        for building in dataset.buildings:
            collector.check(building, *self._building(building))
        for unit in dataset.property_units:
            collector.check(unit, *self._property_unit(unit))
        for person in dataset.persons:
            collector.check(person, *self._person(person))
        for household in dataset.households:
            collector.check(household, *self._household(household))
        for relation in dataset.relations:
            collector.check(relation, *self._relation(relation))
        for evidence in dataset.evidences:
            collector.check(evidence, *self._evidence(evidence))
        for claim in dataset.claims:
            collector.check(claim, *self._claim(claim))
        for survey in dataset.surveys:
            collector.check(survey, *self._survey(survey))
        return collector.result()

    def _valid(self, domain: VocabularyDomain, code: int | None) -> bool:
        return _code_is_valid(self.vocabulary, domain, code)

    def _building(self, building: StagingBuilding) -> tuple[list[str], list[str]]:
        errors: list[str] = []
        warnings: list[str] = []
        for attribute, label, length in _CODE_PARTS:
            value: str = getattr(building, attribute)
            if _blank(value):
                errors.append(f"{label} is required")
            elif len(value) != length:
                errors.append(f"{label} must be {length} digits")

        if not self._valid(VocabularyDomain.BUILDING_TYPE, building.building_type):
            errors.append(f"Invalid BuildingType: {building.building_type}")
        if not self._valid(VocabularyDomain.BUILDING_STATUS, building.building_status):
            errors.append(f"Invalid BuildingStatus: {building.building_status}")

        if building.number_of_property_units < 0:
            errors.append("NumberOfPropertyUnits cannot be negative")
        if building.number_of_apartments < 0:
            errors.append("NumberOfApartments cannot be negative")
        if building.number_of_shops < 0:
            errors.append("NumberOfShops cannot be negative")
        if (
            building.number_of_property_units > 0
            and building.number_of_apartments + building.number_of_shops
            > building.number_of_property_units
        ):
            warnings.append("Apartments + Shops exceeds total PropertyUnits")

        if building.latitude is not None and not _in_range(building.latitude, SYRIA_LAT_RANGE):
            warnings.append(f"Latitude {building.latitude} outside Syria bounds (32.0-37.5)")
        if building.longitude is not None and not _in_range(building.longitude, SYRIA_LNG_RANGE):
            warnings.append(f"Longitude {building.longitude} outside Syria bounds (35.5-42.5)")
        return errors, warnings

    def _property_unit(self, unit: StagingPropertyUnit) -> tuple[list[str], list[str]]:
        errors: list[str] = []
        warnings: list[str] = []
        if unit.original_building_id is None:
            errors.append("OriginalBuildingId is required")
        if _blank(unit.unit_identifier):
            errors.append("UnitIdentifier is required")
        if not self._valid(VocabularyDomain.PROPERTY_UNIT_TYPE, unit.unit_type):
            errors.append(f"Invalid UnitType: {unit.unit_type}")
        if not self._valid(VocabularyDomain.PROPERTY_UNIT_STATUS, unit.status):
            errors.append(f"Invalid PropertyUnitStatus: {unit.status}")
        if unit.area_square_meters is not None and unit.area_square_meters <= 0:
            warnings.append("AreaSquareMeters should be positive")
        return errors, warnings

    def _person(self, person: StagingPerson) -> tuple[list[str], list[str]]:
        errors: list[str] = []
        warnings: list[str] = []
        if _blank(person.family_name_arabic):
            errors.append("FamilyNameArabic is required")
        if _blank(person.first_name_arabic):
            errors.append("FirstNameArabic is required")
        if _blank(person.father_name_arabic):
            errors.append("FatherNameArabic is required")
        if person.national_id and len(person.national_id) > MAX_NATIONAL_ID_LENGTH:
            warnings.append(
                f"NationalId length ({len(person.national_id)}) exceeds expected maximum"
            )
        if person.year_of_birth is not None and not (
            MIN_BIRTH_YEAR <= person.year_of_birth <= utcnow().year
        ):
            warnings.append(f"YearOfBirth {person.year_of_birth} seems invalid")
        return errors, warnings

    def _household(self, household: StagingHousehold) -> tuple[list[str], list[str]]:
        errors: list[str] = []
        if household.original_property_unit_id is None:
            errors.append("OriginalPropertyUnitId is required")
        if _blank(household.head_of_household_name):
            errors.append("HeadOfHouseholdName is required")
        if household.household_size <= 0:
            errors.append("HouseholdSize must be > 0")
        if household.male_count < 0 or household.female_count < 0:
            errors.append("Gender counts cannot be negative")
        return errors, []

    def _relation(self, relation: StagingPersonPropertyRelation) -> tuple[list[str], list[str]]:
        errors: list[str] = []
        if relation.original_person_id is None:
            errors.append("OriginalPersonId is required")
        if relation.original_property_unit_id is None:
            errors.append("OriginalPropertyUnitId is required")
        if not self._valid(VocabularyDomain.RELATION_TYPE, relation.relation_type):
            errors.append(f"Invalid RelationType: {relation.relation_type}")
        share = relation.ownership_share
        if share is not None and not 0 <= share <= 100:
            errors.append(f"OwnershipShare must be 0-100, got {share}")
        return errors, []

    def _evidence(self, evidence: StagingEvidence) -> tuple[list[str], list[str]]:
        errors: list[str] = []
        warnings: list[str] = []
        if not self._valid(VocabularyDomain.EVIDENCE_TYPE, evidence.evidence_type):
            errors.append(f"Invalid EvidenceType: {evidence.evidence_type}")
        if _blank(evidence.original_file_name):
            errors.append("OriginalFileName is required")
        if evidence.file_size_bytes <= 0:
            warnings.append("FileSizeBytes is 0 or negative")
        if not evidence.has_parent:
            warnings.append("Evidence has no linked Person, Relation, or Claim")
        return errors, warnings

    def _claim(self, claim: StagingClaim) -> tuple[list[str], list[str]]:
        errors: list[str] = []
        if claim.original_property_unit_id is None:
            errors.append("OriginalPropertyUnitId is required")
        if _blank(claim.claim_type):
            errors.append("ClaimType is required")
        if not self._valid(VocabularyDomain.CLAIM_SOURCE, claim.claim_source):
            errors.append(f"Invalid ClaimSource: {claim.claim_source}")
        return errors, []

    def _survey(self, survey: StagingSurvey) -> tuple[list[str], list[str]]:
        errors: list[str] = []
        warnings: list[str] = []
        if survey.original_building_id is None:
            errors.append("OriginalBuildingId is required")
        if survey.survey_date is None:
            errors.append("SurveyDate is required")
        elif _as_utc(survey.survey_date) > utcnow() + timedelta(days=1):
            warnings.append(f"SurveyDate {survey.survey_date:%Y-%m-%d} is in the future")
        return errors, warnings


# ---- level 2 -----------------------------------------------------------------


@dataclass(slots=True)
class CrossEntityReferenceValidator:
    """Every weak parent reference must resolve inside the same batch."""

    name: str = "CrossEntityRelationValidator"
    level: int = 2

    def validate(self, dataset: StagedDataset) -> ValidatorResult:
        collector = _Collector(self.name, self.level)
        buildings = dataset.original_ids(StagingKind.BUILDING)
        units = dataset.original_ids(StagingKind.PROPERTY_UNIT)
        persons = dataset.original_ids(StagingKind.PERSON)
        claims = dataset.original_ids(StagingKind.CLAIM)

        for unit in dataset.property_units:
            collector.check(
                unit,
                _missing(unit.original_building_id, buildings, "PropertyUnit", "Building"),
            )
        for household in dataset.households:
            collector.check(
                household,
                _missing(household.original_property_unit_id, units, "Household", "PropertyUnit"),
            )
        for relation in dataset.relations:
            collector.check(
                relation,
                [
                    *_missing(
                        relation.original_person_id,
                        persons,
                        "PersonPropertyRelation.PersonId",
                        "Person",
                    ),
                    *_missing(
                        relation.original_property_unit_id,
                        units,
                        "PersonPropertyRelation.PropertyUnitId",
                        "PropertyUnit",
                    ),
                ],
            )
        for claim in dataset.claims:
            collector.check(
                claim, _missing(claim.original_property_unit_id, units, "Claim", "PropertyUnit")
            )
        for survey in dataset.surveys:
            collector.check(
                survey, _missing(survey.original_building_id, buildings, "Survey", "Building")
            )
        for evidence in dataset.evidences:
            errors: list[str] = []
            person_id = evidence.original_person_id
            claim_id = evidence.original_claim_id
            if person_id is not None and person_id not in persons:
                errors.append(f"Referenced Person {person_id} not found in batch")
            if claim_id is not None and claim_id not in claims:
                errors.append(f"Referenced Claim {claim_id} not found in batch")
            collector.check(evidence, errors)
        return collector.result()


def _missing(
    reference: UUID | None, known: frozenset[UUID], child: str, parent: str
) -> list[str]:
    # absent references are a level 1 concern
    if reference is None or reference in known:
        return []
    return [f"{child} references {parent} {reference} which does not exist in batch"]


# ---- level 3 -----------------------------------------------------------------


@dataclass(slots=True)
class OwnershipEvidenceValidator:
    name: str = "OwnershipEvidenceValidator"
    level: int = 3

    def validate(self, dataset: StagedDataset) -> ValidatorResult:
        collector = _Collector(self.name, self.level)
        evidenced = {
            evidence.original_person_property_relation_id
            for evidence in dataset.evidences
            if evidence.original_person_property_relation_id is not None
        }
        for relation in dataset.relations:
            if relation.relation_type != RELATION_TYPE_OWNER:
                continue
            warnings = (
                []
                if relation.original_entity_id in evidenced
                else ["Ownership relation has no supporting evidence documents"]
            )
            collector.check(relation, warnings=warnings)
        for evidence in dataset.evidences:
            warnings = ["Evidence record has empty file path"] if _blank(evidence.file_path) else []
            collector.check(evidence, warnings=warnings)
        return collector.result()


# ---- level 4 -----------------------------------------------------------------


@dataclass(slots=True)
class HouseholdStructureValidator:
    name: str = "HouseholdStructureValidator"
    level: int = 4

    def validate(self, dataset: StagedDataset) -> ValidatorResult:
        collector = _Collector(self.name, self.level)
        persons = dataset.original_ids(StagingKind.PERSON)
        members: dict[UUID, int] = defaultdict(int)
        for person in dataset.persons:
            if person.original_household_id is not None:
                members[person.original_household_id] += 1

        for household in dataset.households:
            warnings: list[str] = []
            gender_total = household.gender_total
            if gender_total > 0 and gender_total != household.household_size:
                warnings.append(
                    f"MaleCount({household.male_count}) + FemaleCount({household.female_count}) "
                    f"= {gender_total} ≠ HouseholdSize({household.household_size})"
                )
            head = household.original_head_of_household_person_id
            if head is not None and head not in persons:
                warnings.append(f"Head of household person {head} not found in batch")
            linked = members.get(household.original_entity_id)
            if linked is not None and linked != household.household_size:
                warnings.append(
                    f"Declared HouseholdSize={household.household_size} "
                    f"but {linked} persons linked"
                )
            collector.check(household, warnings=warnings)
        return collector.result()


# ---- level 5 -----------------------------------------------------------------


@dataclass(slots=True)
class SpatialGeometryValidator:
    name: str = "SpatialGeometryValidator"
    level: int = 5

    def validate(self, dataset: StagedDataset) -> ValidatorResult:
        collector = _Collector(self.name, self.level)
        for building in dataset.buildings:
            errors: list[str] = []
            warnings: list[str] = []
            if building.latitude is not None and not _in_range(building.latitude, SYRIA_LAT_RANGE):
                errors.append(f"Latitude {building.latitude} is outside Syria bounds (32.0-37.5)")
            if building.longitude is not None and not _in_range(
                building.longitude, SYRIA_LNG_RANGE
            ):
                errors.append(
                    f"Longitude {building.longitude} is outside Syria bounds (35.5-42.5)"
                )
            if (building.latitude is None) != (building.longitude is None):
                errors.append("Latitude and Longitude must be provided together")
            wkt = building.building_geometry_wkt
            if wkt and wkt.strip() and not wkt.strip().upper().startswith(WKT_PREFIXES):
                warnings.append(
                    "BuildingGeometryWkt does not start with a recognized geometry type"
                )
            collector.check(building, errors, warnings)
        return collector.result()


# ---- level 6 -----------------------------------------------------------------


@dataclass(slots=True)
class ClaimLifecycleValidator:
    name: str = "ClaimLifecycleValidator"
    level: int = 6

    def validate(self, dataset: StagedDataset) -> ValidatorResult:
        collector = _Collector(self.name, self.level)
        for claim in dataset.claims:
            warnings: list[str] = []
            if (
                claim.lifecycle_stage is not None
                and claim.lifecycle_stage != LIFECYCLE_DRAFT_PENDING_SUBMISSION
            ):
                warnings.append(
                    f"Imported claim has LifecycleStage={claim.lifecycle_stage}; "
                    "expected DraftPendingSubmission (will be set to Submitted on commit)"
                )
            if claim.status is not None and claim.status != CLAIM_STATUS_DRAFT:
                warnings.append(
                    f"Imported claim has Status={claim.status}; "
                    "expected Draft (will be set to Submitted on commit)"
                )
            if claim.claim_source != CLAIM_SOURCE_FIELD_COLLECTION:
                warnings.append(
                    f"ClaimSource={claim.claim_source}; expected Field for tablet import"
                )
            collector.check(claim, warnings=warnings)
        return collector.result()


# ---- level 7 -----------------------------------------------------------------


@dataclass(slots=True)
class VocabularyCodeValidator:
    """Codes unknown to the current vocabulary are reported as warnings."""

    vocabulary: VocabularyProvider
    name: str = "VocabularyVersionValidator"
    level: int = 7

    def _unknown(self, domain: VocabularyDomain, code: int | None, label: str) -> list[str]:
        if code is None or self.vocabulary.is_valid_code(domain, code):
            return []
        return [f"Unknown {label} value: {code}"]

    def validate(self, dataset: StagedDataset) -> ValidatorResult:
        collector = _Collector(self.name, self.level)
        for building in dataset.buildings:
            collector.check(
                building,
                warnings=[
                    *self._unknown(
                        VocabularyDomain.BUILDING_TYPE, building.building_type, "BuildingType"
                    ),
                    *self._unknown(
                        VocabularyDomain.BUILDING_STATUS,
                        building.building_status,
                        "BuildingStatus",
                    ),
                    *self._unknown(
                        VocabularyDomain.DAMAGE_LEVEL, building.damage_level, "DamageLevel"
                    ),
                ],
            )
        for unit in dataset.property_units:
            collector.check(
                unit,
                warnings=[
                    *self._unknown(
                        VocabularyDomain.PROPERTY_UNIT_TYPE, unit.unit_type, "PropertyUnitType"
                    ),
                    *self._unknown(
                        VocabularyDomain.PROPERTY_UNIT_STATUS, unit.status, "PropertyUnitStatus"
                    ),
                ],
            )
        for claim in dataset.claims:
            collector.check(
                claim,
                warnings=[
                    *self._unknown(
                        VocabularyDomain.CLAIM_SOURCE, claim.claim_source, "ClaimSource"
                    ),
                    *self._unknown(VocabularyDomain.CASE_PRIORITY, claim.priority, "CasePriority"),
                ],
            )
        return collector.result()


# ---- level 8 -----------------------------------------------------------------


@dataclass(slots=True)
class BuildingUnitCodeValidator:
    name: str = "BuildingUnitCodeValidator"
    level: int = 8

    def validate(self, dataset: StagedDataset) -> ValidatorResult:
        collector = _Collector(self.name, self.level)
        by_code: dict[str, list[StagingBuilding]] = defaultdict(list)
        pending: dict[UUID, tuple[list[str], list[str]]] = {}

        for building in dataset.buildings:
            errors: list[str] = []
            warnings: list[str] = []
            code = building.building_code
            if len(code) != BUILDING_CODE_LENGTH:
                errors.append(
                    f"Composite building ID '{code}' is {len(code)} digits (expected 17)"
                )
            elif not code.isdigit():
                errors.append(f"Composite building ID '{code}' contains non-digit characters")
            provided = (building.building_id or "").strip()
            if provided and provided not in (code, building.building_identifier):
                warnings.append(
                    f"Provided BuildingId '{provided}' doesn't match computed '{code}'"
                )
            key = code if len(code) == BUILDING_CODE_LENGTH else str(building.original_entity_id)
            by_code[key].append(building)
            pending[building.id] = (errors, warnings)

        for code, duplicates in by_code.items():
            if len(duplicates) < 2:
                continue
            for building in duplicates:
                pending[building.id][0].append(
                    f"Duplicate building code '{code}' found {len(duplicates)} times in batch"
                )

        for building in dataset.buildings:
            errors, warnings = pending[building.id]
            collector.check(building, errors, warnings)

        units_by_building: dict[UUID | None, dict[str, list[StagingPropertyUnit]]] = defaultdict(
            lambda: defaultdict(list)
        )
        for unit in dataset.property_units:
            units_by_building[unit.original_building_id][unit.unit_identifier].append(unit)
            collector.records_checked += 1
        for building_id, identifiers in units_by_building.items():
            for identifier, duplicates in identifiers.items():
                if len(duplicates) < 2 or _blank(identifier):
                    continue
                for unit in duplicates:
                    collector.add(
                        unit,
                        [f"Duplicate unit identifier '{identifier}' within building {building_id}"],
                    )
        return collector.result()


def default_validators(vocabulary: VocabularyProvider) -> tuple[StagingValidator, ...]:
    return (
        DataConsistencyValidator(vocabulary=vocabulary),
        CrossEntityReferenceValidator(),
        OwnershipEvidenceValidator(),
        HouseholdStructureValidator(),
        SpatialGeometryValidator(),
        ClaimLifecycleValidator(),
        VocabularyCodeValidator(vocabulary=vocabulary),
        BuildingUnitCodeValidator(),
    )
