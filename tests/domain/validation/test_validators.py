from __future__ import annotations

import uuid
from datetime import timedelta

from trrcms_import.adapters.vocabulary import StaticVocabularyProvider
from trrcms_import.domain.model import StagingEntity, StagingKind, utcnow
from trrcms_import.domain.validation import (
    BuildingUnitCodeValidator,
    ClaimLifecycleValidator,
    CrossEntityReferenceValidator,
    DataConsistencyValidator,
    HouseholdStructureValidator,
    OwnershipEvidenceValidator,
    RecordFinding,
    SpatialGeometryValidator,
    StagedDataset,
    ValidatorResult,
    VocabularyCodeValidator,
    default_validators,
)
from tests.helpers.entities import (
    make_staging_building,
    make_staging_claim,
    make_staging_evidence,
    make_staging_household,
    make_staging_person,
    make_staging_relation,
    make_staging_survey,
    make_staging_unit,
)

PACKAGE_ID = uuid.uuid4()
VOCABULARY = StaticVocabularyProvider()


def _dataset(*records: StagingEntity) -> StagedDataset:
    grouped: dict[StagingKind, list[StagingEntity]] = {}
    for record in records:
        grouped.setdefault(record.kind, []).append(record)
    return StagedDataset(records=grouped)


def _finding(result: ValidatorResult, record: StagingEntity) -> RecordFinding | None:
    return next((f for f in result.findings if f.record_id == record.id), None)


def test_default_validators_cover_eight_levels() -> None:
    validators = default_validators(VOCABULARY)

    assert [validator.level for validator in validators] == list(range(1, 9))
    assert validators[1].name == "CrossEntityRelationValidator"
    assert validators[6].name == "VocabularyVersionValidator"


def test_consistent_records_produce_no_findings() -> None:
    building = make_staging_building(PACKAGE_ID)
    unit = make_staging_unit(PACKAGE_ID, building)
    person = make_staging_person(PACKAGE_ID)

    result = DataConsistencyValidator(VOCABULARY).validate(_dataset(building, unit, person))

    assert result.findings == []
    assert result.records_checked == 3
    assert result.error_count == 0


def test_building_code_parts_and_codes_are_checked() -> None:
    building = make_staging_building(
        PACKAGE_ID,
        governorate_code="",
        community_code="01",
        building_type=42,
        number_of_property_units=2,
        number_of_apartments=2,
        number_of_shops=1,
        latitude=40.0,
    )

    result = DataConsistencyValidator(VOCABULARY).validate(_dataset(building))
    finding = _finding(result, building)

    assert finding is not None
    assert "GovernorateCode is required" in finding.errors
    assert "CommunityCode must be 3 digits" in finding.errors
    assert "Invalid BuildingType: 42" in finding.errors
    assert "Apartments + Shops exceeds total PropertyUnits" in finding.warnings
    assert "Latitude 40.0 outside Syria bounds (32.0-37.5)" in finding.warnings


def test_person_and_household_required_fields() -> None:
    person = make_staging_person(
        PACKAGE_ID, first_name_arabic=" ", national_id="1" * 25, year_of_birth=1850
    )
    household = make_staging_household(PACKAGE_ID, head_of_household_name="", household_size=0)

    result = DataConsistencyValidator(VOCABULARY).validate(_dataset(person, household))

    person_finding = _finding(result, person)
    household_finding = _finding(result, household)
    assert person_finding is not None
    assert person_finding.errors == ("FirstNameArabic is required",)
    assert "NationalId length (25) exceeds expected maximum" in person_finding.warnings
    assert "YearOfBirth 1850 seems invalid" in person_finding.warnings
    assert household_finding is not None
    assert "OriginalPropertyUnitId is required" in household_finding.errors
    assert "HouseholdSize must be > 0" in household_finding.errors


def test_relation_share_evidence_claim_and_survey_rules() -> None:
    relation = make_staging_relation(PACKAGE_ID, ownership_share=120.0, relation_type=None)
    evidence = make_staging_evidence(PACKAGE_ID, original_file_name="", file_size_bytes=0)
    claim = make_staging_claim(PACKAGE_ID, claim_type="", claim_source=77)
    survey = make_staging_survey(PACKAGE_ID, survey_date=utcnow() + timedelta(days=3))

    result = DataConsistencyValidator(VOCABULARY).validate(
        _dataset(relation, evidence, claim, survey)
    )

    relation_finding = _finding(result, relation)
    assert relation_finding is not None
    assert "OwnershipShare must be 0-100, got 120.0" in relation_finding.errors
    assert "Invalid RelationType: None" in relation_finding.errors
    evidence_finding = _finding(result, evidence)
    assert evidence_finding is not None
    assert evidence_finding.errors == ("OriginalFileName is required",)
    assert "Evidence has no linked Person, Relation, or Claim" in evidence_finding.warnings
    claim_finding = _finding(result, claim)
    assert claim_finding is not None
    assert "Invalid ClaimSource: 77" in claim_finding.errors
    survey_finding = _finding(result, survey)
    assert survey_finding is not None
    assert "OriginalBuildingId is required" in survey_finding.errors
    assert any("is in the future" in warning for warning in survey_finding.warnings)


def test_cross_references_must_resolve_in_batch() -> None:
    building = make_staging_building(PACKAGE_ID)
    unit = make_staging_unit(PACKAGE_ID, building)
    orphan_unit = make_staging_unit(PACKAGE_ID, original_building_id=uuid.uuid4())
    relation = make_staging_relation(
        PACKAGE_ID, original_person_id=uuid.uuid4(), original_property_unit_id=unit.original_entity_id
    )
    evidence = make_staging_evidence(PACKAGE_ID, original_claim_id=uuid.uuid4())

    result = CrossEntityReferenceValidator().validate(
        _dataset(building, unit, orphan_unit, relation, evidence)
    )

    assert _finding(result, unit) is None
    orphan = _finding(result, orphan_unit)
    assert orphan is not None
    assert orphan.errors[0].startswith("PropertyUnit references Building ")
    relation_finding = _finding(result, relation)
    assert relation_finding is not None
    assert len(relation_finding.errors) == 1
    assert relation_finding.errors[0].startswith("PersonPropertyRelation.PersonId references")
    evidence_finding = _finding(result, evidence)
    assert evidence_finding is not None
    assert "not found in batch" in evidence_finding.errors[0]


def test_ownership_without_evidence_is_a_warning() -> None:
    person = make_staging_person(PACKAGE_ID)
    owned = make_staging_relation(PACKAGE_ID, person)
    evidenced = make_staging_relation(PACKAGE_ID, person)
    tenant = make_staging_relation(PACKAGE_ID, person, relation_type=3)
    document = make_staging_evidence(
        PACKAGE_ID, person, evidenced, file_path="/attachments/deed.pdf"
    )

    result = OwnershipEvidenceValidator().validate(
        _dataset(person, owned, evidenced, tenant, document)
    )

    owned_finding = _finding(result, owned)
    assert owned_finding is not None
    assert owned_finding.warnings == ("Ownership relation has no supporting evidence documents",)
    assert _finding(result, evidenced) is None
    assert _finding(result, tenant) is None
    assert _finding(result, document) is None
    assert result.error_count == 0


def test_household_structure_counts_members() -> None:
    household = make_staging_household(
        PACKAGE_ID, household_size=3, male_count=1, female_count=1
    )
    member = make_staging_person(PACKAGE_ID, original_household_id=household.original_entity_id)

    result = HouseholdStructureValidator().validate(_dataset(household, member))
    finding = _finding(result, household)

    assert finding is not None
    assert finding.errors == ()
    assert "MaleCount(1) + FemaleCount(1) = 2 ≠ HouseholdSize(3)" in finding.warnings
    assert "Declared HouseholdSize=3 but 1 persons linked" in finding.warnings


def test_spatial_checks_require_both_coordinates() -> None:
    half = make_staging_building(PACKAGE_ID, longitude=None)
    outside = make_staging_building(PACKAGE_ID, longitude=50.0, building_geometry_wkt="CIRCLE(1)")

    result = SpatialGeometryValidator().validate(_dataset(half, outside))

    half_finding = _finding(result, half)
    assert half_finding is not None
    assert half_finding.errors == ("Latitude and Longitude must be provided together",)
    outside_finding = _finding(result, outside)
    assert outside_finding is not None
    assert outside_finding.errors == ("Longitude 50.0 is outside Syria bounds (35.5-42.5)",)
    assert outside_finding.warnings == (
        "BuildingGeometryWkt does not start with a recognized geometry type",
    )


def test_claim_lifecycle_only_warns() -> None:
    claim = make_staging_claim(PACKAGE_ID, lifecycle_stage=3, status=2, claim_source=2)

    result = ClaimLifecycleValidator().validate(_dataset(claim))
    finding = _finding(result, claim)

    assert finding is not None
    assert finding.errors == ()
    assert len(finding.warnings) == 3


def test_unknown_vocabulary_codes_are_warnings() -> None:
    building = make_staging_building(PACKAGE_ID, damage_level=9)
    claim = make_staging_claim(PACKAGE_ID, priority=None)

    result = VocabularyCodeValidator(VOCABULARY).validate(_dataset(building, claim))

    finding = _finding(result, building)
    assert finding is not None
    assert finding.warnings == ("Unknown DamageLevel value: 9",)
    assert _finding(result, claim) is None


def test_duplicate_building_codes_and_unit_identifiers() -> None:
    first = make_staging_building(PACKAGE_ID)
    second = make_staging_building(PACKAGE_ID, building_id="something-else")
    short = make_staging_building(PACKAGE_ID, building_number="1")
    unit_a = make_staging_unit(PACKAGE_ID, first, unit_identifier="A")
    unit_b = make_staging_unit(PACKAGE_ID, first, unit_identifier="A")

    result = BuildingUnitCodeValidator().validate(
        _dataset(first, second, short, unit_a, unit_b)
    )

    first_finding = _finding(result, first)
    assert first_finding is not None
    assert first_finding.errors == (
        "Duplicate building code '01010100100100001' found 2 times in batch",
    )
    second_finding = _finding(result, second)
    assert second_finding is not None
    assert second_finding.warnings == (
        "Provided BuildingId 'something-else' doesn't match computed '01010100100100001'",
    )
    short_finding = _finding(result, short)
    assert short_finding is not None
    assert "(expected 17)" in short_finding.errors[0]
    unit_finding = _finding(result, unit_a)
    assert unit_finding is not None
    assert unit_finding.errors[0].startswith("Duplicate unit identifier 'A' within building")
    assert result.records_checked == 5
