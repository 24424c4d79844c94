from __future__ import annotations

import uuid
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from trrcms_import.adapters.uhc import ManifestSchema
from trrcms_import.adapters.uhc.schema import (
    BuildingRow,
    ClaimRow,
    HouseholdRow,
    PropertyUnitRow,
    SurveyRow,
)
from trrcms_import.domain.model.codes import CASE_PRIORITY_NORMAL

PACKAGE_ID = uuid.uuid4()
USER_ID = uuid.uuid4()


def _manifest(**values: object) -> ManifestSchema:
    return ManifestSchema.model_validate(
        {"package_id": str(PACKAGE_ID), "exported_by_user_id": str(USER_ID), **values}
    )


def test_manifest_defaults() -> None:
    manifest = _manifest().to_manifest()

    assert manifest.package_id == PACKAGE_ID
    assert manifest.schema_version == "1.0.0"
    assert manifest.vocab_versions == {}
    assert manifest.digital_signature is None
    assert manifest.total_record_count == 0


def test_manifest_counts_are_lenient() -> None:
    manifest = _manifest(person_count="12", building_count="many", claim_count=None)

    assert manifest.person_count == 12
    assert manifest.building_count == 0
    assert manifest.claim_count == 0


def test_manifest_vocabulary_versions_from_json() -> None:
    manifest = _manifest(vocab_versions='{"building_type": "1.2.0", "relation_type": 2}')

    assert manifest.vocab_versions == {"building_type": "1.2.0", "relation_type": "2"}


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", ""])
def test_manifest_ignores_unusable_vocabulary_versions(raw: str) -> None:
    assert _manifest(vocab_versions=raw).vocab_versions == {}


def test_manifest_dates_are_utc() -> None:
    manifest = _manifest(
        created_utc="2026-03-01T08:00:00", exported_date_utc="2026-03-01T11:00:00+03:00"
    )

    assert manifest.created_utc == datetime(2026, 3, 1, 8, 0, tzinfo=UTC)
    assert manifest.exported_date_utc == datetime(2026, 3, 1, 8, 0, tzinfo=UTC)


def test_manifest_blank_signature_is_none() -> None:
    assert _manifest(digital_signature="   ").digital_signature is None
    assert _manifest(digital_signature="abc").digital_signature == "abc"


def test_manifest_identity_fields_are_strict() -> None:
    with pytest.raises(ValidationError):
        ManifestSchema.model_validate({"package_id": "not-a-uuid", "exported_by_user_id": USER_ID})
    with pytest.raises(ValidationError):
        ManifestSchema.model_validate({"package_id": PACKAGE_ID})


def test_unusable_row_id_gets_fresh_uuid() -> None:
    kept = uuid.uuid4()

    assert BuildingRow.model_validate({"id": str(kept)}).original_entity_id == kept
    assert isinstance(BuildingRow.model_validate({"id": "42"}).original_entity_id, uuid.UUID)
    assert isinstance(BuildingRow.model_validate({}).original_entity_id, uuid.UUID)


def test_building_row_coerces_loose_values() -> None:
    row = BuildingRow.model_validate(
        {
            "building_number": 7,
            "building_type": "2",
            "number_of_floors": 3.0,
            "number_of_shops": "x",
            "year_of_construction": "unknown",
            "latitude": "33.51",
            "longitude": True,
        }
    )

    assert row.building_number == "7"
    assert row.building_type == 2
    assert row.number_of_floors == 3
    assert row.number_of_shops == 0
    assert row.year_of_construction is None
    assert row.latitude == 33.51
    assert row.longitude is None


def test_reference_columns_use_device_names() -> None:
    building_id = uuid.uuid4()

    unit = PropertyUnitRow.model_validate(
        {"building_id": str(building_id), "area_square_meters": "85.5"}
    )

    assert unit.original_building_id == building_id
    assert unit.area_square_meters == 85.5
    assert PropertyUnitRow.model_validate({"building_id": "garbage"}).original_building_id is None


def test_household_flags() -> None:
    household = HouseholdRow.model_validate(
        {"is_female_headed": "Yes", "is_displaced": 0, "household_size": "4"}
    )

    assert household.is_female_headed is True
    assert household.is_displaced is False
    assert household.household_size == 4


def test_claim_priority_defaults_to_normal() -> None:
    assert ClaimRow.model_validate({}).priority == CASE_PRIORITY_NORMAL
    assert ClaimRow.model_validate({"priority": "bad"}).priority == CASE_PRIORITY_NORMAL
    assert ClaimRow.model_validate({"priority": 4}).priority == 4


def test_survey_type_column_and_default_date() -> None:
    survey = SurveyRow.model_validate({"type": "Field", "survey_date": "not a date"})

    assert survey.survey_type == "Field"
    assert survey.survey_date.tzinfo is UTC
