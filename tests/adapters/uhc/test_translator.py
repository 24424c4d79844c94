from __future__ import annotations

import uuid
from datetime import UTC, datetime

import pytest

from trrcms_import.adapters.uhc import ROW_SCHEMAS, translate_row
from trrcms_import.domain.model import (
    StagingBuilding,
    StagingEvidence,
    StagingKind,
    StagingPersonPropertyRelation,
    StagingValidationStatus,
)

PACKAGE_ID = uuid.uuid4()


def test_every_kind_has_a_row_schema() -> None:
    assert set(ROW_SCHEMAS) == set(StagingKind)


@pytest.mark.parametrize("kind", list(StagingKind))
def test_empty_rows_translate_to_pending_entities(kind: StagingKind) -> None:
    entity = translate_row(kind, {}, PACKAGE_ID)

    assert entity.kind is kind
    assert entity.import_package_id == PACKAGE_ID
    assert entity.validation_status is StagingValidationStatus.PENDING


def test_building_row_keeps_device_id_and_codes() -> None:
    device_id = uuid.uuid4()

    entity = translate_row(
        StagingKind.BUILDING,
        {
            "ID": str(device_id),
            "Governorate_Code": "01",
            "district_code": "02",
            "sub_district_code": "03",
            "community_code": "004",
            "neighborhood_code": "005",
            "building_number": "00006",
            "unexpected_column": "ignored",
        },
        PACKAGE_ID,
    )

    assert isinstance(entity, StagingBuilding)
    assert entity.original_entity_id == device_id
    assert entity.id != device_id
    assert entity.building_code == "01020300400500006"


def test_relation_row_parses_references_and_dates() -> None:
    person_id, unit_id = uuid.uuid4(), uuid.uuid4()

    entity = translate_row(
        StagingKind.PERSON_PROPERTY_RELATION,
        {
            "person_id": str(person_id),
            "property_unit_id": str(unit_id),
            "relation_type": "1",
            "ownership_share": "50",
            "start_date": "2020-05-01",
        },
        PACKAGE_ID,
    )

    assert isinstance(entity, StagingPersonPropertyRelation)
    assert entity.original_person_id == person_id
    assert entity.original_property_unit_id == unit_id
    assert entity.relation_type == 1
    assert entity.ownership_share == 50.0
    assert entity.start_date == datetime(2020, 5, 1, tzinfo=UTC)


def test_evidence_mime_type_is_guessed_from_file_name() -> None:
    guessed = translate_row(
        StagingKind.EVIDENCE, {"original_file_name": "deed.pdf"}, PACKAGE_ID
    )
    declared = translate_row(
        StagingKind.EVIDENCE,
        {"original_file_name": "scan.bin", "mime_type": "image/tiff"},
        PACKAGE_ID,
    )

    assert isinstance(guessed, StagingEvidence)
    assert guessed.mime_type == "application/pdf"
    assert isinstance(declared, StagingEvidence)
    assert declared.mime_type == "image/tiff"
