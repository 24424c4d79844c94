from __future__ import annotations

import uuid

from trrcms_import.domain.merge import (
    APPLIED_TO_PRODUCTION_NOTE,
    BuildingMergeEngine,
    FieldSource,
    MergeType,
    merge_engine_for,
)
from trrcms_import.domain.model import StagingKind, StagingValidationStatus, Survey
from tests.helpers.entities import ACTOR_ID, make_building, make_staging_building, make_unit
from tests.helpers.fakes import make_fake_repositories


def test_production_pair_reparents_units_and_surveys() -> None:
    repositories = make_fake_repositories()
    master = make_building(latitude=None, longitude=None, number_of_floors=0)
    discarded = make_building(building_code="01010100100100002", number_of_floors=3)
    unit = make_unit(discarded)
    survey = Survey(building_id=discarded.id, property_unit_id=unit.id)
    repositories.buildings.add(master)
    repositories.buildings.add(discarded)
    repositories.property_units.add(unit)
    repositories.surveys.add(survey)

    engine = merge_engine_for(StagingKind.BUILDING, repositories)
    assert isinstance(engine, BuildingMergeEngine)
    result = engine.merge(master.id, discarded.id, None, ACTOR_ID)

    assert result.merge_type is MergeType.PRODUCTION_PRODUCTION
    assert (master.latitude, master.longitude) == (33.5138, 36.2765)
    assert master.number_of_floors == 3
    fields = result.merge_mapping["fields"]
    assert fields["Coordinates"] == FieldSource.DISCARDED
    assert fields["NumberOfFloors"] == FieldSource.DISCARDED
    assert fields["LocationDescription"] == FieldSource.MASTER
    assert unit.building_id == master.id
    assert survey.building_id == master.id
    assert result.references_by_type == {"PropertyUnit": 1, "Survey": 1}
    assert discarded.is_deleted


def test_partial_coordinates_count_as_missing() -> None:
    repositories = make_fake_repositories()
    master = make_building(longitude=None)
    discarded = make_building(building_code="01010100100100002", latitude=33.6, longitude=36.3)
    repositories.buildings.add(master)
    repositories.buildings.add(discarded)

    merge_engine_for(StagingKind.BUILDING, repositories).merge(
        master.id, discarded.id, None, ACTOR_ID
    )

    assert (master.latitude, master.longitude) == (33.6, 36.3)


def test_staging_master_applies_values_to_production() -> None:
    repositories = make_fake_repositories()
    package_id = uuid.uuid4()
    existing = make_building(building_status=1, number_of_apartments=4)
    staged = make_staging_building(package_id, building_status=3, number_of_apartments=0)
    repositories.buildings.add(existing)
    repositories.staging[StagingKind.BUILDING].add(staged)

    result = merge_engine_for(StagingKind.BUILDING, repositories).merge(
        staged.original_entity_id, existing.id, package_id, ACTOR_ID
    )

    assert result.merge_type is MergeType.CROSS_BATCH_MASTER_STAGING
    assert existing.building_status == 3
    # zero counts never overwrite production
    assert existing.number_of_apartments == 4
    assert result.merge_mapping["fields"]["NumberOfApartments"] == FieldSource.PRODUCTION
    assert staged.validation_status is StagingValidationStatus.SKIPPED
    assert staged.validation_warnings == [f"Skipped: {APPLIED_TO_PRODUCTION_NOTE}"]
    assert staged.committed_entity_id == existing.id


def test_staging_rows_of_other_packages_are_not_found() -> None:
    repositories = make_fake_repositories()
    existing = make_building()
    staged = make_staging_building(uuid.uuid4())
    repositories.buildings.add(existing)
    repositories.staging[StagingKind.BUILDING].add(staged)

    result = merge_engine_for(StagingKind.BUILDING, repositories).merge(
        existing.id, staged.original_entity_id, uuid.uuid4(), ACTOR_ID
    )

    assert not result.success
    assert staged.validation_status is StagingValidationStatus.VALID
