from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, ClassVar

from trrcms_import.domain.model import Building, StagingBuilding, StagingKind

from .engine import MergeEngine
from .fields import FieldRule, is_blank_or_zero

if TYPE_CHECKING:
    from uuid import UUID

    from trrcms_import.domain.ports import PropertyUnitRepository, SurveyRepository


log = getLogger(__name__)

BUILDING_FILL_RULES: tuple[FieldRule, ...] = (
    FieldRule.of("LocationDescription", "location_description"),
    FieldRule.of("BuildingId", "building_id"),
    FieldRule.of("NumberOfFloors", "number_of_floors", is_empty=is_blank_or_zero),
    FieldRule.of("YearOfConstruction", "year_of_construction"),
    FieldRule.of("BuildingGeometry", "building_geometry_wkt"),
    FieldRule.of("Coordinates", "latitude", "longitude"),
    FieldRule.of("DamageLevel", "damage_level"),
)

BUILDING_OVERWRITE_RULES: tuple[FieldRule, ...] = (
    FieldRule.of("BuildingType", "building_type"),
    FieldRule.of("BuildingStatus", "building_status"),
    FieldRule.of("NumberOfPropertyUnits", "number_of_property_units", is_empty=is_blank_or_zero),
    FieldRule.of("NumberOfApartments", "number_of_apartments", is_empty=is_blank_or_zero),
    FieldRule.of("NumberOfShops", "number_of_shops", is_empty=is_blank_or_zero),
    *BUILDING_FILL_RULES,
)


@dataclass(slots=True)
class BuildingMergeEngine(MergeEngine[Building, StagingBuilding]):
    property_units: PropertyUnitRepository
    surveys: SurveyRepository

    entity_type: ClassVar[StagingKind] = StagingKind.BUILDING
    fill_rules: ClassVar[tuple[FieldRule, ...]] = BUILDING_FILL_RULES
    overwrite_rules: ClassVar[tuple[FieldRule, ...]] = BUILDING_OVERWRITE_RULES

    def repoint_references(
        self, master_id: UUID, discarded_id: UUID, actor_id: UUID
    ) -> dict[str, int]:
        units = 0
        for unit in self.property_units.get_by_building(discarded_id):
            unit.building_id = master_id
            unit.touch(actor_id)
            self.property_units.update(unit)
            units += 1

        surveys = 0
        for survey in self.surveys.get_by_building(discarded_id):
            survey.building_id = master_id
            survey.touch(actor_id)
            self.surveys.update(survey)
            surveys += 1

        log.debug(
            "Reparented %s unit(s) and %s survey(s) from building %s to %s",
            units,
            surveys,
            discarded_id,
            master_id,
        )
        return {"PropertyUnit": units, "Survey": surveys}
