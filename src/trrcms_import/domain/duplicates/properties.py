"""Building-level property duplicate matching."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from trrcms_import.config import DuplicateDetectionConfig
from trrcms_import.domain.model import ConfidenceLevel

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from trrcms_import.domain.model import Building, StagingBuilding, StagingPropertyUnit
    from trrcms_import.domain.ports import BuildingRepository, PropertyUnitRepository


log = getLogger(__name__)

EARTH_RADIUS_METERS: Final[float] = 6_371_000.0
METERS_PER_DEGREE_LAT: Final[float] = 111_320.0
CODE_MATCH_SCORE: Final[float] = 100.0
PROXIMITY_WEIGHT: Final[float] = 80.0
TYPE_MATCH_BONUS: Final[float] = 20.0
SPATIAL_MATCH_THRESHOLD: Final[float] = 70.0


def haversine_meters(
    lat1: float | None, lng1: float | None, lat2: float | None, lng2: float | None
) -> float | None:
    if lat1 is None or lng1 is None or lat2 is None or lng2 is None:
        return None
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def spatial_score(distance_meters: float | None, radius_meters: float) -> float:
    """80 points at distance zero falling to 0 at the radius, plus 20 for the type match."""

    if distance_meters is None or distance_meters > radius_meters:
        return 0.0
    proximity = PROXIMITY_WEIGHT * (1.0 - distance_meters / radius_meters)
    return round(proximity + TYPE_MATCH_BONUS, 1)


def bounding_box(lat: float, lng: float, radius_meters: float) -> dict[str, float]:
    lat_delta = radius_meters / METERS_PER_DEGREE_LAT
    lng_delta = radius_meters / (METERS_PER_DEGREE_LAT * max(math.cos(math.radians(lat)), 1e-6))
    return {
        "min_lat": lat - lat_delta,
        "max_lat": lat + lat_delta,
        "min_lng": lng - lng_delta,
        "max_lng": lng + lng_delta,
    }


@dataclass(frozen=True, slots=True)
class UnitMatch:
    staging_unit_id: UUID
    matched_unit_id: UUID
    unit_identifier: str


@dataclass(frozen=True, slots=True)
class PropertyMatch:
    staging_row_id: UUID
    staging_original_id: UUID
    matched_entity_id: UUID
    staging_identifier: str
    matched_identifier: str
    is_within_batch: bool
    score: float
    confidence: ConfidenceLevel
    building_code_matched: bool = False
    distance_meters: float | None = None
    building_type_matched: bool = False
    unit_matches: tuple[UnitMatch, ...] = ()

    @property
    def pair(self) -> tuple[UUID, UUID]:
        return (self.staging_original_id, self.matched_entity_id)

    def description(self) -> str:
        if self.building_code_matched:
            text = f"Building code exact match (BuildingCode: {self.staging_identifier})"
        else:
            distance = f"{self.distance_meters:.1f}" if self.distance_meters is not None else "N/A"
            text = (
                f"Spatial proximity match within {distance}m, same building type "
                f"(score {self.score}%, {self.confidence} confidence)"
            )
        if self.unit_matches:
            text += f"; {len(self.unit_matches)} matching unit identifier(s)"
        return text

    def matching_criteria(self) -> dict[str, Any]:
        return {
            "building_code_matched": self.building_code_matched,
            "distance_meters": (
                round(self.distance_meters, 2) if self.distance_meters is not None else None
            ),
            "building_type_matched": self.building_type_matched,
            "is_within_batch": self.is_within_batch,
            "unit_matches": [
                {
                    "staging_unit_id": str(unit.staging_unit_id),
                    "matched_unit_id": str(unit.matched_unit_id),
                    "unit_identifier": unit.unit_identifier,
                }
                for unit in self.unit_matches
            ],
        }


@dataclass(slots=True)
class PropertyMatcher:
    """Matches staging buildings by composite code, then by proximity and type."""

    buildings: BuildingRepository
    property_units: PropertyUnitRepository
    config: DuplicateDetectionConfig = field(default_factory=DuplicateDetectionConfig)

    @property
    def radius(self) -> float:
        return float(self.config.property_proximity_meters)

    def detect(
        self,
        staging_buildings: Sequence[StagingBuilding],
        staging_units: Sequence[StagingPropertyUnit],
    ) -> list[PropertyMatch]:
        if not staging_buildings:
            return []
        matches: list[PropertyMatch] = []
        code_matched: set[UUID] = set()

        for staging in staging_buildings:
            production = self.buildings.get_by_building_code(staging.building_code)
            if production is None:
                continue
            matches.append(
                PropertyMatch(
                    staging_row_id=staging.id,
                    staging_original_id=staging.original_entity_id,
                    matched_entity_id=production.id,
                    staging_identifier=staging.building_code,
                    matched_identifier=production.building_code,
                    is_within_batch=False,
                    score=CODE_MATCH_SCORE,
                    confidence=ConfidenceLevel.HIGH,
                    building_code_matched=True,
                    distance_meters=haversine_meters(
                        staging.latitude,
                        staging.longitude,
                        production.latitude,
                        production.longitude,
                    ),
                    building_type_matched=staging.building_type == production.building_type,
                    unit_matches=self._unit_matches(staging, staging_units, production.id),
                )
            )
            code_matched.add(staging.id)
            log.debug(
                "Building code match: staging %s (%s) <-> production %s",
                staging.id,
                staging.building_code,
                production.id,
            )

        for staging in staging_buildings:
            if staging.id in code_matched:
                continue
            matches.extend(self._spatial_production(staging, staging_units))

        matches.extend(_code_within_batch(staging_buildings))
        matches.extend(self._spatial_within_batch(staging_buildings))
        deduplicated = _keep_best(matches)
        log.info(
            "Property matching complete: %s buildings scanned, %s matches found",
            len(staging_buildings),
            len(deduplicated),
        )
        return deduplicated

    def _spatial_production(
        self, staging: StagingBuilding, staging_units: Sequence[StagingPropertyUnit]
    ) -> list[PropertyMatch]:
        if staging.latitude is None or staging.longitude is None:
            return []
        nearby = self.buildings.find_in_bounding_box(
            **bounding_box(staging.latitude, staging.longitude, self.radius)
        )
        matches: list[PropertyMatch] = []
        for candidate in nearby:
            match = self._spatial_match(staging, candidate, candidate.id, within_batch=False)
            if match is None:
                continue
            units = self._unit_matches(staging, staging_units, candidate.id)
            matches.append(_with_units(match, units))
        return matches

    def _spatial_within_batch(
        self, staging_buildings: Sequence[StagingBuilding]
    ) -> list[PropertyMatch]:
        located = [
            building
            for building in staging_buildings
            if building.latitude is not None and building.longitude is not None
        ]
        matches: list[PropertyMatch] = []
        for index, first in enumerate(located):
            for second in located[index + 1 :]:
                match = self._spatial_match(
                    first, second, second.original_entity_id, within_batch=True
                )
                if match is not None:
                    matches.append(match)
        return matches

    def _spatial_match(
        self,
        staging: StagingBuilding,
        other: Building | StagingBuilding,
        matched_id: UUID,
        *,
        within_batch: bool,
    ) -> PropertyMatch | None:
        # same type is required to keep dense urban blocks from flooding the queue
        if staging.building_type is None or staging.building_type != other.building_type:
            return None
        distance = haversine_meters(
            staging.latitude, staging.longitude, other.latitude, other.longitude
        )
        score = spatial_score(distance, self.radius)
        if score < SPATIAL_MATCH_THRESHOLD:
            return None
        return PropertyMatch(
            staging_row_id=staging.id,
            staging_original_id=staging.original_entity_id,
            matched_entity_id=matched_id,
            staging_identifier=staging.building_code,
            matched_identifier=other.building_code,
            is_within_batch=within_batch,
            score=score,
            confidence=ConfidenceLevel.MEDIUM,
            distance_meters=distance,
            building_type_matched=True,
        )

    def _unit_matches(
        self,
        staging: StagingBuilding,
        staging_units: Sequence[StagingPropertyUnit],
        production_building_id: UUID,
    ) -> tuple[UnitMatch, ...]:
        own_units = [
            unit
            for unit in staging_units
            if unit.original_building_id == staging.original_entity_id
        ]
        if not own_units:
            return ()
        production_units = {
            unit.unit_identifier.strip().casefold(): unit
            for unit in self.property_units.get_by_building(production_building_id)
        }
        found: list[UnitMatch] = []
        for unit in own_units:
            matched = production_units.get(unit.unit_identifier.strip().casefold())
            if matched is not None:
                found.append(
                    UnitMatch(
                        staging_unit_id=unit.id,
                        matched_unit_id=matched.id,
                        unit_identifier=unit.unit_identifier,
                    )
                )
        return tuple(found)


def _code_within_batch(staging_buildings: Sequence[StagingBuilding]) -> list[PropertyMatch]:
    """Pairs staged buildings that share a composite building code."""

    by_code: dict[str, list[StagingBuilding]] = {}
    for building in staging_buildings:
        code = building.building_code.strip()
        if code:
            by_code.setdefault(code, []).append(building)

    matches: list[PropertyMatch] = []
    for code, group in by_code.items():
        for index, first in enumerate(group):
            for second in group[index + 1 :]:
                matches.append(
                    PropertyMatch(
                        staging_row_id=first.id,
                        staging_original_id=first.original_entity_id,
                        matched_entity_id=second.original_entity_id,
                        staging_identifier=code,
                        matched_identifier=second.building_code,
                        is_within_batch=True,
                        score=CODE_MATCH_SCORE,
                        confidence=ConfidenceLevel.HIGH,
                        building_code_matched=True,
                        distance_meters=haversine_meters(
                            first.latitude, first.longitude, second.latitude, second.longitude
                        ),
                        building_type_matched=first.building_type == second.building_type,
                    )
                )
                log.debug(
                    "Within-batch building code match: %s <-> %s (%s)",
                    first.original_entity_id,
                    second.original_entity_id,
                    code,
                )
    return matches


def _with_units(match: PropertyMatch, units: tuple[UnitMatch, ...]) -> PropertyMatch:
    return replace(match, unit_matches=units) if units else match


def _keep_best(matches: list[PropertyMatch]) -> list[PropertyMatch]:
    best: dict[frozenset[UUID], PropertyMatch] = {}
    for match in matches:
        key = frozenset(match.pair)
        current = best.get(key)
        if current is None or match.score > current.score:
            best[key] = match
    return list(best.values())
