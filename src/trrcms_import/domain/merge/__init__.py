"""Merging duplicate persons and buildings across production and staging."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from trrcms_import.domain.model import StagingKind

from .buildings import BuildingMergeEngine
from .engine import (
    APPLIED_TO_PRODUCTION_NOTE,
    MERGED_INTO_PRODUCTION_NOTE,
    WITHIN_BATCH_NOTE,
    MergeEngine,
)
from .fields import FieldRule, fill_gaps, overwrite
from .persons import PersonMergeEngine
from .refs import EntityRef, ProductionRef, StagingRef, resolve_ref
from .result import FieldSource, MergeResult, MergeType

if TYPE_CHECKING:
    from trrcms_import.domain.ports import ImportRepositories


def merge_engine_for(
    entity_type: StagingKind, repositories: ImportRepositories
) -> MergeEngine[Any, Any]:
    """Return the engine that merges conflicts of ``entity_type``."""

    staging = repositories.staging
    match entity_type:
        case StagingKind.PERSON:
            return PersonMergeEngine(
                production=repositories.persons,
                staging=staging[StagingKind.PERSON],
                relations=repositories.relations,
                claims=repositories.claims,
            )
        case StagingKind.BUILDING:
            return BuildingMergeEngine(
                production=repositories.buildings,
                staging=staging[StagingKind.BUILDING],
                property_units=repositories.property_units,
                surveys=repositories.surveys,
            )
        case _:
            raise ValueError(f"No merge engine for entity type {entity_type}")


__all__ = [
    "APPLIED_TO_PRODUCTION_NOTE",
    "MERGED_INTO_PRODUCTION_NOTE",
    "WITHIN_BATCH_NOTE",
    "BuildingMergeEngine",
    "EntityRef",
    "FieldRule",
    "FieldSource",
    "MergeEngine",
    "MergeResult",
    "MergeType",
    "PersonMergeEngine",
    "ProductionRef",
    "StagingRef",
    "fill_gaps",
    "merge_engine_for",
    "overwrite",
    "resolve_ref",
]
