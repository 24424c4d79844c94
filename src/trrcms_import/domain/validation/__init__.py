"""Multi-level validation of staged package content."""

from __future__ import annotations

from .dataset import RecordFinding, StagedDataset
from .pipeline import (
    KindStatusCounts,
    StagingValidator,
    ValidationPipeline,
    ValidationSummary,
    ValidatorResult,
    apply_finding,
)
from .validators import (
    BuildingUnitCodeValidator,
    ClaimLifecycleValidator,
    CrossEntityReferenceValidator,
    DataConsistencyValidator,
    HouseholdStructureValidator,
    OwnershipEvidenceValidator,
    SpatialGeometryValidator,
    VocabularyCodeValidator,
    default_validators,
)

__all__ = [
    "BuildingUnitCodeValidator",
    "ClaimLifecycleValidator",
    "CrossEntityReferenceValidator",
    "DataConsistencyValidator",
    "HouseholdStructureValidator",
    "KindStatusCounts",
    "OwnershipEvidenceValidator",
    "RecordFinding",
    "SpatialGeometryValidator",
    "StagedDataset",
    "StagingValidator",
    "ValidationPipeline",
    "ValidationSummary",
    "ValidatorResult",
    "VocabularyCodeValidator",
    "apply_finding",
    "default_validators",
]
