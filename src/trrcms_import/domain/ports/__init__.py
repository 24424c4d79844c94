"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    BuildingRepository,
    ClaimRepository,
    ConflictRepository,
    EvidenceRepository,
    HouseholdRepository,
    ImportPackageRepository,
    PersonPropertyRelationRepository,
    PersonRepository,
    PropertyUnitRepository,
    Repository,
    StagingRepository,
    SurveyRepository,
)
from .storage import (
    AttachmentStorage,
    PackageReader,
    PackageReaderFactory,
    PackageStore,
    Row,
    RowTranslator,
    StoredAttachment,
    StoredPackage,
    VocabularyProvider,
)
from .unit_of_work import (
    ImportRepositories,
    ImportUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AttachmentStorage",
    "BuildingRepository",
    "ClaimRepository",
    "ConflictRepository",
    "EvidenceRepository",
    "HouseholdRepository",
    "ImportPackageRepository",
    "ImportRepositories",
    "ImportUnitOfWork",
    "PackageReader",
    "PackageReaderFactory",
    "PackageStore",
    "PersonPropertyRelationRepository",
    "PersonRepository",
    "PropertyUnitRepository",
    "Repository",
    "RepositoryCollection",
    "Row",
    "RowTranslator",
    "StagingRepository",
    "StoredAttachment",
    "StoredPackage",
    "SurveyRepository",
    "UnitOfWork",
    "VocabularyProvider",
]
