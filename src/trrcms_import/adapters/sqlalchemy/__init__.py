"""SQLAlchemy adapter package for the import pipeline."""

from __future__ import annotations

from .mappings import STAGING_TABLES, create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyBuildingRepository,
    SqlAlchemyConflictRepository,
    SqlAlchemyImportPackageRepository,
    SqlAlchemyPersonRepository,
    SqlAlchemyStagingRepository,
    build_staging_repositories,
)
from .unit_of_work import (
    SqlAlchemyImportUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "STAGING_TABLES",
    "SqlAlchemyBuildingRepository",
    "SqlAlchemyConflictRepository",
    "SqlAlchemyImportPackageRepository",
    "SqlAlchemyImportUnitOfWork",
    "SqlAlchemyPersonRepository",
    "SqlAlchemyStagingRepository",
    "StartupError",
    "build_staging_repositories",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
