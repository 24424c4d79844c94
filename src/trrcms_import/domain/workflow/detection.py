"""Duplicate detection step: supersede stale conflicts, detect, record the outcome."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from trrcms_import.config import DuplicateDetectionConfig
from trrcms_import.domain.duplicates import DuplicateDetectionService
from trrcms_import.domain.errors import InvalidStateError
from trrcms_import.domain.model import ConflictStatus, ImportStatus

from .common import diagnostics_json, record_failure, require_package
from .dto import DetectionSummary

if TYPE_CHECKING:
    from uuid import UUID

    from trrcms_import.domain.ports import ImportRepositories

    from .common import UnitOfWorkFactory


log = getLogger(__name__)

DETECTABLE_STATUSES = frozenset({ImportStatus.STAGING, ImportStatus.REVIEWING_CONFLICTS})
SUPERSEDED_REASON = "Superseded by re-run of duplicate detection"


def detect_duplicates(
    import_package_id: UUID,
    actor_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    config: DuplicateDetectionConfig | None = None,
) -> DetectionSummary:
    """Run duplicate detection and move the package to conflict review or ready-to-commit."""

    with unit_of_work_factory() as uow:
        package = require_package(uow.repositories, import_package_id)
        if package.status not in DETECTABLE_STATUSES:
            raise InvalidStateError(
                f"Duplicate detection requires status Staging or ReviewingConflicts; "
                f"package {package.package_number} is {package.status}"
            )
        package_key = package.id

    try:
        with unit_of_work_factory() as uow:
            repositories = uow.repositories
            package = require_package(repositories, package_key)
            superseded = _supersede_pending(repositories, package_key, actor_id)
            service = DuplicateDetectionService(repositories, config or DuplicateDetectionConfig())
            result = service.detect(package_key, actor_id)
            package.set_conflict_results(
                person_duplicates=result.person_duplicates_found,
                property_duplicates=result.property_duplicates_found,
                actor_id=actor_id,
            )
            repositories.packages.update(package)
            uow.commit()
    except Exception as exc:
        log.exception("Duplicate detection failed for package %s", package_key)
        record_failure(
            unit_of_work_factory,
            package_key,
            f"Duplicate detection failed: {exc}",
            diagnostics_json("duplicate_detection", exc),
            actor_id,
        )
        raise

    return DetectionSummary(
        import_package_id=package_key,
        status=package.status,
        persons_scanned=result.persons_scanned,
        buildings_scanned=result.buildings_scanned,
        person_duplicates=result.person_duplicates_found,
        property_duplicates=result.property_duplicates_found,
        superseded_conflicts=superseded,
        conflict_ids=list(result.conflict_ids),
        duration_ms=round(result.duration.total_seconds() * 1000, 1),
    )


def _supersede_pending(
    repositories: ImportRepositories, import_package_id: UUID, actor_id: UUID
) -> int:
    pending = repositories.conflicts.get_by_package(
        import_package_id, status=ConflictStatus.PENDING_REVIEW
    )
    for conflict in pending:
        conflict.ignore(SUPERSEDED_REASON, actor_id)
        repositories.conflicts.update(conflict)
    if pending:
        log.info(
            "Superseded %s pending conflict(s) of package %s", len(pending), import_package_id
        )
    return len(pending)
