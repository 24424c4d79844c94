from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from trrcms_import.domain.errors import InvalidStateError

from .common import require_package
from .dto import PackageStatus

if TYPE_CHECKING:
    from uuid import UUID

    from trrcms_import.domain.staging import StagingService

    from .common import UnitOfWorkFactory


log = getLogger(__name__)


def cancel_package(
    import_package_id: UUID,
    actor_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    staging_service: StagingService | None = None,
    reason: str = "",
    cleanup_staging: bool = True,
) -> PackageStatus:
    """Cancel a package that has not reached a terminal state and drop its staging data."""

    with unit_of_work_factory() as uow:
        package = require_package(uow.repositories, import_package_id)
        if package.is_terminal:
            raise InvalidStateError(
                f"Package {package.package_number} is already {package.status} "
                "and cannot be cancelled"
            )
        package.cancel(reason or "Cancelled by operator", actor_id)
        uow.repositories.packages.update(package)
        uow.commit()
        package_key = package.id
    log.info("Package %s cancelled: %s", package_key, reason)

    if cleanup_staging and staging_service is not None:
        try:
            staging_service.cleanup_staging(package_key)
        except Exception:  # noqa: BLE001
            log.warning("Staging cleanup failed for package %s", package_key, exc_info=True)

    return get_package_status(package_key, unit_of_work_factory=unit_of_work_factory)


def quarantine_package(
    import_package_id: UUID,
    actor_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    reason: str,
) -> PackageStatus:
    with unit_of_work_factory() as uow:
        package = require_package(uow.repositories, import_package_id)
        package.quarantine(reason, actor_id)
        uow.repositories.packages.update(package)
        uow.commit()
        package_key = package.id
    log.warning("Package %s quarantined by operator: %s", package_key, reason)
    return get_package_status(package_key, unit_of_work_factory=unit_of_work_factory)


def get_package_status(
    import_package_id: UUID, *, unit_of_work_factory: UnitOfWorkFactory
) -> PackageStatus:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        package = require_package(repositories, import_package_id)
        staging_counts = {
            str(kind): {str(status): count for status, count in counts.items()}
            for kind, counts in repositories.staging.status_counts(package.id).items()
            if counts
        }
        return PackageStatus(
            import_package_id=package.id,
            package_id=package.package_id,
            package_number=package.package_number,
            file_name=package.file_name,
            status=package.status,
            is_terminal=package.is_terminal,
            manifest_counts={
                "surveys": package.survey_count,
                "buildings": package.building_count,
                "property_units": package.property_unit_count,
                "persons": package.person_count,
                "households": package.household_count,
                "relations": package.relation_count,
                "claims": package.claim_count,
                "documents": package.document_count,
            },
            staging_counts=staging_counts,
            pending_conflicts=repositories.conflicts.count_pending(package.id),
            conflict_count=package.conflict_count,
            validation_error_count=package.validation_error_count,
            validation_warning_count=package.validation_warning_count,
            successful_import_count=package.successful_import_count,
            failed_import_count=package.failed_import_count,
            skipped_record_count=package.skipped_record_count,
            success_rate=round(package.success_rate(), 1),
            error_message=package.error_message,
            processing_notes=package.processing_notes,
            archive_path=package.archive_path,
            imported_date=package.imported_date,
            committed_date=package.committed_date,
        )
