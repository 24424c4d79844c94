"""Unpack a received package into staging and run the validation levels over it."""

from __future__ import annotations

import time
from logging import getLogger
from typing import TYPE_CHECKING

from trrcms_import.domain.errors import InvalidStateError
from trrcms_import.domain.model import ImportStatus

from .common import diagnostics_json, record_failure, require_package
from .dto import LevelSummary, StagingSummary

if TYPE_CHECKING:
    from uuid import UUID

    from trrcms_import.domain.ports import PackageStore
    from trrcms_import.domain.staging import StagingResult, StagingService
    from trrcms_import.domain.validation import ValidationPipeline, ValidationSummary

    from .common import UnitOfWorkFactory


log = getLogger(__name__)

STAGEABLE_STATUSES = frozenset(
    {ImportStatus.VALIDATING, ImportStatus.VALIDATION_FAILED, ImportStatus.FAILED}
)
_RETRY_STATUSES = frozenset({ImportStatus.VALIDATION_FAILED, ImportStatus.FAILED})


def stage_package(
    import_package_id: UUID,
    actor_id: UUID,
    *,
    staging_service: StagingService,
    validation_pipeline: ValidationPipeline,
    package_store: PackageStore,
    unit_of_work_factory: UnitOfWorkFactory,
) -> StagingSummary:
    """Stage and validate a package; a retry from a failed state starts from scratch."""

    started = time.perf_counter()
    with unit_of_work_factory() as uow:
        package = require_package(uow.repositories, import_package_id)
        if package.status not in STAGEABLE_STATUSES:
            raise InvalidStateError(
                f"Package {package.package_number} cannot be staged in status {package.status}"
            )
        package_key = package.id
        package_id = package.package_id
        is_retry = package.status in _RETRY_STATUSES
        package.begin_staging(actor_id)
        uow.repositories.packages.update(package)
        uow.commit()

    log.info("Staging package %s (retry=%s)", package_key, is_retry)
    try:
        if is_retry:
            staging_service.cleanup_staging(package_key)
        staged = staging_service.unpack_and_stage(package_key, package_store.get_file(package_id))

        with unit_of_work_factory() as uow:
            validation = validation_pipeline.run(package_key, uow.repositories.staging)
            package = require_package(uow.repositories, package_key)
            package.add_validation_results(
                errors_json=validation.errors_json(),
                warnings_json=validation.warnings_json(),
                error_count=validation.error_count,
                warning_count=validation.warning_count,
                actor_id=actor_id,
            )
            uow.repositories.packages.update(package)
            uow.commit()
    except Exception as exc:
        log.exception("Staging failed for package %s", package_key)
        record_failure(
            unit_of_work_factory,
            package_key,
            f"Staging failed: {exc}",
            diagnostics_json("staging", exc),
            actor_id,
        )
        raise

    log.info(
        "Package %s staged: %s record(s), status %s",
        package.package_number,
        staged.total_record_count,
        package.status,
    )
    return _summarize(
        package.package_number,
        package.status,
        staged,
        validation,
        (time.perf_counter() - started) * 1000,
    )


def _summarize(
    package_number: str,
    status: ImportStatus,
    staged: StagingResult,
    validation: ValidationSummary,
    duration_ms: float,
) -> StagingSummary:
    return StagingSummary(
        import_package_id=staged.import_package_id,
        package_number=package_number,
        status=status,
        staged_counts={str(kind): count for kind, count in staged.counts.items()},
        attachment_files_extracted=staged.attachment_files_extracted,
        attachment_bytes_extracted=staged.attachment_bytes_extracted,
        total_records=validation.total_records,
        valid_count=validation.valid_count,
        warning_count=validation.warning_count,
        invalid_count=validation.invalid_count,
        skipped_count=validation.skipped_count,
        validation_error_count=validation.error_count,
        validation_warning_count=validation.warning_count,
        levels=[
            LevelSummary(
                validator_name=result.validator_name,
                level=result.level,
                error_count=result.error_count,
                warning_count=result.warning_count,
                records_checked=result.records_checked,
                failed=result.failed,
                failure_message=result.failure_message,
            )
            for result in validation.level_results
        ],
        duration_ms=round(duration_ms, 1),
    )
