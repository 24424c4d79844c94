"""Receive a ``.uhc`` file: manifest, idempotency, storage and integrity checks.

Nothing is staged here. A package leaves this step either Validating, ValidationFailed
(blank schema version) or Quarantined (checksum, signature or vocabulary failure).
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from trrcms_import.config import ImportPipelineConfig
from trrcms_import.domain.errors import PackageRejectedError
from trrcms_import.domain.model import ImportMethod, ImportPackage, ImportStatus
from trrcms_import.domain.verification import (
    check_vocabulary_compatibility,
    compute_content_checksum,
    verify_checksum,
    verify_digital_signature,
)

from .common import next_package_number
from .dto import UploadResult

if TYPE_CHECKING:
    from pathlib import Path
    from uuid import UUID

    from trrcms_import.domain.ports import PackageReaderFactory, PackageStore, VocabularyProvider
    from trrcms_import.domain.ports.storage import StoredPackage
    from trrcms_import.domain.verification import Manifest, ManifestParser

    from .common import UnitOfWorkFactory


log = getLogger(__name__)

CHECKSUM_ERROR = "Checksum verification failed - file may be corrupted or tampered with"
SIGNATURE_ERROR = "Digital signature verification failed"


def upload_package(
    file_path: Path,
    actor_id: UUID,
    *,
    package_store: PackageStore,
    parse_manifest: ManifestParser,
    reader_factory: PackageReaderFactory,
    vocabulary: VocabularyProvider,
    unit_of_work_factory: UnitOfWorkFactory,
    config: ImportPipelineConfig | None = None,
    import_method: ImportMethod = ImportMethod.MANUAL_UPLOAD,
) -> UploadResult:
    """Register ``file_path`` as a new import package, or report it as already known."""

    settings = config or ImportPipelineConfig()
    _check_file(file_path, settings)

    with reader_factory(file_path) as reader:
        manifest = parse_manifest(reader)
        content_checksum = compute_content_checksum(reader)
    log.info(
        "Received package %s (%s) from device %s with %s record(s)",
        manifest.package_id,
        file_path.name,
        manifest.device_id or "unknown",
        manifest.total_record_count,
    )

    with unit_of_work_factory() as uow:
        existing = uow.repositories.packages.get_by_package_id(manifest.package_id)
        if existing is not None:
            log.info(
                "Package %s already imported as %s (%s)",
                manifest.package_id,
                existing.package_number,
                existing.status,
            )
            return UploadResult.duplicate(existing)

    stored: StoredPackage | None = None
    try:
        with file_path.open("rb") as stream:
            stored = package_store.store(manifest.package_id, stream)
        return _register(
            file_path,
            manifest,
            content_checksum,
            stored,
            actor_id,
            settings,
            vocabulary,
            unit_of_work_factory,
            import_method,
        )
    except Exception:
        log.exception("Upload of %s failed", file_path.name)
        if stored is not None and stored.stored:
            _discard_stored(package_store, manifest.package_id)
        raise


def _check_file(file_path: Path, config: ImportPipelineConfig) -> None:
    if not file_path.is_file():
        raise PackageRejectedError(f"Package file not found: {file_path}")
    if not config.is_allowed_file(file_path.name):
        allowed = ", ".join(config.allowed_extensions)
        raise PackageRejectedError(f"Invalid file type '{file_path.name}'. Allowed: {allowed}")
    size = file_path.stat().st_size
    if size == 0:
        raise PackageRejectedError(f"Package file is empty: {file_path.name}")
    if size > config.max_upload_size_bytes:
        raise PackageRejectedError(
            f"Package file is {size} bytes, above the limit of {config.max_upload_size_mb} MB"
        )


def _register(
    file_path: Path,
    manifest: Manifest,
    content_checksum: str,
    stored: StoredPackage,
    actor_id: UUID,
    config: ImportPipelineConfig,
    vocabulary: VocabularyProvider,
    unit_of_work_factory: UnitOfWorkFactory,
    import_method: ImportMethod,
) -> UploadResult:
    errors: list[str] = []
    warnings: list[str] = []

    is_checksum_valid = verify_checksum(content_checksum, manifest.checksum)
    if not is_checksum_valid:
        log.warning(
            "Checksum mismatch for package %s: manifest=%s computed=%s",
            manifest.package_id,
            manifest.checksum,
            content_checksum,
        )
        errors.append(CHECKSUM_ERROR)

    is_signature_valid = verify_digital_signature(
        file_path, manifest.digital_signature, required=config.require_digital_signature
    )
    if not is_signature_valid:
        errors.append(SIGNATURE_ERROR)

    compatibility = check_vocabulary_compatibility(
        manifest.vocab_versions, vocabulary.current_versions()
    )
    if not compatibility.is_compatible:
        errors.append(f"Vocabulary version incompatibility: {compatibility.summary}")
    elif not compatibility.is_fully_compatible:
        warnings.append(f"Vocabulary minor differences detected: {compatibility.summary}")

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        package = ImportPackage.create(
            package_id=manifest.package_id,
            package_number=next_package_number(repositories),
            file_name=file_path.name,
            actor_id=actor_id,
            file_size_bytes=file_path.stat().st_size,
            storage_key=stored.storage_key,
            checksum=manifest.checksum or content_checksum,
            package_created_date=manifest.created_utc,
            package_exported_date=manifest.exported_date_utc,
            exported_by_user_id=manifest.exported_by_user_id,
            device_id=manifest.device_id or None,
            app_version=manifest.app_version or None,
            survey_count=manifest.survey_count,
            building_count=manifest.building_count,
            property_unit_count=manifest.property_unit_count,
            person_count=manifest.person_count,
            household_count=manifest.household_count,
            relation_count=manifest.relation_count,
            claim_count=manifest.claim_count,
            document_count=manifest.document_count,
            total_attachment_size_bytes=manifest.total_attachment_size_bytes,
        )
        package.mark_as_imported(actor_id, import_method)
        # schema first: ValidationFailed may still be quarantined, not the reverse
        package.set_schema_validation(
            is_valid=bool(manifest.schema_version.strip()),
            schema_version=manifest.schema_version or None,
            actor_id=actor_id,
        )
        package.set_security_validation(
            is_checksum_valid=is_checksum_valid,
            is_signature_valid=is_signature_valid,
            digital_signature=manifest.digital_signature,
            actor_id=actor_id,
        )
        package.set_vocabulary_compatibility(
            is_compatible=compatibility.is_compatible,
            versions_json=compatibility.versions_json,
            issues=compatibility.issues_json,
            actor_id=actor_id,
        )
        repositories.packages.add(package)
        uow.commit()

    quarantined = package.status is ImportStatus.QUARANTINED
    if quarantined:
        log.warning("Package %s quarantined: %s", package.package_number, package.error_message)
        message = f"Package quarantined: {errors[0] if errors else package.error_message}"
    else:
        log.info("Package %s accepted as %s", manifest.package_id, package.package_number)
        message = f"Package accepted. {manifest.total_record_count} records ready for staging."

    return UploadResult(
        package_id=manifest.package_id,
        import_package_id=package.id,
        package_number=package.package_number,
        status=package.status,
        is_quarantined=quarantined,
        total_records=manifest.total_record_count,
        message=message,
        errors=errors,
        warnings=warnings,
    )


def _discard_stored(package_store: PackageStore, package_id: UUID) -> None:
    try:
        package_store.delete(package_id)
    except OSError:
        log.warning("Could not remove stored file for package %s", package_id, exc_info=True)
