"""Application orchestration entry points.

``create_application`` wires the SQLAlchemy unit of work, the filesystem stores, the
``.uhc`` reader and the validation levels into one ``ImportApplication`` whose methods
are the operator-facing workflow steps.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from trrcms_import.adapters.filesystem import LocalAttachmentStorage, LocalPackageStore
from trrcms_import.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyImportUnitOfWork,
    is_started,
    startup,
)
from trrcms_import.adapters.uhc import open_package, parse_manifest, translate_row
from trrcms_import.adapters.vocabulary import StaticVocabularyProvider
from trrcms_import.config import get_database_config, get_pipeline_config, get_storage_config
from trrcms_import.domain import workflow
from trrcms_import.domain.staging import StagingService
from trrcms_import.domain.validation import ValidationPipeline, default_validators

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path
    from uuid import UUID

    from sqlalchemy.engine import Engine

    from trrcms_import.config import ImportPipelineConfig, StorageConfig
    from trrcms_import.domain.model import ConflictStatus, ImportMethod
    from trrcms_import.domain.ports import PackageStore, VocabularyProvider
    from trrcms_import.domain.workflow.common import UnitOfWorkFactory

log = getLogger(__name__)


@dataclass(slots=True)
class ImportApplication:
    config: ImportPipelineConfig
    unit_of_work_factory: UnitOfWorkFactory
    package_store: PackageStore
    staging_service: StagingService
    validation_pipeline: ValidationPipeline
    vocabulary: VocabularyProvider

    def upload(
        self, file_path: Path, actor_id: UUID, *, import_method: ImportMethod | None = None
    ) -> workflow.UploadResult:
        extra = {"import_method": import_method} if import_method is not None else {}
        return workflow.upload_package(
            file_path,
            actor_id,
            package_store=self.package_store,
            parse_manifest=parse_manifest,
            reader_factory=open_package,
            vocabulary=self.vocabulary,
            unit_of_work_factory=self.unit_of_work_factory,
            config=self.config,
            **extra,
        )

    def stage(self, package_ref: UUID, actor_id: UUID) -> workflow.StagingSummary:
        return workflow.stage_package(
            package_ref,
            actor_id,
            staging_service=self.staging_service,
            validation_pipeline=self.validation_pipeline,
            package_store=self.package_store,
            unit_of_work_factory=self.unit_of_work_factory,
        )

    def detect(self, package_ref: UUID, actor_id: UUID) -> workflow.DetectionSummary:
        return workflow.detect_duplicates(
            package_ref,
            actor_id,
            unit_of_work_factory=self.unit_of_work_factory,
            config=self.config.duplicate_detection,
        )

    def conflicts(
        self,
        package_ref: UUID,
        *,
        conflict_type: str | None = None,
        status: ConflictStatus | None = None,
    ) -> list[workflow.ConflictDetail]:
        return workflow.list_conflicts(
            package_ref,
            unit_of_work_factory=self.unit_of_work_factory,
            conflict_type=conflict_type,
            status=status,
        )

    def conflict(self, conflict_id: UUID) -> workflow.ConflictDetail:
        return workflow.get_conflict_detail(
            conflict_id, unit_of_work_factory=self.unit_of_work_factory
        )

    def merge(
        self,
        conflict_id: UUID,
        actor_id: UUID,
        *,
        master_entity_id: UUID | None = None,
        reason: str = "",
    ) -> workflow.ConflictDetail:
        return workflow.merge_conflict(
            conflict_id,
            actor_id,
            unit_of_work_factory=self.unit_of_work_factory,
            master_entity_id=master_entity_id,
            reason=reason,
        )

    def keep_separate(
        self, conflict_id: UUID, actor_id: UUID, *, reason: str = ""
    ) -> workflow.ConflictDetail:
        return workflow.keep_conflict_separate(
            conflict_id, actor_id, unit_of_work_factory=self.unit_of_work_factory, reason=reason
        )

    def escalate(
        self, conflict_id: UUID, actor_id: UUID, *, reason: str = ""
    ) -> workflow.ConflictDetail:
        return workflow.escalate_conflict(
            conflict_id, actor_id, unit_of_work_factory=self.unit_of_work_factory, reason=reason
        )

    def approve(
        self, package_ref: UUID, actor_id: UUID, *, record_ids: Iterable[UUID] | None = None
    ) -> workflow.ApprovalResult:
        selected = list(record_ids or ())
        return workflow.approve_for_commit(
            package_ref,
            actor_id,
            unit_of_work_factory=self.unit_of_work_factory,
            approve_all=not selected,
            record_ids=selected or None,
        )

    def commit(self, package_ref: UUID, actor_id: UUID) -> workflow.CommitResult:
        return workflow.commit_package(
            package_ref,
            actor_id,
            unit_of_work_factory=self.unit_of_work_factory,
            package_store=self.package_store,
        )

    def cancel(
        self, package_ref: UUID, actor_id: UUID, *, reason: str = ""
    ) -> workflow.PackageStatus:
        return workflow.cancel_package(
            package_ref,
            actor_id,
            unit_of_work_factory=self.unit_of_work_factory,
            staging_service=self.staging_service,
            reason=reason,
        )

    def quarantine(
        self, package_ref: UUID, actor_id: UUID, *, reason: str
    ) -> workflow.PackageStatus:
        return workflow.quarantine_package(
            package_ref, actor_id, unit_of_work_factory=self.unit_of_work_factory, reason=reason
        )

    def status(self, package_ref: UUID) -> workflow.PackageStatus:
        return workflow.get_package_status(
            package_ref, unit_of_work_factory=self.unit_of_work_factory
        )


def create_application(
    *,
    storage: StorageConfig | None = None,
    config: ImportPipelineConfig | None = None,
    engine: Engine | None = None,
    database_uri: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ImportApplication:
    """Build the application from configuration, starting the database adapter if needed."""

    storage_config = storage or get_storage_config()
    pipeline_config = config or get_pipeline_config()

    if unit_of_work_factory is None:
        if not is_started():
            uri = database_uri or get_database_config(storage=storage_config).uri
            startup(engine=engine, database_uri=uri)
        unit_of_work_factory = SqlAlchemyImportUnitOfWork

    vocabulary = StaticVocabularyProvider.from_config(pipeline_config)
    package_store = LocalPackageStore(storage_config.packages_dir(), storage_config.archive_dir())
    staging_service = StagingService(
        reader_factory=open_package,
        translate_row=translate_row,
        attachments=LocalAttachmentStorage(storage_config.attachments_dir()),
        unit_of_work_factory=unit_of_work_factory,
    )
    validation_pipeline = ValidationPipeline().extend(default_validators(vocabulary))

    log.info(
        "Import application ready: data_dir=%s, require_signature=%s",
        storage_config.resolve_data_dir(),
        pipeline_config.require_digital_signature,
    )
    return ImportApplication(
        config=pipeline_config,
        unit_of_work_factory=unit_of_work_factory,
        package_store=package_store,
        staging_service=staging_service,
        validation_pipeline=validation_pipeline,
        vocabulary=vocabulary,
    )
