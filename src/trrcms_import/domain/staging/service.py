"""Unpack a package into the staging stores.

Reading the package and extracting attachments happens before any transaction is
opened; all staging rows of one package are then persisted in a single commit.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from trrcms_import.domain.model import StagingEvidence, StagingKind

from .registry import DEPENDENCY_ORDER

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path
    from uuid import UUID

    from trrcms_import.domain.model import StagingEntity
    from trrcms_import.domain.ports import (
        AttachmentStorage,
        ImportUnitOfWork,
        PackageReader,
        PackageReaderFactory,
        RowTranslator,
    )


log = getLogger(__name__)

PACKAGE_TABLES: dict[StagingKind, str] = {
    StagingKind.BUILDING: "buildings",
    StagingKind.PROPERTY_UNIT: "property_units",
    StagingKind.PERSON: "persons",
    StagingKind.HOUSEHOLD: "households",
    StagingKind.PERSON_PROPERTY_RELATION: "person_property_relations",
    StagingKind.CLAIM: "claims",
    StagingKind.SURVEY: "surveys",
    StagingKind.EVIDENCE: "evidences",
}
ATTACHMENTS_TABLE = "attachments"


@dataclass(slots=True)
class StagingResult:
    import_package_id: UUID
    counts: dict[StagingKind, int] = field(default_factory=dict[StagingKind, int])
    attachment_files_extracted: int = 0
    attachment_bytes_extracted: int = 0

    @property
    def total_record_count(self) -> int:
        return sum(self.counts.values())

    def count(self, kind: StagingKind) -> int:
        return self.counts.get(kind, 0)


@dataclass(slots=True)
class _StagedBatch:
    records: dict[StagingKind, list[StagingEntity]]
    files: int = 0
    bytes: int = 0


@dataclass(slots=True)
class StagingService:
    reader_factory: PackageReaderFactory
    translate_row: RowTranslator
    attachments: AttachmentStorage
    unit_of_work_factory: Callable[[], ImportUnitOfWork]

    def unpack_and_stage(self, import_package_id: UUID, file_path: Path) -> StagingResult:
        if not file_path.is_file():
            raise FileNotFoundError(f"Package file not found: {file_path}")

        with self.reader_factory(file_path) as reader:
            batch = self._read_batch(reader, import_package_id)

        with self.unit_of_work_factory() as uow:
            staging = uow.repositories.staging
            for kind, repository in staging:
                records = batch.records.get(kind, [])
                if records:
                    repository.add_range(records)
                log.debug("Staged %s %s record(s)", len(records), kind)
            uow.commit()

        result = StagingResult(
            import_package_id=import_package_id,
            counts={kind: len(batch.records.get(kind, [])) for kind in DEPENDENCY_ORDER},
            attachment_files_extracted=batch.files,
            attachment_bytes_extracted=batch.bytes,
        )
        log.info(
            "Staging complete for package %s: %s records, %s attachments (%s bytes)",
            import_package_id,
            result.total_record_count,
            result.attachment_files_extracted,
            result.attachment_bytes_extracted,
        )
        return result

    def cleanup_staging(self, import_package_id: UUID) -> dict[StagingKind, int]:
        log.info("Cleaning up staging data for package %s", import_package_id)
        with self.unit_of_work_factory() as uow:
            deleted = uow.repositories.staging.delete_package(import_package_id)
            uow.commit()
        removed_files = self.attachments.delete_package(import_package_id)
        log.info(
            "Staging cleanup complete for package %s: %s rows, %s attachment file(s)",
            import_package_id,
            sum(deleted.values()),
            removed_files,
        )
        return deleted

    def _read_batch(self, reader: PackageReader, import_package_id: UUID) -> _StagedBatch:
        records: dict[StagingKind, list[StagingEntity]] = {}
        for kind in DEPENDENCY_ORDER:
            table = PACKAGE_TABLES[kind]
            if not reader.has_table(table):
                records[kind] = []
                continue
            records[kind] = [
                self.translate_row(kind, row, import_package_id) for row in reader.rows(table)
            ]

        batch = _StagedBatch(records=records)
        evidences = [
            record
            for record in records[StagingKind.EVIDENCE]
            if isinstance(record, StagingEvidence)
        ]
        if evidences and reader.has_table(ATTACHMENTS_TABLE):
            self._extract_attachments(reader, import_package_id, evidences, batch)
        return batch

    def _extract_attachments(
        self,
        reader: PackageReader,
        import_package_id: UUID,
        evidences: list[StagingEvidence],
        batch: _StagedBatch,
    ) -> None:
        by_id = {str(evidence.original_entity_id).lower(): evidence for evidence in evidences}
        seen: set[str] = set()
        for raw_id, data in reader.attachments():
            key = raw_id.strip().lower()
            evidence = by_id.get(key)
            if evidence is None or not data or key in seen:
                continue
            seen.add(key)
            try:
                stored = self.attachments.save(
                    import_package_id,
                    evidence.original_entity_id,
                    evidence.original_file_name or f"{key}.bin",
                    data,
                )
            except OSError:
                log.warning(
                    "Failed to extract attachment for evidence %s",
                    evidence.original_entity_id,
                    exc_info=True,
                )
                continue
            evidence.file_path = str(stored.path)
            if evidence.mime_type is None and evidence.original_file_name:
                evidence.mime_type = mimetypes.guess_type(evidence.original_file_name)[0]
            batch.files += 1
            batch.bytes += evidence.file_size_bytes or stored.size_bytes
