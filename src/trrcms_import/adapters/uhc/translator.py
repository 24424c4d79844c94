"""Translate package rows into staging entities."""

from __future__ import annotations

import mimetypes
from typing import TYPE_CHECKING, Final

from trrcms_import.domain.model import STAGING_ENTITY_TYPES, StagingEvidence, StagingKind

from .schema import (
    BuildingRow,
    ClaimRow,
    EvidenceRow,
    HouseholdRow,
    PersonPropertyRelationRow,
    PersonRow,
    PropertyUnitRow,
    StagingRowModel,
    SurveyRow,
)

if TYPE_CHECKING:
    from uuid import UUID

    from trrcms_import.domain.model import StagingEntity
    from trrcms_import.domain.ports import Row

ROW_SCHEMAS: Final[dict[StagingKind, type[StagingRowModel]]] = {
    StagingKind.BUILDING: BuildingRow,
    StagingKind.PROPERTY_UNIT: PropertyUnitRow,
    StagingKind.PERSON: PersonRow,
    StagingKind.HOUSEHOLD: HouseholdRow,
    StagingKind.PERSON_PROPERTY_RELATION: PersonPropertyRelationRow,
    StagingKind.CLAIM: ClaimRow,
    StagingKind.SURVEY: SurveyRow,
    StagingKind.EVIDENCE: EvidenceRow,
}


def _normalize_keys(row: Row) -> dict[str, object]:
    # Column lookups are case-insensitive on the device side.
    return {str(key).strip().lower(): value for key, value in row.items()}


def translate_row(kind: StagingKind, row: Row, import_package_id: UUID) -> StagingEntity:
    """Build the staging entity for one row of the ``kind`` table."""

    payload = ROW_SCHEMAS[kind].model_validate(_normalize_keys(row))
    entity = STAGING_ENTITY_TYPES[kind](
        import_package_id=import_package_id,
        **payload.model_dump(),
    )
    if isinstance(entity, StagingEvidence) and entity.mime_type is None:
        entity.mime_type = mimetypes.guess_type(entity.original_file_name)[0]
    return entity
