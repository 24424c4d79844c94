"""The package manifest as seen by the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from trrcms_import.domain.model import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from trrcms_import.domain.ports import PackageReader

MANIFEST_TABLE = "manifest"
DEFAULT_SCHEMA_VERSION = "1.0.0"


@dataclass(frozen=True, kw_only=True)
class Manifest:
    package_id: UUID
    exported_by_user_id: UUID
    schema_version: str = DEFAULT_SCHEMA_VERSION
    form_schema_version: str = DEFAULT_SCHEMA_VERSION
    created_utc: datetime = field(default_factory=utcnow)
    exported_date_utc: datetime = field(default_factory=utcnow)
    device_id: str = ""
    app_version: str = ""
    checksum: str = ""
    digital_signature: str | None = None

    survey_count: int = 0
    building_count: int = 0
    property_unit_count: int = 0
    person_count: int = 0
    household_count: int = 0
    relation_count: int = 0
    claim_count: int = 0
    document_count: int = 0
    total_attachment_size_bytes: int = 0

    vocab_versions: dict[str, str] = field(default_factory=dict[str, str])

    @property
    def total_record_count(self) -> int:
        return (
            self.survey_count
            + self.building_count
            + self.property_unit_count
            + self.person_count
            + self.household_count
            + self.relation_count
            + self.claim_count
            + self.document_count
        )


type ManifestParser = Callable[[PackageReader], Manifest]
"""Reads the key/value manifest table; raises ``ManifestError`` when it is unusable."""
