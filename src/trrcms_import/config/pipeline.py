"""Import pipeline settings: upload limits, signatures and duplicate detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from .env import env_bool, env_int, env_json_object
from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_MAX_UPLOAD_SIZE_MB: Final[int] = 500
DEFAULT_STAGING_RETENTION_DAYS: Final[int] = 90
DEFAULT_ALLOWED_EXTENSIONS: Final[tuple[str, ...]] = (".uhc",)

DEFAULT_SERVER_VOCABULARY_VERSIONS: Final[Mapping[str, str]] = MappingProxyType(
    {
        "building_type": "1.0.0",
        "building_status": "1.0.0",
        "property_unit_type": "1.0.0",
        "property_unit_status": "1.0.0",
        "relation_type": "1.0.0",
        "evidence_type": "1.0.0",
        "claim_source": "1.0.0",
        "case_priority": "1.0.0",
        "damage_level": "1.0.0",
    }
)


@dataclass(frozen=True, slots=True)
class DuplicateDetectionConfig:
    person_high_confidence_threshold: int = 90
    person_medium_confidence_threshold: int = 70
    property_proximity_meters: int = 50

    def __post_init__(self) -> None:
        if not 0 < self.person_medium_confidence_threshold <= 100:
            raise ConfigurationError("person_medium_confidence_threshold must be in 1..100")
        if self.person_high_confidence_threshold < self.person_medium_confidence_threshold:
            raise ConfigurationError(
                "person_high_confidence_threshold must not be below the medium threshold"
            )
        if self.property_proximity_meters <= 0:
            raise ConfigurationError("property_proximity_meters must be positive")


@dataclass(frozen=True, slots=True)
class ImportPipelineConfig:
    max_upload_size_mb: int = DEFAULT_MAX_UPLOAD_SIZE_MB
    allowed_extensions: tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS
    require_digital_signature: bool = False
    staging_retention_days: int = DEFAULT_STAGING_RETENTION_DAYS
    server_vocabulary_versions: Mapping[str, str] = field(
        default_factory=lambda: DEFAULT_SERVER_VOCABULARY_VERSIONS
    )
    duplicate_detection: DuplicateDetectionConfig = field(default_factory=DuplicateDetectionConfig)

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def is_allowed_file(self, file_name: str) -> bool:
        lowered = file_name.lower()
        return any(lowered.endswith(ext) for ext in self.allowed_extensions)


def get_pipeline_config() -> ImportPipelineConfig:
    """Build the pipeline settings from ``TRRCMS_*`` environment variables."""

    vocabulary = env_json_object("TRRCMS_VOCABULARY_VERSIONS")
    detection = DuplicateDetectionConfig(
        person_high_confidence_threshold=env_int("TRRCMS_PERSON_HIGH_THRESHOLD", 90),
        person_medium_confidence_threshold=env_int("TRRCMS_PERSON_MEDIUM_THRESHOLD", 70),
        property_proximity_meters=env_int("TRRCMS_PROPERTY_PROXIMITY_METERS", 50),
    )
    max_upload = env_int("TRRCMS_MAX_UPLOAD_MB", DEFAULT_MAX_UPLOAD_SIZE_MB)
    if max_upload <= 0:
        raise ConfigurationError("TRRCMS_MAX_UPLOAD_MB must be positive")
    return ImportPipelineConfig(
        max_upload_size_mb=max_upload,
        require_digital_signature=env_bool("TRRCMS_REQUIRE_SIGNATURE", default=False),
        staging_retention_days=env_int(
            "TRRCMS_STAGING_RETENTION_DAYS", DEFAULT_STAGING_RETENTION_DAYS
        ),
        server_vocabulary_versions=MappingProxyType(vocabulary)
        if vocabulary is not None
        else DEFAULT_SERVER_VOCABULARY_VERSIONS,
        duplicate_detection=detection,
    )
