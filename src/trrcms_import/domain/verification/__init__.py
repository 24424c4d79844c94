"""Manifest and integrity verification."""

from __future__ import annotations

from .checksum import (
    compute_content_checksum,
    compute_file_checksum,
    verify_checksum,
)
from .manifest import DEFAULT_SCHEMA_VERSION, MANIFEST_TABLE, Manifest, ManifestParser
from .signature import verify_digital_signature
from .vocabulary import (
    VocabularyCheckItem,
    VocabularyCompatibilityResult,
    check_vocabulary_compatibility,
    compare_versions,
    parse_semver,
)

__all__ = [
    "DEFAULT_SCHEMA_VERSION",
    "MANIFEST_TABLE",
    "Manifest",
    "ManifestParser",
    "VocabularyCheckItem",
    "VocabularyCompatibilityResult",
    "check_vocabulary_compatibility",
    "compare_versions",
    "compute_content_checksum",
    "compute_file_checksum",
    "parse_semver",
    "verify_checksum",
    "verify_digital_signature",
]
