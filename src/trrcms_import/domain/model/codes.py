"""Vocabulary codes the pipeline reasons about directly.

Packages carry coded values (integers) for every vocabulary-backed field. Only the
codes below carry behaviour; the full sets live in ``DEFAULT_VOCABULARY_CODES`` and
can be replaced by a vocabulary provider.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Final

from .enums import VocabularyDomain

RELATION_TYPE_OWNER: Final[int] = 1
CLAIM_SOURCE_FIELD_COLLECTION: Final[int] = 1
CASE_PRIORITY_NORMAL: Final[int] = 2
LIFECYCLE_DRAFT_PENDING_SUBMISSION: Final[int] = 1
CLAIM_STATUS_DRAFT: Final[int] = 1

DEFAULT_VOCABULARY_CODES: Final = MappingProxyType(
    {
        VocabularyDomain.BUILDING_TYPE: frozenset({1, 2, 3, 4}),
        VocabularyDomain.BUILDING_STATUS: frozenset({1, 2, 3, 4, 5, 99}),
        VocabularyDomain.PROPERTY_UNIT_TYPE: frozenset({1, 2, 3, 4, 5}),
        VocabularyDomain.PROPERTY_UNIT_STATUS: frozenset({1, 2, 3, 4, 5, 6, 99}),
        VocabularyDomain.RELATION_TYPE: frozenset({1, 2, 3, 4, 5, 99}),
        VocabularyDomain.EVIDENCE_TYPE: frozenset({1, 2, 3, 4, 5, 6, 7, 8, 9, 99}),
        VocabularyDomain.CLAIM_SOURCE: frozenset({1, 2, 3, 4, 5, 99}),
        VocabularyDomain.CASE_PRIORITY: frozenset({1, 2, 3, 4}),
        VocabularyDomain.DAMAGE_LEVEL: frozenset({0, 1, 2, 3, 4}),
    }
)
