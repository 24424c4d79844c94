"""Duplicate detection against production and within one batch."""

from __future__ import annotations

from .names import ArabicNameSimilarity, normalize_arabic
from .persons import (
    PersonMatch,
    PersonMatcher,
    PersonScore,
    normalize_gender,
    normalize_phone,
    score_persons,
)
from .properties import (
    PropertyMatch,
    PropertyMatcher,
    UnitMatch,
    bounding_box,
    haversine_meters,
    spatial_score,
)
from .service import DuplicateDetectionResult, DuplicateDetectionService

__all__ = [
    "ArabicNameSimilarity",
    "DuplicateDetectionResult",
    "DuplicateDetectionService",
    "PersonMatch",
    "PersonMatcher",
    "PersonScore",
    "PropertyMatch",
    "PropertyMatcher",
    "UnitMatch",
    "bounding_box",
    "haversine_meters",
    "normalize_arabic",
    "normalize_gender",
    "normalize_phone",
    "score_persons",
    "spatial_score",
]
