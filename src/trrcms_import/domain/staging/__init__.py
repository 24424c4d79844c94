"""Staging: unpacking packages into isolated per-kind stores."""

from __future__ import annotations

from .registry import DEPENDENCY_ORDER, StagedReferenceIndex, StagingRepositorySet
from .service import StagingResult, StagingService

__all__ = [
    "DEPENDENCY_ORDER",
    "StagedReferenceIndex",
    "StagingRepositorySet",
    "StagingResult",
    "StagingService",
]
