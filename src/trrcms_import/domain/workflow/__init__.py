"""Import workflow steps, from upload to production commit."""

from __future__ import annotations

from .approval import approve_for_commit
from .commit import commit_package
from .committer import CommitReport, IdMap, ProductionCommitter, UnresolvedReferenceError
from .conflicts import (
    escalate_conflict,
    get_conflict_detail,
    keep_conflict_separate,
    list_conflicts,
    merge_conflict,
)
from .detection import SUPERSEDED_REASON, detect_duplicates
from .dto import (
    ApprovalResult,
    CommitResult,
    ConflictDetail,
    DetectionSummary,
    LevelSummary,
    PackageStatus,
    StagingSummary,
    UploadResult,
)
from .lifecycle import cancel_package, get_package_status, quarantine_package
from .staging import stage_package
from .upload import upload_package

__all__ = [
    "SUPERSEDED_REASON",
    "ApprovalResult",
    "CommitReport",
    "CommitResult",
    "ConflictDetail",
    "DetectionSummary",
    "IdMap",
    "LevelSummary",
    "PackageStatus",
    "ProductionCommitter",
    "StagingSummary",
    "UnresolvedReferenceError",
    "UploadResult",
    "approve_for_commit",
    "cancel_package",
    "commit_package",
    "detect_duplicates",
    "escalate_conflict",
    "get_conflict_detail",
    "get_package_status",
    "keep_conflict_separate",
    "list_conflicts",
    "merge_conflict",
    "quarantine_package",
    "stage_package",
    "upload_package",
]
