"""Ports for the file-side collaborators: package store, attachments, package reader."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping
    from datetime import datetime
    from pathlib import Path
    from types import TracebackType
    from typing import BinaryIO
    from uuid import UUID

    from trrcms_import.domain.model import StagingEntity, StagingKind, VocabularyDomain


@dataclass(frozen=True, slots=True)
class StoredPackage:
    storage_key: str
    path: Path
    checksum: str
    stored: bool
    already_exists: bool = False


@runtime_checkable
class PackageStore(Protocol):
    """Content-addressed keeping of uploaded ``.uhc`` files, keyed by package id."""

    def store(
        self, package_id: UUID, stream: BinaryIO, expected_checksum: str | None = None
    ) -> StoredPackage: ...

    def exists(self, package_id: UUID) -> bool: ...

    def get_file(self, package_id: UUID) -> Path: ...

    def delete(self, package_id: UUID) -> None: ...

    def archive(self, package_id: UUID, now: datetime) -> Path: ...


@dataclass(frozen=True, slots=True)
class StoredAttachment:
    path: Path
    size_bytes: int


@runtime_checkable
class AttachmentStorage(Protocol):
    def save(
        self, import_package_id: UUID, evidence_id: UUID, file_name: str, data: bytes
    ) -> StoredAttachment: ...

    def delete_package(self, import_package_id: UUID) -> int: ...


type Row = dict[str, Any]


@runtime_checkable
class PackageReader(Protocol):
    """Read-only view over the tables of one package file."""

    def __enter__(self) -> PackageReader: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool | None: ...

    def table_names(self) -> list[str]: ...

    def has_table(self, name: str) -> bool: ...

    def columns(self, table: str) -> list[str]: ...

    def rows(self, table: str) -> Iterator[Row]:
        """Yield rows in rowid order."""
        ...

    def attachments(self) -> Iterator[tuple[str, bytes]]: ...


type PackageReaderFactory = Callable[[Path], PackageReader]
type RowTranslator = Callable[[StagingKind, Row, UUID], StagingEntity]
"""Turns one package row into a staging entity of the given kind."""


@runtime_checkable
class VocabularyProvider(Protocol):
    def current_versions(self) -> Mapping[str, str]: ...

    def is_valid_code(self, domain: VocabularyDomain, code: int) -> bool: ...
