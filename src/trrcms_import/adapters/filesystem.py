"""Local filesystem adapters: the package store and extracted attachments."""

from __future__ import annotations

import hashlib
import re
import shutil
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final

from trrcms_import.domain.errors import IntegrityFailureError, NotFoundError
from trrcms_import.domain.ports import StoredAttachment, StoredPackage

if TYPE_CHECKING:
    from datetime import datetime
    from typing import BinaryIO
    from uuid import UUID

log = getLogger(__name__)

PACKAGE_EXTENSION: Final[str] = ".uhc"
CHECKSUM_EXTENSION: Final[str] = ".sha256"
_CHUNK_SIZE: Final[int] = 80 * 1024
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class LocalPackageStore:
    """Keeps uploaded packages under ``root`` as ``<package_id.hex>.uhc``.

    Each package has a ``.sha256`` companion holding its file digest, which is what
    tells a byte-identical re-upload apart from a different file with the same id.
    """

    def __init__(self, root: Path, archive_root: Path) -> None:
        self.root = root
        self.archive_root = archive_root

    def _package_path(self, package_id: UUID) -> Path:
        return self.root / f"{package_id.hex}{PACKAGE_EXTENSION}"

    def _checksum_path(self, package_id: UUID) -> Path:
        return self.root / f"{package_id.hex}{CHECKSUM_EXTENSION}"

    def _stored_checksum(self, package_id: UUID) -> str:
        checksum_path = self._checksum_path(package_id)
        if checksum_path.exists():
            return checksum_path.read_text(encoding="utf-8").strip().lower()
        digest = hashlib.sha256()
        with self._package_path(package_id).open("rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()

    def store(
        self, package_id: UUID, stream: BinaryIO, expected_checksum: str | None = None
    ) -> StoredPackage:
        package_path = self._package_path(package_id)
        temp_path = package_path.with_name(package_path.name + ".tmp")
        self.root.mkdir(parents=True, exist_ok=True)

        try:
            digest = hashlib.sha256()
            with temp_path.open("wb") as target:
                for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
                    digest.update(chunk)
                    target.write(chunk)
            checksum = digest.hexdigest()

            if expected_checksum and checksum != expected_checksum.strip().lower():
                raise IntegrityFailureError(
                    f"Package {package_id} checksum mismatch: expected "
                    f"{expected_checksum}, computed {checksum}"
                )

            if package_path.exists():
                temp_path.unlink()
                if self._stored_checksum(package_id) != checksum:
                    raise IntegrityFailureError(
                        f"Package {package_id} is already stored with different content"
                    )
                log.info("Package %s already stored, skipping write", package_id)
                return StoredPackage(
                    storage_key=package_path.name,
                    path=package_path,
                    checksum=checksum,
                    stored=False,
                    already_exists=True,
                )

            temp_path.replace(package_path)
            self._checksum_path(package_id).write_text(checksum, encoding="utf-8")
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

        log.info("Stored package %s at %s (SHA-256: %s)", package_id, package_path, checksum)
        return StoredPackage(
            storage_key=package_path.name,
            path=package_path,
            checksum=checksum,
            stored=True,
        )

    def exists(self, package_id: UUID) -> bool:
        return self._package_path(package_id).is_file()

    def get_file(self, package_id: UUID) -> Path:
        path = self._package_path(package_id)
        if not path.is_file():
            raise NotFoundError(f"Package file for {package_id} not found in store")
        return path

    def delete(self, package_id: UUID) -> None:
        self._package_path(package_id).unlink(missing_ok=True)
        self._checksum_path(package_id).unlink(missing_ok=True)
        log.info("Deleted stored package %s", package_id)

    def archive(self, package_id: UUID, now: datetime) -> Path:
        source = self.get_file(package_id)
        target_dir = self.archive_root / f"{now.year:04d}" / f"{now.month:02d}"
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / source.name
        shutil.copy2(source, target)
        log.info("Archived package %s to %s", package_id, target)
        return target


def _safe_file_name(file_name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", Path(file_name).name).strip("._")
    return cleaned or "attachment.bin"


class LocalAttachmentStorage:
    """Extracted attachments live in ``<root>/<import_package_id.hex>/``."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _package_dir(self, import_package_id: UUID) -> Path:
        return self.root / import_package_id.hex

    def save(
        self, import_package_id: UUID, evidence_id: UUID, file_name: str, data: bytes
    ) -> StoredAttachment:
        package_dir = self._package_dir(import_package_id)
        package_dir.mkdir(parents=True, exist_ok=True)
        path = package_dir / f"{evidence_id.hex}_{_safe_file_name(file_name)}"
        path.write_bytes(data)
        return StoredAttachment(path=path, size_bytes=len(data))

    def delete_package(self, import_package_id: UUID) -> int:
        package_dir = self._package_dir(import_package_id)
        if not package_dir.is_dir():
            return 0
        removed = sum(1 for entry in package_dir.iterdir() if entry.is_file())
        shutil.rmtree(package_dir)
        return removed
