from __future__ import annotations

import hashlib
import io
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from trrcms_import.adapters.filesystem import LocalAttachmentStorage, LocalPackageStore
from trrcms_import.domain.errors import IntegrityFailureError, NotFoundError

if TYPE_CHECKING:
    from pathlib import Path

PAYLOAD = b"SQLite format 3\x00 pretend package body"


def _store(tmp_path: Path) -> LocalPackageStore:
    return LocalPackageStore(tmp_path / "packages", tmp_path / "archives")


def test_store_writes_package_and_checksum(tmp_path: Path) -> None:
    store = _store(tmp_path)
    package_id = uuid.uuid4()
    checksum = hashlib.sha256(PAYLOAD).hexdigest()

    stored = store.store(package_id, io.BytesIO(PAYLOAD), checksum.upper())

    assert stored.stored
    assert not stored.already_exists
    assert stored.checksum == checksum
    assert stored.path.read_bytes() == PAYLOAD
    assert stored.storage_key == f"{package_id.hex}.uhc"
    assert store.exists(package_id)
    assert store.get_file(package_id) == stored.path
    assert sorted(path.name for path in (tmp_path / "packages").iterdir()) == [
        f"{package_id.hex}.sha256",
        f"{package_id.hex}.uhc",
    ]


def test_identical_reupload_is_deduplicated(tmp_path: Path) -> None:
    store = _store(tmp_path)
    package_id = uuid.uuid4()
    store.store(package_id, io.BytesIO(PAYLOAD))

    again = store.store(package_id, io.BytesIO(PAYLOAD))

    assert not again.stored
    assert again.already_exists
    assert not (tmp_path / "packages" / f"{package_id.hex}.uhc.tmp").exists()


def test_different_content_for_same_package_is_rejected(tmp_path: Path) -> None:
    store = _store(tmp_path)
    package_id = uuid.uuid4()
    store.store(package_id, io.BytesIO(PAYLOAD))

    with pytest.raises(IntegrityFailureError, match="different content"):
        store.store(package_id, io.BytesIO(PAYLOAD + b"tampered"))

    assert store.get_file(package_id).read_bytes() == PAYLOAD


def test_checksum_mismatch_leaves_nothing_behind(tmp_path: Path) -> None:
    store = _store(tmp_path)
    package_id = uuid.uuid4()

    with pytest.raises(IntegrityFailureError, match="checksum mismatch"):
        store.store(package_id, io.BytesIO(PAYLOAD), "0" * 64)

    assert not store.exists(package_id)
    assert list((tmp_path / "packages").iterdir()) == []


def test_missing_package_file(tmp_path: Path) -> None:
    store = _store(tmp_path)

    with pytest.raises(NotFoundError):
        store.get_file(uuid.uuid4())


def test_delete_removes_package_and_checksum(tmp_path: Path) -> None:
    store = _store(tmp_path)
    package_id = uuid.uuid4()
    store.store(package_id, io.BytesIO(PAYLOAD))

    store.delete(package_id)
    store.delete(package_id)

    assert not store.exists(package_id)
    assert list((tmp_path / "packages").iterdir()) == []


def test_archive_copies_into_year_month_folder(tmp_path: Path) -> None:
    store = _store(tmp_path)
    package_id = uuid.uuid4()
    store.store(package_id, io.BytesIO(PAYLOAD))

    target = store.archive(package_id, datetime(2026, 3, 9, 12, 0, tzinfo=UTC))

    assert target == tmp_path / "archives" / "2026" / "03" / f"{package_id.hex}.uhc"
    assert target.read_bytes() == PAYLOAD
    assert store.exists(package_id)


def test_attachment_storage_sanitizes_names(tmp_path: Path) -> None:
    storage = LocalAttachmentStorage(tmp_path / "attachments")
    package_id, evidence_id = uuid.uuid4(), uuid.uuid4()

    saved = storage.save(package_id, evidence_id, "../../etc/صك ملكية.pdf", b"%PDF")
    unnamed = storage.save(package_id, uuid.uuid4(), "...", b"")

    assert saved.path.parent == tmp_path / "attachments" / package_id.hex
    assert saved.path.name == f"{evidence_id.hex}_pdf"
    assert saved.size_bytes == 4
    assert unnamed.path.name.endswith("_attachment.bin")


def test_attachment_storage_deletes_package_folder(tmp_path: Path) -> None:
    storage = LocalAttachmentStorage(tmp_path / "attachments")
    package_id = uuid.uuid4()
    storage.save(package_id, uuid.uuid4(), "a.jpg", b"1")
    storage.save(package_id, uuid.uuid4(), "b.jpg", b"2")

    assert storage.delete_package(package_id) == 2
    assert storage.delete_package(package_id) == 0
    assert not (tmp_path / "attachments" / package_id.hex).exists()
