"""SHA-256 helpers: whole-file digests and the manifest-independent content digest.

The content digest covers every user table except the manifest (which carries the
digest itself) and the attachment blobs. Each table contributes a ``TABLE:<name>``
header line followed by one line per row (rowid order) of tab-separated
``column=value`` pairs, columns sorted ordinally, NULL written as ``\\0``.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import BinaryIO

    from trrcms_import.domain.ports import PackageReader

EXCLUDED_TABLES = frozenset({"manifest", "attachments", "sqlite_sequence"})
NULL_MARKER = "\\0"
_CHUNK_SIZE = 1024 * 1024


def compute_file_checksum(source: Path | BinaryIO) -> str:
    digest = hashlib.sha256()
    if isinstance(source, Path):
        with source.open("rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    else:
        for chunk in iter(lambda: source.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _is_content_table(name: str) -> bool:
    lowered = name.lower()
    return lowered not in EXCLUDED_TABLES and not lowered.startswith("sqlite_")


def _format_value(value: object) -> str:
    if value is None:
        return NULL_MARKER
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value).hex()
    return str(value)


def compute_content_checksum(reader: PackageReader) -> str:
    digest = hashlib.sha256()
    tables = sorted(name for name in reader.table_names() if _is_content_table(name))
    for table in tables:
        digest.update(f"TABLE:{table}\n".encode())
        columns = sorted(reader.columns(table))
        for row in reader.rows(table):
            parts = [
                f"{column}={_format_value(row[column])}" for column in columns if column in row
            ]
            digest.update(("\t".join(parts) + "\n").encode())
    return digest.hexdigest()


def verify_checksum(computed: str, expected: str | None) -> bool:
    """An empty expected value means the device did not send one."""

    if not expected or not expected.strip():
        return True
    return computed.strip().lower() == expected.strip().lower()
