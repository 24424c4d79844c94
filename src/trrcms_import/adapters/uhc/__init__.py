"""Public interface for the ``.uhc`` package adapter."""

from __future__ import annotations

from .reader import SqlitePackageReader, open_package, parse_manifest
from .schema import ManifestSchema, StagingRowModel
from .translator import ROW_SCHEMAS, translate_row

__all__ = [
    "ROW_SCHEMAS",
    "ManifestSchema",
    "SqlitePackageReader",
    "StagingRowModel",
    "open_package",
    "parse_manifest",
    "translate_row",
]
