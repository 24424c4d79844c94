"""Read-only access to ``.uhc`` packages (SQLite files) through SQLAlchemy."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Literal
from urllib.parse import quote

from pydantic import ValidationError
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.pool import NullPool

from trrcms_import.domain.errors import ManifestError
from trrcms_import.domain.staging.service import ATTACHMENTS_TABLE
from trrcms_import.domain.verification import MANIFEST_TABLE

from .schema import ManifestSchema

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine

    from trrcms_import.domain.ports import PackageReader, Row
    from trrcms_import.domain.verification import Manifest


log = getLogger(__name__)

_ROWID = "__rowid__"


class SqlitePackageReader:
    """Opens one package read-only; use as a context manager."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._engine: Engine | None = None
        self._connection: Connection | None = None
        self._tables: list[str] = []

    def __enter__(self) -> SqlitePackageReader:
        uri = f"sqlite+pysqlite:///file:{quote(self.path.resolve().as_posix())}?mode=ro&uri=true"
        self._engine = create_engine(uri, poolclass=NullPool)
        try:
            self._connection = self._engine.connect()
            self._tables = sorted(inspect(self._connection).get_table_names())
        except DBAPIError as exc:
            self._close()
            raise ManifestError(
                f"Invalid .uhc package: {self.path.name} is not a readable SQLite database"
            ) from exc
        log.debug("Opened package %s with tables %s", self.path.name, self._tables)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self._close()
        return False

    def _close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            raise RuntimeError("Package reader is not open")
        return self._connection

    def table_names(self) -> list[str]:
        return list(self._tables)

    def has_table(self, name: str) -> bool:
        return name in self._tables

    def _require_table(self, name: str) -> str:
        if name not in self._tables:
            raise LookupError(f"Package {self.path.name} has no table {name!r}")
        return name

    def columns(self, table: str) -> list[str]:
        name = self._require_table(table)
        return [str(column["name"]) for column in inspect(self.connection).get_columns(name)]

    def rows(self, table: str) -> Iterator[Row]:
        name = self._require_table(table)
        # Names come from sqlite_master, so quoting them is safe.
        stmt = text(f'SELECT rowid AS {_ROWID}, * FROM "{name}" ORDER BY rowid')  # noqa: S608
        for mapping in self.connection.execute(stmt).mappings():
            row = dict(mapping)
            row.pop(_ROWID, None)
            yield row

    def attachments(self) -> Iterator[tuple[str, bytes]]:
        if not self.has_table(ATTACHMENTS_TABLE):
            return
        stmt = text(f"SELECT evidence_id, data FROM {ATTACHMENTS_TABLE} ORDER BY rowid")
        for evidence_id, data in self.connection.execute(stmt).tuples():
            if evidence_id is None:
                continue
            yield str(evidence_id), bytes(data or b"")


def open_package(path: Path) -> SqlitePackageReader:
    return SqlitePackageReader(path)


def parse_manifest(reader: PackageReader) -> Manifest:
    """Fold the key/value manifest table into a ``Manifest``.

    Keys are matched case-insensitively; only ``package_id`` and
    ``exported_by_user_id`` are required.
    """

    if not reader.has_table(MANIFEST_TABLE):
        raise ManifestError(
            "Invalid .uhc package: manifest table not found. "
            "The file may not be a valid TRRCMS sync package."
        )

    values: dict[str, object] = {}
    for row in reader.rows(MANIFEST_TABLE):
        key = row.get("key")
        if key is None:
            continue
        values[str(key).strip().lower()] = row.get("value")

    try:
        schema = ManifestSchema.model_validate(values)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = first["loc"][0] if first["loc"] else "manifest"
        raise ManifestError(
            f"Manifest is missing or has invalid value for required field '{field}'"
        ) from exc

    manifest = schema.to_manifest()
    log.info(
        "Manifest parsed: package_id=%s schema=%s surveys=%s buildings=%s persons=%s claims=%s",
        manifest.package_id,
        manifest.schema_version,
        manifest.survey_count,
        manifest.building_count,
        manifest.person_count,
        manifest.claim_count,
    )
    return manifest
