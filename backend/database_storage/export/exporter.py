"""Turn every entry under a storage identifier into a downloadable spreadsheet."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from database_storage.errors import NoDataError
from database_storage.export.formats import DEFAULT_WRITER_TYPE, get_writer_format
from database_storage.export.spreadsheet import DocumentMetadata, build_workbook
from database_storage.export.table import UriResolver, build_table
from database_storage.export.writers import write_workbook
from database_storage.repository import StorageEntryRepository

logger = structlog.get_logger(__name__)

FILENAME_PREFIX = "Database-Storage"


@dataclass(frozen=True)
class ExportFile:
    content: bytes
    mime_type: str
    filename: str


class TabularExporter:
    """Export pipeline: validate writer type, load entries, build table, serialize."""

    def __init__(
        self,
        repository: StorageEntryRepository,
        resolver: UriResolver,
        metadata: DocumentMetadata,
    ) -> None:
        self._repository = repository
        self._resolver = resolver
        self._metadata = metadata

    def export(self, identifier: str, writer_type: str = DEFAULT_WRITER_TYPE) -> ExportFile:
        """Build the export file for ``identifier``.

        Raises:
            UnsupportedFormatError: ``writer_type`` is not registered. The store is not queried.
            NoDataError: no entries are stored under ``identifier``.
            ExportLimitError: the entries do not fit the requested format.
        """
        writer_format = get_writer_format(writer_type)

        entries = self._repository.find_by_storage_identifier(identifier)
        if not entries:
            raise NoDataError(identifier)

        table = build_table(entries, self._resolver)
        wb = build_workbook(table, self._metadata)
        content = write_workbook(wb, table, writer_type)

        logger.info(
            "export_generated",
            identifier=identifier,
            writer_type=writer_type,
            rows=len(table.rows),
            columns=table.columns,
            size=len(content),
        )
        return ExportFile(
            content=content,
            mime_type=writer_format.mime_type,
            filename=f"{FILENAME_PREFIX}-{identifier}.{writer_format.extension}",
        )
