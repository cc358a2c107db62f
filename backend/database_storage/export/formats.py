"""Registry of supported spreadsheet writer types."""

from __future__ import annotations

from dataclasses import dataclass

from database_storage.errors import UnsupportedFormatError


@dataclass(frozen=True)
class WriterFormat:
    extension: str
    mime_type: str


WRITER_TYPES: dict[str, WriterFormat] = {
    "Xls": WriterFormat("xls", "application/vnd.ms-excel"),
    "Xlsx": WriterFormat("xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
    "Ods": WriterFormat("ods", "application/vnd.oasis.opendocument.spreadsheet"),
    "Csv": WriterFormat("csv", "text/csv"),
    "Html": WriterFormat("html", "text/html"),
}

DEFAULT_WRITER_TYPE = "Xlsx"


def get_writer_format(writer_type: str) -> WriterFormat:
    """Look up a writer type; names are matched exactly (``Xlsx``, not ``xlsx``)."""
    try:
        return WRITER_TYPES[writer_type]
    except KeyError:
        raise UnsupportedFormatError(writer_type) from None
