"""Export stored entries as spreadsheet downloads."""

from database_storage.export.columns import column_label
from database_storage.export.exporter import ExportFile, TabularExporter
from database_storage.export.formats import WRITER_TYPES, WriterFormat, get_writer_format

__all__ = [
    "column_label",
    "ExportFile",
    "TabularExporter",
    "WRITER_TYPES",
    "WriterFormat",
    "get_writer_format",
]
