"""Build an in-memory openpyxl workbook from an export table."""

from __future__ import annotations

import re
from dataclasses import dataclass

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font
from openpyxl.worksheet.worksheet import Worksheet

from database_storage.export.columns import header_coordinates
from database_storage.export.table import ExportTable

HEADER_FONT = Font(bold=True)
HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center")

# Excel refuses these in sheet names and caps names at 31 characters.
_INVALID_SHEET_TITLE_RE = re.compile(r"[\\/*?:\[\]]")
_MAX_SHEET_TITLE = 31


@dataclass(frozen=True)
class DocumentMetadata:
    creator: str
    title: str
    subject: str


def sheet_title(title: str) -> str:
    cleaned = _INVALID_SHEET_TITLE_RE.sub("", title).strip()[:_MAX_SHEET_TITLE]
    return cleaned or "Sheet1"


def _cell_text(value: str) -> str:
    """openpyxl rejects control characters; only the XLSX document drops them."""
    return ILLEGAL_CHARACTERS_RE.sub("", value)


def style_header(ws: Worksheet, columns: int) -> list[str]:
    """Make the first ``columns`` cells of row 1 bold and centered; return their coordinates."""
    coordinates = header_coordinates(columns)
    for coordinate in coordinates:
        cell = ws[coordinate]
        cell.font = HEADER_FONT
        cell.alignment = HEADER_ALIGNMENT
    return coordinates


def build_workbook(table: ExportTable, metadata: DocumentMetadata) -> Workbook:
    """One sheet holding the header row and every data row, header styled."""
    wb = Workbook()
    wb.properties.creator = metadata.creator
    wb.properties.title = metadata.title
    wb.properties.subject = metadata.subject

    ws = wb.active
    ws.title = sheet_title(metadata.title)

    for row_idx, row in enumerate(table.as_matrix(), start=1):
        for col_idx, value in enumerate(row, start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=_cell_text(value))
            # Submitted text starting with "=" stays text, never a formula.
            cell.data_type = "s"

    style_header(ws, table.columns)
    return wb
