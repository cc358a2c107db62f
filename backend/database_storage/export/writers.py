"""Serialize an export into one of the registered writer types.

XLSX saves the openpyxl workbook directly. The other writers take cell text
from the export table, so empty rows and raw characters survive, and take
metadata and header styling from the workbook.
"""

from __future__ import annotations

import csv
import io
from html import escape
from typing import Callable

import xlwt
from odf import dc, meta
from odf.opendocument import OpenDocumentSpreadsheet
from odf.style import ParagraphProperties, Style, TableCellProperties, TextProperties
from odf.table import Table, TableCell, TableRow
from odf.text import P
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE, Cell

from database_storage.errors import ExportLimitError
from database_storage.export.formats import get_writer_format
from database_storage.export.table import ExportTable

_HTML_HEADER_STYLE = "font-weight: bold; text-align: center; vertical-align: middle"

# BIFF8 sheet limits.
XLS_MAX_ROWS = 65536
XLS_MAX_COLUMNS = 256
XLS_MAX_TEXT = 32767


def _is_header_styled(cell: Cell) -> bool:
    return bool(cell.font.b) and cell.alignment.horizontal == "center"


def _styled_header_columns(wb: Workbook) -> set[int]:
    """Zero-based indices of the header cells that carry the header style."""
    styled: set[int] = set()
    for row in wb.active.iter_rows(min_row=1, max_row=1):
        for col_idx, cell in enumerate(row):
            if _is_header_styled(cell):
                styled.add(col_idx)
    return styled


def _is_styled(styled: set[int], row_idx: int, col_idx: int) -> bool:
    return row_idx == 0 and col_idx in styled


def _write_xlsx(wb: Workbook, table: ExportTable) -> bytes:
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def check_xls_limits(table: ExportTable) -> None:
    matrix = table.as_matrix()
    if len(matrix) > XLS_MAX_ROWS:
        raise ExportLimitError("Xls", f"{len(matrix)} rows exceed the limit of {XLS_MAX_ROWS}")
    for row in matrix:
        if len(row) > XLS_MAX_COLUMNS:
            raise ExportLimitError("Xls", f"{len(row)} columns exceed the limit of {XLS_MAX_COLUMNS}")
        for value in row:
            if len(value) > XLS_MAX_TEXT:
                raise ExportLimitError(
                    "Xls", f"a cell of {len(value)} characters exceeds the limit of {XLS_MAX_TEXT}"
                )


def _write_xls(wb: Workbook, table: ExportTable) -> bytes:
    check_xls_limits(table)
    styled = _styled_header_columns(wb)
    book = xlwt.Workbook(encoding="utf-8")
    sheet = book.add_sheet(wb.active.title)
    header_style = xlwt.easyxf("font: bold on; align: horiz center, vert center")

    for row_idx, row in enumerate(table.as_matrix()):
        for col_idx, value in enumerate(row):
            if _is_styled(styled, row_idx, col_idx):
                sheet.write(row_idx, col_idx, value, header_style)
            else:
                sheet.write(row_idx, col_idx, value)

    buf = io.BytesIO()
    book.save(buf)
    return buf.getvalue()


def _write_ods(wb: Workbook, table: ExportTable) -> bytes:
    styled = _styled_header_columns(wb)
    doc = OpenDocumentSpreadsheet()
    doc.meta.addElement(meta.InitialCreator(text=wb.properties.creator or ""))
    doc.meta.addElement(dc.Creator(text=wb.properties.creator or ""))
    doc.meta.addElement(dc.Title(text=wb.properties.title or ""))
    doc.meta.addElement(dc.Subject(text=wb.properties.subject or ""))

    header_style = Style(name="HeaderCell", family="table-cell")
    header_style.addElement(TextProperties(fontweight="bold"))
    header_style.addElement(ParagraphProperties(textalign="center"))
    header_style.addElement(TableCellProperties(verticalalign="middle"))
    doc.automaticstyles.addElement(header_style)

    sheet = Table(name=wb.active.title)
    for row_idx, row in enumerate(table.as_matrix()):
        table_row = TableRow()
        for col_idx, value in enumerate(row):
            kwargs = {"valuetype": "string"}
            if _is_styled(styled, row_idx, col_idx):
                kwargs["stylename"] = header_style
            table_cell = TableCell(**kwargs)
            # content.xml is XML 1.0, which has no encoding for these control characters.
            table_cell.addElement(P(text=ILLEGAL_CHARACTERS_RE.sub("", value)))
            table_row.addElement(table_cell)
        sheet.addElement(table_row)
    doc.spreadsheet.addElement(sheet)

    buf = io.BytesIO()
    doc.write(buf)
    return buf.getvalue()


def _write_csv(wb: Workbook, table: ExportTable) -> bytes:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerows(table.as_matrix())
    return output.getvalue().encode("utf-8")


def _write_html(wb: Workbook, table: ExportTable) -> bytes:
    styled = _styled_header_columns(wb)
    title = escape(wb.properties.title or wb.active.title)
    lines = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="utf-8">',
        f'<meta name="author" content="{escape(wb.properties.creator or "")}">',
        f'<meta name="subject" content="{escape(wb.properties.subject or "")}">',
        f"<title>{title}</title>",
        "</head>",
        "<body>",
        "<table>",
    ]
    for row_idx, row in enumerate(table.as_matrix()):
        cells = []
        for col_idx, value in enumerate(row):
            text = escape(value)
            if _is_styled(styled, row_idx, col_idx):
                cells.append(f'<td style="{_HTML_HEADER_STYLE}">{text}</td>')
            else:
                cells.append(f"<td>{text}</td>")
        lines.append(f"<tr>{''.join(cells)}</tr>")
    lines.extend(["</table>", "</body>", "</html>", ""])
    return "\n".join(lines).encode("utf-8")


_WRITERS: dict[str, Callable[[Workbook, ExportTable], bytes]] = {
    "Xls": _write_xls,
    "Xlsx": _write_xlsx,
    "Ods": _write_ods,
    "Csv": _write_csv,
    "Html": _write_html,
}


def write_workbook(wb: Workbook, table: ExportTable, writer_type: str) -> bytes:
    """Serialize the export as ``writer_type``.

    ``wb`` must have been built from ``table`` by build_workbook.

    Raises:
        UnsupportedFormatError: ``writer_type`` is not registered.
        ExportLimitError: the table does not fit the format.
    """
    get_writer_format(writer_type)
    return _WRITERS[writer_type](wb, table)
