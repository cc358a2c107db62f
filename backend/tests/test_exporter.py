"""Tests for the export pipeline and each spreadsheet writer."""

from __future__ import annotations

import csv
import io
import zipfile
from datetime import datetime, timedelta, timezone

import pytest
from openpyxl import load_workbook
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from database_storage.errors import ExportLimitError, NoDataError, UnsupportedFormatError
from database_storage.export import WRITER_TYPES, TabularExporter
from database_storage.export.spreadsheet import DocumentMetadata, build_workbook, sheet_title
from database_storage.export.table import ExportTable
from database_storage.export.writers import (
    XLS_MAX_COLUMNS,
    XLS_MAX_ROWS,
    XLS_MAX_TEXT,
    check_xls_limits,
    write_workbook,
)
from database_storage.models import Base, PersistentResource, ResourceReference, StorageEntry
from database_storage.repository import StorageEntryRepository
from database_storage.resources import ResourceResolver

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
METADATA = DocumentMetadata(creator="Forms Team", title="Signups", subject="Event signups")
XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


@pytest.fixture
def db_session():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


def _exporter(session: Session) -> TabularExporter:
    return TabularExporter(
        StorageEntryRepository(session),
        ResourceResolver(session, "/_Resources/Persistent"),
        METADATA,
    )


def _add(session: Session, identifier: str, minutes: int, properties: dict) -> None:
    entry = StorageEntry(storage_identifier=identifier, submitted_at=BASE_TIME + timedelta(minutes=minutes))
    entry.set_properties(properties)
    session.add(entry)
    session.commit()


@pytest.fixture
def signups(db_session: Session) -> Session:
    db_session.add(PersistentResource(sha1="abc", filename="photo.png", media_type="image/png"))
    _add(db_session, "signup", 0, {"Name": "Ann", "Photo": ResourceReference("abc")})
    _add(db_session, "signup", 5, {"Name": "Bob", "Photo": ResourceReference("missing")})
    _add(db_session, "other", 1, {"Unrelated": "x"})
    return db_session



class _ExplodingRepository:
    def find_by_storage_identifier(self, identifier: str):  # pragma: no cover - guard rail
        raise AssertionError("store must not be queried for an unsupported format")


def _write(table: ExportTable, writer_type: str) -> bytes:
    return write_workbook(build_workbook(table, METADATA), table, writer_type)


class TestTabularExporter:
    def test_header_plus_one_row_per_entry(self, signups: Session):
        """Row 0 is the field names; each entry follows, newest first."""
        export = _exporter(signups).export("signup", "Xlsx")

        ws = load_workbook(io.BytesIO(export.content)).active
        rows = [list(row) for row in ws.iter_rows(values_only=True)]
        assert rows == [
            ["Name", "Photo"],
            ["Bob", "-"],
            ["Ann", "/_Resources/Persistent/abc/photo.png"],
        ]

    @pytest.mark.parametrize("writer_type", sorted(WRITER_TYPES))
    def test_mime_type_and_filename_follow_registry(self, signups: Session, writer_type: str):
        """Every registered writer type yields its MIME type and extension."""
        export = _exporter(signups).export("signup", writer_type)

        assert export.mime_type == WRITER_TYPES[writer_type].mime_type
        assert export.filename == f"Database-Storage-signup.{WRITER_TYPES[writer_type].extension}"
        assert export.content

    @pytest.mark.parametrize("writer_type", ["xlsx", "Pdf", ""])
    def test_unsupported_format_fails_before_store_access(self, writer_type: str):
        """Unknown writer types are rejected without querying entries."""
        exporter = TabularExporter(_ExplodingRepository(), None, METADATA)

        with pytest.raises(UnsupportedFormatError):
            exporter.export("signup", writer_type)

    def test_no_entries_raises_no_data(self, db_session: Session):
        """An identifier without entries cannot be exported."""
        with pytest.raises(NoDataError) as exc_info:
            _exporter(db_session).export("empty", "Csv")

        assert exc_info.value.identifier == "empty"

    def test_document_metadata_applied(self, signups: Session):
        """Creator, title, subject and sheet title come from the metadata."""
        export = _exporter(signups).export("signup", "Xlsx")

        wb = load_workbook(io.BytesIO(export.content))
        assert wb.properties.creator == "Forms Team"
        assert wb.properties.title == "Signups"
        assert wb.properties.subject == "Event signups"
        assert wb.active.title == "Signups"

    def test_too_wide_for_xls_raises_limit_error(self, db_session: Session):
        """More than 256 fields cannot be written as XLS."""
        _add(db_session, "wide", 0, {f"f{i}": str(i) for i in range(300)})

        with pytest.raises(ExportLimitError) as exc_info:
            _exporter(db_session).export("wide", "Xls")

        assert exc_info.value.writer_type == "Xls"

    def test_too_wide_for_xls_still_exports_as_xlsx(self, db_session: Session):
        """The XLS column limit does not apply to other formats."""
        _add(db_session, "wide", 0, {f"f{i}": str(i) for i in range(300)})

        export = _exporter(db_session).export("wide", "Xlsx")

        assert load_workbook(io.BytesIO(export.content)).active.max_column == 300


class TestHeaderStyling:
    def test_styles_exactly_the_header_cells_past_z(self, db_session: Session):
        """Bold centered header spans A1..AD1 for 30 columns and nothing else."""
        properties = {f"field{i}": str(i) for i in range(30)}
        _add(db_session, "wide", 0, properties)

        export = _exporter(db_session).export("wide", "Xlsx")
        ws = load_workbook(io.BytesIO(export.content)).active

        for coordinate in ["A1", "Z1", "AA1", "AD1"]:
            cell = ws[coordinate]
            assert cell.font.b, coordinate
            assert cell.alignment.horizontal == "center"
            assert cell.alignment.vertical == "center"
        assert not ws["AE1"].font.b
        assert not ws["A2"].font.b
        assert ws["AD1"].value == "field29"


class TestWriters:
    table = ExportTable(header=["Name", "Note"], rows=[["Ann", "a, \"quoted\""], ["<b>Bob</b>", ""]])

    def test_csv(self):
        """CSV quotes delimiters and embedded quotes."""
        content = _write(self.table, "Csv").decode("utf-8")

        assert list(csv.reader(io.StringIO(content))) == [
            ["Name", "Note"],
            ["Ann", 'a, "quoted"'],
            ["<b>Bob</b>", ""],
        ]

    def test_html_escapes_and_styles_header(self):
        """HTML escapes markup and styles only the header cells."""
        content = _write(self.table, "Html").decode("utf-8")

        assert "<title>Signups</title>" in content
        assert content.count("font-weight: bold") == 2
        assert "&lt;b&gt;Bob&lt;/b&gt;" in content
        assert "<b>Bob</b>" not in content

    def test_ods_is_an_opendocument_spreadsheet(self):
        """ODS carries the mimetype, cell text, header style and metadata."""
        content = _write(self.table, "Ods")

        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            assert archive.read("mimetype") == b"application/vnd.oasis.opendocument.spreadsheet"
            body = archive.read("content.xml").decode("utf-8")
            document_meta = archive.read("meta.xml").decode("utf-8")
        assert "Ann" in body
        assert "HeaderCell" in body
        assert "Event signups" in document_meta

    def test_xlsx_keeps_formula_like_text_as_text(self):
        """Text starting with '=' is stored as a string, not a formula."""
        content = _write(ExportTable(header=["Comment"], rows=[["=1+1"]]), "Xlsx")

        cell = load_workbook(io.BytesIO(content)).active["A2"]
        assert cell.value == "=1+1"
        assert cell.data_type == "s"

    def test_xls_is_a_compound_document(self):
        """XLS output starts with the OLE2 signature."""
        assert _write(self.table, "Xls").startswith(XLS_MAGIC)

    def test_unknown_writer_type(self):
        """The writer refuses types missing from the registry."""
        with pytest.raises(UnsupportedFormatError):
            _write(self.table, "Numbers")

    def test_rows_without_fields_are_kept(self):
        """Entries with no fields still produce one line each."""
        table = ExportTable(header=[], rows=[[], []])

        assert _write(table, "Csv") == b"\r\n\r\n\r\n"
        assert _write(table, "Html").decode("utf-8").count("<tr></tr>") == 3

    def test_control_characters_only_dropped_where_format_forbids_them(self):
        """CSV and HTML keep control characters; XLSX strips them."""
        table = ExportTable(header=["Note"], rows=[["bell\x07here"]])

        assert list(csv.reader(io.StringIO(_write(table, "Csv").decode("utf-8"))))[1] == ["bell\x07here"]
        assert "bell\x07here" in _write(table, "Html").decode("utf-8")
        xlsx = load_workbook(io.BytesIO(_write(table, "Xlsx"))).active
        assert xlsx["A2"].value == "bellhere"


class TestXlsLimits:
    def test_too_many_columns(self):
        """A 257th column does not fit a BIFF8 sheet."""
        table = ExportTable(header=[f"f{i}" for i in range(XLS_MAX_COLUMNS + 1)])

        with pytest.raises(ExportLimitError):
            _write(table, "Xls")

    def test_too_many_rows(self):
        """A header plus 65536 data rows exceeds the sheet row limit."""
        table = ExportTable(header=["a"], rows=[["x"]] * XLS_MAX_ROWS)

        with pytest.raises(ExportLimitError):
            check_xls_limits(table)

    def test_text_too_long(self):
        """A cell longer than 32767 characters does not fit."""
        table = ExportTable(header=["a"], rows=[["x" * (XLS_MAX_TEXT + 1)]])

        with pytest.raises(ExportLimitError):
            _write(table, "Xls")

    def test_exactly_at_limits_is_written(self):
        """256 columns and 32767-character text are still accepted."""
        table = ExportTable(
            header=[f"f{i}" for i in range(XLS_MAX_COLUMNS)],
            rows=[["x" * XLS_MAX_TEXT] * XLS_MAX_COLUMNS],
        )

        assert _write(table, "Xls").startswith(XLS_MAGIC)


class TestSheetTitle:
    def test_strips_forbidden_characters_and_truncates(self):
        """Forbidden characters are removed and the title is cut to 31."""
        assert sheet_title("Q1/Q2 [draft]: results?") == "Q1Q2 draft results"
        assert len(sheet_title("x" * 40)) == 31

    def test_falls_back_when_empty(self):
        """A title left empty after cleaning becomes Sheet1."""
        assert sheet_title("[]") == "Sheet1"
