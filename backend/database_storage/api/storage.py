"""Listing, bulk deletion and spreadsheet export of stored form entries."""

from __future__ import annotations

from typing import Optional, Union
from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.orm import Session

from database_storage.config import AppConfig, get_config
from database_storage.database import get_db
from database_storage.errors import ExportLimitError, NoDataError, UnsupportedFormatError
from database_storage.export import ExportFile, TabularExporter
from database_storage.export.formats import DEFAULT_WRITER_TYPE
from database_storage.export.spreadsheet import DocumentMetadata
from database_storage.repository import StorageEntryRepository
from database_storage.resources import ResourceResolver
from database_storage.schemas import DeleteAllOut, IdentifierListOut

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/database-storage", tags=["database-storage"])

DELETE_ALL_NOTICE = "Entries removed successfully."

# Sent with every export so browsers and proxies never serve a stale file.
_NO_CACHE_HEADERS = {
    "Pragma": "public",
    "Expires": "0",
    "Cache-Control": "max-age=0, must-revalidate, post-check=0, pre-check=0, private",
    "Content-Transfer-Encoding": "binary",
}


def get_app_config() -> AppConfig:
    return get_config()


def get_repository(db: Session = Depends(get_db)) -> StorageEntryRepository:
    return StorageEntryRepository(db)


def get_exporter(
    db: Session = Depends(get_db),
    repository: StorageEntryRepository = Depends(get_repository),
    config: AppConfig = Depends(get_app_config),
) -> TabularExporter:
    return TabularExporter(
        repository,
        ResourceResolver(db, config.resource_base_url),
        DocumentMetadata(
            creator=config.export_creator,
            title=config.export_title,
            subject=config.export_subject,
        ),
    )


def content_disposition(filename: str) -> str:
    """Attachment header value; non-ASCII names get an RFC 5987 ``filename*``."""
    fallback = filename.replace("\\", "_").replace('"', "_")
    try:
        fallback.encode("ascii")
    except UnicodeEncodeError:
        ascii_name = fallback.encode("ascii", "replace").decode("ascii").replace("?", "_")
        return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"
    return f'attachment; filename="{fallback}"'


def download_response(export: ExportFile) -> Response:
    headers = dict(_NO_CACHE_HEADERS)
    headers["Content-Disposition"] = content_disposition(export.filename)
    return Response(content=export.content, media_type=export.mime_type, headers=headers)


@router.get("", response_model=IdentifierListOut)
def list_identifiers(
    notice: Optional[str] = Query(None, description="Confirmation shown after a redirect"),
    repository: StorageEntryRepository = Depends(get_repository),
) -> IdentifierListOut:
    """List the distinct storage identifiers that have entries."""
    return IdentifierListOut(identifiers=repository.find_storage_identifiers(), notice=notice)


@router.api_route("/delete-all", methods=["GET", "POST"], response_model=None)
def delete_all(
    request: Request,
    identifier: str = Query(..., min_length=1, description="Storage identifier to clear"),
    redirect: bool = Query(False, description="Redirect to the listing afterwards"),
    db: Session = Depends(get_db),
    repository: StorageEntryRepository = Depends(get_repository),
) -> Union[DeleteAllOut, RedirectResponse]:
    """Delete every entry stored under ``identifier``."""
    count = repository.remove_by_storage_identifier(identifier)
    db.commit()

    if redirect:
        url = request.url_for("list_identifiers").include_query_params(notice=DELETE_ALL_NOTICE)
        return RedirectResponse(url=str(url), status_code=303)

    return DeleteAllOut(identifier=identifier, count=count)


@router.get("/export", response_class=Response)
def export_entries(
    identifier: str = Query(..., min_length=1, description="Storage identifier to export"),
    writer_type: str = Query(DEFAULT_WRITER_TYPE, alias="writerType", description="Xls, Xlsx, Ods, Csv or Html"),
    exporter: TabularExporter = Depends(get_exporter),
) -> Response:
    """Download all entries for ``identifier`` as a spreadsheet file."""
    try:
        export = exporter.export(identifier, writer_type)
    except UnsupportedFormatError as e:
        logger.warning("export_rejected", identifier=identifier, writer_type=writer_type, reason="format")
        raise HTTPException(status_code=400, detail=str(e)) from e
    except NoDataError as e:
        logger.warning("export_rejected", identifier=identifier, writer_type=writer_type, reason="no_data")
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ExportLimitError as e:
        logger.warning("export_rejected", identifier=identifier, writer_type=writer_type, reason="limit")
        raise HTTPException(status_code=422, detail=str(e)) from e

    return download_response(export)
