"""
TextStation Backend — Drive Search and PDF Export Route Handlers
================================================================

What:  POST /api/search (full-text Drive search) and POST /api/export-pdf.
Who:   Called by the editor's reference search panel and its export dialog.

Both endpoints need Google credentials. Search fails with 502 without them;
export still succeeds and reports `driveUrl: null`.
"""

import logging

from fastapi import APIRouter

from textstation.exceptions import ValidationError
from textstation.schemas.common import ErrorResponse
from textstation.schemas.drive import ExportRequest, ExportResponse, SearchRequest, SearchResponse
from textstation.services.drive_service import drive_service
from textstation.services.export_service import export_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Drive"])


@router.post(
    "/search",
    response_model=SearchResponse,
    responses={
        400: {"description": "No keyword given", "model": ErrorResponse},
        502: {"description": "Drive unavailable", "model": ErrorResponse},
    },
    summary="Search Google Drive",
    description=(
        "Full-text search over the files visible to the service account, newest "
        "first, with a keyword preview for Google Docs."
    ),
)
async def search(body: SearchRequest) -> SearchResponse:
    if not body.keyword:
        raise ValidationError(message="検索キーワードが指定されていません", field="keyword")

    return await drive_service.search(
        keyword=body.keyword,
        file_types=body.file_types,
        period=body.period,
    )


@router.post(
    "/export-pdf",
    response_model=ExportResponse,
    responses={
        400: {"description": "No text given", "model": ErrorResponse},
        500: {"description": "PDF rendering or storage failed", "model": ErrorResponse},
    },
    summary="Export text as PDF",
)
async def export_pdf(body: ExportRequest) -> ExportResponse:
    """
    Render, store and back up a PDF.

    `url` is the download path on this server; `driveUrl` is the Drive
    backup link, or null when the backup failed.
    """
    if not body.text:
        raise ValidationError(message="出力するテキストが指定されていません", field="text")

    return await export_service.generate_pdf(
        text=body.text,
        results=body.results,
        options=body.options,
    )
