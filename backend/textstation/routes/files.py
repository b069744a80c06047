"""
TextStation Backend — File Download Route
==========================================

What:  GET /api/files/{path}?token=... serves exported PDFs from local storage.
Who:   Opened by the browser from the `url` returned by /api/export-pdf.

Security:
    The token is checked first, so an unsigned request learns nothing about
    which files exist. Path resolution and the storage-root containment
    check live in FileService.resolve(); anything outside the root is a 404.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import FileResponse

from textstation.schemas.common import ErrorResponse
from textstation.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Files"])


@router.get(
    "/files/{file_path:path}",
    summary="Download an exported file",
    responses={
        200: {"description": "File content"},
        403: {"description": "Link unsigned, expired or for another file", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_file(
    file_path: str,
    token: Optional[str] = Query(default=None, description="Signed download token"),
) -> FileResponse:
    file_service.verify_download(file_path, token)
    full_path = file_service.resolve(file_path)
    media_type = "application/pdf" if full_path.suffix.lower() == ".pdf" else None
    return FileResponse(
        path=str(full_path),
        media_type=media_type,
        filename=full_path.name,
        # Exporting the same title again overwrites this file
        headers={"Cache-Control": "private, no-cache"},
    )
