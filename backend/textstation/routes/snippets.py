"""
TextStation Backend — Snippet Route Handlers
=============================================

What:  CRUD endpoints for text snippets. All are POST with a JSON body, the
       contract the editor client was written against.
Who:   Called by the editor's snippet picker and snippet editor.

    POST /api/get-snippets    → {personal, shared, categories, sharedCategories}
    POST /api/get-snippet     → full snippet           (404 on shared mismatch)
    POST /api/save-snippet    → {success, id}
    POST /api/update-snippet  → {success}              (404 if missing)
    POST /api/delete-snippet  → {success}              (403 if shared)
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from textstation.database import get_db_session
from textstation.exceptions import ValidationError
from textstation.models.snippet import DEFAULT_CATEGORY
from textstation.schemas.common import ErrorResponse, IdRequest, SuccessResponse
from textstation.schemas.snippet import (
    GetSnippetRequest,
    SaveSnippetRequest,
    SaveSnippetResponse,
    SnippetListResponse,
    SnippetResponse,
    UpdateSnippetRequest,
)
from textstation.services.snippet_service import snippet_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Snippets"])

MISSING_ID_MESSAGE = "スニペットIDが指定されていません"


@router.post("/get-snippets", response_model=SnippetListResponse, summary="List snippets")
async def get_snippets(db: AsyncSession = Depends(get_db_session)) -> SnippetListResponse:
    return await snippet_service.list_snippets(db)


@router.post(
    "/get-snippet",
    response_model=SnippetResponse,
    responses={404: {"description": "Snippet not found", "model": ErrorResponse}},
    summary="Get one snippet",
)
async def get_snippet(
    body: GetSnippetRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SnippetResponse:
    if not body.id:
        raise ValidationError(message=MISSING_ID_MESSAGE, field="id")
    return await snippet_service.get_snippet(db, body.id, is_shared=bool(body.is_shared))


@router.post("/save-snippet", response_model=SaveSnippetResponse, summary="Create a snippet")
async def save_snippet(
    body: SaveSnippetRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SaveSnippetResponse:
    if not body.title or not body.content:
        raise ValidationError(message="タイトルと内容は必須です")

    snippet_id = await snippet_service.save_snippet(
        db,
        title=body.title,
        content=body.content,
        category=body.category or DEFAULT_CATEGORY,
        variables=body.variables or [],
    )
    return SaveSnippetResponse(success=True, id=snippet_id)


@router.post(
    "/update-snippet",
    response_model=SuccessResponse,
    responses={404: {"description": "Snippet not found", "model": ErrorResponse}},
    summary="Replace a snippet's fields",
)
async def update_snippet(
    body: UpdateSnippetRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    if not body.id or not body.title or not body.content:
        raise ValidationError(message="IDとタイトルと内容は必須です")

    await snippet_service.update_snippet(
        db,
        body.id,
        title=body.title,
        category=body.category or DEFAULT_CATEGORY,
        content=body.content,
        variables=body.variables or [],
    )
    return SuccessResponse()


@router.post(
    "/delete-snippet",
    response_model=SuccessResponse,
    responses={
        403: {"description": "Shared snippets cannot be deleted", "model": ErrorResponse},
        404: {"description": "Snippet not found", "model": ErrorResponse},
    },
    summary="Delete a personal snippet",
)
async def delete_snippet(
    body: IdRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    if not body.id:
        raise ValidationError(message=MISSING_ID_MESSAGE, field="id")
    await snippet_service.delete_snippet(db, body.id)
    return SuccessResponse()
