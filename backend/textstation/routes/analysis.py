"""
TextStation Backend — Analysis Route Handlers
==============================================

What:  POST /api/analyze (score a text) and POST /api/test-connection.
Who:   Called by the editor's analysis panel and its connection check.

Request Flow (POST /api/analyze):
    1. Body parsed into AnalyzeRequest (camelCase keys)
    2. Missing or empty `text` → ValidationError (400)
    3. AnalysisService loads the rules for `mediaType` and analyzes
    4. AnalysisResult returned as camelCase JSON
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from textstation.database import get_db_session
from textstation.exceptions import ValidationError
from textstation.schemas.analysis import AnalysisResult, AnalyzeRequest
from textstation.schemas.common import ConnectionTestResponse, ErrorResponse
from textstation.services.analysis_service import analysis_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Analysis"])


@router.post(
    "/test-connection",
    response_model=ConnectionTestResponse,
    summary="Check that the API server is reachable",
)
async def test_connection() -> ConnectionTestResponse:
    return ConnectionTestResponse(success=True, message="APIサーバーに正常に接続されました")


@router.post(
    "/analyze",
    response_model=AnalysisResult,
    responses={
        200: {"description": "Analysis result", "model": AnalysisResult},
        400: {"description": "No text given", "model": ErrorResponse},
        500: {"description": "Analysis failed (e.g. malformed rule pattern)", "model": ErrorResponse},
    },
    summary="Analyze a text against the style rules",
    description=(
        "Scores the text from 0 to 100 against the active style rules for the "
        "given media type and lists the issues found. With detailedAnalysis, "
        "sentence length and readability advice is added."
    ),
)
async def analyze(
    body: AnalyzeRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AnalysisResult:
    if not body.text:
        raise ValidationError(message="分析するテキストが指定されていません", field="text")

    return await analysis_service.analyze_request(
        db=db,
        text=body.text,
        media_type=body.media_type,
        detailed=body.detailed_analysis,
    )
