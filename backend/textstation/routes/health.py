"""
TextStation Backend — Health Check Route
=========================================

What:  Health check endpoint for monitoring and container probes.
How:   Checks the database with a trivial query and reports whether Google
       Drive credentials are configured.

Status levels:
    - healthy:   Database reachable, Drive configured          (HTTP 200)
    - degraded:  Database reachable, Drive not configured      (HTTP 200)
                 Analysis, snippets and backups work; search and Drive
                 backup of exports do not.
    - unhealthy: Database unreachable                          (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from textstation import __version__
from textstation.schemas.common import HealthResponse
from textstation.services.drive_service import drive_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
)
async def health_check():
    db_status = "connected"
    overall = "healthy"

    try:
        from textstation.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if drive_service.credentials_provider.is_configured:
        drive_status = "configured"
    else:
        drive_status = "not_configured"
        if overall == "healthy":
            overall = "degraded"

    health = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        drive=drive_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=health.model_dump())
    return health
