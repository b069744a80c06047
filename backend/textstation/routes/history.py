"""
TextStation Backend — Log Aggregation and Backup Route Handlers
================================================================

What:  Endpoints the editor client calls on a timer to push its logs and
       document backups, plus backup listing and restore.
Who:   Called by the editor's background sync and its restore dialog.

Each write also prunes records past their retention period (see
services/history_service.py).
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from textstation.database import get_db_session
from textstation.exceptions import ValidationError
from textstation.schemas.common import ErrorResponse, IdRequest, SuccessResponse
from textstation.schemas.history import (
    BackupListItem,
    BackupRequest,
    BackupResponse,
    LogAggregationRequest,
)
from textstation.services.history_service import history_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["History"])


@router.post("/aggregate-logs", response_model=SuccessResponse, summary="Store a batch of client logs")
async def aggregate_logs(
    body: LogAggregationRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await history_service.save_log_aggregation(
        db,
        timestamp=body.timestamp,
        week=body.week,
        logs=body.logs,
        errors=body.errors,
        user=body.user,
    )
    return SuccessResponse()


@router.post("/create-backup", response_model=SuccessResponse, summary="Store a document backup")
async def create_backup(
    body: BackupRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    backup_id = await history_service.save_backup(
        db,
        timestamp=body.timestamp,
        date=body.date,
        text=body.text,
        results=body.results,
        user=body.user,
    )
    logger.debug("Backup %s created for user=%s", backup_id, body.user)
    return SuccessResponse()


@router.post("/get-backups", response_model=List[BackupListItem], summary="List recent backups")
async def get_backups(db: AsyncSession = Depends(get_db_session)) -> List[BackupListItem]:
    return await history_service.list_backups(db)


@router.post(
    "/restore-backup",
    response_model=BackupResponse,
    responses={404: {"description": "Backup not found", "model": ErrorResponse}},
    summary="Fetch a backup for restoring",
)
async def restore_backup(
    body: IdRequest,
    db: AsyncSession = Depends(get_db_session),
) -> BackupResponse:
    if not body.id:
        raise ValidationError(message="バックアップIDが指定されていません", field="id")
    return await history_service.get_backup(db, body.id)
