"""
TextStation Backend — History Service (Log Aggregation and Backups)
====================================================================

What:  Stores the client's periodic log batches and document backups, and
       prunes both after their retention period.
Who:   Called by routes/history.py.

Retention:
    Every write is followed by a cleanup pass over the same table, so the
    tables never grow past the retention window by more than one write's
    worth. Age is judged on the client-reported `timestamp`; rows without
    one are never pruned.

    table             | retention setting          | default
    ------------------+----------------------------+--------
    log_aggregations  | LOG_RETENTION_DAYS         | 90 days
    backups           | BACKUP_RETENTION_DAYS      | 30 days
"""

import logging
import uuid
from typing import Any, List, Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from textstation.config import settings
from textstation.database import now_ms
from textstation.exceptions import DatabaseError, NotFoundError
from textstation.models.history import Backup, LogAggregation
from textstation.schemas.history import BackupListItem, BackupResponse

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


class HistoryService:
    """Persistence and retention for log batches and backups."""

    def __init__(
        self,
        log_retention_days: Optional[int] = None,
        backup_retention_days: Optional[int] = None,
        backup_list_limit: Optional[int] = None,
    ):
        self.log_retention_days = log_retention_days or settings.log_retention_days
        self.backup_retention_days = backup_retention_days or settings.backup_retention_days
        self.backup_list_limit = backup_list_limit or settings.backup_list_limit

    # ══════════════════════════════════════════════════════════════════════
    # Log aggregation
    # ══════════════════════════════════════════════════════════════════════

    async def save_log_aggregation(
        self,
        db: AsyncSession,
        timestamp: Optional[int] = None,
        week: Optional[str] = None,
        logs: Optional[List[Any]] = None,
        errors: Optional[List[Any]] = None,
        user: Optional[str] = None,
    ) -> None:
        """Store one batch of client logs, then prune expired batches."""
        record = LogAggregation(
            id=uuid.uuid4(),
            timestamp=timestamp,
            week=week,
            logs=logs or [],
            errors=errors or [],
            user=user,
            created_at=now_ms(),
        )
        try:
            db.add(record)
            await db.flush()
        except Exception as e:
            logger.error("Database error saving log aggregation: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the logs. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info(
            "Log aggregation stored: week=%s, %d logs, %d errors",
            week,
            len(record.logs),
            len(record.errors),
        )
        await self.cleanup_old_logs(db)

    async def cleanup_old_logs(self, db: AsyncSession) -> int:
        """Delete log batches older than the retention period. Returns the count."""
        return await self._cleanup(db, LogAggregation, self.log_retention_days, "log aggregations")

    # ══════════════════════════════════════════════════════════════════════
    # Backups
    # ══════════════════════════════════════════════════════════════════════

    async def save_backup(
        self,
        db: AsyncSession,
        timestamp: Optional[int] = None,
        date: Optional[str] = None,
        text: Optional[str] = None,
        results: Optional[Any] = None,
        user: Optional[str] = None,
    ) -> str:
        """Store a document backup, prune expired ones, return the new ID."""
        backup = Backup(
            id=uuid.uuid4(),
            timestamp=timestamp,
            date=date,
            text=text,
            results=results,
            user=user,
            created_at=now_ms(),
        )
        try:
            db.add(backup)
            await db.flush()
        except Exception as e:
            logger.error("Database error saving backup: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the backup. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Backup stored: %s (%d chars)", backup.id, len(text or ""))
        await self.cleanup_old_backups(db)
        return str(backup.id)

    async def cleanup_old_backups(self, db: AsyncSession) -> int:
        """Delete backups older than the retention period. Returns the count."""
        return await self._cleanup(db, Backup, self.backup_retention_days, "backups")

    async def list_backups(self, db: AsyncSession) -> List[BackupListItem]:
        """
        Most recent backups, newest first.

        Query plan:
            SELECT ... FROM backups ORDER BY timestamp DESC LIMIT :limit
            → idx_backups_timestamp
        """
        try:
            result = await db.execute(
                select(Backup).order_by(desc(Backup.timestamp)).limit(self.backup_list_limit)
            )
            backups = list(result.scalars().all())
        except Exception as e:
            logger.error("Database error listing backups: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve backups. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return [
            BackupListItem(
                id=str(backup.id),
                date=backup.date,
                timestamp=backup.timestamp,
                user=backup.user,
            )
            for backup in backups
        ]

    async def get_backup(self, db: AsyncSession, backup_id: str) -> BackupResponse:
        """
        Fetch one backup for restoring.

        Raises:
            NotFoundError: Unknown or malformed ID.
            DatabaseError: Query failed.
        """
        try:
            key = uuid.UUID(str(backup_id))
        except ValueError:
            raise NotFoundError(resource="backup", resource_id=str(backup_id))

        try:
            result = await db.execute(select(Backup).where(Backup.id == key))
            backup = result.scalar_one_or_none()
        except Exception as e:
            logger.error("Database error fetching backup %s: %s", backup_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the backup. Please try again.",
                context={"backup_id": str(backup_id)},
            )

        if backup is None:
            raise NotFoundError(resource="backup", resource_id=str(backup_id))

        return BackupResponse(
            timestamp=backup.timestamp,
            date=backup.date,
            text=backup.text,
            results=backup.results,
            user=backup.user,
            created_at=backup.created_at,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Retention
    # ══════════════════════════════════════════════════════════════════════

    async def _cleanup(self, db: AsyncSession, model, retention_days: int, label: str) -> int:
        threshold = now_ms() - retention_days * DAY_MS
        try:
            result = await db.execute(delete(model).where(model.timestamp < threshold))
        except Exception as e:
            logger.error("Database error pruning %s: %s", label, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not clean up old records. Please try again.",
                context={"table": model.__tablename__},
            )

        count = result.rowcount or 0
        if count > 0:
            logger.info("Deleted %d %s older than %d days", count, label, retention_days)
        return count


# ── Singleton Instance ────────────────────────────────────────────────────
history_service = HistoryService()
