"""
TextStation Backend — Log Aggregation and Backup Schemas
=========================================================

What:  Request and response models for /api/aggregate-logs and the backup
       endpoints.
Why:   These payloads are produced by the editor client on a timer; the
       server stores them as-is and only interprets `timestamp` for
       retention.
"""

from typing import Any, List, Optional

from pydantic import Field

from textstation.schemas.common import CamelModel


class LogAggregationRequest(CamelModel):
    timestamp: Optional[int] = Field(default=None, description="Client time, epoch milliseconds")
    week: Optional[str] = Field(default=None, description="Client-side week label")
    logs: Optional[List[Any]] = None
    errors: Optional[List[Any]] = None
    user: Optional[str] = None


class BackupRequest(CamelModel):
    timestamp: Optional[int] = Field(default=None, description="Client time, epoch milliseconds")
    date: Optional[str] = None
    text: Optional[str] = None
    results: Optional[Any] = Field(default=None, description="Analysis output at backup time")
    user: Optional[str] = None


class BackupListItem(CamelModel):
    id: str
    date: Optional[str] = None
    timestamp: Optional[int] = None
    user: Optional[str] = None


class BackupResponse(CamelModel):
    """Full backup, returned by POST /api/restore-backup."""
    timestamp: Optional[int] = None
    date: Optional[str] = None
    text: Optional[str] = None
    results: Optional[Any] = None
    user: Optional[str] = None
    created_at: Optional[int] = None
