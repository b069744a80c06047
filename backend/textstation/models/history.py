"""
TextStation Backend — Log Aggregation and Backup Models
========================================================

What:  ORM models for the `log_aggregations` and `backups` tables.
Why:   The editor client periodically pushes its collected logs and a backup
       of the current document; both are kept for a limited retention period.

`timestamp` is the client-reported time (epoch ms) and drives retention
cleanup and ordering. `created_at` is the server receive time.
"""

import uuid
from typing import Any, List, Optional

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy import text as sql_text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from textstation.database import Base, now_ms


class LogAggregation(Base):
    """One weekly batch of client-side log entries."""

    __tablename__ = "log_aggregations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=sql_text("gen_random_uuid()"),
    )
    timestamp: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    week: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    logs: Mapped[List[Any]] = mapped_column(JSONB, nullable=False, default=list)
    errors: Mapped[List[Any]] = mapped_column(JSONB, nullable=False, default=list)
    user: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=now_ms)

    __table_args__ = (
        Index("idx_log_aggregations_timestamp", "timestamp"),
    )


class Backup(Base):
    """A snapshot of the editor's text and its last analysis results."""

    __tablename__ = "backups"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=sql_text("gen_random_uuid()"),
    )
    timestamp: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    date: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Whatever the client had as analysis output; stored verbatim
    results: Mapped[Optional[Any]] = mapped_column(JSONB, nullable=True)
    user: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=now_ms)

    __table_args__ = (
        Index("idx_backups_timestamp", timestamp.desc()),
    )

    def __repr__(self) -> str:
        return f"<Backup(id={self.id}, date='{self.date}', user='{self.user}')>"
