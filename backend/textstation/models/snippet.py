"""
TextStation Backend — Snippet SQLAlchemy Model
===============================================

What:  ORM model for the `snippets` table.
Why:   Snippets are reusable text blocks (with placeholder variables) that the
       editor inserts into documents.

Personal vs shared:
    Snippets saved through the API are always personal (is_shared = false).
    Shared snippets are provisioned by administrators directly in the store;
    the API can read them but never delete them.

Timestamps are epoch milliseconds because the editor client sorts and
displays them as JavaScript Date values.
"""

import uuid
from typing import Any, List, Optional

from sqlalchemy import BigInteger, Boolean, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from textstation.database import Base, now_ms

DEFAULT_CATEGORY = "未分類"


class Snippet(Base):
    """A reusable text snippet."""

    __tablename__ = "snippets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Placeholder definitions, e.g. [{"name": "customer", "default": ""}]
    variables: Mapped[List[Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    is_shared: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=now_ms)
    updated_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True, default=now_ms)

    __table_args__ = (
        # Listing query: WHERE is_shared = ? ORDER BY created_at DESC
        Index("idx_snippets_shared_created", "is_shared", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Snippet(id={self.id}, title='{self.title}', shared={self.is_shared})>"
