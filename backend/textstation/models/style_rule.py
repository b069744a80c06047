"""
TextStation Backend — Style Rule SQLAlchemy Model
==================================================

What:  ORM model for the `style_rules` table (the rule store).
Why:   Style rules are configuration data edited outside this service; the
       analyzer only ever reads them.
Who:   Read by RuleRepository; Alembic manages the schema.

One row per rule. The `type` discriminator decides which of the text-like
columns is meaningful:

    type               | uses
    -------------------+---------------------------------------
    ambiguousPhrase    | text, suggestion
    repetitivePattern  | pattern, suggestion
    mediaSpecific      | pattern, description, media_type

`media_types` is the set of media a rule applies to (used to filter rules for
a request); `media_type` is the single label reported back on media-specific
rules.
"""

import uuid
from typing import List, Optional

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy import text as sql_text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from textstation.database import Base

RULE_TYPE_AMBIGUOUS_PHRASE = "ambiguousPhrase"
RULE_TYPE_REPETITIVE_PATTERN = "repetitivePattern"
RULE_TYPE_MEDIA_SPECIFIC = "mediaSpecific"


class StyleRule(Base):
    """A single persisted style rule."""

    __tablename__ = "style_rules"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=sql_text("gen_random_uuid()"),
    )

    type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Rule kind: ambiguousPhrase, repetitivePattern, mediaSpecific",
    )

    # Regular expressions are stored as plain text; they are compiled at
    # analysis time, so a broken pattern surfaces as an analysis failure
    text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pattern: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    suggestion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    media_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    media_types: Mapped[List[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=sql_text("'[]'::jsonb"),
        comment="Media this rule applies to, e.g. [\"news\", \"blog\"]",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=sql_text("true"),
    )

    # Rules are applied, and their issues reported, in this order
    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=sql_text("0"),
    )

    __table_args__ = (
        Index("idx_style_rules_active", "is_active"),
        # GIN index serves the `media_types @> '["news"]'` containment filter
        Index("idx_style_rules_media_types", "media_types", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return f"<StyleRule(id={self.id}, type='{self.type}', active={self.is_active})>"
