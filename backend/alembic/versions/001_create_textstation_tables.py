"""Create TextStation tables

Revision ID: 001
Revises: None
Create Date: 2024-05-01 00:00:00.000000+00:00

What:  Creates the four tables of the TextStation backend:
       style_rules, snippets, log_aggregations, backups.
How:   PostgreSQL-specific: UUID primary keys from gen_random_uuid(), JSONB
       for list-valued columns, a GIN index for the rule media filter.
       Timestamps are epoch milliseconds (BIGINT), the editor client's unit.

Rollback: downgrade() drops all four tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def upgrade() -> None:
    # ── style_rules: read-only for the API, maintained by administrators ──
    op.create_table(
        "style_rules",
        _uuid_pk(),
        sa.Column(
            "type",
            sa.String(50),
            nullable=False,
            comment="Rule kind: ambiguousPhrase, repetitivePattern, mediaSpecific",
        ),
        sa.Column("text", sa.Text(), nullable=True),
        sa.Column("pattern", sa.Text(), nullable=True),
        sa.Column("suggestion", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("media_type", sa.String(100), nullable=True),
        sa.Column(
            "media_types",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
            comment='Media this rule applies to, e.g. ["news", "blog"]',
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_style_rules_active", "style_rules", ["is_active"])
    op.create_index(
        "idx_style_rules_media_types",
        "style_rules",
        ["media_types"],
        postgresql_using="gin",
    )

    # ── snippets ──────────────────────────────────────────────────────────
    op.create_table(
        "snippets",
        _uuid_pk(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "variables",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("is_shared", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_snippets_shared_created",
        "snippets",
        ["is_shared", sa.text("created_at DESC")],
    )

    # ── log_aggregations ──────────────────────────────────────────────────
    op.create_table(
        "log_aggregations",
        _uuid_pk(),
        sa.Column("timestamp", sa.BigInteger(), nullable=True),
        sa.Column("week", sa.String(32), nullable=True),
        sa.Column("logs", postgresql.JSONB(), nullable=False),
        sa.Column("errors", postgresql.JSONB(), nullable=False),
        sa.Column("user", sa.String(255), nullable=True),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_log_aggregations_timestamp", "log_aggregations", ["timestamp"])

    # ── backups ───────────────────────────────────────────────────────────
    op.create_table(
        "backups",
        _uuid_pk(),
        sa.Column("timestamp", sa.BigInteger(), nullable=True),
        sa.Column("date", sa.String(32), nullable=True),
        sa.Column("text", sa.Text(), nullable=True),
        sa.Column("results", postgresql.JSONB(), nullable=True),
        sa.Column("user", sa.String(255), nullable=True),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_backups_timestamp", "backups", [sa.text("timestamp DESC")])


def downgrade() -> None:
    op.drop_index("idx_backups_timestamp", table_name="backups")
    op.drop_table("backups")
    op.drop_index("idx_log_aggregations_timestamp", table_name="log_aggregations")
    op.drop_table("log_aggregations")
    op.drop_index("idx_snippets_shared_created", table_name="snippets")
    op.drop_table("snippets")
    op.drop_index("idx_style_rules_media_types", table_name="style_rules")
    op.drop_index("idx_style_rules_active", table_name="style_rules")
    op.drop_table("style_rules")
