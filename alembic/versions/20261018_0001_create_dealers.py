"""create dealers table

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "dealers",
        sa.Column("id", sa.String(length=64), nullable=False, comment="Stable lowercase dealer identifier"),
        sa.Column("site_url", sa.Text(), nullable=False),
        sa.Column(
            "list_paths",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Ordered listing-page paths relative to site_url",
        ),
        sa.Column(
            "detail_path_pattern",
            sa.String(length=255),
            nullable=True,
            comment="Regex matched against candidate detail-page paths",
        ),
        sa.Column("excluded_paths", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("price_selectors", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("min_request_interval_seconds", sa.Float(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_dealers_is_active", "dealers", ["is_active"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_dealers_is_active", table_name="dealers")
    op.drop_table("dealers")
