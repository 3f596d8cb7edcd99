"""create vehicles table

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 09:05:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "vehicles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dealer_id", sa.String(length=64), nullable=False),
        sa.Column("canonical_url", sa.Text(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=True),
        sa.Column("price", sa.Integer(), nullable=True, comment="Whole currency units"),
        sa.Column(
            "attributes",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
            comment="Open attribute bag: fuel, transmission, mileage, ulez_compliant, ...",
        ),
        sa.Column("first_seen", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("last_seen", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("is_stale", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("dealer_id", "canonical_url", name="uq_vehicles_dealer_canonical_url"),
    )
    op.create_index("ix_vehicles_dealer_price", "vehicles", ["dealer_id", "price"], unique=False)
    op.create_index("ix_vehicles_dealer_title", "vehicles", ["dealer_id", "title"], unique=False)
    op.create_index("ix_vehicles_dealer_is_stale", "vehicles", ["dealer_id", "is_stale"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_vehicles_dealer_is_stale", table_name="vehicles")
    op.drop_index("ix_vehicles_dealer_title", table_name="vehicles")
    op.drop_index("ix_vehicles_dealer_price", table_name="vehicles")
    op.drop_table("vehicles")
