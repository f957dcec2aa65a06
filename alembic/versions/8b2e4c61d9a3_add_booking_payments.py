"""Add payments ledger to bookings

Revision ID: 8b2e4c61d9a3
Revises: 3f1c9a7d2b10
Create Date: 2026-10-17 15:40:08.551903

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op  # type: ignore[attr-defined]

# revision identifiers, used by Alembic.
revision = "8b2e4c61d9a3"
down_revision = "3f1c9a7d2b10"
branch_labels = None
depends_on = None

SCHEMA = "bnb"


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column(
        "bookings",
        sa.Column("payments", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_bookings_room_stay", "bookings", ["room_id", "check_in", "check_out"], schema=SCHEMA
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_bookings_room_stay", table_name="bookings", schema=SCHEMA)
    op.drop_column("bookings", "payments", schema=SCHEMA)
