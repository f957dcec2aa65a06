"""Create booking tables

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-17 09:12:31.402118

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op  # type: ignore[attr-defined]

# revision identifiers, used by Alembic.
revision = "3f1c9a7d2b10"
down_revision = None
branch_labels = None
depends_on = None

SCHEMA = "bnb"


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("channel_booking_id", sa.String(), nullable=True),
        sa.Column("channel_id", sa.String(), nullable=True),
        sa.Column("channel_name", sa.String(), nullable=True),
        sa.Column("room_id", sa.String(), nullable=False),
        sa.Column("check_in", sa.Date(), nullable=False),
        sa.Column("check_out", sa.Date(), nullable=False),
        sa.Column("guests", sa.Integer(), nullable=False),
        sa.Column("nights", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), server_default="EUR", nullable=False),
        sa.Column("deposit_paid", sa.Integer(), server_default="0", nullable=False),
        sa.Column("balance_due", sa.Integer(), server_default="0", nullable=False),
        sa.Column("origin", sa.String(), server_default="site", nullable=False),
        sa.Column("status", sa.String(), server_default="pending", nullable=False),
        sa.Column("payment_reference", sa.String(), nullable=True),
        sa.Column("payment_provider", sa.String(), nullable=True),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("first_name", sa.String(), server_default="", nullable=False),
        sa.Column("last_name", sa.String(), server_default="", nullable=False),
        sa.Column("email", sa.String(), server_default="", nullable=False),
        sa.Column("phone", sa.String(), server_default="", nullable=False),
        sa.Column("notes", sa.Text(), server_default="", nullable=False),
        sa.Column("last_refund", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_bookings"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_bookings_channel_booking_id",
        "bookings",
        ["channel_booking_id"],
        unique=True,
        schema=SCHEMA,
    )
    op.create_index("ix_bookings_room_id", "bookings", ["room_id"], schema=SCHEMA)
    op.create_index("ix_bookings_status", "bookings", ["status"], schema=SCHEMA)
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"], schema=SCHEMA)
    op.create_index(
        "ix_bookings_stay_guest",
        "bookings",
        ["check_in", "check_out", "room_id", "last_name"],
        schema=SCHEMA,
    )

    op.create_table(
        "blocked_date_ranges",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("room_id", sa.String(), nullable=False),
        sa.Column("date_from", sa.Date(), nullable=False),
        sa.Column("date_to", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(), server_default="", nullable=False),
        sa.Column("channel_block_id", sa.String(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id", name="pk_blocked_date_ranges"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_blocked_date_ranges_room_id", "blocked_date_ranges", ["room_id"], schema=SCHEMA
    )

    op.create_table(
        "channel_tokens",
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("kind", name="pk_channel_tokens"),
        schema=SCHEMA,
    )

    op.create_table(
        "guest_accounts",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), server_default="", nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("user_id", name="pk_guest_accounts"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_guest_accounts_email", "guest_accounts", ["email"], unique=True, schema=SCHEMA
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_guest_accounts_email", table_name="guest_accounts", schema=SCHEMA)
    op.drop_table("guest_accounts", schema=SCHEMA)
    op.drop_table("channel_tokens", schema=SCHEMA)
    op.drop_index(
        "ix_blocked_date_ranges_room_id", table_name="blocked_date_ranges", schema=SCHEMA
    )
    op.drop_table("blocked_date_ranges", schema=SCHEMA)
    op.drop_index("ix_bookings_stay_guest", table_name="bookings", schema=SCHEMA)
    op.drop_index("ix_bookings_user_id", table_name="bookings", schema=SCHEMA)
    op.drop_index("ix_bookings_status", table_name="bookings", schema=SCHEMA)
    op.drop_index("ix_bookings_room_id", table_name="bookings", schema=SCHEMA)
    op.drop_index("ix_bookings_channel_booking_id", table_name="bookings", schema=SCHEMA)
    op.drop_table("bookings", schema=SCHEMA)
