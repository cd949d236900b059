"""providers and bookings

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "providers",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("username", sa.Text, nullable=False, unique=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("email", sa.Text),
        sa.Column("timezone", sa.Text, nullable=False, server_default=sa.text("'UTC'")),
        sa.Column("working_hours", sa.Text, nullable=False, server_default=sa.text("'{}'")),
        sa.Column("slot_duration", sa.Integer, nullable=False, server_default=sa.text("30")),
        sa.Column("break_time", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("booking_delay", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("multiple_bookings_per_slot", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("bookings_per_slot", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("blocked_dates", sa.Text, nullable=False, server_default=sa.text("'[]'")),
        sa.Column("blocked_slots", sa.Text, nullable=False, server_default=sa.text("'[]'")),
        sa.Column("created_at", sa.Text, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.Text, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("provider_id", sa.Integer, sa.ForeignKey("providers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_name", sa.Text, nullable=False),
        sa.Column("customer_email", sa.Text, nullable=False),
        sa.Column("customer_phone", sa.Text),
        sa.Column("service_type", sa.Text),
        sa.Column("service_id", sa.Text),
        sa.Column("quantity", sa.Integer),
        sa.Column("address", sa.Text),
        sa.Column("date_time_utc", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default=sa.text("'Pending'")),
        sa.Column("slot_ordinal", sa.Integer),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
        sa.UniqueConstraint("provider_id", "date_time_utc", "slot_ordinal", name="uq_booking_slot_ordinal"),
    )
    op.create_index("idx_bookings_provider_time", "bookings", ["provider_id", "date_time_utc"])


def downgrade() -> None:
    op.drop_index("idx_bookings_provider_time", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("providers")
