"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-16

Creates all tables for the Family Dinner application:
users, events, event_cuisines, event_dietary_accommodations,
reservations, proposed_dates, availability_responses.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EVENT_STATUS = sa.Enum("OPEN", "FULL", "POLL_ACTIVE", "COMPLETED", "CANCELLED", name="eventstatus")
POLL_STATUS = sa.Enum("ACTIVE", "FINALIZED", "CLOSED", name="pollstatus")
RESERVATION_STATUS = sa.Enum("CONFIRMED", "WAITLIST", "CANCELLED", name="reservationstatus")

ACTIVE_RESERVATION = sa.text("status != 'CANCELLED'")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("venmo_username", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("host_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_minutes", sa.Integer, nullable=False, server_default="120"),
        sa.Column("max_capacity", sa.Integer, nullable=False),
        sa.Column("estimated_cost_per_person", sa.Float, nullable=False, server_default="0"),
        sa.Column("timezone", sa.String(50), nullable=False, server_default="UTC"),
        sa.Column("status", EVENT_STATUS, nullable=False, server_default="OPEN"),
        sa.Column("allow_waitlist", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("reservation_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("use_availability_poll", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("poll_status", POLL_STATUS, nullable=True),
        sa.Column("poll_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finalized_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("neighborhood", sa.String(100), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("show_full_address", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_events_host_id", "events", ["host_id"])

    # --- event tags ---
    op.create_table(
        "event_cuisines",
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("cuisine", sa.String(50), primary_key=True),
    )
    op.create_table(
        "event_dietary_accommodations",
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("accommodation", sa.String(50), primary_key=True),
    )

    # --- reservations ---
    op.create_table(
        "reservations",
        sa.Column("reservation_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("guest_name", sa.String(100), nullable=True),
        sa.Column("guest_email", sa.String(255), nullable=True),
        sa.Column("guest_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("status", RESERVATION_STATUS, nullable=False, server_default="CONFIRMED"),
        sa.Column("dietary_restrictions", sa.Text, nullable=True),
        sa.Column("special_requests", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("guest_count >= 1 AND guest_count <= 10", name="ck_reservation_guest_count"),
        sa.CheckConstraint("user_id IS NOT NULL OR guest_email IS NOT NULL", name="ck_reservation_identity"),
    )
    op.create_index("ix_reservations_event_id", "reservations", ["event_id"])
    op.create_index("ix_reservations_user_id", "reservations", ["user_id"])
    op.create_index("ix_reservation_event_status_created", "reservations", ["event_id", "status", "created_at"])
    op.create_index(
        "uq_reservation_active_user", "reservations", ["event_id", "user_id"], unique=True,
        sqlite_where=ACTIVE_RESERVATION, postgresql_where=ACTIVE_RESERVATION,
    )
    op.create_index(
        "uq_reservation_active_guest", "reservations", ["event_id", "guest_email"], unique=True,
        sqlite_where=ACTIVE_RESERVATION, postgresql_where=ACTIVE_RESERVATION,
    )

    # --- proposed_dates ---
    op.create_table(
        "proposed_dates",
        sa.Column("proposed_date_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("time", sa.String(5), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "date", "time", name="uq_proposed_date_slot"),
    )
    op.create_index("ix_proposed_dates_event_id", "proposed_dates", ["event_id"])

    # --- availability_responses ---
    op.create_table(
        "availability_responses",
        sa.Column("response_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "proposed_date_id", sa.String(36),
            sa.ForeignKey("proposed_dates.proposed_date_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("guest_email", sa.String(255), nullable=True),
        sa.Column("guest_name", sa.String(100), nullable=True),
        sa.Column("available", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("tentative", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("user_id IS NOT NULL OR guest_email IS NOT NULL", name="ck_response_identity"),
    )
    op.create_index("ix_response_event_user", "availability_responses", ["event_id", "user_id"])
    op.create_index("ix_response_event_email", "availability_responses", ["event_id", "guest_email"])


def downgrade() -> None:
    op.drop_table("availability_responses")
    op.drop_table("proposed_dates")
    op.drop_table("reservations")
    op.drop_table("event_dietary_accommodations")
    op.drop_table("event_cuisines")
    op.drop_table("events")
    op.drop_table("users")
    RESERVATION_STATUS.drop(op.get_bind(), checkfirst=True)
    POLL_STATUS.drop(op.get_bind(), checkfirst=True)
    EVENT_STATUS.drop(op.get_bind(), checkfirst=True)
