"""Initial schema: rooms, events, bookings with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-03-14
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Rooms table (closed catalog, seeded below)
    rooms = op.create_table(
        "rooms",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("room_id", sa.String(20), sa.ForeignKey("rooms.id"), nullable=False),
        sa.Column("event_name", sa.String(255), nullable=False),
        sa.Column("poc_name", sa.String(255), nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=True),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("color", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("start_time < end_time", name="check_event_time_range"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    # Availability checks join bookings to events and filter by room
    op.create_index("ix_events_room_id", "events", ["room_id"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "date", name="uq_event_booking_date"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_event_id", "bookings", ["event_id"])
    # INDEX ON BOOKING DATE: every availability check and every calendar
    # listing filters bookings by a single date or a month range.
    op.create_index("ix_bookings_date", "bookings", ["date"])

    op.bulk_insert(
        rooms,
        [
            {"id": "1-17", "name": "Room 1-17 (Training Room)", "capacity": 20, "is_active": True},
            {"id": "1-21", "name": "Room 1-21 (Main Conference Room)", "capacity": 40, "is_active": True},
        ],
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("events")
    op.drop_table("rooms")
