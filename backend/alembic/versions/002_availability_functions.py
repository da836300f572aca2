"""Server-side availability predicates.

is_time_slot_available_for_room: room-scoped check used by the API.
is_time_slot_available: room-agnostic check kept for older clients; it treats
every room as one shared resource.

Both use the half-open rule: [s1, e1) and [s2, e2) overlap iff s1 < e2 and e1 > s2.

Revision ID: 002
Revises: 001
Create Date: 2026-03-14
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        """
        CREATE OR REPLACE FUNCTION is_time_slot_available_for_room(
            p_room_id VARCHAR,
            p_date DATE,
            p_start_time TIME,
            p_end_time TIME,
            p_exclude_event_id INTEGER DEFAULT NULL
        ) RETURNS BOOLEAN
        LANGUAGE plpgsql STABLE AS $$
        BEGIN
            RETURN NOT EXISTS (
                SELECT 1
                FROM bookings b
                JOIN events e ON e.id = b.event_id
                WHERE e.room_id = p_room_id
                  AND b.date = p_date
                  AND (p_exclude_event_id IS NULL OR e.id <> p_exclude_event_id)
                  AND e.start_time < p_end_time
                  AND e.end_time > p_start_time
            );
        END;
        $$;
        """
    )
    op.execute(
        """
        CREATE OR REPLACE FUNCTION is_time_slot_available(
            p_date DATE,
            p_start_time TIME,
            p_end_time TIME,
            p_exclude_event_id INTEGER DEFAULT NULL
        ) RETURNS BOOLEAN
        LANGUAGE plpgsql STABLE AS $$
        BEGIN
            RETURN NOT EXISTS (
                SELECT 1
                FROM bookings b
                JOIN events e ON e.id = b.event_id
                WHERE b.date = p_date
                  AND (p_exclude_event_id IS NULL OR e.id <> p_exclude_event_id)
                  AND e.start_time < p_end_time
                  AND e.end_time > p_start_time
            );
        END;
        $$;
        """
    )


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS is_time_slot_available(DATE, TIME, TIME, INTEGER)")
    op.execute("DROP FUNCTION IF EXISTS is_time_slot_available_for_room(VARCHAR, DATE, TIME, TIME, INTEGER)")
