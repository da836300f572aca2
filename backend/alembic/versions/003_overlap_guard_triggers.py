"""Overlap guard triggers.

The API checks availability before it writes, which leaves a window in which
two requests can both see a free slot. These triggers close it:

  - Each write takes a transaction-scoped advisory lock on (room, date), so
    concurrent writers for the same room and day are serialized.
  - Under that lock the trigger re-runs the overlap check and raises
    SQLSTATE 23P01 (exclusion_violation) if the row would overlap a booking
    of another event.

The API maps 23P01 onto a booking conflict (HTTP 409).

Revision ID: 003
Revises: 002
Create Date: 2026-03-21
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        """
        CREATE OR REPLACE FUNCTION guard_room_slot(
            p_room_id VARCHAR,
            p_date DATE,
            p_start_time TIME,
            p_end_time TIME,
            p_event_id INTEGER
        ) RETURNS VOID
        LANGUAGE plpgsql AS $$
        BEGIN
            PERFORM pg_advisory_xact_lock(hashtext('room_slot:' || p_room_id || ':' || p_date::TEXT));
            IF NOT is_time_slot_available_for_room(p_room_id, p_date, p_start_time, p_end_time, p_event_id) THEN
                RAISE EXCEPTION 'booking for room % on % overlaps existing booking', p_room_id, p_date
                    USING ERRCODE = '23P01';
            END IF;
        END;
        $$;
        """
    )

    # New or moved booking rows
    op.execute(
        """
        CREATE OR REPLACE FUNCTION bookings_overlap_guard() RETURNS TRIGGER
        LANGUAGE plpgsql AS $$
        DECLARE
            ev events%ROWTYPE;
        BEGIN
            SELECT * INTO ev FROM events WHERE id = NEW.event_id;
            IF FOUND THEN
                PERFORM guard_room_slot(ev.room_id, NEW.date, ev.start_time, ev.end_time, ev.id);
            END IF;
            RETURN NEW;
        END;
        $$;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_bookings_overlap_guard
        BEFORE INSERT OR UPDATE OF date, event_id ON bookings
        FOR EACH ROW EXECUTE FUNCTION bookings_overlap_guard();
        """
    )

    # Event moved to another room or time: re-check every booking date
    op.execute(
        """
        CREATE OR REPLACE FUNCTION events_overlap_guard() RETURNS TRIGGER
        LANGUAGE plpgsql AS $$
        DECLARE
            booking_date DATE;
        BEGIN
            FOR booking_date IN SELECT date FROM bookings WHERE event_id = NEW.id ORDER BY date LOOP
                PERFORM guard_room_slot(NEW.room_id, booking_date, NEW.start_time, NEW.end_time, NEW.id);
            END LOOP;
            RETURN NEW;
        END;
        $$;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_events_overlap_guard
        BEFORE UPDATE OF room_id, start_time, end_time ON events
        FOR EACH ROW EXECUTE FUNCTION events_overlap_guard();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_events_overlap_guard ON events")
    op.execute("DROP TRIGGER IF EXISTS trg_bookings_overlap_guard ON bookings")
    op.execute("DROP FUNCTION IF EXISTS events_overlap_guard()")
    op.execute("DROP FUNCTION IF EXISTS bookings_overlap_guard()")
    op.execute("DROP FUNCTION IF EXISTS guard_room_slot(VARCHAR, DATE, TIME, TIME, INTEGER)")
