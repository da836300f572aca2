"""
PostgreSQL booking store via SQLAlchemy async.

Every call runs in its own short-lived session. A failing statement (for
example a predicate function that has not been migrated yet) therefore
never aborts the transaction of the next call, which is what lets the
availability checker fall back to a plain scan.

The conflict predicates are SQL functions created by migration 002:
  is_time_slot_available_for_room(room_id, date, start, end, exclude_event_id)
  is_time_slot_available(date, start, end, exclude_event_id)
"""

from datetime import date, time
from typing import Optional, Sequence

from sqlalchemy import Date, Integer, String, Time, delete, func, insert, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import get_logger
from app.models.booking import Booking
from app.models.event import Event
from app.models.room import Room
from app.schemas.booking import BookingRecord, BookingWithEventDetails
from app.schemas.event import EventRecord
from app.schemas.room import RoomRecord
from app.services.interfaces.store import EVENT_MUTABLE_FIELDS, BookingStore

logger = get_logger(__name__)


def _details(booking: Booking, event: Event, room: Room) -> BookingWithEventDetails:
    return BookingWithEventDetails(
        id=booking.id,
        event_id=event.id,
        date=booking.date,
        room_id=room.id,
        room_name=room.name,
        event_name=event.event_name,
        poc_name=event.poc_name,
        phone_number=event.phone_number,
        start_time=event.start_time,
        end_time=event.end_time,
        color=event.color,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )


def _details_query():
    return (
        select(Booking, Event, Room)
        .join(Event, Booking.event_id == Event.id)
        .join(Room, Event.room_id == Room.id)
    )


class SqlBookingStore(BookingStore):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], engine=None):
        self._session_factory = session_factory
        self._engine = engine

    async def is_slot_available_for_room(
        self,
        room_id: str,
        booking_date: date,
        start_time: time,
        end_time: time,
        exclude_event_id: Optional[int] = None,
    ) -> bool:
        stmt = select(
            func.is_time_slot_available_for_room(
                literal(room_id, String),
                literal(booking_date, Date),
                literal(start_time, Time),
                literal(end_time, Time),
                literal(exclude_event_id, Integer),
            )
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return bool(result.scalar_one())

    async def is_slot_available(
        self,
        booking_date: date,
        start_time: time,
        end_time: time,
        exclude_event_id: Optional[int] = None,
    ) -> bool:
        stmt = select(
            func.is_time_slot_available(
                literal(booking_date, Date),
                literal(start_time, Time),
                literal(end_time, Time),
                literal(exclude_event_id, Integer),
            )
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return bool(result.scalar_one())

    async def list_rooms(self, active_only: bool = True) -> list[RoomRecord]:
        query = select(Room).order_by(Room.id)
        if active_only:
            query = query.where(Room.is_active.is_(True))
        async with self._session_factory() as session:
            rooms = (await session.scalars(query)).all()
            return [RoomRecord.model_validate(r) for r in rooms]

    async def get_room(self, room_id: str) -> Optional[RoomRecord]:
        async with self._session_factory() as session:
            room = await session.get(Room, room_id)
            return RoomRecord.model_validate(room) if room else None

    async def get_event(self, event_id: int) -> Optional[EventRecord]:
        async with self._session_factory() as session:
            event = await session.get(Event, event_id)
            return EventRecord.model_validate(event) if event else None

    async def get_booking(self, booking_id: int) -> Optional[BookingWithEventDetails]:
        async with self._session_factory() as session:
            row = (await session.execute(_details_query().where(Booking.id == booking_id))).first()
            return _details(*row) if row else None

    async def list_event_bookings(self, event_id: int) -> list[BookingRecord]:
        query = select(Booking).where(Booking.event_id == event_id).order_by(Booking.date)
        async with self._session_factory() as session:
            bookings = (await session.scalars(query)).all()
            return [BookingRecord.model_validate(b) for b in bookings]

    async def list_bookings_for_date(self, booking_date: date) -> list[BookingWithEventDetails]:
        query = _details_query().where(Booking.date == booking_date).order_by(Event.start_time)
        async with self._session_factory() as session:
            rows = (await session.execute(query)).all()
            return [_details(*row) for row in rows]

    async def list_bookings_between(
        self,
        first_date: date,
        last_date: date,
        room_id: Optional[str] = None,
    ) -> list[BookingWithEventDetails]:
        query = _details_query().where(Booking.date >= first_date, Booking.date <= last_date)
        if room_id is not None:
            query = query.where(Event.room_id == room_id)
        query = query.order_by(Booking.date, Event.start_time)
        async with self._session_factory() as session:
            rows = (await session.execute(query)).all()
            return [_details(*row) for row in rows]

    async def ensure_rooms(self, rooms: Sequence[RoomRecord]) -> int:
        inserted = 0
        async with self._session_factory.begin() as session:
            for room in rooms:
                if await session.get(Room, room.id) is None:
                    session.add(Room(**room.model_dump()))
                    inserted += 1
        return inserted

    async def insert_event(self, data: dict) -> EventRecord:
        values = {k: data[k] for k in EVENT_MUTABLE_FIELDS if k in data}
        async with self._session_factory.begin() as session:
            event = (await session.scalars(insert(Event).values(**values).returning(Event))).one()
            record = EventRecord.model_validate(event)
        logger.debug("event_inserted", event_id=record.id)
        return record

    async def insert_bookings(self, event_id: int, dates: Sequence[date]) -> list[BookingRecord]:
        if not dates:
            return []
        async with self._session_factory.begin() as session:
            bookings = (
                await session.scalars(
                    insert(Booking).returning(Booking, sort_by_parameter_order=True),
                    [{"event_id": event_id, "date": d} for d in dates],
                )
            ).all()
            records = [BookingRecord.model_validate(b) for b in bookings]
        logger.debug("bookings_inserted", event_id=event_id, count=len(records))
        return records

    async def update_event(self, event_id: int, changes: dict) -> Optional[EventRecord]:
        values = {k: v for k, v in changes.items() if k in EVENT_MUTABLE_FIELDS}
        async with self._session_factory.begin() as session:
            if not values:
                event = await session.get(Event, event_id)
            else:
                event = (
                    await session.scalars(
                        update(Event)
                        .where(Event.id == event_id)
                        .values(**values)
                        .returning(Event)
                        .execution_options(synchronize_session=False)
                    )
                ).one_or_none()
            return EventRecord.model_validate(event) if event else None

    async def update_booking_date(self, booking_id: int, new_date: date) -> Optional[BookingRecord]:
        async with self._session_factory.begin() as session:
            booking = (
                await session.scalars(
                    update(Booking)
                    .where(Booking.id == booking_id)
                    .values(date=new_date)
                    .returning(Booking)
                    .execution_options(synchronize_session=False)
                )
            ).one_or_none()
            return BookingRecord.model_validate(booking) if booking else None

    async def delete_event_bookings(self, event_id: int) -> int:
        async with self._session_factory.begin() as session:
            result = await session.execute(delete(Booking).where(Booking.event_id == event_id))
            return result.rowcount or 0

    async def delete_event(self, event_id: int) -> bool:
        async with self._session_factory.begin() as session:
            result = await session.execute(delete(Event).where(Event.id == event_id))
            return (result.rowcount or 0) > 0

    async def delete_booking(self, booking_id: int) -> bool:
        async with self._session_factory.begin() as session:
            result = await session.execute(delete(Booking).where(Booking.id == booking_id))
            return (result.rowcount or 0) > 0

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
