"""
Room reference data: the fixed catalog and lookups against it.
"""

from typing import Optional

from app.core.errors import ErrorSource, ValidationError
from app.core.logging import get_logger
from app.core.retry import RetryPolicy
from app.schemas.room import RoomRecord
from app.services.interfaces.store import BookingStore

DEFAULT_ROOMS = (
    RoomRecord(id="1-17", name="Room 1-17 (Training Room)", capacity=20),
    RoomRecord(id="1-21", name="Room 1-21 (Main Conference Room)", capacity=40),
)


class RoomService:

    def __init__(self, store: BookingStore, retry_policy: Optional[RetryPolicy] = None, logger=None):
        self.store = store
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = logger or get_logger(__name__)

    async def seed_default_rooms(self) -> int:
        inserted = await self.retry_policy.run(
            lambda: self.store.ensure_rooms(DEFAULT_ROOMS),
            operation_name="ensure_rooms",
            logger=self.logger,
        )
        if inserted:
            self.logger.info("rooms_seeded", inserted=inserted)
        return inserted

    async def list_rooms(self) -> list[RoomRecord]:
        return await self.retry_policy.run(
            self.store.list_rooms,
            operation_name="list_rooms",
            logger=self.logger,
        )

    async def require_active_room(self, room_id: str) -> RoomRecord:
        room = await self.retry_policy.run(
            lambda: self.store.get_room(room_id),
            operation_name="get_room",
            logger=self.logger,
        )
        if room is None or not room.is_active:
            raise ValidationError("room_id", f"unknown or inactive room '{room_id}'", source=ErrorSource.BOOKING)
        return room
