"""
Room catalog endpoints.
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_room_service
from app.schemas.room import RoomRecord
from app.services.room_service import RoomService

router = APIRouter(prefix="/rooms", tags=["Rooms"])


@router.get("/", response_model=list[RoomRecord])
async def list_rooms(rooms: RoomService = Depends(get_room_service)):
    """List the active bookable rooms."""
    return await rooms.list_rooms()
