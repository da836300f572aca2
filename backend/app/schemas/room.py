"""
Pydantic schemas for room reference data.
"""

from pydantic import BaseModel


class RoomRecord(BaseModel):
    id: str
    name: str
    capacity: int
    is_active: bool = True

    model_config = {"from_attributes": True}
