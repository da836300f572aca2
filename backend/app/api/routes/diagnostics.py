"""
Diagnostics endpoints for operators.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_log_buffer
from app.core.logging import LogBuffer

router = APIRouter(prefix="/diagnostics", tags=["Diagnostics"])


@router.get("/logs")
async def recent_logs(
    limit: int = Query(100, ge=1, le=1000),
    log_buffer: Optional[LogBuffer] = Depends(get_log_buffer),
):
    """Most recent log entries, oldest first. Requires LOG_BUFFER_SIZE > 0."""
    if log_buffer is None:
        return {"enabled": False, "capacity": 0, "entries": []}
    return {
        "enabled": True,
        "capacity": log_buffer.capacity,
        "entries": log_buffer.entries(limit),
    }
