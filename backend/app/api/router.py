"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from app.api.routes import availability, bookings, diagnostics, events, rooms

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(rooms.router)
api_router.include_router(availability.router)
api_router.include_router(bookings.router)
api_router.include_router(events.router)
api_router.include_router(diagnostics.router)
