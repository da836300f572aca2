"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .store import BookingStore

__all__ = ['BookingStore']
