"""
Infrastructure layer - store implementations behind the BookingStore interface.
Keeps business logic clean from implementation details.
"""

from .memory_store import InMemoryBookingStore, StoreError

__all__ = ['InMemoryBookingStore', 'StoreError']
