"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .reservation_service import (
    NotificationDispatcherProtocol,
    ReservationService,
    ReservationStoreProtocol,
    ResourceSettings,
)

__all__ = [
    "NotificationDispatcherProtocol",
    "ReservationService",
    "ReservationStoreProtocol",
    "ResourceSettings",
]
