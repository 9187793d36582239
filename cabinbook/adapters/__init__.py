"""
Adapters layer - Reservation storage and outbound notifications.
"""

from .json_store import JsonFileReservationStore
from .memory_store import InMemoryReservationStore
from .webhook_notifier import WebhookNotifier

__all__ = ["InMemoryReservationStore", "JsonFileReservationStore", "WebhookNotifier"]
