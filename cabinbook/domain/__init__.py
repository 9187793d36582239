"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityCalculator
from .clock import Clock, FixedClock, SystemClock
from .models import (
    Accept,
    AvailabilityState,
    EventKind,
    Reject,
    RejectReason,
    Reservation,
    ReservationEvent,
    ReservationStatus,
    ResourceStatus,
    TimeRange,
    TimeSlot,
)
from .slot_grid import Anchored, Empty, Ranged, SelectionSession, SlotGrid
from .validator import CandidateRange, ReservationValidator
from .zone_calendar import TimeZoneCalendar, WeekStart

__all__ = [
    "Accept",
    "Anchored",
    "AvailabilityCalculator",
    "AvailabilityState",
    "CandidateRange",
    "Clock",
    "Empty",
    "EventKind",
    "FixedClock",
    "Ranged",
    "Reject",
    "RejectReason",
    "Reservation",
    "ReservationEvent",
    "ReservationStatus",
    "ReservationValidator",
    "ResourceStatus",
    "SelectionSession",
    "SlotGrid",
    "SystemClock",
    "TimeRange",
    "TimeSlot",
    "TimeZoneCalendar",
    "WeekStart",
]
