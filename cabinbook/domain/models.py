"""
Domain models for reservations, time ranges and derived availability values.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Tuple, Union

import pendulum
from pendulum import DateTime


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable, right-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def contains(self, instant: DateTime) -> bool:
        """Check if an instant falls inside the range (end excluded)."""
        return self.start <= instant < self.end

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


class ReservationStatus(str, Enum):
    """Lifecycle status of a reservation row."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Reservation:
    """
    A reservation of one resource.

    ``owner_ref`` is opaque to the core (member id, guest fingerprint or None).
    """
    id: str
    resource_id: str
    start: DateTime
    end: DateTime
    status: ReservationStatus = ReservationStatus.CONFIRMED
    purpose: str = ""
    owner_ref: str | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == ReservationStatus.CONFIRMED

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def overlaps(self, start: DateTime, end: DateTime) -> bool:
        """Right-open overlap test against ``[start, end)``."""
        return self.start < end and self.end > start

    def covers(self, instant: DateTime) -> bool:
        return self.start <= instant < self.end

    def with_range(self, start: DateTime, end: DateTime, purpose: str | None = None) -> "Reservation":
        """Return a copy with a new range (and optionally a new purpose)."""
        return replace(
            self,
            start=start,
            end=end,
            purpose=self.purpose if purpose is None else purpose,
        )

    def cancelled(self) -> "Reservation":
        return replace(self, status=ReservationStatus.CANCELLED)

    def duration_label(self) -> str:
        """Human readable duration, e.g. ``1h 30m``."""
        minutes = int(round((self.end - self.start).total_seconds() / 60))
        hours, rest = divmod(minutes, 60)
        if hours and rest:
            return f"{hours}h {rest}m"
        if hours:
            return f"{hours}h"
        return f"{rest}m"

    def format_display(self, timezone: str = "UTC") -> str:
        """
        Format the reservation for display in the resource's zone.
        Format: YYYY-MM-DD HH:mm - HH:mm (duration) purpose
        """
        start = self.start.in_timezone(timezone)
        end = self.end.in_timezone(timezone)
        text = (
            f"{start.format('YYYY-MM-DD')} {start.format('HH:mm')} - {end.format('HH:mm')}"
            f" ({self.duration_label()})"
        )
        if self.purpose:
            text = f"{text} {self.purpose}"
        return text


@dataclass(frozen=True)
class TimeSlot:
    """
    One fixed-width cell of a day's timetable. Derived on demand, never stored.
    """
    start: DateTime
    end: DateTime
    is_reserved: bool = False
    is_past: bool = False
    is_current: bool = False
    is_reservation_start: bool = False

    @property
    def is_selectable(self) -> bool:
        return not (self.is_reserved or self.is_past)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def label(self, timezone: str) -> str:
        """Wall-clock start of the slot, e.g. ``13:30``."""
        return self.start.in_timezone(timezone).format("HH:mm")


class AvailabilityState(str, Enum):
    FREE = "free"
    OCCUPIED = "occupied"


class ReservationPhase(str, Enum):
    ONGOING = "ongoing"
    UPCOMING = "upcoming"
    ENDED = "ended"


@dataclass(frozen=True)
class ResourceStatus:
    """Current state of a resource derived from its confirmed reservations."""
    state: AvailabilityState
    current: Reservation | None = None
    next: Reservation | None = None

    @property
    def is_occupied(self) -> bool:
        return self.state == AvailabilityState.OCCUPIED


class RejectReason(str, Enum):
    INVALID_RANGE = "invalid_range"
    PAST_TIME = "past_time"
    END_BEFORE_START = "end_before_start"
    OVERLAP = "overlap"
    MISSING_PURPOSE = "missing_purpose"


@dataclass(frozen=True)
class Accept:
    """Positive validation outcome carrying the effective range."""
    time_range: TimeRange

    @property
    def accepted(self) -> bool:
        return True


@dataclass(frozen=True)
class Reject:
    """Negative validation outcome; conflicts are set for overlaps."""
    reason: RejectReason
    message: str = ""
    conflicts: Tuple[Reservation, ...] = field(default_factory=tuple)

    @property
    def accepted(self) -> bool:
        return False


ValidationResult = Union[Accept, Reject]


class EventKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class ReservationEvent:
    """Emitted after a successful mutation for out-of-band notification."""
    resource_id: str
    reservation: Reservation
    kind: EventKind
    occurred_at: DateTime = field(default_factory=lambda: pendulum.now("UTC"))
