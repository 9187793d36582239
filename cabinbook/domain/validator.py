"""
Reservation conflict validation.

The validator only decides; it never touches storage. Callers perform the
store mutation on ``Accept`` and render the ``Reject`` reason otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Tuple

from pendulum import DateTime

from .models import Accept, Reject, RejectReason, Reservation, TimeRange, ValidationResult
from .slot_grid import validate_interval
from .zone_calendar import TimeZoneCalendar, as_instant


@dataclass(frozen=True)
class CandidateRange:
    """
    A proposed reservation range.

    ``resource_id`` restricts the overlap check to one resource when set;
    ``reservation_id`` names the reservation being edited on update.
    """
    start: Optional[datetime]
    end: Optional[datetime]
    resource_id: Optional[str] = None
    reservation_id: Optional[str] = None


class ReservationValidator:
    """
    Accepts or rejects a candidate range against existing reservations.

    Rules, in order:
    1. start and end must be aware instants and differ
    2. Midnight crossing: an end whose wall-clock time is earlier than the
       start on the same local date moves to the next day ("23:00"-"01:00")
    3. New reservations may not start before now, floored to the interval
    4. After adjustment, end must be after start
    5. No other confirmed reservation may overlap [start, end)
    """

    def __init__(self, timezone: str, interval_minutes: int = 30):
        self.calendar = TimeZoneCalendar(timezone)
        self.interval_minutes = validate_interval(interval_minutes)

    @property
    def timezone(self) -> str:
        return self.calendar.timezone

    def effective_range(self, start: datetime, end: datetime) -> Tuple[DateTime, DateTime]:
        """
        Apply the midnight-crossing rule and return UTC instants.

        Only an end on the *same* local date as the start is moved, so an end
        that already lies on the next day is never pushed a second time.
        """
        start_local = self.calendar.local(start)
        end_local = self.calendar.local(end)

        if end_local.date() == start_local.date() and end_local.time() < start_local.time():
            end_local = end_local.add(days=1)

        return start_local.in_timezone("UTC"), end_local.in_timezone("UTC")

    def candidate_from_wall_clock(
        self,
        day: date,
        start_time: str,
        end_time: str,
        resource_id: Optional[str] = None,
        reservation_id: Optional[str] = None,
    ) -> CandidateRange:
        """Build a candidate from a local date and ``HH:mm`` strings."""
        return CandidateRange(
            start=self.calendar.at_wall_clock(day, start_time),
            end=self.calendar.at_wall_clock(day, end_time),
            resource_id=resource_id,
            reservation_id=reservation_id,
        )

    def validate(
        self,
        candidate: CandidateRange,
        existing: Iterable[Reservation],
        now: datetime,
        is_update: bool = False,
    ) -> ValidationResult:
        """
        Decide whether ``candidate`` can be stored.

        Pure: identical inputs always give identical results.
        """
        if not _is_aware(candidate.start) or not _is_aware(candidate.end):
            return Reject(
                RejectReason.INVALID_RANGE,
                "Start and end must both be time-zone aware instants.",
            )

        start = as_instant(candidate.start)
        end = as_instant(candidate.end)
        if start == end:
            return Reject(RejectReason.INVALID_RANGE, "Start and end must differ.")

        start, end = self.effective_range(start, end)

        if not is_update:
            earliest = self.calendar.floor_to_interval(now, self.interval_minutes)
            if start < earliest:
                return Reject(
                    RejectReason.PAST_TIME,
                    f"Start {self.calendar.format_time(start)} is in the past.",
                )

        if end <= start:
            return Reject(RejectReason.END_BEFORE_START, "End time must be later than start time.")

        conflicts = tuple(
            sorted(
                (
                    r for r in existing
                    if self._competes(r, candidate, is_update) and r.overlaps(start, end)
                ),
                key=lambda r: r.start,
            )
        )
        if conflicts:
            spans = ", ".join(
                f"{self.calendar.format_time(r.start)}-{self.calendar.format_time(r.end)}"
                for r in conflicts
            )
            return Reject(
                RejectReason.OVERLAP,
                f"The selected time overlaps an existing reservation ({spans}).",
                conflicts,
            )

        return Accept(TimeRange(start=start, end=end))

    @staticmethod
    def _competes(reservation: Reservation, candidate: CandidateRange, is_update: bool) -> bool:
        if not reservation.is_confirmed:
            return False
        if candidate.resource_id is not None and reservation.resource_id != candidate.resource_id:
            return False
        if is_update and reservation.id == candidate.reservation_id:
            return False
        return True


def _is_aware(value: object) -> bool:
    return isinstance(value, datetime) and value.tzinfo is not None and value.utcoffset() is not None
