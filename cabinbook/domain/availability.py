"""
Resource availability derived from a reservation list.

Pure and stateless: callers may invoke ``status`` on every tick of their own
refresh timer without anything accumulating between calls.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Sequence, Tuple

from pendulum import DateTime

from .exceptions import OverlapInvariantViolated
from .models import (
    AvailabilityState,
    Reservation,
    ReservationPhase,
    ResourceStatus,
)
from .zone_calendar import TimeZoneCalendar, as_instant

logger = logging.getLogger(__name__)


class AvailabilityCalculator:
    """
    Derives free/occupied state, the occupying reservation and the next one.

    Algorithm:
    1. Keep confirmed reservations only
    2. ``current`` is the reservation with start <= now < end
    3. ``next`` is the confirmed reservation with the smallest start > now
    4. The resource is occupied iff ``current`` exists

    Two reservations covering ``now`` can only come from a storage race or a
    bug; that is raised as ``OverlapInvariantViolated`` instead of picking one.
    """

    def status(self, now: datetime, reservations: Iterable[Reservation]) -> ResourceStatus:
        now = as_instant(now)
        confirmed = [r for r in reservations if r.is_confirmed]

        covering = [r for r in confirmed if r.covers(now)]
        if len(covering) > 1:
            resource_ids = {r.resource_id for r in covering}
            resource_id = resource_ids.pop() if len(resource_ids) == 1 else None
            error = OverlapInvariantViolated(resource_id, [r.id for r in covering])
            logger.error("Data integrity violation: %s", error)
            raise error

        current = covering[0] if covering else None
        upcoming = [r for r in confirmed if r.start > now]
        upcoming_next = min(upcoming, key=lambda r: (r.start, r.id)) if upcoming else None

        state = AvailabilityState.OCCUPIED if current else AvailabilityState.FREE
        return ResourceStatus(state=state, current=current, next=upcoming_next)

    def statuses_by_resource(
        self,
        resource_ids: Sequence[str],
        reservations: Iterable[Reservation],
        now: datetime,
    ) -> Dict[str, ResourceStatus]:
        """
        Status for many resources from one batch of reservations.

        Resources without reservations are reported as free.
        """
        grouped = group_by_resource(reservations)
        return {
            resource_id: self.status(now, grouped.get(resource_id, []))
            for resource_id in resource_ids
        }


def phase(reservation: Reservation, now: datetime) -> ReservationPhase:
    """Whether a reservation is running, still ahead, or over."""
    now = as_instant(now)
    if reservation.covers(now):
        return ReservationPhase.ONGOING
    if reservation.start > now:
        return ReservationPhase.UPCOMING
    return ReservationPhase.ENDED


def group_by_resource(reservations: Iterable[Reservation]) -> Dict[str, List[Reservation]]:
    """Group reservations by resource id, keeping input order."""
    grouped: Dict[str, List[Reservation]] = {}
    for reservation in reservations:
        grouped.setdefault(reservation.resource_id, []).append(reservation)
    return grouped


def split_today_and_upcoming(
    reservations: Iterable[Reservation],
    now: DateTime,
    calendar: TimeZoneCalendar,
) -> Tuple[List[Reservation], List[Reservation]]:
    """
    Split confirmed reservations into today's (zone-local, including ones
    already running or finished today) and those starting after today.

    Both lists are sorted by start.
    """
    today = calendar.local_date(now)
    todays: List[Reservation] = []
    later: List[Reservation] = []

    for reservation in sorted(reservations, key=lambda r: r.start):
        if not reservation.is_confirmed:
            continue
        start_day = calendar.local_date(reservation.start)
        if start_day == today:
            todays.append(reservation)
        elif reservation.start > now:
            later.append(reservation)

    return todays, later
