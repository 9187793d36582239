"""
Application service for resource status, timetables and reservation mutations.

The service coordinates the reservation store, the domain validator and the
notification dispatcher. Storage and notification sit behind small protocols
so tests (and other front ends) can plug in in-memory stand-ins.

Mutation flow:
1. Fetch confirmed reservations around the candidate range
2. Validate in-process (fast path, gives precise rejection reasons)
3. Ask the store to commit; the store re-checks overlaps atomically
4. Emit a ReservationEvent; dispatch failures are logged, never raised
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union

from pendulum import Date, DateTime

from ..domain.availability import AvailabilityCalculator, split_today_and_upcoming
from ..domain.clock import Clock, SystemClock
from ..domain.exceptions import UnknownResource
from ..domain.models import (
    EventKind,
    Reject,
    RejectReason,
    Reservation,
    ReservationEvent,
    ResourceStatus,
    TimeSlot,
    ValidationResult,
)
from ..domain.slot_grid import SlotGrid
from ..domain.validator import CandidateRange, ReservationValidator
from ..domain.zone_calendar import TimeZoneCalendar, WeekStart

logger = logging.getLogger(__name__)


class ReservationStoreProtocol(Protocol):
    """
    Storage collaborator. Overlap checks consider confirmed rows only, and
    writes must re-check overlaps atomically with the commit.
    """

    def list_confirmed(
        self, resource_id: str, window_start: DateTime, window_end: DateTime
    ) -> List[Reservation]:
        """Confirmed reservations of a resource intersecting the window."""

    def get(self, reservation_id: str) -> Reservation:
        """Return a reservation or raise ReservationNotFound."""

    def create_confirmed(
        self,
        resource_id: str,
        start: DateTime,
        end: DateTime,
        purpose: str,
        owner_ref: Optional[str],
    ) -> Union[Reservation, Reject]:
        """Insert unless a confirmed reservation overlaps."""

    def update_confirmed(
        self, reservation_id: str, start: DateTime, end: DateTime, purpose: str
    ) -> Union[Reservation, Reject]:
        """Replace range and purpose unless another reservation overlaps."""

    def cancel(self, reservation_id: str) -> Reservation:
        """Soft-cancel a reservation."""

    def delete(self, reservation_id: str) -> None:
        """Remove a reservation."""


class NotificationDispatcherProtocol(Protocol):
    """Receives mutation events, e.g. to forward them to chat channels."""

    def dispatch(self, event: ReservationEvent) -> None:
        """Deliver one event."""


@dataclass(frozen=True)
class ResourceSettings:
    """Per-resource configuration resolved by the service."""
    id: str
    name: str = ""
    timezone: str = "UTC"
    interval_minutes: int = 30
    week_start: WeekStart = WeekStart.MONDAY

    @property
    def display_name(self) -> str:
        return self.name or self.id


@dataclass
class _ResourceContext:
    settings: ResourceSettings
    calendar: TimeZoneCalendar = field(init=False)
    grid: SlotGrid = field(init=False)
    validator: ReservationValidator = field(init=False)

    def __post_init__(self):
        # Resolving here makes bad zones/intervals fail when the service is built.
        self.calendar = TimeZoneCalendar(self.settings.timezone)
        self.grid = SlotGrid(self.settings.interval_minutes)
        self.validator = ReservationValidator(self.settings.timezone, self.settings.interval_minutes)


class ReservationService:
    """
    Orchestrates reservation reads and writes for a set of resources.

    Expected outcomes (past time, overlap, ...) come back as ``Reject``
    values; only misconfiguration, unknown ids and integrity violations raise.
    """

    def __init__(
        self,
        store: ReservationStoreProtocol,
        resources: Sequence[ResourceSettings],
        dispatcher: Optional[NotificationDispatcherProtocol] = None,
        clock: Optional[Clock] = None,
        lookahead_days: int = 30,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._clock = clock or SystemClock()
        self._lookahead_days = lookahead_days
        self._calculator = AvailabilityCalculator()
        self._resources: Dict[str, _ResourceContext] = {
            settings.id: _ResourceContext(settings) for settings in resources
        }

    # ---------------------------------------------------------------- lookups

    @property
    def resources(self) -> List[ResourceSettings]:
        return [ctx.settings for ctx in self._resources.values()]

    def resource(self, resource_id: str) -> ResourceSettings:
        return self._context(resource_id).settings

    def calendar(self, resource_id: str) -> TimeZoneCalendar:
        return self._context(resource_id).calendar

    def now(self) -> DateTime:
        return self._clock.now()

    def get(self, reservation_id: str) -> Reservation:
        return self._store.get(reservation_id)

    def _context(self, resource_id: str) -> _ResourceContext:
        try:
            return self._resources[resource_id]
        except KeyError:
            raise UnknownResource(resource_id) from None

    # ------------------------------------------------------------------ reads

    def status(self, resource_id: str) -> ResourceStatus:
        """Free/occupied state plus current and next reservation."""
        self._context(resource_id)
        now = self._clock.now()
        reservations = self._store.list_confirmed(
            resource_id, now, now.add(days=self._lookahead_days)
        )
        return self._calculator.status(now, reservations)

    def statuses(self) -> Dict[str, ResourceStatus]:
        return {resource_id: self.status(resource_id) for resource_id in self._resources}

    def timetable(self, resource_id: str, day: Optional[date] = None) -> List[TimeSlot]:
        """Tagged slots of a local day (today in the resource zone by default)."""
        ctx = self._context(resource_id)
        now = self._clock.now()
        bounds = ctx.calendar.day_bounds_for_date(day) if day else ctx.calendar.day_bounds(now)
        reservations = self._store.list_confirmed(resource_id, bounds.start, bounds.end)
        return ctx.grid.generate(bounds, reservations, now)

    def today_and_upcoming(self, resource_id: str) -> Tuple[List[Reservation], List[Reservation]]:
        """Today's reservations and the later ones within the lookahead window."""
        ctx = self._context(resource_id)
        now = self._clock.now()
        today = ctx.calendar.day_bounds(now)
        reservations = self._store.list_confirmed(
            resource_id, today.start, now.add(days=self._lookahead_days)
        )
        return split_today_and_upcoming(reservations, now, ctx.calendar)

    def month_overview(
        self, resource_id: str, ref: Optional[datetime] = None
    ) -> Dict[Date, List[Reservation]]:
        """
        Reservations per local date of a month view, fetched with one query
        over the week-padded grid window.
        """
        ctx = self._context(resource_id)
        ref = ref or self._clock.now()
        bounds = ctx.calendar.visible_grid_bounds(ref, ctx.settings.week_start)
        reservations = self._store.list_confirmed(resource_id, bounds.start, bounds.end)

        overview: Dict[Date, List[Reservation]] = {}
        for day in ctx.calendar.grid_dates(ref, ctx.settings.week_start):
            day_range = ctx.calendar.day_bounds_for_date(day)
            overview[day] = [r for r in reservations if r.overlaps(day_range.start, day_range.end)]
        return overview

    # ------------------------------------------------------------- validation

    def validate(
        self,
        resource_id: str,
        start: datetime,
        end: datetime,
        reservation_id: Optional[str] = None,
    ) -> ValidationResult:
        """Run the validator against fresh store data without mutating."""
        ctx = self._context(resource_id)
        candidate = CandidateRange(
            start=start, end=end, resource_id=resource_id, reservation_id=reservation_id
        )
        existing = self._existing_for(ctx, candidate)
        return ctx.validator.validate(
            candidate, existing, self._clock.now(), is_update=reservation_id is not None
        )

    def _existing_for(self, ctx: _ResourceContext, candidate: CandidateRange) -> List[Reservation]:
        start, end = candidate.start, candidate.end
        if not isinstance(start, datetime) or not isinstance(end, datetime):
            return []
        if start.tzinfo is None or end.tzinfo is None:
            return []
        start, end = ctx.validator.effective_range(start, end)
        window_start, window_end = min(start, end), max(start, end)
        if window_start == window_end:
            return []
        return self._store.list_confirmed(ctx.settings.id, window_start, window_end)

    # -------------------------------------------------------------- mutations

    def create(
        self,
        resource_id: str,
        start: datetime,
        end: datetime,
        purpose: str,
        owner_ref: Optional[str] = None,
    ) -> Union[Reservation, Reject]:
        purpose = (purpose or "").strip()
        if not purpose:
            return Reject(RejectReason.MISSING_PURPOSE, "A purpose is required.")

        result = self.validate(resource_id, start, end)
        if isinstance(result, Reject):
            logger.info("Rejected reservation on %s: %s", resource_id, result.reason.value)
            return result

        created = self._store.create_confirmed(
            resource_id, result.time_range.start, result.time_range.end, purpose, owner_ref
        )
        if isinstance(created, Reject):
            logger.info("Reservation on %s lost a concurrent write: %s", resource_id, created.reason.value)
            return created

        logger.info("Created reservation %s on %s (%s)", created.id, resource_id, created.time_range)
        self._dispatch(EventKind.CREATED, created)
        return created

    def update(
        self,
        reservation_id: str,
        start: datetime,
        end: datetime,
        purpose: str,
    ) -> Union[Reservation, Reject]:
        """
        Replace range and purpose. The edited reservation is excluded from
        its own overlap check, and a start already in the past is allowed.
        """
        current = self._store.get(reservation_id)
        purpose = (purpose or "").strip()
        if not purpose:
            return Reject(RejectReason.MISSING_PURPOSE, "A purpose is required.")

        result = self.validate(current.resource_id, start, end, reservation_id=reservation_id)
        if isinstance(result, Reject):
            logger.info("Rejected update of %s: %s", reservation_id, result.reason.value)
            return result

        updated = self._store.update_confirmed(
            reservation_id, result.time_range.start, result.time_range.end, purpose
        )
        if isinstance(updated, Reject):
            logger.info("Update of %s lost a concurrent write: %s", reservation_id, updated.reason.value)
            return updated

        logger.info("Updated reservation %s (%s)", reservation_id, updated.time_range)
        self._dispatch(EventKind.UPDATED, updated)
        return updated

    def cancel(self, reservation_id: str) -> Reservation:
        """Soft-cancel; the reservation stops counting toward overlaps."""
        cancelled = self._store.cancel(reservation_id)
        logger.info("Cancelled reservation %s", reservation_id)
        self._dispatch(EventKind.DELETED, cancelled)
        return cancelled

    def delete(self, reservation_id: str) -> Reservation:
        """Hard-delete; returns the removed reservation."""
        current = self._store.get(reservation_id)
        self._store.delete(reservation_id)
        logger.info("Deleted reservation %s", reservation_id)
        self._dispatch(EventKind.DELETED, current)
        return current

    def _dispatch(self, kind: EventKind, reservation: Reservation) -> None:
        if self._dispatcher is None:
            return

        event = ReservationEvent(
            resource_id=reservation.resource_id,
            reservation=reservation,
            kind=kind,
            occurred_at=self._clock.now(),
        )
        try:
            self._dispatcher.dispatch(event)
        except Exception:
            logger.exception(
                "Notification for %s reservation %s failed", kind.value, reservation.id
            )
