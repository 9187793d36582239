"""
Discrete time-slot grid for one zone-local day and the click-driven range
selection built on top of it.

The selection is a small tagged union (``Empty`` / ``Anchored`` / ``Ranged``)
moved forward by the pure ``SlotGrid.click`` transition function. Building a
range needs single clicks only: the first click anchors, clicking elsewhere
extends, clicking the range edges shrinks it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Union

from pendulum import DateTime

from .exceptions import InvalidInterval
from .models import Reservation, TimeRange, TimeSlot
from .zone_calendar import as_instant

MINUTES_PER_DAY = 24 * 60


def validate_interval(minutes: int) -> int:
    """
    Ensure a slot interval evenly divides a day.

    Raises:
        InvalidInterval: For non-integers, non-positive values and non-divisors
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidInterval(minutes)
    if minutes <= 0 or MINUTES_PER_DAY % minutes:
        raise InvalidInterval(minutes)
    return minutes


@dataclass(frozen=True)
class Empty:
    """Nothing selected."""

    @property
    def time_range(self) -> None:
        return None


@dataclass(frozen=True)
class Anchored:
    """One slot picked; the end is provisional until the range is extended."""
    start: DateTime
    provisional_end: DateTime

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.provisional_end)


@dataclass(frozen=True)
class Ranged:
    """A contiguous ``[start, end)`` selection."""
    start: DateTime
    end: DateTime

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)


Selection = Union[Empty, Anchored, Ranged]

EMPTY = Empty()


class SelectionNotice(str, Enum):
    """What a click did, so front ends can show a matching message."""
    ANCHORED = "anchored"
    EXTENDED = "extended"
    SHRUNK = "shrunk"
    CLEARED = "cleared"
    OVERLAP_RESET = "overlap_reset"
    RESERVED_SLOT = "reserved_slot"
    PAST_SLOT = "past_slot"
    UNKNOWN_SLOT = "unknown_slot"


@dataclass(frozen=True)
class SelectionResult:
    selection: Selection
    notice: SelectionNotice


class SlotGrid:
    """
    Fixed-interval partition of a day plus the selection state machine.

    The interval is validated at construction so misconfiguration fails when
    the grid is built, not on the first request.
    """

    def __init__(self, interval_minutes: int = 30):
        self.interval_minutes = validate_interval(interval_minutes)
        self.interval = timedelta(minutes=interval_minutes)

    # ------------------------------------------------------------- generation

    def generate(
        self,
        day_bounds: TimeRange,
        reservations: Iterable[Reservation] = (),
        now: Optional[datetime] = None,
    ) -> List[TimeSlot]:
        """
        Generate the day's slots and tag them against reservations and now.

        Slots are laid out in elapsed time from the local midnight, so a DST
        day yields 23 or 25 hours worth of slots. When the interval does not
        divide such a day, the final slot is cut at the day end.
        """
        confirmed = [r for r in reservations if r.is_confirmed]
        now = as_instant(now) if now is not None else None

        slots: List[TimeSlot] = []
        cursor = day_bounds.start.in_timezone("UTC")
        day_end = day_bounds.end.in_timezone("UTC")

        while cursor < day_end:
            slot_end = min(cursor + self.interval, day_end)
            slots.append(
                TimeSlot(
                    start=cursor,
                    end=slot_end,
                    is_reserved=any(r.overlaps(cursor, slot_end) for r in confirmed),
                    is_past=now is not None and slot_end <= now,
                    is_current=now is not None and cursor <= now < slot_end,
                    is_reservation_start=any(r.start == cursor for r in confirmed),
                )
            )
            cursor = slot_end

        return slots

    @staticmethod
    def has_reservation_in_range(slots: Sequence[TimeSlot], start: DateTime, end: DateTime) -> bool:
        """True if any reserved slot intersects ``[start, end)``."""
        return any(
            slot.is_reserved and slot.start < end and slot.end > start
            for slot in slots
        )

    # -------------------------------------------------------------- selection

    def click(self, selection: Selection, slot: TimeSlot, slots: Sequence[TimeSlot]) -> SelectionResult:
        """
        Apply one click on ``slot`` to ``selection``.

        Transitions:
        - past slot: ignored in every state
        - Empty + reserved slot: ignored
        - Empty + free slot S: Anchored(S)
        - Anchored(a) + a: Empty
        - Ranged(a, b) + slot inside [a, b):
            first slot, one interval wide -> Empty
            first slot, wider             -> shrink from the front
            last slot                     -> shrink from the back
            interior slot                 -> Empty
        - Anchored/Ranged + slot outside: extend to include it, unless the
          extended span crosses a reserved slot, in which case the old
          selection is dropped and the clicked slot becomes a new anchor
        """
        current = _find_slot(slots, slot.start)
        if current is None:
            return SelectionResult(selection, SelectionNotice.UNKNOWN_SLOT)

        if current.is_past:
            return SelectionResult(selection, SelectionNotice.PAST_SLOT)

        if isinstance(selection, Empty):
            if not current.is_selectable:
                return SelectionResult(selection, SelectionNotice.RESERVED_SLOT)
            return SelectionResult(self._anchor(current), SelectionNotice.ANCHORED)

        if isinstance(selection, Anchored) and current.start == selection.start:
            return SelectionResult(EMPTY, SelectionNotice.CLEARED)

        if isinstance(selection, Ranged) and selection.start <= current.start < selection.end:
            return self._click_inside(selection, current)

        return self._extend(selection, current, slots)

    def _click_inside(self, selection: Ranged, slot: TimeSlot) -> SelectionResult:
        start, end = selection.start, selection.end

        if slot.start == start:
            if end - start <= self.interval:
                return SelectionResult(EMPTY, SelectionNotice.CLEARED)
            return SelectionResult(Ranged(start=slot.end, end=end), SelectionNotice.SHRUNK)

        if slot.end >= end:
            return SelectionResult(Ranged(start=start, end=slot.start), SelectionNotice.SHRUNK)

        # Interior click: intent is ambiguous, so reset rather than split.
        return SelectionResult(EMPTY, SelectionNotice.CLEARED)

    def _extend(self, selection: Selection, slot: TimeSlot, slots: Sequence[TimeSlot]) -> SelectionResult:
        current_range = selection.time_range
        start = min(current_range.start, slot.start)
        end = max(current_range.end, slot.end)

        if self.has_reservation_in_range(slots, start, end):
            return SelectionResult(self._anchor(slot), SelectionNotice.OVERLAP_RESET)

        return SelectionResult(Ranged(start=start, end=end), SelectionNotice.EXTENDED)

    @staticmethod
    def _anchor(slot: TimeSlot) -> Anchored:
        return Anchored(start=slot.start, provisional_end=slot.end)

    def preview(self, selection: Selection, hovered: TimeSlot, slots: Sequence[TimeSlot]) -> Optional[TimeRange]:
        """
        Provisional span shown while hovering with an anchor set.

        Runs from the anchor slot to the hovered slot, both included. Display
        only: returns None when not anchored or when the span would contain a
        reserved slot.
        """
        if not isinstance(selection, Anchored):
            return None

        start = min(selection.start, hovered.start)
        end = max(selection.provisional_end, hovered.end)
        if self.has_reservation_in_range(slots, start, end):
            return None
        return TimeRange(start=start, end=end)

    def is_still_valid(self, selection: Selection, slots: Sequence[TimeSlot]) -> bool:
        """False when fresh reservation data puts a reserved slot inside the selection."""
        time_range = selection.time_range
        if time_range is None:
            return True
        return not self.has_reservation_in_range(slots, time_range.start, time_range.end)


def _find_slot(slots: Sequence[TimeSlot], start: DateTime) -> Optional[TimeSlot]:
    for slot in slots:
        if slot.start == start:
            return slot
    return None


class SelectionSession:
    """
    Ephemeral selection state for one viewer of one resource timetable.

    Changing the active date or zone and submitting successfully both reset
    the selection to ``Empty``.
    """

    def __init__(self, grid: SlotGrid, day: date, timezone: str):
        self.grid = grid
        self.day = day
        self.timezone = timezone
        self.selection: Selection = EMPTY
        self.slots: List[TimeSlot] = []

    @property
    def selected_range(self) -> Optional[TimeRange]:
        return self.selection.time_range

    def load(self, slots: Sequence[TimeSlot]) -> None:
        """Install freshly generated slots; drops a selection they invalidate."""
        self.slots = list(slots)
        if not self.grid.is_still_valid(self.selection, self.slots):
            self.selection = EMPTY

    def change_date(self, day: date, timezone: Optional[str] = None) -> None:
        self.slots = []
        self.day = day
        if timezone is not None:
            self.timezone = timezone
        self.selection = EMPTY

    def click(self, slot: TimeSlot) -> SelectionResult:
        result = self.grid.click(self.selection, slot, self.slots)
        self.selection = result.selection
        return result

    def hover(self, slot: TimeSlot) -> Optional[TimeRange]:
        return self.grid.preview(self.selection, slot, self.slots)

    def mark_submitted(self) -> None:
        self.selection = EMPTY
