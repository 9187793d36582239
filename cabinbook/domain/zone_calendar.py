"""
Time-zone aware calendar arithmetic.

Everything here is a deterministic function of an IANA zone identifier and a
reference instant. Day, month and month-grid boundaries are computed on the
zone-local calendar and returned as UTC instants.

Algorithm for every boundary:
1. Convert the reference instant to the zone to read its local date
2. Build the wall-clock boundary (e.g. next local midnight) from that date
3. Let pendulum resolve the zone offset *at the boundary itself*

Step 3 is what keeps DST days correct: the offset at the start of a day can
differ from the offset at its end.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from enum import Enum
from typing import List

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidTimeZone
from .models import TimeRange

# Curated list of common zones for selection in front ends.
COMMON_TIMEZONES: List[str] = [
    "Pacific/Midway",
    "America/Anchorage",
    "America/Los_Angeles",
    "America/Denver",
    "America/Chicago",
    "America/New_York",
    "America/Sao_Paulo",
    "Europe/London",
    "Europe/Berlin",
    "Europe/Paris",
    "Europe/Madrid",
    "Europe/Moscow",
    "Africa/Cairo",
    "Asia/Dubai",
    "Asia/Karachi",
    "Asia/Kolkata",
    "Asia/Bangkok",
    "Asia/Jakarta",
    "Asia/Shanghai",
    "Asia/Hong_Kong",
    "Asia/Tokyo",
    "Asia/Seoul",
    "Australia/Sydney",
    "Pacific/Auckland",
]

_WALL_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


class WeekStart(str, Enum):
    """First column of a month grid."""
    SUNDAY = "sun"
    MONDAY = "mon"

    @property
    def weekday(self) -> int:
        """Python weekday number (Monday=0) of the first grid column."""
        return 6 if self is WeekStart.SUNDAY else 0


def resolve_timezone(zone: str):
    """
    Resolve an IANA identifier to a pendulum Timezone.

    Raises:
        InvalidTimeZone: If the identifier is empty or unknown
    """
    if not isinstance(zone, str) or not zone.strip():
        raise InvalidTimeZone(zone)

    try:
        return pendulum.timezone(zone)
    except (ValueError, KeyError) as exc:
        raise InvalidTimeZone(zone) from exc


def as_instant(value: datetime) -> DateTime:
    """Coerce a datetime to an aware pendulum DateTime (naive values are UTC)."""
    if isinstance(value, DateTime) and value.tzinfo is not None:
        return value
    return pendulum.instance(value, tz="UTC")


class TimeZoneCalendar:
    """
    Calendar arithmetic bound to a single zone.

    The zone is resolved once at construction, so a bad identifier fails when
    the calendar is created rather than on every request.
    """

    def __init__(self, timezone: str):
        self.timezone = timezone
        self._tz = resolve_timezone(timezone)

    # ----------------------------------------------------------------- dates

    def local(self, instant: datetime) -> DateTime:
        """The instant expressed in this zone."""
        return as_instant(instant).in_timezone(self._tz)

    def local_date(self, instant: datetime) -> Date:
        """Calendar date of the instant as observed in this zone."""
        return self.local(instant).date()

    def is_today(self, day: date, now: datetime) -> bool:
        return _to_date(day) == self.local_date(now)

    def midnight(self, day: date) -> DateTime:
        """Local midnight starting ``day``, as a UTC instant."""
        day = _to_date(day)
        return pendulum.datetime(day.year, day.month, day.day, tz=self._tz).in_timezone("UTC")

    # ---------------------------------------------------------------- bounds

    def day_bounds_for_date(self, day: date) -> TimeRange:
        """Midnight-to-midnight of a zone-local date."""
        day = _to_date(day)
        return TimeRange(start=self.midnight(day), end=self.midnight(day.add(days=1)))

    def day_bounds(self, ref: datetime) -> TimeRange:
        """Midnight-to-midnight of the reference instant's zone-local date."""
        return self.day_bounds_for_date(self.local_date(ref))

    def month_bounds(self, ref: datetime) -> TimeRange:
        """First-of-month 00:00 to first-of-next-month 00:00 in this zone."""
        first = _first_of_month(self.local_date(ref))
        return TimeRange(start=self.midnight(first), end=self.midnight(_next_month(first)))

    def visible_grid_bounds(self, ref: datetime, week_start: WeekStart = WeekStart.MONDAY) -> TimeRange:
        """
        Window shown by a month view: the month padded to whole weeks.

        Example (Monday start, March 2024 starts on a Friday and ends on a
        Sunday): 2024-02-26 00:00 to 2024-04-01 00:00 local.
        """
        week_start = WeekStart(week_start)
        first = _first_of_month(self.local_date(ref))
        last = _next_month(first).subtract(days=1)

        leading = (first.weekday() - week_start.weekday) % 7
        trailing = 6 - (last.weekday() - week_start.weekday) % 7

        grid_start = first.subtract(days=leading)
        grid_end = last.add(days=trailing + 1)
        return TimeRange(start=self.midnight(grid_start), end=self.midnight(grid_end))

    def grid_dates(self, ref: datetime, week_start: WeekStart = WeekStart.MONDAY) -> List[Date]:
        """Every local date covered by ``visible_grid_bounds``."""
        bounds = self.visible_grid_bounds(ref, week_start)
        current = self.local_date(bounds.start)
        last = self.local_date(bounds.end)
        dates: List[Date] = []
        while current < last:
            dates.append(current)
            current = current.add(days=1)
        return dates

    # ------------------------------------------------------------ wall clock

    def at_wall_clock(self, day: date, wall_clock: str) -> DateTime:
        """
        Instant for ``HH:mm`` on a local date, as UTC.

        Hours 24-47 address the following day ("25:30" is 01:30 on day+1).
        Wall-clock times skipped by a DST gap resolve forward.
        """
        match = _WALL_CLOCK_PATTERN.match(wall_clock.strip()) if wall_clock else None
        if not match:
            raise ValueError(f"Time must be HH:mm, got {wall_clock!r}")

        hour, minute = int(match.group(1)), int(match.group(2))
        if not 0 <= hour <= 47 or not 0 <= minute <= 59:
            raise ValueError(f"Time out of range: {wall_clock!r}")

        day = _to_date(day)
        if hour >= 24:
            day = day.add(days=1)
            hour -= 24

        return pendulum.datetime(
            day.year, day.month, day.day, hour, minute, tz=self._tz
        ).in_timezone("UTC")

    def floor_to_interval(self, instant: datetime, interval_minutes: int) -> DateTime:
        """
        Floor an instant down to the slot boundary of its local day.

        Boundaries are counted in elapsed time from local midnight, which is
        how the slot grid lays its cells out.
        """
        instant = as_instant(instant).in_timezone("UTC")
        day_start = self.day_bounds(instant).start
        elapsed = int((instant - day_start).total_seconds())
        step = interval_minutes * 60
        return day_start.add(seconds=elapsed - elapsed % step)

    # --------------------------------------------------------------- display

    def format_date(self, instant: datetime) -> str:
        """Zone-local date: ``YY-MM-DD`` for Korea, ISO elsewhere."""
        local = self.local(instant)
        if self.timezone == "Asia/Seoul":
            return local.format("YY-MM-DD")
        return local.format("YYYY-MM-DD")

    def format_time(self, instant: datetime) -> str:
        """Zone-local 24h time, e.g. ``09:05``."""
        return self.local(instant).format("HH:mm")


def _to_date(value: date) -> Date:
    if isinstance(value, Date):
        return value
    return pendulum.date(value.year, value.month, value.day)


def _first_of_month(day: Date) -> Date:
    return pendulum.date(day.year, day.month, 1)


def _next_month(first: Date) -> Date:
    if first.month == 12:
        return pendulum.date(first.year + 1, 1, 1)
    return pendulum.date(first.year, first.month + 1, 1)


def day_bounds(zone: str, ref: datetime) -> TimeRange:
    """Midnight-to-midnight of ``ref``'s date as observed in ``zone``."""
    return TimeZoneCalendar(zone).day_bounds(ref)


def month_bounds(zone: str, ref: datetime) -> TimeRange:
    """First-of-month to first-of-next-month of ``ref`` in ``zone``."""
    return TimeZoneCalendar(zone).month_bounds(ref)


def visible_grid_bounds(zone: str, ref: datetime, week_start: WeekStart = WeekStart.MONDAY) -> TimeRange:
    """Month-view window of ``ref`` in ``zone``, padded to whole weeks."""
    return TimeZoneCalendar(zone).visible_grid_bounds(ref, week_start)
