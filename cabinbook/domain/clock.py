"""
Injectable "now" providers.
"""

from __future__ import annotations

from typing import Protocol

import pendulum
from pendulum import DateTime


class Clock(Protocol):
    """Anything that can tell the current instant."""

    def now(self) -> DateTime:
        """Return the current instant as an aware DateTime."""


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> DateTime:
        return pendulum.now("UTC")


class FixedClock:
    """
    Clock frozen at a given instant. Used by tests and by replay tooling.
    """

    def __init__(self, instant: DateTime):
        self._instant = instant

    def now(self) -> DateTime:
        return self._instant

    def set(self, instant: DateTime) -> None:
        self._instant = instant

    def advance(self, **delta: int) -> DateTime:
        """Move the clock forward, e.g. ``advance(minutes=5)``."""
        self._instant = self._instant.add(**delta)
        return self._instant
