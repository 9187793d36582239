"""
In-memory reservation store.

Writes re-check the no-overlap invariant while holding a lock, so two racing
creates for overlapping ranges on the same resource cannot both commit. The
loser gets the same ``Reject(overlap)`` the validator would have produced.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, ContextManager, Dict, Iterable, List, Optional, Union
from uuid import uuid4

from pendulum import DateTime

from ..domain.exceptions import ReservationNotFound
from ..domain.models import Reject, RejectReason, Reservation, ReservationStatus

logger = logging.getLogger(__name__)

OVERLAP_MESSAGE = "The selected time overlaps an existing reservation."


class InMemoryReservationStore:
    """
    Dict-backed store keyed by reservation id.

    Subclasses persist by overriding ``_persist``; it receives the complete
    new row set before it replaces the in-memory one, so a failed write leaves
    the store unchanged. Stores shared with other processes also override
    ``_locked`` to take their own lock and reload ``_rows`` under it.
    """

    def __init__(
        self,
        reservations: Iterable[Reservation] = (),
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._rows: Dict[str, Reservation] = {r.id: r for r in reservations}
        self._lock = threading.RLock()
        self._id_factory = id_factory or (lambda: uuid4().hex)

    # ------------------------------------------------------------------ reads

    def all(self) -> List[Reservation]:
        """Every row, including cancelled ones, sorted by start."""
        with self._locked():
            return sorted(self._rows.values(), key=lambda r: (r.start, r.id))

    def list_confirmed(
        self, resource_id: str, window_start: DateTime, window_end: DateTime
    ) -> List[Reservation]:
        """Confirmed reservations of a resource intersecting [window_start, window_end)."""
        with self._locked():
            rows = [
                r for r in self._rows.values()
                if r.resource_id == resource_id
                and r.is_confirmed
                and r.overlaps(window_start, window_end)
            ]
        return sorted(rows, key=lambda r: (r.start, r.id))

    def get(self, reservation_id: str) -> Reservation:
        with self._locked():
            try:
                return self._rows[reservation_id]
            except KeyError:
                raise ReservationNotFound(reservation_id) from None

    # ----------------------------------------------------------------- writes

    def create_confirmed(
        self,
        resource_id: str,
        start: DateTime,
        end: DateTime,
        purpose: str,
        owner_ref: Optional[str] = None,
    ) -> Union[Reservation, Reject]:
        with self._locked():
            conflicts = self._conflicts(resource_id, start, end)
            if conflicts:
                return Reject(RejectReason.OVERLAP, OVERLAP_MESSAGE, conflicts)

            reservation = Reservation(
                id=self._id_factory(),
                resource_id=resource_id,
                start=start,
                end=end,
                status=ReservationStatus.CONFIRMED,
                purpose=purpose,
                owner_ref=owner_ref,
            )
            self._commit(reservation)
            return reservation

    def update_confirmed(
        self, reservation_id: str, start: DateTime, end: DateTime, purpose: str
    ) -> Union[Reservation, Reject]:
        with self._locked():
            current = self._confirmed(reservation_id)
            conflicts = self._conflicts(current.resource_id, start, end, exclude_id=reservation_id)
            if conflicts:
                return Reject(RejectReason.OVERLAP, OVERLAP_MESSAGE, conflicts)

            updated = current.with_range(start, end, purpose)
            self._commit(updated)
            return updated

    def cancel(self, reservation_id: str) -> Reservation:
        with self._locked():
            cancelled = self._confirmed(reservation_id).cancelled()
            self._commit(cancelled)
            return cancelled

    def delete(self, reservation_id: str) -> None:
        with self._locked():
            if reservation_id not in self._rows:
                raise ReservationNotFound(reservation_id)
            rows = dict(self._rows)
            del rows[reservation_id]
            self._persist(rows)
            self._rows = rows

    # ---------------------------------------------------------------- helpers

    def _locked(self) -> ContextManager:
        """Held around every read and write; durable subclasses widen it."""
        return self._lock

    def _confirmed(self, reservation_id: str) -> Reservation:
        current = self._rows.get(reservation_id)
        if current is None or not current.is_confirmed:
            raise ReservationNotFound(reservation_id)
        return current

    def _conflicts(
        self,
        resource_id: str,
        start: DateTime,
        end: DateTime,
        exclude_id: Optional[str] = None,
    ) -> tuple:
        return tuple(
            sorted(
                (
                    r for r in self._rows.values()
                    if r.resource_id == resource_id
                    and r.is_confirmed
                    and r.id != exclude_id
                    and r.overlaps(start, end)
                ),
                key=lambda r: r.start,
            )
        )

    def _commit(self, reservation: Reservation) -> None:
        rows = dict(self._rows)
        rows[reservation.id] = reservation
        self._persist(rows)
        self._rows = rows

    def _persist(self, rows: Dict[str, Reservation]) -> None:
        """Hook for durable subclasses; the in-memory store keeps nothing else."""
