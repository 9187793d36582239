"""
JSON file backed reservation store.

Same semantics as the in-memory store; every successful write rewrites the
file atomically (temporary file + replace) while holding an inter-process
file lock. Instants are stored as ISO 8601 strings in UTC.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List

import pendulum
from filelock import FileLock, Timeout

from ..domain.exceptions import StorageError
from ..domain.models import Reservation, ReservationStatus
from .memory_store import InMemoryReservationStore

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 10


def reservation_to_dict(reservation: Reservation) -> Dict[str, Any]:
    return {
        "id": reservation.id,
        "resource_id": reservation.resource_id,
        "start": reservation.start.in_timezone("UTC").to_iso8601_string(),
        "end": reservation.end.in_timezone("UTC").to_iso8601_string(),
        "status": reservation.status.value,
        "purpose": reservation.purpose,
        "owner_ref": reservation.owner_ref,
    }


def reservation_from_dict(data: Dict[str, Any]) -> Reservation:
    """
    Parse one stored row.

    Raises:
        ValueError: If a field is missing or malformed
    """
    try:
        start = pendulum.parse(data["start"], tz="UTC").in_timezone("UTC")
        end = pendulum.parse(data["end"], tz="UTC").in_timezone("UTC")
        return Reservation(
            id=str(data["id"]),
            resource_id=str(data["resource_id"]),
            start=start,
            end=end,
            status=ReservationStatus(data.get("status", ReservationStatus.CONFIRMED.value)),
            purpose=str(data.get("purpose") or ""),
            owner_ref=data.get("owner_ref"),
        )
    except KeyError as exc:
        raise ValueError(f"Missing field {exc} in stored reservation") from exc


class JsonFileReservationStore(InMemoryReservationStore):
    """
    Reservation store persisted to a single JSON file.

    A missing file is treated as an empty store and created on first write.
    Every read and write holds ``<file>.lock`` and reloads the file first, so
    several processes (or store handles) sharing one file see each other's
    writes and the overlap re-check runs against what is on disk.
    """

    def __init__(self, path: Path, lock_timeout: float = LOCK_TIMEOUT_SECONDS, **kwargs):
        self.path = Path(path)
        self._file_lock = FileLock(str(self.path) + ".lock", timeout=lock_timeout)
        super().__init__(self._load(), **kwargs)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._file_lock.acquire()
            except Timeout as exc:
                raise StorageError(f"Timed out waiting for the lock on {self.path}") from exc
            except OSError as exc:
                raise StorageError(f"Could not lock reservation file {self.path}: {exc}") from exc

            try:
                self._rows = {r.id: r for r in self._load()}
                yield
            finally:
                self._file_lock.release()

    def _load(self) -> List[Reservation]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Could not read reservation file {self.path}: {exc}") from exc

        if not isinstance(payload, list):
            raise StorageError(f"Reservation file {self.path} must contain a JSON list.")

        reservations: List[Reservation] = []
        for index, row in enumerate(payload):
            try:
                reservations.append(reservation_from_dict(row))
            except (TypeError, ValueError) as exc:
                raise StorageError(f"Invalid reservation at index {index} in {self.path}: {exc}") from exc

        logger.debug("Loaded %d reservations from %s", len(reservations), self.path)
        return reservations

    def _persist(self, rows: Dict[str, Reservation]) -> None:
        payload = [
            reservation_to_dict(r)
            for r in sorted(rows.values(), key=lambda r: (r.start, r.id))
        ]
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            temp_path.replace(self.path)
        except OSError as exc:
            raise StorageError(f"Could not write reservation file {self.path}: {exc}") from exc
        finally:
            if temp_path.exists():
                temp_path.unlink()
