"""
Domain-specific exception hierarchy for cabinbook.

Expected validation outcomes (past time, overlap, ...) are not exceptions;
they are returned as ``Reject`` values by the validator and the service.
"""


class CabinbookError(Exception):
    """Base class for all application-level errors."""


class InvalidTimeZone(CabinbookError, ValueError):
    """Raised when an IANA time zone identifier cannot be resolved."""

    def __init__(self, zone: object):
        self.zone = zone
        super().__init__(f"Unknown or invalid time zone: {zone!r}")


class InvalidInterval(CabinbookError, ValueError):
    """Raised when a slot interval does not evenly divide a day."""

    def __init__(self, minutes: object):
        self.minutes = minutes
        super().__init__(
            f"Slot interval must be a positive divisor of 1440 minutes, got {minutes!r}"
        )


class OverlapInvariantViolated(CabinbookError):
    """Raised when stored confirmed reservations overlap each other."""

    def __init__(self, resource_id: str | None, reservation_ids: list[str]):
        self.resource_id = resource_id
        self.reservation_ids = reservation_ids
        super().__init__(
            f"Confirmed reservations overlap on resource {resource_id!r}: "
            f"{', '.join(reservation_ids)}"
        )


class ReservationNotFound(CabinbookError):
    """Raised when an update or delete targets a missing reservation."""

    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation not found: {reservation_id}")


class UnknownResource(CabinbookError):
    """Raised when a resource id is not configured."""

    def __init__(self, resource_id: str):
        self.resource_id = resource_id
        super().__init__(f"Unknown resource: {resource_id}")


class StorageError(CabinbookError):
    """Raised when the reservation store cannot be read or written."""


class NotificationError(CabinbookError):
    """Raised when a notification channel rejects a message."""
