"""
Tests for domain models.
"""

import pendulum
import pytest

from cabinbook.domain.models import (
    Accept,
    Reject,
    RejectReason,
    Reservation,
    ReservationStatus,
    TimeRange,
    TimeSlot,
)


def _reservation(start: str, end: str, purpose: str = "Standup", tz: str = "Asia/Seoul") -> Reservation:
    return Reservation(
        id="r1",
        resource_id="cabin-a",
        start=pendulum.parse(start, tz=tz),
        end=pendulum.parse(end, tz=tz),
        purpose=purpose,
    )


class TestTimeRange:
    """Tests for TimeRange."""

    def test_valid_range(self):
        """Test creating a valid time range."""
        start = pendulum.parse("2024-03-01 10:00", tz="Asia/Seoul")
        end = pendulum.parse("2024-03-01 11:30", tz="Asia/Seoul")

        time_range = TimeRange(start=start, end=end)

        assert time_range.duration_minutes() == 90

    def test_invalid_range(self):
        """Start must come before end."""
        start = pendulum.parse("2024-03-01 11:00", tz="Asia/Seoul")
        end = pendulum.parse("2024-03-01 10:00", tz="Asia/Seoul")

        with pytest.raises(ValueError, match="must be before"):
            TimeRange(start=start, end=end)

    def test_empty_range_rejected(self):
        instant = pendulum.parse("2024-03-01 10:00", tz="Asia/Seoul")

        with pytest.raises(ValueError):
            TimeRange(start=instant, end=instant)

    def test_touching_ranges_do_not_overlap(self):
        """Ranges are right-open, so back-to-back ranges are compatible."""
        first = TimeRange(
            start=pendulum.parse("2024-03-01 10:00", tz="UTC"),
            end=pendulum.parse("2024-03-01 11:00", tz="UTC"),
        )
        second = TimeRange(
            start=pendulum.parse("2024-03-01 11:00", tz="UTC"),
            end=pendulum.parse("2024-03-01 12:00", tz="UTC"),
        )

        assert not first.overlaps(second)
        assert not second.overlaps(first)

    def test_contains_excludes_end(self):
        time_range = TimeRange(
            start=pendulum.parse("2024-03-01 10:00", tz="UTC"),
            end=pendulum.parse("2024-03-01 11:00", tz="UTC"),
        )

        assert time_range.contains(pendulum.parse("2024-03-01 10:00", tz="UTC"))
        assert not time_range.contains(pendulum.parse("2024-03-01 11:00", tz="UTC"))

    def test_same_instant_in_different_zones_compares_equal(self):
        seoul = pendulum.parse("2024-03-01 09:00", tz="Asia/Seoul")
        utc = pendulum.parse("2024-03-01 00:00", tz="UTC")

        assert seoul == utc


class TestReservation:
    """Tests for Reservation."""

    def test_defaults_to_confirmed(self):
        reservation = _reservation("2024-03-01 14:00", "2024-03-01 14:30")

        assert reservation.status == ReservationStatus.CONFIRMED
        assert reservation.is_confirmed

    def test_cancelled_copy(self):
        reservation = _reservation("2024-03-01 14:00", "2024-03-01 14:30")

        cancelled = reservation.cancelled()

        assert not cancelled.is_confirmed
        assert reservation.is_confirmed

    def test_covers_is_right_open(self):
        reservation = _reservation("2024-03-01 14:00", "2024-03-01 14:30")

        assert reservation.covers(pendulum.parse("2024-03-01 14:00", tz="Asia/Seoul"))
        assert reservation.covers(pendulum.parse("2024-03-01 14:29", tz="Asia/Seoul"))
        assert not reservation.covers(pendulum.parse("2024-03-01 14:30", tz="Asia/Seoul"))

    def test_with_range_keeps_purpose_unless_given(self):
        reservation = _reservation("2024-03-01 14:00", "2024-03-01 14:30", purpose="1:1")
        new_start = pendulum.parse("2024-03-01 15:00", tz="Asia/Seoul")
        new_end = pendulum.parse("2024-03-01 16:00", tz="Asia/Seoul")

        moved = reservation.with_range(new_start, new_end)
        renamed = reservation.with_range(new_start, new_end, "Review")

        assert moved.purpose == "1:1"
        assert renamed.purpose == "Review"
        assert moved.id == reservation.id

    @pytest.mark.parametrize(
        "end, label",
        [
            ("2024-03-01 14:45", "45m"),
            ("2024-03-01 16:00", "2h"),
            ("2024-03-01 15:30", "1h 30m"),
        ],
    )
    def test_duration_label(self, end, label):
        reservation = _reservation("2024-03-01 14:00", end)

        assert reservation.duration_label() == label

    def test_format_display(self):
        """Display uses the resource zone, not UTC."""
        reservation = _reservation("2024-03-01 14:00", "2024-03-01 15:30", purpose="Design sync")

        display = reservation.format_display("Asia/Seoul")

        assert display == "2024-03-01 14:00 - 15:30 (1h 30m) Design sync"


class TestTimeSlot:
    """Tests for TimeSlot."""

    def test_selectable_only_when_free_and_not_past(self):
        start = pendulum.parse("2024-03-01 14:00", tz="Asia/Seoul")
        end = start.add(minutes=30)

        assert TimeSlot(start=start, end=end).is_selectable
        assert not TimeSlot(start=start, end=end, is_reserved=True).is_selectable
        assert not TimeSlot(start=start, end=end, is_past=True).is_selectable

    def test_label_in_zone(self):
        start = pendulum.parse("2024-03-01 05:30", tz="UTC")
        slot = TimeSlot(start=start, end=start.add(minutes=30))

        assert slot.label("Asia/Seoul") == "14:30"


class TestValidationResult:
    """Tests for Accept / Reject."""

    def test_accepted_flag(self):
        time_range = TimeRange(
            start=pendulum.parse("2024-03-01 10:00", tz="UTC"),
            end=pendulum.parse("2024-03-01 11:00", tz="UTC"),
        )

        assert Accept(time_range).accepted
        assert not Reject(RejectReason.OVERLAP, "overlap").accepted

    def test_reject_defaults_to_no_conflicts(self):
        assert Reject(RejectReason.PAST_TIME).conflicts == ()
