"""
Tests for domain models.
"""

from dataclasses import FrozenInstanceError
from datetime import time

import pendulum
import pytest

from tailorslots.domain.models import (
    Appointment,
    AppointmentStatus,
    AvailableSlot,
    Location,
    LocationType,
    Purpose,
    TimeRange,
    WorkingHours,
)

TZ = "Europe/Berlin"


def at(value: str):
    return pendulum.parse(value, tz=TZ)


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        start = at("2024-11-25 09:00")
        end = at("2024-11-25 17:00")

        tr = TimeRange(start=start, end=end)

        assert tr.start == start
        assert tr.end == end
        assert tr.duration_minutes() == 480  # 8 hours

    def test_invalid_time_range_raises_error(self):
        """Test that creating an invalid time range raises ValueError."""
        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeRange(start=at("2024-11-25 17:00"), end=at("2024-11-25 09:00"))

    def test_empty_time_range_raises_error(self):
        """A range must have a positive length."""
        with pytest.raises(ValueError):
            TimeRange(start=at("2024-11-25 09:00"), end=at("2024-11-25 09:00"))

    def test_from_duration(self):
        tr = TimeRange.from_duration(at("2024-11-25 14:00"), 90)

        assert tr.end == at("2024-11-25 15:30")
        assert tr.duration_minutes() == 90

    def test_overlaps(self):
        """Test overlap detection."""
        tr1 = TimeRange(start=at("2024-11-25 09:00"), end=at("2024-11-25 12:00"))
        tr2 = TimeRange(start=at("2024-11-25 11:00"), end=at("2024-11-25 14:00"))
        tr3 = TimeRange(start=at("2024-11-25 14:00"), end=at("2024-11-25 17:00"))

        assert tr1.overlaps(tr2)
        assert tr2.overlaps(tr1)
        assert not tr1.overlaps(tr3)

    def test_back_to_back_ranges_do_not_overlap(self):
        """Touching endpoints are not a conflict."""
        first = TimeRange(start=at("2024-11-25 14:00"), end=at("2024-11-25 15:00"))
        second = TimeRange(start=at("2024-11-25 15:00"), end=at("2024-11-25 16:00"))

        assert not first.overlaps(second)
        assert not second.overlaps(first)

    def test_contained_range_overlaps(self):
        outer = TimeRange(start=at("2024-11-25 14:00"), end=at("2024-11-25 15:00"))
        inner = TimeRange(start=at("2024-11-25 14:30"), end=at("2024-11-25 14:45"))

        assert outer.overlaps(inner)
        assert inner.overlaps(outer)

    def test_contains_is_half_open(self):
        tr = TimeRange(start=at("2024-11-25 14:00"), end=at("2024-11-25 15:00"))

        assert tr.contains(at("2024-11-25 14:00"))
        assert tr.contains(at("2024-11-25 14:59"))
        assert not tr.contains(at("2024-11-25 15:00"))

    def test_intersect(self):
        """Test intersection calculation."""
        tr1 = TimeRange(start=at("2024-11-25 09:00"), end=at("2024-11-25 12:00"))
        tr2 = TimeRange(start=at("2024-11-25 11:00"), end=at("2024-11-25 14:00"))

        intersection = tr1.intersect(tr2)

        assert intersection is not None
        assert intersection.start == at("2024-11-25 11:00")
        assert intersection.end == at("2024-11-25 12:00")

    def test_intersect_no_overlap(self):
        """Test intersection with no overlap returns None."""
        tr1 = TimeRange(start=at("2024-11-25 09:00"), end=at("2024-11-25 12:00"))
        tr2 = TimeRange(start=at("2024-11-25 14:00"), end=at("2024-11-25 17:00"))

        assert tr1.intersect(tr2) is None


class TestWorkingHours:
    """Tests for WorkingHours model."""

    def test_is_working_day(self):
        """Test working day detection."""
        working_hours = WorkingHours(
            start_time=time(9, 0),
            end_time=time(17, 0),
            exclude_weekdays=[5, 6],  # Saturday, Sunday
            timezone=TZ
        )

        assert working_hours.is_working_day(at("2024-11-25"))  # Monday
        assert not working_hours.is_working_day(at("2024-11-23"))  # Saturday
        assert not working_hours.is_working_day(at("2024-11-24"))  # Sunday
        assert working_hours.is_working_day(pendulum.date(2024, 11, 29))  # Friday

    def test_get_working_hours_for_day(self):
        """Test getting working hours for a specific day."""
        working_hours = WorkingHours(
            start_time=time(9, 30),
            end_time=time(17, 0),
            exclude_weekdays=[5, 6],
            timezone=TZ
        )

        work_range = working_hours.get_working_hours_for_day(pendulum.date(2024, 11, 25))

        assert work_range is not None
        assert work_range.start == at("2024-11-25 09:30")
        assert work_range.end == at("2024-11-25 17:00")

    def test_get_working_hours_for_weekend(self):
        """Test getting working hours for weekend returns None."""
        working_hours = WorkingHours(timezone=TZ)

        assert working_hours.get_working_hours_for_day(pendulum.date(2024, 11, 23)) is None

    def test_default_slot_starts(self):
        """Hourly slots start at 9 through 16, none at or after 17."""
        working_hours = WorkingHours(timezone=TZ)

        starts = list(working_hours.slot_starts(pendulum.date(2024, 11, 25), 60))

        assert [s.hour for s in starts] == [9, 10, 11, 12, 13, 14, 15, 16]

    def test_slot_starts_drop_slots_running_past_closing(self):
        working_hours = WorkingHours(timezone=TZ)

        starts = list(working_hours.slot_starts(pendulum.date(2024, 11, 25), 45))

        assert len(starts) == 10
        assert starts[-1] == at("2024-11-25 15:45")

    def test_slot_starts_on_weekend_is_empty(self):
        working_hours = WorkingHours(timezone=TZ)

        assert list(working_hours.slot_starts(pendulum.date(2024, 11, 24), 60)) == []

    def test_closing_before_opening_raises_error(self):
        with pytest.raises(ValueError):
            WorkingHours(start_time=time(17, 0), end_time=time(9, 0))


class TestAppointment:
    """Tests for the Appointment record."""

    def _appointment(self, **overrides):
        values = dict(
            id="a1",
            customer_id="cust1",
            tailor_id="tailor1",
            when=at("2024-11-25 14:00"),
            duration_minutes=60,
            location=Location.shop(),
            purpose=Purpose.FITTING,
        )
        values.update(overrides)
        return Appointment(**values)

    def test_defaults(self):
        appointment = self._appointment()

        assert appointment.status is AppointmentStatus.SCHEDULED
        assert appointment.reminder.enabled
        assert appointment.reminder.hours_before == 24
        assert appointment.ends_at == at("2024-11-25 15:00")
        assert appointment.reminder_at == at("2024-11-24 14:00")

    def test_non_positive_duration_raises_error(self):
        with pytest.raises(ValueError, match="Duration must be positive"):
            self._appointment(duration_minutes=0)

    def test_records_are_immutable(self):
        appointment = self._appointment()

        with pytest.raises(FrozenInstanceError):
            appointment.status = AppointmentStatus.CANCELED  # type: ignore[misc]

    def test_canceled_appointment_frees_time(self):
        assert self._appointment().blocks_time
        assert not self._appointment(status=AppointmentStatus.CANCELED).blocks_time

    @pytest.mark.parametrize(
        "status, terminal",
        [
            (AppointmentStatus.SCHEDULED, False),
            (AppointmentStatus.CONFIRMED, False),
            (AppointmentStatus.RESCHEDULED, False),
            (AppointmentStatus.COMPLETED, True),
            (AppointmentStatus.CANCELED, True),
        ],
    )
    def test_terminal_statuses(self, status, terminal):
        assert status.is_terminal is terminal


class TestLocationAndSlot:
    """Tests for locations and slot display."""

    def test_hotel_location(self):
        location = Location.hotel(address="456 Beach Road", city="Bangkok", country="Thailand")

        assert location.type is LocationType.HOTEL
        assert location.describe() == "Hotel visit, Bangkok"

    def test_slot_format_display(self):
        slot = AvailableSlot(
            id="shop-202411250900",
            time_range=TimeRange(start=at("2024-11-25 09:00"), end=at("2024-11-25 10:00")),
            location=Location.shop(),
        )

        assert slot.format_display() == "Monday, 25.11.2024 | 09:00 – 10:00 (Shop, open)"
