"""
Domain models for appointments, time ranges and bookable slots.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Iterator, List, Optional

import pendulum
from pendulum import Date, DateTime


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    @classmethod
    def from_duration(cls, start: DateTime, minutes: int) -> "TimeRange":
        """Build a range starting at ``start`` lasting ``minutes``."""
        return cls(start=start, end=start.add(minutes=minutes))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """
        Check if this range overlaps with another.

        Touching endpoints do not overlap: 14:00-15:00 and 15:00-16:00
        are back-to-back, not conflicting.
        """
        return self.start < other.end and other.start < self.end

    def contains(self, instant: DateTime) -> bool:
        """Check if an instant falls inside the range (end excluded)."""
        return self.start <= instant < self.end

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass
class WorkingHours:
    """
    Configuration for working hours.
    """
    start_time: time = time(9, 0)
    end_time: time = time(17, 0)
    exclude_weekdays: List[int] = field(default_factory=lambda: [5, 6])  # 0=Monday, 6=Sunday
    timezone: str = "UTC"

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError(f"Opening time {self.start_time} must be before closing time {self.end_time}")

    def is_working_day(self, day: Date) -> bool:
        """Check if a given date or datetime falls on a working day."""
        return day.day_of_week not in self.exclude_weekdays

    def get_working_hours_for_day(self, day: Date) -> TimeRange | None:
        """
        Get the working hours range for a specific day.
        Returns None if it's not a working day.
        """
        if not self.is_working_day(day):
            return None

        start = pendulum.datetime(
            day.year, day.month, day.day,
            self.start_time.hour, self.start_time.minute,
            tz=self.timezone
        )
        end = pendulum.datetime(
            day.year, day.month, day.day,
            self.end_time.hour, self.end_time.minute,
            tz=self.timezone
        )

        return TimeRange(start=start, end=end)

    def slot_starts(self, day: Date, slot_minutes: int) -> Iterator[DateTime]:
        """
        Yield candidate slot starts for a day.

        Starts are spaced ``slot_minutes`` apart from opening time; a slot
        that would run past closing time is not offered.
        """
        if slot_minutes <= 0:
            raise ValueError(f"Slot length must be positive, got {slot_minutes}")

        working = self.get_working_hours_for_day(day)
        if working is None:
            return

        current = working.start
        while current.add(minutes=slot_minutes) <= working.end:
            yield current
            current = current.add(minutes=slot_minutes)


class LocationType(str, Enum):
    SHOP = "shop"
    HOTEL = "hotel"
    VIRTUAL = "virtual"


class Purpose(str, Enum):
    INITIAL = "initial"
    FITTING = "fitting"
    CONSULTATION = "consultation"
    PICKUP = "pickup"


class AppointmentStatus(str, Enum):
    """
    Appointment lifecycle status.

    Flow: scheduled → confirmed → completed
              ↘ rescheduled ↗
              ↘ canceled
    """
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELED = "canceled"
    RESCHEDULED = "rescheduled"

    @property
    def is_terminal(self) -> bool:
        return self in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELED)


class AuditAction(str, Enum):
    CREATED = "created"
    CONFIRMED = "confirmed"
    RESCHEDULED = "rescheduled"
    CANCELED = "canceled"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Location:
    """
    Where an appointment takes place.

    Hotel visits carry the address of the venue the tailor travels to;
    shop and virtual appointments need no address.
    """
    type: LocationType = LocationType.SHOP
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    @classmethod
    def shop(cls) -> "Location":
        return cls(type=LocationType.SHOP)

    @classmethod
    def virtual(cls) -> "Location":
        return cls(type=LocationType.VIRTUAL)

    @classmethod
    def hotel(
        cls,
        address: str,
        city: str,
        country: str,
        coordinates: Optional[Coordinates] = None
    ) -> "Location":
        return cls(
            type=LocationType.HOTEL,
            address=address,
            city=city,
            country=country,
            coordinates=coordinates
        )

    def describe(self) -> str:
        """Short human-readable label."""
        if self.type is LocationType.HOTEL:
            return f"Hotel visit, {self.city or self.address}"
        if self.type is LocationType.VIRTUAL:
            return "Virtual"
        return "Shop"


@dataclass(frozen=True)
class ReminderSettings:
    enabled: bool = True
    hours_before: int = 24

    def __post_init__(self):
        if self.hours_before < 0:
            raise ValueError(f"hours_before must not be negative, got {self.hours_before}")


@dataclass(frozen=True)
class Appointment:
    """
    A booked appointment between a customer and a tailor.

    Records are immutable; the appointment store replaces them as the
    status machine advances, so the id stays stable across reschedules.
    """
    id: str
    customer_id: str
    tailor_id: str
    when: DateTime
    duration_minutes: int
    location: Location
    purpose: Purpose
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: Optional[str] = None
    related_order_id: Optional[str] = None
    reminder: ReminderSettings = field(default_factory=ReminderSettings)

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration_minutes}")

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.from_duration(self.when, self.duration_minutes)

    @property
    def ends_at(self) -> DateTime:
        return self.when.add(minutes=self.duration_minutes)

    @property
    def blocks_time(self) -> bool:
        """Whether the appointment still occupies the tailor's calendar."""
        return self.status is not AppointmentStatus.CANCELED

    @property
    def reminder_at(self) -> DateTime:
        return self.when.subtract(hours=self.reminder.hours_before)


@dataclass(frozen=True)
class AppointmentRequest:
    """Input for booking a new appointment."""
    customer_id: str
    tailor_id: str
    when: DateTime
    duration_minutes: int
    location: Location
    purpose: Purpose
    notes: Optional[str] = None
    related_order_id: Optional[str] = None
    reminder: ReminderSettings = field(default_factory=ReminderSettings)

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration_minutes}")

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.from_duration(self.when, self.duration_minutes)


@dataclass(frozen=True)
class RescheduleRequest:
    """Replacement time, place and purpose for an existing appointment."""
    when: DateTime
    duration_minutes: int
    location: Location
    purpose: Purpose
    notes: Optional[str] = None

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration_minutes}")

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.from_duration(self.when, self.duration_minutes)


@dataclass(frozen=True)
class AuditEvent:
    """One entry of the appointment history, used by timeline views."""
    sequence: int
    appointment_id: str
    action: AuditAction
    at: DateTime
    previous_status: Optional[AppointmentStatus]
    status: AppointmentStatus


@dataclass(frozen=True)
class AvailableSlot:
    """
    Represents a candidate bookable slot.

    Slots are derived data: the availability engine recomputes them from
    the appointment set, they are never stored or edited.
    """
    id: str
    time_range: TimeRange
    location: Location
    booked: bool = False
    appointment_id: Optional[str] = None
    travel_window_id: Optional[str] = None

    @property
    def start(self) -> DateTime:
        return self.time_range.start

    @property
    def end(self) -> DateTime:
        return self.time_range.end

    @property
    def is_open(self) -> bool:
        return not self.booked

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, DD.MM.YYYY | HH:MM – HH:MM (location)
        """
        start = self.time_range.start
        end = self.time_range.end

        weekday_names = {
            0: "Monday",
            1: "Tuesday",
            2: "Wednesday",
            3: "Thursday",
            4: "Friday",
            5: "Saturday",
            6: "Sunday"
        }

        weekday = weekday_names[start.weekday()]
        date_str = start.format("DD.MM.YYYY")
        time_str = f"{start.format('HH:mm')} – {end.format('HH:mm')}"
        state = "booked" if self.booked else "open"

        return f"{weekday}, {date_str} | {time_str} ({self.location.describe()}, {state})"


def as_date(value: Date | datetime) -> Date:
    """Normalise a date or datetime to a pendulum ``Date``."""
    return pendulum.date(value.year, value.month, value.day)
