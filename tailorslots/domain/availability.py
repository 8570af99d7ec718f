"""
Core business logic for generating bookable slots.

This is pure domain logic without any external dependencies (no API
calls, no database, no I/O). The same inputs always give the same slots:
whether a slot is open depends only on the appointment set.
"""

import logging
from typing import Iterable, Iterator, List, Optional, Sequence

from pendulum import Date, DateTime

from .exceptions import InvalidRangeError
from .models import Appointment, AvailableSlot, Location, TimeRange, WorkingHours, as_date
from .travel import TravelSchedule, TravelWindow

logger = logging.getLogger(__name__)

SHOP_KEY = "shop"


class AvailabilityEngine:
    """
    Generates bookable slots and marks the ones taken by appointments.

    Algorithm:
    1. Walk every calendar day in the requested range
    2. Skip excluded weekdays (weekends by default)
    3. Build fixed-length candidates from the working hours, at the shop
       and, on travel days, at the travel destination
    4. Mark each candidate booked if it overlaps a non-canceled appointment
    """

    def __init__(self, working_hours: WorkingHours, slot_minutes: int = 60):
        if slot_minutes <= 0:
            raise ValueError(f"slot_minutes must be greater than zero, got {slot_minutes}")
        self.working_hours = working_hours
        self.slot_minutes = slot_minutes

    def generate(
        self,
        appointments: Iterable[Appointment],
        range_start: DateTime,
        range_end: DateTime,
        travel_schedule: Optional[TravelSchedule] = None,
        tailor_id: Optional[str] = None
    ) -> List[AvailableSlot]:
        """
        Generate all slots starting in ``[range_start, range_end)``.

        Args:
            appointments: Current appointment set (a store snapshot)
            range_start: Start of the range, inclusive
            range_end: End of the range, exclusive
            travel_schedule: Optional travel windows offering hotel visits
            tailor_id: Only consider this tailor's appointments when set

        Returns:
            Slots ordered by start time, shop slots before travel slots

        Raises:
            InvalidRangeError: If range_start is after range_end
        """
        if range_start > range_end:
            raise InvalidRangeError(range_start, range_end)

        blocking = self._blocking_appointments(appointments, tailor_id)
        slots: List[AvailableSlot] = []

        for day in self._days_in_range(range_start, range_end):
            working = self.working_hours.get_working_hours_for_day(day)
            if working is None:
                continue

            day_blocking = [a for a in blocking if a.time_range.overlaps(working)]
            window = travel_schedule.active_window(day) if travel_schedule else None

            for start in self.working_hours.slot_starts(day, self.slot_minutes):
                if not range_start <= start < range_end:
                    continue

                candidate = TimeRange.from_duration(start, self.slot_minutes)
                slots.append(self._build_slot(candidate, Location.shop(), SHOP_KEY, day_blocking))

                if window is not None:
                    slots.append(self._build_travel_slot(candidate, window, day_blocking))

        logger.debug(
            "Generated %d slots between %s and %s (%d booked)",
            len(slots), range_start, range_end, sum(1 for s in slots if s.booked)
        )
        return slots

    def is_booked(self, candidate: TimeRange, appointments: Iterable[Appointment]) -> bool:
        """Check a single interval against the appointment set."""
        return self._first_overlap(candidate, self._blocking_appointments(appointments)) is not None

    def _days_in_range(self, range_start: DateTime, range_end: DateTime) -> Iterator[Date]:
        current = as_date(range_start)
        last = as_date(range_end)

        while current <= last:
            yield current
            current = current.add(days=1)

    def _build_slot(
        self,
        candidate: TimeRange,
        location: Location,
        key: str,
        blocking: Sequence[Appointment],
        travel_window_id: Optional[str] = None
    ) -> AvailableSlot:
        taken_by = self._first_overlap(candidate, blocking)

        return AvailableSlot(
            id=f"{key}-{candidate.start.format('YYYYMMDDHHmm')}",
            time_range=candidate,
            location=location,
            booked=taken_by is not None,
            appointment_id=taken_by.id if taken_by is not None else None,
            travel_window_id=travel_window_id
        )

    def _build_travel_slot(
        self,
        candidate: TimeRange,
        window: TravelWindow,
        blocking: Sequence[Appointment]
    ) -> AvailableSlot:
        return self._build_slot(candidate, window.location, window.id, blocking, window.id)

    @staticmethod
    def _first_overlap(
        candidate: TimeRange,
        blocking: Sequence[Appointment]
    ) -> Optional[Appointment]:
        for appointment in blocking:
            if candidate.overlaps(appointment.time_range):
                return appointment
        return None

    @staticmethod
    def _blocking_appointments(
        appointments: Iterable[Appointment],
        tailor_id: Optional[str] = None
    ) -> List[Appointment]:
        """
        Non-canceled appointments in ``(when, id)`` order.

        The order decides which appointment a booked slot is bound to.
        """
        blocking = [
            a for a in appointments
            if a.blocks_time and (tailor_id is None or a.tailor_id == tailor_id)
        ]
        return sorted(blocking, key=lambda a: (a.when, a.id))
