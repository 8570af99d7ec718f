"""
Application service exposing the booking boundary.

The service coordinates the appointment store, the availability engine
and the calendar projector. Readers always work on a store snapshot so
views and slot flags are computed from one consistent appointment set,
and slots are regenerated for every request instead of being cached.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional

import pendulum
from pendulum import Date, DateTime

from ..domain.availability import AvailabilityEngine
from ..domain.exceptions import InvalidStateError
from ..domain.models import (
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    AuditEvent,
    AvailableSlot,
    RescheduleRequest,
    as_date,
)
from ..domain.projector import CalendarProjector, DayView, ListTab, MonthGrid, WeekView
from ..domain.store import AppointmentStore
from ..domain.travel import TravelSchedule


class BookingService:
    """
    Boundary consumed by the UI and persistence layers.

    Expected failures surface as the domain exceptions
    (``NotFoundError``, ``InvalidStateError``, ``ConflictError``,
    ``InvalidRangeError``).
    """

    def __init__(
        self,
        store: AppointmentStore,
        engine: AvailabilityEngine,
        projector: CalendarProjector,
        travel_schedule: Optional[TravelSchedule] = None,
        clock: Optional[Callable[[], DateTime]] = None,
    ) -> None:
        self._store = store
        self._engine = engine
        self._projector = projector
        self._travel_schedule = travel_schedule or TravelSchedule()
        self._clock = clock or pendulum.now

    @property
    def store(self) -> AppointmentStore:
        return self._store

    @property
    def travel_schedule(self) -> TravelSchedule:
        return self._travel_schedule

    def create_appointment(self, request: AppointmentRequest) -> Appointment:
        return self._store.create(request)

    def reschedule_appointment(
        self,
        appointment_id: str,
        request: RescheduleRequest,
        now: Optional[DateTime] = None,
    ) -> Appointment:
        """Reschedule an appointment that has not started yet."""
        self._ensure_modifiable(appointment_id, AppointmentStatus.RESCHEDULED, now)
        return self._store.reschedule(appointment_id, request)

    def cancel_appointment(self, appointment_id: str, now: Optional[DateTime] = None) -> Appointment:
        """Cancel an appointment that has not started yet."""
        self._ensure_modifiable(appointment_id, AppointmentStatus.CANCELED, now)
        return self._store.cancel(appointment_id)

    def confirm_appointment(self, appointment_id: str) -> Appointment:
        return self._store.confirm(appointment_id)

    def complete_appointment(self, appointment_id: str) -> Appointment:
        return self._store.complete(appointment_id)

    def get_appointment(self, appointment_id: str) -> Appointment:
        return self._store.get(appointment_id)

    def list_appointments(
        self,
        tab: ListTab | str = ListTab.ALL,
        now: Optional[DateTime] = None,
    ) -> List[Appointment]:
        return self._projector.filter_by_tab(self._store.snapshot(), tab, now or self._clock())

    def history(self, appointment_id: Optional[str] = None) -> List[AuditEvent]:
        return self._store.history(appointment_id)

    def generate_availability(
        self,
        range_start: DateTime,
        range_end: DateTime,
        travel_schedule: Optional[TravelSchedule] = None,
        tailor_id: Optional[str] = None,
    ) -> List[AvailableSlot]:
        """Regenerate slots for ``[range_start, range_end)`` from the current appointments."""
        return self._engine.generate(
            self._store.snapshot(tailor_id),
            range_start,
            range_end,
            travel_schedule=travel_schedule or self._travel_schedule,
            tailor_id=tailor_id,
        )

    def project_month(self, reference_date: Date | datetime, tailor_id: Optional[str] = None) -> MonthGrid:
        reference = as_date(reference_date)
        first, last = self._projector.month_span(reference.year, reference.month)
        appointments, slots = self._snapshot_with_slots(first, last, tailor_id)
        return self._projector.month_grid(reference.year, reference.month, appointments, slots)

    def project_week(self, reference_date: Date | datetime, tailor_id: Optional[str] = None) -> WeekView:
        first, last = self._projector.week_span(reference_date)
        appointments, slots = self._snapshot_with_slots(first, last, tailor_id)
        return self._projector.week_rows(reference_date, appointments, slots)

    def project_day(self, reference_date: Date | datetime, tailor_id: Optional[str] = None) -> DayView:
        day = as_date(reference_date)
        appointments, slots = self._snapshot_with_slots(day, day, tailor_id)
        return self._projector.day_rows(day, appointments, slots)

    def due_reminders(self, now: Optional[DateTime] = None) -> List[Appointment]:
        """
        Active appointments whose reminder is due.

        A reminder is due once ``when - hours_before`` has passed and the
        appointment has not started. Delivering it is up to the caller.
        """
        now = now or self._clock()
        return [
            a for a in self._store.snapshot()
            if a.reminder.enabled
            and not a.status.is_terminal
            and a.reminder_at <= now < a.when
        ]

    @staticmethod
    def can_modify(appointment: Appointment, now: DateTime) -> bool:
        """Appointments that already started can no longer be moved or canceled."""
        return not appointment.status.is_terminal and appointment.when >= now

    def _ensure_modifiable(
        self,
        appointment_id: str,
        target: AppointmentStatus,
        now: Optional[DateTime],
    ) -> None:
        appointment = self._store.get(appointment_id)
        if appointment.status.is_terminal:
            # The store reports the invalid transition
            return
        if not self.can_modify(appointment, now or self._clock()):
            raise InvalidStateError(
                appointment_id, appointment.status, target, reason="appointment is in the past"
            )

    def _snapshot_with_slots(self, first: Date, last: Date, tailor_id: Optional[str]):
        """One snapshot feeds both the slot generation and the projection."""
        tz = self._projector.timezone
        appointments = self._store.snapshot(tailor_id)
        slots = self._engine.generate(
            appointments,
            pendulum.datetime(first.year, first.month, first.day, tz=tz),
            pendulum.datetime(last.year, last.month, last.day, tz=tz).add(days=1),
            travel_schedule=self._travel_schedule,
            tailor_id=tailor_id,
        )
        return appointments, slots
