"""
In-memory appointment store.

The store is the single writer of appointment records. It owns identity,
the status machine and the audit trail, and serialises every
check-then-write sequence behind one lock so two concurrent bookings can
never both pass the conflict check.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

import pendulum
from pendulum import DateTime

from .exceptions import ConflictError, InvalidStateError, NotFoundError
from .models import (
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    AuditAction,
    AuditEvent,
    RescheduleRequest,
    TimeRange,
)

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.RESCHEDULED,
        AppointmentStatus.CANCELED,
        AppointmentStatus.COMPLETED,
    }),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.RESCHEDULED,
        AppointmentStatus.CANCELED,
        AppointmentStatus.COMPLETED,
    }),
    # A rescheduled appointment behaves like a scheduled one at its new time.
    AppointmentStatus.RESCHEDULED: frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.RESCHEDULED,
        AppointmentStatus.CANCELED,
        AppointmentStatus.COMPLETED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELED: frozenset(),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    """Check the transition table."""
    return target in ALLOWED_TRANSITIONS[current]


def _default_id() -> str:
    return f"appt-{uuid.uuid4().hex[:12]}"


class AppointmentStore:
    """
    Authoritative collection of appointments.

    Records are frozen dataclasses; every transition swaps in a new
    record under the same id, so callers holding an older copy never see
    it change underneath them.

    The store makes no decision based on the wall clock. ``clock`` only
    stamps audit events and ``id_factory`` only names new records; both
    are injectable for tests.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], DateTime]] = None,
        id_factory: Optional[Callable[[], str]] = None
    ) -> None:
        self._clock = clock or pendulum.now
        self._id_factory = id_factory or _default_id
        self._appointments: Dict[str, Appointment] = {}
        self._history: List[AuditEvent] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._appointments)

    def __contains__(self, appointment_id: object) -> bool:
        with self._lock:
            return appointment_id in self._appointments

    def get(self, appointment_id: str) -> Appointment:
        """
        Return the current record.

        Raises:
            NotFoundError: If the id is unknown
        """
        with self._lock:
            return self._require(appointment_id)

    def snapshot(self, tailor_id: Optional[str] = None) -> List[Appointment]:
        """
        Consistent copy of the collection, ordered by ``(when, id)``.

        Readers compute availability and calendar views on a snapshot
        instead of reading while writers mutate.
        """
        with self._lock:
            records = [
                a for a in self._appointments.values()
                if tailor_id is None or a.tailor_id == tailor_id
            ]
        return sorted(records, key=lambda a: (a.when, a.id))

    def history(self, appointment_id: Optional[str] = None) -> List[AuditEvent]:
        """Audit events in the order they were recorded."""
        with self._lock:
            if appointment_id is None:
                return list(self._history)
            return [e for e in self._history if e.appointment_id == appointment_id]

    def create(self, request: AppointmentRequest) -> Appointment:
        """
        Book a new appointment.

        Raises:
            ConflictError: If the interval overlaps an active appointment
                of the same tailor
        """
        with self._lock:
            self._check_conflicts(request.tailor_id, request.time_range)

            appointment_id = self._id_factory()
            if appointment_id in self._appointments:
                raise ValueError(f"Id factory produced a duplicate id: {appointment_id}")

            appointment = Appointment(
                id=appointment_id,
                customer_id=request.customer_id,
                tailor_id=request.tailor_id,
                when=request.when,
                duration_minutes=request.duration_minutes,
                location=request.location,
                purpose=request.purpose,
                status=AppointmentStatus.SCHEDULED,
                notes=request.notes,
                related_order_id=request.related_order_id,
                reminder=request.reminder,
            )
            self._appointments[appointment_id] = appointment
            self._record(appointment_id, AuditAction.CREATED, None, appointment.status)

        logger.info(
            "Created appointment %s for tailor %s at %s",
            appointment.id, appointment.tailor_id, appointment.time_range
        )
        return appointment

    def reschedule(self, appointment_id: str, request: RescheduleRequest) -> Appointment:
        """
        Move an appointment to a new time, place or purpose.

        The id is kept and the status becomes ``rescheduled``.

        Raises:
            NotFoundError: If the id is unknown
            InvalidStateError: If the appointment is completed or canceled
            ConflictError: If the new interval overlaps another active
                appointment of the same tailor
        """
        with self._lock:
            current = self._require(appointment_id)
            self._check_transition(current, AppointmentStatus.RESCHEDULED)
            self._check_conflicts(current.tailor_id, request.time_range, exclude_id=appointment_id)

            updated = replace(
                current,
                when=request.when,
                duration_minutes=request.duration_minutes,
                location=request.location,
                purpose=request.purpose,
                notes=request.notes,
                status=AppointmentStatus.RESCHEDULED,
            )
            self._appointments[appointment_id] = updated
            self._record(appointment_id, AuditAction.RESCHEDULED, current.status, updated.status)

        logger.info(
            "Rescheduled appointment %s from %s to %s",
            appointment_id, current.time_range, updated.time_range
        )
        return updated

    def cancel(self, appointment_id: str) -> Appointment:
        """
        Cancel an appointment. The record is kept for history views.

        Raises:
            NotFoundError: If the id is unknown
            InvalidStateError: If the appointment is completed or canceled
        """
        return self._transition(appointment_id, AppointmentStatus.CANCELED, AuditAction.CANCELED)

    def confirm(self, appointment_id: str) -> Appointment:
        return self._transition(appointment_id, AppointmentStatus.CONFIRMED, AuditAction.CONFIRMED)

    def complete(self, appointment_id: str) -> Appointment:
        return self._transition(appointment_id, AppointmentStatus.COMPLETED, AuditAction.COMPLETED)

    def restore(self, appointments: Iterable[Appointment]) -> None:
        """
        Seed the store with records loaded from persistent storage.

        Records keep their ids and statuses; no audit events are written.
        Nothing is stored unless every record is accepted.

        Raises:
            ValueError: On duplicate ids
            ConflictError: If two active records of one tailor overlap
        """
        incoming = list(appointments)

        with self._lock:
            staged = dict(self._appointments)
            for appointment in sorted(incoming, key=lambda a: (a.when, a.id)):
                if appointment.id in staged:
                    raise ValueError(f"Duplicate appointment id: {appointment.id}")
                if appointment.blocks_time:
                    self._check_conflicts(
                        appointment.tailor_id, appointment.time_range, records=staged.values()
                    )
                staged[appointment.id] = appointment
            self._appointments = staged

        logger.info("Restored %d appointment(s)", len(incoming))

    def _transition(
        self,
        appointment_id: str,
        target: AppointmentStatus,
        action: AuditAction
    ) -> Appointment:
        with self._lock:
            current = self._require(appointment_id)
            self._check_transition(current, target)

            updated = replace(current, status=target)
            self._appointments[appointment_id] = updated
            self._record(appointment_id, action, current.status, target)

        logger.info(
            "Appointment %s: %s -> %s", appointment_id, current.status.value, target.value
        )
        return updated

    def _require(self, appointment_id: str) -> Appointment:
        try:
            return self._appointments[appointment_id]
        except KeyError:
            raise NotFoundError(appointment_id) from None

    @staticmethod
    def _check_transition(current: Appointment, target: AppointmentStatus) -> None:
        if not can_transition(current.status, target):
            raise InvalidStateError(current.id, current.status, target)

    def _check_conflicts(
        self,
        tailor_id: str,
        time_range: TimeRange,
        exclude_id: Optional[str] = None,
        records: Optional[Iterable[Appointment]] = None
    ) -> None:
        """Compare against every stored record, not against generated slots."""
        pool = self._appointments.values() if records is None else records
        conflicting = sorted(
            a.id for a in pool
            if a.id != exclude_id
            and a.tailor_id == tailor_id
            and a.blocks_time
            and a.time_range.overlaps(time_range)
        )
        if conflicting:
            logger.warning(
                "Rejected %s for tailor %s: overlaps %s",
                time_range, tailor_id, ", ".join(conflicting)
            )
            raise ConflictError(time_range, conflicting)

    def _record(
        self,
        appointment_id: str,
        action: AuditAction,
        previous: Optional[AppointmentStatus],
        status: AppointmentStatus
    ) -> None:
        self._history.append(
            AuditEvent(
                sequence=len(self._history) + 1,
                appointment_id=appointment_id,
                action=action,
                at=self._clock(),
                previous_status=previous,
                status=status,
            )
        )
