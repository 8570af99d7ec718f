"""
Tests for the appointment store and its status machine.
"""

import itertools
import threading

import pendulum
import pytest

from tailorslots.domain.exceptions import ConflictError, InvalidStateError, NotFoundError
from tailorslots.domain.models import (
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    AuditAction,
    Location,
    Purpose,
    RescheduleRequest,
)
from tailorslots.domain.store import AppointmentStore, can_transition

TZ = "Europe/Berlin"
RECORDED_AT = pendulum.datetime(2024, 11, 20, 8, tz=TZ)


def at(value: str):
    return pendulum.parse(value, tz=TZ)


def _store() -> AppointmentStore:
    counter = itertools.count(1)
    return AppointmentStore(clock=lambda: RECORDED_AT, id_factory=lambda: f"appt-{next(counter)}")


def _request(when: str, minutes: int = 60, tailor_id: str = "tailor1", purpose=Purpose.FITTING) -> AppointmentRequest:
    return AppointmentRequest(
        customer_id="cust1",
        tailor_id=tailor_id,
        when=at(when),
        duration_minutes=minutes,
        location=Location.shop(),
        purpose=purpose,
        notes="bring the jacket",
    )


def _move(when: str, minutes: int = 60) -> RescheduleRequest:
    return RescheduleRequest(
        when=at(when),
        duration_minutes=minutes,
        location=Location.virtual(),
        purpose=Purpose.CONSULTATION,
        notes="moved",
    )


class TestCreate:
    """Tests for booking new appointments."""

    def test_create_assigns_id_and_scheduled_status(self):
        store = _store()

        appointment = store.create(_request("2024-11-25 14:00"))

        assert appointment.id == "appt-1"
        assert appointment.status is AppointmentStatus.SCHEDULED
        assert appointment.notes == "bring the jacket"
        assert store.get("appt-1") == appointment
        assert len(store) == 1
        assert "appt-1" in store

    def test_overlapping_booking_is_rejected(self):
        """14:30-15:00 collides with 14:00-15:00."""
        store = _store()
        store.create(_request("2024-11-25 14:00"))

        with pytest.raises(ConflictError) as excinfo:
            store.create(_request("2024-11-25 14:30", minutes=30))

        assert excinfo.value.conflicting_ids == ["appt-1"]
        assert len(store) == 1

    def test_back_to_back_booking_succeeds(self):
        store = _store()
        store.create(_request("2024-11-25 14:00"))

        appointment = store.create(_request("2024-11-25 15:00"))

        assert appointment.status is AppointmentStatus.SCHEDULED
        assert len(store) == 2

    def test_other_tailor_is_not_a_conflict(self):
        store = _store()
        store.create(_request("2024-11-25 14:00"))

        store.create(_request("2024-11-25 14:00", tailor_id="tailor2"))

        assert len(store) == 2

    def test_canceled_appointment_frees_its_time(self):
        store = _store()
        first = store.create(_request("2024-11-25 14:00"))
        store.cancel(first.id)

        second = store.create(_request("2024-11-25 14:00"))

        assert second.id == "appt-2"

    def test_active_appointments_never_overlap(self):
        """Booking every half hour with hour-long requests keeps the calendar consistent."""
        store = _store()
        start = at("2024-11-25 09:00")

        for step in range(16):
            try:
                store.create(_request(start.add(minutes=30 * step).to_datetime_string()))
            except ConflictError:
                pass

        active = [a for a in store.snapshot() if a.blocks_time]
        assert len(active) == 8
        for a, b in itertools.combinations(active, 2):
            assert not a.time_range.overlaps(b.time_range)

    def test_concurrent_bookings_for_same_slot(self):
        """Only one of several simultaneous requests for a slot wins."""
        store = AppointmentStore()
        barrier = threading.Barrier(8)
        results = []

        def book():
            barrier.wait()
            try:
                results.append(store.create(_request("2024-11-25 14:00")))
            except ConflictError as exc:
                results.append(exc)

        threads = [threading.Thread(target=book) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        booked = [r for r in results if isinstance(r, Appointment)]
        assert len(booked) == 1
        assert len(store) == 1


class TestReschedule:
    """Tests for moving appointments."""

    def test_reschedule_keeps_id_and_replaces_fields(self):
        store = _store()
        original = store.create(_request("2024-11-25 14:00"))

        moved = store.reschedule(original.id, _move("2024-11-26 10:00", minutes=30))

        assert moved.id == original.id
        assert moved.status is AppointmentStatus.RESCHEDULED
        assert moved.when == at("2024-11-26 10:00")
        assert moved.duration_minutes == 30
        assert moved.location == Location.virtual()
        assert moved.purpose is Purpose.CONSULTATION
        assert moved.notes == "moved"
        assert moved.customer_id == original.customer_id
        assert store.get(original.id) == moved

    def test_reschedule_ignores_its_own_old_interval(self):
        store = _store()
        original = store.create(_request("2024-11-25 14:00"))

        moved = store.reschedule(original.id, _move("2024-11-25 14:30"))

        assert moved.when == at("2024-11-25 14:30")

    def test_reschedule_into_another_appointment_conflicts(self):
        store = _store()
        first = store.create(_request("2024-11-25 14:00"))
        second = store.create(_request("2024-11-25 16:00"))

        with pytest.raises(ConflictError):
            store.reschedule(second.id, _move("2024-11-25 14:30"))

        assert store.get(second.id) == second
        assert store.get(first.id) == first

    def test_rescheduled_appointment_can_move_again(self):
        store = _store()
        original = store.create(_request("2024-11-25 14:00"))
        store.reschedule(original.id, _move("2024-11-26 10:00"))

        again = store.reschedule(original.id, _move("2024-11-27 10:00"))
        confirmed = store.confirm(original.id)

        assert again.when == at("2024-11-27 10:00")
        assert confirmed.status is AppointmentStatus.CONFIRMED

    def test_unknown_id(self):
        with pytest.raises(NotFoundError):
            _store().reschedule("missing", _move("2024-11-26 10:00"))


class TestTransitions:
    """Tests for cancel, confirm and complete."""

    def test_cancel_keeps_record(self):
        store = _store()
        appointment = store.create(_request("2024-11-25 14:00"))

        canceled = store.cancel(appointment.id)

        assert canceled.status is AppointmentStatus.CANCELED
        assert store.get(appointment.id).status is AppointmentStatus.CANCELED
        assert len(store) == 1

    def test_cancel_unknown_id(self):
        with pytest.raises(NotFoundError):
            _store().cancel("missing")

    @pytest.mark.parametrize("finish", ["cancel", "complete"])
    @pytest.mark.parametrize("attempt", ["cancel", "complete", "confirm", "reschedule"])
    def test_terminal_states_reject_transitions(self, finish, attempt):
        """Completed and canceled appointments cannot change again."""
        store = _store()
        appointment = store.create(_request("2024-11-25 14:00"))
        getattr(store, finish)(appointment.id)
        before = store.get(appointment.id)

        with pytest.raises(InvalidStateError):
            if attempt == "reschedule":
                store.reschedule(appointment.id, _move("2024-11-26 10:00"))
            else:
                getattr(store, attempt)(appointment.id)

        assert store.get(appointment.id) == before

    def test_confirm_then_complete(self):
        store = _store()
        appointment = store.create(_request("2024-11-25 14:00"))

        store.confirm(appointment.id)
        completed = store.complete(appointment.id)

        assert completed.status is AppointmentStatus.COMPLETED

    def test_confirm_twice_is_rejected(self):
        store = _store()
        appointment = store.create(_request("2024-11-25 14:00"))
        store.confirm(appointment.id)

        with pytest.raises(InvalidStateError):
            store.confirm(appointment.id)

    def test_transition_table(self):
        assert can_transition(AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)
        assert can_transition(AppointmentStatus.RESCHEDULED, AppointmentStatus.RESCHEDULED)
        assert not can_transition(AppointmentStatus.CONFIRMED, AppointmentStatus.SCHEDULED)
        assert not can_transition(AppointmentStatus.CANCELED, AppointmentStatus.SCHEDULED)


class TestHistoryAndSnapshot:
    """Tests for the audit trail and read access."""

    def test_history_records_each_transition(self):
        store = _store()
        appointment = store.create(_request("2024-11-25 14:00"))
        store.reschedule(appointment.id, _move("2024-11-26 10:00"))
        store.cancel(appointment.id)

        events = store.history(appointment.id)

        assert [e.action for e in events] == [
            AuditAction.CREATED,
            AuditAction.RESCHEDULED,
            AuditAction.CANCELED,
        ]
        assert [e.sequence for e in events] == [1, 2, 3]
        assert events[0].previous_status is None
        assert events[-1].previous_status is AppointmentStatus.RESCHEDULED
        assert events[-1].status is AppointmentStatus.CANCELED
        assert all(e.at == RECORDED_AT for e in events)

    def test_failed_operation_records_nothing(self):
        store = _store()
        store.create(_request("2024-11-25 14:00"))

        with pytest.raises(ConflictError):
            store.create(_request("2024-11-25 14:00"))

        assert len(store.history()) == 1

    def test_snapshot_is_sorted_and_filtered(self):
        store = _store()
        store.create(_request("2024-11-26 10:00"))
        store.create(_request("2024-11-25 10:00"))
        store.create(_request("2024-11-25 10:00", tailor_id="tailor2"))

        assert [a.id for a in store.snapshot()] == ["appt-2", "appt-3", "appt-1"]
        assert [a.id for a in store.snapshot(tailor_id="tailor2")] == ["appt-3"]


class TestRestore:
    """Tests for seeding the store from persisted records."""

    def _record(self, appointment_id: str, when: str, status=AppointmentStatus.CONFIRMED) -> Appointment:
        return Appointment(
            id=appointment_id,
            customer_id="cust1",
            tailor_id="tailor1",
            when=at(when),
            duration_minutes=60,
            location=Location.shop(),
            purpose=Purpose.FITTING,
            status=status,
        )

    def test_restore_keeps_ids_and_statuses(self):
        store = _store()

        store.restore([
            self._record("appt1", "2024-11-25 10:00"),
            self._record("appt2", "2024-11-25 10:00", status=AppointmentStatus.CANCELED),
        ])

        assert store.get("appt1").status is AppointmentStatus.CONFIRMED
        assert store.get("appt2").status is AppointmentStatus.CANCELED
        assert store.history() == []

    def test_restore_rejects_duplicates(self):
        store = _store()

        with pytest.raises(ValueError, match="Duplicate"):
            store.restore([self._record("appt1", "2024-11-25 10:00"), self._record("appt1", "2024-11-26 10:00")])

        assert len(store) == 0

    def test_restore_rejects_overlaps_atomically(self):
        store = _store()

        with pytest.raises(ConflictError):
            store.restore([self._record("appt1", "2024-11-25 10:00"), self._record("appt2", "2024-11-25 10:30")])

        assert len(store) == 0
