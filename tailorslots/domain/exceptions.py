"""
Domain-specific exception hierarchy for appointment scheduling.
"""

from __future__ import annotations

from typing import Sequence


class SchedulingError(Exception):
    """Base class for all expected scheduling errors."""


class NotFoundError(SchedulingError):
    """Raised when an appointment id is unknown to the store."""

    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment not found: {appointment_id}")


class InvalidStateError(SchedulingError):
    """Raised when a transition is not allowed from the current status."""

    def __init__(self, appointment_id: str, current, attempted, reason: str | None = None):
        self.appointment_id = appointment_id
        self.current = current
        self.attempted = attempted
        message = (
            f"Cannot move appointment {appointment_id} "
            f"from '{getattr(current, 'value', current)}' to '{getattr(attempted, 'value', attempted)}'"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConflictError(SchedulingError):
    """Raised when a requested interval overlaps an active appointment."""

    def __init__(self, time_range, conflicting_ids: Sequence[str]):
        self.time_range = time_range
        self.conflicting_ids = list(conflicting_ids)
        super().__init__(
            f"{time_range} overlaps existing appointment(s): {', '.join(self.conflicting_ids)}"
        )


class InvalidRangeError(SchedulingError):
    """Raised when an availability range starts after it ends."""

    def __init__(self, start, end):
        self.start = start
        self.end = end
        super().__init__(f"Range start {start} is after range end {end}")
