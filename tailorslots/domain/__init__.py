"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityEngine
from .exceptions import (
    ConflictError,
    InvalidRangeError,
    InvalidStateError,
    NotFoundError,
    SchedulingError,
)
from .models import (
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    AvailableSlot,
    Location,
    LocationType,
    Purpose,
    ReminderSettings,
    RescheduleRequest,
    TimeRange,
    WorkingHours,
)
from .projector import CalendarProjector, ListTab
from .store import AppointmentStore
from .travel import TravelDestination, TravelSchedule, TravelWindow

__all__ = [
    "Appointment",
    "AppointmentRequest",
    "AppointmentStatus",
    "AppointmentStore",
    "AvailabilityEngine",
    "AvailableSlot",
    "CalendarProjector",
    "ConflictError",
    "InvalidRangeError",
    "InvalidStateError",
    "ListTab",
    "Location",
    "LocationType",
    "NotFoundError",
    "Purpose",
    "ReminderSettings",
    "RescheduleRequest",
    "SchedulingError",
    "TimeRange",
    "TravelDestination",
    "TravelSchedule",
    "TravelWindow",
    "WorkingHours",
]
