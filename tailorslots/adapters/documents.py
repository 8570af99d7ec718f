"""
Persisted document schemas.

The application stores appointments and travel locations as camelCase
JSON documents. These pydantic models validate such documents and
translate them to and from the domain records.
"""

from __future__ import annotations

from typing import Optional

import pendulum
from pydantic import BaseModel, ConfigDict, Field

from ..domain.models import (
    Appointment,
    AppointmentStatus,
    Coordinates,
    Location,
    LocationType,
    Purpose,
    ReminderSettings,
    as_date,
)
from ..domain.travel import TravelDestination, TravelWindow


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CoordinatesDocument(_Document):
    latitude: float
    longitude: float

    def to_domain(self) -> Coordinates:
        return Coordinates(latitude=self.latitude, longitude=self.longitude)

    @classmethod
    def from_domain(cls, coordinates: Optional[Coordinates]) -> Optional["CoordinatesDocument"]:
        if coordinates is None:
            return None
        return cls(latitude=coordinates.latitude, longitude=coordinates.longitude)


class LocationDocument(_Document):
    type: LocationType = LocationType.SHOP
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    coordinates: Optional[CoordinatesDocument] = None

    def to_domain(self) -> Location:
        return Location(
            type=self.type,
            address=self.address,
            city=self.city,
            country=self.country,
            coordinates=self.coordinates.to_domain() if self.coordinates else None,
        )

    @classmethod
    def from_domain(cls, location: Location) -> "LocationDocument":
        return cls(
            type=location.type,
            address=location.address,
            city=location.city,
            country=location.country,
            coordinates=CoordinatesDocument.from_domain(location.coordinates),
        )


class ReminderDocument(_Document):
    send_reminder: bool = Field(default=True, alias="sendReminder")
    reminder_time: int = Field(default=24, ge=0, alias="reminderTime")  # hours before


class AppointmentDocument(_Document):
    id: str
    user_id: str = Field(alias="userId")
    tailor_id: str = Field(alias="tailorId")
    date_time: str = Field(alias="dateTime")
    duration: int = Field(gt=0)  # minutes
    location: LocationDocument = Field(default_factory=LocationDocument)
    purpose: Purpose
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: Optional[str] = None
    related_order_id: Optional[str] = Field(default=None, alias="relatedOrderId")
    reminder_settings: ReminderDocument = Field(
        default_factory=ReminderDocument, alias="reminderSettings"
    )

    def to_domain(self, timezone: str = "UTC") -> Appointment:
        """
        Build the domain record.

        Raises:
            ValueError: If ``dateTime`` cannot be parsed
        """
        when = pendulum.parse(self.date_time, tz=timezone)
        if not isinstance(when, pendulum.DateTime):
            raise ValueError(f"dateTime must be a timestamp, got {self.date_time!r}")

        return Appointment(
            id=self.id,
            customer_id=self.user_id,
            tailor_id=self.tailor_id,
            when=when,
            duration_minutes=self.duration,
            location=self.location.to_domain(),
            purpose=self.purpose,
            status=self.status,
            notes=self.notes,
            related_order_id=self.related_order_id,
            reminder=ReminderSettings(
                enabled=self.reminder_settings.send_reminder,
                hours_before=self.reminder_settings.reminder_time,
            ),
        )

    @classmethod
    def from_domain(cls, appointment: Appointment) -> "AppointmentDocument":
        return cls(
            id=appointment.id,
            user_id=appointment.customer_id,
            tailor_id=appointment.tailor_id,
            date_time=appointment.when.to_iso8601_string(),
            duration=appointment.duration_minutes,
            location=LocationDocument.from_domain(appointment.location),
            purpose=appointment.purpose,
            status=appointment.status,
            notes=appointment.notes,
            related_order_id=appointment.related_order_id,
            reminder_settings=ReminderDocument(
                send_reminder=appointment.reminder.enabled,
                reminder_time=appointment.reminder.hours_before,
            ),
        )


class DestinationDocument(_Document):
    city: str
    country: str
    address: str
    venue: Optional[str] = None
    coordinates: Optional[CoordinatesDocument] = None


class TravelLocationDocument(_Document):
    id: str
    destination: DestinationDocument
    start_date: str = Field(alias="startDate")
    end_date: str = Field(alias="endDate")

    def to_domain(self, timezone: str = "UTC") -> TravelWindow:
        destination = self.destination
        return TravelWindow(
            id=self.id,
            destination=TravelDestination(
                city=destination.city,
                country=destination.country,
                address=destination.address,
                venue=destination.venue,
                coordinates=destination.coordinates.to_domain() if destination.coordinates else None,
            ),
            start_date=as_date(pendulum.parse(self.start_date, tz=timezone)),
            end_date=as_date(pendulum.parse(self.end_date, tz=timezone)),
        )

    @classmethod
    def from_domain(cls, window: TravelWindow) -> "TravelLocationDocument":
        destination = window.destination
        return cls(
            id=window.id,
            destination=DestinationDocument(
                city=destination.city,
                country=destination.country,
                address=destination.address,
                venue=destination.venue,
                coordinates=CoordinatesDocument.from_domain(destination.coordinates),
            ),
            start_date=window.start_date.to_date_string(),
            end_date=window.end_date.to_date_string(),
        )
