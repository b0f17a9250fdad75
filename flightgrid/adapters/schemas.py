"""
Pydantic models for the records exchanged with the reservation API.

Each payload knows how to turn itself into the corresponding domain object.
"""

from typing import List, Optional

import pendulum
from pendulum import DateTime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..domain.models import (
    BusinessCalendar,
    FlightCategory,
    Reservation,
    ReservationStatus,
    Resource,
)


def parse_instant(value: str, timezone: str) -> DateTime:
    """Parse an ISO 8601 string into a DateTime in ``timezone``."""
    parsed = pendulum.parse(value, tz=timezone)
    if not isinstance(parsed, DateTime):
        raise ValueError(f"Could not parse datetime: {value}")
    return parsed.in_timezone(timezone)


class BusinessSettingsPayload(BaseModel):
    """Club administration settings (``getAllAdministrations``)."""
    model_config = ConfigDict(populate_by_name=True)

    closure_days: List[str] = Field(default_factory=list, alias="closureDays")
    reservation_start_time: Optional[str] = Field(default=None, alias="reservationStartTime")
    reservation_end_time: Optional[str] = Field(default=None, alias="reservationEndTime")
    time_slot_duration: int = Field(default=60, alias="timeSlotDuration")

    @field_validator("closure_days", mode="before")
    @classmethod
    def default_closure_days(cls, value):
        return value or []

    def to_calendar(self, locale: str = "fr") -> BusinessCalendar:
        return BusinessCalendar.from_settings(
            closure_days=self.closure_days,
            start_time=self.reservation_start_time,
            end_time=self.reservation_end_time,
            slot_duration=self.time_slot_duration,
            locale=locale,
        )


class AircraftPayload(BaseModel):
    id: int
    registration_number: str

    def to_resource(self) -> Resource:
        return Resource(id=self.id, label=self.registration_number)


class UserPayload(BaseModel):
    id: int
    first_name: str = ""
    last_name: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class ReservationPayload(BaseModel):
    """
    A reservation record as returned by ``filteredReservations``.

    The aircraft is either nested (``aircraft {id registration_number}``) or
    given as a flat ``aircraft_id``.
    """
    id: int
    start_time: str
    end_time: str
    aircraft_id: Optional[int] = None
    aircraft: Optional[AircraftPayload] = None
    user: Optional[UserPayload] = None
    status: Optional[str] = None
    flight_category: Optional[str] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None
    estimated_flight_hours: Optional[float] = None

    @model_validator(mode="after")
    def require_aircraft(self) -> "ReservationPayload":
        """Ensure the record names an aircraft one way or the other."""
        if self.aircraft_id is None and self.aircraft is None:
            raise ValueError(f"Reservation {self.id} has no aircraft")
        return self

    @property
    def resource_id(self) -> int:
        if self.aircraft is not None:
            return self.aircraft.id
        return self.aircraft_id

    def to_reservation(self, timezone: str) -> Reservation:
        return Reservation(
            id=self.id,
            resource_id=self.resource_id,
            start=parse_instant(self.start_time, timezone),
            end=parse_instant(self.end_time, timezone),
            status=ReservationStatus.parse(self.status),
            category=FlightCategory.parse(self.flight_category),
            purpose=self.purpose or "",
            notes=self.notes or "",
            estimated_flight_hours=self.estimated_flight_hours,
            user_id=self.user.id if self.user else None,
            user_name=self.user.full_name if self.user else "",
            resource_label=self.aircraft.registration_number if self.aircraft else "",
        )
