"""
Domain models for the aircraft reservation grid.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Sequence, Tuple

from pendulum import DateTime


def parse_time_of_day(value: str) -> time:
    """Parse an 'HH:mm' or 'HH:mm:ss' string into a time object."""
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time of day: {value!r} (expected HH:mm)")
    try:
        numbers = [int(part) for part in parts]
    except ValueError as exc:
        raise ValueError(f"Invalid time of day: {value!r} (expected HH:mm)") from exc
    return time(*numbers)


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def duration_hours(self) -> float:
        """Return the duration in (possibly fractional) hours."""
        return (self.end - self.start).total_seconds() / 3600

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def contains(self, instant: DateTime) -> bool:
        """Half-open membership test: start <= instant < end."""
        return self.start <= instant < self.end

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


class StatusStyle(NamedTuple):
    label: str
    color: str


class ReservationStatus(str, Enum):
    """Lifecycle state of a reservation as reported by the backend."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ReservationStatus"]:
        """Case-insensitive lookup; unknown or empty values map to None."""
        if not value:
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None

    @property
    def style(self) -> StatusStyle:
        return STATUS_STYLES[self]


STATUS_STYLES: Dict[ReservationStatus, StatusStyle] = {
    ReservationStatus.PENDING: StatusStyle("En attente", "dark_orange"),
    ReservationStatus.CONFIRMED: StatusStyle("Confirmée", "green"),
    ReservationStatus.CANCELLED: StatusStyle("Annulée", "red"),
}

DEFAULT_STATUS_STYLE = StatusStyle("Réservation", "blue")


def status_style(status: Optional[ReservationStatus]) -> StatusStyle:
    """Return the display style for a status, falling back for unknown ones."""
    if status is None:
        return DEFAULT_STATUS_STYLE
    return STATUS_STYLES[status]


class FlightCategory(str, Enum):
    """Kind of flight a reservation is made for."""
    LOCAL = "LOCAL"
    CROSS_COUNTRY = "CROSS_COUNTRY"
    INSTRUCTION = "INSTRUCTION"
    TOURISM = "TOURISM"
    TRAINING = "TRAINING"
    MAINTENANCE = "MAINTENANCE"
    PRIVATE = "PRIVATE"
    CORPORATE = "CORPORATE"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FlightCategory"]:
        """
        Resolve a category from its code (any case) or its French label.

        Returns None for empty or unknown values.
        """
        if not value:
            return None
        key = value.strip()
        try:
            return cls(key.upper())
        except ValueError:
            pass
        for category, label in CATEGORY_LABELS.items():
            if label.lower() == key.lower():
                return category
        return None

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS: Dict[FlightCategory, str] = {
    FlightCategory.LOCAL: "Local",
    FlightCategory.CROSS_COUNTRY: "Vol longue distance",
    FlightCategory.INSTRUCTION: "Instruction",
    FlightCategory.TOURISM: "Tourisme",
    FlightCategory.TRAINING: "Entraînement",
    FlightCategory.MAINTENANCE: "Maintenance",
    FlightCategory.PRIVATE: "Privé",
    FlightCategory.CORPORATE: "Affaires",
}


@dataclass(frozen=True)
class BusinessCalendar:
    """
    Opening-hours policy of the club for reservations.

    Replaced wholesale whenever settings are refetched. ``day_start`` and
    ``day_end`` are None while settings are not loaded yet.
    """
    closure_days: Tuple[str, ...] = ()
    slot_duration: int = 60
    day_start: Optional[time] = None
    day_end: Optional[time] = None
    locale: str = "fr"

    def __post_init__(self):
        if not 30 <= self.slot_duration <= 120:
            raise ValueError(
                f"slot_duration must be between 30 and 120 minutes, got {self.slot_duration}"
            )
        if self.day_start is not None and self.day_end is not None:
            if self.day_start >= self.day_end:
                raise ValueError(
                    f"day_start {self.day_start} must be before day_end {self.day_end}"
                )

    @property
    def is_configured(self) -> bool:
        """True once both opening bounds are known."""
        return self.day_start is not None and self.day_end is not None

    @property
    def is_hour_aligned(self) -> bool:
        """True when slots divide an hour or span whole hours (30, 60, 120; not 90)."""
        return 60 % self.slot_duration == 0 or self.slot_duration % 60 == 0

    @classmethod
    def from_settings(
        cls,
        closure_days: Sequence[str],
        start_time: Optional[str],
        end_time: Optional[str],
        slot_duration: int = 60,
        locale: str = "fr",
    ) -> "BusinessCalendar":
        """Build a calendar from the raw settings strings ('HH:mm')."""
        return cls(
            closure_days=tuple(closure_days),
            slot_duration=slot_duration,
            day_start=parse_time_of_day(start_time) if start_time else None,
            day_end=parse_time_of_day(end_time) if end_time else None,
            locale=locale,
        )


@dataclass(frozen=True)
class Resource:
    """A schedulable aircraft."""
    id: int
    label: str


@dataclass(frozen=True)
class Reservation:
    """
    An existing booking of one aircraft.

    Invariant: start must be before end. Instants are kept exact even when
    they do not fall on slot boundaries.
    """
    id: int
    resource_id: int
    start: DateTime
    end: DateTime
    status: Optional[ReservationStatus] = None
    category: Optional[FlightCategory] = None
    purpose: str = ""
    notes: str = ""
    estimated_flight_hours: Optional[float] = None
    user_id: Optional[int] = None
    user_name: str = ""
    resource_label: str = ""

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(
                f"Reservation {self.id}: start {self.start} must be before end {self.end}"
            )

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def format_display(self) -> str:
        """Format: HH:mm – HH:mm | purpose (status)"""
        style = status_style(self.status)
        title = self.purpose or "Réservation"
        return f"{self.start.format('HH:mm')} – {self.end.format('HH:mm')} | {title} ({style.label})"


@dataclass(frozen=True)
class Slot:
    """One column of the reservation grid: [start, end)."""
    label: str
    start: DateTime
    end: DateTime


@dataclass(frozen=True)
class CreateReservationInput:
    """Validated payload handed to the reservation sink."""
    resource_id: int
    start_time: DateTime
    end_time: DateTime
    estimated_flight_hours: float
    status: ReservationStatus = ReservationStatus.PENDING
    purpose: str = ""
    notes: str = ""
    category: Optional[FlightCategory] = None
    user_id: Optional[int] = None

    def to_variables(self) -> Dict[str, Any]:
        """GraphQL ``CreateReservationInput`` representation."""
        return {
            "aircraft_id": self.resource_id,
            "start_time": self.start_time.to_iso8601_string(),
            "end_time": self.end_time.to_iso8601_string(),
            "estimated_flight_hours": self.estimated_flight_hours,
            "status": self.status.value,
            "purpose": self.purpose,
            "notes": self.notes,
            "flight_category": self.category.value if self.category else "",
            "user_id": self.user_id,
        }


@dataclass(frozen=True)
class UpdateReservationInput:
    id: int
    purpose: str = ""
    notes: str = ""
    category: Optional[FlightCategory] = None

    def to_variables(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "purpose": self.purpose,
            "notes": self.notes,
            "flight_category": self.category.value if self.category else "",
        }


@dataclass(frozen=True)
class DeleteReservationInput:
    id: int

    def to_variables(self) -> Dict[str, Any]:
        return {"id": self.id}

