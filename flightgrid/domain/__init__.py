"""
Domain layer - Pure scheduling logic without I/O.
"""

from .clock import generate_slots, slot_instant
from .closure import closed_weekdays, is_closed, next_open_day, normalize_day_name
from .models import (
    BusinessCalendar,
    CreateReservationInput,
    DeleteReservationInput,
    FlightCategory,
    Reservation,
    ReservationStatus,
    Resource,
    Slot,
    TimeRange,
    UpdateReservationInput,
)
from .occupancy import FreeCell, OccupancyGrid, OccupiedCell, OutOfHoursCell, resolve
from .selection import SelectionCandidate, SelectionMachine, SelectionState
from .validator import Accepted, Rejected, RejectionReason, validate, validate_interval

__all__ = [
    "Accepted",
    "BusinessCalendar",
    "CreateReservationInput",
    "DeleteReservationInput",
    "FlightCategory",
    "FreeCell",
    "OccupancyGrid",
    "OccupiedCell",
    "OutOfHoursCell",
    "Rejected",
    "RejectionReason",
    "Reservation",
    "ReservationStatus",
    "Resource",
    "SelectionCandidate",
    "SelectionMachine",
    "SelectionState",
    "Slot",
    "TimeRange",
    "UpdateReservationInput",
    "closed_weekdays",
    "generate_slots",
    "is_closed",
    "next_open_day",
    "normalize_day_name",
    "resolve",
    "slot_instant",
    "validate",
    "validate_interval",
]
