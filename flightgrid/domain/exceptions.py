"""
Domain-specific exception hierarchy for the reservation board.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validator import Rejected


class FlightgridError(Exception):
    """Base class for all application-level errors."""


class BackendError(FlightgridError):
    """Raised when the remote API cannot be reached or answers with errors."""


class ConfigurationIncompleteError(FlightgridError):
    """Raised when an action needs business settings that are not loaded yet."""


class ReservationConflictError(FlightgridError):
    """Raised when a candidate reservation fails client-side validation."""

    def __init__(self, rejection: "Rejected"):
        self.rejection = rejection
        super().__init__(rejection.describe())


class RemoteRejectionError(FlightgridError):
    """Raised when the reservation sink refuses a create, update or delete."""
