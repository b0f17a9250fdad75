"""
In-memory reservation backend for running without the GraphQL API.
"""

import json
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Union

from pendulum import DateTime

from ..domain.exceptions import BackendError
from ..domain.models import (
    BusinessCalendar,
    CreateReservationInput,
    DeleteReservationInput,
    Reservation,
    Resource,
    TimeRange,
    UpdateReservationInput,
)
from .schemas import AircraftPayload, BusinessSettingsPayload, ReservationPayload

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_backend_data.json"


class MockBackend:
    """
    Mock backend that simulates the reservation API.

    Settings, aircraft and reservations are loaded from a JSON file
    (mock_backend_data.json by default) and kept in memory, so writes last
    for the lifetime of the instance only. Like the real server, it refuses
    a reservation that overlaps another one on the same aircraft.
    """

    def __init__(
        self,
        data_file: Optional[Union[str, Path]] = None,
        timezone: str = "Europe/Paris",
        locale: str = "fr",
    ):
        self.data_file = Path(data_file) if data_file else DEFAULT_DATA_FILE
        self.timezone = timezone
        self.locale = locale
        self._calendar: Optional[BusinessCalendar] = None
        self._resources: List[Resource] = []
        self._reservations: Dict[int, Reservation] = {}
        self._load_data()

    def _load_data(self) -> None:
        """Load mock data from the JSON file."""
        if not self.data_file.exists():
            raise FileNotFoundError(f"Mock data file not found: {self.data_file}")

        with open(self.data_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        settings = data.get("settings")
        if settings:
            self._calendar = BusinessSettingsPayload.model_validate(settings).to_calendar(self.locale)

        self._resources = [
            AircraftPayload.model_validate(record).to_resource()
            for record in data.get("aircraft", [])
        ]

        for record in data.get("reservations", []):
            reservation = ReservationPayload.model_validate(record).to_reservation(self.timezone)
            self._reservations[reservation.id] = reservation

    def _label_for(self, resource_id: int) -> str:
        for resource in self._resources:
            if resource.id == resource_id:
                return resource.label
        raise BackendError(f"Unknown aircraft: {resource_id}")

    def _get(self, reservation_id: int) -> Reservation:
        try:
            return self._reservations[reservation_id]
        except KeyError:
            raise BackendError(f"Reservation {reservation_id} not found") from None

    async def get_business_calendar(self) -> Optional[BusinessCalendar]:
        return self._calendar

    async def list_resources(self) -> List[Resource]:
        return list(self._resources)

    async def list_reservations(self, start: DateTime, end: DateTime) -> List[Reservation]:
        return [
            reservation for reservation in self._reservations.values()
            if reservation.start < end and reservation.end > start
        ]

    async def create_reservation(self, payload: CreateReservationInput) -> Reservation:
        label = self._label_for(payload.resource_id)
        try:
            requested = TimeRange(start=payload.start_time, end=payload.end_time)
        except ValueError as exc:
            raise BackendError(str(exc)) from exc

        for existing in self._reservations.values():
            if existing.resource_id == payload.resource_id and existing.time_range.overlaps(requested):
                raise BackendError(
                    f"Aircraft {label} is already reserved from "
                    f"{existing.start.format('HH:mm')} to {existing.end.format('HH:mm')}"
                )

        reservation = Reservation(
            id=max(self._reservations, default=0) + 1,
            resource_id=payload.resource_id,
            start=payload.start_time.in_timezone(self.timezone),
            end=payload.end_time.in_timezone(self.timezone),
            status=payload.status,
            category=payload.category,
            purpose=payload.purpose,
            notes=payload.notes,
            estimated_flight_hours=payload.estimated_flight_hours,
            user_id=payload.user_id,
            resource_label=label,
        )
        self._reservations[reservation.id] = reservation
        return reservation

    async def update_reservation(self, payload: UpdateReservationInput) -> Reservation:
        current = self._get(payload.id)
        updated = replace(
            current,
            purpose=payload.purpose,
            notes=payload.notes,
            category=payload.category,
        )
        self._reservations[updated.id] = updated
        return updated

    async def delete_reservation(self, payload: DeleteReservationInput) -> None:
        self._get(payload.id)
        del self._reservations[payload.id]
