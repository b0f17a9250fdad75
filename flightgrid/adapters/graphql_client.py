"""
GraphQL client for the aeroclub reservation API.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests
from pendulum import DateTime
from pydantic import ValidationError

from ..domain.exceptions import BackendError
from ..domain.models import (
    BusinessCalendar,
    CreateReservationInput,
    DeleteReservationInput,
    Reservation,
    Resource,
    UpdateReservationInput,
)
from .schemas import AircraftPayload, BusinessSettingsPayload, ReservationPayload

logger = logging.getLogger(__name__)


RESERVATION_FIELDS = """
    id
    start_time
    end_time
    status
    flight_category
    purpose
    notes
    estimated_flight_hours
    aircraft {
        id
        registration_number
    }
    user {
        id
        first_name
        last_name
    }
"""

GET_SETTINGS = """
query GetAllAdministrations {
    getAllAdministrations {
        closureDays
        reservationStartTime
        reservationEndTime
        timeSlotDuration
    }
}
"""

GET_AIRCRAFTS = """
query GetAircrafts {
    getAircrafts {
        id
        registration_number
    }
}
"""

GET_FILTERED_RESERVATIONS = f"""
query FilteredReservations($startDate: String!, $endDate: String!) {{
    filteredReservations(start_date: $startDate, end_date: $endDate) {{
        {RESERVATION_FIELDS}
    }}
}}
"""

CREATE_RESERVATION = f"""
mutation CreateReservation($input: CreateReservationInput!) {{
    createReservation(createReservationInput: $input) {{
        {RESERVATION_FIELDS}
    }}
}}
"""

UPDATE_RESERVATION = f"""
mutation UpdateReservation($input: UpdateReservationInput!) {{
    updateReservation(updateReservationInput: $input) {{
        {RESERVATION_FIELDS}
    }}
}}
"""

DELETE_RESERVATION = """
mutation DeleteReservation($id: Int!) {
    deleteReservation(id: $id)
}
"""


class GraphQLClient:
    """
    Client for the reservation GraphQL endpoint.

    Implements the settings, fleet, reservation and sink protocols used by
    ``ReservationBoard``. HTTP calls are blocking ``requests`` calls and run in
    a worker thread so the board's event loop stays responsive.
    """

    def __init__(
        self,
        api_url: str,
        api_token: Optional[str] = None,
        timezone: str = "Europe/Paris",
        locale: str = "fr",
        timeout: int = 30,
    ):
        """
        Initialize the GraphQL client.

        Args:
            api_url: GraphQL endpoint URL
            api_token: Optional bearer token sent with every request
            timezone: IANA timezone that server instants are converted to
            locale: Locale of the closure day names
            timeout: Request timeout in seconds
        """
        self.api_url = api_url
        self.timezone = timezone
        self.locale = locale
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}
        if api_token:
            self.headers["Authorization"] = f"Bearer {api_token}"

    def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        POST a GraphQL document and return its ``data`` member.

        Raises:
            BackendError: If the request fails or the response carries errors
        """
        try:
            response = requests.post(
                self.api_url,
                headers=self.headers,
                json={"query": query, "variables": variables or {}},
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as exc:
            raise BackendError(f"Request to {self.api_url} failed: {exc}") from exc
        except ValueError as exc:
            raise BackendError(f"Invalid JSON from {self.api_url}: {exc}") from exc

        errors = body.get("errors")
        if errors:
            messages = "; ".join(error.get("message", str(error)) for error in errors)
            raise BackendError(messages)

        return body.get("data") or {}

    async def _execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await asyncio.to_thread(self.execute, query, variables)

    async def get_business_calendar(self) -> Optional[BusinessCalendar]:
        data = await self._execute(GET_SETTINGS)
        records = data.get("getAllAdministrations") or []
        if not records:
            return None

        try:
            return BusinessSettingsPayload.model_validate(records[0]).to_calendar(self.locale)
        except (ValidationError, ValueError) as exc:
            raise BackendError(f"Invalid reservation settings: {exc}") from exc

    async def list_resources(self) -> List[Resource]:
        data = await self._execute(GET_AIRCRAFTS)
        resources: List[Resource] = []
        for record in data.get("getAircrafts") or []:
            try:
                resources.append(AircraftPayload.model_validate(record).to_resource())
            except ValidationError as exc:
                logger.warning("Skipping malformed aircraft record %r: %s", record, exc)
        return resources

    async def list_reservations(self, start: DateTime, end: DateTime) -> List[Reservation]:
        variables = {
            "startDate": start.format("YYYY-MM-DD"),
            "endDate": end.format("YYYY-MM-DD"),
        }
        data = await self._execute(GET_FILTERED_RESERVATIONS, variables)

        reservations: List[Reservation] = []
        for record in data.get("filteredReservations") or []:
            try:
                reservation = ReservationPayload.model_validate(record).to_reservation(self.timezone)
            except (ValidationError, ValueError) as exc:
                logger.warning("Skipping malformed reservation record %r: %s", record, exc)
                continue
            # The server filters by calendar date; keep what touches the window
            if reservation.start < end and reservation.end > start:
                reservations.append(reservation)
        return reservations

    async def create_reservation(self, payload: CreateReservationInput) -> Reservation:
        data = await self._execute(CREATE_RESERVATION, {"input": payload.to_variables()})
        return self._reservation_from(data.get("createReservation"))

    async def update_reservation(self, payload: UpdateReservationInput) -> Reservation:
        data = await self._execute(UPDATE_RESERVATION, {"input": payload.to_variables()})
        return self._reservation_from(data.get("updateReservation"))

    async def delete_reservation(self, payload: DeleteReservationInput) -> None:
        await self._execute(DELETE_RESERVATION, payload.to_variables())

    def _reservation_from(self, record: Optional[Dict[str, Any]]) -> Reservation:
        if not record:
            raise BackendError("The server returned no reservation")
        try:
            return ReservationPayload.model_validate(record).to_reservation(self.timezone)
        except (ValidationError, ValueError) as exc:
            raise BackendError(f"Invalid reservation in response: {exc}") from exc
