"""
Application service backing the aircraft reservation grid.

The board pulls its inputs through small collaborator protocols, derives the
slot sequence and occupancy grid for the active day, and hands validated
payloads to the reservation sink. Both the GraphQL adapter and the mock
backend implement all four protocols.

Every ``load_day`` call takes a new request epoch; responses that resolve
after a newer request started are discarded instead of applied.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple, Union

from pendulum import DateTime

from ..domain.clock import generate_slots
from ..domain.closure import is_closed
from ..domain.exceptions import (
    BackendError,
    ConfigurationIncompleteError,
    RemoteRejectionError,
    ReservationConflictError,
)
from ..domain.models import (
    BusinessCalendar,
    CreateReservationInput,
    DeleteReservationInput,
    FlightCategory,
    Reservation,
    ReservationStatus,
    Resource,
    Slot,
    UpdateReservationInput,
)
from ..domain.occupancy import OccupancyGrid, resolve
from ..domain.selection import (
    Committed,
    DateChanged,
    PointerDown,
    PointerEnter,
    PointerUp,
    SelectionCandidate,
    SelectionMachine,
    SelectionState,
)
from ..domain.validator import Accepted, ValidationResult, validate, validate_interval

logger = logging.getLogger(__name__)


class SettingsProvider(Protocol):
    async def get_business_calendar(self) -> Optional[BusinessCalendar]:
        """Return the club's reservation settings, or None if none are defined."""


class FleetProvider(Protocol):
    async def list_resources(self) -> List[Resource]:
        """Return the schedulable aircraft."""


class ReservationProvider(Protocol):
    async def list_reservations(self, start: DateTime, end: DateTime) -> List[Reservation]:
        """Return reservations intersecting the window [start, end)."""


class ReservationSink(Protocol):
    async def create_reservation(self, payload: CreateReservationInput) -> Reservation:
        """Persist a new reservation."""

    async def update_reservation(self, payload: UpdateReservationInput) -> Reservation:
        """Update the descriptive fields of a reservation."""

    async def delete_reservation(self, payload: DeleteReservationInput) -> None:
        """Delete a reservation."""


@dataclass(frozen=True)
class BoardSnapshot:
    """Everything derived for one day; replaced wholesale on every load."""
    day: DateTime
    calendar: Optional[BusinessCalendar]
    resources: Tuple[Resource, ...]
    reservations: Tuple[Reservation, ...]
    slots: Tuple[Slot, ...]
    grid: OccupancyGrid
    closed: bool

    @property
    def is_loading(self) -> bool:
        """Settings missing or incomplete: show a loading grid, not an error."""
        return self.calendar is None or not self.calendar.is_configured


Interval = Tuple[int, DateTime, DateTime]


class ReservationBoard:
    """
    Orchestrates data fetching, grid derivation, selection and mutations.
    """

    def __init__(
        self,
        settings_provider: SettingsProvider,
        fleet_provider: FleetProvider,
        reservation_provider: ReservationProvider,
        reservation_sink: ReservationSink,
        *,
        use_slot_duration: bool = False,
    ) -> None:
        self._settings_provider = settings_provider
        self._fleet_provider = fleet_provider
        self._reservation_provider = reservation_provider
        self._reservation_sink = reservation_sink
        self._use_slot_duration = use_slot_duration
        self._epoch = 0
        self._snapshot: Optional[BoardSnapshot] = None
        self._selection = SelectionMachine()

    @property
    def snapshot(self) -> Optional[BoardSnapshot]:
        return self._snapshot

    @property
    def selection(self) -> SelectionState:
        return self._selection.state

    async def load_day(self, day: DateTime) -> Optional[BoardSnapshot]:
        """
        Fetch inputs for ``day`` and rebuild the grid.

        Returns None when the response became stale because another load
        started while this one was in flight.
        """
        self._epoch += 1
        epoch = self._epoch
        day = day.start_of("day")

        calendar, resources, reservations = await asyncio.gather(
            self._settings_provider.get_business_calendar(),
            self._fleet_provider.list_resources(),
            self._reservation_provider.list_reservations(day, day.add(days=1)),
        )

        if epoch != self._epoch:
            logger.debug(
                "Discarding stale board data for %s (epoch %d, current %d)",
                day.to_date_string(), epoch, self._epoch
            )
            return None

        snapshot = self._build_snapshot(day, calendar, resources, reservations)

        if self._snapshot is None or self._snapshot.day != snapshot.day:
            self._selection.dispatch(DateChanged())

        self._snapshot = snapshot
        logger.debug(
            "Loaded %s: %d aircraft, %d reservations, %d slots",
            day.to_date_string(), len(resources), len(reservations), len(snapshot.slots)
        )
        return snapshot

    async def refresh(self) -> Optional[BoardSnapshot]:
        """Reload the active day (after a mutation or on demand)."""
        snapshot = self._require_snapshot()
        return await self.load_day(snapshot.day)

    def _build_snapshot(
        self,
        day: DateTime,
        calendar: Optional[BusinessCalendar],
        resources: Sequence[Resource],
        reservations: Sequence[Reservation],
    ) -> BoardSnapshot:
        resolution = None
        if calendar is not None and self._use_slot_duration:
            if calendar.is_hour_aligned:
                resolution = calendar.slot_duration
            else:
                logger.warning(
                    "Slot duration of %d minutes does not line up with hours; using an hourly grid",
                    calendar.slot_duration
                )

        slots = generate_slots(day, calendar, resolution)
        grid = resolve(resources, slots, reservations, calendar, day)

        return BoardSnapshot(
            day=day,
            calendar=calendar,
            resources=tuple(resources),
            reservations=tuple(reservations),
            slots=tuple(slots),
            grid=grid,
            closed=is_closed(day, calendar),
        )

    def _require_snapshot(self) -> BoardSnapshot:
        if self._snapshot is None:
            raise ConfigurationIncompleteError("No day has been loaded yet.")
        return self._snapshot

    # ------------------------------------------------------------------
    # Pointer-driven selection
    # ------------------------------------------------------------------

    def pointer_down(self, resource_id: int, slot_label: str) -> SelectionState:
        snapshot = self._require_snapshot()
        index = snapshot.grid.index_of(slot_label)
        is_free = (
            index is not None
            and snapshot.grid.has_resource(resource_id)
            and snapshot.grid.cell(resource_id, index).is_selectable
        )
        self._selection.dispatch(PointerDown(resource_id, slot_label, is_free))
        return self._selection.state

    def pointer_enter(self, resource_id: int, slot_label: str) -> SelectionState:
        self._selection.dispatch(PointerEnter(resource_id, slot_label))
        return self._selection.state

    def pointer_up(self) -> Optional[ValidationResult]:
        """
        Finish a drag. A committed candidate is validated against the latest
        grid; the selection is back to idle whatever the outcome.
        """
        outcome = self._selection.dispatch(PointerUp())
        if isinstance(outcome, Committed):
            return self.validate(outcome.candidate)
        return None

    # ------------------------------------------------------------------
    # Validation and mutations
    # ------------------------------------------------------------------

    def validate(self, target: Union[SelectionCandidate, Interval]) -> ValidationResult:
        """Validate a drag candidate or an exact (aircraft, start, end) interval."""
        grid = self._require_snapshot().grid
        if isinstance(target, SelectionCandidate):
            return validate(target, grid)
        resource_id, start, end = target
        return validate_interval(resource_id, start, end, grid)

    async def create_reservation(
        self,
        target: Union[SelectionCandidate, Interval, Accepted],
        *,
        user_id: Optional[int] = None,
        purpose: str = "",
        notes: str = "",
        category: Optional[FlightCategory] = None,
    ) -> Reservation:
        """
        Re-validate against the latest grid and send the reservation to the sink.

        Raises:
            ReservationConflictError: Client-side validation failed; the sink
                is not called.
            RemoteRejectionError: The sink refused the reservation.
        """
        if isinstance(target, Accepted):
            target = (target.resource_id, target.start, target.end)

        result = self.validate(target)
        if not result.accepted:
            raise ReservationConflictError(result)

        payload = CreateReservationInput(
            resource_id=result.resource_id,
            start_time=result.start,
            end_time=result.end,
            estimated_flight_hours=result.estimated_flight_hours,
            status=ReservationStatus.PENDING,
            purpose=purpose,
            notes=notes,
            category=category,
            user_id=user_id,
        )

        try:
            created = await self._reservation_sink.create_reservation(payload)
        except BackendError as exc:
            logger.error("Reservation on aircraft %s rejected: %s", payload.resource_id, exc)
            raise RemoteRejectionError(f"Could not create reservation: {exc}") from exc

        await self.refresh()
        return created

    async def update_reservation(
        self,
        reservation: Reservation,
        *,
        purpose: Optional[str] = None,
        notes: Optional[str] = None,
        category: Optional[FlightCategory] = None,
    ) -> Reservation:
        """Update descriptive fields; blank values keep the current ones."""
        payload = UpdateReservationInput(
            id=reservation.id,
            purpose=purpose or reservation.purpose,
            notes=notes or reservation.notes,
            category=category or reservation.category,
        )

        try:
            updated = await self._reservation_sink.update_reservation(payload)
        except BackendError as exc:
            logger.error("Update of reservation %s rejected: %s", reservation.id, exc)
            raise RemoteRejectionError(f"Could not update reservation {reservation.id}: {exc}") from exc

        if self._snapshot is not None:
            await self.refresh()
        return updated

    async def delete_reservation(self, reservation_id: int) -> None:
        try:
            await self._reservation_sink.delete_reservation(DeleteReservationInput(id=reservation_id))
        except BackendError as exc:
            logger.error("Deletion of reservation %s rejected: %s", reservation_id, exc)
            raise RemoteRejectionError(f"Could not delete reservation {reservation_id}: {exc}") from exc

        if self._snapshot is not None:
            await self.refresh()

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    @staticmethod
    def can_edit(reservation: Reservation, user_id: Optional[int]) -> bool:
        """Only the member who made a reservation may edit or delete it."""
        return user_id is not None and reservation.user_id == user_id

    def agenda(self, resource_id: Optional[int] = None) -> List[Reservation]:
        """Reservations of the active day sorted by start, optionally for one aircraft."""
        snapshot = self._require_snapshot()
        reservations = [
            r for r in snapshot.reservations
            if resource_id is None or r.resource_id == resource_id
        ]
        return sorted(reservations, key=lambda r: r.start)

    def find_reservation(self, reservation_id: int) -> Optional[Reservation]:
        snapshot = self._require_snapshot()
        return snapshot.grid.reservation(reservation_id)
