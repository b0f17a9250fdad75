"""
Tests for the ReservationBoard orchestration layer.
"""

import asyncio
import logging
from dataclasses import replace
from typing import List, Optional

import pendulum
import pytest

from flightgrid.domain.exceptions import (
    BackendError,
    ConfigurationIncompleteError,
    RemoteRejectionError,
    ReservationConflictError,
)
from flightgrid.domain.models import (
    BusinessCalendar,
    FlightCategory,
    Reservation,
    ReservationStatus,
    Resource,
)
from flightgrid.domain.occupancy import OccupiedCell
from flightgrid.domain.selection import Phase, SelectionCandidate
from flightgrid.domain.validator import Accepted, RejectionReason
from flightgrid.services.reservation_board import ReservationBoard

TZ = "Europe/Paris"
TUESDAY = pendulum.parse("2024-10-22", tz=TZ)
WEDNESDAY = pendulum.parse("2024-10-23", tz=TZ)
SATURDAY = pendulum.parse("2024-10-26", tz=TZ)


def _at(value: str):
    return pendulum.parse(value, tz=TZ)


class StubBackend:
    """Minimal in-memory stub implementing the four collaborator protocols."""

    def __init__(
        self,
        calendar: Optional[BusinessCalendar] = None,
        reservations: Optional[List[Reservation]] = None,
        fail_writes: bool = False,
    ):
        self.calendar = calendar
        self.resources = [Resource(1, "ABC123"), Resource(2, "DEF456")]
        self.reservations = list(reservations or [])
        self.fail_writes = fail_writes
        self.windows = []
        self.created = []
        self.updated = []
        self.deleted = []

    async def get_business_calendar(self):
        return self.calendar

    async def list_resources(self):
        return list(self.resources)

    async def list_reservations(self, start, end):
        self.windows.append((start, end))
        return [r for r in self.reservations if r.start < end and r.end > start]

    async def create_reservation(self, payload):
        if self.fail_writes:
            raise BackendError("slot already taken")
        self.created.append(payload)
        reservation = Reservation(
            id=100 + len(self.created),
            resource_id=payload.resource_id,
            start=payload.start_time,
            end=payload.end_time,
            status=payload.status,
            purpose=payload.purpose,
            user_id=payload.user_id,
        )
        self.reservations.append(reservation)
        return reservation

    async def update_reservation(self, payload):
        if self.fail_writes:
            raise BackendError("forbidden")
        self.updated.append(payload)
        current = next(r for r in self.reservations if r.id == payload.id)
        updated = replace(current, purpose=payload.purpose, notes=payload.notes, category=payload.category)
        self.reservations = [updated if r.id == payload.id else r for r in self.reservations]
        return updated

    async def delete_reservation(self, payload):
        if self.fail_writes:
            raise BackendError("forbidden")
        self.deleted.append(payload)
        self.reservations = [r for r in self.reservations if r.id != payload.id]


class GatedBackend(StubBackend):
    """Holds reservation fetches for one day until the gate opens."""

    def __init__(self, gated_day, **kwargs):
        super().__init__(**kwargs)
        self.gated_day = gated_day
        self.gate = asyncio.Event()

    async def list_reservations(self, start, end):
        if start == self.gated_day:
            await self.gate.wait()
        return await super().list_reservations(start, end)


def _calendar(slot_duration: int = 60) -> BusinessCalendar:
    return BusinessCalendar.from_settings(["Samedi", "Dimanche"], "08:00", "18:00", slot_duration)


def _existing() -> List[Reservation]:
    return [
        Reservation(
            id=1,
            resource_id=1,
            start=_at("2024-10-22 10:00"),
            end=_at("2024-10-22 12:00"),
            status=ReservationStatus.CONFIRMED,
            purpose="Tour de piste",
            notes="Avec instructeur",
            category=FlightCategory.LOCAL,
            user_id=1,
        ),
        Reservation(
            id=2,
            resource_id=2,
            start=_at("2024-10-22 08:00"),
            end=_at("2024-10-22 09:00"),
            user_id=2,
        ),
    ]


def _board(backend: StubBackend, **kwargs) -> ReservationBoard:
    return ReservationBoard(backend, backend, backend, backend, **kwargs)


def _loaded_board(backend: Optional[StubBackend] = None) -> ReservationBoard:
    backend = backend or StubBackend(calendar=_calendar(), reservations=_existing())
    board = _board(backend)
    asyncio.run(board.load_day(TUESDAY))
    return board


class TestLoadDay:
    """Tests for fetching and deriving a day."""

    def test_builds_snapshot_for_day(self):
        backend = StubBackend(calendar=_calendar(), reservations=_existing())
        board = _board(backend)

        snapshot = asyncio.run(board.load_day(_at("2024-10-22 15:42")))

        assert snapshot.day == TUESDAY
        assert len(snapshot.slots) == 10
        assert not snapshot.closed
        assert not snapshot.is_loading
        assert snapshot.grid.cell(1, snapshot.grid.index_of("10:00")) == OccupiedCell(1, 2, 0)
        assert backend.windows == [(TUESDAY, TUESDAY.add(days=1))]
        assert board.snapshot is snapshot

    def test_missing_settings_show_loading_grid(self):
        board = _board(StubBackend(calendar=None))

        snapshot = asyncio.run(board.load_day(TUESDAY))

        assert snapshot.is_loading
        assert snapshot.slots == ()
        assert snapshot.grid.is_empty

    def test_closed_day(self):
        board = _board(StubBackend(calendar=_calendar()))

        snapshot = asyncio.run(board.load_day(SATURDAY))

        assert snapshot.closed

    def test_grid_can_follow_slot_duration(self):
        board = _board(StubBackend(calendar=_calendar(slot_duration=30)), use_slot_duration=True)

        snapshot = asyncio.run(board.load_day(TUESDAY))

        assert len(snapshot.slots) == 20

    def test_unaligned_slot_duration_falls_back_to_hourly_grid(self, caplog):
        board = _board(StubBackend(calendar=_calendar(slot_duration=90)), use_slot_duration=True)

        with caplog.at_level(logging.WARNING, logger="flightgrid.services.reservation_board"):
            snapshot = asyncio.run(board.load_day(TUESDAY))

        assert snapshot.calendar.slot_duration == 90
        assert [slot.label for slot in snapshot.slots][:2] == ["08:00", "09:00"]
        assert len(snapshot.slots) == 10
        assert "90" in caplog.text

    def test_hourly_grid_ignores_unaligned_slot_duration(self):
        board = _board(StubBackend(calendar=_calendar(slot_duration=90)))

        snapshot = asyncio.run(board.load_day(TUESDAY))

        assert len(snapshot.slots) == 10

    def test_stale_response_is_discarded(self):
        """A load that resolves after a newer one started must not be applied."""
        backend = GatedBackend(TUESDAY, calendar=_calendar(), reservations=_existing())
        board = _board(backend)

        async def scenario():
            first = asyncio.create_task(board.load_day(TUESDAY))
            await asyncio.sleep(0)
            second = await board.load_day(WEDNESDAY)
            backend.gate.set()
            stale = await first
            return stale, second

        stale, second = asyncio.run(scenario())

        assert stale is None
        assert second.day == WEDNESDAY
        assert board.snapshot.day == WEDNESDAY

    def test_refresh_requires_loaded_day(self):
        board = _board(StubBackend(calendar=_calendar()))

        with pytest.raises(ConfigurationIncompleteError):
            asyncio.run(board.refresh())


class TestSelectionFlow:
    """Tests for pointer handling on the board."""

    def test_drag_over_free_cells_is_accepted(self):
        board = _loaded_board()

        board.pointer_down(1, "13:00")
        board.pointer_enter(1, "14:00")
        result = board.pointer_up()

        assert isinstance(result, Accepted)
        assert result.estimated_flight_hours == 2.0
        assert board.selection.phase is Phase.IDLE

    def test_drag_includes_last_hour_of_the_day(self):
        board = _loaded_board()

        board.pointer_down(1, "16:00")
        board.pointer_enter(1, "17:00")
        assert board.selection.highlights(1, "17:00")
        result = board.pointer_up()

        assert result.accepted
        assert result.start == _at("2024-10-22 16:00")
        assert result.end == _at("2024-10-22 18:00")

    def test_drag_across_reservation_is_rejected(self):
        board = _loaded_board()

        board.pointer_down(1, "08:00")
        board.pointer_enter(1, "11:00")
        result = board.pointer_up()

        assert result.reason is RejectionReason.CONFLICT

    def test_pointer_down_on_reservation_is_ignored(self):
        board = _loaded_board()

        state = board.pointer_down(1, "10:00")

        assert state.phase is Phase.IDLE
        assert board.pointer_up() is None

    def test_click_without_drag_is_cancelled(self):
        board = _loaded_board()

        board.pointer_down(1, "13:00")

        assert board.pointer_up() is None

    def test_refresh_keeps_drag_but_new_day_clears_it(self):
        board = _loaded_board()
        board.pointer_down(1, "13:00")

        asyncio.run(board.refresh())
        assert board.selection.phase is Phase.DRAGGING

        asyncio.run(board.load_day(WEDNESDAY))
        assert board.selection.phase is Phase.IDLE

    def test_pointer_before_loading(self):
        board = _board(StubBackend(calendar=_calendar()))

        with pytest.raises(ConfigurationIncompleteError):
            board.pointer_down(1, "13:00")


class TestMutations:
    """Tests for create, update and delete."""

    def test_create_sends_pending_reservation_and_refreshes(self):
        backend = StubBackend(calendar=_calendar(), reservations=_existing())
        board = _loaded_board(backend)

        created = asyncio.run(
            board.create_reservation(
                SelectionCandidate(1, "13:00", "14:00"),
                user_id=7,
                purpose="Navigation",
                category=FlightCategory.CROSS_COUNTRY,
            )
        )

        payload = backend.created[0]
        assert payload.status is ReservationStatus.PENDING
        assert payload.estimated_flight_hours == 2.0
        assert payload.start_time == _at("2024-10-22 13:00")
        assert payload.user_id == 7
        assert payload.category is FlightCategory.CROSS_COUNTRY
        assert board.snapshot.grid.cell(1, board.snapshot.grid.index_of("13:00")) == OccupiedCell(created.id, 2, 0)

    def test_create_accepts_exact_interval(self):
        backend = StubBackend(calendar=_calendar(), reservations=_existing())
        board = _loaded_board(backend)

        asyncio.run(board.create_reservation((2, _at("2024-10-22 13:30"), _at("2024-10-22 14:15"))))

        assert backend.created[0].estimated_flight_hours == 0.75

    def test_conflict_never_reaches_sink(self):
        backend = StubBackend(calendar=_calendar(), reservations=_existing())
        board = _loaded_board(backend)

        with pytest.raises(ReservationConflictError) as excinfo:
            asyncio.run(board.create_reservation((1, _at("2024-10-22 09:00"), _at("2024-10-22 10:30"))))

        assert excinfo.value.rejection.reason is RejectionReason.CONFLICT
        assert backend.created == []

    def test_remote_rejection(self):
        backend = StubBackend(calendar=_calendar(), reservations=_existing(), fail_writes=True)
        board = _loaded_board(backend)

        with pytest.raises(RemoteRejectionError) as excinfo:
            asyncio.run(board.create_reservation(SelectionCandidate(1, "13:00", "15:00")))

        assert isinstance(excinfo.value.__cause__, BackendError)

    def test_update_keeps_current_values_for_blank_fields(self):
        backend = StubBackend(calendar=_calendar(), reservations=_existing())
        board = _loaded_board(backend)
        reservation = board.find_reservation(1)

        updated = asyncio.run(board.update_reservation(reservation, purpose="Vol local", notes=""))

        payload = backend.updated[0]
        assert payload.purpose == "Vol local"
        assert payload.notes == "Avec instructeur"
        assert payload.category is FlightCategory.LOCAL
        assert updated.purpose == "Vol local"
        assert board.find_reservation(1).purpose == "Vol local"

    def test_delete_refreshes_grid(self):
        backend = StubBackend(calendar=_calendar(), reservations=_existing())
        board = _loaded_board(backend)

        asyncio.run(board.delete_reservation(1))

        assert backend.deleted[0].id == 1
        assert board.find_reservation(1) is None

    def test_delete_rejected_by_backend(self):
        board = _loaded_board(StubBackend(calendar=_calendar(), reservations=_existing(), fail_writes=True))

        with pytest.raises(RemoteRejectionError):
            asyncio.run(board.delete_reservation(1))


class TestReadHelpers:
    """Tests for ownership and agenda."""

    def test_only_owner_can_edit(self):
        reservation = _existing()[0]

        assert ReservationBoard.can_edit(reservation, 1)
        assert not ReservationBoard.can_edit(reservation, 2)
        assert not ReservationBoard.can_edit(reservation, None)

    def test_agenda_is_sorted_and_filterable(self):
        board = _loaded_board()

        assert [r.id for r in board.agenda()] == [2, 1]
        assert [r.id for r in board.agenda(resource_id=1)] == [1]
        assert board.agenda(resource_id=3) == []
