"""
Occupancy resolution: classify every (aircraft, slot) cell of a day.

Each cell is exactly one of Free, Occupied or OutOfHours. A reservation
claims the first slot it covers and the following slots it still covers are
consumed into the same merged cell; consumed cells are never re-evaluated,
so overlapping reservations (a data error) resolve to the first match.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from pendulum import DateTime

from .closure import is_closed
from .models import BusinessCalendar, Reservation, Resource, Slot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FreeCell:
    """Bookable cell."""

    @property
    def is_selectable(self) -> bool:
        return True


@dataclass(frozen=True)
class OutOfHoursCell:
    """Cell outside opening hours or on a closure day."""

    @property
    def is_selectable(self) -> bool:
        return False


@dataclass(frozen=True)
class OccupiedCell:
    """
    Cell claimed by a reservation.

    ``offset`` is 0 for the head of a merged span and counts up for the
    consumed cells that follow it.
    """
    reservation_id: int
    span_length: int
    offset: int = 0

    @property
    def is_head(self) -> bool:
        return self.offset == 0

    @property
    def is_selectable(self) -> bool:
        return False


Cell = Union[FreeCell, OccupiedCell, OutOfHoursCell]

FREE = FreeCell()
OUT_OF_HOURS = OutOfHoursCell()


@dataclass(frozen=True)
class OccupancyGrid:
    """Resolved resource x slot matrix for one day. Never persisted."""
    day: DateTime
    slots: Tuple[Slot, ...]
    rows: Dict[int, Tuple[Cell, ...]]
    reservations: Dict[int, Reservation]

    @property
    def resource_ids(self) -> Tuple[int, ...]:
        return tuple(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.slots

    def has_resource(self, resource_id: int) -> bool:
        return resource_id in self.rows

    def row(self, resource_id: int) -> Tuple[Cell, ...]:
        return self.rows[resource_id]

    def cell(self, resource_id: int, index: int) -> Cell:
        return self.rows[resource_id][index]

    def reservation(self, reservation_id: int) -> Optional[Reservation]:
        return self.reservations.get(reservation_id)

    def index_of(self, label: str) -> Optional[int]:
        """Column index of a slot label, or None if the grid has no such slot."""
        for index, slot in enumerate(self.slots):
            if slot.label == label:
                return index
        return None

    def covers(self, start: DateTime, end: DateTime) -> bool:
        """True when [start, end) lies entirely inside the grid's slots."""
        if not self.slots:
            return False
        return self.slots[0].start <= start and end <= self.slots[-1].end

    def cells_between(
        self,
        resource_id: int,
        start: DateTime,
        end: DateTime
    ) -> List[Tuple[Slot, Cell]]:
        """All (slot, cell) pairs whose slot intersects the half-open [start, end)."""
        row = self.rows[resource_id]
        return [
            (slot, row[index])
            for index, slot in enumerate(self.slots)
            if slot.start < end and slot.end > start
        ]


def _opening_bounds(
    day: DateTime,
    calendar: Optional[BusinessCalendar]
) -> Tuple[Optional[DateTime], Optional[DateTime]]:
    if calendar is None or not calendar.is_configured:
        return None, None
    opening = day.set(
        hour=calendar.day_start.hour, minute=calendar.day_start.minute, second=0, microsecond=0
    )
    closing = day.set(
        hour=calendar.day_end.hour, minute=calendar.day_end.minute, second=0, microsecond=0
    )
    return opening, closing


def _is_out_of_hours(
    slot: Slot,
    opening: Optional[DateTime],
    closing: Optional[DateTime]
) -> bool:
    if opening is None or closing is None:
        return False
    return slot.start < opening or slot.start >= closing


def _span_length(
    reservation: Reservation,
    slots: Sequence[Slot],
    first_index: int,
    opening: Optional[DateTime],
    closing: Optional[DateTime]
) -> int:
    """Number of consecutive in-hours slots, from the claiming one, that start before the reservation ends."""
    span = 1
    for slot in slots[first_index + 1:]:
        if slot.start >= reservation.end or _is_out_of_hours(slot, opening, closing):
            break
        span += 1
    return span


def resolve(
    resources: Sequence[Resource],
    slots: Sequence[Slot],
    reservations: Sequence[Reservation],
    calendar: Optional[BusinessCalendar],
    day: DateTime
) -> OccupancyGrid:
    """
    Build the occupancy grid for a day.

    Pure function of its inputs: resolving twice on the same inputs yields
    equal grids.
    """
    closed = is_closed(day, calendar)
    opening, closing = _opening_bounds(day, calendar)

    by_resource: Dict[int, List[Reservation]] = {}
    for reservation in reservations:
        by_resource.setdefault(reservation.resource_id, []).append(reservation)

    rows: Dict[int, Tuple[Cell, ...]] = {}

    for resource in resources:
        candidates = by_resource.get(resource.id, [])
        cells: List[Cell] = []
        claim: Optional[Reservation] = None
        span = 0
        remaining = 0

        for index, slot in enumerate(slots):
            if remaining > 0:
                cells.append(OccupiedCell(claim.id, span, span - remaining))
                remaining -= 1
                continue

            if closed or _is_out_of_hours(slot, opening, closing):
                cells.append(OUT_OF_HOURS)
                continue

            matches = [r for r in candidates if r.time_range.contains(slot.start)]
            if not matches:
                cells.append(FREE)
                continue

            if len(matches) > 1:
                logger.warning(
                    "Overlapping reservations %s on aircraft %s at %s; keeping %s",
                    [r.id for r in matches],
                    resource.id,
                    slot.label,
                    matches[0].id,
                )

            claim = matches[0]
            span = _span_length(claim, slots, index, opening, closing)
            remaining = span - 1
            cells.append(OccupiedCell(claim.id, span, 0))

        rows[resource.id] = tuple(cells)

    return OccupancyGrid(
        day=day,
        slots=tuple(slots),
        rows=rows,
        reservations={r.id: r for r in reservations},
    )
