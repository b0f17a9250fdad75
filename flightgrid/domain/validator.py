"""
Client-side conflict validation of candidate reservations.

This check only gives immediate feedback: two clients can still race for
the same slot, and the reservation sink (the server) remains the authority
that rejects the later write.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from pendulum import DateTime

from .clock import slot_instant
from .models import TimeRange
from .occupancy import FreeCell, OccupancyGrid
from .selection import SelectionCandidate


class RejectionReason(str, Enum):
    CONFLICT = "conflict"
    EMPTY_INTERVAL = "empty_interval"
    UNKNOWN_RESOURCE = "unknown_resource"
    INCOMPLETE_SELECTION = "incomplete_selection"
    NO_GRID = "no_grid"


_REASON_MESSAGES = {
    RejectionReason.CONFLICT: "The requested time overlaps a reservation or closed hours",
    RejectionReason.EMPTY_INTERVAL: "The reservation must end after it starts",
    RejectionReason.UNKNOWN_RESOURCE: "The aircraft is not part of the displayed fleet",
    RejectionReason.INCOMPLETE_SELECTION: "The selection has no end time",
    RejectionReason.NO_GRID: "Reservation settings are not loaded yet",
}


@dataclass(frozen=True)
class Accepted:
    """Validated interval with exact instants, ready for the reservation sink."""
    resource_id: int
    start: DateTime
    end: DateTime
    estimated_flight_hours: float

    @property
    def accepted(self) -> bool:
        return True

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason
    resource_id: Optional[int] = None
    blocking_labels: Tuple[str, ...] = ()
    outside_hours: bool = False

    @property
    def accepted(self) -> bool:
        return False

    def describe(self) -> str:
        message = _REASON_MESSAGES[self.reason]
        details = []
        if self.blocking_labels:
            details.append(f"blocked slots: {', '.join(self.blocking_labels)}")
        if self.outside_hours:
            details.append("outside opening hours")
        if details:
            message = f"{message} ({'; '.join(details)})"
        return message


ValidationResult = Union[Accepted, Rejected]


def validate(candidate: SelectionCandidate, grid: OccupancyGrid) -> ValidationResult:
    """
    Validate a drag selection against the latest occupancy grid.

    The span runs from the start of the first cell to the end of the last
    one, so a drag always includes the cell it was released on.
    """
    if not candidate.is_complete:
        return Rejected(RejectionReason.INCOMPLETE_SELECTION, candidate.resource_id)
    if grid.is_empty:
        return Rejected(RejectionReason.NO_GRID, candidate.resource_id)

    normalized = candidate.normalized()
    start = slot_instant(grid.day, normalized.start_label)
    end_index = grid.index_of(normalized.end_label)
    if end_index is None:
        # No such cell: the label is taken as the exact end instant
        end = slot_instant(grid.day, normalized.end_label)
    else:
        end = grid.slots[end_index].end
    return validate_interval(normalized.resource_id, start, end, grid)


def validate_interval(
    resource_id: int,
    start: DateTime,
    end: DateTime,
    grid: OccupancyGrid
) -> ValidationResult:
    """
    Validate an exact interval on one aircraft.

    Sub-slot instants are checked against every slot they touch, and
    against the exact times of the aircraft's reservations since one that
    starts mid-slot leaves the slot it starts in free on the grid. The
    returned instants are the exact ones that were passed in.
    """
    if end < start:
        start, end = end, start

    if grid.is_empty:
        return Rejected(RejectionReason.NO_GRID, resource_id)
    if not grid.has_resource(resource_id):
        return Rejected(RejectionReason.UNKNOWN_RESOURCE, resource_id)

    duration_hours = (end - start).total_seconds() / 3600
    if duration_hours <= 0:
        return Rejected(RejectionReason.EMPTY_INTERVAL, resource_id)

    requested = TimeRange(start=start, end=end)
    blocked = {
        slot.label
        for slot, cell in grid.cells_between(resource_id, start, end)
        if not isinstance(cell, FreeCell)
    }
    overlapping = [
        reservation for reservation in grid.reservations.values()
        if reservation.resource_id == resource_id
        and reservation.time_range.overlaps(requested)
    ]
    for reservation in overlapping:
        # Slots holding the clash itself
        clash_start = max(start, reservation.start)
        clash_end = min(end, reservation.end)
        blocked.update(slot.label for slot, _ in grid.cells_between(resource_id, clash_start, clash_end))
    blocking = tuple(slot.label for slot in grid.slots if slot.label in blocked)
    outside = not grid.covers(start, end)

    if blocking or overlapping or outside:
        return Rejected(
            RejectionReason.CONFLICT,
            resource_id,
            blocking_labels=blocking,
            outside_hours=outside,
        )

    return Accepted(
        resource_id=resource_id,
        start=start,
        end=end,
        estimated_flight_hours=duration_hours,
    )
