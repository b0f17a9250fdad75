"""
Drag selection over the reservation grid as an explicit state machine.

Idle -> Dragging -> {Committed | Cancelled} -> Idle

The reducer is pure: it takes the current state and a pointer event and
returns the next state plus an optional terminal outcome. ``SelectionMachine``
only keeps the current state around for callers driven by UI events.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Phase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class SelectionCandidate:
    """
    Tentative reservation span produced by a drag.

    Both end cells are part of the span: dragging from the 16:00 cell to the
    17:00 cell selects 16:00 up to the end of the 17:00 slot.
    """
    resource_id: int
    start_label: str
    end_label: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.end_label is not None

    def normalized(self) -> "SelectionCandidate":
        """Return the candidate with start and end in chronological order."""
        if self.end_label is not None and self.end_label < self.start_label:
            return SelectionCandidate(self.resource_id, self.end_label, self.start_label)
        return self


@dataclass(frozen=True)
class SelectionState:
    phase: Phase = Phase.IDLE
    resource_id: Optional[int] = None
    start_label: Optional[str] = None
    end_label: Optional[str] = None

    @property
    def candidate(self) -> Optional[SelectionCandidate]:
        if self.resource_id is None or self.start_label is None:
            return None
        return SelectionCandidate(self.resource_id, self.start_label, self.end_label)

    def highlights(self, resource_id: int, label: str) -> bool:
        """Whether a cell lies inside the current (normalized) selection."""
        candidate = self.candidate
        if candidate is None or not candidate.is_complete or candidate.resource_id != resource_id:
            return False
        candidate = candidate.normalized()
        return candidate.start_label <= label <= candidate.end_label


IDLE = SelectionState()


@dataclass(frozen=True)
class PointerDown:
    resource_id: int
    slot_label: str
    is_free: bool = True


@dataclass(frozen=True)
class PointerEnter:
    resource_id: int
    slot_label: str


@dataclass(frozen=True)
class PointerUp:
    pass


@dataclass(frozen=True)
class DateChanged:
    pass


Event = Union[PointerDown, PointerEnter, PointerUp, DateChanged]


@dataclass(frozen=True)
class Committed:
    candidate: SelectionCandidate


@dataclass(frozen=True)
class Cancelled:
    pass


Outcome = Union[Committed, Cancelled, None]


@dataclass(frozen=True)
class Transition:
    state: SelectionState
    outcome: Outcome = None


def reduce(state: SelectionState, event: Event) -> Transition:
    """Apply one pointer event to the selection state."""
    if isinstance(event, DateChanged):
        if state.phase is Phase.DRAGGING:
            return Transition(IDLE, Cancelled())
        return Transition(IDLE)

    if isinstance(event, PointerDown):
        if not event.is_free:
            return Transition(state)
        return Transition(
            SelectionState(
                phase=Phase.DRAGGING,
                resource_id=event.resource_id,
                start_label=event.slot_label,
            )
        )

    if isinstance(event, PointerEnter):
        if state.phase is not Phase.DRAGGING or event.resource_id != state.resource_id:
            return Transition(state)
        return Transition(
            SelectionState(
                phase=Phase.DRAGGING,
                resource_id=state.resource_id,
                start_label=state.start_label,
                end_label=event.slot_label,
            )
        )

    if isinstance(event, PointerUp):
        if state.phase is not Phase.DRAGGING:
            return Transition(state)
        candidate = state.candidate
        if candidate is not None and candidate.is_complete:
            return Transition(IDLE, Committed(candidate))
        return Transition(IDLE, Cancelled())

    raise TypeError(f"Unsupported selection event: {event!r}")


class SelectionMachine:
    """Holds the current selection state and feeds events through ``reduce``."""

    def __init__(self) -> None:
        self._state = IDLE

    @property
    def state(self) -> SelectionState:
        return self._state

    def dispatch(self, event: Event) -> Outcome:
        transition = reduce(self._state, event)
        self._state = transition.state
        return transition.outcome

    def reset(self) -> None:
        self._state = IDLE
