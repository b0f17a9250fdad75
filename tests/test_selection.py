"""
Tests for the drag selection state machine.
"""

import pytest

from flightgrid.domain.selection import (
    IDLE,
    Cancelled,
    Committed,
    DateChanged,
    Phase,
    PointerDown,
    PointerEnter,
    PointerUp,
    SelectionCandidate,
    SelectionMachine,
    SelectionState,
    reduce,
)


class TestReduce:
    """Tests for the pure reducer."""

    def test_pointer_down_on_free_cell_starts_drag(self):
        transition = reduce(IDLE, PointerDown(1, "09:00"))

        assert transition.state == SelectionState(Phase.DRAGGING, 1, "09:00", None)
        assert transition.outcome is None

    def test_pointer_down_on_occupied_cell_is_ignored(self):
        transition = reduce(IDLE, PointerDown(1, "10:00", is_free=False))

        assert transition.state is IDLE
        assert transition.outcome is None

    def test_pointer_enter_extends_same_row(self):
        dragging = SelectionState(Phase.DRAGGING, 1, "09:00")

        transition = reduce(dragging, PointerEnter(1, "11:00"))

        assert transition.state.end_label == "11:00"

    def test_pointer_enter_on_other_row_is_ignored(self):
        dragging = SelectionState(Phase.DRAGGING, 1, "09:00", "10:00")

        transition = reduce(dragging, PointerEnter(2, "11:00"))

        assert transition.state == dragging

    def test_pointer_enter_while_idle_is_ignored(self):
        assert reduce(IDLE, PointerEnter(1, "11:00")).state is IDLE

    def test_pointer_up_commits_complete_candidate(self):
        dragging = SelectionState(Phase.DRAGGING, 1, "13:00", "15:00")

        transition = reduce(dragging, PointerUp())

        assert transition.state is IDLE
        assert transition.outcome == Committed(SelectionCandidate(1, "13:00", "15:00"))

    def test_pointer_up_without_end_cancels(self):
        dragging = SelectionState(Phase.DRAGGING, 1, "13:00")

        transition = reduce(dragging, PointerUp())

        assert transition.state is IDLE
        assert transition.outcome == Cancelled()

    def test_pointer_up_while_idle_has_no_outcome(self):
        transition = reduce(IDLE, PointerUp())

        assert transition.state is IDLE
        assert transition.outcome is None

    def test_date_change_discards_drag(self):
        dragging = SelectionState(Phase.DRAGGING, 1, "13:00", "14:00")

        transition = reduce(dragging, DateChanged())

        assert transition.state is IDLE
        assert transition.outcome == Cancelled()

    def test_unknown_event(self):
        with pytest.raises(TypeError):
            reduce(IDLE, "click")


class TestSelectionCandidate:
    """Tests for candidates and highlighting."""

    def test_normalized_swaps_reversed_labels(self):
        candidate = SelectionCandidate(1, "15:00", "13:00")

        assert candidate.normalized() == SelectionCandidate(1, "13:00", "15:00")

    def test_normalized_keeps_ordered_labels(self):
        candidate = SelectionCandidate(1, "13:00", "15:00")

        assert candidate.normalized() is candidate

    def test_highlights_include_both_end_cells(self):
        state = SelectionState(Phase.DRAGGING, 1, "15:00", "13:00")

        assert state.highlights(1, "13:00")
        assert state.highlights(1, "14:00")
        assert state.highlights(1, "15:00")
        assert not state.highlights(1, "12:00")
        assert not state.highlights(1, "16:00")
        assert not state.highlights(2, "14:00")


def test_machine_runs_full_drag():
    machine = SelectionMachine()

    machine.dispatch(PointerDown(2, "13:00"))
    machine.dispatch(PointerEnter(2, "14:00"))
    machine.dispatch(PointerEnter(2, "15:00"))
    outcome = machine.dispatch(PointerUp())

    assert outcome == Committed(SelectionCandidate(2, "13:00", "15:00"))
    assert machine.state is IDLE


def test_machine_reset():
    machine = SelectionMachine()
    machine.dispatch(PointerDown(2, "13:00"))

    machine.reset()

    assert machine.state.phase is Phase.IDLE
