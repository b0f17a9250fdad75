"""
Time grid generation for one reservation day.
"""

from __future__ import annotations

from typing import List, Optional

from pendulum import DateTime

from .models import BusinessCalendar, Slot, parse_time_of_day

HOURLY_RESOLUTION = 60

__all__ = ["HOURLY_RESOLUTION", "generate_slots", "parse_time_of_day", "slot_instant"]


def slot_instant(day: DateTime, label: str) -> DateTime:
    """Combine a day with an 'HH:mm' label into an instant on that day."""
    tod = parse_time_of_day(label)
    return day.set(hour=tod.hour, minute=tod.minute, second=tod.second, microsecond=0)


def generate_slots(
    day: DateTime,
    calendar: Optional[BusinessCalendar],
    resolution_minutes: Optional[int] = None,
) -> List[Slot]:
    """
    Produce the ordered slot sequence for a day.

    Slots start at the opening time and are emitted while a whole slot still
    fits before closing. Without an explicit resolution the grid is hourly,
    whatever the configured slot duration; pass ``calendar.slot_duration`` to
    make columns follow the club setting.

    An empty list means there is no grid to render (settings not loaded),
    not a zero-length business day.
    """
    if calendar is None or not calendar.is_configured:
        return []

    width = resolution_minutes or HOURLY_RESOLUTION
    if width <= 0:
        raise ValueError(f"resolution_minutes must be positive, got {width}")

    opening = day.set(
        hour=calendar.day_start.hour,
        minute=calendar.day_start.minute,
        second=0,
        microsecond=0
    )
    closing = day.set(
        hour=calendar.day_end.hour,
        minute=calendar.day_end.minute,
        second=0,
        microsecond=0
    )

    slots: List[Slot] = []
    current = opening
    while current.add(minutes=width) <= closing:
        slot_end = current.add(minutes=width)
        slots.append(Slot(label=current.format("HH:mm"), start=current, end=slot_end))
        current = slot_end

    return slots
