"""
Closure-day policy and day navigation.

Closure days are authored as locale weekday names ("Samedi", "dimanche",
"Mercredi"...). Both sides of the comparison are folded to lower-case ASCII
so that accents and capitalisation never cause a mismatch.
"""

from __future__ import annotations

import unicodedata
from typing import FrozenSet, Optional

import pendulum
from pendulum import DateTime

from .models import BusinessCalendar


def normalize_day_name(name: str) -> str:
    """Decompose, strip diacritics and lower-case a weekday name."""
    decomposed = unicodedata.normalize("NFD", name)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.strip().lower()


def weekday_name(day: DateTime, locale: str = "fr") -> str:
    """Weekday name of a date in the given locale (e.g. 'samedi')."""
    return day.format("dddd", locale=locale)


def is_closed(day: DateTime, calendar: Optional[BusinessCalendar]) -> bool:
    """True iff the weekday of ``day`` is one of the calendar's closure days."""
    return day.day_of_week in closed_weekdays(calendar)


def closed_weekdays(calendar: Optional[BusinessCalendar]) -> FrozenSet[int]:
    """
    Integer weekdays (0=Monday, 6=Sunday) matching the closure list.

    Date pickers should rely on these indices instead of comparing names.
    """
    if calendar is None or not calendar.closure_days:
        return frozenset()
    closed = {normalize_day_name(entry) for entry in calendar.closure_days}
    # Any Monday works as a reference week
    monday = pendulum.datetime(2024, 1, 1)
    return frozenset(
        offset for offset in range(7)
        if normalize_day_name(weekday_name(monday.add(days=offset), calendar.locale)) in closed
    )


def shift_day(day: DateTime, days: int = 1) -> DateTime:
    """Move the active date by a number of days (negative goes back)."""
    return day.add(days=days)


def shift_week(day: DateTime, weeks: int = 1) -> DateTime:
    """Move the active date by a number of weeks (negative goes back)."""
    return day.add(weeks=weeks)


def next_open_day(
    day: DateTime,
    calendar: Optional[BusinessCalendar],
    step: int = 1
) -> Optional[DateTime]:
    """
    First day strictly after (step=1) or before (step=-1) ``day`` that is open.

    Returns None when every weekday is a closure day.
    """
    if step not in (1, -1):
        raise ValueError(f"step must be 1 or -1, got {step}")

    blocked = closed_weekdays(calendar)
    if len(blocked) == 7:
        return None

    candidate = shift_day(day, step)
    while candidate.day_of_week in blocked:
        candidate = shift_day(candidate, step)
    return candidate
