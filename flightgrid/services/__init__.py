"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .reservation_board import (
    BoardSnapshot,
    FleetProvider,
    ReservationBoard,
    ReservationProvider,
    ReservationSink,
    SettingsProvider,
)

__all__ = [
    "BoardSnapshot",
    "FleetProvider",
    "ReservationBoard",
    "ReservationProvider",
    "ReservationSink",
    "SettingsProvider",
]
