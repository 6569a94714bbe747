"""Room finish quantity engine."""

from __future__ import annotations

from roomfinish.quantities.aggregator import RoomData, RoomState, compute_room_quantities
from roomfinish.quantities.results import Failure, FailureKind, Outcome

__all__ = [
    "Failure",
    "FailureKind",
    "Outcome",
    "RoomData",
    "RoomState",
    "compute_room_quantities",
]
