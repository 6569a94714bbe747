"""Per-room finish quantities.

Each room with a positive floor area walks ``START -> BOUNDARY_EXTRACTED ->
FACES_PROCESSED -> FINALIZED``. Any failure on the way ends in
``FALLBACK_FINALIZED`` where the wall area is estimated as perimeter times
average height; the room keeps its row either way.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, List

from roomfinish.exceptions import RoomEnumerationError
from roomfinish.host.elements import ElementId, Room
from roomfinish.host.protocol import GeometryHost
from roomfinish.quantities.boundary import extract_perimeter, extract_spatial_geometry
from roomfinish.quantities.classify import HostKind, face_hosts
from roomfinish.quantities.column_visibility import visible_column_face_area
from roomfinish.quantities.opening_subtraction import OpeningRegistry, net_wall_face_area
from roomfinish.quantities.openings import opening_width, room_doors
from roomfinish.settings import GeometrySettings, Settings
from roomfinish.units import Unit, convert


logger = logging.getLogger(__name__)


class RoomState(str, Enum):
    START = "start"
    BOUNDARY_EXTRACTED = "boundary_extracted"
    FACES_PROCESSED = "faces_processed"
    FINALIZED = "finalized"
    FALLBACK_FINALIZED = "fallback"


@dataclass(frozen=True)
class RoomData:
    """Finish quantities of one room, in metres and square metres."""

    room_id: ElementId
    name: str
    number: str
    level: str
    average_height: float
    openings_count: int
    skirting_length: float
    wall_area: float
    perimeter: float
    status: RoomState = RoomState.FINALIZED

    @property
    def is_fallback(self) -> bool:
        return self.status is RoomState.FALLBACK_FINALIZED

    def rounded(self, decimals: int = 2) -> "RoomData":
        return replace(
            self,
            average_height=round(self.average_height, decimals),
            skirting_length=round(self.skirting_length, decimals),
            wall_area=round(self.wall_area, decimals),
            perimeter=round(self.perimeter, decimals),
        )

    def as_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        return payload


def compute_room_quantities(host: GeometryHost, settings: Settings | None = None) -> List[RoomData]:
    """Compute :class:`RoomData` for every placed room, in host enumeration order.

    Raises:
        RoomEnumerationError: If the host cannot list its rooms.
    """
    settings = settings or Settings()
    try:
        rooms = list(host.rooms())
    except Exception as exc:  # caller-fatal, nothing to fall back to
        raise RoomEnumerationError(f"Rooms could not be enumerated: {exc}") from exc

    results = []
    for room in rooms:
        if not room.area > 0.0:
            logger.debug("Skipping unplaced room %s (%s)", room.id, room.name)
            continue
        results.append(RoomQuantities(host, room, settings.geometry).compute())
    logger.info("Computed quantities for %d of %d rooms", len(results), len(rooms))
    return results


def average_height(room: Room) -> float:
    """Volume over area when both are positive, else the room's height parameter (host units)."""
    if room.volume > 0.0 and room.area > 0.0:
        return room.volume / room.area
    return max(room.height, 0.0)


class RoomQuantities:
    """Single-use state machine computing one room's :class:`RoomData`."""

    def __init__(self, host: GeometryHost, room: Room, settings: GeometrySettings) -> None:
        self.host = host
        self.room = room
        self.settings = settings
        self.registry = OpeningRegistry()
        self.state = RoomState.START
        self.perimeter: float | None = None
        self._length_factor = convert(1.0, host.length_unit, Unit.METERS)
        self._area_factor = convert(1.0, Unit(host.length_unit).area_unit, Unit.SQUARE_METERS)

    def compute(self) -> RoomData:
        height = average_height(self.room)
        try:
            self.perimeter = extract_perimeter(self.host, self.room).unwrap().length
            spatial = extract_spatial_geometry(self.host, self.room).unwrap()
            self.state = RoomState.BOUNDARY_EXTRACTED

            net_area = 0.0
            for face in spatial.faces:
                hosts = face_hosts(self.host, spatial.boundary_face_info(face))
                for boundary_host in hosts:
                    # a face split between hosts only counts each host's own part
                    base_area = boundary_host.area if len(hosts) > 1 else None
                    net_area += self._face_area(face, boundary_host, spatial.solid, base_area)
            self.state = RoomState.FACES_PROCESSED

            doors_width = self._doors_width()
        except Exception as exc:  # every per-room failure degrades to the fallback row
            logger.warning(
                "Room %s (%s) falls back to perimeter x height after %s: %s",
                self.room.id, self.room.name, self.state.value, exc,
            )
            return self._fallback(height)

        self.state = RoomState.FINALIZED
        return self._row(
            height=height,
            perimeter=self.perimeter,
            doors_width=doors_width,
            wall_area=net_area,
        )

    def _face_area(self, face, boundary_host, room_solid, base_area) -> float:
        kind = boundary_host.kind
        if kind is HostKind.WALL:
            return net_wall_face_area(
                self.host,
                face,
                boundary_host.element,
                self.room,
                self.registry,
                self.settings,
                base_area=base_area,
            )
        if kind is HostKind.COLUMN and self.settings.include_columns:
            parts = [face]
            if base_area is not None and boundary_host.region is not None:
                parts = face.clipped(boundary_host.region)
            return sum(
                visible_column_face_area(self.host, part, boundary_host.element, self.room, room_solid, self.settings)
                for part in parts
            )
        return 0.0

    def _doors_width(self) -> float:
        return sum(opening_width(door, self.host) for door in room_doors(self.host, self.room))

    def _fallback(self, height: float) -> RoomData:
        perimeter = self.perimeter
        if perimeter is None:
            # square room of the same floor area
            perimeter = 4.0 * math.sqrt(self.room.area)
        try:
            doors_width = self._doors_width()
        except Exception as exc:  # fallback row must still be produced
            logger.warning("Door widths of room %s unavailable: %s", self.room.id, exc)
            doors_width = 0.0
        self.state = RoomState.FALLBACK_FINALIZED
        return self._row(
            height=height,
            perimeter=perimeter,
            doors_width=doors_width,
            wall_area=perimeter * height,
        )

    def _row(self, *, height: float, perimeter: float, doors_width: float, wall_area: float) -> RoomData:
        perimeter_m = perimeter * self._length_factor
        return RoomData(
            room_id=self.room.id,
            name=self.room.name,
            number=self.room.number,
            level=self.room.level_name,
            average_height=max(0.0, height * self._length_factor),
            openings_count=self.registry.count,
            skirting_length=max(0.0, perimeter_m - doors_width * self._length_factor),
            wall_area=max(0.0, wall_area * self._area_factor),
            perimeter=max(0.0, perimeter_m),
            status=self.state,
        )


__all__ = ["RoomData", "RoomQuantities", "RoomState", "average_height", "compute_room_quantities"]
