from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from roomfinish.geometry.contract import is_degenerate_volume
from roomfinish.host.elements import BoundaryLocation, ElementId, Room, SpatialGeometry
from roomfinish.host.protocol import GeometryHost
from roomfinish.quantities.classify import HostKind, classify_element
from roomfinish.quantities.results import FailureKind, Outcome


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Perimeter:
    """Wall-hosted length of a room's finish boundary (host units)."""

    length: float
    wall_ids: Tuple[ElementId, ...] = ()
    segment_count: int = 0


def extract_perimeter(host: GeometryHost, room: Room) -> Outcome[Perimeter]:
    """Sum the finish-boundary segments whose host element is a wall."""
    try:
        loops = host.boundary_loops(room, BoundaryLocation.FINISH)
    except Exception as exc:  # host geometry is a black box
        logger.warning("Boundary of room %s (%s) unavailable: %s", room.id, room.name, exc)
        return Outcome.fail(FailureKind.GEOMETRY_EXTRACTION, f"Boundary of room {room.id} unavailable: {exc}", exc)

    length = 0.0
    walls = []
    count = 0
    for loop in loops or ():
        for segment in loop:
            if segment.element_id is None:
                continue
            if classify_element(host.get_element(segment.element_id)) is not HostKind.WALL:
                continue
            length += segment.length
            count += 1
            if segment.element_id not in walls:
                walls.append(segment.element_id)
    return Outcome.success(Perimeter(length, tuple(walls), count))


def extract_spatial_geometry(host: GeometryHost, room: Room) -> Outcome[SpatialGeometry]:
    """Room solid with the host elements of every face."""
    try:
        spatial = host.calculate_spatial_geometry(room)
    except Exception as exc:  # host geometry is a black box
        logger.warning("Spatial geometry of room %s (%s) unavailable: %s", room.id, room.name, exc)
        return Outcome.fail(FailureKind.GEOMETRY_EXTRACTION, f"Room {room.id} solid unavailable: {exc}", exc)
    if spatial is None or spatial.solid is None or is_degenerate_volume(spatial.solid.volume):
        return Outcome.fail(FailureKind.GEOMETRY_EXTRACTION, f"Room {room.id} has no solid")
    return Outcome.success(spatial)


__all__ = ["Perimeter", "extract_perimeter", "extract_spatial_geometry"]
