"""Doors and windows of a room, and their width/height resolution."""

from __future__ import annotations

import logging
from typing import Iterable, List, Tuple

import numpy as np
from shapely.geometry import Point

from roomfinish.exceptions import DimensionResolutionError
from roomfinish.geometry.contract import MIN_OPENING_DIMENSION
from roomfinish.host.elements import (
    OPENING_CATEGORIES,
    Category,
    ElementId,
    FamilyInstance,
    Room,
    Wall,
)
from roomfinish.host.protocol import GeometryHost


logger = logging.getLogger(__name__)

_WIDTH_PARAMETERS = {Category.DOORS: "door_width", Category.WINDOWS: "window_width"}
_HEIGHT_PARAMETERS = {Category.DOORS: "door_height", Category.WINDOWS: "window_height"}
ROUGH_WIDTH = "rough_width"
ROUGH_HEIGHT = "rough_height"


def is_related_to_room(opening: FamilyInstance, room_id: ElementId | None) -> bool:
    """True when the opening references the room directly, as from-room or as to-room."""
    if room_id is None:
        return False
    return (
        opening.room_id == room_id
        or opening.from_room_id == room_id
        or opening.to_room_id == room_id
    )


def find_openings(host: GeometryHost, wall: Wall, room: Room) -> List[FamilyInstance]:
    """Doors and windows hosted on ``wall`` that belong to ``room``."""
    return [
        opening
        for opening in host.collect_instances(OPENING_CATEGORIES)
        if opening.host_id == wall.id and is_related_to_room(opening, room.id)
    ]


def room_doors(host: GeometryHost, room: Room) -> List[FamilyInstance]:
    """Every door of the document related to ``room``, whatever its host."""
    return [door for door in host.collect_instances((Category.DOORS,)) if is_related_to_room(door, room.id)]


def _parameter_values(opening: FamilyInstance, names: Iterable[str | None]) -> Iterable[Tuple[str, float | None]]:
    for name in names:
        if name is None:
            continue
        for owner, source in ((opening, "instance"), (opening.element_type, "type")):
            if owner is None:
                continue
            parameter = owner.lookup_parameter(name)
            if parameter is not None:
                yield f"{source}:{name}", parameter.as_double()


def _first_valid(opening: FamilyInstance, names: Iterable[str | None]) -> float | None:
    for source, value in _parameter_values(opening, names):
        if value is not None and abs(value) > MIN_OPENING_DIMENSION:
            logger.debug("Opening %s dimension from %s = %g", opening.id, source, value)
            return abs(value)
    return None


def _wall_direction(opening: FamilyInstance, host: GeometryHost | None) -> np.ndarray | None:
    if host is None or opening.host_id is None:
        return None
    wall = host.get_element(opening.host_id)
    if not isinstance(wall, Wall):
        return None
    box = opening.bounding_box
    centre = None if box is None else Point((box.min[0] + box.max[0]) / 2.0, (box.min[1] + box.max[1]) / 2.0)
    direction = wall.direction_at(centre)
    if direction is None:
        return None
    return np.asarray(direction, dtype=float)


def _extent_along(opening: FamilyInstance, direction: np.ndarray) -> float:
    points = [
        pt
        for solid in opening.solids()
        for slab in solid.prisms
        for part in getattr(slab.footprint, "geoms", [slab.footprint])
        for pt in part.exterior.coords
    ]
    if not points:
        return 0.0
    projected = np.asarray(points, dtype=float) @ direction
    return float(projected.max() - projected.min())


def opening_width(opening: FamilyInstance, host: GeometryHost | None = None) -> float:
    """Resolve the width of a door or window in host units.

    Chain: category width parameter on the instance, then on its type;
    rough opening width (instance, then type); plan extent along the host
    wall direction (or the larger plan extent without a wall). The first
    value above the minimum dimension wins; otherwise 0.
    """
    value = _first_valid(opening, (_WIDTH_PARAMETERS.get(opening.category),))
    if value is None:
        value = _first_valid(opening, (ROUGH_WIDTH,))
    if value is not None:
        return value

    direction = _wall_direction(opening, host)
    if direction is not None:
        extent = _extent_along(opening, direction)
    else:
        box = opening.bounding_box
        extent = max(box.extent[0], box.extent[1]) if box is not None else 0.0
    if extent > MIN_OPENING_DIMENSION:
        return extent
    logger.info("Opening %s has no measurable width", opening.id)
    return 0.0


def opening_height(opening: FamilyInstance) -> float:
    """Resolve the height of a door or window in host units (see :func:`opening_width`)."""
    value = _first_valid(opening, (_HEIGHT_PARAMETERS.get(opening.category),))
    if value is None:
        value = _first_valid(opening, (ROUGH_HEIGHT,))
    if value is not None:
        return value

    box = opening.bounding_box
    extent = box.extent[2] if box is not None else 0.0
    if extent > MIN_OPENING_DIMENSION:
        return extent
    logger.info("Opening %s has no measurable height", opening.id)
    return 0.0


def opening_dimensions(opening: FamilyInstance, host: GeometryHost | None = None, *, strict: bool = False) -> Tuple[float, float]:
    """Width and height of an opening.

    Raises:
        DimensionResolutionError: In strict mode, when either dimension
            resolves to 0.
    """
    width, height = opening_width(opening, host), opening_height(opening)
    if strict and (width <= 0.0 or height <= 0.0):
        raise DimensionResolutionError(
            f"Opening {opening.id} has no measurable size",
            {"opening_id": opening.id, "width": width, "height": height},
        )
    return width, height


__all__ = [
    "find_openings",
    "is_related_to_room",
    "opening_dimensions",
    "opening_height",
    "opening_width",
    "room_doors",
]
