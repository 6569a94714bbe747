from __future__ import annotations

import logging
from typing import List, Tuple

from roomfinish.geometry.booleans import BooleanOp
from roomfinish.geometry.contract import is_degenerate_volume
from roomfinish.geometry.faces import Face, extrude_face, matching_faces_area
from roomfinish.geometry.solids import Solid
from roomfinish.host.elements import FamilyInstance, GeometryOptions, Room, Wall
from roomfinish.host.protocol import GeometryHost
from roomfinish.quantities.solid_resolver import element_solid
from roomfinish.settings import GeometrySettings
from roomfinish.units import Unit, convert


logger = logging.getLogger(__name__)


def intersecting_walls(
    host: GeometryHost,
    column: FamilyInstance,
    room_solid: Solid,
    options: GeometryOptions | None = None,
) -> List[Tuple[Wall, Solid]]:
    """Walls near ``column`` that occupy part of the room volume."""
    box = column.bounding_box
    if box is None:
        return []
    found = []
    for wall in host.collect_walls(box):
        solid = element_solid(host, wall, options)
        if solid is None:
            continue
        try:
            common = host.boolean_operation(solid, room_solid, BooleanOp.INTERSECT)
        except Exception as exc:  # host boolean is a black box
            logger.debug("Wall %s vs room solid intersection failed: %s", wall.id, exc)
            continue
        if common is not None and not is_degenerate_volume(common.volume):
            found.append((wall, solid))
    return found


def visible_column_face_area(
    host: GeometryHost,
    face: Face,
    column: FamilyInstance,
    room: Room,
    room_solid: Solid,
    settings: GeometrySettings | None = None,
) -> float:
    """Part of a column face that is not buried in a wall crossing the room.

    A probe is extruded from the face into the room, every intersecting
    wall is subtracted from it and the probe faces sharing the original
    normal are summed. Any failing or emptying subtraction counts the face
    as hidden.
    """
    settings = settings or GeometrySettings()
    thickness = convert(settings.column_probe_thickness_m, Unit.METERS, host.length_unit)
    probe = extrude_face(face, thickness, inward=True)
    if is_degenerate_volume(probe.volume):
        return 0.0

    options = GeometryOptions(detail_level=settings.detail_level)
    for wall, solid in intersecting_walls(host, column, room_solid, options):
        try:
            probe = host.boolean_operation(probe, solid, BooleanOp.DIFFERENCE)
        except Exception as exc:  # host boolean is a black box
            logger.debug("Column %s face hidden in room %s: %s", column.id, room.id, exc)
            return 0.0
        if probe is None or is_degenerate_volume(probe.volume):
            return 0.0
    return matching_faces_area(probe, face.normal)


__all__ = ["intersecting_walls", "visible_column_face_area"]
