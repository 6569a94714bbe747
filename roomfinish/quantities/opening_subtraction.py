"""Net area of a wall-bounded room face after removing its openings.

Two strategies exist for each opening. The preferred one extrudes the face
by a thin probe along its outward normal, subtracts the opening solid and
measures how much face area (faces with the original normal) disappeared.
When the boolean fails or leaves a degenerate probe, the opening's
bounding-box Z range clipped to the face's Z range times its width is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Set

from roomfinish.geometry.booleans import BooleanOp
from roomfinish.geometry.contract import MIN_REMOVED_AREA, is_degenerate_volume
from roomfinish.geometry.faces import Face, extrude_face, matching_faces_area
from roomfinish.host.elements import ElementId, FamilyInstance, GeometryOptions, Room, Wall
from roomfinish.host.protocol import GeometryHost
from roomfinish.quantities.openings import find_openings, opening_width
from roomfinish.quantities.solid_resolver import resolve_solid
from roomfinish.settings import GeometrySettings
from roomfinish.units import Unit, convert


logger = logging.getLogger(__name__)


@dataclass
class OpeningRegistry:
    """Room-scoped record of openings seen and openings already subtracted."""

    seen: Set[ElementId] = field(default_factory=set)
    subtracted: Set[ElementId] = field(default_factory=set)

    def register(self, opening: FamilyInstance) -> None:
        self.seen.add(opening.id)

    def is_subtracted(self, opening: FamilyInstance) -> bool:
        return opening.id in self.subtracted

    def mark_subtracted(self, opening: FamilyInstance) -> None:
        self.subtracted.add(opening.id)

    @property
    def count(self) -> int:
        return len(self.seen)


def net_wall_face_area(
    host: GeometryHost,
    face: Face,
    wall: Wall,
    room: Room,
    registry: OpeningRegistry,
    settings: GeometrySettings | None = None,
    base_area: float | None = None,
) -> float:
    """Area of ``face`` owned by ``wall`` minus the openings of ``wall`` in ``room``.

    Every opening found is registered as seen. A face that already carries
    holes is returned as is. Otherwise each opening not yet subtracted for
    the room is removed from this face; it is marked as subtracted only
    when this face actually lost area to it.
    """
    settings = settings or GeometrySettings()
    area = face.area if base_area is None else base_area
    openings = find_openings(host, wall, room)
    for opening in openings:
        registry.register(opening)

    if face.edge_loop_count > 1:
        return max(0.0, area)

    thickness = convert(settings.opening_probe_thickness_m, Unit.METERS, host.length_unit)
    options = GeometryOptions(detail_level=settings.detail_level)
    for opening in openings:
        if registry.is_subtracted(opening):
            continue
        removed = _removed_area(host, face, opening, thickness, options, settings.boolean_subtraction)
        if removed > MIN_REMOVED_AREA:
            area -= removed
            registry.mark_subtracted(opening)
    return max(0.0, area)


def _removed_area(
    host: GeometryHost,
    face: Face,
    opening: FamilyInstance,
    thickness: float,
    options: GeometryOptions,
    use_boolean: bool,
) -> float:
    outcome = resolve_solid(host, opening, options)
    if not outcome.ok:
        return z_overlap_area(host, face, opening)
    solid = outcome.value
    if solid is None:
        return 0.0
    if not use_boolean:
        return z_overlap_area(host, face, opening)

    probe = extrude_face(face, thickness)
    if is_degenerate_volume(probe.volume):
        return z_overlap_area(host, face, opening)
    try:
        remainder = host.boolean_operation(probe, solid, BooleanOp.DIFFERENCE)
    except Exception as exc:  # host boolean is a black box
        logger.debug("Boolean subtraction of opening %s failed: %s", opening.id, exc)
        return z_overlap_area(host, face, opening)
    if remainder is None or is_degenerate_volume(remainder.volume):
        return z_overlap_area(host, face, opening)

    before = matching_faces_area(probe, face.normal)
    after = matching_faces_area(remainder, face.normal)
    return max(0.0, before - after)


def z_overlap_area(host: GeometryHost, face: Face, opening: FamilyInstance) -> float:
    """Opening width times the overlap of its bounding-box Z range with the face."""
    box = opening.bounding_box
    if box is None:
        return 0.0
    face_lo, face_hi = face.z_range()
    overlap = min(box.max[2], face_hi) - max(box.min[2], face_lo)
    if overlap <= 0.0:
        return 0.0
    return opening_width(opening, host) * overlap


__all__ = ["OpeningRegistry", "net_wall_face_area", "z_overlap_area"]
