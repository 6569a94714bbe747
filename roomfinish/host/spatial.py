"""Room volumes, finish boundaries and face-to-element mapping.

The in-memory document derives everything a room exposes to the quantity
engine from the room-bounding walls and columns around it: the room
footprint (explicit, or the enclosed region around a seed point), the
finish-face boundary loops with their host element per segment, and the
room solid with the element underlying every part of each face.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

from shapely import affinity
from shapely.geometry import LineString, MultiPolygon, Point, Polygon
from shapely.geometry import box as shapely_box
from shapely.geometry.polygon import orient
from shapely.ops import unary_union

from roomfinish.exceptions import GeometryExtractionError
from roomfinish.geometry.contract import (
    BOUNDARY_SNAP_TOLERANCE,
    MIN_SUBFACE_AREA,
    NORMAL_DOT_TOLERANCE,
    PLANE_OFFSET_TOLERANCE,
    Z_TOLERANCE,
)
from roomfinish.geometry.faces import Face, solid_faces
from roomfinish.geometry.solids import as_area, merge_levels, polygon_parts
from roomfinish.host.elements import BoundarySegment, Element, ElementId, FamilyInstance, Room, SubFace


logger = logging.getLogger(__name__)

ElementFaces = Tuple[ElementId, List[Face]]


def _repair_polygon(geom):
    """Repair an invalid footprint with the buffer(0) trick."""
    if geom is None or geom.is_empty or geom.is_valid:
        return geom
    repaired = geom.buffer(0)
    return as_area(repaired)


def element_plan(element: Element, z_lo: float, z_hi: float) -> Polygon | MultiPolygon:
    """Plan footprint of the parts of ``element`` overlapping ``[z_lo, z_hi]``."""
    pieces = []
    for solid in element.solids():
        for slab in solid.prisms:
            overlap = min(slab.z_max, z_hi) - max(slab.z_min, z_lo)
            if overlap > Z_TOLERANCE:
                pieces.append(slab.footprint)
    if not pieces:
        return Polygon()
    return as_area(unary_union(pieces))


def room_footprint(room: Room, bounding: Sequence[Element]) -> Polygon | MultiPolygon:
    """Resolve the plan region of ``room``.

    An explicit footprint wins. Otherwise the room is the enclosed region
    around its seed point: a hole of the union of the room-bounding element
    plans, minus any bounding element standing inside it.

    Raises:
        GeometryExtractionError: If the room has neither footprint nor an
            enclosing ring of bounding elements around its seed point.
    """
    if room.footprint is not None:
        footprint = _repair_polygon(room.footprint)
        if footprint.is_empty:
            raise GeometryExtractionError(f"Room {room.id} has an empty footprint", {"room_id": room.id})
        return footprint
    if room.location is None:
        raise GeometryExtractionError(f"Room {room.id} has no footprint and no location", {"room_id": room.id})

    z_lo, z_hi = room.base_elevation, room.base_elevation + room.height
    plans = [element_plan(e, z_lo, z_hi) for e in bounding]
    plans = [p for p in plans if not p.is_empty]
    if not plans:
        raise GeometryExtractionError(f"Room {room.id} is not enclosed", {"room_id": room.id})
    walls_union = unary_union(plans)
    seed = Point(room.location.x, room.location.y)
    for polygon in polygon_parts(walls_union):
        for interior in polygon.interiors:
            candidate = Polygon(interior)
            if not candidate.contains(seed):
                continue
            region = as_area(candidate.difference(walls_union))
            for part in polygon_parts(region):
                if part.covers(seed):
                    return part
    raise GeometryExtractionError(
        f"Room {room.id} is not enclosed",
        {"room_id": room.id, "location": (seed.x, seed.y)},
    )


def boundary_segments(
    footprint: Polygon | MultiPolygon,
    bounding: Sequence[Element],
    z_range: Tuple[float, float],
    tolerance: float = BOUNDARY_SNAP_TOLERANCE,
) -> List[List[BoundarySegment]]:
    """Split every footprint ring into segments tagged with their host element.

    Pieces of the outline that do not lie on any bounding element's plan
    outline (separation lines, open sides) get no host.
    """
    outlines = []
    for element in bounding:
        plan = element_plan(element, *z_range)
        if plan.is_empty:
            continue
        vertices = [pt for part in polygon_parts(plan) for ring in [part.exterior, *part.interiors] for pt in ring.coords]
        outlines.append((element.id, plan.boundary, vertices))

    loops: List[List[BoundarySegment]] = []
    for polygon in polygon_parts(footprint):
        polygon = orient(polygon, sign=1.0)
        for ring in [polygon.exterior, *polygon.interiors]:
            coords = list(ring.coords)
            loop: List[BoundarySegment] = []
            for start, end in zip(coords, coords[1:]):
                loop.extend(_split_edge(start, end, outlines, tolerance))
            if loop:
                loops.append(loop)
    return loops


def _split_edge(start, end, outlines, tolerance: float) -> List[BoundarySegment]:
    line = LineString([start, end])
    length = line.length
    if length <= tolerance:
        return []
    params = [0.0, length]
    for _, _, vertices in outlines:
        for x, y in vertices:
            point = Point(x, y)
            if line.distance(point) <= tolerance:
                s = line.project(point)
                if tolerance < s < length - tolerance:
                    params.append(s)
    cuts = merge_levels(params, tolerance)

    pieces: List[Tuple[float, float, ElementId | None]] = []
    for a, b in zip(cuts, cuts[1:]):
        mid = line.interpolate((a + b) / 2.0)
        host = next((eid for eid, outline, _ in outlines if outline.distance(mid) <= tolerance), None)
        if pieces and pieces[-1][2] == host:
            pieces[-1] = (pieces[-1][0], b, host)
        else:
            pieces.append((a, b, host))
    return [
        BoundarySegment(LineString([line.interpolate(a), line.interpolate(b)]), host)
        for a, b, host in pieces
    ]


def element_faces(elements: Iterable[Element]) -> List[ElementFaces]:
    return [(e.id, [f for solid in e.solids() for f in solid_faces(solid) if f.is_vertical]) for e in elements]


def face_subfaces(face: Face, candidates: Sequence[ElementFaces]) -> List[SubFace]:
    """Portions of ``face`` that coincide with an element face.

    An element face underlies a room face when the two are coplanar with
    opposite normals. Its region is mirrored into the room face frame and
    clipped to the room face; every resulting polygon part is one subface.
    Subfaces never overlap: a part already claimed by an earlier candidate
    is not claimed again, so candidate order decides shared surfaces.
    """
    if not face.is_vertical:
        return []
    offset = face.plane_offset
    found: List[SubFace] = []
    claimed = Polygon()
    for element_id, faces in candidates:
        for other in faces:
            dot = face.normal[0] * other.normal[0] + face.normal[1] * other.normal[1]
            if dot > -1.0 + NORMAL_DOT_TOLERANCE:
                continue
            if abs(offset + other.plane_offset) > PLANE_OFFSET_TOLERANCE * max(1.0, abs(offset)):
                continue
            mirrored = affinity.scale(other.region, xfact=-1.0, yfact=1.0, origin=(0.0, 0.0))
            common = face.region.intersection(mirrored)
            if not claimed.is_empty:
                common = common.difference(claimed)
            for part in polygon_parts(common):
                if part.area > MIN_SUBFACE_AREA:
                    found.append(SubFace(element_id, float(part.area), part))
                    claimed = claimed.union(part)
    return found


def carve_openings(face: Face, openings: Sequence[FamilyInstance], tolerance: float = BOUNDARY_SNAP_TOLERANCE) -> List[Face]:
    """Cut the silhouettes of ``openings`` touching the face plane out of ``face``.

    An opening fully inside the face leaves a hole (a second edge loop); one
    reaching the face edge leaves a notch.
    """
    nx, ny = face.normal[0], face.normal[1]
    tx, ty = face.u_axis[0], face.u_axis[1]
    offset = face.plane_offset
    region = face.region
    for opening in openings:
        for solid in opening.solids():
            for slab in solid.prisms:
                coords = [pt for part in polygon_parts(slab.footprint) for pt in part.exterior.coords]
                if not coords:
                    continue
                signed = [nx * x + ny * y - offset for x, y in coords]
                if min(signed) > tolerance or max(signed) < -tolerance:
                    continue
                us = [tx * x + ty * y for x, y in coords]
                region = region.difference(shapely_box(min(us), slab.z_min, max(us), slab.z_max))
    parts = polygon_parts(region)
    if len(parts) == 1 and parts[0] is face.region:
        return [face]
    return [
        Face(region=part, normal=face.normal, origin=face.origin, u_axis=face.u_axis, v_axis=face.v_axis)
        for part in parts
    ]


__all__ = [
    "boundary_segments",
    "carve_openings",
    "element_faces",
    "element_plan",
    "face_subfaces",
    "room_footprint",
]
