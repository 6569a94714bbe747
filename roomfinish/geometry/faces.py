"""Planar faces of prism-union solids and single-sided face extrusion."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Iterator, List, Tuple

import numpy as np
from shapely.geometry import Polygon
from shapely.geometry import box as shapely_box
from shapely.geometry.polygon import orient
from shapely.ops import unary_union

from roomfinish.geometry.contract import NORMAL_DOT_TOLERANCE, PLANE_OFFSET_TOLERANCE, Z_TOLERANCE
from roomfinish.geometry.solids import Point3D, Prism, Solid, merge_levels, polygon_parts


@dataclass(frozen=True)
class Face:
    """A planar face.

    ``region`` is expressed in the plane frame: ``world = origin + u * u_axis
    + v * v_axis``. Vertical faces use the horizontal tangent as ``u_axis``
    and world Z as ``v_axis``, so ``v`` is an elevation.
    """

    region: Polygon
    normal: Point3D
    origin: Point3D
    u_axis: Point3D
    v_axis: Point3D

    @property
    def area(self) -> float:
        return float(self.region.area)

    @property
    def edge_loop_count(self) -> int:
        return 1 + len(self.region.interiors)

    @property
    def is_vertical(self) -> bool:
        return abs(self.normal[2]) < NORMAL_DOT_TOLERANCE

    @property
    def plane_offset(self) -> float:
        return float(np.dot(self.normal, self.origin))

    def compute_normal(self, uv: Tuple[float, float] = (0.5, 0.5)) -> np.ndarray:
        """Unit normal at a parametric point; constant for planar faces."""
        return np.asarray(self.normal, dtype=float)

    def to_world(self, u: float, v: float) -> np.ndarray:
        return (
            np.asarray(self.origin, dtype=float)
            + u * np.asarray(self.u_axis, dtype=float)
            + v * np.asarray(self.v_axis, dtype=float)
        )

    def edge_points(self) -> np.ndarray:
        """World coordinates of every vertex on every edge loop."""
        rings = [self.region.exterior, *self.region.interiors]
        coords = np.array([pt for ring in rings for pt in ring.coords], dtype=float)
        if coords.size == 0:
            return np.zeros((0, 3))
        return (
            np.asarray(self.origin, dtype=float)
            + coords[:, :1] * np.asarray(self.u_axis, dtype=float)
            + coords[:, 1:2] * np.asarray(self.v_axis, dtype=float)
        )

    def clipped(self, region) -> List["Face"]:
        """Parts of this face inside ``region`` (plane frame), same plane."""
        return [replace(self, region=part) for part in polygon_parts(self.region.intersection(region))]

    def z_range(self) -> Tuple[float, float]:
        points = self.edge_points()
        if not len(points):
            return (0.0, 0.0)
        return (float(points[:, 2].min()), float(points[:, 2].max()))


@dataclass
class _PlaneGroup:
    nx: float
    ny: float
    offset: float
    rects: List[Polygon] = field(default_factory=list)

    def accepts(self, nx: float, ny: float, offset: float) -> bool:
        if self.nx * nx + self.ny * ny < 1.0 - NORMAL_DOT_TOLERANCE:
            return False
        return abs(self.offset - offset) <= PLANE_OFFSET_TOLERANCE * max(1.0, abs(offset))


def solid_faces(solid: Solid) -> List[Face]:
    """Return the boundary faces of ``solid``.

    Coplanar pieces are merged, so a face with a hole through it comes back
    as one face with two edge loops.
    """
    faces = _vertical_faces(solid)
    faces.extend(_horizontal_faces(solid))
    return faces


def _vertical_faces(solid: Solid) -> List[Face]:
    groups: List[_PlaneGroup] = []
    for slab in solid.prisms:
        for polygon in polygon_parts(slab.footprint):
            polygon = orient(polygon, sign=1.0)
            for ring in [polygon.exterior, *polygon.interiors]:
                coords = list(ring.coords)
                for (x1, y1), (x2, y2) in zip(coords, coords[1:]):
                    dx, dy = x2 - x1, y2 - y1
                    length = math.hypot(dx, dy)
                    if length <= Z_TOLERANCE:
                        continue
                    # exterior CCW, holes CW: the outward side is always on the right
                    nx, ny = dy / length, -dx / length
                    offset = nx * x1 + ny * y1
                    group = next((g for g in groups if g.accepts(nx, ny, offset)), None)
                    if group is None:
                        group = _PlaneGroup(nx, ny, offset)
                        groups.append(group)
                    tx, ty = -group.ny, group.nx
                    u1 = tx * x1 + ty * y1
                    u2 = tx * x2 + ty * y2
                    group.rects.append(shapely_box(min(u1, u2), slab.z_min, max(u1, u2), slab.z_max))

    faces: List[Face] = []
    for group in groups:
        region = unary_union(group.rects)
        for part in polygon_parts(region):
            faces.append(
                Face(
                    region=part,
                    normal=(group.nx, group.ny, 0.0),
                    origin=(group.nx * group.offset, group.ny * group.offset, 0.0),
                    u_axis=(-group.ny, group.nx, 0.0),
                    v_axis=(0.0, 0.0, 1.0),
                )
            )
    return faces


def _horizontal_faces(solid: Solid) -> List[Face]:
    faces: List[Face] = []
    slabs = solid.prisms
    for z in solid.levels:
        below = [s.footprint for s in slabs if math.isclose(s.z_max, z, abs_tol=Z_TOLERANCE)]
        above = [s.footprint for s in slabs if math.isclose(s.z_min, z, abs_tol=Z_TOLERANCE)]
        below_area = unary_union(below) if below else Polygon()
        above_area = unary_union(above) if above else Polygon()
        for part in polygon_parts(below_area.difference(above_area)):
            faces.append(_horizontal_face(part, z, up=True))
        for part in polygon_parts(above_area.difference(below_area)):
            faces.append(_horizontal_face(part, z, up=False))
    return faces


def _horizontal_face(region: Polygon, z: float, *, up: bool) -> Face:
    return Face(
        region=region,
        normal=(0.0, 0.0, 1.0 if up else -1.0),
        origin=(0.0, 0.0, z),
        u_axis=(1.0, 0.0, 0.0),
        v_axis=(0.0, 1.0, 0.0),
    )


def face_rectangles(region: Polygon) -> Iterator[Tuple[float, float, float, float]]:
    """Split an axis-aligned orthogonal region into ``(u0, v0, u1, v1)`` rectangles.

    Faces of prism solids are always orthogonal in their plane frame, so
    every vertical strip between consecutive vertex ``u`` values cuts the
    region into exact rectangles.
    """
    rings = [region.exterior, *region.interiors]
    us = merge_levels(x for ring in rings for x, _ in ring.coords)
    _, v_min, _, v_max = region.bounds
    for u_lo, u_hi in zip(us, us[1:]):
        strip = region.intersection(shapely_box(u_lo, v_min - 1.0, u_hi, v_max + 1.0))
        for part in polygon_parts(strip):
            yield part.bounds


def extrude_face(face: Face, thickness: float, *, inward: bool = False) -> Solid:
    """Extrude ``face`` by ``thickness`` along its normal (or against it)."""
    if thickness <= 0.0 or face.area <= 0.0:
        return Solid()
    sign = -1.0 if inward else 1.0
    if not face.is_vertical:
        z = face.origin[2]
        if sign * face.normal[2] > 0.0:
            return Solid.extrusion(face.region, z, z + thickness)
        return Solid.extrusion(face.region, z - thickness, z)

    origin = np.asarray(face.origin[:2], dtype=float)
    tangent = np.asarray(face.u_axis[:2], dtype=float)
    offset = sign * thickness * np.asarray(face.normal[:2], dtype=float)
    prisms = []
    for u0, v0, u1, v1 in face_rectangles(face.region):
        p0 = origin + u0 * tangent
        p1 = origin + u1 * tangent
        quad = Polygon([tuple(p0), tuple(p1), tuple(p1 + offset), tuple(p0 + offset)])
        prisms.append(Prism(quad, v0, v1))
    return Solid(prisms)


def matching_faces_area(solid: Solid, normal) -> float:
    """Total area of the faces of ``solid`` whose normal matches ``normal``."""
    target = np.asarray(normal, dtype=float)
    total = 0.0
    for face in solid_faces(solid):
        if float(np.dot(target, face.normal)) >= 1.0 - NORMAL_DOT_TOLERANCE:
            total += face.area
    return total


__all__ = [
    "Face",
    "extrude_face",
    "face_rectangles",
    "matching_faces_area",
    "solid_faces",
]
