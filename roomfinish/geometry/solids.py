"""Prism-union solids.

A :class:`Solid` is a union of vertical prisms (a plan footprint extruded
between two elevations). Solids are kept in slab form: the prisms are
disjoint z-slabs, each with a single footprint, and stacked slabs with equal
footprints are merged. Every boolean operation of the kernel preserves this
form, which keeps face extraction exact.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from shapely import affinity
from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry import box as shapely_box
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from roomfinish.geometry.contract import AREA_TOLERANCE, Z_TOLERANCE


Point3D = Tuple[float, float, float]


def polygon_parts(geom: BaseGeometry | None) -> List[Polygon]:
    """Return the non-empty polygonal parts of any shapely geometry."""
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom] if geom.area > AREA_TOLERANCE else []
    parts: List[Polygon] = []
    for sub in getattr(geom, "geoms", ()):
        parts.extend(polygon_parts(sub))
    return parts


def as_area(geom: BaseGeometry | None) -> Polygon | MultiPolygon:
    """Drop lines and points from an overlay result and return its area part."""
    parts = polygon_parts(geom)
    if not parts:
        return Polygon()
    if len(parts) == 1:
        return parts[0]
    merged = unary_union(parts)
    if isinstance(merged, (Polygon, MultiPolygon)):
        return merged
    return MultiPolygon(polygon_parts(merged))


def merge_levels(values: Iterable[float], tolerance: float = Z_TOLERANCE) -> List[float]:
    """Sort elevations and collapse the ones closer than ``tolerance``."""
    levels: List[float] = []
    for value in sorted(float(v) for v in values):
        if not levels or value - levels[-1] > tolerance:
            levels.append(value)
    return levels


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounding box."""

    min: Point3D
    max: Point3D

    @property
    def extent(self) -> Point3D:
        return (
            abs(self.max[0] - self.min[0]),
            abs(self.max[1] - self.min[1]),
            abs(self.max[2] - self.min[2]),
        )

    @property
    def z_range(self) -> Tuple[float, float]:
        return (self.min[2], self.max[2])

    def intersects(self, other: "BoundingBox", tolerance: float = 0.0) -> bool:
        """Inclusive overlap test; touching boxes intersect."""
        return all(
            self.min[i] <= other.max[i] + tolerance and other.min[i] <= self.max[i] + tolerance
            for i in range(3)
        )

    def union(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(
            tuple(min(a, b) for a, b in zip(self.min, other.min)),  # type: ignore[arg-type]
            tuple(max(a, b) for a, b in zip(self.max, other.max)),  # type: ignore[arg-type]
        )

    def plan_polygon(self) -> Polygon:
        return shapely_box(self.min[0], self.min[1], self.max[0], self.max[1])


@dataclass(frozen=True)
class Prism:
    footprint: Polygon | MultiPolygon
    z_min: float
    z_max: float

    @property
    def height(self) -> float:
        return self.z_max - self.z_min

    @property
    def volume(self) -> float:
        return float(self.footprint.area) * self.height

    def covers(self, z_lo: float, z_hi: float, tolerance: float = Z_TOLERANCE) -> bool:
        return self.z_min <= z_lo + tolerance and self.z_max >= z_hi - tolerance


class Solid:
    """Union of vertical prisms held as disjoint z-slabs."""

    __slots__ = ("_slabs",)

    def __init__(self, prisms: Iterable[Prism] = ()) -> None:
        self._slabs: Tuple[Prism, ...] = tuple(_to_slabs(prisms))

    @classmethod
    def extrusion(cls, footprint: Polygon | MultiPolygon, z_min: float, z_max: float) -> "Solid":
        lo, hi = sorted((float(z_min), float(z_max)))
        return cls([Prism(footprint, lo, hi)])

    @classmethod
    def box(cls, min_xyz: Sequence[float], max_xyz: Sequence[float]) -> "Solid":
        footprint = shapely_box(min_xyz[0], min_xyz[1], max_xyz[0], max_xyz[1])
        return cls.extrusion(footprint, min_xyz[2], max_xyz[2])

    @property
    def prisms(self) -> Tuple[Prism, ...]:
        return self._slabs

    @property
    def volume(self) -> float:
        return sum(slab.volume for slab in self._slabs)

    @property
    def is_empty(self) -> bool:
        return not self._slabs

    @property
    def levels(self) -> List[float]:
        values: List[float] = []
        for slab in self._slabs:
            values.extend((slab.z_min, slab.z_max))
        return merge_levels(values)

    @property
    def bounding_box(self) -> BoundingBox | None:
        if not self._slabs:
            return None
        min_x = min(slab.footprint.bounds[0] for slab in self._slabs)
        min_y = min(slab.footprint.bounds[1] for slab in self._slabs)
        max_x = max(slab.footprint.bounds[2] for slab in self._slabs)
        max_y = max(slab.footprint.bounds[3] for slab in self._slabs)
        return BoundingBox(
            (min_x, min_y, self._slabs[0].z_min),
            (max_x, max_y, self._slabs[-1].z_max),
        )

    def footprint_between(self, z_lo: float, z_hi: float) -> Polygon | MultiPolygon:
        """Plan footprint of the slab covering ``[z_lo, z_hi]`` (empty if none)."""
        for slab in self._slabs:
            if slab.covers(z_lo, z_hi):
                return slab.footprint
        return Polygon()

    def transformed(
        self,
        *,
        rotation_deg: float = 0.0,
        translation: Point3D = (0.0, 0.0, 0.0),
    ) -> "Solid":
        """Rotate about the Z axis through the origin, then translate."""
        dx, dy, dz = translation
        prisms = []
        for slab in self._slabs:
            footprint = slab.footprint
            if rotation_deg:
                footprint = affinity.rotate(footprint, rotation_deg, origin=(0.0, 0.0))
            if dx or dy:
                footprint = affinity.translate(footprint, dx, dy)
            prisms.append(Prism(footprint, slab.z_min + dz, slab.z_max + dz))
        return Solid(prisms)

    def __repr__(self) -> str:
        return f"Solid(slabs={len(self._slabs)}, volume={self.volume:.6g})"


@dataclass(frozen=True)
class GeometryInstance:
    """Symbol geometry placed by a rotation about Z and a translation."""

    symbol_geometry: Tuple[Solid, ...]
    rotation_deg: float = 0.0
    translation: Point3D = (0.0, 0.0, 0.0)

    def instance_geometry(self) -> List[Solid]:
        return [
            solid.transformed(rotation_deg=self.rotation_deg, translation=self.translation)
            for solid in self.symbol_geometry
        ]


def _to_slabs(prisms: Iterable[Prism]) -> List[Prism]:
    usable = [
        p for p in prisms
        if p.footprint is not None and not p.footprint.is_empty
        and p.footprint.area > AREA_TOLERANCE and p.height > Z_TOLERANCE
    ]
    if not usable:
        return []
    levels = merge_levels(v for p in usable for v in (p.z_min, p.z_max))
    slabs: List[Prism] = []
    for z_lo, z_hi in zip(levels, levels[1:]):
        footprints = [p.footprint for p in usable if p.covers(z_lo, z_hi)]
        if not footprints:
            continue
        footprint = as_area(unary_union(footprints)) if len(footprints) > 1 else as_area(footprints[0])
        if footprint.is_empty:
            continue
        slabs.append(Prism(footprint, z_lo, z_hi))
    return _merge_stacked(slabs)


def _same_footprint(a: BaseGeometry, b: BaseGeometry) -> bool:
    scale = max(1.0, float(a.area), float(b.area))
    return float(a.symmetric_difference(b).area) <= AREA_TOLERANCE * scale


def _merge_stacked(slabs: List[Prism]) -> List[Prism]:
    merged: List[Prism] = []
    for slab in slabs:
        if merged:
            prev = merged[-1]
            if math.isclose(prev.z_max, slab.z_min, abs_tol=Z_TOLERANCE) and _same_footprint(prev.footprint, slab.footprint):
                merged[-1] = Prism(prev.footprint, prev.z_min, slab.z_max)
                continue
        merged.append(slab)
    return merged


__all__ = [
    "BoundingBox",
    "GeometryInstance",
    "Prism",
    "Solid",
    "as_area",
    "merge_levels",
    "polygon_parts",
]
