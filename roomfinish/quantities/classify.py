"""Tag the host element of a boundary face as wall, column or other."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Sequence

from shapely.geometry import MultiPolygon, Polygon
from shapely.ops import unary_union

from roomfinish.host.elements import COLUMN_CATEGORIES, Category, Element, ElementId, SubFace, Wall
from roomfinish.host.protocol import GeometryHost


class HostKind(str, Enum):
    WALL = "wall"
    COLUMN = "column"
    OTHER = "other"


@dataclass(frozen=True)
class BoundaryHost:
    kind: HostKind
    element: Element | None
    area: float = 0.0  # summed subface area of this host on the face
    region: Polygon | MultiPolygon | None = field(default=None, compare=False)

    @property
    def element_id(self) -> ElementId | None:
        return None if self.element is None else self.element.id


def classify_element(element: Element | None) -> HostKind:
    if element is None:
        return HostKind.OTHER
    if isinstance(element, Wall) or element.category is Category.WALLS:
        return HostKind.WALL
    if element.category in COLUMN_CATEGORIES:
        return HostKind.COLUMN
    return HostKind.OTHER


def face_hosts(host: GeometryHost, subfaces: Sequence[SubFace]) -> List[BoundaryHost]:
    """Distinct hosts of one face in first-seen order, with their subface area and region."""
    areas: Dict[ElementId, float] = {}
    regions: Dict[ElementId, List[Polygon]] = {}
    for subface in subfaces:
        areas[subface.element_id] = areas.get(subface.element_id, 0.0) + subface.area
        if subface.region is not None:
            regions.setdefault(subface.element_id, []).append(subface.region)
    hosts = []
    for element_id, area in areas.items():
        element = host.get_element(element_id)
        parts = regions.get(element_id)
        region = unary_union(parts) if parts else None
        hosts.append(BoundaryHost(classify_element(element), element, area, region))
    return hosts


__all__ = ["BoundaryHost", "HostKind", "classify_element", "face_hosts"]
