"""Element model shared by every host document implementation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from shapely.geometry import LineString, MultiPolygon, Point, Polygon

from roomfinish.geometry.faces import Face
from roomfinish.geometry.solids import BoundingBox, GeometryInstance, Solid


ElementId = int
GeometryObject = Union[Solid, GeometryInstance]


class Category(str, Enum):
    ROOMS = "rooms"
    WALLS = "walls"
    DOORS = "doors"
    WINDOWS = "windows"
    COLUMNS = "columns"
    STRUCTURAL_COLUMNS = "structural_columns"
    GENERIC = "generic"


OPENING_CATEGORIES: Tuple[Category, ...] = (Category.DOORS, Category.WINDOWS)
COLUMN_CATEGORIES: Tuple[Category, ...] = (Category.COLUMNS, Category.STRUCTURAL_COLUMNS)


class StorageType(str, Enum):
    DOUBLE = "double"
    INTEGER = "integer"
    STRING = "string"


class DetailLevel(str, Enum):
    COARSE = "coarse"
    MEDIUM = "medium"
    FINE = "fine"


class BoundaryLocation(str, Enum):
    FINISH = "finish"
    CENTER = "center"


@dataclass(frozen=True)
class GeometryOptions:
    detail_level: DetailLevel = DetailLevel.FINE


@dataclass
class Parameter:
    """Named value on an element or element type."""

    name: str
    value: float | int | str | None = None
    storage_type: StorageType = StorageType.DOUBLE
    read_only: bool = False

    def as_double(self) -> float | None:
        if self.storage_type is StorageType.STRING or self.value is None:
            return None
        return float(self.value)

    def as_string(self) -> str | None:
        return None if self.value is None else str(self.value)

    def set(self, value: float | int | str) -> bool:
        if self.read_only:
            return False
        if self.storage_type is StorageType.STRING:
            self.value = str(value)
        elif self.storage_type is StorageType.INTEGER:
            self.value = int(value)
        else:
            self.value = float(value)
        return True


@dataclass(eq=False)
class ElementType:
    """Family symbol / type carrying shared parameters."""

    id: ElementId
    name: str = ""
    parameters: Dict[str, Parameter] = field(default_factory=dict)

    def lookup_parameter(self, name: str) -> Parameter | None:
        return self.parameters.get(name)


@dataclass(eq=False)
class Element:
    id: ElementId
    category: Category
    name: str = ""
    tag: str = ""  # source identifier (input id or IFC GlobalId)
    level_name: str = ""
    parameters: Dict[str, Parameter] = field(default_factory=dict)
    element_type: ElementType | None = None
    representation: List[GeometryObject] = field(default_factory=list)
    room_bounding: bool = True

    def lookup_parameter(self, name: str) -> Parameter | None:
        return self.parameters.get(name)

    def solids(self) -> List[Solid]:
        """Every solid of the representation, instance geometry placed."""
        found: List[Solid] = []
        for item in self.representation:
            if isinstance(item, GeometryInstance):
                found.extend(item.instance_geometry())
            else:
                found.append(item)
        return found

    @property
    def bounding_box(self) -> BoundingBox | None:
        box: BoundingBox | None = None
        for solid in self.solids():
            solid_box = solid.bounding_box
            if solid_box is None:
                continue
            box = solid_box if box is None else box.union(solid_box)
        return box

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id}, name={self.name!r})"


@dataclass(eq=False, repr=False)
class Wall(Element):
    category: Category = Category.WALLS
    location_line: LineString | None = None
    thickness: float = 0.0

    def direction_at(self, point: Point | None = None) -> Tuple[float, float] | None:
        """Unit plan direction of the location-line segment nearest ``point``.

        Bent walls have one direction per segment; without a point the first
        segment is used.
        """
        if self.location_line is None:
            return None
        coords = [tuple(c[:2]) for c in self.location_line.coords]
        best: Tuple[float, Tuple[float, float]] | None = None
        for (x1, y1), (x2, y2) in zip(coords, coords[1:]):
            length = math.hypot(x2 - x1, y2 - y1)
            if length <= 0.0:
                continue
            distance = 0.0 if point is None else LineString([(x1, y1), (x2, y2)]).distance(point)
            if best is None or distance < best[0]:
                best = (distance, ((x2 - x1) / length, (y2 - y1) / length))
            if point is None:
                break
        return None if best is None else best[1]


@dataclass(eq=False, repr=False)
class FamilyInstance(Element):
    """Door, window, column or generic family instance."""

    host_id: Optional[ElementId] = None
    room_id: Optional[ElementId] = None
    from_room_id: Optional[ElementId] = None
    to_room_id: Optional[ElementId] = None
    cuts_room_faces: bool = False


@dataclass(eq=False, repr=False)
class Room(Element):
    category: Category = Category.ROOMS
    number: str = ""
    location: Point | None = None
    footprint: Polygon | MultiPolygon | None = None
    base_elevation: float = 0.0
    height: float = 0.0
    area: float = 0.0
    volume: float = 0.0
    room_bounding: bool = False


@dataclass(frozen=True)
class BoundarySegment:
    curve: LineString
    element_id: Optional[ElementId]

    @property
    def length(self) -> float:
        return float(self.curve.length)


@dataclass(frozen=True)
class SubFace:
    """Portion of a room face whose surface belongs to ``element_id``.

    ``region`` is the portion in the room face frame, when known.
    """

    element_id: ElementId
    area: float
    region: Polygon | None = field(default=None, compare=False)


@dataclass
class SpatialGeometry:
    """Room solid plus the host elements underlying each of its faces."""

    solid: Solid
    faces: List[Face]
    subfaces: List[List[SubFace]]

    def boundary_face_info(self, face: Face) -> List[SubFace]:
        for candidate, info in zip(self.faces, self.subfaces):
            if candidate is face:
                return list(info)
        return []


__all__ = [
    "BoundaryLocation",
    "BoundarySegment",
    "COLUMN_CATEGORIES",
    "Category",
    "DetailLevel",
    "Element",
    "ElementId",
    "ElementType",
    "FamilyInstance",
    "GeometryObject",
    "GeometryOptions",
    "OPENING_CATEGORIES",
    "Parameter",
    "Room",
    "SpatialGeometry",
    "StorageType",
    "SubFace",
    "Wall",
]
