"""Simple Input Models for Model Documents

These dataclasses provide a clean, simple interface for describing walls,
openings, columns and rooms in metres. :func:`build_document` converts them
into the element model of a :class:`ModelDocument` in any length unit.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from shapely.geometry import LineString, Point, Polygon
from shapely.ops import substring

from roomfinish.geometry.solids import GeometryInstance, Solid
from roomfinish.host.document import ModelDocument
from roomfinish.host.elements import (
    Category,
    ElementType,
    FamilyInstance,
    Parameter,
    Room,
    StorageType,
    Wall,
)
from roomfinish.units import Unit, convert


@dataclass
class Point2D:
    """2D coordinate point."""
    x: float
    y: float

    def to_tuple(self) -> Tuple[float, float]:
        """Convert to tuple (x, y)."""
        return (self.x, self.y)


@dataclass
class WallSpec:
    """Simple wall definition.

    Attributes:
        id: Unique identifier for the wall
        start_point: Starting point of the wall axis
        end_point: Ending point of the wall axis
        height: Wall height in meters
        thickness: Wall thickness in meters
        via_points: Intermediate axis points for bent walls (default: none)
        base_elevation: Elevation of the wall base in meters (default: 0.0)
        room_bounding: Whether the wall bounds rooms (default: True)
        name: Wall name (default: "Wall")
    """
    id: str
    start_point: Point2D
    end_point: Point2D
    height: float
    thickness: float
    via_points: List[Point2D] = field(default_factory=list)
    base_elevation: float = 0.0
    room_bounding: bool = True
    name: str = "Wall"

    @property
    def axis_line(self) -> List[Tuple[float, float]]:
        """Get wall axis as list of tuples."""
        points = [self.start_point, *self.via_points, self.end_point]
        return [p.to_tuple() for p in points]

    @property
    def length(self) -> float:
        """Length of the wall axis."""
        return LineString(self.axis_line).length


@dataclass
class OpeningSpec:
    """Opening hosted on a wall.

    Attributes:
        id: Unique identifier for the opening
        wall_id: ID of the host wall
        position_along_wall: Distance from the wall start to the opening's near edge in meters
        width: Opening width in meters
        height: Opening height in meters
        sill_height: Height of the opening's bottom above the wall base in meters
        dimension_source: Where width/height are recorded: "type", "instance",
            "rough" or "none" (geometry only)
        room / from_room / to_room: Related room ids; all unset means "detect
            from geometry"
        cuts_room_faces: Whether the opening silhouette is carved into the
            adjacent room faces
    """
    id: str
    wall_id: str
    position_along_wall: float
    width: float = 0.9
    height: float = 2.0
    sill_height: float = 0.0
    dimension_source: str = "type"
    room: Optional[str] = None
    from_room: Optional[str] = None
    to_room: Optional[str] = None
    cuts_room_faces: bool = False
    name: str = ""


@dataclass
class DoorSpec(OpeningSpec):
    """Door definition (default: 0.9 x 2.0 at floor level)."""


@dataclass
class WindowSpec(OpeningSpec):
    """Window definition (default: 1.0 x 1.2 with a 0.9 sill)."""
    width: float = 1.0
    height: float = 1.2
    sill_height: float = 0.9


@dataclass
class ColumnSpec:
    """Rectangular column centred on ``center``.

    Attributes:
        width: Extent along the local X axis in meters
        depth: Extent along the local Y axis in meters
        rotation_deg: Rotation about the column axis in degrees
        structural: Structural (True) or architectural (False) column
    """
    id: str
    center: Point2D
    width: float
    depth: float
    height: float
    base_elevation: float = 0.0
    rotation_deg: float = 0.0
    structural: bool = False
    room_bounding: bool = True
    name: str = "Column"


@dataclass
class SpaceSpec:
    """Simple space (room) definition.

    Either ``footprint_points`` or ``seed_point`` must be given; a seed point
    makes the room fill the region enclosed by the room-bounding walls
    around it.

    Attributes:
        fields: Extra room parameters, name -> storage ("double" or "string")
    """
    id: str
    height: float
    footprint_points: Optional[List[Point2D]] = None
    seed_point: Optional[Point2D] = None
    base_elevation: float = 0.0
    name: str = "Raum"
    number: str = ""
    level_name: str = "Level 1"
    fields: Dict[str, str] = field(default_factory=dict)

    @property
    def footprint_tuples(self) -> List[Tuple[float, float]]:
        """Get footprint points as list of tuples."""
        return [p.to_tuple() for p in self.footprint_points or []]


def create_rectangular_footprint(
    min_x: float, min_y: float, max_x: float, max_y: float
) -> List[Point2D]:
    """Create a rectangular footprint from bounding box coordinates.

    Args:
        min_x: Minimum X coordinate
        min_y: Minimum Y coordinate
        max_x: Maximum X coordinate
        max_y: Maximum Y coordinate

    Returns:
        List of Point2D forming a rectangle (counter-clockwise)
    """
    return [
        Point2D(min_x, min_y),
        Point2D(max_x, min_y),
        Point2D(max_x, max_y),
        Point2D(min_x, max_y),
    ]


_DIMENSION_PREFIX = {Category.DOORS: "door", Category.WINDOWS: "window"}


def build_document(
    walls: Sequence[WallSpec],
    spaces: Sequence[SpaceSpec],
    doors: Sequence[DoorSpec] = (),
    windows: Sequence[WindowSpec] = (),
    columns: Sequence[ColumnSpec] = (),
    *,
    length_unit: Unit = Unit.METERS,
    name: str = "model",
) -> ModelDocument:
    """Build a regenerated :class:`ModelDocument` from metre-based specs.

    Coordinates are converted to ``length_unit``, the document's internal
    unit. Every element is tagged with its spec id.
    """
    scale = convert(1.0, Unit.METERS, length_unit)
    doc = ModelDocument(length_unit=length_unit, name=name)
    wall_axes: Dict[str, Tuple[Wall, LineString, float]] = {}
    room_ids: Dict[str, int] = {}

    for spec in walls:
        axis = LineString([(x * scale, y * scale) for x, y in spec.axis_line])
        thickness = spec.thickness * scale
        footprint = axis.buffer(thickness / 2.0, cap_style="flat", join_style="mitre")
        z0 = spec.base_elevation * scale
        wall = Wall(
            id=doc.new_id(),
            name=spec.name,
            tag=spec.id,
            location_line=axis,
            thickness=thickness,
            room_bounding=spec.room_bounding,
            representation=[Solid.extrusion(footprint, z0, z0 + spec.height * scale)],
        )
        doc.add(wall)
        wall_axes[spec.id] = (wall, axis, z0)

    for spec in spaces:
        room = Room(
            id=doc.new_id(),
            name=spec.name,
            tag=spec.id,
            number=spec.number,
            level_name=spec.level_name,
            base_elevation=spec.base_elevation * scale,
            height=spec.height * scale,
        )
        if spec.footprint_points:
            room.footprint = Polygon([(x * scale, y * scale) for x, y in spec.footprint_tuples])
        if spec.seed_point is not None:
            room.location = Point(spec.seed_point.x * scale, spec.seed_point.y * scale)
        for field_name, storage in spec.fields.items():
            room.parameters[field_name] = Parameter(field_name, storage_type=StorageType(storage))
        doc.add(room)
        room_ids[spec.id] = room.id

    for category, specs in ((Category.DOORS, doors), (Category.WINDOWS, windows)):
        for spec in specs:
            host, axis, z0 = wall_axes[spec.wall_id]
            start = spec.position_along_wall * scale
            span = substring(axis, start, start + spec.width * scale)
            footprint = span.buffer(host.thickness / 2.0, cap_style="flat", join_style="mitre")
            bottom = z0 + spec.sill_height * scale
            opening = FamilyInstance(
                id=doc.new_id(),
                category=category,
                name=spec.name or spec.id,
                tag=spec.id,
                host_id=host.id,
                room_id=room_ids.get(spec.room) if spec.room else None,
                from_room_id=room_ids.get(spec.from_room) if spec.from_room else None,
                to_room_id=room_ids.get(spec.to_room) if spec.to_room else None,
                cuts_room_faces=spec.cuts_room_faces,
                room_bounding=False,
                representation=[Solid.extrusion(footprint, bottom, bottom + spec.height * scale)],
            )
            _record_dimensions(doc, opening, spec, scale)
            doc.add(opening)

    for spec in columns:
        half_w, half_d = spec.width * scale / 2.0, spec.depth * scale / 2.0
        symbol = Solid.box((-half_w, -half_d, 0.0), (half_w, half_d, spec.height * scale))
        column = FamilyInstance(
            id=doc.new_id(),
            category=Category.STRUCTURAL_COLUMNS if spec.structural else Category.COLUMNS,
            name=spec.name,
            tag=spec.id,
            room_bounding=spec.room_bounding,
            representation=[
                GeometryInstance(
                    (symbol,),
                    rotation_deg=spec.rotation_deg,
                    translation=(spec.center.x * scale, spec.center.y * scale, spec.base_elevation * scale),
                )
            ],
        )
        doc.add(column)

    doc.assign_opening_rooms()
    return doc


def _record_dimensions(doc: ModelDocument, opening: FamilyInstance, spec: OpeningSpec, scale: float) -> None:
    prefix = _DIMENSION_PREFIX[opening.category]
    width, height = spec.width * scale, spec.height * scale
    opening.element_type = ElementType(id=doc.new_id(), name=f"{prefix} {spec.width:g}x{spec.height:g}")
    if spec.dimension_source == "type":
        target = opening.element_type.parameters
    elif spec.dimension_source in ("instance", "rough"):
        target = opening.parameters
    else:
        return
    if spec.dimension_source == "rough":
        prefix = "rough"
    target[f"{prefix}_width"] = Parameter(f"{prefix}_width", width)
    target[f"{prefix}_height"] = Parameter(f"{prefix}_height", height)


__all__ = [
    "ColumnSpec",
    "DoorSpec",
    "OpeningSpec",
    "Point2D",
    "SpaceSpec",
    "WallSpec",
    "WindowSpec",
    "build_document",
    "create_rectangular_footprint",
]
