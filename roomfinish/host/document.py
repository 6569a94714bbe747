"""In-memory model document implementing :class:`GeometryHost`."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from roomfinish.exceptions import DocumentError, GeometryExtractionError
from roomfinish.geometry.booleans import BooleanOp, boolean
from roomfinish.geometry.contract import BOUNDARY_SNAP_TOLERANCE
from roomfinish.geometry.faces import solid_faces
from roomfinish.geometry.solids import BoundingBox, Solid
from roomfinish.host.elements import (
    COLUMN_CATEGORIES,
    OPENING_CATEGORIES,
    BoundaryLocation,
    BoundarySegment,
    Category,
    Element,
    ElementId,
    FamilyInstance,
    GeometryObject,
    GeometryOptions,
    Room,
    SpatialGeometry,
    Wall,
)
from roomfinish.host.spatial import (
    boundary_segments,
    carve_openings,
    element_faces,
    element_plan,
    face_subfaces,
    room_footprint,
)
from roomfinish.units import Unit


logger = logging.getLogger(__name__)


@dataclass
class TransactionRecord:
    name: str
    status: str = "started"
    regenerations: int = 0


@dataclass
class ModelTransaction:
    """Open edit on a :class:`ModelDocument`."""

    name: str
    document: "ModelDocument"
    record: TransactionRecord
    _snapshot: Dict[Tuple[int, str], object] = field(default_factory=dict, repr=False)

    def regenerate(self) -> None:
        self.document.regenerate()
        self.record.regenerations += 1


class ModelDocument:
    """Element store plus the prism solid modeller.

    Rooms get their area and volume from :meth:`regenerate`; every room
    query (boundary loops, spatial geometry) is computed from the current
    element state; room footprints are cached until the next :meth:`add` or
    :meth:`regenerate`.
    """

    def __init__(self, *, length_unit: Unit = Unit.METERS, name: str = "model") -> None:
        self.name = name
        self.length_unit = Unit(length_unit)
        self._elements: Dict[ElementId, Element] = {}
        self._next_id = 1
        self._footprints: Dict[ElementId, object] = {}
        self._active: Optional[ModelTransaction] = None
        self.transactions: List[TransactionRecord] = []

    # ------------------------------------------------------------------ store

    def new_id(self) -> ElementId:
        element_id = self._next_id
        self._next_id += 1
        return element_id

    def add(self, element: Element) -> Element:
        """Store ``element``; cached room footprints are dropped.

        Geometry edited in place on an element already stored is only
        picked up after :meth:`regenerate`.
        """
        if element.id in self._elements:
            raise DocumentError(f"Duplicate element id {element.id}", {"element_id": element.id})
        self._elements[element.id] = element
        self._next_id = max(self._next_id, element.id + 1)
        self._footprints.clear()
        return element

    def get_element(self, element_id: ElementId) -> Element | None:
        return self._elements.get(element_id)

    def by_tag(self, tag: str) -> Element | None:
        return next((e for e in self._elements.values() if e.tag == tag), None)

    def elements(self, category: Category | None = None) -> List[Element]:
        return [e for e in self._elements.values() if category is None or e.category is category]

    def rooms(self) -> List[Room]:
        return [e for e in self._elements.values() if isinstance(e, Room)]

    def collect_instances(self, categories: Iterable[Category]) -> List[FamilyInstance]:
        wanted = set(categories)
        return [
            e for e in self._elements.values()
            if isinstance(e, FamilyInstance) and e.category in wanted
        ]

    def collect_walls(self, bbox: BoundingBox | None = None) -> List[Wall]:
        walls = [e for e in self._elements.values() if isinstance(e, Wall)]
        if bbox is None:
            return walls
        found = []
        for wall in walls:
            wall_box = wall.bounding_box
            if wall_box is not None and wall_box.intersects(bbox):
                found.append(wall)
        return found

    # --------------------------------------------------------------- geometry

    def geometry(self, element: Element, options: GeometryOptions) -> Sequence[GeometryObject]:
        if element.representation is None:
            raise GeometryExtractionError(
                f"Element {element.id} has no geometry representation",
                {"element_id": element.id, "detail_level": options.detail_level.value},
            )
        return list(element.representation)

    def boolean_operation(self, a: Solid, b: Solid, op: BooleanOp) -> Solid:
        return boolean(a, b, op)

    def bounding_elements(self, room: Room) -> List[Element]:
        """Room-bounding columns, then walls, overlapping the room's height band.

        Columns come first so a column face flush with a wall owns its own
        strip of the shared room face and boundary.
        """
        z_lo, z_hi = room.base_elevation, room.base_elevation + room.height
        found = []
        for element in self._elements.values():
            if not element.room_bounding:
                continue
            if element.category is not Category.WALLS and element.category not in COLUMN_CATEGORIES:
                continue
            if not element_plan(element, z_lo, z_hi).is_empty:
                found.append(element)
        found.sort(key=lambda e: e.category not in COLUMN_CATEGORIES)
        return found

    def _footprint(self, room: Room):
        footprint = self._footprints.get(room.id)
        if footprint is None:
            footprint = room_footprint(room, self.bounding_elements(room))
            self._footprints[room.id] = footprint
        return footprint

    def boundary_loops(self, room: Room, location: BoundaryLocation) -> List[List[BoundarySegment]]:
        if BoundaryLocation(location) is not BoundaryLocation.FINISH:
            raise GeometryExtractionError(
                f"Boundary location {location!s} is not supported",
                {"room_id": room.id},
            )
        footprint = self._footprint(room)
        z_range = (room.base_elevation, room.base_elevation + room.height)
        return boundary_segments(footprint, self.bounding_elements(room), z_range)

    def calculate_spatial_geometry(self, room: Room) -> SpatialGeometry:
        if room.height <= 0.0:
            raise GeometryExtractionError(f"Room {room.id} has no height", {"room_id": room.id})
        footprint = self._footprint(room)
        solid = Solid.extrusion(footprint, room.base_elevation, room.base_elevation + room.height)
        candidates = element_faces(self.bounding_elements(room))
        cutters = [
            o for o in self.collect_instances(OPENING_CATEGORIES)
            if o.cuts_room_faces and room.id in (o.room_id, o.from_room_id, o.to_room_id)
        ]

        faces, subfaces = [], []
        for face in solid_faces(solid):
            info = face_subfaces(face, candidates)
            hosts = {s.element_id for s in info}
            cutting = [o for o in cutters if o.host_id in hosts]
            if not cutting:
                faces.append(face)
                subfaces.append(info)
                continue
            for part in carve_openings(face, cutting):
                faces.append(part)
                subfaces.append(face_subfaces(part, candidates))
        return SpatialGeometry(solid=solid, faces=faces, subfaces=subfaces)

    def regenerate(self) -> None:
        """Recompute room footprints, areas and volumes from the current elements."""
        self._footprints.clear()
        for room in self.rooms():
            try:
                footprint = self._footprint(room)
            except GeometryExtractionError as exc:
                logger.warning("Room %s (%s) is not placed: %s", room.id, room.name, exc.message)
                room.area = 0.0
                room.volume = 0.0
                continue
            room.area = float(footprint.area)
            room.volume = room.area * max(room.height, 0.0)

    def assign_opening_rooms(self, tolerance: float = BOUNDARY_SNAP_TOLERANCE) -> None:
        """Relate unassigned doors and windows to the rooms they touch.

        A door touching two rooms gets them as from/to rooms; any opening
        touching one room gets it as its direct room.
        """
        self.regenerate()
        placed = [(room, self._footprints.get(room.id)) for room in self.rooms()]
        for opening in self.collect_instances(OPENING_CATEGORIES):
            if opening.room_id or opening.from_room_id or opening.to_room_id:
                continue
            touching = []
            for room, footprint in placed:
                if footprint is None:
                    continue
                z_lo, z_hi = room.base_elevation, room.base_elevation + room.height
                plan = element_plan(opening, z_lo, z_hi)
                if not plan.is_empty and plan.distance(footprint) <= tolerance:
                    touching.append(room.id)
            if len(touching) >= 2 and opening.category is Category.DOORS:
                opening.from_room_id, opening.to_room_id = touching[0], touching[1]
            elif touching:
                opening.room_id = touching[0]

    # ----------------------------------------------------------- transactions

    @contextmanager
    def transaction(self, name: str) -> Iterator[ModelTransaction]:
        """Open a single edit; it commits on normal exit and rolls back parameter edits otherwise."""
        if self._active is not None:
            raise DocumentError(
                f"Transaction {name!r} started while {self._active.name!r} is open",
                {"open": self._active.name},
            )
        record = TransactionRecord(name)
        tx = ModelTransaction(name, self, record, self._snapshot_parameters())
        self.transactions.append(record)
        self._active = tx
        try:
            yield tx
        except BaseException:
            self._restore_parameters(tx._snapshot)
            record.status = "rolled_back"
            raise
        else:
            record.status = "committed"
        finally:
            self._active = None

    @property
    def in_transaction(self) -> bool:
        return self._active is not None

    def _snapshot_parameters(self) -> Dict[Tuple[int, str], object]:
        return {
            (element.id, name): parameter.value
            for element in self._elements.values()
            for name, parameter in element.parameters.items()
        }

    def _restore_parameters(self, snapshot: Dict[Tuple[int, str], object]) -> None:
        for (element_id, name), value in snapshot.items():
            self._elements[element_id].parameters[name].value = value


__all__ = ["ModelDocument", "ModelTransaction", "TransactionRecord"]
