"""Geometry host abstraction consumed by the quantity engine."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Iterable, List, Protocol, Sequence

from roomfinish.geometry.booleans import BooleanOp
from roomfinish.geometry.solids import BoundingBox, Solid
from roomfinish.host.elements import (
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
from roomfinish.units import Unit


class Transaction(Protocol):
    name: str

    def regenerate(self) -> None:
        ...


class GeometryHost(Protocol):
    """Document plus solid modeller the engine runs against.

    Every call is expected on the host's single geometry context; the engine
    itself takes no locks.
    """

    length_unit: Unit

    def rooms(self) -> List[Room]:  # enumeration order is preserved in results
        ...

    def get_element(self, element_id: ElementId) -> Element | None:
        ...

    def boundary_loops(self, room: Room, location: BoundaryLocation) -> List[List[BoundarySegment]]:
        ...

    def calculate_spatial_geometry(self, room: Room) -> SpatialGeometry:
        ...

    def geometry(self, element: Element, options: GeometryOptions) -> Sequence[GeometryObject]:
        ...

    def boolean_operation(self, a: Solid, b: Solid, op: BooleanOp) -> Solid:
        ...

    def collect_instances(self, categories: Iterable[Category]) -> List[FamilyInstance]:
        ...

    def collect_walls(self, bbox: BoundingBox | None = None) -> List[Wall]:
        ...

    def transaction(self, name: str) -> AbstractContextManager[Transaction]:
        ...


__all__ = ["GeometryHost", "Transaction"]
