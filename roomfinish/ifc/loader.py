"""Read an IFC file into a :class:`ModelDocument`.

Only vertical ``IfcExtrudedAreaSolid`` bodies are understood (directly or
through ``IfcMappedItem``); that covers the walls, columns, openings and
spaces written by most authoring tools as swept solids. Coordinates stay in
the file's length unit, which becomes the document unit.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import ifcopenshell
import ifcopenshell.util.element as ifc_element_utils
import ifcopenshell.util.placement as ifc_placement
import ifcopenshell.util.unit as ifc_unit
import numpy as np
from shapely.geometry import LineString, Polygon
from shapely.ops import unary_union

from roomfinish.exceptions import ConfigurationError, ModelLoadError
from roomfinish.geometry.solids import GeometryInstance, Solid, as_area
from roomfinish.host.document import ModelDocument
from roomfinish.host.elements import (
    Category,
    ElementType,
    FamilyInstance,
    GeometryObject,
    Parameter,
    Room,
    StorageType,
    Wall,
)
from roomfinish.units import Unit, convert, unit_from_scale


logger = logging.getLogger(__name__)

VERTICAL_TOLERANCE = 1.0e-6
ROOM_CONTACT_TOLERANCE_M = 0.01


def load_ifc(path: Path | str) -> ModelDocument:
    """Open ``path`` and convert it into a regenerated document.

    Raises:
        ModelLoadError: If the file cannot be opened or parsed.
    """
    path = Path(path)
    if not path.exists():
        raise ModelLoadError(f"IFC file not found: {path}", {"path": str(path)})
    try:
        model = ifcopenshell.open(str(path))
    except Exception as exc:  # ifcopenshell raises several unrelated types
        raise ModelLoadError(f"Could not read IFC file {path}: {exc}", {"path": str(path)}) from exc
    return IfcModelLoader(model, name=path.stem).build()


class IfcModelLoader:
    def __init__(self, model: ifcopenshell.file, *, name: str = "model") -> None:
        self.model = model
        self.name = name
        scale = ifc_unit.calculate_unit_scale(model)
        try:
            self.length_unit = unit_from_scale(scale)
            self._to_document = 1.0
        except ConfigurationError:
            logger.warning("Unsupported IFC length unit scale %s, converting to metres", scale)
            self.length_unit = Unit.METERS
            self._to_document = scale
        self.document = ModelDocument(length_unit=self.length_unit, name=name)

    def build(self) -> ModelDocument:
        for wall in self.model.by_type("IfcWall"):
            self._add_wall(wall)
        for column in self.model.by_type("IfcColumn"):
            self._add_column(column)
        for space in self.model.by_type("IfcSpace"):
            self._add_space(space)
        for category, ifc_class in ((Category.DOORS, "IfcDoor"), (Category.WINDOWS, "IfcWindow")):
            for opening in self.model.by_type(ifc_class):
                self._add_opening(opening, category)

        tolerance = convert(ROOM_CONTACT_TOLERANCE_M, Unit.METERS, self.length_unit)
        self.document.assign_opening_rooms(tolerance)
        logger.info(
            "Loaded %s: %d rooms, %d walls, %d openings (%s)",
            self.name,
            len(self.document.rooms()),
            len(self.document.collect_walls()),
            len(self.document.collect_instances((Category.DOORS, Category.WINDOWS))),
            self.length_unit.value,
        )
        return self.document

    # ------------------------------------------------------------- elements

    def _add_wall(self, product) -> None:
        wall = Wall(
            id=product.id(),
            name=product.Name or "",
            tag=product.GlobalId,
            level_name=self._level_name(product),
            location_line=self._axis_line(product),
            representation=self._body(product),
        )
        psets = ifc_element_utils.get_psets(product)
        wall.parameters.update(_pset_parameters(psets))
        footprint = _plan_footprint(wall.representation)
        if wall.location_line is not None and footprint is not None and wall.location_line.length > 0:
            wall.thickness = footprint.area / wall.location_line.length
        self.document.add(wall)

    def _add_column(self, product) -> None:
        psets = ifc_element_utils.get_psets(product)
        load_bearing = bool(psets.get("Pset_ColumnCommon", {}).get("LoadBearing"))
        column = FamilyInstance(
            id=product.id(),
            category=Category.STRUCTURAL_COLUMNS if load_bearing else Category.COLUMNS,
            name=product.Name or "",
            tag=product.GlobalId,
            level_name=self._level_name(product),
            representation=self._body(product),
        )
        self.document.add(column)

    def _add_space(self, product) -> None:
        solids = [s for s in _solids(self._body(product))]
        if not solids:
            logger.warning("Space %s has no extruded body, skipped", product.GlobalId)
            return
        footprint = as_area(unary_union([slab.footprint for s in solids for slab in s.prisms]))
        z_min = min(s.prisms[0].z_min for s in solids)
        z_max = max(s.prisms[-1].z_max for s in solids)
        room = Room(
            id=product.id(),
            name=product.LongName or product.Name or "",
            number=(product.Name or "") if product.LongName else "",
            tag=product.GlobalId,
            level_name=self._level_name(product),
            footprint=footprint,
            base_elevation=z_min,
            height=z_max - z_min,
        )
        room.parameters.update(_pset_parameters(ifc_element_utils.get_psets(product)))
        self.document.add(room)

    def _add_opening(self, product, category: Category) -> None:
        void = _filled_void(product)
        host = _voided_element(void) if void is not None else None
        # the void spans the full wall thickness; door and window bodies often do not
        representation = self._body(void) if void is not None else []
        if not _solids(representation):
            representation = self._body(product)
        opening = FamilyInstance(
            id=product.id(),
            category=category,
            name=product.Name or "",
            tag=product.GlobalId,
            level_name=self._level_name(product),
            host_id=host.id() if host is not None else None,
            room_bounding=False,
            representation=representation,
        )
        prefix = "door" if category is Category.DOORS else "window"
        for attribute, suffix in (("OverallWidth", "width"), ("OverallHeight", "height")):
            value = getattr(product, attribute, None)
            if value:
                opening.parameters[f"{prefix}_{suffix}"] = Parameter(f"{prefix}_{suffix}", float(value) * self._to_document)
        element_type = ifc_element_utils.get_type(product)
        if element_type is not None:
            opening.element_type = ElementType(
                id=element_type.id(),
                name=element_type.Name or "",
                parameters=_pset_parameters(ifc_element_utils.get_psets(element_type)),
            )
        self.document.add(opening)

    def _level_name(self, product) -> str:
        container = ifc_element_utils.get_container(product) or ifc_element_utils.get_aggregate(product)
        if container is not None and container.is_a("IfcBuildingStorey"):
            return container.Name or ""
        return ""

    # ------------------------------------------------------------- geometry

    def _placement(self, product) -> np.ndarray:
        if product.ObjectPlacement is None:
            return np.eye(4)
        return np.asarray(ifc_placement.get_local_placement(product.ObjectPlacement), dtype=float)

    def _body(self, product) -> List[GeometryObject]:
        if product is None or product.Representation is None:
            return []
        placement = self._placement(product)
        found: List[GeometryObject] = []
        for representation in product.Representation.Representations:
            if representation.RepresentationIdentifier not in ("Body", None):
                continue
            for item in representation.Items:
                if item.is_a("IfcMappedItem"):
                    instance = self._mapped_item(item, placement)
                    if instance is not None:
                        found.append(instance)
                    continue
                solid = self._extrusion(item, placement)
                if solid is not None:
                    found.append(solid)
        return found

    def _extrusion(self, item, matrix: np.ndarray) -> Optional[Solid]:
        if not item.is_a("IfcExtrudedAreaSolid"):
            logger.debug("Unsupported body item %s skipped", item.is_a())
            return None
        profile = _profile_polygon(item.SweptArea)
        if profile is None:
            logger.debug("Unsupported profile %s skipped", item.SweptArea.is_a())
            return None
        position = np.eye(4)
        if item.Position is not None:
            position = np.asarray(ifc_placement.get_axis2placement(item.Position), dtype=float)
        frame = matrix @ position
        direction = np.asarray(item.ExtrudedDirection.DirectionRatios, dtype=float)
        direction = direction / np.linalg.norm(direction)
        world_direction = frame[:3, :3] @ direction
        if abs(abs(world_direction[2]) - 1.0) > VERTICAL_TOLERANCE or abs(abs(frame[2, 2]) - 1.0) > VERTICAL_TOLERANCE:
            logger.debug("Non-vertical extrusion skipped")
            return None

        def to_plan(ring) -> List[Tuple[float, float]]:
            return [tuple((frame @ np.array([x, y, 0.0, 1.0]))[:2] * self._to_document) for x, y in ring]

        footprint = Polygon(to_plan(profile.exterior.coords), [to_plan(r.coords) for r in profile.interiors])
        if not footprint.is_valid:
            footprint = as_area(footprint.buffer(0))
        base = (frame @ np.array([0.0, 0.0, 0.0, 1.0]))[2]
        top = (frame @ np.append(direction * float(item.Depth), 1.0))[2]
        return Solid.extrusion(footprint, base * self._to_document, top * self._to_document)

    def _mapped_item(self, item, placement: np.ndarray) -> Optional[GeometryInstance]:
        source = item.MappingSource
        origin = np.eye(4)
        if source.MappingOrigin is not None and source.MappingOrigin.is_a("IfcAxis2Placement3D"):
            origin = np.asarray(ifc_placement.get_axis2placement(source.MappingOrigin), dtype=float)
        symbol = []
        for sub_item in source.MappedRepresentation.Items:
            solid = self._extrusion(sub_item, origin)
            if solid is not None:
                symbol.append(solid)
        if not symbol:
            return None
        matrix = placement @ _operator_matrix(item.MappingTarget)
        rotation = math.degrees(math.atan2(matrix[1, 0], matrix[0, 0]))
        translation = tuple(float(v) * self._to_document for v in matrix[:3, 3])
        return GeometryInstance(tuple(symbol), rotation_deg=rotation, translation=translation)

    def _axis_line(self, product) -> Optional[LineString]:
        if product.Representation is None:
            return None
        placement = self._placement(product)
        for representation in product.Representation.Representations:
            if representation.RepresentationIdentifier != "Axis":
                continue
            for item in representation.Items:
                points = _curve_points(item)
                if points and len(points) >= 2:
                    world = [tuple((placement @ np.array([x, y, 0.0, 1.0]))[:2] * self._to_document) for x, y in points]
                    return LineString(world)
        return None


def _solids(representation: List[GeometryObject]) -> List[Solid]:
    found: List[Solid] = []
    for item in representation:
        if isinstance(item, GeometryInstance):
            found.extend(item.instance_geometry())
        else:
            found.append(item)
    return found


def _plan_footprint(representation: List[GeometryObject]):
    solids = _solids(representation)
    if not solids:
        return None
    return as_area(unary_union([slab.footprint for s in solids for slab in s.prisms]))


def _curve_points(curve) -> Optional[List[Tuple[float, float]]]:
    if curve.is_a("IfcPolyline"):
        return [tuple(p.Coordinates[:2]) for p in curve.Points]
    if curve.is_a("IfcIndexedPolyCurve"):
        # straight segments only
        return [tuple(c[:2]) for c in curve.Points.CoordList]
    return None


def _profile_polygon(profile) -> Optional[Polygon]:
    if profile.is_a("IfcRectangleProfileDef"):
        hx, hy = profile.XDim / 2.0, profile.YDim / 2.0
        ring = [(-hx, -hy), (hx, -hy), (hx, hy), (-hx, hy)]
        return Polygon(_placed_2d(ring, profile.Position))
    if profile.is_a("IfcArbitraryClosedProfileDef"):
        outer = _curve_points(profile.OuterCurve)
        if not outer or len(outer) < 3:
            return None
        holes = []
        if profile.is_a("IfcArbitraryProfileDefWithVoids"):
            for inner in profile.InnerCurves:
                points = _curve_points(inner)
                if points and len(points) >= 3:
                    holes.append(points)
        return Polygon(outer, holes)
    return None


def _placed_2d(ring: List[Tuple[float, float]], position) -> List[Tuple[float, float]]:
    if position is None:
        return ring
    ox, oy = position.Location.Coordinates[:2]
    dx, dy = (1.0, 0.0)
    if position.RefDirection is not None:
        dx, dy = position.RefDirection.DirectionRatios[:2]
        length = math.hypot(dx, dy)
        dx, dy = dx / length, dy / length
    return [(ox + x * dx - y * dy, oy + x * dy + y * dx) for x, y in ring]


def _operator_matrix(operator) -> np.ndarray:
    """4x4 matrix of an ``IfcCartesianTransformationOperator3D`` (uniform scale only)."""
    matrix = np.eye(4)
    if operator is None:
        return matrix
    x_axis = np.array(operator.Axis1.DirectionRatios if operator.Axis1 else (1.0, 0.0, 0.0), dtype=float)
    z_axis = np.array(
        operator.Axis3.DirectionRatios if getattr(operator, "Axis3", None) else (0.0, 0.0, 1.0), dtype=float
    )
    x_axis /= np.linalg.norm(x_axis)
    z_axis /= np.linalg.norm(z_axis)
    y_axis = np.cross(z_axis, x_axis)
    scale = float(operator.Scale or 1.0)
    matrix[:3, 0] = x_axis * scale
    matrix[:3, 1] = y_axis * scale
    matrix[:3, 2] = z_axis * scale
    matrix[:3, 3] = operator.LocalOrigin.Coordinates
    return matrix


def _filled_void(product):
    for rel in getattr(product, "FillsVoids", None) or ():
        if rel.is_a("IfcRelFillsElement"):
            return rel.RelatingOpeningElement
    return None


def _voided_element(void):
    for rel in getattr(void, "VoidsElements", None) or ():
        if rel.is_a("IfcRelVoidsElement"):
            return rel.RelatingBuildingElement
    return None


def _pset_parameters(psets: Dict[str, Dict[str, Any]]) -> Dict[str, Parameter]:
    parameters: Dict[str, Parameter] = {}
    for properties in psets.values():
        for key, value in properties.items():
            if key == "id" or isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                parameters[key] = Parameter(key, float(value))
            elif isinstance(value, str):
                parameters[key] = Parameter(key, value, StorageType.STRING)
    return parameters


__all__ = ["IfcModelLoader", "load_ifc"]
