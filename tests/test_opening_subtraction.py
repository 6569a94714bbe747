"""Tests for removing door and window areas from wall faces."""

from __future__ import annotations

import pytest

from roomfinish.exceptions import BooleanOperationError
from roomfinish.quantities.opening_subtraction import OpeningRegistry, net_wall_face_area, z_overlap_area
from roomfinish.settings import GeometrySettings

from tests.utils_rooms import east_window, face_with_normal, l_wall_room_model, single_room_model, south_door


def _south_face(doc):
    room = doc.rooms()[0]
    spatial = doc.calculate_spatial_geometry(room)
    return room, face_with_normal(spatial, (0.0, -1.0, 0.0))


def test_door_area_is_removed_once() -> None:
    doc = single_room_model(doors=[south_door()])
    room, face = _south_face(doc)
    registry = OpeningRegistry()

    area = net_wall_face_area(doc, face, doc.by_tag("S"), room, registry)
    assert area == pytest.approx(10.0 - 1.89)
    assert registry.count == 1
    assert registry.is_subtracted(doc.by_tag("D1"))

    # a second face of the same wall in the same room does not subtract again
    assert net_wall_face_area(doc, face, doc.by_tag("S"), room, registry) == pytest.approx(10.0)
    assert registry.count == 1


def test_opening_that_misses_the_face_is_not_marked() -> None:
    doc = l_wall_room_model()
    room, face = _south_face(doc)
    registry = OpeningRegistry()
    area = net_wall_face_area(doc, face, doc.by_tag("SE"), room, registry)
    assert area == pytest.approx(10.0 - 1.89)
    assert registry.count == 2
    assert registry.is_subtracted(doc.by_tag("D1"))
    assert not registry.is_subtracted(doc.by_tag("W1"))


def test_boolean_failure_falls_back_to_z_overlap(monkeypatch) -> None:
    doc = single_room_model(doors=[south_door()])
    room, face = _south_face(doc)

    def broken(a, b, op):
        raise BooleanOperationError("kernel refused")

    monkeypatch.setattr(doc, "boolean_operation", broken)
    area = net_wall_face_area(doc, face, doc.by_tag("S"), room, OpeningRegistry())
    assert area == pytest.approx(10.0 - 0.9 * 2.1)


def test_boolean_subtraction_can_be_disabled() -> None:
    doc = single_room_model(doors=[south_door(height=3.0)])
    room, face = _south_face(doc)
    settings = GeometrySettings(boolean_subtraction=False)
    # Z overlap is clipped to the 2.5 m face
    area = net_wall_face_area(doc, face, doc.by_tag("S"), room, OpeningRegistry(), settings)
    assert area == pytest.approx(10.0 - 0.9 * 2.5)


def test_unreadable_opening_geometry_uses_z_overlap(monkeypatch) -> None:
    doc = single_room_model(doors=[south_door()])
    room, face = _south_face(doc)
    door = doc.by_tag("D1")
    original = doc.geometry

    def geometry(element, options):
        if element is door:
            raise RuntimeError("no body")
        return original(element, options)

    monkeypatch.setattr(doc, "geometry", geometry)
    area = net_wall_face_area(doc, face, doc.by_tag("S"), room, OpeningRegistry())
    assert area == pytest.approx(10.0 - 1.89)


def test_opening_without_solid_contributes_nothing() -> None:
    doc = single_room_model(doors=[south_door()])
    room, face = _south_face(doc)
    doc.by_tag("D1").representation = []
    registry = OpeningRegistry()
    assert net_wall_face_area(doc, face, doc.by_tag("S"), room, registry) == pytest.approx(10.0)
    assert registry.count == 1
    assert not registry.subtracted


def test_face_with_holes_is_taken_as_is() -> None:
    doc = single_room_model(windows=[east_window(cuts_room_faces=True)])
    room = doc.rooms()[0]
    spatial = doc.calculate_spatial_geometry(room)
    face = face_with_normal(spatial, (1.0, 0.0, 0.0))
    registry = OpeningRegistry()
    area = net_wall_face_area(doc, face, doc.by_tag("E"), room, registry)
    assert area == pytest.approx(6.3)
    assert registry.count == 1
    assert not registry.subtracted


def test_net_area_is_never_negative() -> None:
    doc = single_room_model(doors=[south_door()])
    room, face = _south_face(doc)
    assert net_wall_face_area(doc, face, doc.by_tag("S"), room, OpeningRegistry(), base_area=1.0) == 0.0


def test_z_overlap_area() -> None:
    doc = single_room_model(windows=[east_window()])
    room = doc.rooms()[0]
    spatial = doc.calculate_spatial_geometry(room)
    east = face_with_normal(spatial, (1.0, 0.0, 0.0))
    assert z_overlap_area(doc, east, doc.by_tag("W1")) == pytest.approx(1.0 * 1.2)
    doc.by_tag("W1").representation = []
    assert z_overlap_area(doc, east, doc.by_tag("W1")) == 0.0
