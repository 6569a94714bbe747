"""End-to-end tests of the per-room finish quantities."""

from __future__ import annotations

import math

import pytest

from roomfinish.exceptions import GeometryExtractionError, RoomEnumerationError
from roomfinish.host.elements import Parameter
from roomfinish.host.specs import Point2D, WallSpec
from roomfinish.quantities import RoomState, compute_room_quantities
from roomfinish.quantities.aggregator import RoomData, average_height
from roomfinish.quantities.boundary import extract_perimeter, extract_spatial_geometry
from roomfinish.settings import GeometrySettings, Settings
from roomfinish.units import Unit

from tests.utils_rooms import (
    east_window,
    l_wall_room_model,
    living_room,
    north_column,
    single_room_model,
    south_door,
    two_room_model,
)


def _only(rows) -> RoomData:
    assert len(rows) == 1
    return rows[0]


def test_empty_room() -> None:
    row = _only(compute_room_quantities(single_room_model()))
    assert row.status is RoomState.FINALIZED
    assert row.name == "Living"
    assert row.number == "101"
    assert row.level == "Level 1"
    assert row.perimeter == pytest.approx(14.0)
    assert row.average_height == pytest.approx(2.5)
    assert row.wall_area == pytest.approx(35.0)
    assert row.skirting_length == pytest.approx(14.0)
    assert row.openings_count == 0


def test_room_with_door_and_window() -> None:
    row = _only(compute_room_quantities(single_room_model(doors=[south_door()], windows=[east_window()])))
    assert row.wall_area == pytest.approx(35.0 - 0.9 * 2.1 - 1.0 * 1.2)
    assert row.skirting_length == pytest.approx(13.1)
    assert row.openings_count == 2
    assert row.rounded(2).wall_area == 31.91


def test_openings_on_a_bent_wall_are_subtracted_once() -> None:
    row = _only(compute_room_quantities(l_wall_room_model()))
    assert row.wall_area == pytest.approx(31.91)
    assert row.openings_count == 2
    assert row.skirting_length == pytest.approx(13.1)


def test_bent_wall_fallback_path_gives_the_same_totals(monkeypatch) -> None:
    doc = l_wall_room_model()

    def broken(a, b, op):
        raise RuntimeError("kernel refused")

    monkeypatch.setattr(doc, "boolean_operation", broken)
    row = _only(compute_room_quantities(doc))
    assert row.status is RoomState.FINALIZED
    assert row.wall_area == pytest.approx(31.91)
    assert row.openings_count == 2


def test_shared_door_is_subtracted_in_both_rooms() -> None:
    rows = compute_room_quantities(two_room_model())
    assert [r.number for r in rows] == ["101", "102"]
    for row in rows:
        assert row.wall_area == pytest.approx(35.0 - 1.89)
        assert row.skirting_length == pytest.approx(13.1)
        assert row.openings_count == 1


def test_opening_cut_into_the_room_face_is_not_subtracted_twice() -> None:
    doc = single_room_model(doors=[south_door(cuts_room_faces=True)], windows=[east_window(cuts_room_faces=True)])
    row = _only(compute_room_quantities(doc))
    assert row.wall_area == pytest.approx(31.91)
    assert row.openings_count == 2


def test_visible_column_faces_count_as_wall_area() -> None:
    row = _only(compute_room_quantities(single_room_model(columns=[north_column()])))
    # column sides carry no skirting
    assert row.perimeter == pytest.approx(13.5)
    assert row.wall_area == pytest.approx(33.75 + 1.1 * 2.5)
    assert row.skirting_length == pytest.approx(13.5)


def test_columns_can_be_excluded() -> None:
    settings = Settings(geometry=GeometrySettings(include_columns=False))
    row = _only(compute_room_quantities(single_room_model(columns=[north_column()]), settings))
    assert row.wall_area == pytest.approx(33.75)


def test_column_buried_in_a_wall_adds_nothing() -> None:
    wall = WallSpec("X", Point2D(1.0, 2.5), Point2D(2.5, 2.5), height=3.0, thickness=1.0, room_bounding=False)
    row = _only(compute_room_quantities(single_room_model(columns=[north_column()], extra_walls=[wall])))
    assert row.wall_area == pytest.approx(33.75)


def test_column_partly_behind_a_wall() -> None:
    wall = WallSpec("X", Point2D(1.0, 2.5), Point2D(1.6, 2.5), height=3.0, thickness=1.0, room_bounding=False)
    row = _only(compute_room_quantities(single_room_model(columns=[north_column()], extra_walls=[wall])))
    assert row.wall_area == pytest.approx(33.75 + 1.0 + 0.75)


def test_column_flush_with_a_wall_counts_the_shared_face_once() -> None:
    doc = single_room_model(columns=[north_column(center=Point2D(1.75, 3.15))])
    row = _only(compute_room_quantities(doc))
    # the column front replaces 0.5 m of the north wall face
    assert row.wall_area == pytest.approx(35.0)
    assert row.perimeter == pytest.approx(13.5)
    assert row.skirting_length == pytest.approx(13.5)

    settings = Settings(geometry=GeometrySettings(include_columns=False))
    assert _only(compute_room_quantities(doc, settings)).wall_area == pytest.approx(35.0 - 1.25)


def test_unplaced_rooms_are_skipped() -> None:
    doc = single_room_model(extra_spaces=[living_room(id="R9", seed_point=Point2D(20.0, 20.0))])
    rows = compute_room_quantities(doc)
    assert [r.room_id for r in rows] == [doc.by_tag("R1").id]


def test_spatial_failure_falls_back_to_perimeter_times_height(monkeypatch) -> None:
    doc = single_room_model(doors=[south_door()])

    def broken(room):
        raise GeometryExtractionError("solid failed")

    monkeypatch.setattr(doc, "calculate_spatial_geometry", broken)
    row = _only(compute_room_quantities(doc))
    assert row.status is RoomState.FALLBACK_FINALIZED
    assert row.is_fallback
    assert row.wall_area == pytest.approx(14.0 * 2.5)
    assert row.skirting_length == pytest.approx(13.1)
    assert row.openings_count == 0


def test_boundary_failure_falls_back_to_a_square_room(monkeypatch) -> None:
    doc = single_room_model()

    def broken(*args, **kwargs):
        raise GeometryExtractionError("boundary failed")

    monkeypatch.setattr(doc, "boundary_loops", broken)
    monkeypatch.setattr(doc, "calculate_spatial_geometry", broken)
    row = _only(compute_room_quantities(doc))
    assert row.is_fallback
    assert row.perimeter == pytest.approx(4.0 * math.sqrt(12.0))
    assert row.wall_area == pytest.approx(4.0 * math.sqrt(12.0) * 2.5)


def test_failing_door_lookup_in_fallback_still_produces_a_row(monkeypatch) -> None:
    doc = single_room_model(doors=[south_door()])

    def broken(*args, **kwargs):
        raise RuntimeError("host unavailable")

    monkeypatch.setattr(doc, "calculate_spatial_geometry", broken)
    monkeypatch.setattr(doc, "collect_instances", broken)
    row = _only(compute_room_quantities(doc))
    assert row.is_fallback
    assert row.skirting_length == pytest.approx(14.0)


def test_room_enumeration_failure_is_fatal(monkeypatch) -> None:
    doc = single_room_model()

    def broken():
        raise RuntimeError("document closed")

    monkeypatch.setattr(doc, "rooms", broken)
    with pytest.raises(RoomEnumerationError):
        compute_room_quantities(doc)


def test_results_do_not_depend_on_the_internal_unit() -> None:
    metric = _only(compute_room_quantities(single_room_model(doors=[south_door()], windows=[east_window()])))
    imperial = _only(
        compute_room_quantities(single_room_model(doors=[south_door()], windows=[east_window()], length_unit=Unit.FEET))
    )
    assert imperial.wall_area == pytest.approx(metric.wall_area, rel=1e-6)
    assert imperial.skirting_length == pytest.approx(metric.skirting_length, rel=1e-6)
    assert imperial.perimeter == pytest.approx(metric.perimeter, rel=1e-6)
    assert imperial.average_height == pytest.approx(2.5, rel=1e-6)


def test_millimetre_document() -> None:
    doc = single_room_model(columns=[north_column()], doors=[south_door()], length_unit=Unit.MILLIMETERS)
    row = _only(compute_room_quantities(doc))
    assert row.wall_area == pytest.approx(33.75 + 2.75 - 1.89)
    assert row.skirting_length == pytest.approx(13.5 - 0.9)


def test_values_are_never_negative() -> None:
    doc = single_room_model(doors=[south_door()])
    doc.by_tag("D1").parameters["door_width"] = Parameter("door_width", 100.0)
    settings = Settings(geometry=GeometrySettings(boolean_subtraction=False))
    row = _only(compute_room_quantities(doc, settings))
    assert row.skirting_length == 0.0
    # the south face is clamped at zero, the other faces are untouched
    assert row.wall_area == pytest.approx(25.0)


def test_average_height_prefers_volume_over_area() -> None:
    doc = single_room_model()
    room = doc.rooms()[0]
    assert average_height(room) == pytest.approx(2.5)
    room.volume = 0.0
    room.height = 2.7
    assert average_height(room) == pytest.approx(2.7)


def test_perimeter_counts_wall_hosted_segments_only() -> None:
    doc = single_room_model(columns=[north_column()])
    room = doc.rooms()[0]
    perimeter = extract_perimeter(doc, room).unwrap()
    assert perimeter.length == pytest.approx(13.5)
    assert perimeter.segment_count == 5
    assert sorted(doc.get_element(i).tag for i in perimeter.wall_ids) == ["E", "N", "S", "W"]


def test_spatial_geometry_outcome_reports_failures(monkeypatch) -> None:
    doc = single_room_model()
    room = doc.rooms()[0]
    assert extract_spatial_geometry(doc, room).ok
    room.height = 0.0
    outcome = extract_spatial_geometry(doc, room)
    assert not outcome.ok
    with pytest.raises(GeometryExtractionError):
        outcome.unwrap()


def test_rows_round_for_output() -> None:
    row = RoomData(1, "Bath", "3", "Level 1", 2.456, 1, 7.005, 17.126, 8.0)
    rounded = row.rounded(1)
    assert rounded.wall_area == 17.1
    assert rounded.average_height == 2.5
    assert rounded.openings_count == 1
    assert row.as_dict()["status"] == "finalized"
