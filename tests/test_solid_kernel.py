"""Tests for the prism solid kernel: slabs, booleans and faces."""

from __future__ import annotations

import pytest
from shapely.geometry import Polygon, box

from roomfinish.exceptions import BooleanOperationError
from roomfinish.geometry import booleans
from roomfinish.geometry.booleans import BooleanOp, boolean, difference, intersect, union
from roomfinish.geometry.faces import extrude_face, face_rectangles, matching_faces_area, solid_faces
from roomfinish.geometry.solids import GeometryInstance, Prism, Solid, merge_levels


def test_box_volume_and_bounding_box() -> None:
    solid = Solid.box((0.0, 0.0, 0.0), (4.0, 0.2, 3.0))
    assert solid.volume == pytest.approx(2.4)
    box3d = solid.bounding_box
    assert box3d is not None
    assert box3d.min == (0.0, 0.0, 0.0)
    assert box3d.max == (4.0, 0.2, 3.0)
    assert box3d.extent == pytest.approx((4.0, 0.2, 3.0))


def test_stacked_prisms_with_equal_footprints_merge_into_one_slab() -> None:
    footprint = box(0.0, 0.0, 1.0, 1.0)
    solid = Solid([Prism(footprint, 0.0, 1.0), Prism(footprint, 1.0, 2.5)])
    assert len(solid.prisms) == 1
    assert solid.prisms[0].z_max == pytest.approx(2.5)


def test_overlapping_prisms_are_not_double_counted() -> None:
    solid = Solid([Prism(box(0, 0, 2, 1), 0.0, 1.0), Prism(box(1, 0, 3, 1), 0.5, 1.5)])
    # 2 + 2 minus the 1 x 1 x 0.5 overlap
    assert solid.volume == pytest.approx(3.5)
    assert solid.levels == [0.0, 0.5, 1.0, 1.5]


def test_degenerate_prisms_are_dropped() -> None:
    assert Solid([Prism(box(0, 0, 1, 1), 0.0, 1e-12)]).is_empty
    assert Solid([Prism(Polygon(), 0.0, 1.0)]).is_empty
    assert Solid().bounding_box is None


def test_merge_levels_collapses_close_values() -> None:
    assert merge_levels([2.0, 0.0, 1.0, 1.0 + 1e-12]) == [0.0, 1.0, 2.0]


def test_transformed_rotates_about_origin_then_translates() -> None:
    symbol = Solid.box((-0.25, -0.15, 0.0), (0.25, 0.15, 3.0))
    placed = GeometryInstance((symbol,), rotation_deg=90.0, translation=(1.0, 2.0, 0.5)).instance_geometry()[0]
    bbox = placed.bounding_box
    assert bbox.min == pytest.approx((0.85, 1.75, 0.5))
    assert bbox.max == pytest.approx((1.15, 2.25, 3.5))
    assert placed.volume == pytest.approx(symbol.volume)


def test_difference_removes_the_overlap_volume() -> None:
    wall = Solid.box((0.0, 0.0, 0.0), (4.0, 0.2, 3.0))
    door = Solid.box((1.0, -0.1, 0.0), (1.9, 0.3, 2.1))
    result = difference(wall, door)
    assert result.volume == pytest.approx(2.4 - 0.9 * 0.2 * 2.1)
    assert result.levels == [0.0, 2.1, 3.0]


def test_union_and_intersect() -> None:
    a = Solid.box((0, 0, 0), (2, 2, 1))
    b = Solid.box((1, 1, 0), (3, 3, 2))
    assert union(a, b).volume == pytest.approx(4 + 8 - 1)
    assert intersect(a, b).volume == pytest.approx(1.0)
    assert intersect(a, Solid.box((5, 5, 0), (6, 6, 1))).is_empty
    assert boolean(a, Solid(), BooleanOp.DIFFERENCE) is a


def test_boolean_wraps_overlay_failures(monkeypatch) -> None:
    from shapely.errors import GEOSException

    class Broken:
        is_empty = False
        area = 1.0

        def difference(self, other):
            raise GEOSException("TopologyException: side location conflict")

    a = Solid.box((0, 0, 0), (1, 1, 1))
    b = Solid.box((0, 0, 0), (1, 1, 1))
    monkeypatch.setattr(Solid, "footprint_between", lambda self, lo, hi: Broken())
    with pytest.raises(BooleanOperationError) as exc_info:
        booleans.difference(a, b)
    assert exc_info.value.details == {"operation": "difference"}


def test_box_has_six_faces() -> None:
    solid = Solid.box((0.0, 0.0, 0.0), (4.0, 3.0, 2.5))
    faces = solid_faces(solid)
    assert len(faces) == 6
    assert sum(f.area for f in faces) == pytest.approx(2 * (12 + 10 + 7.5))
    assert sorted(round(f.area, 6) for f in faces if f.is_vertical) == [7.5, 7.5, 10.0, 10.0]


def test_vertical_face_frame() -> None:
    solid = Solid.box((0.0, 0.0, 0.0), (4.0, 3.0, 2.5))
    south = next(f for f in solid_faces(solid) if f.normal == pytest.approx((0.0, -1.0, 0.0)))
    assert south.plane_offset == pytest.approx(0.0)
    assert south.z_range() == pytest.approx((0.0, 2.5))
    assert list(south.to_world(4.0, 2.5)) == pytest.approx([4.0, 0.0, 2.5])
    assert list(south.compute_normal()) == pytest.approx([0.0, -1.0, 0.0])


def test_clipped_face_stays_in_its_plane() -> None:
    solid = Solid.box((0.0, 0.0, 0.0), (4.0, 3.0, 2.5))
    south = next(f for f in solid_faces(solid) if f.normal == pytest.approx((0.0, -1.0, 0.0)))
    parts = south.clipped(box(1.5, -1.0, 2.0, 5.0).union(box(3.0, 0.0, 3.5, 1.0)))
    assert sorted(p.area for p in parts) == pytest.approx([0.5, 1.25])
    assert all(p.normal == south.normal and p.origin == south.origin for p in parts)
    assert south.clipped(box(10.0, 0.0, 11.0, 1.0)) == []


def test_coplanar_pieces_merge_into_a_face_with_a_hole() -> None:
    plate = Solid.box((0.0, 0.0, 0.0), (4.0, 0.2, 3.0))
    pierced = difference(plate, Solid.box((1.0, -1.0, 1.0), (2.0, 1.0, 2.0)))
    front = [f for f in solid_faces(pierced) if f.normal == pytest.approx((0.0, -1.0, 0.0))]
    assert len(front) == 1
    assert front[0].edge_loop_count == 2
    assert front[0].area == pytest.approx(12.0 - 1.0)


def test_face_rectangles_cover_an_l_region() -> None:
    region = Polygon([(0, 0), (3, 0), (3, 1), (1, 1), (1, 2), (0, 2)])
    rects = list(face_rectangles(region))
    assert sum((u1 - u0) * (v1 - v0) for u0, v0, u1, v1 in rects) == pytest.approx(region.area)


def test_extrude_face_outward_and_inward() -> None:
    solid = Solid.box((0.0, 0.0, 0.0), (4.0, 3.0, 2.5))
    east = next(f for f in solid_faces(solid) if f.normal == pytest.approx((1.0, 0.0, 0.0)))

    outward = extrude_face(east, 0.1)
    assert outward.volume == pytest.approx(7.5 * 0.1)
    assert outward.bounding_box.min[0] == pytest.approx(4.0)
    assert outward.bounding_box.max[0] == pytest.approx(4.1)

    inward = extrude_face(east, 0.1, inward=True)
    assert inward.bounding_box.min[0] == pytest.approx(3.9)
    assert extrude_face(east, 0.0).is_empty


def test_matching_faces_area_after_subtraction() -> None:
    probe = Solid.box((0.0, -0.005, 0.0), (4.0, 0.0, 2.5))
    door = Solid.box((1.0, -0.2, 0.0), (1.9, 0.0, 2.1))
    remainder = difference(probe, door)
    before = matching_faces_area(probe, (0.0, -1.0, 0.0))
    after = matching_faces_area(remainder, (0.0, -1.0, 0.0))
    assert before == pytest.approx(10.0)
    assert before - after == pytest.approx(1.89)
