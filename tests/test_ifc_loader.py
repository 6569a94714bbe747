from __future__ import annotations

import pytest

pytest.importorskip("ifcopenshell")

from roomfinish.exceptions import ModelLoadError
from roomfinish.host.elements import Category
from roomfinish.ifc.loader import load_ifc
from roomfinish.quantities.aggregator import compute_room_quantities
from roomfinish.units import Unit
from tests.utils_ifc import build_room_ifc


def test_loads_room_walls_and_door(tmp_path) -> None:
    ifc_path = tmp_path / "room.ifc"
    build_room_ifc(ifc_path)

    document = load_ifc(ifc_path)

    assert document.length_unit is Unit.MILLIMETERS
    assert document.name == "room"
    rooms = document.rooms()
    assert len(rooms) == 1
    room = rooms[0]
    assert room.name == "Living"
    assert room.number == "101"
    assert room.level_name == "EG"
    assert room.height == pytest.approx(2500.0)
    assert room.area == pytest.approx(12_000_000.0)
    assert room.lookup_parameter("Wall Finish Area") is not None
    assert sorted(w.name for w in document.collect_walls()) == ["Wall_E", "Wall_N", "Wall_S", "Wall_W"]


def test_door_is_hosted_and_sized(tmp_path) -> None:
    ifc_path = tmp_path / "room.ifc"
    build_room_ifc(ifc_path)

    document = load_ifc(ifc_path)

    (door,) = document.collect_instances((Category.DOORS,))
    south = next(w for w in document.collect_walls() if w.name == "Wall_S")
    assert door.host_id == south.id
    assert door.lookup_parameter("door_width").as_double() == pytest.approx(900.0)
    assert door.room_id == document.rooms()[0].id
    bbox = door.bounding_box
    assert bbox.min[2] == pytest.approx(0.0)
    assert bbox.max[2] == pytest.approx(2100.0)


def test_loaded_model_quantities(tmp_path) -> None:
    ifc_path = tmp_path / "room.ifc"
    build_room_ifc(ifc_path)

    (row,) = compute_room_quantities(load_ifc(ifc_path))

    assert row.average_height == pytest.approx(2.5)
    assert row.skirting_length == pytest.approx(13.1)
    assert row.wall_area == pytest.approx(33.11)
    assert row.openings_count == 1
    assert not row.is_fallback


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(ModelLoadError) as excinfo:
        load_ifc(tmp_path / "absent.ifc")
    assert excinfo.value.details["path"].endswith("absent.ifc")


def test_garbage_file_raises(tmp_path) -> None:
    ifc_path = tmp_path / "garbage.ifc"
    ifc_path.write_text("this is not a STEP file", encoding="utf-8")
    with pytest.raises(ModelLoadError):
        load_ifc(ifc_path)


def test_rectangle_profile_column(tmp_path) -> None:
    ifc_path = tmp_path / "room_with_column.ifc"
    build_room_ifc(ifc_path, with_column=True)

    document = load_ifc(ifc_path)

    (column,) = document.collect_instances((Category.STRUCTURAL_COLUMNS,))
    assert column.name == "C1"
    assert column.level_name == "EG"
    bbox = column.bounding_box
    assert bbox.min == pytest.approx((1850.0, 1350.0, 0.0))
    assert bbox.max == pytest.approx((2150.0, 1650.0, 2500.0))

    # free-standing: no room face lies on the column
    (row,) = compute_room_quantities(document)
    assert row.wall_area == pytest.approx(33.11)
