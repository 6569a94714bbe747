from __future__ import annotations

import pytest

from roomfinish.exceptions import ConfigurationError
from roomfinish.units import METERS_PER_FOOT, Unit, convert, meters_per_unit, unit_from_scale


def test_length_conversions() -> None:
    assert convert(1.0, Unit.FEET, Unit.METERS) == pytest.approx(0.3048)
    assert convert(2500.0, Unit.MILLIMETERS, Unit.METERS) == pytest.approx(2.5)
    assert convert(1.0, Unit.METERS, Unit.INCHES) == pytest.approx(1.0 / 0.0254)


def test_area_conversions_square_the_factor() -> None:
    assert convert(1.0, Unit.SQUARE_FEET, Unit.SQUARE_METERS) == pytest.approx(METERS_PER_FOOT ** 2)
    assert convert(1.0, Unit.SQUARE_METERS, Unit.SQUARE_CENTIMETERS) == pytest.approx(10000.0)


def test_mixed_dimensions_are_rejected() -> None:
    with pytest.raises(ConfigurationError):
        convert(1.0, Unit.METERS, Unit.SQUARE_METERS)


def test_unit_relations() -> None:
    assert Unit.FEET.area_unit is Unit.SQUARE_FEET
    assert Unit.SQUARE_MILLIMETERS.length_unit is Unit.MILLIMETERS
    assert Unit.SQUARE_MILLIMETERS.dimension == 2
    assert meters_per_unit(Unit.SQUARE_FEET) == pytest.approx(0.3048)


def test_unit_from_scale() -> None:
    assert unit_from_scale(0.001) is Unit.MILLIMETERS
    assert unit_from_scale(0.3048) is Unit.FEET
    with pytest.raises(ConfigurationError):
        unit_from_scale(0.2)
