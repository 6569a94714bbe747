"""Unit conversion utilities.

Hosts report geometry in their own internal length unit (feet for most BIM
authoring tools, millimetres for most IFC exports). Quantities are reported
in metres and square metres.
"""

from __future__ import annotations

from enum import Enum

from roomfinish.exceptions import ConfigurationError

MM_PER_INCH = 25.4
INCHES_PER_FOOT = 12
METERS_PER_FOOT = MM_PER_INCH * INCHES_PER_FOOT / 1000.0


class Unit(str, Enum):
    """Length and area units with their dimension."""

    MILLIMETERS = "mm"
    CENTIMETERS = "cm"
    METERS = "m"
    INCHES = "in"
    FEET = "ft"
    SQUARE_MILLIMETERS = "mm2"
    SQUARE_CENTIMETERS = "cm2"
    SQUARE_METERS = "m2"
    SQUARE_INCHES = "in2"
    SQUARE_FEET = "ft2"

    @property
    def dimension(self) -> int:
        return 2 if self.value.endswith("2") else 1

    @property
    def length_unit(self) -> "Unit":
        """Linear unit this unit is built from."""
        return Unit(self.value[:-1]) if self.dimension == 2 else self

    @property
    def area_unit(self) -> "Unit":
        return Unit(self.length_unit.value + "2")


_METERS_PER_LENGTH_UNIT = {
    Unit.MILLIMETERS: 0.001,
    Unit.CENTIMETERS: 0.01,
    Unit.METERS: 1.0,
    Unit.INCHES: MM_PER_INCH / 1000.0,
    Unit.FEET: METERS_PER_FOOT,
}


def meters_per_unit(unit: Unit) -> float:
    """Length of one unit in metres (linear units only)."""
    return _METERS_PER_LENGTH_UNIT[unit.length_unit]


def convert(value: float, from_unit: Unit, to_unit: Unit) -> float:
    """Convert ``value`` between two units of the same dimension."""
    if from_unit.dimension != to_unit.dimension:
        raise ConfigurationError(
            f"Cannot convert {from_unit.value} to {to_unit.value}",
            {"from": from_unit.value, "to": to_unit.value},
        )
    factor = meters_per_unit(from_unit) / meters_per_unit(to_unit)
    return float(value) * factor ** from_unit.dimension


def unit_from_scale(meters_per_length_unit: float, *, rel_tol: float = 1e-6) -> Unit:
    """Return the length unit whose size in metres matches ``meters_per_length_unit``."""
    for unit, size in _METERS_PER_LENGTH_UNIT.items():
        if abs(size - meters_per_length_unit) <= rel_tol * size:
            return unit
    raise ConfigurationError(
        f"Unsupported length unit scale: {meters_per_length_unit}",
        {"scale": str(meters_per_length_unit)},
    )


__all__ = [
    "Unit",
    "convert",
    "meters_per_unit",
    "unit_from_scale",
    "METERS_PER_FOOT",
]
