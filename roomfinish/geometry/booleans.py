"""Boolean operations on prism-union solids.

Both operands are cut at every elevation found in either of them; inside
each resulting z-slab the operation reduces to a 2D polygon overlay of the
two slab footprints.
"""

from __future__ import annotations

from enum import Enum
from typing import List

from shapely.errors import GEOSException

from roomfinish.exceptions import BooleanOperationError
from roomfinish.geometry.solids import Prism, Solid, as_area, merge_levels


class BooleanOp(str, Enum):
    UNION = "union"
    INTERSECT = "intersect"
    DIFFERENCE = "difference"


def boolean(a: Solid, b: Solid, op: BooleanOp) -> Solid:
    """Return ``a <op> b``.

    Raises:
        BooleanOperationError: If the polygon overlay fails for a slab.
    """
    op = BooleanOp(op)
    if op is BooleanOp.INTERSECT and (a.is_empty or b.is_empty):
        return Solid()
    if op is BooleanOp.DIFFERENCE and b.is_empty:
        return a

    levels = merge_levels(a.levels + b.levels)
    prisms: List[Prism] = []
    for z_lo, z_hi in zip(levels, levels[1:]):
        footprint_a = a.footprint_between(z_lo, z_hi)
        footprint_b = b.footprint_between(z_lo, z_hi)
        try:
            if op is BooleanOp.UNION:
                footprint = footprint_a.union(footprint_b)
            elif op is BooleanOp.INTERSECT:
                footprint = footprint_a.intersection(footprint_b)
            else:
                footprint = footprint_a.difference(footprint_b)
        except GEOSException as exc:
            raise BooleanOperationError(
                f"{op.value} failed between z={z_lo:g} and z={z_hi:g}: {exc}",
                {"operation": op.value},
            ) from exc
        footprint = as_area(footprint)
        if not footprint.is_empty:
            prisms.append(Prism(footprint, z_lo, z_hi))
    return Solid(prisms)


def union(a: Solid, b: Solid) -> Solid:
    return boolean(a, b, BooleanOp.UNION)


def intersect(a: Solid, b: Solid) -> Solid:
    return boolean(a, b, BooleanOp.INTERSECT)


def difference(a: Solid, b: Solid) -> Solid:
    return boolean(a, b, BooleanOp.DIFFERENCE)


__all__ = ["BooleanOp", "boolean", "union", "intersect", "difference"]
