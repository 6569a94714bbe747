from __future__ import annotations

import logging

from roomfinish.geometry.contract import is_degenerate_volume
from roomfinish.geometry.solids import GeometryInstance, Solid
from roomfinish.host.elements import Element, GeometryOptions
from roomfinish.host.protocol import GeometryHost
from roomfinish.quantities.results import FailureKind, Outcome


logger = logging.getLogger(__name__)


def resolve_solid(host: GeometryHost, element: Element, options: GeometryOptions | None = None) -> Outcome[Solid]:
    """Return the largest-volume solid of ``element``.

    Solids nested one level deep inside instanced geometry are considered
    too; ties keep the first solid seen. A successful outcome holding
    ``None`` means the element has no usable solid at this detail level;
    a failed outcome means the host could not produce geometry at all.
    """
    options = options or GeometryOptions()
    try:
        objects = host.geometry(element, options)
    except Exception as exc:  # host geometry is a black box
        logger.debug("Geometry of element %s unavailable: %s", element.id, exc)
        return Outcome.fail(
            FailureKind.GEOMETRY_EXTRACTION,
            f"Geometry of element {element.id} could not be read: {exc}",
            exc,
        )

    best: Solid | None = None
    best_volume = 0.0
    for obj in objects or ():
        candidates = obj.instance_geometry() if isinstance(obj, GeometryInstance) else [obj]
        for solid in candidates:
            if not isinstance(solid, Solid):
                continue
            volume = solid.volume
            if is_degenerate_volume(volume):
                continue
            if best is None or volume > best_volume:
                best, best_volume = solid, volume
    return Outcome.success(best)


def element_solid(host: GeometryHost, element: Element, options: GeometryOptions | None = None) -> Solid | None:
    """Largest solid of ``element``, or ``None`` whatever the reason."""
    return resolve_solid(host, element, options).value_or(None)


__all__ = ["resolve_solid", "element_solid"]
