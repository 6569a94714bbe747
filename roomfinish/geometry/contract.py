from __future__ import annotations

"""
Geometry Contract

Single source of truth for geometric thresholds and tolerances used by the
solid kernel and the quantity engine. All modules should import from here
instead of hardcoding.
"""

# Values are in the host's internal length unit unless a name ends in _M

# Solids
DEGENERATE_VOLUME = 1.0e-9  # solids below this volume are ignored everywhere

# Opening dimensions
MIN_OPENING_DIMENSION = 0.001  # width/height values at or below this are "unset"

# Kernel tolerances
Z_TOLERANCE = 1.0e-9  # elevations closer than this are the same level
AREA_TOLERANCE = 1.0e-12  # footprints differing by less than this are equal
PLANE_OFFSET_TOLERANCE = 1.0e-7  # coplanar faces
NORMAL_DOT_TOLERANCE = 1.0e-6  # normals match when dot >= 1 - tolerance

# Probes (metres, converted to host units by the engine)
OPENING_PROBE_THICKNESS_M = 0.005
COLUMN_PROBE_THICKNESS_M = 0.3048  # one foot

# Probe measurements
MIN_REMOVED_AREA = 1.0e-9  # smaller face-area drops are boolean noise, not an opening

# Subface matching
MIN_SUBFACE_AREA = 1.0e-9
BOUNDARY_SNAP_TOLERANCE = 1.0e-6  # boundary segment to element outline distance


def is_degenerate_volume(volume: float | None) -> bool:
    """Return True when a solid volume is missing or below DEGENERATE_VOLUME."""
    return volume is None or volume < DEGENERATE_VOLUME


def normals_match(a, b, tolerance: float = NORMAL_DOT_TOLERANCE) -> bool:
    """Return True when two unit normals point the same way."""
    dot = float(a[0] * b[0] + a[1] * b[1] + a[2] * b[2])
    return dot >= 1.0 - tolerance
