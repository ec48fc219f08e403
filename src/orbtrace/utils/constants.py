"""Physical constants and fixed offsets for element parsing and geometry.

Lengths in km and angles in radians unless noted otherwise.
"""

from __future__ import annotations

import math

# --- Earth ellipsoid (WGS-84) ---
EARTH_RADIUS_KM: float = 6378.137
"""Equatorial radius of Earth in km."""

EARTH_FLATTENING: float = 1.0 / 298.257223563
"""WGS-84 flattening."""

EARTH_ECCENTRICITY_SQ: float = EARTH_FLATTENING * (2.0 - EARTH_FLATTENING)
"""First eccentricity squared of the ellipsoid."""

EARTH_MU_KM3_S2: float = 398600.4418
"""Earth gravitational parameter (GM) in km³/s²."""

EARTH_ROTATION_RAD_S: float = 7.2921150e-5
"""Earth rotation rate in rad/s."""

# --- Time ---
J2000_JD: float = 2451545.0
"""Julian Day of the J2000.0 epoch (2000-01-01 12:00 TT)."""

DAYS_PER_JULIAN_CENTURY: float = 36525.0

SECONDS_PER_DAY: float = 86400.0

TWO_PI: float = 2.0 * math.pi

# --- Element text format ---
UNSPECIFIED_NAME: str = "UNSPECIFIED"
"""Name given to element sets supplied without a name line."""

LINE1_PREFIX: str = "1 "
LINE2_PREFIX: str = "2 "

LINE1_MIN_TOKENS: int = 4
"""Minimum whitespace tokens on line 1."""

LINE2_MIN_TOKENS: int = 3
"""Minimum whitespace tokens on line 2."""

MEAN_MOTION_WIDTH: int = 11
"""Characters of the combined line-2 token holding the mean motion."""

REVOLUTION_END: int = 16
"""End offset (exclusive) of the revolution number in the combined token."""

EPOCH_YEAR_PIVOT: int = 57
"""Two-digit epoch years below this are 20xx, the rest 19xx."""

# --- Geometry ---
DEGENERATE_RANGE_KM: float = 1e-9
"""Observer/satellite separations below this have no defined direction."""

GEODETIC_MAX_ITERATIONS: int = 20
GEODETIC_TOLERANCE_RAD: float = 1e-14
