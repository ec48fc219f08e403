"""Time scales and reference-frame conversions.

Julian Day, Greenwich Mean Sidereal Time, and the conversions between the
Earth-centred inertial frame (ECI/TEME) and geodetic coordinates on the
WGS-84 ellipsoid. Angles are in radians and lengths in km unless a name
says otherwise.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone

import numpy as np
from numpy.typing import ArrayLike, NDArray
from sgp4.api import jday

from orbtrace.utils.constants import (
    DAYS_PER_JULIAN_CENTURY,
    EARTH_ECCENTRICITY_SQ as E2,
    EARTH_RADIUS_KM as RE,
    GEODETIC_MAX_ITERATIONS,
    GEODETIC_TOLERANCE_RAD,
    J2000_JD,
    TWO_PI,
)


@dataclass(frozen=True)
class GeodeticPosition:
    """A point referenced to the Earth ellipsoid.

    Attributes:
        latitude_deg: Geodetic latitude in degrees, [-90, 90].
        longitude_deg: Longitude in degrees, [-180, 180].
        altitude_km: Height above the ellipsoid in km.
    """

    latitude_deg: float
    longitude_deg: float
    altitude_km: float

    @classmethod
    def from_eci(cls, position_km: ArrayLike, gmst_rad: float) -> GeodeticPosition:
        """Geodetic position of an inertial point at the given sidereal angle."""
        lat, lon, alt = eci_to_geodetic(position_km, gmst_rad)
        return cls(
            latitude_deg=math.degrees(lat),
            longitude_deg=math.degrees(lon),
            altitude_km=alt,
        )


def julian_day(
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: float = 0.0,
) -> float:
    """Continuous Julian Day of a UTC calendar instant.

    The sum of the day and fraction pair computed by :func:`sgp4.api.jday`.

    Args:
        year: Four-digit year.
        month: Month, 1-12.
        day: Day of month.
        hour: Hour of day.
        minute: Minute of hour.
        second: Seconds, may be fractional.

    Returns:
        The Julian Day as a float.
    """
    jd, fr = jday(year, month, day, hour, minute, second)
    return jd + fr


def julian_day_from_datetime(dt: datetime) -> float:
    """Julian Day of a datetime. Naive datetimes are taken to be UTC."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return julian_day(
        dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second + dt.microsecond / 1e6
    )


def gmst(jd: float) -> float:
    """Greenwich Mean Sidereal Time.

    IAU-82 polynomial in Julian centuries of UT1 since J2000 (UTC is used
    for UT1).

    Args:
        jd: Julian Day.

    Returns:
        Sidereal angle in radians, in [0, 2π).
    """
    t = (jd - J2000_JD) / DAYS_PER_JULIAN_CENTURY
    seconds = (
        -6.2e-6 * t * t * t
        + 0.093104 * t * t
        + (876600.0 * 3600.0 + 8640184.812866) * t
        + 67310.54841
    )
    # 240 sidereal seconds per degree
    return math.radians(seconds / 240.0) % TWO_PI


def _rotate_z(vector: ArrayLike, angle: float) -> NDArray[np.float64]:
    x, y, z = np.asarray(vector, dtype=np.float64)
    c, s = math.cos(angle), math.sin(angle)
    return np.array([c * x - s * y, s * x + c * y, z], dtype=np.float64)


def eci_to_ecef(position: ArrayLike, gmst_rad: float) -> NDArray[np.float64]:
    """Rotate an inertial vector into the Earth-fixed frame."""
    return _rotate_z(position, -gmst_rad)


def ecef_to_eci(position: ArrayLike, gmst_rad: float) -> NDArray[np.float64]:
    """Rotate an Earth-fixed vector into the inertial frame."""
    return _rotate_z(position, gmst_rad)


def eci_to_geodetic(position: ArrayLike, gmst_rad: float) -> tuple[float, float, float]:
    """Convert an inertial position to geodetic coordinates.

    The position is rotated into the Earth-fixed frame by ``-gmst_rad`` and
    inverted on the ellipsoid by fixed-point iteration on latitude. The
    altitude expression stays finite at the poles.

    Args:
        position: Inertial [x, y, z].
        gmst_rad: Greenwich sidereal angle in radians.

    Returns:
        Tuple of (latitude_rad, longitude_rad, altitude) with longitude in
        [-π, π) and altitude in the unit of ``position``.
    """
    x, y, z = eci_to_ecef(position, gmst_rad)
    p = math.hypot(x, y)

    lon = (math.atan2(y, x) + math.pi) % TWO_PI - math.pi

    lat = math.atan2(z, p * (1.0 - E2))
    for _ in range(GEODETIC_MAX_ITERATIONS):
        sin_lat = math.sin(lat)
        n = RE / math.sqrt(1.0 - E2 * sin_lat * sin_lat)
        updated = math.atan2(z + E2 * n * sin_lat, p)
        converged = abs(updated - lat) < GEODETIC_TOLERANCE_RAD
        lat = updated
        if converged:
            break

    sin_lat = math.sin(lat)
    alt = p * math.cos(lat) + z * sin_lat - RE * math.sqrt(1.0 - E2 * sin_lat * sin_lat)
    return lat, lon, float(alt)


def geodetic_to_eci(lat_rad: float, lon_rad: float, altitude: float, jd: float) -> NDArray[np.float64]:
    """Inertial position of a geodetic point at a given instant.

    Args:
        lat_rad: Geodetic latitude in radians.
        lon_rad: Longitude in radians.
        altitude: Height above the ellipsoid in km.
        jd: Julian Day of the instant.

    Returns:
        Inertial [x, y, z] in km.
    """
    sin_lat = math.sin(lat_rad)
    n = RE / math.sqrt(1.0 - E2 * sin_lat * sin_lat)
    r_xy = (n + altitude) * math.cos(lat_rad)
    ecef = np.array(
        [
            r_xy * math.cos(lon_rad),
            r_xy * math.sin(lon_rad),
            (n * (1.0 - E2) + altitude) * sin_lat,
        ],
        dtype=np.float64,
    )
    return ecef_to_eci(ecef, gmst(jd))
