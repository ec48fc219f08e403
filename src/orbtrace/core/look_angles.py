"""Observer-relative look angles (azimuth, elevation, range, range-rate)."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime

import numpy as np

from orbtrace.core.frames import geodetic_to_eci, gmst, julian_day_from_datetime
from orbtrace.core.propagation import StateVector, as_utc
from orbtrace.exceptions import DegenerateGeometryError, InvalidObserverError
from orbtrace.utils.constants import DEGENERATE_RANGE_KM, EARTH_ROTATION_RAD_S

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObserverPosition:
    """A ground observer.

    Attributes:
        latitude_deg: Geodetic latitude in degrees, [-90, 90].
        longitude_deg: Longitude in degrees, [-180, 180].
        altitude_m: Height above the ellipsoid in meters.

    Raises:
        InvalidObserverError: If a coordinate is out of range or not finite.
    """

    latitude_deg: float
    longitude_deg: float
    altitude_m: float = 0.0

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude_deg <= 90.0:
            raise InvalidObserverError(
                f"Observer latitude must be between -90 and 90 degrees, got {self.latitude_deg}"
            )
        if not -180.0 <= self.longitude_deg <= 180.0:
            raise InvalidObserverError(
                f"Observer longitude must be between -180 and 180 degrees, got {self.longitude_deg}"
            )
        if not math.isfinite(self.altitude_m):
            raise InvalidObserverError(f"Observer altitude must be finite, got {self.altitude_m}")

    @property
    def altitude_km(self) -> float:
        return self.altitude_m / 1000.0


@dataclass(frozen=True)
class LookAngles:
    """Direction and distance from an observer to a satellite.

    Attributes:
        azimuth_deg: Clockwise from north, [0, 360).
        elevation_deg: Above the local horizontal, [-90, 90].
        range_km: Observer-to-satellite distance.
        range_rate_km_s: Rate of change of range; positive when receding.
    """

    azimuth_deg: float
    elevation_deg: float
    range_km: float
    range_rate_km_s: float

    @property
    def visible(self) -> bool:
        """True when the satellite is above the geometric horizon."""
        return self.elevation_deg > 0.0


def compute_look_angles(
    state: StateVector, observer: ObserverPosition, when: datetime | None = None
) -> LookAngles:
    """Look angles from a ground observer to a satellite.

    The observer is placed in the inertial frame at the instant, and the
    topocentric vector is rotated into the observer's South-East-Zenith
    horizon frame. Range-rate is the relative velocity, with the observer
    carried by Earth's rotation, projected on the line of sight.

    Args:
        state: Inertial satellite state.
        observer: Ground observer.
        when: Instant of the geometry. Defaults to ``state.epoch``.

    Returns:
        The observer's look angles to the satellite.

    Raises:
        DegenerateGeometryError: If observer and satellite coincide.
    """
    t = as_utc(when if when is not None else state.epoch)
    jd = julian_day_from_datetime(t)
    lat = math.radians(observer.latitude_deg)
    lon = math.radians(observer.longitude_deg)
    theta = gmst(jd) + lon  # local sidereal time

    observer_eci = geodetic_to_eci(lat, lon, observer.altitude_km, jd)
    rho = np.asarray(state.position_km, dtype=np.float64) - observer_eci
    range_km = float(np.linalg.norm(rho))
    if range_km < DEGENERATE_RANGE_KM:
        raise DegenerateGeometryError(
            f"Observer at ({observer.latitude_deg}, {observer.longitude_deg}) coincides "
            f"with the satellite at {t.isoformat()}; look angles are undefined"
        )

    sin_lat, cos_lat = math.sin(lat), math.cos(lat)
    sin_theta, cos_theta = math.sin(theta), math.cos(theta)
    rx, ry, rz = rho

    south = sin_lat * cos_theta * rx + sin_lat * sin_theta * ry - cos_lat * rz
    east = -sin_theta * rx + cos_theta * ry
    zenith = cos_lat * cos_theta * rx + cos_lat * sin_theta * ry + sin_lat * rz

    azimuth = math.degrees(math.atan2(east, -south)) % 360.0
    if azimuth >= 360.0:
        azimuth = 0.0
    elevation = math.degrees(math.asin(max(-1.0, min(1.0, zenith / range_km))))

    observer_velocity = np.array(
        [-EARTH_ROTATION_RAD_S * observer_eci[1], EARTH_ROTATION_RAD_S * observer_eci[0], 0.0]
    )
    relative_velocity = np.asarray(state.velocity_km_s, dtype=np.float64) - observer_velocity
    range_rate = float(np.dot(relative_velocity, rho) / range_km)

    return LookAngles(
        azimuth_deg=float(azimuth),
        elevation_deg=float(elevation),
        range_km=range_km,
        range_rate_km_s=range_rate,
    )
