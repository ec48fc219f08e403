"""Orbital propagation via SGP4.

The sgp4 library is the propagation kernel. This module adapts parsed
element sets to it and turns its error codes into
:class:`~orbtrace.exceptions.PropagationError`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import numpy as np

logger = logging.getLogger(__name__)
from numpy.typing import NDArray
from sgp4.api import SGP4_ERRORS, Satrec, SatrecArray, jday

from orbtrace.config import DEFAULT_SETTINGS, Settings
from orbtrace.core.elements import OrbitalElementSet
from orbtrace.exceptions import PropagationError
from orbtrace.utils.constants import SECONDS_PER_DAY


@dataclass
class StateVector:
    """Position and velocity in TEME frame.

    Attributes:
        position_km: [x, y, z] position in km.
        velocity_km_s: [vx, vy, vz] velocity in km/s.
        epoch: Time of this state vector (UTC).
    """

    position_km: NDArray[np.float64]  # shape (3,)
    velocity_km_s: NDArray[np.float64]  # shape (3,)
    epoch: datetime

    @property
    def speed_km_s(self) -> float:
        """Magnitude of the inertial velocity."""
        return float(np.linalg.norm(self.velocity_km_s))


def as_utc(t: datetime) -> datetime:
    """Return ``t`` as an aware UTC datetime. Naive values are taken as UTC."""
    if t.tzinfo is None:
        return t.replace(tzinfo=timezone.utc)
    return t.astimezone(timezone.utc)


def _jday(t: datetime) -> tuple[float, float]:
    return jday(t.year, t.month, t.day, t.hour, t.minute, t.second + t.microsecond / 1e6)


def _check_elements(elements: OrbitalElementSet) -> None:
    if not elements.valid:
        raise PropagationError(
            f"Cannot propagate invalid element set {elements.name!r}",
            catalog_number=elements.catalog_number,
        )
    if elements.mean_motion is None or elements.mean_motion <= 0.0:
        raise PropagationError(
            f"Non-positive mean motion ({elements.mean_motion}) for catalog {elements.catalog_number}",
            catalog_number=elements.catalog_number,
        )


def build_satrec(elements: OrbitalElementSet, settings: Settings = DEFAULT_SETTINGS) -> Satrec:
    """Initialise an sgp4 satellite record from an element set.

    Raises:
        PropagationError: If the element set is degenerate or sgp4 rejects it.
    """
    _check_elements(elements)
    try:
        satrec = Satrec.twoline2rv(elements.line1, elements.line2, settings.sgp4_gravity)
    except (ValueError, IndexError) as exc:
        raise PropagationError(
            f"sgp4 could not initialise catalog {elements.catalog_number}: {exc}",
            catalog_number=elements.catalog_number,
        ) from exc
    if satrec.error != 0:
        raise PropagationError(
            f"sgp4 initialisation failed for catalog {elements.catalog_number}: "
            f"{SGP4_ERRORS.get(satrec.error, 'unknown error')}",
            catalog_number=elements.catalog_number,
            sgp4_code=satrec.error,
        )
    return satrec


def _check_window(elements: OrbitalElementSet, t: datetime, settings: Settings) -> None:
    if settings.max_propagation_days is None:
        return
    if elements.epoch is None:
        return
    epoch = elements.epoch_datetime
    if epoch is None:
        raise PropagationError(
            f"Epoch {elements.epoch} of catalog {elements.catalog_number} is not a representable date",
            catalog_number=elements.catalog_number,
            when=t,
        )
    offset_days = abs((t - epoch).total_seconds()) / SECONDS_PER_DAY
    if offset_days > settings.max_propagation_days:
        raise PropagationError(
            f"{t.isoformat()} is {offset_days:.1f} days from the epoch of catalog "
            f"{elements.catalog_number} (limit {settings.max_propagation_days} days)",
            catalog_number=elements.catalog_number,
            when=t,
        )


def _evaluate(
    satrec: Satrec, elements: OrbitalElementSet, t: datetime, settings: Settings
) -> StateVector:
    t = as_utc(t)
    _check_window(elements, t, settings)

    jd, fr = _jday(t)
    error_code, pos, vel = satrec.sgp4(jd, fr)

    if error_code != 0:
        logger.warning(
            "SGP4 propagation failed for catalog %s at %s: error code %d",
            elements.catalog_number, t, error_code,
        )
        raise PropagationError(
            f"SGP4 propagation failed for catalog {elements.catalog_number} at {t}: "
            f"{SGP4_ERRORS.get(error_code, 'unknown error')} (code {error_code})",
            catalog_number=elements.catalog_number,
            when=t,
            sgp4_code=error_code,
        )

    position = np.array(pos, dtype=np.float64)
    velocity = np.array(vel, dtype=np.float64)
    if not (np.all(np.isfinite(position)) and np.all(np.isfinite(velocity))):
        raise PropagationError(
            f"SGP4 returned a non-finite state for catalog {elements.catalog_number} at {t}",
            catalog_number=elements.catalog_number,
            when=t,
        )
    return StateVector(position_km=position, velocity_km_s=velocity, epoch=t)


def propagate(
    elements: OrbitalElementSet, when: datetime, settings: Settings = DEFAULT_SETTINGS
) -> StateVector:
    """Propagate an element set to a single instant.

    Args:
        elements: A parsed element set.
        when: UTC instant (naive datetimes are taken as UTC).
        settings: Gravity model and validity window.

    Returns:
        The inertial state at ``when``.

    Raises:
        PropagationError: If the element set is degenerate, the instant is
            outside the validity window, or SGP4 reports an error.
    """
    return _evaluate(build_satrec(elements, settings), elements, when, settings)


def propagate_many(
    elements: OrbitalElementSet, times: list[datetime], settings: Settings = DEFAULT_SETTINGS
) -> list[StateVector]:
    """Propagate a single element set to multiple times.

    Args:
        elements: A parsed element set.
        times: List of UTC datetimes to propagate to.
        settings: Gravity model and validity window.

    Returns:
        List of StateVector objects, one per requested time.

    Raises:
        PropagationError: On the first time SGP4 cannot be evaluated.
    """
    satrec = build_satrec(elements, settings)
    result = [_evaluate(satrec, elements, t, settings) for t in times]
    logger.debug("Propagated catalog %s to %d times", elements.catalog_number, len(times))
    return result


def propagate_batch(
    element_sets: list[OrbitalElementSet], when: datetime, settings: Settings = DEFAULT_SETTINGS
) -> tuple[NDArray[np.float64], NDArray[np.bool_]]:
    """Propagate many element sets to a single time using vectorized SGP4.

    Uses SatrecArray for C-level batch propagation. Element sets that cannot
    be initialised are reported through the mask instead of raising.

    Args:
        element_sets: Element sets to propagate.
        when: Single UTC datetime to propagate all objects to.
        settings: Gravity model.

    Returns:
        Tuple of:
            - states: Array of shape (n, 6) with [x,y,z,vx,vy,vz] in km, km/s
              (NaN rows where propagation failed)
            - valid_mask: Boolean array of shape (n,) indicating which propagations succeeded
    """
    n = len(element_sets)
    result = np.full((n, 6), np.nan, dtype=np.float64)
    valid_mask = np.zeros(n, dtype=np.bool_)
    if not element_sets:
        return result, valid_mask

    indices: list[int] = []
    satrecs: list[Satrec] = []
    for i, elements in enumerate(element_sets):
        try:
            satrecs.append(build_satrec(elements, settings))
        except PropagationError as exc:
            logger.warning("Excluding element set %r from batch: %s", elements.name, exc)
            continue
        indices.append(i)

    if not satrecs:
        return result, valid_mask

    jd, fr = _jday(as_utc(when))
    # SatrecArray requires arrays, not scalars
    errors, positions, velocities = SatrecArray(satrecs).sgp4(
        np.array([jd], dtype=np.float64), np.array([fr], dtype=np.float64)
    )

    # Output shape: errors (m,1), positions (m,1,3), velocities (m,1,3)
    rows = np.array(indices)
    result[rows, 0:3] = positions[:, 0, :]
    result[rows, 3:6] = velocities[:, 0, :]
    valid_mask[rows] = errors[:, 0] == 0
    result[~valid_mask] = np.nan

    logger.debug("Batch propagated %d/%d element sets", int(valid_mask.sum()), n)
    return result, valid_mask
