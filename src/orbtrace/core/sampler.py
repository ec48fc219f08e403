"""Single-epoch evaluation and time-series sampling.

A sampler run evaluates the pipeline (propagate, convert to geodetic,
optionally compute look angles) at ``start``, ``start + interval``, ... up
to and including ``end``. Runs are deterministic and fail fast: the first
sample that cannot be computed aborts the whole run.
"""
from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, TypeVar, Union

import numpy as np
from numpy.typing import NDArray

from orbtrace.config import DEFAULT_SETTINGS, Settings
from orbtrace.core.elements import OrbitalElementSet, split_element_text
from orbtrace.core.frames import GeodeticPosition, gmst, julian_day_from_datetime
from orbtrace.core.look_angles import LookAngles, ObserverPosition, compute_look_angles
from orbtrace.core.propagation import StateVector, as_utc, propagate
from orbtrace.exceptions import InvalidRangeError, OrbtraceError

logger = logging.getLogger(__name__)

Propagator = Callable[[OrbitalElementSet, datetime], StateVector]
"""Anything that maps an element set and instant to an inertial state."""

ElementSource = Union[OrbitalElementSet, str]


@dataclass(frozen=True)
class PositionSample:
    """Where a satellite is at one instant.

    Attributes:
        epoch: UTC instant.
        position: Sub-satellite point and altitude.
        speed_km_s: Inertial speed.
    """

    epoch: datetime
    position: GeodeticPosition
    speed_km_s: float


@dataclass(frozen=True)
class LookAngleSample:
    """Satellite position and its look angles from an observer at one instant."""

    epoch: datetime
    position: GeodeticPosition
    look_angles: LookAngles


S = TypeVar("S", PositionSample, LookAngleSample)


@dataclass(frozen=True)
class SampledTrajectory(Generic[S]):
    """An ordered, finite sequence of samples.

    Backed by a tuple, so it can be iterated any number of times.
    """

    samples: tuple[S, ...]

    def __iter__(self) -> Iterator[S]:
        return iter(self.samples)

    def __len__(self) -> int:
        return len(self.samples)

    def __getitem__(self, index: int) -> S:
        return self.samples[index]

    @property
    def epochs(self) -> list[datetime]:
        return [s.epoch for s in self.samples]

    def as_array(self) -> NDArray[np.float64]:
        """Positions as an (n, 3) array of [latitude_deg, longitude_deg, altitude_km]."""
        if not self.samples:
            return np.empty((0, 3), dtype=np.float64)
        return np.array(
            [
                (s.position.latitude_deg, s.position.longitude_deg, s.position.altitude_km)
                for s in self.samples
            ],
            dtype=np.float64,
        )


def _resolve_propagator(propagator: Propagator | None, settings: Settings) -> Propagator:
    if propagator is not None:
        return propagator
    return functools.partial(propagate, settings=settings)


def _resolve_source(source: ElementSource) -> OrbitalElementSet:
    if isinstance(source, OrbitalElementSet):
        return source
    name, line1, line2 = split_element_text(source)
    return OrbitalElementSet.from_lines(line1, line2, name=name)


def sample_times(
    start: datetime,
    end: datetime,
    interval: timedelta,
    max_samples: int | None = None,
) -> list[datetime]:
    """Instants ``start + k * interval`` that do not pass ``end``.

    Args:
        start: First instant.
        end: Inclusive upper bound.
        interval: Spacing between samples, must be positive.
        max_samples: Largest number of instants allowed, or None for no limit.

    Returns:
        The sampling instants as UTC datetimes, in order.

    Raises:
        InvalidRangeError: If ``start > end``, ``interval <= 0``, or the range
            would produce more than ``max_samples`` instants.
    """
    if interval <= timedelta(0):
        raise InvalidRangeError(f"Sampling interval must be positive, got {interval}")
    start = as_utc(start)
    end = as_utc(end)
    if start > end:
        raise InvalidRangeError(
            f"Start time {start.isoformat()} is after end time {end.isoformat()}"
        )

    count = (end - start) // interval + 1
    if max_samples is not None and count > max_samples:
        raise InvalidRangeError(
            f"Range {start.isoformat()} to {end.isoformat()} at {interval} "
            f"needs {count} samples (limit {max_samples})"
        )
    return [start + k * interval for k in range(count)]


def position_at(
    elements: OrbitalElementSet,
    when: datetime,
    propagator: Propagator | None = None,
    settings: Settings = DEFAULT_SETTINGS,
) -> PositionSample:
    """Geodetic position of a satellite at one instant.

    Raises:
        PropagationError: If the kernel cannot evaluate the instant.
    """
    t = as_utc(when)
    state = _resolve_propagator(propagator, settings)(elements, t)
    position = GeodeticPosition.from_eci(state.position_km, gmst(julian_day_from_datetime(t)))
    return PositionSample(epoch=t, position=position, speed_km_s=state.speed_km_s)


def look_angles_at(
    elements: OrbitalElementSet,
    observer: ObserverPosition,
    when: datetime,
    propagator: Propagator | None = None,
    settings: Settings = DEFAULT_SETTINGS,
) -> LookAngleSample:
    """Position and look angles of a satellite from an observer at one instant.

    Raises:
        PropagationError: If the kernel cannot evaluate the instant.
        DegenerateGeometryError: If observer and satellite coincide.
    """
    t = as_utc(when)
    state = _resolve_propagator(propagator, settings)(elements, t)
    position = GeodeticPosition.from_eci(state.position_km, gmst(julian_day_from_datetime(t)))
    return LookAngleSample(
        epoch=t,
        position=position,
        look_angles=compute_look_angles(state, observer, t),
    )


def _run(times: list[datetime], evaluate: Callable[[datetime], S], label: str) -> SampledTrajectory[S]:
    samples: list[S] = []
    for t in times:
        try:
            samples.append(evaluate(t))
        except OrbtraceError as exc:
            logger.warning("Aborting %s sampling at %s: %s", label, t.isoformat(), exc)
            raise
    return SampledTrajectory(tuple(samples))


def sample_positions(
    source: ElementSource,
    start: datetime,
    end: datetime,
    interval: timedelta,
    *,
    propagator: Propagator | None = None,
    settings: Settings = DEFAULT_SETTINGS,
) -> SampledTrajectory[PositionSample]:
    """Sample a satellite's geodetic position over a time range.

    Args:
        source: Raw 2- or 3-line element text, or a parsed element set.
        start: First instant.
        end: Inclusive upper bound.
        interval: Spacing between samples.
        propagator: Propagation kernel; defaults to SGP4.
        settings: Sample limit, gravity model and validity window.

    Returns:
        The sampled trajectory.

    Raises:
        InvalidRangeError: If the range or interval is unusable. Raised
            before any parsing or propagation.
        FormatError: If ``source`` is text that cannot be parsed.
        PropagationError: On the first instant that cannot be propagated.
    """
    times = sample_times(start, end, interval, settings.max_samples)
    elements = _resolve_source(source)
    propagate_fn = _resolve_propagator(propagator, settings)

    trajectory = _run(times, lambda t: position_at(elements, t, propagate_fn), "position")
    logger.debug("Sampled %d positions for catalog %s", len(trajectory), elements.catalog_number)
    return trajectory


def sample_look_angles(
    source: ElementSource,
    observer: ObserverPosition,
    start: datetime,
    end: datetime,
    interval: timedelta,
    *,
    propagator: Propagator | None = None,
    settings: Settings = DEFAULT_SETTINGS,
) -> SampledTrajectory[LookAngleSample]:
    """Sample a satellite's look angles from an observer over a time range.

    Same contract as :func:`sample_positions`; additionally raises
    :class:`~orbtrace.exceptions.DegenerateGeometryError` if the observer
    coincides with the satellite at a sampled instant.
    """
    times = sample_times(start, end, interval, settings.max_samples)
    elements = _resolve_source(source)
    propagate_fn = _resolve_propagator(propagator, settings)

    trajectory = _run(
        times, lambda t: look_angles_at(elements, observer, t, propagate_fn), "look-angle"
    )
    logger.debug("Sampled %d look angles for catalog %s", len(trajectory), elements.catalog_number)
    return trajectory
