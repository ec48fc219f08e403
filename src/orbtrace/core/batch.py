"""Sampling many satellites concurrently.

Each element set gets its own sampler run on a thread pool. Runs share no
mutable state; each result is written to its input's slot in a pre-sized
list and the call returns once every worker has finished.
:func:`summarize_batch` reduces the results to counts and orbit statistics.
"""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta

from orbtrace.config import DEFAULT_SETTINGS, Settings
from orbtrace.core.elements import OrbitalElementSet
from orbtrace.core.sampler import PositionSample, Propagator, SampledTrajectory, sample_positions, sample_times
from orbtrace.exceptions import OrbtraceError
from orbtrace.utils.constants import EARTH_MU_KM3_S2 as MU, EARTH_RADIUS_KM as RE, SECONDS_PER_DAY, TWO_PI

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one satellite's sampler run.

    Attributes:
        elements: The element set that was sampled.
        trajectory: The samples, when the run succeeded.
        error: The error that aborted the run, when it failed.
    """

    elements: OrbitalElementSet
    trajectory: SampledTrajectory[PositionSample] | None = None
    error: OrbtraceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def sample_batch(
    element_sets: list[OrbitalElementSet],
    start: datetime,
    end: datetime,
    interval: timedelta,
    *,
    propagator: Propagator | None = None,
    settings: Settings = DEFAULT_SETTINGS,
    max_workers: int | None = None,
) -> list[BatchResult]:
    """Sample positions for many satellites over the same time range.

    A failure for one satellite is recorded in its result and does not
    affect the others.

    Args:
        element_sets: Element sets to sample.
        start: First instant.
        end: Inclusive upper bound.
        interval: Spacing between samples.
        propagator: Propagation kernel; defaults to SGP4.
        settings: Sampling limits. ``settings.max_workers`` sizes the pool
            unless ``max_workers`` is given.
        max_workers: Thread pool size override.

    Returns:
        One BatchResult per element set, in input order.

    Raises:
        InvalidRangeError: If the range or interval is unusable.
    """
    sample_times(start, end, interval, settings.max_samples)
    if not element_sets:
        return []

    results: list[BatchResult | None] = [None] * len(element_sets)

    def _work(index: int, elements: OrbitalElementSet) -> None:
        try:
            trajectory = sample_positions(
                elements, start, end, interval, propagator=propagator, settings=settings
            )
        except OrbtraceError as exc:
            results[index] = BatchResult(elements=elements, error=exc)
            return
        results[index] = BatchResult(elements=elements, trajectory=trajectory)

    workers = max_workers or settings.max_workers
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="orbtrace") as executor:
        futures = [executor.submit(_work, i, e) for i, e in enumerate(element_sets)]
        for future in futures:
            future.result()

    completed = [r for r in results if r is not None]
    successful = sum(1 for r in completed if r.ok)
    logger.debug("Batch sampling complete: %d/%d successful", successful, len(element_sets))
    return completed


@dataclass(frozen=True)
class BatchSummary:
    """Aggregate statistics over a batch run.

    Averages and altitude bounds only cover successful results whose
    elements carry the field; they are None when no result does.

    Attributes:
        total_processed: Number of results summarised.
        successful: Results without an error.
        failed: Results with an error.
        average_inclination_deg: Mean inclination of successful results.
        average_mean_motion: Mean of the mean motions (rev/day).
        lowest_altitude_km: Smallest altitude estimated from mean motion.
        highest_altitude_km: Largest altitude estimated from mean motion.
    """

    total_processed: int = 0
    successful: int = 0
    failed: int = 0
    average_inclination_deg: float | None = None
    average_mean_motion: float | None = None
    lowest_altitude_km: float | None = None
    highest_altitude_km: float | None = None


def altitude_from_mean_motion(mean_motion: float) -> float:
    """Altitude of the semi-major axis implied by a mean motion.

    Args:
        mean_motion: Mean motion in revolutions per day. Must be positive.

    Returns:
        Semi-major axis minus the equatorial radius, in km.
    """
    n_rad_per_sec = mean_motion * TWO_PI / SECONDS_PER_DAY
    a = (MU / (n_rad_per_sec ** 2)) ** (1.0 / 3.0)
    return a - RE


def summarize_batch(results: list[BatchResult]) -> BatchSummary:
    """Summarise the element sets of a batch run.

    Inclinations and mean motions that are missing or not positive are
    skipped, as are altitude estimates below the surface.

    Args:
        results: Output of :func:`sample_batch`.

    Returns:
        Counts, averages and altitude bounds for the batch.
    """
    if not results:
        return BatchSummary()

    inclinations: list[float] = []
    mean_motions: list[float] = []
    altitudes: list[float] = []
    successful = 0

    for result in results:
        if not result.ok:
            continue
        successful += 1
        elements = result.elements
        if elements.inclination_deg is not None and elements.inclination_deg > 0:
            inclinations.append(elements.inclination_deg)
        if elements.mean_motion is not None and elements.mean_motion > 0:
            mean_motions.append(elements.mean_motion)
            altitude = altitude_from_mean_motion(elements.mean_motion)
            if math.isfinite(altitude) and altitude > 0:
                altitudes.append(altitude)

    return BatchSummary(
        total_processed=len(results),
        successful=successful,
        failed=len(results) - successful,
        average_inclination_deg=sum(inclinations) / len(inclinations) if inclinations else None,
        average_mean_motion=sum(mean_motions) / len(mean_motions) if mean_motions else None,
        lowest_altitude_km=min(altitudes) if altitudes else None,
        highest_altitude_km=max(altitudes) if altitudes else None,
    )
