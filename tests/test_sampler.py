"""Tests for single-epoch evaluation and time-series sampling."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from orbtrace.config import Settings
from orbtrace.core.elements import OrbitalElementSet
from orbtrace.core.look_angles import ObserverPosition
from orbtrace.core.propagation import StateVector
from orbtrace.core.sampler import (
    LookAngleSample,
    PositionSample,
    SampledTrajectory,
    look_angles_at,
    position_at,
    sample_look_angles,
    sample_positions,
    sample_times,
)
from orbtrace.exceptions import FormatError, InvalidRangeError, PropagationError

LINE1 = "1 25544U 98067A   04236.56031392  .00020137  00000-0  16538-3 0  9993"
LINE2 = "2 25544  51.6335 344.7760 0007976 126.2523 325.9359 15.70406856328906"
ISS_3LE = f"ISS (ZARYA)\n{LINE1}\n{LINE2}\n"

EPOCH = datetime(2004, 8, 23, 13, 30, 0, tzinfo=timezone.utc)
MINUTE = timedelta(minutes=1)


class CountingPropagator:
    """Stand-in kernel returning a fixed state, optionally failing on the nth call."""

    def __init__(self, fail_on: int | None = None) -> None:
        self.calls: list[datetime] = []
        self.fail_on = fail_on

    def __call__(self, elements: OrbitalElementSet, when: datetime) -> StateVector:
        self.calls.append(when)
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise PropagationError("kernel failure", catalog_number=elements.catalog_number, when=when)
        return StateVector(
            position_km=np.array([7000.0, 0.0, 0.0]),
            velocity_km_s=np.array([0.0, 7.5, 0.0]),
            epoch=when,
        )


@pytest.fixture
def iss() -> OrbitalElementSet:
    return OrbitalElementSet.from_lines(LINE1, LINE2, name="ISS (ZARYA)")


class TestSampleTimes:
    def test_single_instant(self) -> None:
        assert sample_times(EPOCH, EPOCH, MINUTE) == [EPOCH]

    def test_end_inclusive(self) -> None:
        assert sample_times(EPOCH, EPOCH + MINUTE, MINUTE) == [EPOCH, EPOCH + MINUTE]

    def test_count(self) -> None:
        times = sample_times(EPOCH, EPOCH + 8 * MINUTE, MINUTE)
        assert len(times) == 9
        assert times[-1] == EPOCH + 8 * MINUTE

    def test_partial_step_not_included(self) -> None:
        times = sample_times(EPOCH, EPOCH + timedelta(minutes=8, seconds=30), MINUTE)
        assert len(times) == 9
        assert times[-1] <= EPOCH + timedelta(minutes=8, seconds=30)

    def test_instants_are_exact_multiples(self) -> None:
        interval = timedelta(seconds=0.1)
        times = sample_times(EPOCH, EPOCH + timedelta(seconds=10), interval)
        assert len(times) == 101
        assert all(t == EPOCH + k * interval for k, t in enumerate(times))

    def test_naive_is_utc(self) -> None:
        times = sample_times(datetime(2024, 1, 1), datetime(2024, 1, 1, 0, 2), MINUTE)
        assert all(t.tzinfo == timezone.utc for t in times)

    def test_start_after_end(self) -> None:
        with pytest.raises(InvalidRangeError, match="after end time"):
            sample_times(EPOCH + MINUTE, EPOCH, MINUTE)

    @pytest.mark.parametrize("interval", [timedelta(0), timedelta(seconds=-1)])
    def test_non_positive_interval(self, interval: timedelta) -> None:
        with pytest.raises(InvalidRangeError, match="must be positive") as excinfo:
            sample_times(EPOCH, EPOCH + MINUTE, interval)
        assert isinstance(excinfo.value, ValueError)

    def test_unlimited_by_default(self) -> None:
        times = sample_times(EPOCH, EPOCH + timedelta(days=2), timedelta(seconds=1))
        assert len(times) == 172_801
        assert times[-1] == EPOCH + timedelta(days=2)

    def test_max_samples(self) -> None:
        sample_times(EPOCH, EPOCH + 4 * MINUTE, MINUTE, max_samples=5)
        with pytest.raises(InvalidRangeError, match="limit 5"):
            sample_times(EPOCH, EPOCH + 5 * MINUTE, MINUTE, max_samples=5)


class TestSingleEpoch:
    def test_position_at(self, iss: OrbitalElementSet) -> None:
        sample = position_at(iss, EPOCH)
        assert isinstance(sample, PositionSample)
        assert sample.epoch == EPOCH
        assert -52.0 <= sample.position.latitude_deg <= 52.0
        assert 250.0 < sample.position.altitude_km < 500.0
        assert 7.0 < sample.speed_km_s < 8.0

    def test_custom_propagator(self, iss: OrbitalElementSet) -> None:
        kernel = CountingPropagator()
        sample = position_at(iss, EPOCH.replace(tzinfo=None), propagator=kernel)
        assert kernel.calls == [EPOCH]
        assert sample.speed_km_s == pytest.approx(7.5)
        assert sample.position.altitude_km == pytest.approx(7000.0 - 6378.137)

    def test_look_angles_at(self, iss: OrbitalElementSet) -> None:
        sample = look_angles_at(iss, ObserverPosition(28.5, -80.6), EPOCH)
        assert isinstance(sample, LookAngleSample)
        assert 0.0 <= sample.look_angles.azimuth_deg < 360.0
        assert -90.0 <= sample.look_angles.elevation_deg <= 90.0
        assert sample.look_angles.range_km > 250.0


class TestSamplePositions:
    def test_counts(self, iss: OrbitalElementSet) -> None:
        for minutes, expected in ((0, 1), (1, 2), (8, 9)):
            kernel = CountingPropagator()
            trajectory = sample_positions(iss, EPOCH, EPOCH + minutes * MINUTE, MINUTE, propagator=kernel)
            assert len(trajectory) == expected
            assert len(kernel.calls) == expected

    def test_invalid_range_before_propagation(self, iss: OrbitalElementSet) -> None:
        kernel = CountingPropagator()
        with pytest.raises(InvalidRangeError):
            sample_positions(iss, EPOCH + MINUTE, EPOCH, MINUTE, propagator=kernel)
        assert kernel.calls == []

    def test_invalid_range_before_parsing(self) -> None:
        # An unparseable source is not looked at when the range is bad
        with pytest.raises(InvalidRangeError):
            sample_positions("not an element set", EPOCH, EPOCH, timedelta(0))

    def test_max_samples_setting(self, iss: OrbitalElementSet) -> None:
        kernel = CountingPropagator()
        with pytest.raises(InvalidRangeError):
            sample_positions(
                iss, EPOCH, EPOCH + 10 * MINUTE, MINUTE,
                propagator=kernel, settings=Settings(max_samples=10),
            )
        assert kernel.calls == []

    def test_fail_fast(self, iss: OrbitalElementSet) -> None:
        kernel = CountingPropagator(fail_on=3)
        with pytest.raises(PropagationError, match="kernel failure") as excinfo:
            sample_positions(iss, EPOCH, EPOCH + 8 * MINUTE, MINUTE, propagator=kernel)
        assert len(kernel.calls) == 3
        assert excinfo.value.when == EPOCH + 2 * MINUTE

    def test_samples_in_order(self, iss: OrbitalElementSet) -> None:
        trajectory = sample_positions(iss, EPOCH, EPOCH + 8 * MINUTE, MINUTE, propagator=CountingPropagator())
        assert trajectory.epochs == [EPOCH + k * MINUTE for k in range(9)]

    def test_real_orbit(self, iss: OrbitalElementSet) -> None:
        trajectory = sample_positions(iss, EPOCH, EPOCH + 30 * MINUTE, 5 * MINUTE)
        assert len(trajectory) == 7
        for sample in trajectory:
            assert 250.0 < sample.position.altitude_km < 500.0
            assert 7.0 < sample.speed_km_s < 8.0
            assert -90.0 <= sample.position.latitude_deg <= 90.0
            assert -180.0 <= sample.position.longitude_deg <= 180.0
        latitudes = [s.position.latitude_deg for s in trajectory]
        assert max(latitudes) - min(latitudes) > 10.0

    def test_deterministic(self, iss: OrbitalElementSet) -> None:
        a = sample_positions(iss, EPOCH, EPOCH + 20 * MINUTE, MINUTE)
        b = sample_positions(iss, EPOCH, EPOCH + 20 * MINUTE, MINUTE)
        assert np.array_equal(a.as_array(), b.as_array())
        assert a == b

    def test_text_sources(self, iss: OrbitalElementSet) -> None:
        from_3le = sample_positions(ISS_3LE, EPOCH, EPOCH + 4 * MINUTE, MINUTE)
        from_2le = sample_positions(f"{LINE1}\n{LINE2}", EPOCH, EPOCH + 4 * MINUTE, MINUTE)
        from_record = sample_positions(iss, EPOCH, EPOCH + 4 * MINUTE, MINUTE)
        assert np.array_equal(from_3le.as_array(), from_record.as_array())
        assert np.array_equal(from_2le.as_array(), from_record.as_array())

    def test_bad_text_source(self) -> None:
        with pytest.raises(FormatError):
            sample_positions(LINE1, EPOCH, EPOCH + MINUTE, MINUTE)

    def test_text_with_broken_contract(self) -> None:
        with pytest.raises(FormatError):
            sample_positions(f"{LINE1}\nX 25544", EPOCH, EPOCH + MINUTE, MINUTE)

    def test_restartable_iteration(self, iss: OrbitalElementSet) -> None:
        trajectory = sample_positions(iss, EPOCH, EPOCH + 3 * MINUTE, MINUTE, propagator=CountingPropagator())
        assert list(trajectory) == list(trajectory)
        assert trajectory[0].epoch == EPOCH
        assert isinstance(trajectory, SampledTrajectory)

    def test_as_array_shape(self, iss: OrbitalElementSet) -> None:
        trajectory = sample_positions(iss, EPOCH, EPOCH + 3 * MINUTE, MINUTE)
        array = trajectory.as_array()
        assert array.shape == (4, 3)
        assert array[0, 2] == pytest.approx(trajectory[0].position.altitude_km)

    def test_empty_as_array(self) -> None:
        assert SampledTrajectory(()).as_array().shape == (0, 3)

    def test_validity_window_aborts(self, iss: OrbitalElementSet) -> None:
        with pytest.raises(PropagationError):
            sample_positions(
                iss, EPOCH, EPOCH + timedelta(days=3), timedelta(hours=12),
                settings=Settings(max_propagation_days=1.0),
            )


class TestSampleLookAngles:
    def test_real_orbit(self, iss: OrbitalElementSet) -> None:
        observer = ObserverPosition(28.5, -80.6, 3.0)
        trajectory = sample_look_angles(iss, observer, EPOCH, EPOCH + 90 * MINUTE, 2 * MINUTE)
        assert len(trajectory) == 46
        for sample in trajectory:
            angles = sample.look_angles
            assert 0.0 <= angles.azimuth_deg < 360.0
            assert -90.0 <= angles.elevation_deg <= 90.0
            assert 250.0 < angles.range_km < 13500.0
            assert abs(angles.range_rate_km_s) < 9.0

    def test_invalid_range(self, iss: OrbitalElementSet) -> None:
        kernel = CountingPropagator()
        with pytest.raises(InvalidRangeError):
            sample_look_angles(iss, ObserverPosition(0.0, 0.0), EPOCH, EPOCH - MINUTE, MINUTE, propagator=kernel)
        assert kernel.calls == []

    def test_fail_fast(self, iss: OrbitalElementSet) -> None:
        kernel = CountingPropagator(fail_on=1)
        with pytest.raises(PropagationError):
            sample_look_angles(iss, ObserverPosition(0.0, 0.0), EPOCH, EPOCH + MINUTE, MINUTE, propagator=kernel)
        assert len(kernel.calls) == 1
