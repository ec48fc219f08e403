"""
orbtrace — Satellite ground tracks and look angles from TLE text.

Parses Two-Line Element records, propagates them with SGP4, and reports
geodetic positions and observer look angles at single instants or over
sampled time ranges.
"""

from __future__ import annotations

__version__ = "0.1.0.dev0"

from orbtrace.config import Settings, DEFAULT_SETTINGS
from orbtrace.core.elements import OrbitalElementSet, ParseResult, parse_element_set, parse_tle, split_element_text
from orbtrace.core.frames import GeodeticPosition, julian_day, gmst, eci_to_geodetic, geodetic_to_eci
from orbtrace.core.propagation import propagate, propagate_many, propagate_batch, StateVector
from orbtrace.core.look_angles import compute_look_angles, LookAngles, ObserverPosition
from orbtrace.core.sampler import (
    position_at,
    look_angles_at,
    sample_positions,
    sample_look_angles,
    PositionSample,
    LookAngleSample,
    SampledTrajectory,
)
from orbtrace.core.batch import sample_batch, summarize_batch, altitude_from_mean_motion, BatchResult, BatchSummary
from orbtrace.exceptions import (
    OrbtraceError,
    FormatError,
    PropagationError,
    DegenerateGeometryError,
    InvalidRangeError,
    InvalidObserverError,
)

__all__ = [
    "__version__",
    "Settings",
    "DEFAULT_SETTINGS",
    "OrbitalElementSet",
    "ParseResult",
    "parse_element_set",
    "parse_tle",
    "split_element_text",
    "GeodeticPosition",
    "julian_day",
    "gmst",
    "eci_to_geodetic",
    "geodetic_to_eci",
    "propagate",
    "propagate_many",
    "propagate_batch",
    "StateVector",
    "compute_look_angles",
    "LookAngles",
    "ObserverPosition",
    "position_at",
    "look_angles_at",
    "sample_positions",
    "sample_look_angles",
    "PositionSample",
    "LookAngleSample",
    "SampledTrajectory",
    "sample_batch",
    "BatchResult",
    "summarize_batch",
    "altitude_from_mean_motion",
    "BatchSummary",
    "OrbtraceError",
    "FormatError",
    "PropagationError",
    "DegenerateGeometryError",
    "InvalidRangeError",
    "InvalidObserverError",
]
