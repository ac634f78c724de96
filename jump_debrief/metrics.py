"""Per-phase performance metrics computed from finished segments."""

from __future__ import annotations
from datetime import timedelta
from typing import Callable, Optional, Sequence

import numpy as np

from .domain import (
    CanopyMetrics,
    FreefallMetrics,
    LandingMetrics,
    PerformanceMetrics,
    Phase,
    Sample,
    Segment,
    SegmentationProfile,
)
from .geo import distance_m
from .segments import find_segment


# Final approach = this much canopy flight before the landing boundary
FINAL_APPROACH_WINDOW_S = 10.0

# Pattern-altitude heuristic
PATTERN_AGL_LIMIT_M = 300.0  # only look for the pattern below this height above the lowest canopy point
PATTERN_TURN_RATE_RAD = 0.05  # ~3 deg of ground-track change per sample counts as turning
PATTERN_WINDOW_SAMPLES = 10
PATTERN_MIN_WINDOW_SAMPLES = 5

PatternDetector = Callable[[Sequence[Sample]], Optional[float]]


# -----------------------------
# Helpers
# -----------------------------

def _times_s(samples: Sequence[Sample]) -> np.ndarray:
    if len(samples) == 0:
        return np.zeros(0)
    t0 = samples[0].time
    return np.array([(s.time - t0).total_seconds() for s in samples], dtype=float)


def _column(samples: Sequence[Sample], attr: str) -> np.ndarray:
    return np.array([getattr(s, attr) for s in samples], dtype=float)


def circular_mean_deg(angles_rad: np.ndarray) -> Optional[float]:
    """
    Mean heading in degrees (-180..180], averaging unit vectors so that
    headings either side of +-180 deg do not cancel into 0.

    Returns None for no angles, or when the unit vectors cancel out.
    """
    a = np.asarray(angles_rad, dtype=float)
    if len(a) == 0:
        return None
    s = float(np.mean(np.sin(a)))
    c = float(np.mean(np.cos(a)))
    if np.hypot(s, c) < 1e-12:
        return None
    return float(np.degrees(np.arctan2(s, c)))


def horizontal_distance_m(samples: Sequence[Sample]) -> float:
    """Distance over ground, integrating horizontal speed over each sample interval."""
    if len(samples) < 2:
        return 0.0
    dt = np.diff(_times_s(samples))
    speed = _column(samples, "horizontal_speed")
    return float(np.sum(speed[1:] * dt))


def glide_ratio(distance_m: float, altitude_lost_m: float) -> Optional[float]:
    if altitude_lost_m <= 0:
        return None
    return distance_m / altitude_lost_m


# -----------------------------
# Optional detectors
# -----------------------------

def detect_pattern_altitude(samples: Sequence[Sample]) -> Optional[float]:
    """
    Altitude where the landing pattern starts: the first sample below
    PATTERN_AGL_LIMIT_M (above the lowest point of `samples`) followed by
    sustained turning. Returns None if no such turn sequence exists.
    """
    n = len(samples)
    if n == 0:
        return None

    alt = _column(samples, "alt_msl_m")
    track = _column(samples, "ground_track")
    ground = float(np.min(alt))

    # Absolute heading change per step, wrapped into [0, pi]
    change = np.abs(np.diff(track))
    change = np.where(change > np.pi, 2 * np.pi - change, change)

    edge = PATTERN_WINDOW_SAMPLES
    for i in range(edge, n - edge):
        if alt[i] - ground >= PATTERN_AGL_LIMIT_M:
            continue
        win = min(PATTERN_WINDOW_SAMPLES, n - i - 1)
        if win < PATTERN_MIN_WINDOW_SAMPLES:
            break
        if float(np.mean(change[i:i + win - 1])) > PATTERN_TURN_RATE_RAD:
            return float(alt[i])
    return None


# -----------------------------
# Per-phase metrics
# -----------------------------

def freefall_metrics(segment: Optional[Segment]) -> Optional[FreefallMetrics]:
    if segment is None or len(segment) == 0:
        return None
    samples = segment.samples
    vertical = _column(samples, "vertical_speed")
    return FreefallMetrics(
        avg_vertical_speed=float(np.mean(vertical)),
        max_vertical_speed=float(np.max(vertical)),
        avg_horizontal_speed=float(np.mean(_column(samples, "horizontal_speed"))),
        track_angle_deg=circular_mean_deg(_column(samples, "ground_track")),
        time_in_freefall_s=segment.duration_s,
    )


def canopy_metrics(
    segment: Optional[Segment],
    pattern_detector: Optional[PatternDetector] = None,
) -> Optional[CanopyMetrics]:
    if segment is None or len(segment) == 0:
        return None
    samples = segment.samples

    return CanopyMetrics(
        deployment_alt_m=float(segment.start_alt_m),    # altitude once the canopy is flying
        avg_descent_rate=float(np.mean(_column(samples, "vertical_speed"))),
        glide_ratio=glide_ratio(
            horizontal_distance_m(samples), segment.start_alt_m - segment.end_alt_m
        ),
        max_horizontal_speed=float(np.max(_column(samples, "horizontal_speed"))),
        total_canopy_time_s=segment.duration_s,
        pattern_alt_m=pattern_detector(samples) if pattern_detector is not None else None,
    )


def landing_metrics(
    segment: Optional[Segment],
    canopy: Optional[Segment],
    profile: SegmentationProfile,
    landing_target: Optional[tuple[float, float]] = None,
) -> Optional[LandingMetrics]:
    if segment is None or len(segment) == 0:
        return None

    approach: list[Sample] = []
    if canopy is not None:
        cutoff = segment.start_time - timedelta(seconds=FINAL_APPROACH_WINDOW_S)
        approach = [s for s in canopy.samples if s.time >= cutoff]

    final_approach_speed = (
        float(np.mean(_column(approach, "horizontal_speed"))) if approach else None
    )

    # Touchdown: last sample before velD first drops under the landing threshold
    touchdown_track = approach + list(segment.samples)
    vel_d = _column(touchdown_track, "vel_d")
    below = np.where(vel_d < profile.landing_vel_d_threshold)[0]
    if len(below) == 0:
        touchdown = touchdown_track[-1]
    else:
        touchdown = touchdown_track[max(int(below[0]) - 1, 0)]

    accuracy = None
    if landing_target is not None:
        last = segment.samples[-1]
        accuracy = distance_m(last.lat_deg, last.lon_deg, landing_target[0], landing_target[1])

    return LandingMetrics(
        final_approach_speed=final_approach_speed,
        touchdown_vertical_speed=float(touchdown.vertical_speed),
        landing_accuracy_m=accuracy,
    )


def calculate_metrics(
    segments: Sequence[Segment],
    profile: Optional[SegmentationProfile] = None,
    pattern_detector: Optional[PatternDetector] = None,
    landing_target: Optional[tuple[float, float]] = None,
) -> PerformanceMetrics:
    """
    Compute freefall, canopy and landing metrics from a finished segment list.

    Args:
        segments: Ordered segments from build_segments
        profile: Thresholds (landing threshold is used for touchdown); defaults apply if None
        pattern_detector: Optional callable(canopy samples) -> pattern altitude
        landing_target: Optional (lat, lon) to measure landing accuracy against

    Returns:
        PerformanceMetrics; a phase missing from `segments` gives a None sub-record
    """
    profile = profile or SegmentationProfile()

    freefall = find_segment(segments, Phase.FREEFALL)
    canopy = find_segment(segments, Phase.CANOPY)
    landing = find_segment(segments, Phase.LANDING)

    return PerformanceMetrics(
        freefall=freefall_metrics(freefall),
        canopy=canopy_metrics(canopy, pattern_detector=pattern_detector),
        landing=landing_metrics(landing, canopy, profile, landing_target=landing_target),
    )
