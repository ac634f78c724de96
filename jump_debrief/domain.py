from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import IntEnum
from typing import Any, Optional, Sequence


class ContractViolation(ValueError):
    """Caller broke an input precondition (empty / too short / unordered recording)."""


# -----------------------------
# Phases
# -----------------------------
class Phase(IntEnum):
    # Ordinal order is the order a jump happens in. Labels never go backwards.
    AIRCRAFT = 0
    EXIT = 1
    FREEFALL = 2
    DEPLOYMENT = 3
    CANOPY = 4
    LANDING = 5

    @property
    def label(self) -> str:
        return self.name.title()

    def __str__(self) -> str:
        return self.label


# -----------------------------
# Input sample
# -----------------------------
@dataclass(frozen=True)
class Sample:
    time: datetime
    lat_deg: float
    lon_deg: float
    alt_msl_m: float
    vel_n: float    # m/s, north
    vel_e: float    # m/s, east
    vel_d: float    # m/s, positive = descending
    h_acc_m: float = 0.0
    v_acc_m: float = 0.0
    s_acc_ms: float = 0.0
    num_sv: int = 0

    @property
    def horizontal_speed(self) -> float:
        return math.hypot(self.vel_n, self.vel_e)

    @property
    def vertical_speed(self) -> float:
        return abs(self.vel_d)

    @property
    def ground_track(self) -> float:
        """Heading of travel over ground in radians, 0 = north, +pi/2 = east."""
        return math.atan2(self.vel_e, self.vel_n)


# -----------------------------
# Configuration / "Segmentation Profile"
# -----------------------------
@dataclass(frozen=True)
class SegmentationProfile:
    name: str = "Default"

    min_freefall_vel_d: float = 10.0    # smoothed velD above this = freefall (low enough for hop-and-pops)
    deployment_decel_threshold: float = 1.0    # m/s^2 of sustained slowing = canopy opening
    min_canopy_vel_d: float = 2.0
    max_canopy_vel_d: float = 15.0
    landing_vel_d_threshold: float = 1.0
    landing_horizontal_threshold: float = 2.0
    gps_accuracy_threshold: float = 50.0    # hAcc (m) above this is left out of the smoothing windows

    smoothing_window: int = 5    # samples
    min_confirmation_samples: int = 3    # a transition must hold this many consecutive samples

    aircraft_climb_threshold: float = -2.0    # velD below this = climbing in the aircraft
    exit_altitude_window: float = 50.0    # exit happens within this many metres of the peak altitude

    def __post_init__(self) -> None:
        if self.smoothing_window < 1:
            raise ValueError(f"smoothing_window must be >= 1, got {self.smoothing_window}")
        if self.min_confirmation_samples < 1:
            raise ValueError(
                f"min_confirmation_samples must be >= 1, got {self.min_confirmation_samples}"
            )
        if self.min_canopy_vel_d > self.max_canopy_vel_d:
            raise ValueError(
                f"Canopy bounds inverted: min {self.min_canopy_vel_d} > max {self.max_canopy_vel_d}"
            )
        for name in ("deployment_decel_threshold", "gps_accuracy_threshold", "exit_altitude_window"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @property
    def min_samples(self) -> int:
        """Shortest recording the classifier can reason about."""
        return max(self.smoothing_window, self.min_confirmation_samples)

    def with_overrides(self, **changes: Any) -> "SegmentationProfile":
        return replace(self, **changes)


# -----------------------------
# Segment
# -----------------------------
@dataclass(frozen=True)
class Segment:
    """A run of samples sharing one phase: the half-open range [start, stop) of `source`.

    The segment keeps a reference to the caller's sample sequence instead of
    copying the samples out of it.
    """

    phase: Phase
    start: int
    stop: int
    start_time: datetime
    end_time: datetime
    start_alt_m: float
    end_alt_m: float
    source: Sequence[Sample] = field(repr=False, compare=False)

    @property
    def duration_s(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def samples(self) -> Sequence[Sample]:
        return self.source[self.start:self.stop]

    def __len__(self) -> int:
        return self.stop - self.start

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.label,
            "start": self.start,
            "stop": self.stop,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "start_alt_m": self.start_alt_m,
            "end_alt_m": self.end_alt_m,
            "duration_s": self.duration_s,
        }


# -----------------------------
# Performance metrics
# -----------------------------
@dataclass(frozen=True)
class FreefallMetrics:
    avg_vertical_speed: float
    max_vertical_speed: float
    avg_horizontal_speed: float
    track_angle_deg: Optional[float]    # circular mean of ground track, None if undefined
    time_in_freefall_s: float


@dataclass(frozen=True)
class CanopyMetrics:
    deployment_alt_m: float
    avg_descent_rate: float
    glide_ratio: Optional[float]    # None when no altitude was lost
    max_horizontal_speed: float
    total_canopy_time_s: float
    pattern_alt_m: Optional[float] = None


@dataclass(frozen=True)
class LandingMetrics:
    final_approach_speed: Optional[float]
    touchdown_vertical_speed: float
    landing_accuracy_m: Optional[float] = None


@dataclass(frozen=True)
class PerformanceMetrics:
    freefall: Optional[FreefallMetrics] = None
    canopy: Optional[CanopyMetrics] = None
    landing: Optional[LandingMetrics] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
