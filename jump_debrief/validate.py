"""Data-quality checks run on a recording before it is segmented."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .domain import Sample


# Validation thresholds
MIN_SAMPLES = 10
MAX_GPS_ACCURACY_M = 50.0
MIN_SATELLITES = 6
MAX_TIME_GAP_S = 2.0
MIN_ALTITUDE_M = -100.0
MAX_ALTITUDE_M = 10000.0
MAX_VEL_D = 150.0


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)    # any error makes the recording unusable
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_samples(samples: Sequence[Sample]) -> ValidationResult:
    """
    Check a recording for problems that make it unusable (errors) or
    suspicious (warnings).

    Args:
        samples: Recording in file order

    Returns:
        ValidationResult; errors stop processing, warnings are informational
    """
    result = ValidationResult()

    if len(samples) == 0:
        result.errors.append("No data points provided")
        return result

    if len(samples) < MIN_SAMPLES:
        result.errors.append(
            f"Insufficient data points: {len(samples)} (minimum {MIN_SAMPLES} required)"
        )

    t0 = samples[0].time
    t = np.array([(s.time - t0).total_seconds() for s in samples], dtype=float)
    if len(samples) > 1 and np.all(t == t[0]):
        result.errors.append("All timestamps are identical - no time progression detected")

    h_acc = np.array([s.h_acc_m for s in samples], dtype=float)
    poor = int(np.sum(h_acc > MAX_GPS_ACCURACY_M))
    if poor:
        result.warnings.append(f"{poor} data points have poor GPS accuracy (hAcc > {MAX_GPS_ACCURACY_M}m)")

    num_sv = np.array([s.num_sv for s in samples])
    low_sv = int(np.sum(num_sv < MIN_SATELLITES))
    if low_sv:
        result.warnings.append(f"{low_sv} data points have insufficient satellites (numSV < {MIN_SATELLITES})")

    dt = np.diff(t)
    if np.any(dt < 0):
        result.warnings.append("Timestamps are not monotonically increasing - data may be out of order")
    if len(dt) and float(np.max(dt)) > MAX_TIME_GAP_S:
        result.warnings.append(
            f"Large time gap detected: {float(np.max(dt)):.1f}s between data points (>{MAX_TIME_GAP_S}s threshold)"
        )

    alt = np.array([s.alt_msl_m for s in samples], dtype=float)
    bad_alt = int(np.sum((alt < MIN_ALTITUDE_M) | (alt > MAX_ALTITUDE_M)))
    if bad_alt:
        result.warnings.append(
            f"{bad_alt} data points have altitude outside reasonable range ({MIN_ALTITUDE_M}m to {MAX_ALTITUDE_M}m MSL)"
        )

    vel_d = np.array([s.vel_d for s in samples], dtype=float)
    fast = int(np.sum(np.abs(vel_d) > MAX_VEL_D))
    if fast:
        result.warnings.append(f"{fast} data points have implausible velocity (|velD| > {MAX_VEL_D}m/s)")

    return result
