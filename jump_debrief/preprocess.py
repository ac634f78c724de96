from __future__ import annotations
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .domain import ContractViolation, Sample, SegmentationProfile

# -----------------------------
# Helpers
# -----------------------------

def check_recording(samples: Sequence[Sample], profile: SegmentationProfile) -> None:
    """Raise ContractViolation if the recording breaks the input preconditions."""
    if samples is None or len(samples) == 0:
        raise ContractViolation("Recording is empty.")
    if len(samples) < profile.min_samples:
        raise ContractViolation(
            f"Recording has {len(samples)} samples; at least {profile.min_samples} are required."
        )
    for prev, cur in zip(samples, samples[1:]):
        if cur.time < prev.time:
            raise ContractViolation(
                f"Samples are not in time order: {cur.time.isoformat()} follows {prev.time.isoformat()}."
            )


def moving_average(x: np.ndarray, win: int, valid: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Centered moving average, same length as x.

    At the ends the window shrinks to the samples that exist (no padding).
    Samples where `valid` is False are left out of every window; a position whose
    window holds no valid sample keeps its own raw value.
    """
    x = np.asarray(x, dtype=float)
    n = len(x)
    if win <= 1 or n == 0:
        return x.copy()

    if valid is None:
        valid = np.ones(n, dtype=bool)
    valid = np.asarray(valid, dtype=bool)

    left = win // 2
    right = win - 1 - left  # window covers i-left .. i+right

    # Windowed sums via cumulative sums; csum[k] = sum of the first k entries
    csum = np.concatenate(([0.0], np.cumsum(np.where(valid, x, 0.0))))
    ccount = np.concatenate(([0], np.cumsum(valid.astype(int))))

    idx = np.arange(n)
    lo = np.clip(idx - left, 0, n)
    hi = np.clip(idx + right + 1, 0, n)

    total = csum[hi] - csum[lo]
    count = ccount[hi] - ccount[lo]

    out = x.copy()
    has = count > 0
    out[has] = total[has] / count[has]
    return out


def trailing_slope(x: np.ndarray, t: np.ndarray, win: int) -> np.ndarray:
    """
    Least-squares slope dx/dt over the trailing window t[i-win+1..i].

    The window shrinks at the start of the series. A window that spans no
    time (single sample, repeated timestamps) gives 0.

    Args:
        x: Signal values
        t: Sample times in seconds
        win: Samples per window (at least 2 are always used)

    Returns:
        Slope per sample, same length as x
    """
    x = np.asarray(x, dtype=float)
    t = np.asarray(t, dtype=float)
    n = len(x)
    rate = np.zeros(n)
    if n < 2:
        return rate
    win = max(int(win), 2)

    # (n, win) table of trailing indices; positions before sample 0 are masked out
    idx = np.arange(n)[:, None] - np.arange(win)[None, :]
    inside = idx >= 0
    idx = np.clip(idx, 0, None)
    count = inside.sum(axis=1)

    tw = np.where(inside, t[idx], 0.0)
    xw = np.where(inside, x[idx], 0.0)
    t_mean = tw.sum(axis=1) / count
    x_mean = xw.sum(axis=1) / count

    dt = np.where(inside, t[idx] - t_mean[:, None], 0.0)
    dx = np.where(inside, x[idx] - x_mean[:, None], 0.0)
    sxx = (dt * dt).sum(axis=1)
    sxy = (dt * dx).sum(axis=1)

    ok = sxx > 0
    rate[ok] = sxy[ok] / sxx[ok]
    return rate


def accuracy_mask(samples: Sequence[Sample], profile: SegmentationProfile) -> np.ndarray:
    """True for samples whose horizontal accuracy is good enough to enter the averages."""
    h_acc = np.array([s.h_acc_m for s in samples], dtype=float)
    return h_acc <= profile.gps_accuracy_threshold


# -----------------------------
# Smoother
# -----------------------------

def smooth_descent_velocity(samples: Sequence[Sample], profile: SegmentationProfile) -> np.ndarray:
    """Smoothed velD, one value per sample. Raw samples are not touched."""
    vel_d = np.array([s.vel_d for s in samples], dtype=float)
    return moving_average(vel_d, profile.smoothing_window, accuracy_mask(samples, profile))


def preprocess_samples(samples: Sequence[Sample], profile: SegmentationProfile) -> pd.DataFrame:
    """
    Turn the sample sequence into the signal table the classifier works on.

    Row i is sample i. Columns:
      t                 seconds since the first sample
      alt_msl_m, vel_n, vel_e, vel_d, h_acc_m     raw channels
      horiz_speed, vert_speed, ground_track       derived per-sample quantities
      valid             hAcc within the accuracy threshold
      vel_d_s           smoothed velD
      vel_d_rate        d(vel_d_s)/dt over the last min_confirmation_samples, negative = slowing down
      peak_alt_m        running peak altitude over valid samples (NaN until the first valid one)
    """
    check_recording(samples, profile)

    t0 = samples[0].time
    df = pd.DataFrame({
        "t": [(s.time - t0).total_seconds() for s in samples],
        "alt_msl_m": [s.alt_msl_m for s in samples],
        "vel_n": [s.vel_n for s in samples],
        "vel_e": [s.vel_e for s in samples],
        "vel_d": [s.vel_d for s in samples],
        "h_acc_m": [s.h_acc_m for s in samples],
    }).astype(float)

    df["horiz_speed"] = np.hypot(df["vel_n"], df["vel_e"])
    df["vert_speed"] = df["vel_d"].abs()
    df["ground_track"] = np.arctan2(df["vel_e"], df["vel_n"])

    valid = accuracy_mask(samples, profile)
    df["valid"] = valid

    df["vel_d_s"] = smooth_descent_velocity(samples, profile)
    df["vel_d_rate"] = trailing_slope(
        df["vel_d_s"].to_numpy(float), df["t"].to_numpy(float), profile.min_confirmation_samples
    )

    # A single bad fix must not set the peak either
    alt_valid = np.where(valid, df["alt_msl_m"].to_numpy(float), -np.inf)
    peak = np.maximum.accumulate(alt_valid)
    df["peak_alt_m"] = np.where(np.isfinite(peak), peak, np.nan)

    return df
