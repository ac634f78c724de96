"""Phase classification: a forward-only state machine over the smoothed signals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from .domain import Phase, SegmentationProfile


# Phases each state may move on to, checked in this order. Skips cover
# recordings that start late (in freefall or under canopy) and hop-and-pops
# that open before reaching freefall speed. Aircraft never jumps straight to
# Landing: standing still on the ground before boarding looks the same.
NEXT_PHASES: dict[Phase, tuple[Phase, ...]] = {
    Phase.AIRCRAFT: (Phase.EXIT, Phase.FREEFALL, Phase.DEPLOYMENT, Phase.CANOPY),
    Phase.EXIT: (Phase.FREEFALL, Phase.DEPLOYMENT),
    Phase.FREEFALL: (Phase.DEPLOYMENT,),
    Phase.DEPLOYMENT: (Phase.CANOPY,),
    Phase.CANOPY: (Phase.LANDING,),
    Phase.LANDING: (),
}


@dataclass(frozen=True)
class Boundary:
    phase: Phase    # phase that starts here
    index: int    # first sample of the phase (backdated to the start of the confirmation run)
    confirmed_at: int    # sample at which the run reached the confirmation length


@dataclass(frozen=True)
class ClassificationResult:
    labels: np.ndarray    # Phase ordinal per sample
    boundaries: list[Boundary]
    ambiguous: bool = False    # no transition confirmed, whole recording carries the initial phase
    provisional: Optional[Boundary] = None    # run still open when the recording ended

    @property
    def phases(self) -> list[Phase]:
        return [Phase(int(v)) for v in self.labels]


def candidate_masks(signals: pd.DataFrame, profile: SegmentationProfile) -> dict[Phase, np.ndarray]:
    """
    Per-sample boolean "could be entering phase P" signals.

    Args:
        signals: Output of preprocess_samples
        profile: Thresholds

    Returns:
        Mapping from each non-initial phase to its candidate mask
    """
    vel_d_s = signals["vel_d_s"].to_numpy(float)
    rate = signals["vel_d_rate"].to_numpy(float)
    alt = signals["alt_msl_m"].to_numpy(float)
    peak = signals["peak_alt_m"].to_numpy(float)
    horiz = signals["horiz_speed"].to_numpy(float)

    # Exit happens at the top of the climb: the window is measured down from the
    # running peak, and samples inside it qualify (no valid peak yet counts as close)
    near_peak = np.isnan(peak) | (alt >= peak - profile.exit_altitude_window)
    leaving_level = vel_d_s >= abs(profile.aircraft_climb_threshold)

    return {
        Phase.EXIT: near_peak & leaving_level & (rate > 0),
        Phase.FREEFALL: vel_d_s > profile.min_freefall_vel_d,
        Phase.DEPLOYMENT: rate <= -profile.deployment_decel_threshold,
        Phase.CANOPY: (
            (vel_d_s >= profile.min_canopy_vel_d)
            & (vel_d_s <= profile.max_canopy_vel_d)
            & (rate > -profile.deployment_decel_threshold)
        ),
        Phase.LANDING: (vel_d_s < profile.landing_vel_d_threshold)
        & (horiz < profile.landing_horizontal_threshold),
    }


def run_lengths(mask: np.ndarray) -> np.ndarray:
    """Length of the run of True values ending at each index (0 where mask is False)."""
    out = np.zeros(len(mask), dtype=int)
    run = 0
    for i, hit in enumerate(mask):
        run = run + 1 if hit else 0
        out[i] = run
    return out


def classify_phases(signals: pd.DataFrame, profile: SegmentationProfile) -> ClassificationResult:
    """
    Label every sample with a phase.

    Walks the samples once. From the current phase only the phases in
    NEXT_PHASES can be entered, and only after their candidate mask has held
    for `min_confirmation_samples` consecutive samples, all of them after the
    current phase's own first sample. The new phase is backdated to the first
    sample of that run. Landing is terminal.

    Args:
        signals: Output of preprocess_samples
        profile: Thresholds

    Returns:
        ClassificationResult with labels, boundaries and fallback/provisional info
    """
    n = len(signals)
    k = profile.min_confirmation_samples
    runs = {phase: run_lengths(mask) for phase, mask in candidate_masks(signals, profile).items()}

    state = Phase.AIRCRAFT
    anchor = -1    # first sample of the current phase; the initial phase starts before sample 0
    boundaries: list[Boundary] = []

    for i in range(n):
        for nxt in NEXT_PHASES[state]:
            run = min(int(runs[nxt][i]), i - anchor)
            if run >= k:
                start = max(i - k + 1, 0)
                boundaries.append(Boundary(phase=nxt, index=start, confirmed_at=i))
                state, anchor = nxt, start
                break

    labels = np.full(n, int(Phase.AIRCRAFT), dtype=int)
    for b in boundaries:
        labels[b.index:] = int(b.phase)

    provisional = None
    if n > 0:
        for nxt in NEXT_PHASES[state]:
            run = min(int(runs[nxt][n - 1]), n - 1 - anchor)
            if 0 < run < k:
                provisional = Boundary(phase=nxt, index=n - run, confirmed_at=-1)
                break

    return ClassificationResult(
        labels=labels,
        boundaries=boundaries,
        ambiguous=len(boundaries) == 0,
        provisional=provisional,
    )
