from __future__ import annotations
from typing import List, Sequence

import matplotlib.pyplot as plt

from .domain import Phase, Sample, Segment, SegmentationProfile
from .preprocess import preprocess_samples

PHASE_COLORS = {
    Phase.AIRCRAFT: "tab:gray",
    Phase.EXIT: "tab:purple",
    Phase.FREEFALL: "tab:red",
    Phase.DEPLOYMENT: "tab:orange",
    Phase.CANOPY: "tab:blue",
    Phase.LANDING: "tab:green",
}


def make_phase_figure(
    samples: Sequence[Sample],
    segments: List[Segment],
    profile: SegmentationProfile,
):
    signals = preprocess_samples(samples, profile)
    t = signals["t"].to_numpy(float)
    alt = signals["alt_msl_m"].to_numpy(float)
    vel_d = signals["vel_d"].to_numpy(float)
    vel_d_s = signals["vel_d_s"].to_numpy(float)

    fig, (ax_alt, ax_vd) = plt.subplots(
        nrows=2,
        ncols=1,
        figsize=(14, 8),
        sharex=True,
        gridspec_kw={"height_ratios": [1.2, 1.0]},
    )

    # --- Altitude ---
    ax_alt.plot(t, alt, linewidth=2.0, label="Altitude MSL (m)")
    ax_alt.set_ylabel("Altitude (m)")
    ax_alt.grid(True, alpha=0.2)

    # --- Descent velocity ---
    ax_vd.plot(t, vel_d, linewidth=1.0, alpha=0.4, label="velD raw (m/s)")
    ax_vd.plot(t, vel_d_s, linewidth=2.0, label="velD smoothed (m/s)")
    ax_vd.axhline(profile.min_freefall_vel_d, linestyle=":", linewidth=1.5, label="Freefall min")
    ax_vd.axhline(profile.min_canopy_vel_d, linestyle="--", linewidth=1.2, label="Canopy band")
    ax_vd.axhline(profile.max_canopy_vel_d, linestyle="--", linewidth=1.2)
    ax_vd.set_ylabel("velD (m/s)")
    ax_vd.set_xlabel("Time (s)")
    ax_vd.grid(True, alpha=0.2)
    ax_vd.legend(loc="upper right")

    # --- Phase shading on both panels ---
    for seg in segments:
        t_start = t[seg.start]
        t_end = t[seg.stop] if seg.stop < len(t) else t[-1]
        color = PHASE_COLORS[seg.phase]
        for ax in (ax_alt, ax_vd):
            ax.axvspan(t_start, t_end, alpha=0.15, color=color)
        ax_alt.text(t_start, alt.max(), seg.phase.label, fontsize=8, va="top")

    ax_alt.legend(loc="upper right")
    fig.suptitle(f"Jump Phases - {profile.name} profile", y=0.995)
    fig.tight_layout(rect=(0.0, 0.0, 1.0, 0.98))
    return fig
