"""Collapse per-sample phase labels into contiguous segments."""

from __future__ import annotations
from typing import Sequence

import numpy as np

from .domain import ContractViolation, Phase, Sample, Segment


def build_segments(samples: Sequence[Sample], labels: np.ndarray) -> list[Segment]:
    """
    Merge runs of equal labels into Segments.

    Every sample lands in exactly one segment, and segments come out in
    time order. Each segment references `samples` by index range.

    Args:
        samples: The recording the labels were computed for
        labels: Phase ordinal per sample

    Returns:
        Ordered list of segments (empty for an empty recording)
    """
    labels = np.asarray(labels, dtype=int)
    n = len(samples)
    if len(labels) != n:
        raise ContractViolation(f"Got {len(labels)} labels for {n} samples.")
    if n == 0:
        return []

    # Split into continuous label blocks
    breaks = np.where(np.diff(labels) != 0)[0] + 1
    starts = np.concatenate(([0], breaks))
    stops = np.concatenate((breaks, [n]))

    segments: list[Segment] = []
    for start, stop in zip(starts.tolist(), stops.tolist()):
        first, last = samples[start], samples[stop - 1]
        segments.append(
            Segment(
                phase=Phase(int(labels[start])),
                start=start,
                stop=stop,
                start_time=first.time,
                end_time=last.time,
                start_alt_m=float(first.alt_msl_m),
                end_alt_m=float(last.alt_msl_m),
                source=samples,
            )
        )
    return segments


def is_partition(segments: Sequence[Segment], n_samples: int) -> bool:
    """True when the segments cover 0..n_samples back to back, with no gap or overlap."""
    expected = 0
    for seg in segments:
        if seg.start != expected or seg.stop <= seg.start:
            return False
        expected = seg.stop
    return expected == n_samples


def is_monotonic(segments: Sequence[Segment]) -> bool:
    """True when phases never step back to an earlier phase."""
    return all(a.phase <= b.phase for a, b in zip(segments, segments[1:]))


def find_segment(segments: Sequence[Segment], phase: Phase):
    """First segment with the given phase, or None."""
    return next((s for s in segments if s.phase == phase), None)
