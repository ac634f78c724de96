"""Pipeline orchestration for skydive phase analysis."""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from .classify import ClassificationResult, classify_phases
from .domain import PerformanceMetrics, Sample, Segment, SegmentationProfile
from .flysight import CSVSource, FlySightMetadata, load_flysight
from .metrics import PatternDetector, calculate_metrics
from .preprocess import preprocess_samples
from .segments import build_segments
from .validate import validate_samples

logger = logging.getLogger(__name__)

# observer(stage, details) is called once per pipeline stage
Observer = Callable[[str, Mapping[str, Any]], None]


def logging_observer(stage: str, details: Mapping[str, Any]) -> None:
    """Default observer: forwards stage reports to the module logger."""
    if stage.endswith("_failed"):
        logger.warning("%s: %s", stage, dict(details))
    else:
        logger.info("%s: %s", stage, dict(details))


def _silent(stage: str, details: Mapping[str, Any]) -> None:
    return None


@dataclass(frozen=True)
class RecordingSummary:
    total_samples: int
    recording_start: datetime
    recording_end: datetime
    max_alt_m: float
    min_alt_m: float

    @classmethod
    def from_samples(cls, samples: Sequence[Sample]) -> "RecordingSummary":
        alts = [s.alt_msl_m for s in samples]
        return cls(
            total_samples=len(samples),
            recording_start=samples[0].time,
            recording_end=samples[-1].time,
            max_alt_m=float(max(alts)),
            min_alt_m=float(min(alts)),
        )


@dataclass(frozen=True)
class JumpAnalysis:
    segments: list[Segment]
    metrics: Optional[PerformanceMetrics]    # None if metrics computation failed
    classification: ClassificationResult
    summary: RecordingSummary
    metadata: Optional[FlySightMetadata] = None
    warnings: tuple[str, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "segments": [s.to_dict() for s in self.segments],
            "metrics": self.metrics.to_dict() if self.metrics is not None else None,
            "ambiguous": self.classification.ambiguous,
            "summary": {
                "total_samples": self.summary.total_samples,
                "recording_start": self.summary.recording_start.isoformat(),
                "recording_end": self.summary.recording_end.isoformat(),
                "max_alt_m": self.summary.max_alt_m,
                "min_alt_m": self.summary.min_alt_m,
            },
            "warnings": list(self.warnings),
        }


def analyze_samples(
    samples: Sequence[Sample],
    profile: Optional[SegmentationProfile] = None,
    observer: Optional[Observer] = logging_observer,
    pattern_detector: Optional[PatternDetector] = None,
    landing_target: Optional[tuple[float, float]] = None,
) -> JumpAnalysis:
    """
    Run smoothing, classification, segmentation and metrics on one recording.

    Args:
        samples: Time-ordered recording (not copied; segments reference it)
        profile: Segmentation thresholds, defaults if None
        observer: Stage callback, None to stay silent
        pattern_detector: Optional canopy pattern-altitude detector
        landing_target: Optional (lat, lon) for landing accuracy

    Returns:
        JumpAnalysis. Metrics are None if their computation failed.

    Raises:
        ContractViolation: empty, too short or unordered recording
    """
    profile = profile or SegmentationProfile()
    notify = observer or _silent

    signals = preprocess_samples(samples, profile)
    classification = classify_phases(signals, profile)
    notify("classified", {
        "samples": len(samples),
        "boundaries": [(b.phase.label, b.index) for b in classification.boundaries],
        "ambiguous": classification.ambiguous,
        "provisional": classification.provisional.phase.label if classification.provisional else None,
    })

    segments = build_segments(samples, classification.labels)
    notify("segmented", {"segments": [(s.phase.label, s.start, s.stop) for s in segments]})

    metrics: Optional[PerformanceMetrics]
    try:
        metrics = calculate_metrics(
            segments, profile, pattern_detector=pattern_detector, landing_target=landing_target
        )
        notify("metrics", {
            "freefall": metrics.freefall is not None,
            "canopy": metrics.canopy is not None,
            "landing": metrics.landing is not None,
        })
    except Exception as e:
        # Segments are still useful without metrics
        notify("metrics_failed", {"error": str(e)})
        metrics = None

    return JumpAnalysis(
        segments=segments,
        metrics=metrics,
        classification=classification,
        summary=RecordingSummary.from_samples(samples),
    )


def analyze(
    csv_source: CSVSource,
    profile: Optional[SegmentationProfile] = None,
    observer: Optional[Observer] = logging_observer,
    pattern_detector: Optional[PatternDetector] = None,
    landing_target: Optional[tuple[float, float]] = None,
) -> tuple[Optional[JumpAnalysis], Optional[str]]:
    """
    Run the complete analysis for a FlySight file.

    Orchestrates the full workflow:
    1. Load the FlySight CSV
    2. Validate the recording
    3. Classify phases and build segments
    4. Compute performance metrics

    Returns:
        Tuple of (result, error):
        - On success: (JumpAnalysis, None)
        - On failure: (None, error_message)
    """
    notify = observer or _silent
    try:
        recording = load_flysight(csv_source)

        validation = validate_samples(recording.samples)
        if not validation.is_valid:
            return None, f"Data validation failed: {', '.join(validation.errors)}"
        notify("validated", {"samples": len(recording.samples), "warnings": validation.warnings})

        result = analyze_samples(
            recording.samples,
            profile,
            observer=observer,
            pattern_detector=pattern_detector,
            landing_target=landing_target,
        )
        return replace(result, metadata=recording.metadata, warnings=tuple(validation.warnings)), None

    except Exception as e:
        return None, str(e)
