"""
Jump Debrief - Skydive Phase Analyzer

A toolkit for splitting GPS telemetry of a single skydive (FlySight
recordings) into phases: aircraft, exit, freefall, deployment, canopy
and landing, and for computing per-phase performance metrics such as
descent rates, glide ratio, track angle and touchdown speed.
"""

from .domain import (
    CanopyMetrics,
    ContractViolation,
    FreefallMetrics,
    LandingMetrics,
    PerformanceMetrics,
    Phase,
    Sample,
    Segment,
    SegmentationProfile,
)
from .preprocess import moving_average, smooth_descent_velocity, preprocess_samples
from .classify import Boundary, ClassificationResult, classify_phases
from .segments import build_segments, is_partition, is_monotonic
from .metrics import calculate_metrics, circular_mean_deg, detect_pattern_altitude
from .flysight import FlySightMetadata, FlySightRecording, load_flysight
from .validate import ValidationResult, validate_samples
from .analyze import JumpAnalysis, RecordingSummary, analyze, analyze_samples, logging_observer
from .render import make_phase_figure

__all__ = [
    # Domain models
    "Phase",
    "Sample",
    "Segment",
    "SegmentationProfile",
    "FreefallMetrics",
    "CanopyMetrics",
    "LandingMetrics",
    "PerformanceMetrics",
    "ContractViolation",
    # Smoothing
    "moving_average",
    "smooth_descent_velocity",
    "preprocess_samples",
    # Classification
    "Boundary",
    "ClassificationResult",
    "classify_phases",
    # Segments
    "build_segments",
    "is_partition",
    "is_monotonic",
    # Metrics
    "calculate_metrics",
    "circular_mean_deg",
    "detect_pattern_altitude",
    # Input
    "FlySightMetadata",
    "FlySightRecording",
    "load_flysight",
    "ValidationResult",
    "validate_samples",
    # Pipeline
    "JumpAnalysis",
    "RecordingSummary",
    "analyze",
    "analyze_samples",
    "logging_observer",
    # Visualization
    "make_phase_figure",
]

__version__ = "0.1.0"
