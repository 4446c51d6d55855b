"""Jitter meter library -- probing, jitter statistics, quality, and guidance."""

from .catalog import STREAMING_SERVICES, ProbeStrategy, Target, get_target
from .engine import (
    CancelToken,
    MeasurementConfig,
    MeasurementRun,
    ProgressEvent,
    measure,
    measure_all,
)
from .guidance import GuidanceReport, generate_guidance
from .prober import Prober
from .quality import QualityTier, classify
from .stats import (
    StatsRecord,
    calculate_jitter,
    calculate_stats,
    estimate_mos,
    format_latency,
    format_percent,
    smooth_jitter,
)

__all__ = [
    "CancelToken",
    "GuidanceReport",
    "MeasurementConfig",
    "MeasurementRun",
    "ProbeStrategy",
    "Prober",
    "ProgressEvent",
    "QualityTier",
    "STREAMING_SERVICES",
    "StatsRecord",
    "Target",
    "calculate_jitter",
    "calculate_stats",
    "classify",
    "estimate_mos",
    "format_latency",
    "format_percent",
    "generate_guidance",
    "get_target",
    "measure",
    "measure_all",
    "smooth_jitter",
]
