"""Analysis helpers for the stop-signal task."""

from .report import format_results, results_summary_text
from .scoring import classify, compute_results, included_trials, proactive_z, ssrt
from .statistics import mean, percentile, stddev, z_score

__all__ = [
    "classify",
    "compute_results",
    "format_results",
    "included_trials",
    "mean",
    "percentile",
    "proactive_z",
    "results_summary_text",
    "ssrt",
    "stddev",
    "z_score",
]
