"""Single inclusion predicate shared by the trial engine and the scorer."""

from __future__ import annotations

from typing import FrozenSet, Optional

from .models import Trial, TrialExclusion, TrialMetricsInput


MAX_GAZE_RMSE_DEG = 2.5
ANTICIPATION_THRESHOLD_MS = 100


def exclusion_reasons(
    rt_ms: Optional[int],
    gaze_rmse_deg: float,
    head_motion: bool,
    lost_tracking: bool,
    anticipation_threshold_ms: float = ANTICIPATION_THRESHOLD_MS,
    max_gaze_rmse_deg: float = MAX_GAZE_RMSE_DEG,
) -> FrozenSet[TrialExclusion]:
    reasons = set()
    if rt_ms is not None and rt_ms < anticipation_threshold_ms:
        reasons.add(TrialExclusion.ANTICIPATION)
    if gaze_rmse_deg > max_gaze_rmse_deg:
        reasons.add(TrialExclusion.POOR_GAZE)
    if head_motion:
        reasons.add(TrialExclusion.HEAD_MOTION)
    if lost_tracking:
        reasons.add(TrialExclusion.LOST_TRACKING)
    return frozenset(reasons)


def metrics_exclusions(
    metrics: TrialMetricsInput,
    anticipation_threshold_ms: float = ANTICIPATION_THRESHOLD_MS,
    max_gaze_rmse_deg: float = MAX_GAZE_RMSE_DEG,
) -> FrozenSet[TrialExclusion]:
    return exclusion_reasons(
        metrics.rt_ms,
        metrics.gaze_rmse_deg,
        metrics.head_motion,
        metrics.lost_tracking,
        anticipation_threshold_ms,
        max_gaze_rmse_deg,
    )


def is_admissible(
    trial: Trial,
    anticipation_threshold_ms: float = ANTICIPATION_THRESHOLD_MS,
    max_gaze_rmse_deg: float = MAX_GAZE_RMSE_DEG,
) -> bool:
    """Recompute the exclusions of ``trial`` from its measured fields and report whether none apply."""
    return not exclusion_reasons(
        trial.rt_ms,
        trial.gaze_rmse_deg,
        trial.head_motion,
        trial.lost_tracking,
        anticipation_threshold_ms,
        max_gaze_rmse_deg,
    )
