from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from taskcore.config import ScoringModel, SSTConfig

from ..exclusions import is_admissible
from ..models import ClassLabel, Results, SessionMeta, Trial, TrialBlock, TrialType
from .statistics import gaussian_pdf, mean, percentile, z_score


@dataclass(frozen=True)
class IncludedTrials:
    baseline_go: Tuple[Trial, ...]
    sst_go: Tuple[Trial, ...]
    stop: Tuple[Trial, ...]
    go_all: Tuple[Trial, ...]


def included_trials(trials: Iterable[Trial], config: Optional[SSTConfig] = None) -> IncludedTrials:
    """Split the scorable trials into the groups used by the summary.

    Practice trials never count. The remaining trials pass through the same
    admissibility predicate the engine uses for its validity counters.
    """
    config = config or SSTConfig.from_defaults()
    included = [
        t
        for t in trials
        if t.block is not TrialBlock.PRACTICE
        and is_admissible(t, config.anticipation_threshold_ms, config.max_gaze_rmse_deg)
    ]
    go_success = [t for t in included if t.type is TrialType.GO and t.go_success]
    return IncludedTrials(
        baseline_go=tuple(t for t in go_success if t.block is TrialBlock.BASELINE),
        sst_go=tuple(t for t in go_success if t.block is TrialBlock.SST),
        stop=tuple(t for t in included if t.block is TrialBlock.SST and t.type is TrialType.STOP),
        go_all=tuple(go_success),
    )


def _reaction_times(trials: Iterable[Trial]) -> List[float]:
    return [float(t.rt_ms) for t in trials if t.rt_ms is not None]


def ssrt(go_rts: Sequence[float], ssds: Sequence[float], p_fail: float) -> float:
    """Integration-with-replacement SSRT: the ``p_fail`` quantile of go RTs minus mean SSD."""
    if not go_rts or not ssds:
        return math.nan
    return percentile(go_rts, p_fail) - mean(ssds)


def proactive_z(stop_accuracy: float, slowing_ms: float, model: Optional[ScoringModel] = None) -> float:
    model = model or ScoringModel.from_defaults()
    z_stop = z_score(stop_accuracy, model.typical_stop_accuracy.mean, model.typical_stop_accuracy.sd)
    z_slowing = z_score(slowing_ms, model.typical_slowing.mean, model.typical_slowing.sd)
    return (z_stop + z_slowing) / 2.0


def classify(
    stop_accuracy: float, slowing_ms: float, model: Optional[ScoringModel] = None
) -> Tuple[float, ClassLabel, float]:
    """Posterior probability of the atypical class, its label and the proactive-control z.

    Each class likelihood is the product of its two univariate Gaussians, raised
    to the sharpening exponent before normalization. When neither class has
    positive weight (including NaN inputs) the probability is 0.5.
    """
    model = model or ScoringModel.from_defaults()

    def likelihood(stop_ref, slowing_ref) -> float:
        value = gaussian_pdf(stop_accuracy, stop_ref.mean, stop_ref.sd) * gaussian_pdf(
            slowing_ms, slowing_ref.mean, slowing_ref.sd
        )
        return value ** model.sharpening_exponent

    typical = likelihood(model.typical_stop_accuracy, model.typical_slowing)
    atypical = likelihood(model.atypical_stop_accuracy, model.atypical_slowing)
    total = typical + atypical
    probability = atypical / total if total > 0 else 0.5

    if probability >= model.atypical_threshold:
        label = ClassLabel.ATYPICAL_LIKE
    elif probability <= model.typical_threshold:
        label = ClassLabel.TYPICAL_LIKE
    else:
        label = ClassLabel.INDETERMINATE
    return probability, label, proactive_z(stop_accuracy, slowing_ms, model)


def compute_results(
    trials: Iterable[Trial],
    meta: Optional[SessionMeta] = None,
    config: Optional[SSTConfig] = None,
) -> Results:
    """Summarize a session. Pure: the same trial sequence always gives the same Results."""
    config = config or SSTConfig.from_defaults()
    summary = included_trials(trials, config)

    baseline_mean = mean(_reaction_times(summary.baseline_go))
    sst_go_rts = _reaction_times(summary.sst_go)
    go_mean = mean(sst_go_rts)
    slowing = go_mean - baseline_mean

    total_stop = len(summary.stop)
    failed_stop = sum(1 for t in summary.stop if not t.stop_success)
    if total_stop:
        p_fail = failed_stop / total_stop
        stop_accuracy = (1.0 - p_fail) * 100.0
    else:
        p_fail = 0.0
        stop_accuracy = math.nan
    ssds = [float(t.ssd_ms) for t in summary.stop if t.ssd_ms is not None]

    probability, label, z = classify(stop_accuracy, slowing, config.scoring)
    return Results(
        baseline_rt_ms=baseline_mean,
        go_rt_ms=go_mean,
        go_rt_slowing_ms=slowing,
        stopping_accuracy_pct=stop_accuracy,
        ssrt_ms=ssrt(sst_go_rts, ssds, p_fail),
        p_atypical=probability,
        proactive_z=z,
        classification_label=label,
        included_baseline_go=len(summary.baseline_go),
        included_sst_go=len(summary.sst_go),
        included_go=len(summary.go_all),
        included_stop=total_stop,
        build_id=meta.build_id if meta is not None else "",
    )
