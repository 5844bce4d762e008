from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Tuple

from taskcore.config import SSTConfig

from .exclusions import is_admissible, metrics_exclusions
from .models import Trial, TrialBlock, TrialMetricsInput, TrialSpec, TrialType
from .scheduler import TrialScheduler


LOGGER = logging.getLogger(__name__)


class TrialEngine:
    """Hands out scheduled trials block by block and keeps the append-only trial record.

    One caller drives the engine: ``next_*_trial()`` then ``record()`` for every
    trial. Validity counters feed the optional early end of the SST block.
    """

    def __init__(self, config: Optional[SSTConfig] = None):
        self.config = config or SSTConfig.from_defaults()
        self.scheduler = TrialScheduler(self.config)
        self._practice_plan: List[TrialSpec] = []
        self._baseline_plan: List[TrialSpec] = []
        self._sst_plan: List[TrialSpec] = []
        self._completed: List[Trial] = []
        self.reset()

    def reset(self) -> None:
        self._practice_plan = self.scheduler.practice_schedule()
        self._baseline_plan = self.scheduler.baseline_schedule()
        self._sst_plan = self.scheduler.sst_schedule()
        self._practice_index = 0
        self._baseline_index = 0
        self._sst_index = 0
        self._global_counter = 0
        self._valid_baseline_go = 0
        self._valid_sst_go = 0
        self._valid_sst_stop = 0
        self._completed_sst = 0
        self._end_sst_early = False
        self._completed = []
        LOGGER.info(
            "Engine reset: practice=%d baseline=%d sst=%d",
            len(self._practice_plan),
            len(self._baseline_plan),
            len(self._sst_plan),
        )

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------
    @property
    def practice_plan(self) -> Tuple[TrialSpec, ...]:
        return tuple(self._practice_plan)

    @property
    def baseline_plan(self) -> Tuple[TrialSpec, ...]:
        return tuple(self._baseline_plan)

    @property
    def sst_plan(self) -> Tuple[TrialSpec, ...]:
        return tuple(self._sst_plan)

    def next_practice_trial(self) -> Optional[TrialSpec]:
        if self._practice_index >= len(self._practice_plan):
            return None
        trial = self._practice_plan[self._practice_index]
        self._practice_index += 1
        return trial

    def next_baseline_trial(self) -> Optional[TrialSpec]:
        if self._baseline_index >= len(self._baseline_plan):
            LOGGER.debug("Baseline plan exhausted at %d", self._baseline_index)
            return None
        trial = self._baseline_plan[self._baseline_index]
        self._baseline_index += 1
        LOGGER.debug("Next baseline trial %d (%s)", trial.index, trial.direction.value)
        return trial

    def next_sst_trial(self) -> Optional[TrialSpec]:
        if self.config.early_stop.enabled and self._end_sst_early:
            LOGGER.info(
                "SST ended early after %d trials (valid go=%d, valid stop=%d)",
                self._completed_sst,
                self._valid_sst_go,
                self._valid_sst_stop,
            )
            return None
        if self._sst_index >= len(self._sst_plan):
            LOGGER.debug("SST plan exhausted at %d", self._sst_index)
            return None
        trial = self._sst_plan[self._sst_index]
        self._sst_index += 1
        LOGGER.debug(
            "Next SST trial %d (%s, %s, ssd=%s)", trial.index, trial.type.value, trial.direction.value, trial.ssd_ms
        )
        return trial

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------
    def record(self, spec: TrialSpec, metrics: TrialMetricsInput) -> Trial:
        if spec.type is TrialType.STOP and metrics.go_success:
            LOGGER.warning("STOP trial %d reported go_success; recording it as False", spec.index)
            metrics = replace(metrics, go_success=False)
        self._global_counter += 1
        exclusions = metrics_exclusions(
            metrics, self.config.anticipation_threshold_ms, self.config.max_gaze_rmse_deg
        )
        trial = Trial(
            trial_index=self._global_counter,
            block=spec.block,
            type=spec.type,
            direction=spec.direction,
            ssd_ms=spec.ssd_ms,
            go_onset_ms=metrics.go_onset_ms,
            rt_ms=metrics.rt_ms,
            go_success=metrics.go_success,
            stop_success=metrics.stop_success,
            gaze_rmse_deg=metrics.gaze_rmse_deg,
            viewing_distance_cm=metrics.viewing_distance_cm,
            head_motion=metrics.head_motion,
            lost_tracking=metrics.lost_tracking,
            exclusions=exclusions,
        )
        self._completed.append(trial)
        self._update_counts(trial)
        LOGGER.info(
            "Recorded trial %d block=%s type=%s rt=%s excluded=%s",
            trial.trial_index,
            trial.block.value,
            trial.type.value,
            trial.rt_ms,
            sorted(reason.value for reason in exclusions),
        )
        return trial

    def _update_counts(self, trial: Trial) -> None:
        if trial.block is TrialBlock.SST:
            self._completed_sst += 1
        if trial.block is TrialBlock.PRACTICE:
            return
        if not is_admissible(trial, self.config.anticipation_threshold_ms, self.config.max_gaze_rmse_deg):
            return

        if trial.block is TrialBlock.BASELINE:
            if trial.type is TrialType.GO and trial.go_success:
                self._valid_baseline_go += 1
            return

        if trial.type is TrialType.GO and trial.go_success:
            self._valid_sst_go += 1
        elif trial.type is TrialType.STOP:
            self._valid_sst_stop += 1

        policy = self.config.early_stop
        if (
            policy.enabled
            and not self._end_sst_early
            and self._completed_sst >= policy.min_completed_sst
            and self._valid_sst_go >= policy.min_valid_go
            and self._valid_sst_stop >= policy.min_valid_stop
        ):
            self._end_sst_early = True
            LOGGER.info(
                "Early stop criteria met: completed=%d valid go=%d valid stop=%d",
                self._completed_sst,
                self._valid_sst_go,
                self._valid_sst_stop,
            )

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------
    @property
    def completed_trials(self) -> Tuple[Trial, ...]:
        return tuple(self._completed)

    @property
    def valid_baseline_go_count(self) -> int:
        return self._valid_baseline_go

    @property
    def valid_sst_go_count(self) -> int:
        return self._valid_sst_go

    @property
    def valid_sst_stop_count(self) -> int:
        return self._valid_sst_stop

    @property
    def completed_sst_count(self) -> int:
        return self._completed_sst

    @property
    def early_stop_triggered(self) -> bool:
        return self._end_sst_early
