from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import List, Optional, Sequence

from PyQt5 import QtCore

from taskcore.config import SSTConfig
from taskcore.randomization import SeededGenerator, derive_seed
from taskcore.timing import Stopwatch, start_polling_timer

from .analysis.scoring import compute_results
from .engine import TrialEngine
from .export import build_session_package
from .gaze.angles import GazeCenter, ray_to_angles_rad
from .gaze.calibration import CalibrationResult
from .gaze.saccade import SaccadeDetector
from .live import LiveTrial
from .models import AngleSample, Results, SessionMeta, Trial, TrialBlock, TrialMetricsInput, TrialSpec


LOGGER = logging.getLogger(__name__)

ITI_SEED_SALT = 0xA5A5A5A5
MID_SST_BREAK = "mid_sst"

_NEXT_BLOCK = {TrialBlock.PRACTICE: TrialBlock.BASELINE, TrialBlock.BASELINE: TrialBlock.SST}


class SessionRunner(QtCore.QObject):
    """Drives one participant session: practice, baseline and SST blocks in turn.

    Gaze samples go in through ``handle_sample`` and the clock through ``tick``;
    both take session-relative seconds. ``attach_clock`` wires ``tick`` to a Qt
    timer for live use, while tests and the simulator call it directly.
    """

    trial_recorded = QtCore.pyqtSignal(object)
    block_finished = QtCore.pyqtSignal(str)
    break_requested = QtCore.pyqtSignal(str)
    session_finished = QtCore.pyqtSignal(object)

    def __init__(
        self,
        config: Optional[SSTConfig] = None,
        meta: Optional[SessionMeta] = None,
        auto_advance: bool = True,
        parent: Optional[QtCore.QObject] = None,
    ):
        super().__init__(parent)
        self.config = config or SSTConfig.from_defaults()
        self.config.validate()
        self.meta = meta or SessionMeta()
        self.auto_advance = auto_advance
        self.engine = TrialEngine(self.config)
        self.detector = SaccadeDetector(self.config.anticipation_threshold_ms)
        self.gaze_center = GazeCenter(self.config.gaze_center_samples)
        self.stopwatch = Stopwatch()
        self.start_datetime = self.stopwatch.start_datetime
        self.active_timers: List[QtCore.QTimer] = []
        self._iti_rng = SeededGenerator(derive_seed(self.config.rng_seed, ITI_SEED_SALT))
        self.current_block: Optional[TrialBlock] = None
        self.live_trial: Optional[LiveTrial] = None
        self.results: Optional[Results] = None
        self.finished = False
        self.paused = False
        self.break_taken = False
        self._resume_at: Optional[float] = None
        self._last_sample_time: Optional[float] = None
        self._now = 0.0

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------
    def start_practice(self, now: Optional[float] = None) -> None:
        self.engine.reset()
        self.gaze_center.reset()
        self.results = None
        self.finished = False
        self.break_taken = False
        self._start_block(TrialBlock.PRACTICE, now)

    def start_baseline(self, now: Optional[float] = None) -> None:
        self.gaze_center.reset()
        self._start_block(TrialBlock.BASELINE, now)

    def start_sst(self, now: Optional[float] = None) -> None:
        self._start_block(TrialBlock.SST, now)

    def _start_block(self, block: TrialBlock, now: Optional[float]) -> None:
        if now is not None:
            self._now = now
        self.current_block = block
        self.paused = False
        self._resume_at = None
        self._last_sample_time = None
        LOGGER.info("Block %s started at %.3f s", block.value, self._now)
        self._advance()

    def _next_spec(self) -> Optional[TrialSpec]:
        if self.current_block is TrialBlock.PRACTICE:
            return self.engine.next_practice_trial()
        if self.current_block is TrialBlock.BASELINE:
            return self.engine.next_baseline_trial()
        if self.current_block is TrialBlock.SST:
            return self.engine.next_sst_trial()
        return None

    def _advance(self) -> None:
        spec = self._next_spec()
        if spec is None:
            self._finish_block()
            return
        self.live_trial = LiveTrial(spec, self.config, self.detector)

    def _finish_block(self) -> None:
        block = self.current_block
        self.live_trial = None
        self.current_block = None
        LOGGER.info("Block %s finished at %.3f s", block.value, self._now)
        if block is TrialBlock.SST:
            self.finalize()
        self.block_finished.emit(block.value)
        if block is TrialBlock.SST:
            self.finished = True
            self.session_finished.emit(self.results)
        elif self.auto_advance:
            next_block = _NEXT_BLOCK[block]
            if next_block is TrialBlock.BASELINE:
                self.start_baseline()
            else:
                self.start_sst()

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------
    def handle_sample(self, timestamp: float, ray: Sequence[float], distance_cm: float) -> None:
        self._now = max(self._now, timestamp)
        self._last_sample_time = timestamp
        trial = self.live_trial
        if trial is None or trial.is_done:
            LOGGER.debug("Sample at %.3f s ignored: no live trial", timestamp)
            return

        horizontal_rad, vertical_rad = ray_to_angles_rad(ray)
        if (
            not trial.in_response_window
            and self.current_block is not TrialBlock.SST
            and not self.gaze_center.calibrated
        ):
            if self.gaze_center.accumulate(horizontal_rad, vertical_rad):
                LOGGER.info(
                    "Gaze center estimated: h=%.2f deg v=%.2f deg",
                    math.degrees(self.gaze_center.horizontal_rad),
                    math.degrees(self.gaze_center.vertical_rad),
                )
                trial.restart_fixation()
                return
        horizontal_deg, vertical_deg = self.gaze_center.apply(horizontal_rad, vertical_rad)
        metrics = trial.add_sample(AngleSample(timestamp, horizontal_deg, vertical_deg), distance_cm)
        if metrics is not None:
            self._finish_trial(trial, metrics)

    def tick(self, now: float) -> None:
        self._now = max(self._now, now)
        trial = self.live_trial
        if trial is not None and not trial.is_done:
            if (
                self._last_sample_time is not None
                and (now - self._last_sample_time) * 1000.0 >= self.config.lost_tracking_gap_ms
            ):
                trial.flag_lost_tracking()
            metrics = trial.check_timeout(now)
            if metrics is not None:
                self._finish_trial(trial, metrics)
            return

        if self._resume_at is not None and now >= self._resume_at:
            self._resume_at = None
            if self._break_due():
                self.break_taken = True
                self.paused = True
                LOGGER.info(
                    "Mid-SST break after %d trials (valid go=%d, valid stop=%d)",
                    self.engine.completed_sst_count,
                    self.engine.valid_sst_go_count,
                    self.engine.valid_sst_stop_count,
                )
                self.break_requested.emit(MID_SST_BREAK)
                return
            self._advance()

    def resume_after_break(self) -> None:
        if not self.paused:
            LOGGER.debug("resume_after_break ignored: session is not paused")
            return
        self.paused = False
        LOGGER.info("Resuming SST after break")
        self._advance()

    def _finish_trial(self, live: LiveTrial, metrics: TrialMetricsInput) -> None:
        trial = self.engine.record(live.spec, metrics)
        self.live_trial = None
        wait_ms = self.config.feedback_duration_ms + self._iti_rng.uniform_int(*self.config.iti_range_ms)
        self._resume_at = self._now + wait_ms / 1000.0
        self.trial_recorded.emit(trial)

    def _break_due(self) -> bool:
        policy = self.config.mid_block_break
        if not policy.enabled or self.break_taken or self.current_block is not TrialBlock.SST:
            return False
        enough_valid = (
            self.engine.valid_sst_go_count >= policy.min_valid_go
            and self.engine.valid_sst_stop_count >= policy.min_valid_stop
        )
        return enough_valid or self.engine.completed_sst_count >= policy.fallback_completed_sst

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    def apply_calibration(self, result: CalibrationResult) -> None:
        self.meta = replace(self.meta, calibration_rmse_deg=result.rmse_deg)

    @property
    def trials(self) -> List[Trial]:
        return list(self.engine.completed_trials)

    def session_meta(self) -> SessionMeta:
        distances = [t.viewing_distance_cm for t in self.engine.completed_trials]
        mean_distance = sum(distances) / len(distances) if distances else self.config.default_viewing_distance_cm
        return replace(self.meta, viewing_distance_mean_cm=mean_distance)

    def finalize(self) -> Results:
        self.results = compute_results(self.engine.completed_trials, self.meta, self.config)
        LOGGER.info(
            "Session scored: p_atypical=%.3f label=%s ssrt=%.1f ms",
            self.results.p_atypical,
            self.results.classification_label.value,
            self.results.ssrt_ms,
        )
        return self.results

    def session_package(self) -> dict:
        results = self.results if self.results is not None else self.finalize()
        return build_session_package(self.session_meta(), results, self.engine.completed_trials, self.config)

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------
    def now(self) -> float:
        return self.stopwatch.elapsed()

    def attach_clock(self, parent: Optional[QtCore.QObject] = None, interval_ms: int = 16) -> QtCore.QTimer:
        self.stopwatch.reset()
        self.start_datetime = self.stopwatch.start_datetime
        return start_polling_timer(
            parent=parent or self,
            on_tick=self.tick,
            stopwatch=self.stopwatch,
            interval_ms=interval_ms,
            register_timer=self.active_timers.append,
        )

    def clear_timers(self) -> None:
        for timer in self.active_timers:
            timer.stop()
        self.active_timers.clear()
