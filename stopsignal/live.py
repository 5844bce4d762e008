from __future__ import annotations

import logging
import math
from enum import Enum
from typing import List, Optional

from taskcore.config import SSTConfig
from taskcore.timing import deadline_reached
from taskcore.utils import round_half_up

from .gaze.saccade import NO_SACCADE, SaccadeDetector
from .models import AngleSample, SaccadeOutcome, TrialMetricsInput, TrialSpec, TrialType


LOGGER = logging.getLogger(__name__)

FIXATION_WINDOW_S = 0.3


class TrialPhase(str, Enum):
    FIXATE = "fixate"
    GO = "go"
    STOP = "stop"
    DONE = "done"


class EndReason(str, Enum):
    COMPLETION = "completion"
    TIMEOUT = "timeout"


def required_fixation_samples(config: SSTConfig) -> int:
    return max(config.fixation_samples_required, int(math.ceil(config.sampling_rate_hz * FIXATION_WINDOW_S)))


def trial_gaze_rmse(samples: List[AngleSample], target_deg: float) -> float:
    """RMS distance in degrees from each sample to the nearer of the fixation point and the target."""
    if not samples:
        return 0.0
    total = 0.0
    for sample in samples:
        to_center = math.hypot(sample.horizontal_deg, sample.vertical_deg)
        to_target = math.hypot(sample.horizontal_deg - target_deg, sample.vertical_deg)
        total += min(to_center, to_target) ** 2
    return math.sqrt(total / len(samples))


class HeadMotionMonitor:
    """Flags head motion from the viewing-distance trace of one trial."""

    def __init__(self, drift_cm: float = 3.0, range_cm: float = 5.0):
        self.drift_cm = drift_cm
        self.range_cm = range_cm
        self.distances: List[float] = []
        self.flagged = False

    def add(self, distance_cm: float) -> bool:
        self.distances.append(float(distance_cm))
        if abs(self.distances[-1] - self.distances[0]) > self.drift_cm:
            self.flagged = True
        if len(self.distances) >= 2 and max(self.distances) - min(self.distances) > self.range_cm:
            self.flagged = True
        return self.flagged

    def mean_distance(self, default: float) -> float:
        if not self.distances:
            return default
        return sum(self.distances) / len(self.distances)


class LiveTrial:
    """Runtime of one scheduled trial, from fixation to its terminal outcome.

    Samples arrive one at a time via ``add_sample``; the trial concludes on the
    first qualifying saccade or, through ``check_timeout``, once the go timeout
    elapses. A timeout is a regular outcome with no reaction time.
    """

    def __init__(self, spec: TrialSpec, config: SSTConfig, detector: Optional[SaccadeDetector] = None):
        self.spec = spec
        self.config = config
        self.detector = detector or SaccadeDetector(config.anticipation_threshold_ms)
        self.phase = TrialPhase.FIXATE
        self.go_time: Optional[float] = None
        self.stop_signal_time: Optional[float] = None
        self.samples: List[AngleSample] = []
        self.head_motion = HeadMotionMonitor(config.head_motion_drift_cm, config.head_motion_range_cm)
        self.lost_tracking = False
        self.outcome: Optional[SaccadeOutcome] = None
        self.end_reason: Optional[EndReason] = None
        self.metrics: Optional[TrialMetricsInput] = None
        self._fixation_start: Optional[float] = None
        self._fixation_streak = 0
        self._required_samples = required_fixation_samples(config)

    @property
    def target_deg(self) -> float:
        return self.spec.direction.sign * self.config.target_eccentricity_deg

    @property
    def is_done(self) -> bool:
        return self.phase is TrialPhase.DONE

    @property
    def in_response_window(self) -> bool:
        return self.phase in (TrialPhase.GO, TrialPhase.STOP)

    def restart_fixation(self) -> None:
        self._fixation_start = None
        self._fixation_streak = 0

    def flag_lost_tracking(self) -> None:
        if not self.lost_tracking and not self.is_done:
            LOGGER.info("Tracking lost during trial %d (%s)", self.spec.index, self.phase.value)
        self.lost_tracking = True

    # ------------------------------------------------------------------
    # Sample handling
    # ------------------------------------------------------------------
    def add_sample(self, sample: AngleSample, distance_cm: float) -> Optional[TrialMetricsInput]:
        """Consume one sample; returns the trial metrics when this sample ends the trial."""
        if self.phase is TrialPhase.FIXATE:
            self._process_fixation(sample)
            return None
        if not self.in_response_window:
            return None

        self.samples.append(sample)
        self.head_motion.add(distance_cm)
        outcome = self.detector.evaluate(self.samples, self.go_time, self.spec.direction)
        if outcome.reaction_time_ms is None:
            return None
        return self.conclude(EndReason.COMPLETION, outcome)

    def _process_fixation(self, sample: AngleSample) -> None:
        radius = math.hypot(sample.horizontal_deg, sample.vertical_deg)
        if radius > self.config.fixation_radius_deg:
            self.restart_fixation()
            return
        self._fixation_streak += 1
        if self._fixation_start is None:
            self._fixation_start = sample.timestamp
        duration_ms = (sample.timestamp - self._fixation_start) * 1000.0
        if self._fixation_streak >= self._required_samples and duration_ms >= self.config.min_fixation_ms:
            self.begin_go(sample.timestamp)

    def begin_go(self, timestamp: float) -> None:
        self.phase = TrialPhase.GO
        self.go_time = timestamp
        if self.spec.ssd_ms is not None:
            self.stop_signal_time = timestamp + self.spec.ssd_ms / 1000.0
        self.samples = []
        self.head_motion = HeadMotionMonitor(self.config.head_motion_drift_cm, self.config.head_motion_range_cm)
        self.lost_tracking = False
        LOGGER.debug(
            "Go onset for trial %d (%s %s) at %.3f s",
            self.spec.index,
            self.spec.type.value,
            self.spec.direction.value,
            timestamp,
        )

    def check_timeout(self, now: float) -> Optional[TrialMetricsInput]:
        if not self.in_response_window:
            return None
        if self.phase is TrialPhase.GO and self.stop_signal_time is not None and now >= self.stop_signal_time:
            self.phase = TrialPhase.STOP
        if deadline_reached(self.go_time, now, self.config.go_timeout_ms):
            return self.conclude(EndReason.TIMEOUT)
        return None

    # ------------------------------------------------------------------
    # Outcome
    # ------------------------------------------------------------------
    def conclude(self, reason: EndReason, outcome: Optional[SaccadeOutcome] = None) -> TrialMetricsInput:
        if self.metrics is not None:
            return self.metrics
        if self.go_time is None:
            raise RuntimeError("Trial {} cannot conclude before go onset".format(self.spec.index))
        if outcome is None:
            outcome = self.detector.evaluate(self.samples, self.go_time, self.spec.direction) if self.samples else NO_SACCADE

        is_go = self.spec.type is TrialType.GO
        go_success = is_go and outcome.entered_corridor
        stop_success = not is_go and not outcome.entered_corridor
        rt_ms = outcome.reaction_time_ms
        if reason is EndReason.TIMEOUT:
            go_success = False
            rt_ms = None

        self.outcome = outcome
        self.end_reason = reason
        self.phase = TrialPhase.DONE
        self.metrics = TrialMetricsInput(
            go_onset_ms=round_half_up(self.go_time * 1000.0),
            rt_ms=rt_ms,
            go_success=go_success,
            stop_success=stop_success,
            gaze_rmse_deg=trial_gaze_rmse(self.samples, self.target_deg),
            viewing_distance_cm=self.head_motion.mean_distance(self.config.default_viewing_distance_cm),
            head_motion=self.head_motion.flagged,
            lost_tracking=self.lost_tracking,
        )
        LOGGER.debug("Trial %d concluded by %s: %s", self.spec.index, reason.value, self.metrics)
        return self.metrics
