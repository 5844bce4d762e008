from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from taskcore.config import DEFAULT_SEED, SSTConfig
from taskcore.randomization import SeededGenerator, derive_seed

from .live import LiveTrial
from .models import SessionMeta, TrialBlock
from .session import SessionRunner


LOGGER = logging.getLogger(__name__)

PARTICIPANT_SEED_SALT = 0x5A5A5A5A


@dataclass
class ParticipantProfile:
    go_rt_ms: float = 280.0
    rt_jitter_ms: float = 40.0
    sst_slowing_ms: float = 90.0
    stop_failure_rate: float = 0.3
    lapse_rate: float = 0.0
    center_bias_deg: Tuple[float, float] = (1.5, -1.0)
    noise_deg: float = 0.2
    viewing_distance_cm: float = 60.0

    def validate(self) -> None:
        if self.go_rt_ms <= 0:
            raise ValueError("GO reaction time must be positive.")
        for name in ("stop_failure_rate", "lapse_rate"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError("{} must be within [0, 1], got {}".format(name, value))


def angles_to_ray(horizontal_deg: float, vertical_deg: float) -> Tuple[float, float, float]:
    return math.tan(math.radians(horizontal_deg)), math.tan(math.radians(vertical_deg)), 1.0


class SyntheticParticipant:
    """Deterministic stand-in for the eye tracker and the person in front of it.

    The participant fixates the center (with a constant bias and uniform noise)
    and, after a sampled latency, jumps to the target on GO trials and on the
    STOP trials it fails.
    """

    def __init__(self, profile: Optional[ParticipantProfile] = None, seed: int = DEFAULT_SEED):
        self.profile = profile or ParticipantProfile()
        self.profile.validate()
        self._rng = SeededGenerator(seed)
        self._plan_key: Optional[tuple] = None
        self._latency_s: Optional[float] = None

    def _plan(self, live: LiveTrial) -> None:
        key = (live.spec.block, live.spec.index, live.go_time)
        if key == self._plan_key:
            return
        self._plan_key = key
        p = self.profile
        latency_ms = p.go_rt_ms + self._rng.uniform(-p.rt_jitter_ms, p.rt_jitter_ms)
        if live.spec.block is TrialBlock.SST:
            latency_ms += p.sst_slowing_ms
        respond = self._rng.next_double() >= p.lapse_rate
        if live.spec.is_stop:
            respond = respond and self._rng.next_double() < p.stop_failure_rate
        self._latency_s = latency_ms / 1000.0 if respond else None

    def gaze_angles(self, live: Optional[LiveTrial], now: float) -> Tuple[float, float]:
        horizontal, vertical = 0.0, 0.0
        if live is not None and live.in_response_window:
            self._plan(live)
            if self._latency_s is not None and now - live.go_time >= self._latency_s:
                horizontal = live.target_deg
        noise = self.profile.noise_deg
        bias_h, bias_v = self.profile.center_bias_deg
        horizontal += bias_h + self._rng.uniform(-noise, noise)
        vertical += bias_v + self._rng.uniform(-noise, noise)
        return horizontal, vertical

    def gaze_ray(self, live: Optional[LiveTrial], now: float) -> Tuple[float, float, float]:
        return angles_to_ray(*self.gaze_angles(live, now))

    def viewing_distance(self) -> float:
        return self.profile.viewing_distance_cm + self._rng.uniform(-0.2, 0.2)


def simulate_session(
    config: Optional[SSTConfig] = None,
    participant: Optional[SyntheticParticipant] = None,
    meta: Optional[SessionMeta] = None,
    break_duration_s: float = 5.0,
    max_duration_s: float = 3600.0,
) -> SessionRunner:
    """Run a whole session on synthetic time at the configured sampling rate."""
    config = config or SSTConfig.from_defaults()
    participant = participant or SyntheticParticipant(seed=derive_seed(config.rng_seed, PARTICIPANT_SEED_SALT))
    runner = SessionRunner(config, meta)
    return drive_session(runner, participant, break_duration_s, max_duration_s)


def drive_session(
    runner: SessionRunner,
    participant: SyntheticParticipant,
    break_duration_s: float = 5.0,
    max_duration_s: float = 3600.0,
) -> SessionRunner:
    """Feed ``participant`` samples to ``runner`` from its first block until the session ends.

    Breaks last ``break_duration_s``. Raises ``RuntimeError`` if the session is
    still running after ``max_duration_s`` of synthetic time.
    """
    period = 1.0 / runner.config.sampling_rate_hz
    resume_at: Optional[float] = None
    step = 0

    runner.start_practice(now=0.0)
    while not runner.finished:
        now = step * period
        if now > max_duration_s:
            raise RuntimeError("Simulated session did not finish within {:.0f} s".format(max_duration_s))
        if runner.paused:
            if resume_at is None:
                resume_at = now + break_duration_s
            elif now >= resume_at:
                resume_at = None
                runner.resume_after_break()
        runner.handle_sample(now, participant.gaze_ray(runner.live_trial, now), participant.viewing_distance())
        runner.tick(now)
        step += 1

    LOGGER.info("Simulated session finished after %.1f s with %d trials", step * period, len(runner.trials))
    return runner
