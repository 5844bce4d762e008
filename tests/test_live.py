from __future__ import annotations

import math

import pytest

from stopsignal.live import EndReason, HeadMotionMonitor, LiveTrial, TrialPhase, required_fixation_samples, trial_gaze_rmse
from stopsignal.models import AngleSample, TrialBlock, TrialDirection, TrialSpec, TrialType
from taskcore.config import SSTConfig

RATE = 60.0


def _spec(trial_type=TrialType.GO, direction=TrialDirection.RIGHT, ssd_ms=None) -> TrialSpec:
    if trial_type is TrialType.STOP and ssd_ms is None:
        ssd_ms = 100
    return TrialSpec(index=0, block=TrialBlock.SST, type=trial_type, direction=direction, ssd_ms=ssd_ms)


def _fixate(trial: LiveTrial, start_step: int = 0, limit: int = 200) -> int:
    """Feed centered samples until go onset; returns the step after the onset sample."""
    step = start_step
    while not trial.in_response_window:
        assert step < start_step + limit, "fixation never completed"
        trial.add_sample(AngleSample(step / RATE, 0.1, -0.1), 60.0)
        step += 1
    return step


def _feed(trial: LiveTrial, angles, distance=60.0):
    """Feed response-window samples at the sampling rate, starting one period after go."""
    result = None
    for k, angle in enumerate(angles, start=1):
        result = trial.add_sample(AngleSample(trial.go_time + k / RATE, angle, 0.0), distance)
        if result is not None:
            break
    return result


def test_fixation_needs_streak_and_duration():
    config = SSTConfig.from_defaults()
    assert required_fixation_samples(config) >= config.fixation_samples_required
    trial = LiveTrial(_spec(), config)
    _fixate(trial)
    assert trial.phase is TrialPhase.GO
    assert 0.29 <= trial.go_time <= 0.35


def test_leaving_fixation_restarts_the_streak():
    trial = LiveTrial(_spec(), SSTConfig.from_defaults())
    for step in range(10):
        trial.add_sample(AngleSample(step / RATE, 0.0, 0.0), 60.0)
    trial.add_sample(AngleSample(10 / RATE, 4.0, 0.0), 60.0)
    assert trial.phase is TrialPhase.FIXATE
    _fixate(trial, start_step=11)
    assert trial.go_time >= 11 / RATE + 0.29


def test_go_trial_concludes_on_corridor_entry():
    trial = LiveTrial(_spec(), SSTConfig.from_defaults())
    _fixate(trial)
    metrics = _feed(trial, [0.0] * 14 + [12.0, 12.0])
    assert trial.is_done
    assert trial.end_reason is EndReason.COMPLETION
    assert metrics.rt_ms == 250
    assert metrics.go_success
    assert not metrics.stop_success
    assert metrics.gaze_rmse_deg == pytest.approx(0.0)
    assert metrics.viewing_distance_cm == pytest.approx(60.0)
    assert metrics.go_onset_ms == round(trial.go_time * 1000)
    assert trial.add_sample(AngleSample(trial.go_time + 1.0, 0.0, 0.0), 60.0) is None


def test_successful_stop_times_out_without_rt():
    trial = LiveTrial(_spec(TrialType.STOP, TrialDirection.LEFT, ssd_ms=100), SSTConfig.from_defaults())
    _fixate(trial)
    assert trial.stop_signal_time == pytest.approx(trial.go_time + 0.1)
    assert _feed(trial, [0.0] * 10) is None
    assert trial.check_timeout(trial.go_time + 0.2) is None
    assert trial.phase is TrialPhase.STOP
    metrics = trial.check_timeout(trial.go_time + 0.66)
    assert trial.end_reason is EndReason.TIMEOUT
    assert metrics.rt_ms is None
    assert metrics.stop_success
    assert not metrics.go_success


def test_failed_stop_keeps_reaction_time():
    trial = LiveTrial(_spec(TrialType.STOP, TrialDirection.LEFT), SSTConfig.from_defaults())
    _fixate(trial)
    metrics = _feed(trial, [0.0] * 17 + [-11.0])
    assert metrics.rt_ms == 300
    assert not metrics.stop_success
    assert not metrics.go_success


def test_go_timeout_is_a_regular_outcome():
    trial = LiveTrial(_spec(), SSTConfig.from_defaults())
    _fixate(trial)
    _feed(trial, [4.0] * 5)
    metrics = trial.check_timeout(trial.go_time + 0.7)
    assert metrics.rt_ms is None
    assert not metrics.go_success
    assert not metrics.stop_success
    assert trial.check_timeout(trial.go_time + 0.8) is None


def test_head_motion_and_lost_tracking_flags():
    trial = LiveTrial(_spec(), SSTConfig.from_defaults())
    _fixate(trial)
    trial.add_sample(AngleSample(trial.go_time + 0.02, 0.0, 0.0), 60.0)
    trial.add_sample(AngleSample(trial.go_time + 0.04, 0.0, 0.0), 64.0)
    trial.flag_lost_tracking()
    metrics = trial.check_timeout(trial.go_time + 0.7)
    assert metrics.head_motion
    assert metrics.lost_tracking
    assert metrics.viewing_distance_cm == pytest.approx(62.0)


def test_flags_raised_during_fixation_are_cleared_at_go():
    trial = LiveTrial(_spec(), SSTConfig.from_defaults())
    trial.flag_lost_tracking()
    _fixate(trial)
    metrics = trial.check_timeout(trial.go_time + 0.7)
    assert not metrics.lost_tracking
    assert metrics.viewing_distance_cm == 60.0
    assert metrics.gaze_rmse_deg == 0.0


def test_conclude_before_go_is_an_error():
    trial = LiveTrial(_spec(), SSTConfig.from_defaults())
    with pytest.raises(RuntimeError):
        trial.conclude(EndReason.TIMEOUT)


def test_gaze_rmse_uses_nearest_expected_location():
    samples = [AngleSample(0.0, 0.0, 0.0), AngleSample(0.1, 3.0, 4.0), AngleSample(0.2, 11.0, 0.0)]
    assert trial_gaze_rmse(samples, 12.0) == pytest.approx(math.sqrt((0 + 25 + 1) / 3))
    assert trial_gaze_rmse([], 12.0) == 0.0


@pytest.mark.parametrize(
    "distances, flagged",
    [
        ([60.0, 61.0, 62.0, 62.9], False),
        ([60.0, 63.5], True),
        ([60.0, 57.4, 62.6, 60.0], True),
        ([], False),
    ],
)
def test_head_motion_monitor(distances, flagged):
    monitor = HeadMotionMonitor()
    for distance in distances:
        monitor.add(distance)
    assert monitor.flagged is flagged
