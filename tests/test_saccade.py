from __future__ import annotations

from stopsignal.gaze.saccade import NO_SACCADE, SaccadeDetector
from stopsignal.models import AngleSample, TrialDirection

GO_TIME = 1.0


def _samples(points, sign: float = 1.0):
    return [AngleSample(GO_TIME + dt_ms / 1000.0, sign * angle, 0.0) for dt_ms, angle in points]


def test_reaction_time_at_corridor_entry():
    samples = _samples([(50, 0.5), (100, 1.0), (150, 2.0), (200, 4.0), (250, 7.0), (300, 12.0)])
    outcome = SaccadeDetector().evaluate(samples, GO_TIME, TrialDirection.RIGHT)
    assert outcome.reaction_time_ms == 250
    assert outcome.entered_corridor
    assert not outcome.anticipation


def test_leftward_target_uses_signed_angles():
    samples = _samples([(100, 1.0), (250, 7.0)], sign=-1.0)
    outcome = SaccadeDetector().evaluate(samples, GO_TIME, TrialDirection.LEFT)
    assert outcome.reaction_time_ms == 250

    wrong_way = SaccadeDetector().evaluate(samples, GO_TIME, TrialDirection.RIGHT)
    assert wrong_way.reaction_time_ms is None
    assert not wrong_way.entered_corridor


def test_small_movements_never_trigger():
    samples = _samples([(dt, 2.9) for dt in range(0, 600, 17)])
    outcome = SaccadeDetector().evaluate(samples, GO_TIME, TrialDirection.RIGHT)
    assert outcome == NO_SACCADE


def test_exclusion_boundary_is_strict_and_corridor_boundary_inclusive():
    at_exclusion = SaccadeDetector().evaluate(_samples([(50, 3.0)]), GO_TIME, TrialDirection.RIGHT)
    assert not at_exclusion.anticipation
    at_corridor = SaccadeDetector().evaluate(_samples([(300, 6.0)]), GO_TIME, TrialDirection.RIGHT)
    assert at_corridor.reaction_time_ms == 300


def test_early_movement_flags_anticipation_without_suppressing_rt():
    samples = _samples([(50, 4.0), (120, 8.0)])
    outcome = SaccadeDetector(anticipation_threshold_ms=100).evaluate(samples, GO_TIME, TrialDirection.RIGHT)
    assert outcome.anticipation
    assert outcome.reaction_time_ms == 120


def test_anticipation_threshold_is_configurable():
    samples = _samples([(150, 4.0), (220, 8.0)])
    assert not SaccadeDetector(100).evaluate(samples, GO_TIME, TrialDirection.RIGHT).anticipation
    assert SaccadeDetector(200).evaluate(samples, GO_TIME, TrialDirection.RIGHT).anticipation


def test_outside_excursion_that_never_reaches_corridor():
    samples = _samples([(200, 4.0), (250, 5.0), (300, 2.0)])
    outcome = SaccadeDetector().evaluate(samples, GO_TIME, TrialDirection.RIGHT)
    assert outcome.reaction_time_ms is None
    assert not outcome.entered_corridor


def test_samples_before_go_are_ignored():
    samples = _samples([(-100, 10.0), (-20, 8.0), (180, 9.0)])
    outcome = SaccadeDetector().evaluate(samples, GO_TIME, TrialDirection.RIGHT)
    assert outcome.reaction_time_ms == 180
    assert not outcome.anticipation


def test_empty_buffer():
    assert SaccadeDetector().evaluate([], GO_TIME, TrialDirection.LEFT) == NO_SACCADE


def test_evaluate_is_stateless():
    detector = SaccadeDetector()
    samples = _samples([(50, 4.0), (260, 7.0)])
    first = detector.evaluate(samples, GO_TIME, TrialDirection.RIGHT)
    detector.evaluate(_samples([(10, 1.0)]), GO_TIME, TrialDirection.RIGHT)
    assert detector.evaluate(samples, GO_TIME, TrialDirection.RIGHT) == first
