from __future__ import annotations

from typing import Optional, Sequence

from taskcore.utils import round_half_up

from ..models import AngleSample, SaccadeOutcome, TrialDirection


CENTRAL_EXCLUSION_DEG = 3.0
CORRIDOR_ENTRY_DEG = 6.0

NO_SACCADE = SaccadeOutcome(reaction_time_ms=None, entered_corridor=False, anticipation=False)


class SaccadeDetector:
    """Classify the gaze samples of one trial into a directed saccade or its absence.

    ``evaluate`` holds no state between calls: the caller passes the complete
    buffer of the trial every time. Angles are signed toward the target, so a
    rightward target reads positive angles and a leftward target negative ones.
    """

    def __init__(self, anticipation_threshold_ms: float = 100):
        self.anticipation_threshold_ms = anticipation_threshold_ms

    def evaluate(self, samples: Sequence[AngleSample], go_time: float, direction: TrialDirection) -> SaccadeOutcome:
        if not samples:
            return NO_SACCADE
        sign = direction.sign
        anticipation = False
        reaction_time: Optional[int] = None

        for sample in samples:
            dt_ms = (sample.timestamp - go_time) * 1000.0
            if dt_ms < 0:
                continue
            signed_deg = sample.horizontal_deg * sign
            if signed_deg <= CENTRAL_EXCLUSION_DEG:
                continue
            if dt_ms < self.anticipation_threshold_ms:
                anticipation = True
            if signed_deg >= CORRIDOR_ENTRY_DEG:
                reaction_time = round_half_up(dt_ms)
                break

        return SaccadeOutcome(
            reaction_time_ms=reaction_time,
            entered_corridor=reaction_time is not None,
            anticipation=anticipation,
        )
