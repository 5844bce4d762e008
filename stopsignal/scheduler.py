from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from taskcore.config import SSTConfig
from taskcore.randomization import SeededGenerator
from taskcore.utils import round_half_up

from .models import TrialBlock, TrialDirection, TrialSpec, TrialType


@dataclass
class _Run:
    last: object
    streak: int = 0

    def push(self, value: object) -> None:
        if value == self.last:
            self.streak += 1
        else:
            self.streak = 1
        self.last = value


def alternating_schedule(block: TrialBlock, n_trials: int) -> List[TrialSpec]:
    """GO-only plan alternating left and right, starting on the left."""
    trials: List[TrialSpec] = []
    direction = TrialDirection.LEFT
    for index in range(n_trials):
        trials.append(TrialSpec(index=index, block=block, type=TrialType.GO, direction=direction))
        direction = direction.opposite()
    return trials


class TrialScheduler:
    """Builds the fixed presentation order of each block before the block starts."""

    def __init__(self, config: SSTConfig):
        config.validate()
        self.config = config

    def practice_schedule(self) -> List[TrialSpec]:
        return alternating_schedule(TrialBlock.PRACTICE, self.config.practice_trial_count)

    def baseline_schedule(self) -> List[TrialSpec]:
        return alternating_schedule(TrialBlock.BASELINE, self.config.baseline_trial_count)

    def sst_schedule(self) -> List[TrialSpec]:
        """GO/STOP plan honoring the GO ratio and the type and side run-length caps.

        Each call replays the generator from the configured seed.
        """
        rng = SeededGenerator(self.config.rng_seed)
        total = self.config.sst_trial_count
        n_go = round_half_up(total * self.config.go_probability)
        n_go = max(0, min(n_go, total))
        remaining = {TrialType.GO: n_go, TrialType.STOP: total - n_go}

        type_run = _Run(last=TrialType.GO)
        side_run = _Run(last=None)
        ssd_min, ssd_max = self.config.stop_signal_delay_range_ms

        trials: List[TrialSpec] = []
        for index in range(total):
            trial_type = self._pick_type(rng, remaining, type_run)
            direction = self._pick_direction(rng, side_run)
            ssd: Optional[int] = None
            if trial_type is TrialType.STOP:
                ssd = rng.uniform_int(ssd_min, ssd_max)
            trials.append(
                TrialSpec(index=index, block=TrialBlock.SST, type=trial_type, direction=direction, ssd_ms=ssd)
            )
        return trials

    def _pick_type(self, rng: SeededGenerator, remaining: dict, run: _Run) -> TrialType:
        can_go = remaining[TrialType.GO] > 0
        can_stop = remaining[TrialType.STOP] > 0

        if run.streak >= self.config.max_consecutive_type:
            if run.last is TrialType.GO and can_stop:
                chosen = TrialType.STOP
            elif run.last is TrialType.STOP and can_go:
                chosen = TrialType.GO
            else:
                # the other type is exhausted, so the streak continues
                chosen = TrialType.GO if can_go else TrialType.STOP
        elif not can_go:
            chosen = TrialType.STOP
        elif not can_stop:
            chosen = TrialType.GO
        else:
            threshold = remaining[TrialType.GO] / (remaining[TrialType.GO] + remaining[TrialType.STOP])
            chosen = TrialType.GO if rng.next_double() <= threshold else TrialType.STOP

        remaining[chosen] -= 1
        run.push(chosen)
        return chosen

    def _pick_direction(self, rng: SeededGenerator, run: _Run) -> TrialDirection:
        # The coin is drawn even when the side is forced so the stream stays aligned.
        drawn = TrialDirection.RIGHT if rng.coin_flip() else TrialDirection.LEFT
        if run.streak >= self.config.max_same_side_in_row and run.last is not None:
            chosen = run.last.opposite()
        else:
            chosen = drawn
        run.push(chosen)
        return chosen
