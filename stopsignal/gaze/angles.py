from __future__ import annotations

import math
from typing import Sequence, Tuple


def ray_to_angles_rad(ray: Sequence[float]) -> Tuple[float, float]:
    x, y, z = float(ray[0]), float(ray[1]), float(ray[2])
    return math.atan2(x, z), math.atan2(y, z)


def ray_to_angles(ray: Sequence[float]) -> Tuple[float, float]:
    """Horizontal and vertical gaze angles in degrees for a camera-space gaze ray."""
    horizontal, vertical = ray_to_angles_rad(ray)
    return math.degrees(horizontal), math.degrees(vertical)


class GazeCenter:
    """Per-session angular offset so that looking at the fixation point reads as (0, 0).

    The offset is the mean of the first ``required_samples`` fixation-phase
    samples. Until it is estimated, raw angles pass through unchanged.
    """

    def __init__(self, required_samples: int = 20):
        self.required_samples = max(1, int(required_samples))
        self.reset()

    def reset(self) -> None:
        self._sum_h = 0.0
        self._sum_v = 0.0
        self._count = 0
        self.horizontal_rad = 0.0
        self.vertical_rad = 0.0
        self.calibrated = False

    def accumulate(self, horizontal_rad: float, vertical_rad: float) -> bool:
        """Add a fixation sample; returns True on the sample that completes the estimate."""
        if self.calibrated:
            return False
        self._sum_h += horizontal_rad
        self._sum_v += vertical_rad
        self._count += 1
        if self._count >= self.required_samples:
            self.horizontal_rad = self._sum_h / self._count
            self.vertical_rad = self._sum_v / self._count
            self.calibrated = True
            return True
        return False

    def apply(self, horizontal_rad: float, vertical_rad: float) -> Tuple[float, float]:
        """Offset-corrected angles in degrees."""
        if self.calibrated:
            horizontal_rad -= self.horizontal_rad
            vertical_rad -= self.vertical_rad
        return math.degrees(horizontal_rad), math.degrees(vertical_rad)
