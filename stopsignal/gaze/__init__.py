"""Gaze calibration, angle conversion and saccade detection."""

from .angles import GazeCenter, ray_to_angles
from .calibration import CALIBRATION_POINTS, CalibrationResult, Calibrator, average_ray, needs_recalibration
from .saccade import CENTRAL_EXCLUSION_DEG, CORRIDOR_ENTRY_DEG, SaccadeDetector

__all__ = [
    "CALIBRATION_POINTS",
    "CENTRAL_EXCLUSION_DEG",
    "CORRIDOR_ENTRY_DEG",
    "CalibrationResult",
    "Calibrator",
    "GazeCenter",
    "SaccadeDetector",
    "average_ray",
    "needs_recalibration",
    "ray_to_angles",
]
