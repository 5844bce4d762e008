"""Gaze-ray to screen-point calibration.

A calibration pass shows the participant a fixed set of screen targets, averages
the gaze rays captured while they look at each one, and fits a linear mapping
from the homogeneous ray feature ``[x, y, 1]`` to normalized screen
coordinates. Fit quality is reported as the root-mean-square error of the fitted
points, converted from pixels to degrees of visual angle.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np


LOGGER = logging.getLogger(__name__)

DEFAULT_SCREEN_SIZE: Tuple[float, float] = (1024.0, 768.0)
# 1 deg is about 1.05 cm at tablet viewing distance, about 104 px/cm at 264 PPI.
DEFAULT_PIXELS_PER_DEGREE = 109.0
SINGULAR_DETERMINANT = 1e-6
REGULARIZATION = 1e-1
RECALIBRATION_RMSE_DEG = 2.0

CALIBRATION_POINTS: Tuple[Tuple[float, float], ...] = (
    (0.5, 0.5),
    (0.1, 0.1),
    (0.5, 0.1),
    (0.9, 0.1),
    (0.1, 0.5),
    (0.9, 0.5),
    (0.1, 0.9),
    (0.5, 0.9),
    (0.9, 0.9),
)


@dataclass(frozen=True, eq=False)
class CalibrationResult:
    rmse_deg: float
    transform: np.ndarray

    def to_dict(self) -> dict:
        return {"rmse_deg": self.rmse_deg, "transform": self.transform.tolist()}


def feature_vector(ray: Sequence[float]) -> np.ndarray:
    return np.array([float(ray[0]), float(ray[1]), 1.0])


def average_ray(rays: Iterable[Sequence[float]]) -> np.ndarray:
    """Mean of the captured rays, or the straight-ahead ray when nothing was captured."""
    stacked = [np.asarray(ray, dtype=float) for ray in rays]
    if not stacked:
        return np.array([0.0, 0.0, 1.0])
    return np.mean(stacked, axis=0)


def calibration_rmse_deg(
    normalized_points: np.ndarray,
    features: np.ndarray,
    transform: np.ndarray,
    screen_size: Tuple[float, float] = DEFAULT_SCREEN_SIZE,
    pixels_per_degree: float = DEFAULT_PIXELS_PER_DEGREE,
) -> float:
    """Root-mean-square fit error in degrees; NaN when there are no samples.

    Parameters
    ----------
    normalized_points:
        ``(n, 2)`` target positions as fractions of the screen size.
    features:
        ``(n, 3)`` homogeneous ray features.
    transform:
        3x3 mapping whose first two rows produce normalized x and y.
    """
    if len(features) == 0:
        return math.nan
    predicted = features @ transform[:2].T
    error_px = (predicted - normalized_points) * np.asarray(screen_size, dtype=float)
    error_deg = np.hypot(error_px[:, 0], error_px[:, 1]) / pixels_per_degree
    return float(np.sqrt(np.mean(error_deg ** 2)))


def needs_recalibration(result: CalibrationResult, max_rmse_deg: float = RECALIBRATION_RMSE_DEG) -> bool:
    return math.isnan(result.rmse_deg) or result.rmse_deg > max_rmse_deg


class Calibrator:
    """Collects (target, ray) pairs and fits the ray-to-screen mapping."""

    def __init__(
        self,
        screen_size: Tuple[float, float] = DEFAULT_SCREEN_SIZE,
        pixels_per_degree: float = DEFAULT_PIXELS_PER_DEGREE,
    ):
        self.screen_size = (float(screen_size[0]), float(screen_size[1]))
        self.pixels_per_degree = pixels_per_degree
        self.result: Optional[CalibrationResult] = None
        self._points: List[Tuple[float, float]] = []
        self._features: List[np.ndarray] = []

    @property
    def sample_count(self) -> int:
        return len(self._features)

    def begin(self) -> None:
        self._points.clear()
        self._features.clear()
        self.result = None

    def capture(self, point_px: Tuple[float, float], ray: Sequence[float]) -> None:
        width, height = self.screen_size
        self._points.append((point_px[0] / width, point_px[1] / height))
        self._features.append(feature_vector(ray))

    def finish(self) -> CalibrationResult:
        if len(self._features) < 3:
            raise ValueError("Need at least 3 samples for calibration, got {}".format(len(self._features)))
        features = np.vstack(self._features)
        points = np.asarray(self._points, dtype=float)

        ata = features.T @ features
        if abs(np.linalg.det(ata)) < SINGULAR_DETERMINANT:
            LOGGER.warning("Calibration normal matrix is near singular; regularizing")
            ata = ata + np.eye(3) * REGULARIZATION
        inverse = np.linalg.inv(ata)
        coeff_x = inverse @ (features.T @ points[:, 0])
        coeff_y = inverse @ (features.T @ points[:, 1])

        transform = np.vstack([coeff_x, coeff_y, [0.0, 0.0, 1.0]])
        rmse = calibration_rmse_deg(points, features, transform, self.screen_size, self.pixels_per_degree)
        self.result = CalibrationResult(rmse_deg=rmse, transform=transform)
        LOGGER.info("Calibration finished from %d samples, RMSE %.2f deg", len(features), rmse)
        return self.result

    def screen_point(self, ray: Sequence[float], head_pose: Optional[np.ndarray] = None) -> Tuple[float, float]:
        """Map a gaze ray to screen pixels; the screen center until a calibration exists.

        ``head_pose`` is accepted for interface parity with the sensor callback;
        the linear model works on the ray alone.
        """
        if self.result is None:
            return self.screen_size[0] / 2.0, self.screen_size[1] / 2.0
        return self.transform_point(ray, self.result.transform, self.screen_size)

    @staticmethod
    def transform_point(
        ray: Sequence[float],
        transform: np.ndarray,
        screen_size: Tuple[float, float] = DEFAULT_SCREEN_SIZE,
    ) -> Tuple[float, float]:
        normalized = np.asarray(transform)[:2] @ feature_vector(ray)
        return float(normalized[0] * screen_size[0]), float(normalized[1] * screen_size[1])
