from __future__ import annotations

import math

import numpy as np
import pytest

from stopsignal.gaze.angles import GazeCenter, ray_to_angles, ray_to_angles_rad
from stopsignal.gaze.calibration import (
    CALIBRATION_POINTS,
    CalibrationResult,
    Calibrator,
    average_ray,
    calibration_rmse_deg,
    needs_recalibration,
)

SCREEN = (1024.0, 768.0)


def _captured_calibrator(offset=(0.0, 0.0)) -> Calibrator:
    calibrator = Calibrator(SCREEN)
    calibrator.begin()
    for nx, ny in CALIBRATION_POINTS:
        ray = ((nx - 0.5) / 2.0 + offset[0], (ny - 0.5) / 2.0 + offset[1], 1.0)
        calibrator.capture((nx * SCREEN[0], ny * SCREEN[1]), ray)
    return calibrator


def test_linear_gaze_is_fitted_exactly():
    calibrator = _captured_calibrator()
    result = calibrator.finish()
    assert calibrator.sample_count == len(CALIBRATION_POINTS)
    assert result.rmse_deg == pytest.approx(0.0, abs=1e-6)
    x, y = calibrator.screen_point((0.0, 0.0, 1.0))
    assert x == pytest.approx(512.0, abs=1e-6)
    assert y == pytest.approx(384.0, abs=1e-6)
    x, y = Calibrator.transform_point((0.2, -0.2, 1.0), result.transform, SCREEN)
    assert x == pytest.approx(0.9 * SCREEN[0], abs=1e-6)
    assert y == pytest.approx(0.1 * SCREEN[1], abs=1e-6)


def test_transform_keeps_homogeneous_row():
    result = _captured_calibrator().finish()
    assert result.transform.shape == (3, 3)
    np.testing.assert_allclose(result.transform[2], [0.0, 0.0, 1.0])
    assert result.to_dict()["transform"][2] == [0.0, 0.0, 1.0]


def test_too_few_samples_raise():
    calibrator = Calibrator(SCREEN)
    calibrator.capture((100.0, 100.0), (0.0, 0.0, 1.0))
    calibrator.capture((200.0, 100.0), (0.1, 0.0, 1.0))
    with pytest.raises(ValueError):
        calibrator.finish()


def test_degenerate_rays_are_regularized():
    calibrator = Calibrator(SCREEN)
    for nx, ny in CALIBRATION_POINTS:
        calibrator.capture((nx * SCREEN[0], ny * SCREEN[1]), (0.0, 0.0, 1.0))
    result = calibrator.finish()
    assert np.all(np.isfinite(result.transform))
    assert result.rmse_deg > 0.0


def test_uncalibrated_screen_point_is_center():
    assert Calibrator(SCREEN).screen_point((0.3, 0.3, 1.0)) == (512.0, 384.0)


def test_begin_discards_previous_captures():
    calibrator = _captured_calibrator()
    calibrator.finish()
    calibrator.begin()
    assert calibrator.sample_count == 0
    assert calibrator.result is None


def test_rmse_of_empty_input_is_nan():
    assert math.isnan(calibration_rmse_deg(np.empty((0, 2)), np.empty((0, 3)), np.eye(3)))


def test_average_ray():
    np.testing.assert_allclose(average_ray([]), [0.0, 0.0, 1.0])
    np.testing.assert_allclose(average_ray([(0.1, 0.0, 1.0), (0.3, 0.2, 1.0)]), [0.2, 0.1, 1.0])


@pytest.mark.parametrize("rmse, expected", [(1.0, False), (2.0, False), (2.5, True), (math.nan, True)])
def test_needs_recalibration(rmse: float, expected: bool):
    assert needs_recalibration(CalibrationResult(rmse_deg=rmse, transform=np.eye(3))) is expected


def test_ray_to_angles():
    assert ray_to_angles((0.0, 0.0, 1.0)) == (0.0, 0.0)
    horizontal, vertical = ray_to_angles((1.0, -1.0, 1.0))
    assert horizontal == pytest.approx(45.0)
    assert vertical == pytest.approx(-45.0)


def test_gaze_center_removes_constant_offset():
    center = GazeCenter(required_samples=3)
    offset_h, offset_v = math.radians(2.0), math.radians(-1.0)
    assert center.apply(offset_h, offset_v) == pytest.approx((2.0, -1.0))
    completions = [center.accumulate(offset_h, offset_v) for _ in range(3)]
    assert completions == [False, False, True]
    assert center.calibrated
    assert center.accumulate(1.0, 1.0) is False
    assert center.apply(offset_h, offset_v) == pytest.approx((0.0, 0.0), abs=1e-9)

    h_rad, v_rad = ray_to_angles_rad((math.tan(offset_h + math.radians(12.0)), math.tan(offset_v), 1.0))
    assert center.apply(h_rad, v_rad) == pytest.approx((12.0, 0.0), abs=1e-9)

    center.reset()
    assert not center.calibrated
