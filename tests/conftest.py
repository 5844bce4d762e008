from __future__ import annotations

import sys

import pytest
from PyQt5 import QtCore

from stopsignal.models import Trial, TrialBlock, TrialDirection, TrialType
from taskcore.config import SSTConfig


@pytest.fixture(scope="session")
def qapp():
    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication(sys.argv[:1])
    yield app


@pytest.fixture
def small_config() -> SSTConfig:
    return SSTConfig.from_dict({"baseline_trial_count": 4, "sst_trial_count": 12, "rng_seed": 0xC0FFEE})


def make_trial(
    index: int = 1,
    block: TrialBlock = TrialBlock.SST,
    trial_type: TrialType = TrialType.GO,
    rt_ms=300,
    go_success: bool = True,
    stop_success: bool = False,
    ssd_ms=None,
    gaze_rmse_deg: float = 0.5,
    head_motion: bool = False,
    lost_tracking: bool = False,
) -> Trial:
    if trial_type is TrialType.STOP and ssd_ms is None:
        ssd_ms = 100
    return Trial(
        trial_index=index,
        block=block,
        type=trial_type,
        direction=TrialDirection.RIGHT if index % 2 else TrialDirection.LEFT,
        ssd_ms=ssd_ms,
        go_onset_ms=1000 * index,
        rt_ms=rt_ms,
        go_success=go_success,
        stop_success=stop_success,
        gaze_rmse_deg=gaze_rmse_deg,
        viewing_distance_cm=60.0,
        head_motion=head_motion,
        lost_tracking=lost_tracking,
    )


@pytest.fixture
def trial_factory():
    return make_trial
