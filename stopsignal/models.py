from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from taskcore.config import SST_VERSION


class TrialBlock(str, Enum):
    PRACTICE = "practice"
    BASELINE = "baseline"
    SST = "sst"


class TrialType(str, Enum):
    GO = "go"
    STOP = "stop"


class TrialDirection(str, Enum):
    LEFT = "left"
    RIGHT = "right"

    @property
    def sign(self) -> float:
        return -1.0 if self is TrialDirection.LEFT else 1.0

    def opposite(self) -> "TrialDirection":
        return TrialDirection.RIGHT if self is TrialDirection.LEFT else TrialDirection.LEFT


class TrialExclusion(str, Enum):
    ANTICIPATION = "anticipation"
    POOR_GAZE = "poorGaze"
    HEAD_MOTION = "headMotion"
    LOST_TRACKING = "lostTracking"


class ClassLabel(str, Enum):
    TYPICAL_LIKE = "typical-like"
    INDETERMINATE = "indeterminate"
    ATYPICAL_LIKE = "atypical-like"


class AgeBucket(str, Enum):
    AGE_18_24 = "18-24"
    AGE_25_34 = "25-34"
    AGE_35_44 = "35-44"
    AGE_45_PLUS = "45+"
    PREFER_NOT_TO_SAY = "Prefer not to say"


@dataclass(frozen=True)
class TrialSpec:
    index: int
    block: TrialBlock
    type: TrialType
    direction: TrialDirection
    ssd_ms: Optional[int] = None

    def __post_init__(self) -> None:
        if self.type is TrialType.STOP and self.ssd_ms is None:
            raise ValueError("STOP trials require a stop-signal delay.")
        if self.type is TrialType.GO and self.ssd_ms is not None:
            raise ValueError("GO trials cannot carry a stop-signal delay.")

    @property
    def is_stop(self) -> bool:
        return self.type is TrialType.STOP


@dataclass(frozen=True)
class AngleSample:
    timestamp: float
    horizontal_deg: float
    vertical_deg: float


@dataclass(frozen=True)
class SaccadeOutcome:
    reaction_time_ms: Optional[int]
    entered_corridor: bool
    anticipation: bool


@dataclass(frozen=True)
class TrialMetricsInput:
    go_onset_ms: int
    rt_ms: Optional[int]
    go_success: bool
    stop_success: bool
    gaze_rmse_deg: float
    viewing_distance_cm: float
    head_motion: bool = False
    lost_tracking: bool = False


@dataclass(frozen=True)
class Trial:
    trial_index: int
    block: TrialBlock
    type: TrialType
    direction: TrialDirection
    ssd_ms: Optional[int]
    go_onset_ms: int
    rt_ms: Optional[int]
    go_success: bool
    stop_success: bool
    gaze_rmse_deg: float
    viewing_distance_cm: float
    head_motion: bool
    lost_tracking: bool
    exclusions: FrozenSet[TrialExclusion] = frozenset()

    @property
    def is_excluded(self) -> bool:
        return bool(self.exclusions)

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "trial_index": self.trial_index,
            "block": self.block.value,
            "type": self.type.value,
            "dir": self.direction.value,
            "go_onset_ms": self.go_onset_ms,
            "go_success": int(self.go_success),
            "stop_success": int(self.stop_success),
            "gaze_rmse_deg": self.gaze_rmse_deg,
            "viewing_distance_cm": self.viewing_distance_cm,
            "head_motion_flag": int(self.head_motion),
            "lost_tracking_flag": int(self.lost_tracking),
        }
        if self.ssd_ms is not None:
            record["ssd_ms"] = self.ssd_ms
        if self.rt_ms is not None:
            record["rt_ms"] = self.rt_ms
        if self.exclusions:
            record["exclusions"] = sorted(reason.value for reason in self.exclusions)
        return record


@dataclass(frozen=True)
class Results:
    baseline_rt_ms: float
    go_rt_ms: float
    go_rt_slowing_ms: float
    stopping_accuracy_pct: float
    ssrt_ms: float
    p_atypical: float
    proactive_z: float
    classification_label: ClassLabel
    included_baseline_go: int
    included_sst_go: int
    included_go: int
    included_stop: int
    build_id: str = ""

    @property
    def has_sufficient_data(self) -> bool:
        return not (math.isnan(self.ssrt_ms) or math.isnan(self.stopping_accuracy_pct))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseline_rt_ms": self.baseline_rt_ms,
            "go_rt_sst_ms": self.go_rt_ms,
            "go_rt_slowing_ms": self.go_rt_slowing_ms,
            "stop_accuracy_pct": self.stopping_accuracy_pct,
            "ssrt_ms": self.ssrt_ms,
            "p_atypical": self.p_atypical,
            "proactive_z": self.proactive_z,
            "classification_label": self.classification_label.value,
            "included_baseline_go": self.included_baseline_go,
            "included_sst_go": self.included_sst_go,
            "included_go": self.included_go,
            "included_stop": self.included_stop,
            "build_id": self.build_id,
        }


@dataclass(frozen=True)
class SessionMeta:
    app_version: str = SST_VERSION
    device_model: str = "unknown"
    os_version: str = "unknown"
    viewing_distance_mean_cm: float = 0.0
    calibration_rmse_deg: float = math.nan
    age_bucket: AgeBucket = AgeBucket.PREFER_NOT_TO_SAY
    build_id: str = "1"
    session_uid: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_uid": self.session_uid,
            "app_version": self.app_version,
            "device_model": self.device_model,
            "os_version": self.os_version,
            "viewing_distance_mean_cm": self.viewing_distance_mean_cm,
            "calibration_rmse_deg": self.calibration_rmse_deg,
            "age_bucket": self.age_bucket.value,
            "build_id": self.build_id,
        }
