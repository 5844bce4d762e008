from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Tuple


SST_VERSION = "1.0.0"
DEFAULT_SEED = 0xF1F2F3F4
DEFAULT_TEST_SEED = 0x5EEDC0DE


@dataclass(frozen=True)
class GaussianReference:
    mean: float
    sd: float


@dataclass
class ScoringModel:
    """Reference distributions and decision thresholds of the classifier.

    The stop-accuracy and RT-slowing references for each class encode the
    clinical calibration of the instrument. ``sharpening_exponent`` is applied to
    both class likelihoods before normalization.
    """

    typical_stop_accuracy: GaussianReference = GaussianReference(69.0, 10.0)
    atypical_stop_accuracy: GaussianReference = GaussianReference(62.0, 10.0)
    typical_slowing: GaussianReference = GaussianReference(99.0, 35.0)
    atypical_slowing: GaussianReference = GaussianReference(73.0, 35.0)
    sharpening_exponent: float = 2.0
    atypical_threshold: float = 0.70
    typical_threshold: float = 0.30

    @classmethod
    def from_defaults(cls) -> "ScoringModel":
        return cls()

    @classmethod
    def literature(cls) -> "ScoringModel":
        # Per-class SDs as published; the pooled defaults separate the class
        # centers more sharply.
        return cls(
            typical_stop_accuracy=GaussianReference(69.0, 15.0),
            atypical_stop_accuracy=GaussianReference(62.0, 17.0),
            typical_slowing=GaussianReference(99.0, 53.0),
            atypical_slowing=GaussianReference(73.0, 50.0),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class EarlyStopPolicy:
    enabled: bool = True
    min_completed_sst: int = 40
    min_valid_go: int = 20
    min_valid_stop: int = 16


@dataclass
class BreakPolicy:
    enabled: bool = True
    min_valid_go: int = 10
    min_valid_stop: int = 8
    fallback_completed_sst: int = 30


@dataclass
class SSTConfig:
    baseline_trial_count: int = 10
    sst_trial_count: int = 60
    practice_trial_count: int = 0
    go_probability: float = 0.6
    max_consecutive_type: int = 3
    max_same_side_in_row: int = 3
    target_eccentricity_deg: float = 12.0
    fixation_radius_deg: float = 3.0
    fixation_samples_required: int = 8
    min_fixation_ms: int = 300
    fixation_duration_range_ms: Tuple[int, int] = (1500, 2000)
    go_timeout_ms: int = 650
    iti_range_ms: Tuple[int, int] = (1000, 1500)
    feedback_duration_ms: int = 450
    anticipation_threshold_ms: int = 100
    stop_signal_delay_range_ms: Tuple[int, int] = (50, 200)
    sampling_rate_hz: float = 60.0
    rng_seed: int = DEFAULT_SEED
    max_gaze_rmse_deg: float = 2.5
    gaze_center_samples: int = 20
    lost_tracking_gap_ms: int = 1500
    head_motion_drift_cm: float = 3.0
    head_motion_range_cm: float = 5.0
    default_viewing_distance_cm: float = 60.0
    early_stop: EarlyStopPolicy = field(default_factory=EarlyStopPolicy)
    mid_block_break: BreakPolicy = field(default_factory=BreakPolicy)
    scoring: ScoringModel = field(default_factory=ScoringModel)
    test_mode: bool = False

    @property
    def enable_early_stop(self) -> bool:
        return self.early_stop.enabled

    def to_dict(self) -> dict:
        data = asdict(self)
        data["fixation_duration_range_ms"] = list(self.fixation_duration_range_ms)
        data["iti_range_ms"] = list(self.iti_range_ms)
        data["stop_signal_delay_range_ms"] = list(self.stop_signal_delay_range_ms)
        return data

    @classmethod
    def from_defaults(cls) -> "SSTConfig":
        """Short-form production session (roughly four to six minutes)."""
        return cls()

    @classmethod
    def for_testing(cls, seed: int = DEFAULT_TEST_SEED) -> "SSTConfig":
        return cls(
            baseline_trial_count=30,
            sst_trial_count=120,
            rng_seed=seed,
            early_stop=EarlyStopPolicy(enabled=False),
            test_mode=True,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base: "SSTConfig | None" = None) -> "SSTConfig":
        """Return ``base`` (defaults when omitted) with the values in ``data`` applied.

        Nested policies accept either instances or plain mappings, and ranges
        accept any two-item sequence.
        """
        base = base or cls.from_defaults()
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError("Unknown configuration keys: {}".format(sorted(unknown)))
        overrides: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "early_stop" and isinstance(value, Mapping):
                value = replace(base.early_stop, **value)
            elif key == "mid_block_break" and isinstance(value, Mapping):
                value = replace(base.mid_block_break, **value)
            elif key == "scoring" and isinstance(value, Mapping):
                value = _scoring_from_mapping(base.scoring, value)
            elif key.endswith("_range_ms"):
                low, high = value
                value = (int(low), int(high))
            overrides[key] = value
        config = replace(base, **overrides)
        config.validate()
        return config

    def validate(self) -> None:
        if self.rng_seed == 0:
            raise ValueError("RNG seed must be non-zero.")
        if self.baseline_trial_count < 0 or self.sst_trial_count < 0 or self.practice_trial_count < 0:
            raise ValueError("Trial counts must be non-negative.")
        if not 0.0 <= self.go_probability <= 1.0:
            raise ValueError("GO probability must be within [0, 1].")
        if self.max_consecutive_type < 1 or self.max_same_side_in_row < 1:
            raise ValueError("Run-length limits must be at least 1.")
        for name in ("fixation_duration_range_ms", "iti_range_ms", "stop_signal_delay_range_ms"):
            low, high = getattr(self, name)
            if low < 0 or high < low:
                raise ValueError("{} must satisfy 0 <= min <= max, got {}".format(name, (low, high)))
        if self.sampling_rate_hz <= 0:
            raise ValueError("Sampling rate must be positive.")
        if self.go_timeout_ms <= 0:
            raise ValueError("Go timeout must be positive.")


def _scoring_from_mapping(base: ScoringModel, data: Mapping[str, Any]) -> ScoringModel:
    overrides: Dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, Mapping):
            value = GaussianReference(float(value["mean"]), float(value["sd"]))
        elif isinstance(value, (tuple, list)):
            value = GaussianReference(float(value[0]), float(value[1]))
        overrides[key] = value
    return replace(base, **overrides)
