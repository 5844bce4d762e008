from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime

from stopsignal.analysis.report import format_results, results_summary_text
from stopsignal.analysis.scoring import compute_results
from stopsignal.export import build_session_package, save_session_package
from stopsignal.models import SessionMeta, TrialBlock, TrialExclusion, TrialType
from taskcore.config import SSTConfig
from taskcore.fileio import build_timestamped_path, load_pickle


def _session(trial_factory):
    trials = [trial_factory(index=i, block=TrialBlock.BASELINE, rt_ms=250) for i in range(1, 5)]
    trials.append(trial_factory(index=5, rt_ms=320))
    trials.append(
        trial_factory(index=6, trial_type=TrialType.STOP, rt_ms=None, go_success=False, stop_success=True, ssd_ms=150)
    )
    return trials


def test_trial_export_record(trial_factory):
    stop = trial_factory(index=3, trial_type=TrialType.STOP, rt_ms=None, go_success=False, stop_success=True)
    record = stop.to_dict()
    assert record["dir"] == "right"
    assert record["type"] == "stop"
    assert record["ssd_ms"] == 100
    assert record["go_success"] == 0 and record["stop_success"] == 1
    assert "rt_ms" not in record
    assert "exclusions" not in record

    flagged = replace(
        trial_factory(index=4, head_motion=True),
        exclusions=frozenset({TrialExclusion.HEAD_MOTION, TrialExclusion.ANTICIPATION}),
    )
    record = flagged.to_dict()
    assert record["head_motion_flag"] == 1
    assert record["exclusions"] == ["anticipation", "headMotion"]
    assert "ssd_ms" not in record


def test_session_package_round_trip(tmp_path, trial_factory):
    trials = _session(trial_factory)
    meta = SessionMeta(device_model="iPad", viewing_distance_mean_cm=58.0, calibration_rmse_deg=0.8)
    results = compute_results(trials, meta)
    package = build_session_package(meta, results, trials)
    assert set(package) == {"package_id", "session", "results", "trials"}
    assert package["session"]["session_uid"] == meta.session_uid
    assert package["results"]["go_rt_sst_ms"] == 320
    assert package["results"]["stop_accuracy_pct"] == 100.0

    path = save_session_package(package, tmp_path / "out", prefix="Pilot")
    assert path.exists()
    assert path.name.startswith("Pilot_") and path.suffix == ".pkl"
    assert load_pickle(path) == package


def test_package_ids_are_unique(trial_factory):
    trials = _session(trial_factory)
    meta = SessionMeta()
    results = compute_results(trials, meta)
    first = build_session_package(meta, results, trials, SSTConfig.from_defaults())
    second = build_session_package(meta, results, trials)
    assert first["package_id"] != second["package_id"]
    assert "config" in first and "config" not in second


def test_timestamped_path_format(tmp_path):
    path = build_timestamped_path(tmp_path / "nested", "FireFlySST", dt=datetime(2024, 3, 5, 14, 7, 9))
    assert path.name == "FireFlySST_20240305_140709.pkl"
    assert path.parent.is_dir()


def test_format_results_renders_nan_as_not_available(trial_factory):
    results = compute_results([trial_factory(index=1, block=TrialBlock.BASELINE, rt_ms=250)])
    rows = dict(format_results(results))
    assert rows["Baseline RT (ms)"] == "250"
    assert rows["SSRT (ms)"] == "N/A"
    assert rows["Stop accuracy"] == "N/A"
    assert rows["Classification"] == "Insufficient data"
    assert rows["Included trials (baseline go / SST go / stop)"] == "1 / 0 / 0"


def test_format_results_localized(trial_factory):
    results = compute_results(_session(trial_factory))
    rows = dict(format_results(results, language="zh"))
    assert rows["停止正确率"] == "100.0%"
    assert rows["反应时减慢 (毫秒)"] == "+70"
    assert not math.isnan(results.ssrt_ms)
    text = results_summary_text(results, language="zh")
    assert text.splitlines()[0] == "结果"


def test_unknown_language_falls_back_to_english(trial_factory):
    results = compute_results(_session(trial_factory))
    labels = [label for label, _ in format_results(results, language="fr")]
    assert "SSRT (ms)" in labels
