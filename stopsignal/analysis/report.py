from __future__ import annotations

import math
from typing import List, Tuple

from taskcore.utils import translate

from ..models import ClassLabel, Results


TRANSLATIONS = {
    "en": {
        "result_title": "Result",
        "result_baseline_rt": "Baseline RT (ms)",
        "result_go_rt": "SST go RT (ms)",
        "result_slowing": "RT slowing (ms)",
        "result_stop_accuracy": "Stop accuracy",
        "result_ssrt": "SSRT (ms)",
        "result_probability": "Atypical-like probability",
        "result_label": "Classification",
        "result_proactive_z": "Proactive control (z)",
        "result_included": "Included trials (baseline go / SST go / stop)",
        "not_available": "N/A",
        "insufficient_data": "Insufficient data",
        "typical-like": "Typical-like",
        "indeterminate": "Indeterminate",
        "atypical-like": "Atypical-like",
    },
    "zh": {
        "result_title": "结果",
        "result_baseline_rt": "基线反应时 (毫秒)",
        "result_go_rt": "停止信号任务 Go 反应时 (毫秒)",
        "result_slowing": "反应时减慢 (毫秒)",
        "result_stop_accuracy": "停止正确率",
        "result_ssrt": "停止信号反应时 (毫秒)",
        "result_probability": "非典型样概率",
        "result_label": "分类",
        "result_proactive_z": "前摄控制 (z)",
        "result_included": "纳入试次 (基线 Go / 任务 Go / 停止)",
        "not_available": "无",
        "insufficient_data": "数据不足",
        "typical-like": "典型样",
        "indeterminate": "不确定",
        "atypical-like": "非典型样",
    },
}


def _fmt(value: float, pattern: str, language: str) -> str:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return translate(TRANSLATIONS, language, "not_available")
    if math.isnan(number):
        return translate(TRANSLATIONS, language, "not_available")
    return pattern.format(number)


def format_results(results: Results, language: str = "en") -> List[Tuple[str, str]]:
    """Localized ``(label, value)`` rows for the results screen; NaN renders as N/A."""

    def t(key: str) -> str:
        return translate(TRANSLATIONS, language, key)

    if math.isnan(results.p_atypical) or not results.has_sufficient_data:
        label_text = t("insufficient_data")
    else:
        label_text = t(ClassLabel(results.classification_label).value)

    included = "{} / {} / {}".format(results.included_baseline_go, results.included_sst_go, results.included_stop)
    return [
        (t("result_baseline_rt"), _fmt(results.baseline_rt_ms, "{:.0f}", language)),
        (t("result_go_rt"), _fmt(results.go_rt_ms, "{:.0f}", language)),
        (t("result_slowing"), _fmt(results.go_rt_slowing_ms, "{:+.0f}", language)),
        (t("result_stop_accuracy"), _fmt(results.stopping_accuracy_pct, "{:.1f}%", language)),
        (t("result_ssrt"), _fmt(results.ssrt_ms, "{:.0f}", language)),
        (t("result_probability"), _fmt(results.p_atypical, "{:.2f}", language)),
        (t("result_label"), label_text),
        (t("result_proactive_z"), _fmt(results.proactive_z, "{:+.2f}", language)),
        (t("result_included"), included),
    ]


def results_summary_text(results: Results, language: str = "en") -> str:
    rows = format_results(results, language)
    width = max(len(label) for label, _ in rows)
    lines = [translate(TRANSLATIONS, language, "result_title")]
    lines.extend("{}  {}".format(label.ljust(width), value) for label, value in rows)
    return "\n".join(lines)
