"""Oculomotor stop-signal task: trial scheduling, saccade scoring and session runtime."""

from .engine import TrialEngine
from .export import build_session_package, save_session_package
from .live import LiveTrial
from .models import (
    AngleSample,
    ClassLabel,
    Results,
    SaccadeOutcome,
    SessionMeta,
    Trial,
    TrialBlock,
    TrialDirection,
    TrialExclusion,
    TrialMetricsInput,
    TrialSpec,
    TrialType,
)
from .scheduler import TrialScheduler
from .session import SessionRunner

__all__ = [
    "AngleSample",
    "ClassLabel",
    "LiveTrial",
    "Results",
    "SaccadeOutcome",
    "SessionMeta",
    "SessionRunner",
    "Trial",
    "TrialBlock",
    "TrialDirection",
    "TrialEngine",
    "TrialExclusion",
    "TrialMetricsInput",
    "TrialScheduler",
    "TrialSpec",
    "TrialType",
    "build_session_package",
    "save_session_package",
]
