from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from PyQt5 import QtCore


@dataclass
class Stopwatch:
    """Session clock: the wall-clock start names output files, the monotonic offset times samples."""

    start_datetime: datetime = field(default_factory=datetime.now)
    start_perf: float = field(default_factory=time.perf_counter)

    def reset(self) -> None:
        self.start_datetime, self.start_perf = datetime.now(), time.perf_counter()

    def elapsed(self) -> float:
        return time.perf_counter() - self.start_perf


def elapsed_ms(start_s: float, now_s: float) -> float:
    return (now_s - start_s) * 1000.0


def deadline_reached(start_s: float, now_s: float, duration_ms: float) -> bool:
    """True once ``duration_ms`` whole milliseconds have passed since ``start_s``."""
    return int(elapsed_ms(start_s, now_s)) >= duration_ms


def start_polling_timer(
    parent: Optional[QtCore.QObject],
    on_tick: Callable[[float], None],
    stopwatch: Optional[Stopwatch] = None,
    interval_ms: int = 16,
    register_timer: Optional[Callable[[QtCore.QTimer], None]] = None,
) -> QtCore.QTimer:
    """Start a repeating Qt timer that calls ``on_tick`` with the stopwatch time in seconds."""
    stopwatch = stopwatch or Stopwatch()
    timer = QtCore.QTimer(parent)
    timer.setInterval(max(1, int(interval_ms)))

    def _handle_timeout() -> None:
        on_tick(stopwatch.elapsed())

    timer.timeout.connect(_handle_timeout)
    timer.start()
    if register_timer:
        register_timer(timer)
    return timer
