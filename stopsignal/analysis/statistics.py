from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np


def _as_array(values: Iterable[float]) -> np.ndarray:
    return np.asarray(list(values), dtype=float)


def mean(values: Iterable[float]) -> float:
    arr = _as_array(values)
    if arr.size == 0:
        return math.nan
    return float(arr.mean())


def stddev(values: Iterable[float]) -> float:
    """Sample standard deviation (n - 1 denominator); NaN below two values."""
    arr = _as_array(values)
    if arr.size < 2:
        return math.nan
    return float(arr.std(ddof=1))


def percentile(values: Sequence[float], p: float) -> float:
    """Linearly interpolated percentile with ``p`` given as a fraction in [0, 1]."""
    if not 0.0 <= p <= 1.0:
        raise ValueError("Percentile must be in [0, 1], got {}".format(p))
    arr = _as_array(values)
    if arr.size == 0:
        return math.nan
    return float(np.percentile(arr, p * 100.0))


def z_score(value: float, mean_value: float, sd: float) -> float:
    if sd <= 0:
        return 0.0
    return (value - mean_value) / sd


def gaussian_pdf(value: float, mean_value: float, sd: float) -> float:
    if sd <= 0:
        return 0.0
    exponent = -((value - mean_value) ** 2) / (2.0 * sd ** 2)
    return math.exp(exponent) / (sd * math.sqrt(2.0 * math.pi))
