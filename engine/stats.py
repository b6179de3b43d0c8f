from typing import Sequence, Tuple

import numpy as np

# below this a standard deviation is treated as zero
_SD_EPS = 1e-9


def mean_sd(vals: Sequence[float]) -> Tuple[float, float]:
    """Population mean and standard deviation (ddof=0); (0, 0) for no values."""
    if not len(vals):
        return 0.0, 0.0
    arr = np.asarray(vals, dtype=float)
    return float(arr.mean()), float(arr.std(ddof=0))


def z_score(vals: Sequence[float], value: float) -> float:
    mu, sd = mean_sd(vals)
    if sd <= _SD_EPS:
        return 0.0
    return (float(value) - mu) / sd


def min_max(vals: Sequence[float], value: float) -> float:
    pool = [float(v) for v in vals] + [float(value)]
    lo, hi = min(pool), max(pool)
    if hi == lo:
        return 0.0
    return (float(value) - lo) / (hi - lo)


def normalize_value(history: Sequence[float], value: float, min_points: int = 8) -> float:
    """
    z-score against `history` when it has at least `min_points` values,
    otherwise min-max over history + value (0..1).
    """
    if len(history) >= min_points:
        return z_score(history, value)
    return min_max(history, value)


def upper_median(vals: Sequence[float]) -> float:
    """sorted(vals)[n // 2]: the upper of the two middle values for even n."""
    if not len(vals):
        return 0.0
    s = sorted(float(v) for v in vals)
    return s[len(s) // 2]
