"""
descriptive.py
─────────────────────────────────────────────────────────────────────────────
Descriptive statistics, IQR outlier fences and Pearson correlation over
plain numeric vectors.

Conventions (applied everywhere, including outlier fences):
  standard deviation → population (divide by N)
  quartile(p)        → linear interpolation at idx = p * (n - 1)
  skewness           → adjusted Fisher-Pearson G1, 0 when n < 3
  kurtosis           → bias-corrected excess G2, 0 when n < 4
Both shape moments agree with pandas Series.skew() / Series.kurt().
─────────────────────────────────────────────────────────────────────────────
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from normaize.models import ColumnStatistics

IQR_MULTIPLIER = 1.5


def _array(values: Sequence[float]) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    return arr[np.isfinite(arr)]


def mean(values: Sequence[float]) -> float:
    arr = _array(values)
    return float(arr.mean()) if arr.size else 0.0


def quartile(values: Sequence[float], p: float) -> float:
    arr = _array(values)
    if not arr.size:
        return 0.0
    # numpy's default "linear" method interpolates at p * (n - 1)
    return float(np.quantile(arr, p))


def median(values: Sequence[float]) -> float:
    return quartile(values, 0.5)


def standard_deviation(values: Sequence[float]) -> float:
    arr = _array(values)
    if arr.size <= 1:
        return 0.0
    return float(arr.std(ddof=0))


def _negligible(spread: float, arr: np.ndarray) -> bool:
    """
    True when a sum of squared deviations is rounding noise relative to the
    magnitude of `arr`, i.e. the vector is constant for numerical purposes.
    """
    scale = float(np.mean(arr * arr)) if arr.size else 0.0
    return spread <= np.finfo(float).eps * arr.size * scale


def _z_scores(arr: np.ndarray) -> Tuple[np.ndarray, float]:
    dev = arr - arr.mean()
    spread = float(np.sum(dev * dev))
    if _negligible(spread, arr):
        return arr, 0.0
    std = math.sqrt(spread / arr.size)
    return dev / std, std


def skewness(values: Sequence[float]) -> float:
    arr = _array(values)
    n = arr.size
    if n < 3:
        return 0.0
    z, std = _z_scores(arr)
    if std == 0.0:
        return 0.0
    return float(np.mean(z ** 3) * math.sqrt(n * (n - 1)) / (n - 2))


def kurtosis(values: Sequence[float]) -> float:
    arr = _array(values)
    n = arr.size
    if n < 4:
        return 0.0
    z, std = _z_scores(arr)
    if std == 0.0:
        return 0.0
    g2 = float(np.mean(z ** 4)) - 3.0
    return ((n + 1) * g2 + 6.0) * (n - 1) / ((n - 2) * (n - 3))


# ── outliers ──────────────────────────────────────────────────────────────────
def iqr_fences(values: Sequence[float]) -> Tuple[float, float]:
    q1 = quartile(values, 0.25)
    q3 = quartile(values, 0.75)
    iqr = q3 - q1
    return q1 - IQR_MULTIPLIER * iqr, q3 + IQR_MULTIPLIER * iqr


def outlier_positions(values: Sequence[float]) -> List[int]:
    """Positions in `values` lying strictly outside the IQR fences."""
    if not len(values):
        return []
    lo, hi = iqr_fences(values)
    return [i for i, v in enumerate(values) if math.isfinite(v) and (v < lo or v > hi)]


def count_outliers(values: Sequence[float]) -> int:
    return len(outlier_positions(values))


# ── correlation ───────────────────────────────────────────────────────────────
def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson coefficient clamped to [-1, 1]; 0 when undefined."""
    if len(x) != len(y) or len(x) < 2:
        return 0.0
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    dx = xs - xs.mean()
    dy = ys - ys.mean()
    sxx = float(np.sum(dx * dx))
    syy = float(np.sum(dy * dy))
    if _negligible(sxx, xs) or _negligible(syy, ys):
        return 0.0
    r = float(np.sum(dx * dy)) / math.sqrt(sxx * syy)
    if not math.isfinite(r):
        return 0.0
    return max(-1.0, min(1.0, r))


def correlation_key(a: str, b: str) -> str:
    return f"{a}_{b}"


def _paired(
    x: Sequence[float], x_rows: Sequence[int], y: Sequence[float], y_rows: Sequence[int]
) -> Tuple[List[float], List[float]]:
    """Values of both series restricted to the rows they share."""
    by_row = dict(zip(y_rows, y))
    xs: List[float] = []
    ys: List[float] = []
    for row, value in zip(x_rows, x):
        if row in by_row:
            xs.append(value)
            ys.append(by_row[row])
    return xs, ys


def correlation_matrix(
    series: Dict[str, Sequence[float]],
    rows: Optional[Dict[str, Sequence[int]]] = None,
) -> Dict[str, float]:
    """
    Pearson coefficient for every pair (i < j, insertion order) of series
    with equal length, keyed "<a>_<b>".

    When `rows` gives the source row of each value, a pair is correlated
    over the rows both series have a value for; otherwise by position.
    """
    names = list(series)
    matrix: Dict[str, float] = {}
    for i, a in enumerate(names):
        for b in names[i + 1:]:
            if len(series[a]) != len(series[b]):
                continue
            x, y = series[a], series[b]
            if rows is not None:
                x, y = _paired(x, rows[a], y, rows[b])
            matrix[correlation_key(a, b)] = pearson_correlation(x, y)
    return matrix


# ── per column ────────────────────────────────────────────────────────────────
def column_statistics(name: str, values: Sequence[float]) -> ColumnStatistics:
    arr = _array(values)
    q2 = median(arr)
    return ColumnStatistics(
        column_name=name,
        mean=mean(arr),
        median=q2,
        standard_deviation=standard_deviation(arr),
        min=float(arr.min()),
        max=float(arr.max()),
        q1=quartile(arr, 0.25),
        q2=q2,
        q3=quartile(arr, 0.75),
        skewness=skewness(arr),
        kurtosis=kurtosis(arr),
        outlier_count=count_outliers(arr),
    )
