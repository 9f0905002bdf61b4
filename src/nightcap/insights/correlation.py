"""Pearson correlation and least-squares trend between paired series."""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from typing import Sequence

import numpy as np
from scipy import stats

from nightcap.errors import InvalidParameter

# |r| cut-offs
WEAK_BELOW = 0.3
MODERATE_BELOW = 0.6

# Slopes this close to zero count as no trend
SLOPE_EPSILON = 1e-9


@dataclass(frozen=True)
class CorrelationResult:
    """Correlation coefficient, regression line and qualitative labels.

    ``r`` is None when no correlation can be computed (fewer than two
    points, or one series has no variance).  That is a valid outcome, not
    an error.
    """

    r: float | None
    slope: float
    intercept: float
    strength: str  # "none" | "weak" | "moderate" | "strong"
    trend: str  # "positive" | "negative" | "none"
    n: int
    p_value: float | None = None
    slope_stderr: float | None = None

    @property
    def r_squared(self) -> float | None:
        return None if self.r is None else self.r * self.r

    def to_dict(self) -> dict:
        d = asdict(self)
        d["r_squared"] = self.r_squared
        return d

    def __repr__(self) -> str:
        r = "n/a" if self.r is None else f"{self.r:.3f}"
        return (
            f"CorrelationResult(r={r}, {self.strength}, {self.trend}, "
            f"y={self.slope:.3f}x+{self.intercept:.3f}, n={self.n})"
        )


def strength_for(r: float | None) -> str:
    if r is None:
        return "none"
    magnitude = abs(r)
    if magnitude < WEAK_BELOW:
        return "weak"
    if magnitude < MODERATE_BELOW:
        return "moderate"
    return "strong"


def trend_for(slope: float, r: float | None) -> str:
    if r is None or abs(slope) <= SLOPE_EPSILON:
        return "none"
    return "positive" if slope > 0 else "negative"


def pearson_r(x: np.ndarray, y: np.ndarray) -> float | None:
    """Pearson r from sums of deviations; None for n < 2 or a constant series.

    Deviations are taken from the mean before summing, so values sharing a
    large offset (epoch seconds, step totals) keep their precision.
    """
    if x.size < 2 or np.ptp(x) == 0 or np.ptp(y) == 0:
        return None

    dx = x - np.mean(x)
    dy = y - np.mean(y)
    numerator = float(np.sum(dx * dy))
    denominator = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denominator == 0:
        return None
    # Rounding can push a perfect fit a hair past +/-1
    return max(-1.0, min(1.0, numerator / denominator))


def correlate(xs: Sequence[float], ys: Sequence[float]) -> CorrelationResult:
    """Correlate two equally long series.

    Args:
        xs: Habit values.
        ys: Sleep metric values, paired index-by-index with *xs*.

    Raises:
        InvalidParameter: Lengths differ, or a value is NaN/infinite.
    """
    if len(xs) != len(ys):
        raise InvalidParameter(
            f"xs and ys must have the same length ({len(xs)} != {len(ys)})"
        )
    x = np.asarray(xs, dtype=np.float64)
    y = np.asarray(ys, dtype=np.float64)
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise InvalidParameter("series contain non-finite values; filter them first")

    r = pearson_r(x, y)
    if r is None:
        return CorrelationResult(
            r=None, slope=0.0, intercept=0.0,
            strength="none", trend="none", n=int(x.size),
        )

    fit = stats.linregress(x, y)
    slope = float(fit.slope)
    p_value = float(fit.pvalue) if np.isfinite(fit.pvalue) else None
    stderr = float(fit.stderr) if np.isfinite(fit.stderr) else None

    return CorrelationResult(
        r=r,
        slope=slope,
        intercept=float(fit.intercept),
        strength=strength_for(r),
        trend=trend_for(slope, r),
        n=int(x.size),
        p_value=p_value,
        slope_stderr=stderr,
    )
