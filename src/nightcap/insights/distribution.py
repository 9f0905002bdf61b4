"""Five-number summaries with IQR outlier flagging (box-plot statistics)."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Sequence

import numpy as np

from nightcap.errors import InsufficientData, InvalidParameter

# Tukey fence multiplier
OUTLIER_IQR_MULTIPLIER = 1.5


@dataclass(frozen=True)
class DistributionSummary:
    """Box-plot statistics for one sample.

    ``min`` and ``max`` are the true sample extremes; outliers are flagged,
    not removed.  ``whisker_low``/``whisker_high`` are the extremes clipped
    to the fences, for drawing.
    """

    min: float
    q1: float
    median: float
    q3: float
    max: float
    count: int
    mean: float
    outliers: list[float] = field(default_factory=list)

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    @property
    def lower_fence(self) -> float:
        return self.q1 - OUTLIER_IQR_MULTIPLIER * self.iqr

    @property
    def upper_fence(self) -> float:
        return self.q3 + OUTLIER_IQR_MULTIPLIER * self.iqr

    @property
    def whisker_low(self) -> float:
        return max(self.min, self.lower_fence)

    @property
    def whisker_high(self) -> float:
        return min(self.max, self.upper_fence)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["iqr"] = self.iqr
        d["whisker_low"] = self.whisker_low
        d["whisker_high"] = self.whisker_high
        return d

    def __repr__(self) -> str:
        return (
            f"DistributionSummary(n={self.count}, "
            f"min={self.min:.2f}, q1={self.q1:.2f}, med={self.median:.2f}, "
            f"q3={self.q3:.2f}, max={self.max:.2f}, outliers={len(self.outliers)})"
        )


def summarize(values: Sequence[float]) -> DistributionSummary:
    """Five-number summary of *values*.

    Quartiles use linear interpolation at rank ``(n - 1) * p`` (the R-7 /
    inclusive method, numpy's default).

    Raises:
        InsufficientData: *values* is empty.
        InvalidParameter: *values* contains NaN or infinity.
    """
    arr = np.sort(np.asarray(values, dtype=np.float64))
    if arr.size == 0:
        raise InsufficientData("cannot summarize an empty sample")
    if not np.all(np.isfinite(arr)):
        raise InvalidParameter("sample contains non-finite values; filter them first")

    q1, median, q3 = np.percentile(arr, [25.0, 50.0, 75.0])
    iqr = q3 - q1
    lo = q1 - OUTLIER_IQR_MULTIPLIER * iqr
    hi = q3 + OUTLIER_IQR_MULTIPLIER * iqr
    outliers = arr[(arr < lo) | (arr > hi)]

    return DistributionSummary(
        min=float(arr[0]),
        q1=float(q1),
        median=float(median),
        q3=float(q3),
        max=float(arr[-1]),
        count=int(arr.size),
        mean=float(np.mean(arr)),
        outliers=[float(v) for v in outliers],
    )
