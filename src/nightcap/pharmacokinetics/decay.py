"""First-order elimination and superposition of doses.

Every consumption event decays independently:

    remaining(t) = dose * 0.5 ** (hours_since_dose / half_life)

and the level in the body at an instant is the sum of what is left of each
earlier dose.  ``aggregate_level`` is the one place that sum is computed;
timelines, bedtime checks and the averaged day all call into it.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Sequence

import numpy as np

from nightcap.config import settings
from nightcap.errors import InvalidParameter
from nightcap.models import ConsumptionEvent


def _check_half_life(half_life_hours: float) -> None:
    # Also rejects NaN
    if not half_life_hours > 0:
        raise InvalidParameter(f"half_life_hours must be positive, got {half_life_hours!r}")


def _check_threshold(threshold_percent: float) -> None:
    if not 0 <= threshold_percent <= 100:
        raise InvalidParameter(f"threshold_percent must be in [0, 100], got {threshold_percent!r}")


def elapsed_hours(start: datetime, end: datetime) -> float:
    """Hours from *start* to *end* (negative if *end* is earlier)."""
    return (end - start).total_seconds() / 3600.0


def decay_level(dose: float, half_life_hours: float, hours: float) -> float:
    """Amount of a single dose remaining *hours* after it was taken.

    A dose taken after the query instant (negative elapsed time) has no
    effect yet and contributes 0.
    """
    _check_half_life(half_life_hours)
    if hours < 0:
        return 0.0
    return dose * math.pow(0.5, hours / half_life_hours)


def aggregate_level(
    events: Sequence[ConsumptionEvent],
    at: datetime,
    half_life_hours: float,
    threshold_percent: float = settings.DEFAULT_THRESHOLD_PERCENT,
) -> float:
    """Total substance level at *at* from all events up to that instant.

    Args:
        events: Consumption events, in any order.  Events after *at* are
            ignored; there is no look-back limit on earlier ones.
        at: Query instant.
        half_life_hours: Elimination half-life of the substance.
        threshold_percent: Washout threshold.  Once a dose has decayed below
            this percentage of its own original amount it counts as fully
            eliminated and contributes 0.  The cut-off is applied per dose,
            so the sum stays additive over disjoint event sets.

    Returns:
        The superposed level (0.0 for no events).
    """
    _check_half_life(half_life_hours)
    _check_threshold(threshold_percent)
    if len(events) == 0:
        return 0.0

    amounts = np.fromiter((e.amount for e in events), dtype=np.float64, count=len(events))
    elapsed = np.fromiter(
        (elapsed_hours(e.consumed_at, at) for e in events),
        dtype=np.float64,
        count=len(events),
    )

    active = elapsed >= 0
    # Clip so future doses don't overflow before being masked out
    remaining = amounts * np.power(0.5, np.clip(elapsed, 0.0, None) / half_life_hours)
    above_washout = remaining >= amounts * (threshold_percent / 100.0)

    return float(np.sum(remaining[active & above_washout]))


def typical_dose(events: Sequence[ConsumptionEvent]) -> float:
    """Mean amount per event (0.0 when there are none)."""
    if len(events) == 0:
        return 0.0
    return float(np.mean([e.amount for e in events]))
