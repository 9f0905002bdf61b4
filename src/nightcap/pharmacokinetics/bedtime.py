"""Bedtime level checks and green/yellow/red tiering.

Two reference policies exist and are kept apart on purpose:

* ``TierPolicy.TYPICAL_DOSE``: the bedtime badge compares tonight's level
  with the user's average dose for the day.
* ``TierPolicy.TIMELINE_MAX``: the level chart compares a level with the
  highest point of the timeline being drawn.

Both share the same boundaries: nothing left is green, up to 30% of the
reference is yellow, anything above is red.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Iterable, Sequence

from nightcap.config import settings
from nightcap.errors import InvalidParameter
from nightcap.models import ConsumptionEvent, Habit
from nightcap.pharmacokinetics.decay import aggregate_level, typical_dose
from nightcap.pharmacokinetics.timeline import Timeline, max_level

# Fraction of the reference at or below which a non-zero level is "moderate"
MODERATE_FRACTION = 0.3


class Tier(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    @property
    def label(self) -> str:
        return _TIER_LABELS[self]


_TIER_LABELS = {Tier.GREEN: "Low", Tier.YELLOW: "Moderate", Tier.RED: "High"}


class TierPolicy(str, Enum):
    TYPICAL_DOSE = "typical_dose"
    TIMELINE_MAX = "timeline_max"


@dataclass(frozen=True)
class LevelTier:
    """A level, its qualitative tier, and what it was measured against."""

    level: float
    tier: Tier
    percentage: float  # level as % of the typical dose
    reference: float
    policy: TierPolicy

    @property
    def label(self) -> str:
        return self.tier.label

    def to_dict(self) -> dict:
        return {
            "level": round(self.level, 4),
            "tier": self.tier.value,
            "label": self.label,
            "percentage": round(self.percentage, 1),
            "reference": round(self.reference, 4),
            "policy": self.policy.value,
        }

    def __repr__(self) -> str:
        return (
            f"LevelTier({self.tier.value}, level={self.level:.2f}, "
            f"{self.percentage:.0f}% of typical, policy={self.policy.value})"
        )


def _tier_for(level: float, reference: float) -> Tier:
    if level <= 0:
        return Tier.GREEN
    if level <= reference * MODERATE_FRACTION:
        return Tier.YELLOW
    return Tier.RED


def classify_level(
    level: float,
    typical_dose: float,
    reference: float | None = None,
    policy: TierPolicy = TierPolicy.TYPICAL_DOSE,
) -> LevelTier:
    """Bucket *level* into a tier.

    Args:
        level: Substance level to classify.
        typical_dose: Dose the percentage is expressed against.
        reference: Value the 30% boundary is taken from.  Defaults to
            *typical_dose*.
        policy: Which policy the caller is applying (recorded on the result).
    """
    ref = typical_dose if reference is None else reference
    percentage = level / typical_dose * 100.0 if typical_dose > 0 else 0.0
    return LevelTier(
        level=level,
        tier=_tier_for(level, ref),
        percentage=percentage,
        reference=ref,
        policy=policy,
    )


def classify_bedtime(
    events: Sequence[ConsumptionEvent],
    bedtime: datetime,
    habit: Habit,
) -> LevelTier:
    """Bedtime badge: level at *bedtime* against the mean dose of *events*."""
    level = aggregate_level(events, bedtime, habit.half_life_hours, habit.threshold_percent)
    dose = typical_dose(events)
    return classify_level(level, dose, policy=TierPolicy.TYPICAL_DOSE)


def classify_against_timeline(
    level: float,
    timeline: Timeline,
    typical_dose: float = 0.0,
) -> LevelTier:
    """Chart colouring: *level* against the timeline's observed maximum."""
    return classify_level(
        level,
        typical_dose,
        reference=max_level(timeline),
        policy=TierPolicy.TIMELINE_MAX,
    )


# ---------------------------------------------------------------------------
# Per-day bedtime levels
# ---------------------------------------------------------------------------


def parse_bedtime(value: time | str | None) -> time:
    """Parse ``HH:MM[:SS]``; None falls back to the configured default."""
    if value is None:
        value = settings.DEFAULT_BEDTIME
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidParameter(f"malformed bedtime {value!r}") from e


def bedtime_for_day(
    day: date,
    bedtime: time | str | None = None,
    tz: tzinfo | None = None,
) -> datetime:
    """Bedtime instant for the night that follows *day*.

    A bedtime before the start of the day (e.g. 01:30 when days start at
    06:00) falls on the next calendar date.
    """
    bt = parse_bedtime(bedtime)
    instant = datetime.combine(day, bt, tzinfo=tz)
    if bt.hour < settings.DAY_START_HOUR:
        instant += timedelta(days=1)
    return instant


def daily_bedtime_levels(
    events: Sequence[ConsumptionEvent],
    days: Iterable[date],
    habit: Habit,
    bedtime: time | str | None = None,
    tz: tzinfo | None = None,
) -> dict[date, float]:
    """Level at each day's bedtime, from all events (earlier days included)."""
    snapshot = tuple(events)
    return {
        day: aggregate_level(
            snapshot,
            bedtime_for_day(day, bedtime, tz),
            habit.half_life_hours,
            habit.threshold_percent,
        )
        for day in days
    }
