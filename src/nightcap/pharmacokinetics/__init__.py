"""Substance-level engine: decay, superposition, timelines and bedtime tiers.

Modules:
    decay     -- single-dose decay and superposed level at an instant
    timeline  -- fixed-step timelines and the averaged daily pattern
    bedtime   -- green/yellow/red tiering and per-day bedtime levels
"""

from nightcap.pharmacokinetics.decay import (
    decay_level,
    aggregate_level,
    elapsed_hours,
    typical_dose,
)
from nightcap.pharmacokinetics.timeline import (
    Timeline,
    generate_timeline,
    average_day_pattern,
    max_level,
)
from nightcap.pharmacokinetics.bedtime import (
    Tier,
    TierPolicy,
    LevelTier,
    classify_level,
    classify_bedtime,
    classify_against_timeline,
    bedtime_for_day,
    daily_bedtime_levels,
)

__all__ = [
    # decay
    "decay_level",
    "aggregate_level",
    "elapsed_hours",
    "typical_dose",
    # timeline
    "Timeline",
    "generate_timeline",
    "average_day_pattern",
    "max_level",
    # bedtime
    "Tier",
    "TierPolicy",
    "LevelTier",
    "classify_level",
    "classify_bedtime",
    "classify_against_timeline",
    "bedtime_for_day",
    "daily_bedtime_levels",
]
