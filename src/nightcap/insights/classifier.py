"""Per-habit insight classification.

For each habit the daily habit values are paired with the matching night's
sleep metric.  Invalid entries (missing, NaN, unparsable) are dropped
*before* counting, then:

* fewer than ``min_data_points`` valid pairs -> placeholder (counts only)
* binary habit -> box-plot comparison of "did" vs "didn't" nights
* anything else -> Pearson correlation plus the scatter points
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Any, ClassVar, Iterable, Mapping, Sequence

from nightcap.config import settings
from nightcap.errors import InvalidParameter
from nightcap.insights.correlation import CorrelationResult, correlate
from nightcap.insights.distribution import DistributionSummary, summarize
from nightcap.models import Habit, HabitType, SleepRecord

logger = logging.getLogger(__name__)


SLEEP_METRICS = [
    {"key": "total_sleep_minutes", "label": "Total Sleep", "unit": "minutes"},
    {"key": "deep_sleep_minutes", "label": "Deep Sleep", "unit": "minutes"},
    {"key": "light_sleep_minutes", "label": "Light Sleep", "unit": "minutes"},
    {"key": "rem_sleep_minutes", "label": "REM Sleep", "unit": "minutes"},
    {"key": "awake_minutes", "label": "Awake Time", "unit": "minutes"},
    {"key": "awakenings_count", "label": "Awakenings", "unit": "count"},
    {"key": "sleep_score", "label": "Sleep Score", "unit": "score"},
]
SLEEP_METRIC_KEYS = frozenset(m["key"] for m in SLEEP_METRICS)

TIME_RANGES = [
    {"key": "all", "label": "All available data", "days": None},
    {"key": "30", "label": "Last 30 days", "days": 30},
    {"key": "60", "label": "Last 60 days", "days": 60},
    {"key": "90", "label": "Last 90 days", "days": 90},
    {"key": "180", "label": "Last 180 days", "days": 180},
]

# "all" looks back this far
ALL_DATA_DAYS = 2 * 365
DEFAULT_RANGE_DAYS = 90

_YES = {"yes", "y", "true", "1"}
_NO = {"no", "n", "false", "0"}


def date_range(key: str, today: date | None = None) -> tuple[date, date]:
    """Start and end date for a time-range key (unknown keys mean 90 days)."""
    end = today or date.today()
    if key == "all":
        return end - timedelta(days=ALL_DATA_DAYS), end
    try:
        days = int(key)
    except ValueError:
        days = DEFAULT_RANGE_DAYS
    return end - timedelta(days=days), end


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def _finite_float(raw: Any) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def coerce_habit_value(raw: Any, habit: Habit) -> float | None:
    """Numeric value of a habit entry, or None if it is not usable.

    Binary habits map yes/true/1 to 1.0 and no/false/0 to 0.0; anything
    else is rejected rather than read as "no".
    """
    if habit.type is HabitType.BINARY:
        if isinstance(raw, bool):
            return 1.0 if raw else 0.0
        if isinstance(raw, (int, float)):
            return float(raw) if raw in (0, 1) else None
        if isinstance(raw, str):
            text = raw.strip().lower()
            if text in _YES:
                return 1.0
            if text in _NO:
                return 0.0
        return None
    if habit.type is HabitType.TIME and isinstance(raw, str) and ":" in raw:
        return _minutes_of_day(raw)
    return _finite_float(raw)


def _minutes_of_day(text: str) -> float | None:
    # "HH:MM[:SS]" -> minutes since midnight
    try:
        t = time.fromisoformat(text.strip())
    except ValueError:
        return None
    return t.hour * 60.0 + t.minute + t.second / 60.0


def coerce_metric(raw: Any) -> float | None:
    """Sleep metric value, or None if missing/non-finite."""
    return _finite_float(raw)


# ---------------------------------------------------------------------------
# Pairing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PairedPoint:
    date: date  # habit date
    habit_value: float
    sleep_value: float
    sleep_date: date


@dataclass
class PairedData:
    """Valid (habit, sleep) pairs plus the tracking counters."""

    points: list[PairedPoint] = field(default_factory=list)
    days_tracked: int = 0
    days_with_sleep_data: int = 0

    def __len__(self) -> int:
        return len(self.points)

    @property
    def xs(self) -> list[float]:
        return [p.habit_value for p in self.points]

    @property
    def ys(self) -> list[float]:
        return [p.sleep_value for p in self.points]


def pair_series(
    habit: Habit,
    habit_values: Mapping[date, Any],
    sleep_values: Mapping[date, Any],
    lag_days: int = 0,
) -> PairedData:
    """Join habit values with sleep values by date.

    Args:
        habit: The habit the values belong to.
        habit_values: Raw habit value per habit date.
        sleep_values: Raw sleep metric per sleep date.
        lag_days: Sleep date = habit date + *lag_days*.

    Returns:
        PairedData holding only pairs where both sides are valid numbers.
    """
    paired = PairedData()
    dropped = 0
    for day in sorted(habit_values):
        paired.days_tracked += 1
        sleep_day = day + timedelta(days=lag_days)
        if sleep_day not in sleep_values:
            continue
        paired.days_with_sleep_data += 1

        x = coerce_habit_value(habit_values[day], habit)
        y = coerce_metric(sleep_values[sleep_day])
        if x is None or y is None:
            dropped += 1
            continue
        paired.points.append(PairedPoint(day, x, y, sleep_day))

    if dropped:
        logger.debug("%s: dropped %d day(s) with invalid values", habit.name, dropped)
    return paired


# ---------------------------------------------------------------------------
# Insight records
# ---------------------------------------------------------------------------


@dataclass
class Insight:
    """Common fields of every insight kind."""

    kind: ClassVar[str] = ""

    habit: Habit
    total_data_points: int
    days_tracked: int
    days_with_sleep_data: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "habit": {
                "id": self.habit.id,
                "name": self.habit.name,
                "type": self.habit.type.value,
                "unit": self.habit.unit,
            },
            "total_data_points": self.total_data_points,
            "days_tracked": self.days_tracked,
            "days_with_sleep_data": self.days_with_sleep_data,
        }


@dataclass
class PlaceholderInsight(Insight):
    kind: ClassVar[str] = "placeholder"

    min_data_points: int = settings.MIN_DATA_POINTS

    @property
    def needs_more_data(self) -> bool:
        return self.total_data_points < self.min_data_points

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["days_with_paired_data"] = self.total_data_points
        d["needs_more_data"] = self.needs_more_data
        return d


@dataclass
class BinaryInsight(Insight):
    kind: ClassVar[str] = "binary"

    yes_count: int = 0
    no_count: int = 0
    yes_stats: DistributionSummary | None = None
    no_stats: DistributionSummary | None = None

    @property
    def has_comparison_data(self) -> bool:
        return self.yes_stats is not None and self.no_stats is not None

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d.update(
            yes_count=self.yes_count,
            no_count=self.no_count,
            has_comparison_data=self.has_comparison_data,
            yes_stats=self.yes_stats.to_dict() if self.yes_stats else None,
            no_stats=self.no_stats.to_dict() if self.no_stats else None,
        )
        return d


@dataclass
class NumericalInsight(Insight):
    kind: ClassVar[str] = "numerical"

    correlation: CorrelationResult | None = None
    points: list[PairedPoint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["correlation"] = self.correlation.to_dict() if self.correlation else None
        d["points"] = [
            {"x": p.habit_value, "y": p.sleep_value, "date": p.date.isoformat()}
            for p in self.points
        ]
        return d


def _binary_insight(habit: Habit, paired: PairedData) -> BinaryInsight:
    yes = [p.sleep_value for p in paired.points if p.habit_value == 1.0]
    no = [p.sleep_value for p in paired.points if p.habit_value == 0.0]
    return BinaryInsight(
        habit=habit,
        total_data_points=len(paired),
        days_tracked=paired.days_tracked,
        days_with_sleep_data=paired.days_with_sleep_data,
        yes_count=len(yes),
        no_count=len(no),
        yes_stats=summarize(yes) if yes else None,
        no_stats=summarize(no) if no else None,
    )


def classify_habit(
    habit: Habit,
    habit_values: Mapping[date, Any],
    sleep_values: Mapping[date, Any],
    lag_days: int = 0,
    min_data_points: int = settings.MIN_DATA_POINTS,
) -> Insight:
    """Build the insight for one habit (see module docstring)."""
    paired = pair_series(habit, habit_values, sleep_values, lag_days)
    logger.debug(
        "%s (%s): %d tracked, %d with sleep data, %d valid pairs",
        habit.name, habit.type.value,
        paired.days_tracked, paired.days_with_sleep_data, len(paired),
    )
    if paired.points:
        sample = ", ".join(f"{p.date} -> {p.sleep_date}" for p in paired.points[:5])
        logger.debug("%s: sample matches %s", habit.name, sample)

    if len(paired) < min_data_points:
        logger.debug(
            "%s: insufficient paired data (%d, need %d)",
            habit.name, len(paired), min_data_points,
        )
        return PlaceholderInsight(
            habit=habit,
            total_data_points=len(paired),
            days_tracked=paired.days_tracked,
            days_with_sleep_data=paired.days_with_sleep_data,
            min_data_points=min_data_points,
        )

    if habit.type is HabitType.BINARY:
        insight = _binary_insight(habit, paired)
        logger.debug("%s: binary, %d yes / %d no", habit.name, insight.yes_count, insight.no_count)
        return insight

    result = correlate(paired.xs, paired.ys)
    logger.debug("%s: numerical, %r", habit.name, result)
    return NumericalInsight(
        habit=habit,
        total_data_points=len(paired),
        days_tracked=paired.days_tracked,
        days_with_sleep_data=paired.days_with_sleep_data,
        correlation=result,
        points=list(paired.points),
    )


# ---------------------------------------------------------------------------
# All habits
# ---------------------------------------------------------------------------


@dataclass
class InsightReport:
    """Insights for every habit, split into shown and placeholder cards."""

    metric: str
    valid_insights: list[Insight] = field(default_factory=list)
    placeholders: list[PlaceholderInsight] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "valid_insights": [i.to_dict() for i in self.valid_insights],
            "placeholders": [p.to_dict() for p in self.placeholders],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def __repr__(self) -> str:
        return (
            f"InsightReport({self.metric}: {len(self.valid_insights)} insights, "
            f"{len(self.placeholders)} placeholders)"
        )


def sleep_lag_days(habit: Habit) -> int:
    """Days between a habit entry and the sleep record it affects.

    Manual logs for day X pair with the night stored under X+1.  Bedtime
    levels of drug habits are already computed for the night itself and
    pair with the same date.
    """
    return 0 if habit.is_drug else 1


def habit_key(habit: Habit) -> str:
    return habit.id if habit.id is not None else habit.name


def build_insights(
    habits: Sequence[Habit],
    habit_series: Mapping[str, Mapping[date, Any]],
    sleep_records: Iterable[SleepRecord],
    metric: str,
    min_data_points: int = settings.MIN_DATA_POINTS,
) -> InsightReport:
    """Classify every habit against one sleep metric.

    Args:
        habits: Habits to analyze.
        habit_series: Raw daily values per habit, keyed by habit id (or
            name for habits without an id).
        sleep_records: Sleep records over the analysis range.
        metric: Key of the sleep metric (one of ``SLEEP_METRIC_KEYS``).
        min_data_points: Sufficiency threshold.
    """
    if metric not in SLEEP_METRIC_KEYS:
        raise InvalidParameter(
            f"unknown sleep metric {metric!r}; expected one of {sorted(SLEEP_METRIC_KEYS)}"
        )

    sleep_values = {rec.date: rec.get(metric) for rec in sleep_records}
    logger.info(
        "Analyzing %d habit(s) against %s over %d sleep record(s)",
        len(habits), metric, len(sleep_values),
    )

    report = InsightReport(metric=metric)
    for habit in habits:
        series = habit_series.get(habit_key(habit), {})
        insight = classify_habit(
            habit, series, sleep_values,
            lag_days=sleep_lag_days(habit),
            min_data_points=min_data_points,
        )
        if isinstance(insight, PlaceholderInsight):
            report.placeholders.append(insight)
        else:
            report.valid_insights.append(insight)

    logger.info(
        "Valid insights: %d, placeholders: %d",
        len(report.valid_insights), len(report.placeholders),
    )
    return report
