"""Substance-level timelines and the averaged daily pattern."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator, Sequence

import numpy as np

from nightcap.config import settings
from nightcap.errors import InvalidParameter
from nightcap.models import ConsumptionEvent, DrugLevelSample
from nightcap.pharmacokinetics.decay import aggregate_level


@dataclass(frozen=True)
class Timeline:
    """Ordered, fixed-step sequence of level samples.

    Immutable; iterating it twice yields the same samples.
    """

    samples: tuple[DrugLevelSample, ...] = ()

    def __iter__(self) -> Iterator[DrugLevelSample]:
        return iter(self.samples)

    def __len__(self) -> int:
        return len(self.samples)

    def __getitem__(self, index: int) -> DrugLevelSample:
        return self.samples[index]

    @property
    def times(self) -> list[datetime]:
        return [s.time for s in self.samples]

    @property
    def levels(self) -> np.ndarray:
        return np.array([s.level for s in self.samples], dtype=np.float64)

    @property
    def max_level(self) -> float:
        return max_level(self)

    def level_at_or_before(self, when: datetime) -> float | None:
        """Level of the last sample at or before *when* (None if none is)."""
        found = None
        for sample in self.samples:
            if sample.time > when:
                break
            found = sample.level
        return found

    def to_dicts(self) -> list[dict]:
        return [{"time": s.time.isoformat(), "level": round(s.level, 4)} for s in self.samples]

    def __repr__(self) -> str:
        if not self.samples:
            return "Timeline(empty)"
        return (
            f"Timeline({len(self.samples)} samples, "
            f"{self.samples[0].time.isoformat()} .. {self.samples[-1].time.isoformat()}, "
            f"max={self.max_level:.2f})"
        )


def max_level(timeline: Timeline | Sequence[DrugLevelSample]) -> float:
    """Highest level in a timeline (0.0 when empty)."""
    levels = [s.level for s in timeline]
    return float(max(levels)) if levels else 0.0


def sample_times(start: datetime, end: datetime, step_minutes: float) -> list[datetime]:
    """Instants from *start* to *end* inclusive, every *step_minutes*."""
    if not step_minutes > 0:
        raise InvalidParameter(f"step_minutes must be positive, got {step_minutes!r}")
    step = timedelta(minutes=step_minutes)
    times = []
    current = start
    while current <= end:
        times.append(current)
        current += step
    return times


def generate_timeline(
    events: Sequence[ConsumptionEvent],
    start: datetime,
    end: datetime,
    half_life_hours: float,
    threshold_percent: float = settings.DEFAULT_THRESHOLD_PERCENT,
    step_minutes: float = settings.TIMELINE_STEP_MINUTES,
) -> Timeline:
    """Sample the superposed level every *step_minutes* over ``[start, end]``.

    Doses before *start* still contribute whatever is left of them.  An
    *end* earlier than *start* gives an empty timeline.
    """
    times = sample_times(start, end, step_minutes)
    snapshot = tuple(events)
    return Timeline(tuple(
        DrugLevelSample(t, aggregate_level(snapshot, t, half_life_hours, threshold_percent))
        for t in times
    ))


# ---------------------------------------------------------------------------
# Average day
# ---------------------------------------------------------------------------


def _group_day(events: Sequence[ConsumptionEvent], day_start: datetime) -> date:
    """Calendar day a group of events belongs to, relative to the window start.

    A dose taken before the window's start time of day (e.g. 02:00 when
    days start at 06:00) belongs to the previous day.
    """
    earliest = min(e.consumed_at for e in events)
    if earliest.time() < day_start.time():
        return earliest.date() - timedelta(days=1)
    return earliest.date()


def _shift_events(events: Sequence[ConsumptionEvent], days: int) -> list[ConsumptionEvent]:
    delta = timedelta(days=days)
    return [
        ConsumptionEvent(e.consumed_at + delta, e.amount, e.drink_type, e.volume)
        for e in events
    ]


def average_day_pattern(
    daily_event_groups: Sequence[Sequence[ConsumptionEvent]],
    start: datetime,
    end: datetime,
    half_life_hours: float,
    threshold_percent: float = settings.DEFAULT_THRESHOLD_PERCENT,
    step_minutes: float = settings.PATTERN_STEP_MINUTES,
    days: Sequence[date] | None = None,
) -> Timeline:
    """Average several days' timelines into one representative day.

    Each group holds one day's events.  Groups are moved onto the canonical
    window ``[start, end]`` so that samples line up by time of day, then
    levels are averaged sample-by-sample.  Days without events count as a
    flat zero curve: they stay in the denominator.

    Args:
        daily_event_groups: One sequence of events per day.
        start: Start of the canonical day window.
        end: End of the canonical day window.
        half_life_hours: Elimination half-life.
        threshold_percent: Per-dose washout threshold.
        step_minutes: Sample spacing.
        days: Optional calendar day of each group.  Without it a group's
            day is inferred from its earliest event.

    Returns:
        Timeline on the canonical window; empty when there are no groups.
    """
    if days is not None and len(days) != len(daily_event_groups):
        raise InvalidParameter("days and daily_event_groups must have the same length")

    times = sample_times(start, end, step_minutes)
    if len(daily_event_groups) == 0:
        return Timeline()

    totals = np.zeros(len(times), dtype=np.float64)
    for i, group in enumerate(daily_event_groups):
        if len(group) == 0:
            continue  # flat zero curve, still counted below
        group_day = days[i] if days is not None else _group_day(group, start)
        shifted = _shift_events(group, (start.date() - group_day).days)
        day_timeline = generate_timeline(
            shifted, start, end, half_life_hours, threshold_percent, step_minutes,
        )
        totals += day_timeline.levels

    averages = totals / len(daily_event_groups)
    return Timeline(tuple(
        DrugLevelSample(t, float(level)) for t, level in zip(times, averages)
    ))
