"""Insight pipeline: wire the storage payload into the engine.

The storage collaborator exports one JSON document per user::

    {
      "habits": [{"id": "...", "name": "Caffeine", "type": "quick_consumption",
                  "halfLifeHours": 5, "thresholdPercent": 5, "unit": "mg"}, ...],
      "events": {"<habit id>": [{"consumedAt": "...", "amount": 95,
                                 "drinkType": "coffee"}, ...]},
      "logs":   [{"habit_id": "...", "date": "2025-01-01", "value": "yes"}, ...],
      "sleep":  [{"date": "2025-01-02", "total_sleep_minutes": 412, ...}, ...],
      "bedtime": "22:30:00"
    }

Drug habits are turned into one bedtime level per night; every other habit
uses its manual logs.  The result is an :class:`InsightReport`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from nightcap.config import settings
from nightcap.errors import InvalidParameter
from nightcap.insights.classifier import InsightReport, build_insights, habit_key
from nightcap.models import ConsumptionEvent, Habit, HabitLog, SleepRecord
from nightcap.pharmacokinetics.bedtime import daily_bedtime_levels

logger = logging.getLogger(__name__)


@dataclass
class Payload:
    """Parsed storage export."""

    habits: list[Habit] = field(default_factory=list)
    events: dict[str, list[ConsumptionEvent]] = field(default_factory=dict)
    logs: dict[str, list[HabitLog]] = field(default_factory=dict)
    sleep: list[SleepRecord] = field(default_factory=list)
    bedtime: str | None = None

    def habit(self, key: str) -> Habit:
        for habit in self.habits:
            if habit_key(habit) == key or habit.name == key:
                return habit
        raise InvalidParameter(f"no habit with id or name {key!r}")

    def events_for(self, habit: Habit) -> list[ConsumptionEvent]:
        return self.events.get(habit_key(habit), [])


def parse_payload(data: dict[str, Any]) -> Payload:
    """Turn the raw JSON document into typed records."""
    habits = [Habit.from_record(h) for h in data.get("habits", [])]

    events: dict[str, list[ConsumptionEvent]] = {}
    for key, rows in (data.get("events") or {}).items():
        events[str(key)] = sorted(
            (ConsumptionEvent.from_record(r) for r in rows),
            key=lambda e: e.consumed_at,
        )

    logs: dict[str, list[HabitLog]] = {}
    for row in data.get("logs", []):
        key = row.get("habit_id") or row.get("habitId")
        if key is None:
            logger.warning("Skipping habit log without habit id: %r", row)
            continue
        logs.setdefault(str(key), []).append(HabitLog.from_record(row))

    sleep = sorted(
        (SleepRecord.from_record(r) for r in data.get("sleep", [])),
        key=lambda s: s.date,
    )
    return Payload(habits, events, logs, sleep, data.get("bedtime"))


def load_payload(path: str | Path) -> Payload:
    """Read and parse a storage export from disk."""
    with open(path) as f:
        return parse_payload(json.load(f))


def _drug_series(payload: Payload, habit: Habit) -> dict[date, float]:
    """Bedtime level for every night from the first logged dose onwards."""
    events = payload.events_for(habit)
    if not events:
        return {}
    first_day = events[0].consumed_at.date()
    nights = [rec.date for rec in payload.sleep if rec.date >= first_day]
    tz = events[0].consumed_at.tzinfo
    return daily_bedtime_levels(events, nights, habit, payload.bedtime, tz)


def _log_series(payload: Payload, habit: Habit) -> dict[date, Any]:
    # Later entries for the same day win
    return {log.date: log.value for log in payload.logs.get(habit_key(habit), [])}


def run_pipeline(
    payload: Payload,
    metric: str = "total_sleep_minutes",
    min_data_points: int = settings.MIN_DATA_POINTS,
) -> InsightReport:
    """Compute the insight report for every habit in *payload*.

    Args:
        payload: Parsed storage export.
        metric: Sleep metric key to correlate against.
        min_data_points: Paired days needed before statistics are shown.
    """
    series: dict[str, dict[date, Any]] = {}
    for habit in payload.habits:
        if habit.is_drug:
            series[habit_key(habit)] = _drug_series(payload, habit)
        else:
            series[habit_key(habit)] = _log_series(payload, habit)
        logger.debug("%s: %d day(s) of values", habit.name, len(series[habit_key(habit)]))

    return build_insights(
        payload.habits, series, payload.sleep, metric,
        min_data_points=min_data_points,
    )
